"""URL routing for the token ledger service.


The /api/ namespace exposes ledger and wallet operations plus read-only views.
"""

from django.urls import path, include


urlpatterns = [
	path("api/", include("api.urls")),
]
