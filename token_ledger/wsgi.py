"""WSGI entry point for the token ledger service."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "token_ledger.settings")

application = get_wsgi_application()
