"""Public API surface.

- /ledgers: deploy, mint, transfer, reconcile + supply/balance/event reads
- /wallets: deploy, deposit, withdraw + balance/event reads

Mutating endpoints act on behalf of the caller named in the caller header.
"""

from django.urls import path
from .views_ops import health, csrf, create_ledger, mint, transfer, reconcile, create_wallet, deposit, withdraw
from .views_read import total_supply, ledger_balance, ledger_events, wallet_balance, wallet_events


urlpatterns = [
	path("health", health),
	path("csrf", csrf),
	path("ledgers", create_ledger),
	path("ledgers/<uuid:ledger_id>/total-supply", total_supply),
	path("ledgers/<uuid:ledger_id>/balance/<str:account>", ledger_balance),
	path("ledgers/<uuid:ledger_id>/mint", mint),
	path("ledgers/<uuid:ledger_id>/transfer", transfer),
	path("ledgers/<uuid:ledger_id>/events", ledger_events),
	path("ledgers/<uuid:ledger_id>/reconcile", reconcile),
	path("wallets", create_wallet),
	path("wallets/<uuid:wallet_id>/balance/<str:account>", wallet_balance),
	path("wallets/<uuid:wallet_id>/deposit", deposit),
	path("wallets/<uuid:wallet_id>/withdraw", withdraw),
	path("wallets/<uuid:wallet_id>/events", wallet_events),
]
