"""Read-only endpoints to inspect ledger and wallet state (supply, balances, events)."""

from django.http import JsonResponse, Http404
from django.conf import settings
from core import services
from core.constants import units_to_display
from core.models import TokenLedger, Wallet


def _event_rows(events):
	return [
		{
			"id": e.id,
			"event_type": e.event_type,
			"sender": e.sender or None,
			"recipient": e.recipient or None,
			"amount": str(e.amount),
			"created_at": e.created_at.isoformat(),
		}
		for e in events
	]


def total_supply(request, ledger_id):
	"""
	GET: Current total supply in integer units
	"""
	try:
		supply = services.ledger_total_supply(ledger_id)
	except TokenLedger.DoesNotExist:
		raise Http404("unknown ledger")
	return JsonResponse({"ledger_id": str(ledger_id), "total_supply": str(supply)})


def ledger_balance(request, ledger_id, account: str):
	"""
	GET: Balance of `account` in integer units + token decimals for formatting (absent account = 0)
	"""
	try:
		units = services.ledger_balance_of(ledger_id, account)
	except TokenLedger.DoesNotExist:
		raise Http404("unknown ledger")
	return JsonResponse({
		"account": account,
		"balance": str(units),
		"display": f"{units_to_display(units)}",
		"token_decimals": getattr(settings, "TOKEN_DECIMALS", 18),
	})


def ledger_events(request, ledger_id):
	"""
	GET: Recent events (deploy, mint, transfer) newest first
	"""
	try:
		events = services.ledger_events(ledger_id)
	except TokenLedger.DoesNotExist:
		raise Http404("unknown ledger")
	return JsonResponse(_event_rows(events), safe=False)


def wallet_balance(request, wallet_id, account: str):
	"""
	GET: Wallet balance of `account` (absent account = 0)
	"""
	try:
		units = services.wallet_balance_of(wallet_id, account)
	except Wallet.DoesNotExist:
		raise Http404("unknown wallet")
	return JsonResponse({"account": account, "balance": str(units)})


def wallet_events(request, wallet_id):
	"""
	GET: Recent wallet events (deposit, withdraw) newest first
	"""
	try:
		events = services.wallet_events(wallet_id)
	except Wallet.DoesNotExist:
		raise Http404("unknown wallet")
	return JsonResponse(_event_rows(events), safe=False)
