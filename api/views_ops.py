"""Operational endpoints that mutate ledgers and wallets (deploy/mint/transfer/deposit/withdraw)."""

import json
from functools import wraps
from django.http import JsonResponse, HttpResponseBadRequest, HttpResponseForbidden, Http404
from django.core.exceptions import ValidationError
from django.middleware.csrf import get_token
from django.views.decorators.csrf import csrf_exempt
from core import services
from core.adapters.caller_adapter import CallerAdapter
from core.constants import parse_amount, check_account
from core.models import TokenLedger, Wallet


def health(request):
	return JsonResponse({"ok": True})


def csrf(request):
	# Forces creation/rotation of the CSRF token AND sets 'csrftoken' cookie
	return JsonResponse({"csrftoken": get_token(request)})


# --- Helpers -----------------------------------------------------------------

class BadRequest(Exception):
	"""Malformed request input; rendered as 400 with an error code."""

	def __init__(self, code: str):
		super().__init__(code)
		self.code = code


def _body(request) -> dict:
	try:
		body = json.loads(request.body or b"{}")
	except ValueError:
		raise BadRequest("invalid_json")
	if not isinstance(body, dict):
		raise BadRequest("invalid_json")
	return body


def _amount(body: dict, key: str = "amount") -> int:
	if key not in body:
		raise BadRequest(f"{key}_required")
	try:
		return parse_amount(body[key])
	except (TypeError, ValueError):
		raise BadRequest("invalid_amount")


def _account(body: dict, key: str) -> str:
	if key not in body:
		raise BadRequest(f"{key}_required")
	try:
		return check_account(body[key])
	except ValueError:
		raise BadRequest("invalid_account")


def _operation(view):
	"""
	POST-only wrapper: resolves the caller, maps input errors to 400,
	domain failures to 400 with their code, and unknown ids to 404.
	CSRF-exempt: callers are identified by header, not by a browser session.
	"""
	@csrf_exempt
	@wraps(view)
	def wrapped(request, *args, **kwargs):
		if request.method != "POST":
			return HttpResponseBadRequest("POST only")
		caller = CallerAdapter.resolve(request)
		if caller is None:
			return HttpResponseForbidden(f"{CallerAdapter.header_name()} required")
		try:
			return view(request, caller, *args, **kwargs)
		except BadRequest as e:
			return JsonResponse({"error": e.code}, status=400)
		except ValidationError as e:
			return JsonResponse({"error": e.code or e.message}, status=400)
		except (TokenLedger.DoesNotExist, Wallet.DoesNotExist):
			raise Http404("unknown ledger or wallet")
	return wrapped


def _ledger_state(ledger, **extra) -> dict:
	return {"ledger_id": str(ledger.id), "total_supply": str(ledger.total_supply), **extra}


# --- Ledger ------------------------------------------------------------------

@_operation
def create_ledger(request, caller):
	"""
	POST: Deploy a ledger; the caller becomes owner and receives initial_supply
	"""
	body = _body(request)
	initial_supply = _amount(body, "initial_supply") if "initial_supply" in body else 0
	ledger = services.deploy_ledger(initial_supply, owner=caller, name=str(body.get("name", ""))[:100])
	return JsonResponse(_ledger_state(ledger, owner=ledger.owner), status=201)


@_operation
def mint(request, caller, ledger_id):
	"""
	POST: Issue `amount` new units to `recipient`
	"""
	body = _body(request)
	recipient = _account(body, "recipient")
	amount = _amount(body)
	ledger = services.mint(ledger_id, recipient, amount, requested_by=caller)
	return JsonResponse(_ledger_state(
		ledger,
		recipient=recipient,
		balance=str(services.ledger_balance_of(ledger.id, recipient)),
	))


@_operation
def transfer(request, caller, ledger_id):
	"""
	POST: Move `amount` from the caller to `to`
	"""
	body = _body(request)
	to = _account(body, "to")
	amount = _amount(body)
	ledger = services.transfer(ledger_id, caller, to, amount)
	return JsonResponse(_ledger_state(
		ledger,
		sender=caller,
		sender_balance=str(services.ledger_balance_of(ledger.id, caller)),
		recipient=to,
		recipient_balance=str(services.ledger_balance_of(ledger.id, to)),
	))


@_operation
def reconcile(request, caller, ledger_id):
	"""
	POST: Record a supply vs sum-of-balances check
	"""
	run = services.reconcile_ledger(ledger_id)
	return JsonResponse({
		"ledger_id": str(run.ledger_id),
		"total_supply": str(run.total_supply),
		"balances_sum": run.balances_sum,
		"holders": run.holders,
		"ok": run.ok,
	}, status=201)


# --- Wallet ------------------------------------------------------------------

@_operation
def create_wallet(request, caller):
	"""
	POST: Deploy an empty wallet
	"""
	body = _body(request)
	wallet = services.deploy_wallet(name=str(body.get("name", ""))[:100])
	return JsonResponse({"wallet_id": str(wallet.id)}, status=201)


@_operation
def deposit(request, caller, wallet_id):
	"""
	POST: Credit the caller's wallet balance by `amount`
	"""
	amount = _amount(_body(request))
	wallet = services.deposit(wallet_id, caller, amount)
	return JsonResponse({
		"wallet_id": str(wallet.id),
		"account": caller,
		"balance": str(services.wallet_balance_of(wallet.id, caller)),
	})


@_operation
def withdraw(request, caller, wallet_id):
	"""
	POST: Debit the caller's wallet balance by `amount`
	"""
	amount = _amount(_body(request))
	wallet = services.withdraw(wallet_id, caller, amount)
	return JsonResponse({
		"wallet_id": str(wallet.id),
		"account": caller,
		"balance": str(services.wallet_balance_of(wallet.id, caller)),
	})
