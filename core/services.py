"""Persistence orchestration around the in-memory engine.

Every mutation follows the same path: lock the owning ledger/wallet row, restore
an engine over the rows the operation touches, run the engine operation, write
the touched balances back and record the emitted events. Each of these runs in
@transaction.atomic, so a rejected operation (or a crash mid-write) leaves the
database as it was.
"""
import logging
from django.db import transaction

from .models import TokenLedger, LedgerBalance, Wallet, WalletBalance, LedgerEvent, EventType, ReconciliationRun
from .constants import check_account
from .errors import LedgerError
from .ledger import Ledger, Vault, construct_ledger

logger = logging.getLogger(__name__)


# --- Helpers -----------------------------------------------------------------

def _lock_ledger(ledger_id) -> TokenLedger:
	# Single writer per ledger: every mutating path takes this row lock first.
	return TokenLedger.objects.select_for_update().get(pk=ledger_id)


def _lock_wallet(wallet_id) -> Wallet:
	return Wallet.objects.select_for_update().get(pk=wallet_id)


def _load_balances(model, accounts, **owner) -> dict:
	rows = model.objects.filter(account__in=set(accounts), **owner)
	return {row.account: row.balance for row in rows}


def _write_balances(model, engine, accounts, **owner) -> None:
	"""
	Persist the engine's view of `accounts`; zero balances lose their row (absent == 0)
	"""
	for account in set(accounts):
		value = engine.balance_of(account)
		if value:
			model.objects.update_or_create(account=account, defaults={"balance": value}, **owner)
		else:
			model.objects.filter(account=account, **owner).delete()


def _record_events(events, **owner) -> None:
	LedgerEvent.objects.bulk_create([
		LedgerEvent(
			event_type=e.kind,
			sender=e.sender or "",
			recipient=e.recipient or "",
			amount=e.amount,
			**owner,
		)
		for e in events
	])


# --- Ledger ------------------------------------------------------------------

@transaction.atomic
def deploy_ledger(initial_supply: int, *, owner: str, name: str = "") -> TokenLedger:
	"""
	Create a ledger whose initial supply is credited to `owner`, so conservation holds from the start
	"""
	owner = check_account(owner)
	engine = construct_ledger(initial_supply, owner)

	ledger = TokenLedger.objects.create(name=name, owner=owner, total_supply=engine.total_supply())
	_write_balances(LedgerBalance, engine, [owner], ledger=ledger)
	LedgerEvent.objects.create(ledger=ledger, event_type=EventType.DEPLOYED, recipient=owner, amount=initial_supply)

	logger.info("ledger deployed id=%s owner=%s initial_supply=%s", ledger.pk, owner, initial_supply)
	return ledger


def ledger_total_supply(ledger_id) -> int:
	return TokenLedger.objects.get(pk=ledger_id).total_supply


def ledger_balance_of(ledger_id, account: str) -> int:
	ledger = TokenLedger.objects.get(pk=ledger_id)
	return _load_balances(LedgerBalance, [account], ledger=ledger).get(account, 0)


def ledger_events(ledger_id, limit: int = 50):
	ledger = TokenLedger.objects.get(pk=ledger_id)
	return list(ledger.events.order_by("-id")[:limit])


@transaction.atomic
def mint(ledger_id, recipient: str, amount: int, *, requested_by: str = "") -> TokenLedger:
	recipient = check_account(recipient)
	ledger = _lock_ledger(ledger_id)

	events = []
	engine = Ledger.restore(
		ledger.total_supply,
		_load_balances(LedgerBalance, [recipient], ledger=ledger),
		on_event=events.append,
	)
	try:
		engine.mint(recipient, amount)
	except LedgerError as e:
		logger.warning(
			"mint rejected ledger=%s recipient=%s amount=%s by=%s: %s",
			ledger.pk, recipient, amount, requested_by, e.code,
		)
		raise

	ledger.total_supply = engine.total_supply()
	ledger.save(update_fields=["total_supply"])
	_write_balances(LedgerBalance, engine, [recipient], ledger=ledger)
	_record_events(events, ledger=ledger)

	logger.info(
		"minted ledger=%s recipient=%s amount=%s supply=%s by=%s",
		ledger.pk, recipient, amount, ledger.total_supply, requested_by,
	)
	return ledger


@transaction.atomic
def transfer(ledger_id, sender: str, recipient: str, amount: int) -> TokenLedger:
	sender = check_account(sender)
	recipient = check_account(recipient)
	ledger = _lock_ledger(ledger_id)

	events = []
	engine = Ledger.restore(
		ledger.total_supply,
		_load_balances(LedgerBalance, [sender, recipient], ledger=ledger),
		on_event=events.append,
	)
	try:
		engine.transfer(sender, recipient, amount)
	except LedgerError as e:
		logger.warning(
			"transfer rejected ledger=%s sender=%s recipient=%s amount=%s: %s",
			ledger.pk, sender, recipient, amount, e.code,
		)
		raise

	_write_balances(LedgerBalance, engine, [sender, recipient], ledger=ledger)
	_record_events(events, ledger=ledger)

	logger.info("transferred ledger=%s sender=%s recipient=%s amount=%s", ledger.pk, sender, recipient, amount)
	return ledger


@transaction.atomic
def reconcile_ledger(ledger_id) -> ReconciliationRun:
	"""
	Recompute the sum of all stored balances and compare it with the recorded supply.

	Holds the ledger lock so no mutation lands between the two reads.
	"""
	ledger = _lock_ledger(ledger_id)
	balances = list(ledger.balances.values_list("balance", flat=True))
	balances_sum = sum(balances)
	ok = balances_sum == ledger.total_supply

	run = ReconciliationRun.objects.create(
		ledger=ledger,
		total_supply=ledger.total_supply,
		balances_sum=str(balances_sum),
		holders=len(balances),
		ok=ok,
	)
	if ok:
		logger.info("reconciled ledger=%s supply=%s holders=%s", ledger.pk, ledger.total_supply, len(balances))
	else:
		logger.error("ledger=%s out of balance: supply=%s sum=%s", ledger.pk, ledger.total_supply, balances_sum)
	return run


# --- Wallet ------------------------------------------------------------------

@transaction.atomic
def deploy_wallet(*, name: str = "") -> Wallet:
	wallet = Wallet.objects.create(name=name)
	LedgerEvent.objects.create(wallet=wallet, event_type=EventType.DEPLOYED, amount=0)
	logger.info("wallet deployed id=%s", wallet.pk)
	return wallet


def wallet_balance_of(wallet_id, account: str) -> int:
	wallet = Wallet.objects.get(pk=wallet_id)
	return _load_balances(WalletBalance, [account], wallet=wallet).get(account, 0)


def wallet_events(wallet_id, limit: int = 50):
	wallet = Wallet.objects.get(pk=wallet_id)
	return list(wallet.events.order_by("-id")[:limit])


def _vault_call(wallet_id, caller: str, amount: int, op: str) -> Wallet:
	caller = check_account(caller)
	wallet = _lock_wallet(wallet_id)

	events = []
	engine = Vault.restore(_load_balances(WalletBalance, [caller], wallet=wallet), on_event=events.append)
	try:
		getattr(engine, op)(caller, amount)
	except LedgerError as e:
		logger.warning("%s rejected wallet=%s caller=%s amount=%s: %s", op, wallet.pk, caller, amount, e.code)
		raise

	_write_balances(WalletBalance, engine, [caller], wallet=wallet)
	_record_events(events, wallet=wallet)

	logger.info("%s wallet=%s caller=%s amount=%s", op, wallet.pk, caller, amount)
	return wallet


@transaction.atomic
def deposit(wallet_id, caller: str, amount: int) -> Wallet:
	return _vault_call(wallet_id, caller, amount, "deposit")


@transaction.atomic
def withdraw(wallet_id, caller: str, amount: int) -> Wallet:
	return _vault_call(wallet_id, caller, amount, "withdraw")
