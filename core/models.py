"""Database models backing the ledger engine.


Tables:
- TokenLedger: one deployed ledger with its total supply
- LedgerBalance: per-account balance rows of a ledger (absent row = 0)
- Wallet: one deployed deposit/withdraw vault
- WalletBalance: per-account balance rows of a wallet (absent row = 0)
- EventType
- LedgerEvent: append-only record of domain events (deploy, mint, transfer, deposit, withdraw)
- ReconciliationRun: snapshot of supply vs sum of balances
"""

import uuid
from django.db import models

from .constants import MAX_ACCOUNT_LENGTH, BALANCE_DIGITS


class BalanceField(models.Field):
	"""
	Unsigned balance stored as a decimal string.

	The column is as wide as MAX_BALANCE has digits. 128-bit balances overflow
	signed BIGINT columns, and SQLite's NUMERIC affinity would silently turn
	large values into floats, so the column is text.
	"""
	description = "Unsigned integer balance"

	def __init__(self, *args, **kwargs):
		kwargs.setdefault("max_length", BALANCE_DIGITS)
		kwargs.setdefault("default", 0)
		super().__init__(*args, **kwargs)

	def get_internal_type(self):
		return "CharField"

	def from_db_value(self, value, expression, connection):
		return None if value is None else int(value)

	def to_python(self, value):
		if value is None or isinstance(value, int):
			return value
		return int(value)

	def get_prep_value(self, value):
		if value is None:
			return None
		return str(int(value))


def account_field(**kwargs):
	return models.CharField(max_length=MAX_ACCOUNT_LENGTH, **kwargs)


class TokenLedger(models.Model):
	"""
	A deployed ledger. The row doubles as the per-ledger write lock (select_for_update)
	"""
	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
	name = models.CharField(max_length=100, blank=True, default="")
	owner = account_field()
	total_supply = BalanceField()
	created_at = models.DateTimeField(auto_now_add=True)


class LedgerBalance(models.Model):
	id = models.BigAutoField(primary_key=True)
	ledger = models.ForeignKey(TokenLedger, on_delete=models.CASCADE, related_name="balances")
	account = account_field()
	balance = BalanceField()

	class Meta:
		unique_together = (("ledger", "account"),)


class Wallet(models.Model):
	"""
	A deployed vault. Like TokenLedger, the row is locked before any balance is touched
	"""
	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
	name = models.CharField(max_length=100, blank=True, default="")
	created_at = models.DateTimeField(auto_now_add=True)


class WalletBalance(models.Model):
	id = models.BigAutoField(primary_key=True)
	wallet = models.ForeignKey(Wallet, on_delete=models.CASCADE, related_name="balances")
	account = account_field()
	balance = BalanceField()

	class Meta:
		unique_together = (("wallet", "account"),)


class EventType(models.TextChoices):
	DEPLOYED = "deployed", "Deployed"
	MINTED = "minted", "Minted"
	TRANSFERRED = "transferred", "Transferred"
	DEPOSITED = "deposited", "Deposited"
	WITHDRAWN = "withdrawn", "Withdrawn"


class LedgerEvent(models.Model):
	"""
	Observable record of each committed operation. Exactly one of ledger / wallet is set.
	"""
	id = models.BigAutoField(primary_key=True)
	ledger = models.ForeignKey(TokenLedger, null=True, blank=True, on_delete=models.CASCADE, related_name="events")
	wallet = models.ForeignKey(Wallet, null=True, blank=True, on_delete=models.CASCADE, related_name="events")
	event_type = models.CharField(max_length=16, choices=EventType.choices)
	sender = account_field(blank=True, default="")
	recipient = account_field(blank=True, default="")
	amount = BalanceField()
	created_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ["id"]


class ReconciliationRun(models.Model):
	"""
	Snapshot of total supply vs the sum of stored balances for one ledger.
	"""
	id = models.BigAutoField(primary_key=True)
	ledger = models.ForeignKey(TokenLedger, on_delete=models.CASCADE, related_name="reconciliations")
	total_supply = BalanceField()
	balances_sum = models.CharField(max_length=BALANCE_DIGITS + 20)  # may exceed MAX_BALANCE if storage is corrupt
	holders = models.IntegerField(default=0)
	ok = models.BooleanField(default=True)
	created_at = models.DateTimeField(auto_now_add=True)
