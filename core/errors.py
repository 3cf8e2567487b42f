"""Domain failures raised by the ledger engine.

Both are ValidationErrors so the API layer reports them the same way it reports
any other rejected request (400 with the error code).
"""

from django.core.exceptions import ValidationError


class LedgerError(ValidationError):
	"""
	Base class for expected, recoverable ledger failures. Raised before any state is touched
	"""
	code = "ledger_error"

	def __init__(self, message: str | None = None):
		super().__init__(message or self.code, code=self.code)


class InsufficientFunds(LedgerError):
	"""Requested debit exceeds the account's current balance."""
	code = "insufficient_funds"


class Overflow(LedgerError):
	"""A credit would push a balance or the total supply past MAX_BALANCE."""
	code = "overflow"
