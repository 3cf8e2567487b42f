"""In-memory balance engine.

Ledger and Vault own their balance mapping outright. Every mutating operation
follows the same shape:

1. read the current values it needs (absent accounts read as 0)
2. compute the new values and check them (funds, MAX_BALANCE)
3. commit all staged values in one step

A failure in step 2 raises before step 3, so a rejected call leaves the mapping
and the supply exactly as they were. Zero balances are dropped on commit so the
mapping only ever holds accounts with something in them.

The engine is storage agnostic; core.services restores it from the database,
runs one operation, and writes the touched accounts back.
"""

import threading
from dataclasses import dataclass
from typing import Callable, Dict, Hashable, Mapping, Optional

from .constants import MAX_BALANCE
from .errors import InsufficientFunds, Overflow

MINTED = "minted"
TRANSFERRED = "transferred"
DEPOSITED = "deposited"
WITHDRAWN = "withdrawn"


@dataclass(frozen=True)
class Event:
	"""
	Domain event handed to the host sink after a successful commit
	"""
	kind: str
	amount: int
	sender: Optional[Hashable] = None
	recipient: Optional[Hashable] = None


EventSink = Callable[[Event], None]


def _discard(event: Event) -> None:
	pass


def _check_amount(amount) -> int:
	if isinstance(amount, bool) or not isinstance(amount, int):
		raise TypeError(f"amount must be an int, got {type(amount).__name__}")
	if amount < 0:
		raise ValueError("amount must be non-negative")
	return amount


class BalanceBook:
	"""
	Shared update primitive for Ledger and Vault: lazy-zero reads, checked arithmetic, staged commit
	"""

	def __init__(self, *, max_balance: int = MAX_BALANCE, on_event: EventSink | None = None):
		self.max_balance = max_balance
		self._balances: Dict[Hashable, int] = {}
		self._on_event = on_event or _discard
		self._lock = threading.RLock()

	def balance_of(self, account: Hashable) -> int:
		return self._balances.get(account, 0)

	def snapshot(self) -> Dict[Hashable, int]:
		"""Copy of every non-zero balance."""
		with self._lock:
			return dict(self._balances)

	def _credited(self, current: int, amount: int) -> int:
		new = current + amount
		if new > self.max_balance:
			raise Overflow(f"{current} + {amount} exceeds {self.max_balance}")
		return new

	def _debited(self, current: int, amount: int) -> int:
		if current < amount:
			raise InsufficientFunds(f"balance {current} is less than {amount}")
		return current - amount

	def _commit(self, staged: Mapping[Hashable, int]) -> None:
		# Staged values are already validated; nothing below may raise.
		self._balances.update(staged)
		for account, value in staged.items():
			if value == 0:
				del self._balances[account]

	def _load(self, balances: Mapping[Hashable, int]) -> None:
		staged = {}
		for account, value in balances.items():
			value = _check_amount(value)
			if value > self.max_balance:
				raise Overflow(f"stored balance {value} exceeds {self.max_balance}")
			staged[account] = value
		self._commit(staged)


class Ledger(BalanceBook):
	"""
	Fungible-unit ledger with a conserved total supply.

	Invariant after every successful call: total_supply() == sum of all balances.
	"""

	def __init__(self, initial_supply: int = 0, initial_holder: Hashable | None = None, **kwargs):
		super().__init__(**kwargs)
		initial_supply = _check_amount(initial_supply)
		if initial_supply > self.max_balance:
			raise Overflow(f"initial supply {initial_supply} exceeds {self.max_balance}")
		if initial_supply and initial_holder is None:
			raise ValueError("initial_supply needs an initial_holder to credit")
		self._total_supply = 0
		if initial_supply:
			self._balances[initial_holder] = initial_supply
			self._total_supply = initial_supply

	@classmethod
	def restore(cls, total_supply: int, balances: Mapping[Hashable, int], **kwargs) -> "Ledger":
		"""
		Rebuild a ledger from stored state. `balances` may be a subset of all holders (the accounts an
		operation touches); conservation is then preserved as a delta rather than checked globally.
		"""
		ledger = cls(**kwargs)
		total_supply = _check_amount(total_supply)
		if total_supply > ledger.max_balance:
			raise Overflow(f"stored supply {total_supply} exceeds {ledger.max_balance}")
		ledger._load(balances)
		ledger._total_supply = total_supply
		return ledger

	def total_supply(self) -> int:
		return self._total_supply

	def mint(self, recipient: Hashable, amount: int) -> None:
		"""
		Credit `recipient` and grow the supply by `amount`; both or neither.
		"""
		amount = _check_amount(amount)
		with self._lock:
			new_supply = self._credited(self._total_supply, amount)
			new_balance = self._credited(self.balance_of(recipient), amount)
			self._commit({recipient: new_balance})
			self._total_supply = new_supply
		self._on_event(Event(MINTED, amount, recipient=recipient))

	def transfer(self, sender: Hashable, recipient: Hashable, amount: int) -> None:
		"""
		Move `amount` from `sender` to `recipient`. Self-transfer is a funded no-op.
		"""
		amount = _check_amount(amount)
		with self._lock:
			sender_balance = self._debited(self.balance_of(sender), amount)
			if sender != recipient:
				recipient_balance = self._credited(self.balance_of(recipient), amount)
				self._commit({sender: sender_balance, recipient: recipient_balance})
		self._on_event(Event(TRANSFERRED, amount, sender=sender, recipient=recipient))


class Vault(BalanceBook):
	"""
	Per-caller holding area. The account acted on is always the caller; there is no supply counter.
	"""

	@classmethod
	def restore(cls, balances: Mapping[Hashable, int], **kwargs) -> "Vault":
		vault = cls(**kwargs)
		vault._load(balances)
		return vault

	def deposit(self, caller: Hashable, amount: int) -> None:
		amount = _check_amount(amount)
		with self._lock:
			self._commit({caller: self._credited(self.balance_of(caller), amount)})
		self._on_event(Event(DEPOSITED, amount, recipient=caller))

	def withdraw(self, caller: Hashable, amount: int) -> None:
		amount = _check_amount(amount)
		with self._lock:
			self._commit({caller: self._debited(self.balance_of(caller), amount)})
		self._on_event(Event(WITHDRAWN, amount, sender=caller))


def construct_ledger(initial_supply: int = 0, initial_holder: Hashable | None = None, **kwargs) -> Ledger:
	return Ledger(initial_supply, initial_holder, **kwargs)


def construct_vault(**kwargs) -> Vault:
	return Vault(**kwargs)
