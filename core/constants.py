"""Balance width and amount helpers shared across the service.


- BALANCE_BITS controls the unsigned width of every stored balance.
- parse_amount coerces request input into an in-range integer amount.
- units_to_display formats base units using TOKEN_DECIMALS.

BALANCE_BITS and MAX_BALANCE are read once when this module is imported; a
changed BALANCE_BITS only takes effect after a restart (overriding the setting
in a running process or a test does not move MAX_BALANCE).
"""

from django.conf import settings
from decimal import Decimal, ROUND_DOWN, localcontext

BALANCE_BITS = getattr(settings, "BALANCE_BITS", 128)
MAX_BALANCE = 2 ** BALANCE_BITS - 1
BALANCE_DIGITS = len(str(MAX_BALANCE))

TOKEN_DECIMALS = getattr(settings, "TOKEN_DECIMALS", 18)
TEN_POW = 10 ** TOKEN_DECIMALS

MAX_ACCOUNT_LENGTH = 64


def check_amount(amount: int) -> int:
    """
    Reject anything that is not a representable Balance: bools, non-integers, negatives and values above MAX_BALANCE
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TypeError(f"amount must be an int, got {type(amount).__name__}")
    if amount < 0 or amount > MAX_BALANCE:
        raise ValueError(f"amount {amount} outside 0..{MAX_BALANCE}")
    return amount


def parse_amount(raw: str | int) -> int:
    """
    Accept a JSON integer or a decimal digit string (e.g., "1000") and return a checked amount
    """
    if isinstance(raw, str):
        raw = raw.strip()
        if not (raw.isascii() and raw.isdigit()):
            raise ValueError(f"amount {raw!r} is not a non-negative integer")
        raw = int(raw)
    return check_amount(raw)


def check_account(account) -> str:
    """
    Accounts are opaque non-empty strings of bounded length
    """
    if not isinstance(account, str) or not account.strip():
        raise ValueError("account must be a non-empty string")
    if len(account) > MAX_ACCOUNT_LENGTH:
        raise ValueError(f"account longer than {MAX_ACCOUNT_LENGTH} characters")
    return account


def units_to_display(amount_units: int) -> Decimal:
    """
    Convert integer base units to a human amount with TOKEN_DECIMALS places.
    """
    with localcontext() as ctx:
        # 128-bit values plus the fractional digits exceed the default 28-digit precision
        ctx.prec = 100
        return (Decimal(amount_units) / Decimal(TEN_POW)).quantize(Decimal(1).scaleb(-TOKEN_DECIMALS), rounding=ROUND_DOWN)
