"""
Test suite for the in-memory ledger engine

Covers conservation, non-negativity, atomic failure and overflow rejection for
Ledger, and the deposit/withdraw rules of Vault.
"""

import threading

import pytest

from core.constants import MAX_BALANCE, BALANCE_DIGITS, parse_amount
from core.errors import InsufficientFunds, Overflow, LedgerError
from core.ledger import (
    Ledger, Vault, Event, construct_ledger, construct_vault,
    MINTED, TRANSFERRED, DEPOSITED, WITHDRAWN,
)


def assert_conserved(ledger):
    assert ledger.total_supply() == sum(ledger.snapshot().values())


class TestLedgerConstruction:
    """Test ledger construction and the initial holder decision"""

    def test_initial_supply_credited_to_holder(self):
        ledger = construct_ledger(100, "deployer")

        assert ledger.total_supply() == 100
        assert ledger.balance_of("deployer") == 100
        assert_conserved(ledger)

    def test_initial_supply_without_holder_rejected(self):
        with pytest.raises(ValueError, match="initial_holder"):
            construct_ledger(100)

    def test_empty_ledger(self):
        ledger = construct_ledger()

        assert ledger.total_supply() == 0
        assert ledger.snapshot() == {}

    def test_initial_supply_above_max_rejected(self):
        with pytest.raises(Overflow):
            Ledger(11, "deployer", max_balance=10)

    def test_absent_account_reads_zero(self):
        ledger = construct_ledger(5, "deployer")

        assert ledger.balance_of("nobody") == 0

    def test_restore_rejects_oversized_balance(self):
        with pytest.raises(Overflow):
            Ledger.restore(5, {"alice": 11}, max_balance=10)


class TestMint:
    """Test mint against supply and recipient limits"""

    def test_scenario_mint_then_transfer(self):
        ledger = construct_ledger(100, "deployer")

        ledger.mint("alice", 50)
        assert ledger.total_supply() == 150
        assert ledger.balance_of("alice") == 50

        ledger.transfer("alice", "bob", 30)
        assert ledger.balance_of("alice") == 20
        assert ledger.balance_of("bob") == 30

        with pytest.raises(InsufficientFunds):
            ledger.transfer("alice", "bob", 1000)
        assert ledger.balance_of("alice") == 20
        assert ledger.balance_of("bob") == 30
        assert_conserved(ledger)

    def test_mint_at_max_supply_overflows(self):
        ledger = construct_ledger(MAX_BALANCE, "deployer")

        with pytest.raises(Overflow) as exc:
            ledger.mint("alice", 1)

        assert exc.value.code == "overflow"
        assert ledger.total_supply() == MAX_BALANCE
        assert ledger.balance_of("alice") == 0
        assert ledger.snapshot() == {"deployer": MAX_BALANCE}

    def test_mint_overflow_leaves_recipient_untouched(self):
        ledger = Ledger.restore(8, {"alice": 8}, max_balance=10)

        with pytest.raises(Overflow):
            ledger.mint("alice", 3)

        assert ledger.balance_of("alice") == 8
        assert ledger.total_supply() == 8

    def test_recipient_overflow_on_partial_restore(self):
        # Only the recipient's row is restored; its own balance is the limit hit.
        ledger = Ledger.restore(5, {"alice": 10}, max_balance=20)

        with pytest.raises(Overflow):
            ledger.mint("alice", 11)
        assert ledger.total_supply() == 5
        assert ledger.balance_of("alice") == 10

    def test_mint_zero_is_noop(self):
        ledger = construct_ledger(10, "deployer")

        ledger.mint("alice", 0)

        assert ledger.total_supply() == 10
        assert "alice" not in ledger.snapshot()

    @pytest.mark.parametrize("amount", [-1, 1.5, "10", True, None])
    def test_mint_rejects_non_balance_amounts(self, amount):
        ledger = construct_ledger(10, "deployer")

        with pytest.raises((TypeError, ValueError)):
            ledger.mint("alice", amount)
        assert ledger.total_supply() == 10


class TestTransfer:
    """Test transfer atomicity and edge cases"""

    def test_transfer_moves_units(self):
        ledger = construct_ledger(100, "alice")

        ledger.transfer("alice", "bob", 40)

        assert ledger.balance_of("alice") == 60
        assert ledger.balance_of("bob") == 40
        assert ledger.total_supply() == 100

    def test_insufficient_funds_from_absent_sender(self):
        ledger = construct_ledger(100, "alice")

        with pytest.raises(InsufficientFunds) as exc:
            ledger.transfer("carol", "bob", 1)

        assert exc.value.code == "insufficient_funds"
        assert ledger.snapshot() == {"alice": 100}

    def test_recipient_overflow_does_not_debit_sender(self):
        ledger = Ledger.restore(8, {"alice": 5, "bob": 5}, max_balance=8)

        with pytest.raises(Overflow):
            ledger.transfer("alice", "bob", 4)

        assert ledger.balance_of("alice") == 5
        assert ledger.balance_of("bob") == 5

    def test_self_transfer_is_noop(self):
        ledger = construct_ledger(50, "alice")

        ledger.transfer("alice", "alice", 50)

        assert ledger.balance_of("alice") == 50
        assert_conserved(ledger)

    def test_self_transfer_still_needs_funds(self):
        ledger = construct_ledger(50, "alice")

        with pytest.raises(InsufficientFunds):
            ledger.transfer("alice", "alice", 51)
        assert ledger.balance_of("alice") == 50

    def test_full_transfer_drops_zero_entry(self):
        ledger = construct_ledger(10, "alice")

        ledger.transfer("alice", "bob", 10)

        assert ledger.snapshot() == {"bob": 10}
        assert ledger.balance_of("alice") == 0

    def test_conservation_over_sequence(self):
        ledger = construct_ledger(1_000, "deployer")
        steps = [
            ("mint", "alice", 300),
            ("transfer", "deployer", "bob", 250),
            ("transfer", "alice", "carol", 120),
            ("mint", "carol", 5),
            ("transfer", "bob", "alice", 250),
            ("transfer", "carol", "carol", 100),
        ]
        for step in steps:
            getattr(ledger, step[0])(*step[1:])
            assert_conserved(ledger)
            assert all(v >= 0 for v in ledger.snapshot().values())

        assert ledger.total_supply() == 1_305

    def test_concurrent_transfers_conserve(self):
        ledger = construct_ledger(10_000, "alice")
        ledger.transfer("alice", "bob", 5_000)

        def shuffle(sender, recipient):
            for _ in range(500):
                try:
                    ledger.transfer(sender, recipient, 3)
                except InsufficientFunds:
                    pass

        threads = [
            threading.Thread(target=shuffle, args=("alice", "bob")),
            threading.Thread(target=shuffle, args=("bob", "alice")),
            threading.Thread(target=shuffle, args=("alice", "carol")),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert_conserved(ledger)
        assert ledger.total_supply() == 10_000


class TestEvents:
    """Test events handed to the host sink"""

    def test_events_emitted_only_on_success(self):
        events = []
        ledger = construct_ledger(10, "deployer", on_event=events.append)

        ledger.mint("alice", 5)
        ledger.transfer("alice", "bob", 2)
        with pytest.raises(InsufficientFunds):
            ledger.transfer("alice", "bob", 100)

        assert events == [
            Event(MINTED, 5, recipient="alice"),
            Event(TRANSFERRED, 2, sender="alice", recipient="bob"),
        ]

    def test_vault_events(self):
        events = []
        vault = construct_vault(on_event=events.append)

        vault.deposit("carol", 7)
        vault.withdraw("carol", 3)

        assert [e.kind for e in events] == [DEPOSITED, WITHDRAWN]
        assert events[1].sender == "carol"


class TestVault:
    """Test deposit/withdraw for the implicit caller account"""

    def test_vault_scenario(self):
        vault = construct_vault()

        with pytest.raises(InsufficientFunds):
            vault.withdraw("carol", 10)

        vault.deposit("carol", 10)
        assert vault.balance_of("carol") == 10

        vault.withdraw("carol", 10)
        assert vault.balance_of("carol") == 0

    def test_deposit_overflow_leaves_balance(self):
        vault = Vault.restore({"carol": 9}, max_balance=10)

        with pytest.raises(Overflow):
            vault.deposit("carol", 2)
        assert vault.balance_of("carol") == 9

    def test_deposit_at_max(self):
        vault = construct_vault()
        vault.deposit("carol", MAX_BALANCE)

        with pytest.raises(Overflow):
            vault.deposit("carol", 1)
        assert vault.balance_of("carol") == MAX_BALANCE

    def test_withdraw_only_touches_caller(self):
        vault = Vault.restore({"carol": 5, "dave": 7})

        vault.withdraw("carol", 2)

        assert vault.snapshot() == {"carol": 3, "dave": 7}

    def test_over_withdraw_rejected(self):
        vault = Vault.restore({"carol": 5})

        with pytest.raises(LedgerError):
            vault.withdraw("carol", 6)
        assert vault.balance_of("carol") == 5


class TestAmountParsing:
    """Test request amount coercion and balance width constants"""

    @pytest.mark.parametrize("raw,expected", [("0", 0), (" 42 ", 42), (7, 7)])
    def test_accepts_ascii_integers(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize("raw", ["١٢", "１２", "²", "-1", "1e3"])
    def test_rejects_non_ascii_and_non_digit_strings(self, raw):
        with pytest.raises(ValueError):
            parse_amount(raw)

    def test_max_balance_follows_configured_width(self, settings):
        assert MAX_BALANCE == 2 ** settings.BALANCE_BITS - 1
        assert BALANCE_DIGITS == len(str(MAX_BALANCE))
