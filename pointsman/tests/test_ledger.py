"""
Ledger tests: balances, credits, debits, history and audit.
"""

from decimal import Decimal

import pytest

from pointsman.exceptions import AccountNotFound, InsufficientPoints, ValidationError
from pointsman.models import EntryType, LedgerEntry, LoyaltyAccount
from pointsman.services import ledger
from pointsman.services.ledger import EntryMeta
from pointsman.signals import points_credited, points_debited

pytestmark = pytest.mark.django_db


def earned(description="Order", **kwargs):
    return EntryMeta(entry_type=EntryType.EARNED, description=description, **kwargs)


def redeemed(description="Redeemed: test"):
    return EntryMeta(entry_type=EntryType.REDEEMED, description=description)


def assert_invariants(user_id):
    account = LoyaltyAccount.objects.get(user_id=user_id)
    assert account.points_balance == account.total_earned - account.total_redeemed
    assert sum(e.points_delta for e in account.entries.all()) == account.points_balance


# ═══════════════════════════════════════════════════════════════════
# EntryMeta
# ═══════════════════════════════════════════════════════════════════


class TestEntryMeta:
    """Entry metadata is validated before any write."""

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError) as exc:
            EntryMeta(entry_type="gift", description="x")
        assert exc.value.code == "INVALID_ENTRY"

    def test_blank_description_rejected(self):
        with pytest.raises(ValidationError):
            EntryMeta(entry_type=EntryType.BONUS, description="   ")

    def test_normalizes_fields(self):
        meta = EntryMeta(
            entry_type=EntryType.EARNED,
            description="  Order 7 ",
            order_id=7,
            order_amount="12.50",
        )
        assert meta.entry_type == "earned"
        assert meta.description == "Order 7"
        assert meta.order_id == "7"
        assert meta.order_amount == Decimal("12.50")


# ═══════════════════════════════════════════════════════════════════
# Reads
# ═══════════════════════════════════════════════════════════════════


class TestGetBalance:
    def test_unknown_user_is_zero_and_not_created(self):
        account = ledger.get_balance("NOBODY")
        assert account.pk is None
        assert account.points_balance == 0
        assert account.total_earned == 0
        assert not LoyaltyAccount.objects.filter(user_id="NOBODY").exists()

    def test_int_user_id_stored_as_string(self, fund):
        fund(42, 10)
        assert ledger.get_balance("42").points_balance == 10
        assert ledger.get_balance(42).points_balance == 10

    def test_invalid_user_id(self):
        with pytest.raises(ValidationError):
            ledger.get_balance("")


# ═══════════════════════════════════════════════════════════════════
# Credit
# ═══════════════════════════════════════════════════════════════════


class TestCredit:
    """credit() creates the account lazily and appends a positive entry."""

    def test_first_credit_creates_account(self):
        account = ledger.credit("U1", 30, earned(order_id="O1", order_amount="30.00"))

        assert account.pk is not None
        assert account.points_balance == 30
        assert account.total_earned == 30
        assert account.total_redeemed == 0
        assert account.last_earned_at is not None

        entry = account.entries.get()
        assert entry.points_delta == 30
        assert entry.balance_after == 30
        assert entry.order_id == "O1"
        assert entry.order_amount == Decimal("30.00")
        assert entry.user_id == "U1"

    def test_credits_accumulate(self):
        ledger.credit("U1", 30, earned())
        account = ledger.credit("U1", 20, EntryMeta(entry_type=EntryType.BONUS, description="Bonus"))

        assert account.points_balance == 50
        assert account.total_earned == 50
        assert LoyaltyAccount.objects.count() == 1
        assert_invariants("U1")

    @pytest.mark.parametrize("amount", [0, -5, 1.5, "10", True])
    def test_invalid_amount(self, amount):
        with pytest.raises(ValidationError) as exc:
            ledger.credit("U1", amount, earned())
        assert exc.value.code == "INVALID_POINTS"
        assert not LoyaltyAccount.objects.exists()

    def test_debit_type_cannot_credit(self):
        with pytest.raises(ValidationError) as exc:
            ledger.credit("U1", 10, redeemed())
        assert exc.value.code == "INVALID_ENTRY"
        assert not LedgerEntry.objects.exists()

    def test_signal_sent_after_commit(self, django_capture_on_commit_callbacks):
        received = []

        def handler(sender, account, entry, **kwargs):
            received.append((account.user_id, entry.points_delta))

        points_credited.connect(handler)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                ledger.credit("U1", 15, earned())
        finally:
            points_credited.disconnect(handler)

        assert received == [("U1", 15)]


# ═══════════════════════════════════════════════════════════════════
# Debit
# ═══════════════════════════════════════════════════════════════════


class TestDebit:
    """debit() checks the balance and never leaves partial state."""

    def test_debit_reduces_balance(self, fund):
        fund("U1", 100)
        account = ledger.debit("U1", 40, redeemed())

        assert account.points_balance == 60
        assert account.total_earned == 100
        assert account.total_redeemed == 40

        entry = account.entries.filter(entry_type=EntryType.REDEEMED).get()
        assert entry.points_delta == -40
        assert entry.balance_after == 60
        assert_invariants("U1")

    def test_exact_balance(self, fund):
        fund("U1", 40)
        assert ledger.debit("U1", 40, redeemed()).points_balance == 0

    def test_insufficient_writes_nothing(self, fund):
        fund("U1", 30)

        with pytest.raises(InsufficientPoints) as exc:
            ledger.debit("U1", 31, redeemed())

        assert exc.value.data == {"available": 30, "requested": 31}
        account = LoyaltyAccount.objects.get(user_id="U1")
        assert account.points_balance == 30
        assert account.total_redeemed == 0
        assert account.entries.count() == 1

    def test_missing_account_counts_as_zero(self):
        with pytest.raises(InsufficientPoints) as exc:
            ledger.debit("GHOST", 1, redeemed())
        assert exc.value.data["available"] == 0
        assert not LoyaltyAccount.objects.exists()

    def test_credit_type_cannot_debit(self, fund):
        fund("U1", 50)
        with pytest.raises(ValidationError):
            ledger.debit("U1", 10, earned())
        assert ledger.get_balance("U1").points_balance == 50

    def test_signal_sent_after_commit(self, fund, django_capture_on_commit_callbacks):
        fund("U1", 50)
        received = []

        def handler(sender, account, entry, **kwargs):
            received.append(entry.points_delta)

        points_debited.connect(handler)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                ledger.debit("U1", 20, redeemed())
        finally:
            points_debited.disconnect(handler)

        assert received == [-20]


# ═══════════════════════════════════════════════════════════════════
# Adjustments
# ═══════════════════════════════════════════════════════════════════


class TestAdjust:
    def test_positive_adjustment(self):
        account = ledger.adjust("U1", 25, "Apology", created_by="staff:ana")
        entry = account.entries.get()
        assert account.points_balance == 25
        assert entry.entry_type == EntryType.ADJUSTMENT
        assert entry.created_by == "staff:ana"

    def test_negative_adjustment(self, fund):
        fund("U1", 50)
        account = ledger.adjust("U1", -20, "Correction")
        assert account.points_balance == 30
        assert account.total_redeemed == 20
        assert_invariants("U1")

    def test_negative_adjustment_cannot_overdraw(self, fund):
        fund("U1", 10)
        with pytest.raises(InsufficientPoints):
            ledger.adjust("U1", -11, "Too much")

    def test_zero_rejected(self):
        with pytest.raises(ValidationError):
            ledger.adjust("U1", 0, "Nothing")


# ═══════════════════════════════════════════════════════════════════
# History
# ═══════════════════════════════════════════════════════════════════


class TestListTransactions:
    def test_newest_first(self, fund):
        fund("U1", 10)
        ledger.credit("U1", 20, earned("Second"))
        ledger.debit("U1", 5, redeemed("Third"))

        entries = ledger.list_transactions("U1")
        assert [e.points_delta for e in entries] == [-5, 20, 10]

    def test_limit(self, fund):
        for _ in range(5):
            fund("U1", 1)
        assert len(ledger.list_transactions("U1", limit=3)) == 3

    def test_other_users_excluded(self, fund):
        fund("U1", 10)
        fund("U2", 10)
        assert len(ledger.list_transactions("U1")) == 1

    def test_unknown_user_empty(self):
        assert ledger.list_transactions("NOBODY") == []

    @pytest.mark.parametrize("limit", [0, -1, 501, "10"])
    def test_limit_bounds(self, limit):
        with pytest.raises(ValidationError):
            ledger.list_transactions("U1", limit=limit)


# ═══════════════════════════════════════════════════════════════════
# Immutability and audit
# ═══════════════════════════════════════════════════════════════════


class TestLedgerImmutable:
    def test_entry_cannot_be_saved_again(self, fund):
        entry = fund("U1", 10).entries.get()
        entry.points_delta = 1000
        with pytest.raises(ValidationError) as exc:
            entry.save()
        assert exc.value.code == "LEDGER_IMMUTABLE"

    def test_entry_cannot_be_deleted(self, fund):
        entry = fund("U1", 10).entries.get()
        with pytest.raises(ValidationError):
            entry.delete()
        assert LedgerEntry.objects.filter(pk=entry.pk).exists()


class TestAudit:
    def test_consistent_account(self, fund):
        fund("U1", 100)
        ledger.debit("U1", 30, redeemed())

        audit = ledger.audit("U1")
        assert audit.ledger_sum == 70
        assert audit.entry_count == 2
        assert audit.is_consistent

    def test_detects_drift(self, fund):
        fund("U1", 100)
        # Bypass the service to simulate drift; keep the totals constraint satisfied
        LoyaltyAccount.objects.filter(user_id="U1").update(points_balance=90, total_earned=90)

        audit = ledger.audit("U1")
        assert audit.totals_consistent
        assert not audit.ledger_consistent
        assert not audit.is_consistent

    def test_unknown_account(self):
        with pytest.raises(AccountNotFound):
            ledger.audit("NOBODY")

    def test_audit_all(self, fund):
        fund("U1", 10)
        fund("U2", 20)
        audits = ledger.audit_all()
        assert [a.user_id for a in audits] == ["U1", "U2"]
        assert all(a.is_consistent for a in audits)
