"""
Earning tests: order awards, first-order bonus and signup bonus.
"""

from decimal import Decimal

import pytest

from pointsman.exceptions import ValidationError
from pointsman.models import EntryType, LedgerEntry, LoyaltyAccount, LoyaltyProgram
from pointsman.services import earning

pytestmark = pytest.mark.django_db


class TestOnOrderCompleted:
    """Base points plus the first-order bonus, once per order."""

    def test_first_order_gets_bonus(self):
        award = earning.on_order_completed("U1", "ORD-1", Decimal("60.00"))

        assert award.points_earned == 90
        assert award.bonus_points == 50
        assert award.total_points == 140
        assert not award.already_awarded
        assert award.account.points_balance == 140

        types = sorted(LedgerEntry.objects.values_list("entry_type", flat=True))
        assert types == ["earned", "first_order"]
        earned = LedgerEntry.objects.get(entry_type=EntryType.EARNED)
        assert earned.order_id == "ORD-1"
        assert earned.order_amount == Decimal("60.00")

    def test_second_order_no_bonus(self):
        earning.on_order_completed("U1", "ORD-1", "10.00")
        award = earning.on_order_completed("U1", "ORD-2", "10.00")

        assert award.points_earned == 10
        assert award.bonus_points == 0
        assert LoyaltyAccount.objects.get(user_id="U1").points_balance == 70

    def test_idempotent_per_order(self):
        earning.on_order_completed("U1", "ORD-1", "100.00")
        repeat = earning.on_order_completed("U1", "ORD-1", "100.00")

        assert repeat.already_awarded
        assert repeat.total_points == 0
        account = LoyaltyAccount.objects.get(user_id="U1")
        assert account.points_balance == 200
        assert account.entries.count() == 2

    def test_order_id_shared_across_users_awarded_once(self):
        earning.on_order_completed("U1", "ORD-1", "10.00")
        assert earning.on_order_completed("U2", "ORD-1", "10.00").already_awarded

    def test_small_first_order_still_gets_bonus(self):
        award = earning.on_order_completed("U1", "ORD-1", "0.50")
        assert award.points_earned == 0
        assert award.bonus_points == 50
        assert LedgerEntry.objects.get().entry_type == EntryType.FIRST_ORDER

    def test_signup_does_not_count_as_order(self):
        earning.on_signup("U1")
        award = earning.on_order_completed("U1", "ORD-1", "10.00")
        assert award.bonus_points == 50

    def test_uses_active_program(self, program):
        award = earning.on_order_completed("U1", "ORD-1", "100.00")
        assert award.points_earned == 400
        assert award.bonus_points == 10

    def test_nothing_to_award(self):
        LoyaltyProgram.objects.create(points_for_first_order=0)
        award = earning.on_order_completed("U1", "ORD-1", "0.99")
        assert award.total_points == 0
        assert not LoyaltyAccount.objects.exists()

    @pytest.mark.parametrize("order_id, amount", [("", "10"), (None, "10"), ("ORD-1", "-10"), ("ORD-1", "x")])
    def test_invalid_input(self, order_id, amount):
        with pytest.raises(ValidationError):
            earning.on_order_completed("U1", order_id, amount)
        assert not LedgerEntry.objects.exists()


class TestOnSignup:
    def test_awards_signup_bonus(self):
        award = earning.on_signup("U1")

        assert award.bonus_points == 100
        assert award.account.points_balance == 100
        entry = LedgerEntry.objects.get()
        assert entry.entry_type == EntryType.SIGNUP
        assert entry.order_id == ""

    def test_only_once(self):
        earning.on_signup("U1")
        repeat = earning.on_signup("U1")

        assert repeat.already_awarded
        assert LoyaltyAccount.objects.get(user_id="U1").points_balance == 100

    def test_disabled_bonus(self):
        LoyaltyProgram.objects.create(points_for_signup=0)
        award = earning.on_signup("U1")
        assert award.total_points == 0
        assert not LoyaltyAccount.objects.exists()

    def test_uses_active_program(self, program):
        assert earning.on_signup("U1").bonus_points == 25
