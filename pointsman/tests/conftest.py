"""Pytest fixtures for Pointsman tests."""

from decimal import Decimal

import pytest

from pointsman.models import DiscountType, EntryType, LoyaltyProgram, RewardDefinition
from pointsman.services import ledger
from pointsman.services.ledger import EntryMeta


@pytest.fixture
def fund(db):
    """Give a user points through an adjustment entry."""

    def _fund(user_id, points):
        return ledger.credit(
            user_id,
            points,
            EntryMeta(entry_type=EntryType.ADJUSTMENT, description="Test funding"),
        )

    return _fund


@pytest.fixture
def reward(db):
    """$10 off for 200 points, unlimited."""
    return RewardDefinition.objects.create(
        name="$10 Off",
        points_required=200,
        reward_type=DiscountType.FIXED,
        reward_value=Decimal("10.00"),
    )


@pytest.fixture
def capped_reward(db):
    """Free delivery for 100 points, two redemptions total."""
    return RewardDefinition.objects.create(
        name="Free Delivery",
        points_required=100,
        reward_type=DiscountType.DELIVERY_FEE,
        reward_value=Decimal("5.00"),
        max_redemptions=2,
    )


@pytest.fixture
def percentage_reward(db):
    """15% off orders of $20 or more, 300 points."""
    return RewardDefinition.objects.create(
        name="15% Off",
        points_required=300,
        reward_type=DiscountType.PERCENTAGE,
        reward_value=Decimal("15.00"),
        min_order_amount=Decimal("20.00"),
    )


@pytest.fixture
def inactive_reward(db):
    return RewardDefinition.objects.create(
        name="Retired",
        points_required=50,
        reward_value=Decimal("2.00"),
        is_active=False,
    )


@pytest.fixture
def program(db):
    """Active program: 2 points per dollar, bonus x2 from $100."""
    program = LoyaltyProgram.objects.create(
        name="Double Points",
        points_per_dollar=Decimal("2.00"),
        bonus_points_threshold=Decimal("100.00"),
        bonus_points_multiplier=Decimal("2.00"),
        points_for_signup=25,
        points_for_first_order=10,
    )
    program.activate()
    return program
