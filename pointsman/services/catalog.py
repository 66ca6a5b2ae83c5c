"""Reward catalog service - reads rewards and counts redemptions.

Catalog administration (create/edit/deactivate) lives outside this app.
"""

import logging
from dataclasses import dataclass, field

from django.db.models import F, Q
from django.utils import timezone

from pointsman.exceptions import RewardInactiveOrExhausted
from pointsman.models import RewardDefinition
from pointsman.utils import normalize_reward_id

logger = logging.getLogger(__name__)


@dataclass
class RewardListing:
    """Rewards a user can redeem now, and the ones still out of reach."""

    current_points: int
    available: list[RewardDefinition] = field(default_factory=list)
    upcoming: list[RewardDefinition] = field(default_factory=list)


def get(reward_id) -> RewardDefinition | None:
    """Get reward by id, active or not."""
    return RewardDefinition.objects.filter(pk=normalize_reward_id(reward_id)).first()


def lock(reward_id) -> RewardDefinition | None:
    """Lock and re-read the reward row. Must run inside a transaction."""
    return (
        RewardDefinition.objects.select_for_update()
        .filter(pk=normalize_reward_id(reward_id))
        .first()
    )


def record_redemption(reward: RewardDefinition) -> RewardDefinition:
    """
    Count one redemption against the reward.

    The increment only applies while the reward is active and under its
    cap, so the counter can never pass max_redemptions even without a
    row lock.

    Raises:
        RewardInactiveOrExhausted: If no row qualified for the increment
    """
    updated = (
        RewardDefinition.objects.filter(pk=reward.pk, is_active=True)
        .filter(Q(max_redemptions__isnull=True) | Q(current_redemptions__lt=F("max_redemptions")))
        .update(current_redemptions=F("current_redemptions") + 1, updated_at=timezone.now())
    )
    if not updated:
        raise RewardInactiveOrExhausted(
            "REWARD_EXHAUSTED",
            reward_id=reward.pk,
            max_redemptions=reward.max_redemptions,
        )

    reward.refresh_from_db(fields=["current_redemptions", "updated_at"])
    return reward


def available_rewards():
    """Active rewards with redemptions left, cheapest first."""
    return (
        RewardDefinition.objects.filter(is_active=True)
        .filter(Q(max_redemptions__isnull=True) | Q(current_redemptions__lt=F("max_redemptions")))
        .order_by("points_required", "id")
    )


def list_for_user(user_id) -> RewardListing:
    """Split the open catalog by what the user can afford today."""
    from pointsman.services import ledger

    balance = ledger.get_balance(user_id).points_balance
    listing = RewardListing(current_points=balance)
    for reward in available_rewards():
        if reward.points_required <= balance:
            listing.available.append(reward)
        else:
            listing.upcoming.append(reward)
    return listing
