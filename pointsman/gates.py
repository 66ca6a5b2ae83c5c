"""
Pointsman Gates - Validation rules.

R1: RewardAvailable - Reward exists and is active
R2: RedemptionCap - Capped reward still has redemptions left
R3: SufficientBalance - Account balance covers the cost
V1: VoucherUsable - Voucher is active and not past expiry
V2: MinimumOrder - Order total reaches the voucher minimum

Redemption gates must be evaluated on rows read under lock, in the
order above. Each gate raises the matching PointsmanError; the
check_* variants return a bool instead.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from django.utils import timezone

from pointsman.exceptions import (
    InsufficientPoints,
    RewardInactiveOrExhausted,
    ValidationError,
    VoucherExpiredOrUsed,
)


@dataclass
class GateResult:
    """Result of a gate check."""

    passed: bool
    gate_name: str
    message: str = ""


# =============================================================================
# Gates
# =============================================================================


class Gates:
    """Pointsman validation gates."""

    # =========================================================================
    # R1: Reward Available
    # =========================================================================

    @classmethod
    def reward_available(cls, reward, reward_id=None) -> GateResult:
        """
        R1: Reward exists and is active.

        Args:
            reward: RewardDefinition or None when the lookup found nothing
            reward_id: Requested id, for the error payload

        Raises:
            RewardInactiveOrExhausted: If missing or inactive
        """
        if reward is None:
            raise RewardInactiveOrExhausted("REWARD_NOT_FOUND", reward_id=reward_id)

        if not reward.is_active:
            raise RewardInactiveOrExhausted("REWARD_INACTIVE", reward_id=reward.pk)

        return GateResult(True, "R1_RewardAvailable")

    @classmethod
    def check_reward_available(cls, *args, **kwargs) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.reward_available(*args, **kwargs)
            return True
        except RewardInactiveOrExhausted:
            return False

    # =========================================================================
    # R2: Redemption Cap
    # =========================================================================

    @classmethod
    def redemption_cap(cls, reward) -> GateResult:
        """
        R2: A capped reward must have redemptions left.

        Raises:
            RewardInactiveOrExhausted: If current_redemptions reached max_redemptions
        """
        if reward.is_exhausted:
            raise RewardInactiveOrExhausted(
                "REWARD_EXHAUSTED",
                reward_id=reward.pk,
                max_redemptions=reward.max_redemptions,
                current_redemptions=reward.current_redemptions,
            )

        return GateResult(True, "R2_RedemptionCap")

    @classmethod
    def check_redemption_cap(cls, reward) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.redemption_cap(reward)
            return True
        except RewardInactiveOrExhausted:
            return False

    # =========================================================================
    # R3: Sufficient Balance
    # =========================================================================

    @classmethod
    def sufficient_balance(cls, available: int, requested: int) -> GateResult:
        """
        R3: Balance covers the requested points.

        Args:
            available: Current points_balance (0 when the account does not exist)
            requested: Points to debit

        Raises:
            InsufficientPoints: If available < requested
        """
        if available < requested:
            raise InsufficientPoints(available=available, requested=requested)

        return GateResult(True, "R3_SufficientBalance")

    @classmethod
    def check_sufficient_balance(cls, available: int, requested: int) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.sufficient_balance(available, requested)
            return True
        except InsufficientPoints:
            return False

    # =========================================================================
    # V1: Voucher Usable
    # =========================================================================

    @classmethod
    def voucher_usable(cls, voucher, now: datetime | None = None) -> GateResult:
        """
        V1: Voucher is active and not past expiry.

        Expiry is checked against the clock, so an expired voucher is
        rejected even while its stored status is still "active".

        Raises:
            VoucherExpiredOrUsed: If used, expired, or past expires_at
        """
        from pointsman.models import VoucherStatus

        now = now or timezone.now()

        if voucher.status == VoucherStatus.USED:
            raise VoucherExpiredOrUsed(
                "VOUCHER_USED",
                voucher_code=voucher.code,
                applied_order_id=voucher.applied_order_id,
            )

        if voucher.status == VoucherStatus.EXPIRED or voucher.is_expired(now):
            raise VoucherExpiredOrUsed(
                "VOUCHER_EXPIRED",
                voucher_code=voucher.code,
                expires_at=voucher.expires_at.isoformat(),
            )

        return GateResult(True, "V1_VoucherUsable")

    @classmethod
    def check_voucher_usable(cls, *args, **kwargs) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.voucher_usable(*args, **kwargs)
            return True
        except VoucherExpiredOrUsed:
            return False

    # =========================================================================
    # V2: Minimum Order
    # =========================================================================

    @classmethod
    def minimum_order(cls, voucher, order_total: Decimal) -> GateResult:
        """
        V2: Order total reaches the voucher minimum.

        Raises:
            ValidationError: If order_total < min_order_amount
        """
        if not voucher.meets_minimum(order_total):
            raise ValidationError(
                "VOUCHER_MINIMUM_NOT_MET",
                voucher_code=voucher.code,
                min_order_amount=str(voucher.min_order_amount),
                order_total=str(order_total),
            )

        return GateResult(True, "V2_MinimumOrder")

    @classmethod
    def check_minimum_order(cls, voucher, order_total: Decimal) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.minimum_order(voucher, order_total)
            return True
        except ValidationError:
            return False
