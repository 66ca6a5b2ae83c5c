"""
Pointsman public API.

CORE (essential):
    PointsService.get_balance(user_id)            - Account summary
    PointsService.list_transactions(user_id)      - Ledger history
    PointsService.list_active_vouchers(user_id)   - Usable vouchers, best first
    PointsService.redeem(user_id, reward_id)      - Points -> voucher
    PointsService.apply_voucher(code, order, total) - Spend a voucher
    PointsService.on_order_completed(...)         - Order award (never raises)
    PointsService.on_signup(user_id)              - Signup bonus

CONVENIENCE (helpers):
    PointsService.list_rewards(user_id)    - Catalog split by affordability
    PointsService.list_vouchers(user_id)   - Vouchers by status
    PointsService.adjust_points(...)       - Staff correction
    PointsService.audit(user_id)           - Ledger consistency check
"""

import logging
from decimal import Decimal

from django.db import transaction

from pointsman.models import LedgerEntry, LoyaltyAccount
from pointsman.services import catalog, earning, ledger, redemption, vouchers
from pointsman.services.catalog import RewardListing
from pointsman.services.earning import EarningAward
from pointsman.services.ledger import AccountAudit
from pointsman.services.redemption import RedemptionResult
from pointsman.services.vouchers import VoucherQuote, VoucherSummary

logger = logging.getLogger(__name__)


class PointsService:
    """
    Pointsman public API.

    Uses @classmethod for extensibility: subclass and override to add
    caching, auditing hooks, etc.

    Every method raises PointsmanError subclasses on failure, except
    on_order_completed, which logs and returns None.
    """

    # ======================================================================
    # CORE API
    # ======================================================================

    @classmethod
    def get_balance(cls, user_id) -> LoyaltyAccount:
        """
        Get the account summary.

        Args:
            user_id: External user id

        Returns:
            LoyaltyAccount (unsaved and zero-valued when the user has no account)
        """
        return ledger.get_balance(user_id)

    @classmethod
    def list_transactions(cls, user_id, limit: int | None = None) -> list[LedgerEntry]:
        """Ledger entries, newest first (limit defaults to DEFAULT_TRANSACTION_LIMIT)."""
        return ledger.list_transactions(user_id, limit=limit)

    @classmethod
    def list_active_vouchers(cls, user_id, order_total=None) -> list[VoucherQuote]:
        """
        Usable vouchers priced against an order.

        Args:
            user_id: External user id
            order_total: Prospective order total, or None for face values

        Returns:
            VoucherQuote list, applicable and biggest discount first
        """
        return vouchers.list_active(user_id, order_total=order_total)

    @classmethod
    def redeem(cls, user_id, reward_id, order_id=None) -> RedemptionResult:
        """
        Redeem a reward for a voucher.

        Returns:
            RedemptionResult (voucher, account, entry)

        Raises:
            RewardInactiveOrExhausted, InsufficientPoints, ValidationError,
            ConcurrencyContention, PersistenceFailure
        """
        return redemption.redeem(user_id, reward_id, order_id=order_id)

    @classmethod
    def apply_voucher(
        cls,
        code: str,
        order_id,
        order_total,
        delivery_fee=None,
        user_id=None,
    ) -> Decimal:
        """
        Spend a voucher on an order.

        Returns:
            Discount amount

        Raises:
            VoucherExpiredOrUsed, ValidationError, ConcurrencyContention
        """
        return vouchers.apply_to_order(
            code,
            order_id,
            order_total,
            delivery_fee=delivery_fee,
            user_id=user_id,
        )

    @classmethod
    def on_order_completed(cls, user_id, order_id, order_amount) -> EarningAward | None:
        """
        Award points for a completed order.

        Failures never reach the caller: the order is already complete
        and must not be rolled back over points. The award runs in its
        own savepoint so a failed query leaves the caller's transaction
        usable. Failures are logged and None is returned.
        """
        try:
            with transaction.atomic():
                return earning.on_order_completed(user_id, order_id, order_amount)
        except Exception:
            logger.exception(
                "Failed to award points for order %s (user %s)",
                order_id,
                user_id,
            )
            return None

    @classmethod
    def on_signup(cls, user_id) -> EarningAward:
        """Award the one-time signup bonus."""
        return earning.on_signup(user_id)

    # ======================================================================
    # CONVENIENCE API
    # ======================================================================

    @classmethod
    def list_rewards(cls, user_id) -> RewardListing:
        """Open catalog split into affordable now and upcoming."""
        return catalog.list_for_user(user_id)

    @classmethod
    def list_vouchers(cls, user_id) -> VoucherSummary:
        return vouchers.list_for_user(user_id)

    @classmethod
    def adjust_points(
        cls,
        user_id,
        delta: int,
        description: str,
        created_by: str = "",
    ) -> LoyaltyAccount:
        """
        Staff adjustment.

        Args:
            user_id: External user id
            delta: Positive to add, negative to remove
            description: Reason, shown in the ledger
            created_by: Who made the adjustment

        Raises:
            InsufficientPoints: If a negative delta exceeds the balance
        """
        return ledger.adjust(user_id, delta, description, created_by=created_by)

    @classmethod
    def audit(cls, user_id) -> AccountAudit:
        """Recompute the account from its ledger (AccountNotFound if none)."""
        return ledger.audit(user_id)
