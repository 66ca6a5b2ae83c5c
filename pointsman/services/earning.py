"""Earning service - points for completed orders and signups.

Awards are idempotent: an order is credited at most once, and the
signup bonus at most once per user. The checks run under the account
lock and are backed by unique constraints on LedgerEntry.
"""

import logging
from dataclasses import dataclass, field

from pointsman.exceptions import ValidationError
from pointsman.locks import critical_section
from pointsman.models import EntryType, LedgerEntry, LoyaltyAccount
from pointsman.services import ledger
from pointsman.services.calculator import compute_points, get_program_config
from pointsman.services.ledger import EntryMeta
from pointsman.utils import normalize_order_id, normalize_user_id, to_amount

logger = logging.getLogger(__name__)

ORDER_AWARD_TYPES = [EntryType.EARNED.value, EntryType.FIRST_ORDER.value]


@dataclass
class EarningAward:
    """Outcome of an earning event."""

    user_id: str
    order_id: str = ""
    points_earned: int = 0
    bonus_points: int = 0
    already_awarded: bool = False
    account: LoyaltyAccount | None = None
    entries: list[LedgerEntry] = field(default_factory=list)

    @property
    def total_points(self) -> int:
        return self.points_earned + self.bonus_points


def _order_awarded(order_id: str) -> bool:
    return LedgerEntry.objects.filter(order_id=order_id, entry_type__in=ORDER_AWARD_TYPES).exists()


def _has_ordered(account: LoyaltyAccount) -> bool:
    return account.entries.filter(entry_type__in=ORDER_AWARD_TYPES).exists()


def on_order_completed(user_id, order_id, order_amount) -> EarningAward:
    """
    Credit the points for a completed order.

    Base points come from the active program. The user's first order
    also earns the first-order bonus, as a second entry in the same
    transaction.

    Returns:
        EarningAward; already_awarded=True when the order was credited before

    Raises:
        ValidationError: Missing order id or bad amount
    """
    user_id = normalize_user_id(user_id)
    order_id = normalize_order_id(order_id)
    if not order_id:
        raise ValidationError(message="Order id is required", user_id=user_id)
    amount = to_amount(order_amount, field="order_amount")

    config = get_program_config()
    points = compute_points(amount, config)
    award = EarningAward(user_id=user_id, order_id=order_id)

    if not points and not config.points_for_first_order:
        logger.info("Order %s earns no points (amount %s)", order_id, amount)
        return award

    with critical_section():
        account = ledger.lock_account(user_id, create=True)
        award.account = account

        if _order_awarded(order_id):
            award.already_awarded = True
            logger.info("Order %s already awarded, skipping", order_id)
            return award

        bonus = config.points_for_first_order if not _has_ordered(account) else 0

        if points:
            award.entries.append(
                ledger.apply_credit(
                    account,
                    points,
                    EntryMeta(
                        entry_type=EntryType.EARNED,
                        description=f"Order {order_id}: ${amount:.2f}",
                        order_id=order_id,
                        order_amount=amount,
                    ),
                )
            )
            award.points_earned = points

        if bonus:
            award.entries.append(
                ledger.apply_credit(
                    account,
                    bonus,
                    EntryMeta(
                        entry_type=EntryType.FIRST_ORDER,
                        description="First order bonus",
                        order_id=order_id,
                    ),
                )
            )
            award.bonus_points = bonus

    logger.info(
        "Order %s awarded %d points to %s (first-order bonus %d), balance %d",
        order_id,
        award.points_earned,
        user_id,
        award.bonus_points,
        account.points_balance,
    )
    return award


def on_signup(user_id) -> EarningAward:
    """
    Credit the one-time signup bonus.

    Returns:
        EarningAward; already_awarded=True when the bonus was credited before
    """
    user_id = normalize_user_id(user_id)
    points = get_program_config().points_for_signup
    award = EarningAward(user_id=user_id)

    if not points:
        logger.info("Signup bonus disabled, nothing awarded to %s", user_id)
        return award

    with critical_section():
        account = ledger.lock_account(user_id, create=True)
        award.account = account

        if account.entries.filter(entry_type=EntryType.SIGNUP).exists():
            award.already_awarded = True
            logger.info("Signup bonus already awarded to %s", user_id)
            return award

        award.entries.append(
            ledger.apply_credit(
                account,
                points,
                EntryMeta(entry_type=EntryType.SIGNUP, description="Welcome bonus"),
            )
        )
        award.bonus_points = points

    logger.info("Signup bonus of %d points awarded to %s", points, user_id)
    return award
