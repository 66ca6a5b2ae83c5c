"""Voucher service - issue, apply and list vouchers.

Owns Voucher. Status only moves active -> used or active -> expired.
Expiry is checked against the clock when a voucher is applied;
expire_stale() only tidies the stored status.
"""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.utils import timezone

from pointsman.conf import pointsman_settings
from pointsman.exceptions import PersistenceFailure, ValidationError, VoucherExpiredOrUsed
from pointsman.gates import Gates
from pointsman.locks import critical_section
from pointsman.models import DiscountType, RewardDefinition, Voucher, VoucherStatus
from pointsman.signals import voucher_applied
from pointsman.utils import normalize_order_id, normalize_user_id, normalize_voucher_code, to_amount

logger = logging.getLogger(__name__)

# Unambiguous characters only (no 0/O, 1/I)
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

_CODE_PREFIXES = {
    DiscountType.PERCENTAGE.value: "PCT",
    DiscountType.DELIVERY_FEE.value: "SHIP",
    DiscountType.FIXED.value: "SAVE",
}


@dataclass
class VoucherQuote:
    """An active voucher priced against a prospective order."""

    voucher: Voucher
    discount: Decimal
    applicable: bool
    savings_text: str

    @property
    def code(self) -> str:
        return self.voucher.code


@dataclass
class VoucherSummary:
    """A user's vouchers grouped by effective status."""

    active: list[Voucher] = field(default_factory=list)
    used: list[Voucher] = field(default_factory=list)
    expired: list[Voucher] = field(default_factory=list)


def generate_code(discount_type: str, discount_amount: Decimal) -> str:
    """
    Random voucher code: type prefix, whole amount, random suffix.

        >>> generate_code("fixed", Decimal("5.00"))  # doctest: +SKIP
        'SAVE5-K7QM2XPA'
    """
    prefix = _CODE_PREFIXES.get(discount_type, "SAVE")
    length = max(4, min(int(pointsman_settings.VOUCHER_CODE_LENGTH), 16))
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))
    return f"{prefix}{int(discount_amount)}-{suffix}"


# ======================================================================
# Issue
# ======================================================================


def issue(user_id, reward: RewardDefinition, redemption_context: dict | None = None) -> Voucher:
    """
    Create an active voucher with the reward terms as they are now.

    Args:
        user_id: Owner of the voucher
        reward: Reward being redeemed (already validated by the caller)
        redemption_context: Optional "issued_at" datetime and "title"

    Returns:
        The new Voucher

    Raises:
        PersistenceFailure: If no free code was found in VOUCHER_CODE_ATTEMPTS tries
    """
    user_id = normalize_user_id(user_id)
    context = redemption_context or {}
    issued_at = context.get("issued_at") or timezone.now()
    expires_at = issued_at + timedelta(days=pointsman_settings.VOUCHER_VALIDITY_DAYS)
    attempts = max(1, int(pointsman_settings.VOUCHER_CODE_ATTEMPTS))

    for attempt in range(1, attempts + 1):
        code = generate_code(reward.reward_type, reward.reward_value)
        try:
            with transaction.atomic():
                voucher = Voucher.objects.create(
                    user_id=user_id,
                    reward=reward,
                    code=code,
                    title=context.get("title") or reward.name,
                    discount_amount=reward.reward_value,
                    discount_type=reward.reward_type,
                    min_order_amount=reward.min_order_amount,
                    points_spent=reward.points_required,
                    status=VoucherStatus.ACTIVE,
                    expires_at=expires_at,
                )
        except IntegrityError:
            if not Voucher.objects.filter(code=code).exists():
                raise
            logger.warning("Voucher code collision on %s (attempt %d/%d)", code, attempt, attempts)
            continue

        logger.info("Voucher %s issued to %s for reward %s", voucher.code, user_id, reward.pk)
        return voucher

    raise PersistenceFailure(
        message="Could not generate a unique voucher code",
        attempts=attempts,
    )


# ======================================================================
# Apply
# ======================================================================


def apply_to_order(
    code: str,
    order_id,
    order_total,
    delivery_fee=None,
    user_id=None,
) -> Decimal:
    """
    Spend a voucher on an order.

    Locks the voucher row, checks it is usable and that the order meets
    the minimum, then marks it used. Of two concurrent applications of
    the same code only one succeeds.

    Args:
        code: Voucher code (case and whitespace insensitive)
        order_id: Order the discount goes to
        order_total: Order subtotal the discount is computed on
        delivery_fee: Actual delivery fee, caps a delivery waiver
        user_id: When given, the voucher must belong to this user

    Returns:
        Discount amount

    Raises:
        ValidationError: VOUCHER_NOT_FOUND, VOUCHER_MINIMUM_NOT_MET or bad input
        VoucherExpiredOrUsed: If already used or past expiry
    """
    code = normalize_voucher_code(code)
    order_id = normalize_order_id(order_id)
    if not order_id:
        raise ValidationError(message="Order id is required", voucher_code=code)
    order_total = to_amount(order_total, field="order_total")
    if delivery_fee is not None:
        delivery_fee = to_amount(delivery_fee, field="delivery_fee")
    if user_id is not None:
        user_id = normalize_user_id(user_id)

    with critical_section():
        voucher = Voucher.objects.select_for_update().filter(code=code).first()
        if voucher is None or (user_id is not None and voucher.user_id != user_id):
            raise ValidationError("VOUCHER_NOT_FOUND", voucher_code=code)

        now = timezone.now()
        Gates.voucher_usable(voucher, now)
        Gates.minimum_order(voucher, order_total)

        discount = voucher.compute_discount(order_total, delivery_fee)

        updated = Voucher.objects.filter(
            pk=voucher.pk,
            status=VoucherStatus.ACTIVE,
            expires_at__gt=now,
        ).update(status=VoucherStatus.USED, used_at=now, applied_order_id=order_id)
        if not updated:
            raise VoucherExpiredOrUsed(voucher_code=code)

        voucher.refresh_from_db(fields=["status", "used_at", "applied_order_id"])
        transaction.on_commit(
            lambda: voucher_applied.send(
                sender=Voucher,
                voucher=voucher,
                order_id=order_id,
                discount=discount,
            )
        )

    logger.info("Voucher %s applied to order %s, discount %s", code, order_id, discount)
    return discount


# ======================================================================
# Listing
# ======================================================================


def _nominal_discount(voucher: Voucher) -> Decimal:
    # Without an order total a percentage is worth nothing definite
    if voucher.discount_type == DiscountType.PERCENTAGE:
        return Decimal("0.00")
    return voucher.discount_amount


def list_active(user_id, order_total=None) -> list[VoucherQuote]:
    """
    Usable vouchers, best deal first.

    With order_total, each voucher is priced against it and flagged
    applicable when the order meets its minimum. Without it, every
    voucher counts as applicable at its face value.

    Sort: applicable first, then biggest discount, then cheapest in
    points, then soonest to expire.
    """
    user_id = normalize_user_id(user_id)
    total = to_amount(order_total, field="order_total") if order_total is not None else None
    now = timezone.now()

    quotes = []
    vouchers = Voucher.objects.filter(
        user_id=user_id,
        status=VoucherStatus.ACTIVE,
        expires_at__gt=now,
    )
    for voucher in vouchers:
        if total is None:
            applicable = True
            discount = _nominal_discount(voucher)
        else:
            applicable = Gates.check_minimum_order(voucher, total)
            discount = voucher.compute_discount(total)
        quotes.append(
            VoucherQuote(
                voucher=voucher,
                discount=discount,
                applicable=applicable,
                savings_text=voucher.savings_text,
            )
        )

    quotes.sort(
        key=lambda q: (
            not q.applicable,
            -q.discount,
            q.voucher.points_spent,
            q.voucher.expires_at,
        )
    )
    return quotes


def list_for_user(user_id) -> VoucherSummary:
    """All of a user's vouchers, newest first within each group."""
    user_id = normalize_user_id(user_id)
    now = timezone.now()

    summary = VoucherSummary()
    for voucher in Voucher.objects.filter(user_id=user_id).order_by("-created_at", "-id"):
        status = voucher.effective_status(now)
        if status == VoucherStatus.USED:
            summary.used.append(voucher)
        elif status == VoucherStatus.EXPIRED:
            summary.expired.append(voucher)
        else:
            summary.active.append(voucher)
    return summary


# ======================================================================
# Maintenance
# ======================================================================


def expire_stale(now: datetime | None = None) -> int:
    """
    Mark active vouchers past expiry as expired.

    Returns:
        Number of vouchers updated
    """
    now = now or timezone.now()
    with critical_section():
        count = Voucher.objects.filter(
            status=VoucherStatus.ACTIVE,
            expires_at__lte=now,
        ).update(status=VoucherStatus.EXPIRED)

    if count:
        logger.info("Expired %d stale vouchers", count)
    return count
