"""Voucher model - single-use discounts bought with points."""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from pointsman.models.reward import DiscountType

CENTS = Decimal("0.01")


class VoucherStatus(models.TextChoices):
    ACTIVE = "active", _("Active")
    USED = "used", _("Used")
    EXPIRED = "expired", _("Expired")


class Voucher(models.Model):
    """
    Discount instrument issued by a redemption.

    Discount terms are a snapshot of the reward at issue time; editing
    or deleting the reward later does not touch issued vouchers.

    Status moves active -> used or active -> expired, never back.
    Expiry is lazy: a voucher past expires_at is unusable whatever
    its stored status says.
    """

    user_id = models.CharField(_("user"), max_length=64, db_index=True)
    reward = models.ForeignKey(
        "pointsman.RewardDefinition",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="vouchers",
        verbose_name=_("reward"),
    )
    code = models.CharField(_("code"), max_length=32, unique=True)
    title = models.CharField(_("title"), max_length=100, blank=True)

    # Snapshot of the reward terms
    discount_amount = models.DecimalField(_("discount"), max_digits=10, decimal_places=2)
    discount_type = models.CharField(
        _("discount type"),
        max_length=20,
        choices=DiscountType.choices,
        default=DiscountType.FIXED,
    )
    min_order_amount = models.DecimalField(
        _("minimum order"),
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    points_spent = models.PositiveIntegerField(_("points spent"))

    # Lifecycle
    status = models.CharField(
        _("status"),
        max_length=10,
        choices=VoucherStatus.choices,
        default=VoucherStatus.ACTIVE,
    )
    expires_at = models.DateTimeField(_("expires at"))
    applied_order_id = models.CharField(_("applied to order"), max_length=64, blank=True)
    used_at = models.DateTimeField(_("used at"), null=True, blank=True)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)

    class Meta:
        db_table = "pointsman_voucher"
        verbose_name = _("voucher")
        verbose_name_plural = _("vouchers")
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["user_id", "status", "expires_at"], name="pointsman_voucher_user_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(status="used") | Q(used_at__isnull=False),
                name="pointsman_voucher_used_has_timestamp",
            ),
        ]

    def __str__(self):
        return f"{self.code} ({self.get_status_display()})"

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at <= (now or timezone.now())

    def effective_status(self, now: datetime | None = None) -> str:
        """Stored status, with active vouchers past expiry reported as expired."""
        if self.status == VoucherStatus.ACTIVE and self.is_expired(now):
            return VoucherStatus.EXPIRED
        return self.status

    def meets_minimum(self, order_total: Decimal) -> bool:
        return order_total >= self.min_order_amount

    def compute_discount(
        self,
        order_total: Decimal,
        delivery_fee: Decimal | None = None,
    ) -> Decimal:
        """
        Discount this voucher grants on an order.

        Zero when the order is below the voucher minimum. Fixed and
        percentage discounts never exceed the order total; a delivery
        fee waiver never exceeds the actual fee when one is given.
        """
        if not self.meets_minimum(order_total):
            return Decimal("0.00")

        if self.discount_type == DiscountType.PERCENTAGE:
            discount = (order_total * self.discount_amount / 100).quantize(
                CENTS, rounding=ROUND_HALF_UP
            )
            return min(discount, order_total)

        if self.discount_type == DiscountType.DELIVERY_FEE:
            if delivery_fee is None:
                return self.discount_amount
            return min(delivery_fee, self.discount_amount)

        return min(self.discount_amount, order_total)

    @property
    def savings_text(self) -> str:
        if self.discount_type == DiscountType.PERCENTAGE:
            return f"{self.discount_amount.normalize():f}% off"
        if self.discount_type == DiscountType.DELIVERY_FEE:
            return "Free delivery"
        return f"${self.discount_amount} off"
