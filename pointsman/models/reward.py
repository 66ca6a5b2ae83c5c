"""RewardDefinition model - redeemable catalog entries."""

from decimal import Decimal

from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _


class DiscountType(models.TextChoices):
    FIXED = "fixed", _("Fixed amount")
    PERCENTAGE = "percentage", _("Percentage")
    DELIVERY_FEE = "delivery_fee", _("Delivery fee waiver")


class RewardDefinition(models.Model):
    """
    Catalog entry that can be bought with points.

    Redeeming issues a Voucher whose terms are copied from reward_type,
    reward_value and min_order_amount at that moment.

    current_redemptions only grows, and never passes max_redemptions
    when a cap is set. Catalog administration happens elsewhere; this
    app only reads rewards and bumps the counter.
    """

    name = models.CharField(_("name"), max_length=100)
    description = models.TextField(_("description"), blank=True)

    points_required = models.PositiveIntegerField(_("points required"))
    reward_type = models.CharField(
        _("reward type"),
        max_length=20,
        choices=DiscountType.choices,
        default=DiscountType.FIXED,
    )
    reward_value = models.DecimalField(
        _("reward value"),
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("Amount off, percentage off, or delivery fee waived"),
    )
    min_order_amount = models.DecimalField(
        _("minimum order"),
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )

    is_active = models.BooleanField(_("active"), default=True)
    max_redemptions = models.PositiveIntegerField(
        _("max redemptions"),
        null=True,
        blank=True,
        help_text=_("Leave empty for unlimited"),
    )
    current_redemptions = models.PositiveIntegerField(_("redemptions"), default=0)

    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        db_table = "pointsman_reward"
        verbose_name = _("reward")
        verbose_name_plural = _("rewards")
        ordering = ["points_required", "id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(points_required__gt=0),
                name="pointsman_reward_cost_positive",
            ),
            models.CheckConstraint(
                condition=Q(max_redemptions__isnull=True)
                | Q(current_redemptions__lte=F("max_redemptions")),
                name="pointsman_reward_within_cap",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.points_required}pts)"

    @property
    def is_exhausted(self) -> bool:
        return (
            self.max_redemptions is not None
            and self.current_redemptions >= self.max_redemptions
        )

    @property
    def remaining_redemptions(self) -> int | None:
        if self.max_redemptions is None:
            return None
        return max(0, self.max_redemptions - self.current_redemptions)
