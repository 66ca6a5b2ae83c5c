"""LoyaltyProgram model - stored earning configuration."""

from decimal import Decimal

from django.db import models, transaction
from django.utils.translation import gettext_lazy as _


class LoyaltyProgram(models.Model):
    """
    Earning rules for the loyalty program.

    At most one row is active at a time. The active row is what
    DatabaseProgramConfigBackend hands to the earning calculator;
    with no active row the documented defaults apply.
    """

    name = models.CharField(_("name"), max_length=100, default="Loyalty Program")
    description = models.TextField(_("description"), blank=True)

    points_per_dollar = models.DecimalField(
        _("points per dollar"),
        max_digits=10,
        decimal_places=2,
        default=Decimal("1.00"),
    )
    bonus_points_threshold = models.DecimalField(
        _("bonus threshold"),
        max_digits=10,
        decimal_places=2,
        default=Decimal("50.00"),
        help_text=_("Order amount at or above which the multiplier applies"),
    )
    bonus_points_multiplier = models.DecimalField(
        _("bonus multiplier"),
        max_digits=10,
        decimal_places=2,
        default=Decimal("1.50"),
    )
    points_for_signup = models.PositiveIntegerField(_("signup points"), default=100)
    points_for_first_order = models.PositiveIntegerField(_("first order points"), default=50)

    is_active = models.BooleanField(_("active"), default=True)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        db_table = "pointsman_program"
        verbose_name = _("loyalty program")
        verbose_name_plural = _("loyalty programs")
        constraints = [
            models.UniqueConstraint(
                fields=["is_active"],
                condition=models.Q(is_active=True),
                name="pointsman_single_active_program",
            ),
        ]

    def __str__(self):
        state = "active" if self.is_active else "inactive"
        return f"{self.name} ({state})"

    def activate(self):
        """Make this the active program, deactivating any other."""
        with transaction.atomic():
            LoyaltyProgram.objects.filter(is_active=True).exclude(pk=self.pk).update(
                is_active=False
            )
            self.is_active = True
            self.save()
