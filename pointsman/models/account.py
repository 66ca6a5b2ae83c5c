"""LoyaltyAccount model - per-user balance summary."""

from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _


class LoyaltyAccount(models.Model):
    """
    Per-user points summary.

    One row per user, created lazily on the first credit. The ledger
    (LedgerEntry) is the audit trail; this row is the lockable,
    mutable summary of it:

        points_balance == total_earned - total_redeemed
        points_balance == sum(entries.points_delta)

    Mutated only by services.ledger, inside a critical section.
    """

    user_id = models.CharField(
        _("user"),
        max_length=64,
        unique=True,
        help_text=_("External user identifier"),
    )

    points_balance = models.IntegerField(_("points balance"), default=0)
    total_earned = models.IntegerField(
        _("total earned"),
        default=0,
        help_text=_("Lifetime points credited (never decreases)"),
    )
    total_redeemed = models.IntegerField(
        _("total redeemed"),
        default=0,
        help_text=_("Lifetime points debited (never decreases)"),
    )
    last_earned_at = models.DateTimeField(_("last earned at"), null=True, blank=True)

    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        db_table = "pointsman_account"
        verbose_name = _("loyalty account")
        verbose_name_plural = _("loyalty accounts")
        constraints = [
            models.CheckConstraint(
                condition=Q(points_balance__gte=0),
                name="pointsman_account_balance_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(total_earned__gte=0) & Q(total_redeemed__gte=0),
                name="pointsman_account_totals_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(points_balance=F("total_earned") - F("total_redeemed")),
                name="pointsman_account_balance_matches_totals",
            ),
        ]

    def __str__(self):
        return f"{self.user_id}: {self.points_balance}pts"

    @property
    def is_consistent(self) -> bool:
        return self.points_balance == self.total_earned - self.total_redeemed
