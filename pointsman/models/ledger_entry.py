"""LedgerEntry model - append-only points audit log."""

from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _


class EntryType(models.TextChoices):
    EARNED = "earned", _("Earned")
    BONUS = "bonus", _("Bonus")
    SIGNUP = "signup", _("Signup bonus")
    FIRST_ORDER = "first_order", _("First order bonus")
    REDEEMED = "redeemed", _("Redeemed")
    ADJUSTMENT = "adjustment", _("Adjustment")


# Entry types that may move points in each direction.
CREDIT_TYPES = frozenset(
    {
        EntryType.EARNED.value,
        EntryType.BONUS.value,
        EntryType.SIGNUP.value,
        EntryType.FIRST_ORDER.value,
        EntryType.ADJUSTMENT.value,
    }
)
DEBIT_TYPES = frozenset({EntryType.REDEEMED.value, EntryType.ADJUSTMENT.value})


class LedgerEntry(models.Model):
    """
    Immutable record of a points movement.

    Every credit and debit is logged here, in the same transaction that
    changes the account. Rows are append-only: saving an existing entry
    or deleting one raises.
    """

    account = models.ForeignKey(
        "pointsman.LoyaltyAccount",
        on_delete=models.PROTECT,
        related_name="entries",
        verbose_name=_("account"),
    )
    order_id = models.CharField(
        _("order"),
        max_length=64,
        blank=True,
        db_index=True,
        help_text=_("External order reference, when the entry comes from an order"),
    )
    entry_type = models.CharField(
        _("type"),
        max_length=20,
        choices=EntryType.choices,
    )
    points_delta = models.IntegerField(
        _("points"),
        help_text=_("Positive for credits, negative for debits"),
    )
    balance_after = models.IntegerField(_("balance after"))
    description = models.CharField(_("description"), max_length=200)
    order_amount = models.DecimalField(
        _("order amount"),
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
    )
    created_by = models.CharField(_("created by"), max_length=100, blank=True)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)

    class Meta:
        db_table = "pointsman_ledger_entry"
        verbose_name = _("ledger entry")
        verbose_name_plural = _("ledger entries")
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["account", "-created_at"], name="pointsman_entry_account_idx"),
        ]
        constraints = [
            # One signup bonus and one first-order bonus per account
            models.UniqueConstraint(
                fields=["account", "entry_type"],
                condition=Q(entry_type__in=["signup", "first_order"]),
                name="pointsman_unique_one_time_bonus",
            ),
            # Order completion is awarded at most once per order
            models.UniqueConstraint(
                fields=["order_id", "entry_type"],
                condition=Q(entry_type__in=["earned", "first_order"]) & ~Q(order_id=""),
                name="pointsman_unique_order_award",
            ),
            models.CheckConstraint(
                condition=~Q(points_delta=0),
                name="pointsman_entry_non_zero",
            ),
        ]

    def __str__(self):
        sign = "+" if self.points_delta > 0 else ""
        return f"{sign}{self.points_delta}pts - {self.description}"

    @property
    def user_id(self) -> str:
        return self.account.user_id

    def save(self, *args, **kwargs):
        if self.pk is not None:
            from pointsman.exceptions import ValidationError

            raise ValidationError("LEDGER_IMMUTABLE", entry_id=self.pk)
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        from pointsman.exceptions import ValidationError

        raise ValidationError("LEDGER_IMMUTABLE", entry_id=self.pk)
