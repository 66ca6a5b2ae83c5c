"""Ledger service - balances and the append-only points log.

Owns LoyaltyAccount and LedgerEntry. Every balance change happens under
the account row lock, together with the LedgerEntry that records it.

The apply_credit/apply_debit helpers expect the caller to hold the lock
already (coordinators that touch several rows use them); credit/debit
take the lock themselves.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, F, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from pointsman.conf import pointsman_settings
from pointsman.exceptions import AccountNotFound, InsufficientPoints, ValidationError
from pointsman.gates import Gates
from pointsman.locks import critical_section
from pointsman.models import CREDIT_TYPES, DEBIT_TYPES, EntryType, LedgerEntry, LoyaltyAccount
from pointsman.signals import points_credited, points_debited
from pointsman.utils import normalize_order_id, normalize_user_id, to_amount, to_points

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntryMeta:
    """
    What a ledger entry records besides the points.

    Validated at construction, so a bad entry never reaches a transaction.
    """

    entry_type: str
    description: str
    order_id: str = ""
    order_amount: Decimal | None = None
    created_by: str = ""

    def __post_init__(self):
        if self.entry_type not in EntryType.values:
            raise ValidationError("INVALID_ENTRY", entry_type=self.entry_type)
        object.__setattr__(self, "entry_type", str(self.entry_type))

        description = (self.description or "").strip()
        if not description or len(description) > 200:
            raise ValidationError(
                "INVALID_ENTRY",
                message="Description is required (max 200 characters)",
                description=self.description,
            )
        object.__setattr__(self, "description", description)
        object.__setattr__(self, "order_id", normalize_order_id(self.order_id))

        if self.order_amount is not None:
            object.__setattr__(self, "order_amount", to_amount(self.order_amount, "order_amount"))

        created_by = self.created_by or ""
        if len(created_by) > 100:
            raise ValidationError("INVALID_ENTRY", message="created_by too long")
        object.__setattr__(self, "created_by", created_by)


@dataclass
class AccountAudit:
    """Recomputed view of one account against its ledger."""

    user_id: str
    points_balance: int
    total_earned: int
    total_redeemed: int
    ledger_sum: int
    entry_count: int

    @property
    def totals_consistent(self) -> bool:
        return self.points_balance == self.total_earned - self.total_redeemed

    @property
    def ledger_consistent(self) -> bool:
        return self.points_balance == self.ledger_sum

    @property
    def is_consistent(self) -> bool:
        return self.totals_consistent and self.ledger_consistent


# ======================================================================
# Reads
# ======================================================================


def get_balance(user_id) -> LoyaltyAccount:
    """
    Current account summary, unlocked.

    Returns an unsaved zero-valued LoyaltyAccount when the user has
    never been credited. Never creates a row.
    """
    user_id = normalize_user_id(user_id)
    account = LoyaltyAccount.objects.filter(user_id=user_id).first()
    if account is None:
        return LoyaltyAccount(user_id=user_id)
    return account


def list_transactions(user_id, limit: int | None = None) -> list[LedgerEntry]:
    """Ledger entries for a user, newest first."""
    user_id = normalize_user_id(user_id)
    if limit is None:
        limit = pointsman_settings.DEFAULT_TRANSACTION_LIMIT

    max_limit = pointsman_settings.MAX_TRANSACTION_LIMIT
    if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= max_limit:
        raise ValidationError(
            message=f"Limit must be between 1 and {max_limit}",
            limit=limit,
        )

    return list(
        LedgerEntry.objects.filter(account__user_id=user_id)
        .select_related("account")
        .order_by("-created_at", "-id")[:limit]
    )


# ======================================================================
# Locked primitives
# ======================================================================


def lock_account(user_id: str, create: bool = False) -> LoyaltyAccount | None:
    """
    Lock the account row for the rest of the current transaction.

    With create=True the row is created when missing (first credit).
    Otherwise returns None for an unknown user.
    """
    queryset = LoyaltyAccount.objects.select_for_update()
    if create:
        account, created = queryset.get_or_create(user_id=user_id)
        if created:
            logger.info("Loyalty account created for user %s", user_id)
        return account
    return queryset.filter(user_id=user_id).first()


def apply_credit(account: LoyaltyAccount, points: int, meta: EntryMeta) -> LedgerEntry:
    """Credit a locked account and append the entry. Caller holds the lock."""
    if meta.entry_type not in CREDIT_TYPES:
        raise ValidationError(
            "INVALID_ENTRY",
            message=f"Entry type '{meta.entry_type}' cannot credit points",
            entry_type=meta.entry_type,
        )

    now = timezone.now()
    LoyaltyAccount.objects.filter(pk=account.pk).update(
        points_balance=F("points_balance") + points,
        total_earned=F("total_earned") + points,
        last_earned_at=now,
        updated_at=now,
    )
    account.refresh_from_db(
        fields=["points_balance", "total_earned", "total_redeemed", "last_earned_at", "updated_at"]
    )

    entry = _append_entry(account, points, meta)
    transaction.on_commit(
        lambda: points_credited.send(sender=LoyaltyAccount, account=account, entry=entry)
    )
    return entry


def apply_debit(account: LoyaltyAccount | None, points: int, meta: EntryMeta) -> LedgerEntry:
    """
    Debit a locked account and append the entry. Caller holds the lock.

    A missing account (None) has a balance of zero.

    Raises:
        InsufficientPoints: If the balance does not cover points
    """
    if meta.entry_type not in DEBIT_TYPES:
        raise ValidationError(
            "INVALID_ENTRY",
            message=f"Entry type '{meta.entry_type}' cannot debit points",
            entry_type=meta.entry_type,
        )

    available = account.points_balance if account else 0
    Gates.sufficient_balance(available, points)

    updated = LoyaltyAccount.objects.filter(
        pk=account.pk,
        points_balance__gte=points,
    ).update(
        points_balance=F("points_balance") - points,
        total_redeemed=F("total_redeemed") + points,
        updated_at=timezone.now(),
    )
    if not updated:
        # Row changed under us; only possible without a real row lock
        account.refresh_from_db(fields=["points_balance"])
        raise InsufficientPoints(available=account.points_balance, requested=points)

    account.refresh_from_db(fields=["points_balance", "total_earned", "total_redeemed", "updated_at"])

    entry = _append_entry(account, -points, meta)
    transaction.on_commit(
        lambda: points_debited.send(sender=LoyaltyAccount, account=account, entry=entry)
    )
    return entry


def _append_entry(account: LoyaltyAccount, delta: int, meta: EntryMeta) -> LedgerEntry:
    return LedgerEntry.objects.create(
        account=account,
        order_id=meta.order_id,
        entry_type=meta.entry_type,
        points_delta=delta,
        balance_after=account.points_balance,
        description=meta.description,
        order_amount=meta.order_amount,
        created_by=meta.created_by,
    )


# ======================================================================
# Mutations
# ======================================================================


def credit(user_id, amount: int, entry_meta: EntryMeta) -> LoyaltyAccount:
    """
    Add points to a user, creating the account on first credit.

    Returns:
        The account after the credit
    """
    user_id = normalize_user_id(user_id)
    points = to_points(amount, field="amount")

    with critical_section():
        account = lock_account(user_id, create=True)
        apply_credit(account, points, entry_meta)

    logger.info(
        "Credited %d points to %s (%s), balance %d",
        points,
        user_id,
        entry_meta.entry_type,
        account.points_balance,
    )
    return account


def debit(user_id, amount: int, entry_meta: EntryMeta) -> LoyaltyAccount:
    """
    Remove points from a user.

    Raises:
        InsufficientPoints: If the balance (zero without an account) does
            not cover amount. Nothing is written.
    """
    user_id = normalize_user_id(user_id)
    points = to_points(amount, field="amount")

    with critical_section():
        account = lock_account(user_id)
        apply_debit(account, points, entry_meta)

    logger.info(
        "Debited %d points from %s (%s), balance %d",
        points,
        user_id,
        entry_meta.entry_type,
        account.points_balance,
    )
    return account


def adjust(user_id, delta: int, description: str, created_by: str = "") -> LoyaltyAccount:
    """
    Manual correction by staff.

    Positive delta credits, negative delta debits; both are recorded as
    adjustment entries.
    """
    if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
        raise ValidationError("INVALID_POINTS", message="Adjustment must be a non-zero integer", delta=delta)

    meta = EntryMeta(
        entry_type=EntryType.ADJUSTMENT,
        description=description,
        created_by=created_by,
    )
    if delta > 0:
        return credit(user_id, delta, meta)
    return debit(user_id, -delta, meta)


# ======================================================================
# Audit
# ======================================================================


def _audit_queryset():
    return LoyaltyAccount.objects.annotate(
        ledger_sum=Coalesce(Sum("entries__points_delta"), 0),
        entry_count=Count("entries"),
    ).order_by("user_id")


def _to_audit(account) -> AccountAudit:
    return AccountAudit(
        user_id=account.user_id,
        points_balance=account.points_balance,
        total_earned=account.total_earned,
        total_redeemed=account.total_redeemed,
        ledger_sum=account.ledger_sum,
        entry_count=account.entry_count,
    )


def audit(user_id) -> AccountAudit:
    """Recompute one account from its ledger."""
    user_id = normalize_user_id(user_id)
    account = _audit_queryset().filter(user_id=user_id).first()
    if account is None:
        raise AccountNotFound(user_id=user_id)
    return _to_audit(account)


def audit_all() -> list[AccountAudit]:
    """Recompute every account from its ledger."""
    return [_to_audit(account) for account in _audit_queryset()]
