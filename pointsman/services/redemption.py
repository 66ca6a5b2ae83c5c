"""Redemption service - turn points into a voucher.

The only code path that writes to the ledger, the catalog and the
voucher table in one transaction:

    lock account, lock reward (global lock order)
    R1 reward available -> R2 cap not reached -> R3 balance sufficient
    debit ledger, count redemption, issue voucher
    commit

Any failure rolls the whole transaction back. Nothing retries here;
ConcurrencyContention goes back to the caller.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum

from django.db import transaction
from django.utils import timezone

from pointsman.gates import Gates
from pointsman.locks import ACCOUNT, REWARD, critical_section, lock_order
from pointsman.models import EntryType, LedgerEntry, LoyaltyAccount, RewardDefinition, Voucher
from pointsman.services import catalog, ledger, vouchers
from pointsman.services.ledger import EntryMeta
from pointsman.signals import reward_redeemed
from pointsman.utils import normalize_order_id, normalize_reward_id, normalize_user_id

logger = logging.getLogger(__name__)


class RedemptionState(str, Enum):
    REQUESTED = "requested"
    VALIDATING = "validating"
    LOCKED = "locked"
    APPLYING = "applying"
    COMMITTED = "committed"
    ABORTED = "aborted"


_TRANSITIONS = {
    RedemptionState.REQUESTED: {RedemptionState.VALIDATING, RedemptionState.ABORTED},
    RedemptionState.VALIDATING: {RedemptionState.LOCKED, RedemptionState.ABORTED},
    RedemptionState.LOCKED: {RedemptionState.APPLYING, RedemptionState.ABORTED},
    RedemptionState.APPLYING: {RedemptionState.COMMITTED, RedemptionState.ABORTED},
    RedemptionState.COMMITTED: set(),
    RedemptionState.ABORTED: set(),
}


@dataclass
class RedemptionRequest:
    """One redemption attempt and where it got to."""

    user_id: object
    reward_id: object
    order_id: object = None
    state: RedemptionState = RedemptionState.REQUESTED
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    error_code: str | None = None

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self.state]

    def transition(self, new_state: RedemptionState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal redemption transition {self.state.value} -> {new_state.value}"
            )
        logger.debug(
            "Redemption %s: %s -> %s",
            self.request_id,
            self.state.value,
            new_state.value,
        )
        self.state = new_state

    def abort(self, exc: BaseException) -> None:
        """Move to ABORTED from any non-terminal state."""
        self.error_code = getattr(exc, "code", type(exc).__name__)
        if not self.is_terminal:
            self.transition(RedemptionState.ABORTED)


@dataclass
class RedemptionResult:
    """What a committed redemption produced."""

    voucher: Voucher
    account: LoyaltyAccount
    entry: LedgerEntry
    reward: RewardDefinition
    state: RedemptionState = RedemptionState.COMMITTED

    @property
    def new_balance(self) -> int:
        return self.account.points_balance


def redeem(user_id, reward_id, order_id=None) -> RedemptionResult:
    """
    Redeem a reward for a voucher.

    Args:
        user_id: Redeeming user
        reward_id: RewardDefinition id
        order_id: Optional order the redemption is made for

    Returns:
        RedemptionResult with the voucher, the updated account and the
        debit entry

    Raises:
        ValidationError: Malformed input
        RewardInactiveOrExhausted: Unknown, inactive or capped-out reward
        InsufficientPoints: Balance below the reward cost
        ConcurrencyContention: Lock wait timed out (retryable)
        PersistenceFailure: Other storage errors
    """
    request = RedemptionRequest(user_id=user_id, reward_id=reward_id, order_id=order_id)

    try:
        request.transition(RedemptionState.VALIDATING)
        user_id = normalize_user_id(user_id)
        reward_id = normalize_reward_id(reward_id)
        order_id = normalize_order_id(order_id)

        with critical_section():
            account = reward = None
            for rank, key in lock_order((REWARD, reward_id), (ACCOUNT, user_id)):
                if rank == ACCOUNT:
                    account = ledger.lock_account(key)
                else:
                    reward = catalog.lock(key)
            request.transition(RedemptionState.LOCKED)

            Gates.reward_available(reward, reward_id)
            Gates.redemption_cap(reward)
            Gates.sufficient_balance(
                account.points_balance if account else 0,
                reward.points_required,
            )

            request.transition(RedemptionState.APPLYING)
            entry = ledger.apply_debit(
                account,
                reward.points_required,
                EntryMeta(
                    entry_type=EntryType.REDEEMED,
                    description=f"Redeemed: {reward.name}",
                    order_id=order_id,
                ),
            )
            catalog.record_redemption(reward)
            voucher = vouchers.issue(user_id, reward, {"issued_at": timezone.now()})

            transaction.on_commit(
                lambda: reward_redeemed.send(
                    sender=RewardDefinition,
                    reward=reward,
                    voucher=voucher,
                    account=account,
                )
            )
    except Exception as exc:
        request.abort(exc)
        logger.warning(
            "Redemption %s aborted for user %s reward %s: %s",
            request.request_id,
            request.user_id,
            request.reward_id,
            request.error_code,
        )
        raise

    request.transition(RedemptionState.COMMITTED)
    logger.info(
        "Redemption %s committed: user %s reward %s voucher %s, balance %d",
        request.request_id,
        user_id,
        reward.pk,
        voucher.code,
        account.points_balance,
    )
    return RedemptionResult(
        voucher=voucher,
        account=account,
        entry=entry,
        reward=reward,
        state=request.state,
    )
