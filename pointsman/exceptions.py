"""Pointsman exceptions."""


class PointsmanError(Exception):
    """
    Structured exception for points operations.

    Every error carries a stable ``code``, a human message and the data that
    explains it. Subclasses fix the taxonomy; the code can be refined per
    raise site.

    Usage:
        try:
            PointsService.redeem("USER-1", reward_id=3)
        except InsufficientPoints as e:
            show(e.data["available"], e.data["requested"])
        except PointsmanError as e:
            if e.retryable:
                schedule_retry()
    """

    default_code = "POINTSMAN_ERROR"
    retryable = False

    _default_messages = {
        "POINTSMAN_ERROR": "Points operation failed",
        "VALIDATION_ERROR": "Invalid input",
        "INVALID_PROGRAM_CONFIG": "Invalid loyalty program configuration",
        "INVALID_POINTS": "Points must be a positive integer",
        "INVALID_AMOUNT": "Amount must be a non-negative number",
        "INVALID_ENTRY": "Invalid ledger entry",
        "LEDGER_IMMUTABLE": "Ledger entries cannot be changed or deleted",
        "VOUCHER_NOT_FOUND": "Voucher not found",
        "VOUCHER_MINIMUM_NOT_MET": "Order total below voucher minimum",
        "INSUFFICIENT_POINTS": "Insufficient points for redemption",
        "REWARD_NOT_FOUND": "Reward not found",
        "REWARD_INACTIVE": "Reward is not active",
        "REWARD_EXHAUSTED": "Reward redemption limit reached",
        "VOUCHER_USED": "Voucher already used",
        "VOUCHER_EXPIRED": "Voucher expired",
        "ACCOUNT_NOT_FOUND": "Loyalty account not found",
        "CONCURRENCY_CONTENTION": "Resource busy, retry the operation",
        "PERSISTENCE_FAILURE": "Storage error",
    }

    def __init__(self, code: str | None = None, message: str | None = None, **data):
        self.code = code or self.default_code
        self.message = message or self._default_messages.get(self.code, self.code)
        self.data = data
        super().__init__(f"[{self.code}] {self.message}")

    def as_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
            "data": self.data,
        }


class ValidationError(PointsmanError):
    """Malformed input or a request the current state cannot satisfy."""

    default_code = "VALIDATION_ERROR"


class InsufficientPoints(PointsmanError):
    default_code = "INSUFFICIENT_POINTS"


class RewardInactiveOrExhausted(PointsmanError):
    default_code = "REWARD_INACTIVE"


class VoucherExpiredOrUsed(PointsmanError):
    default_code = "VOUCHER_USED"


class AccountNotFound(PointsmanError):
    default_code = "ACCOUNT_NOT_FOUND"


class ConcurrencyContention(PointsmanError):
    """Lock wait timed out or the transaction lost a race. Safe to retry."""

    default_code = "CONCURRENCY_CONTENTION"
    retryable = True


class PersistenceFailure(PointsmanError):
    default_code = "PERSISTENCE_FAILURE"
