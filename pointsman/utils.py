"""Input normalization shared by the services."""

import re
from decimal import Decimal, InvalidOperation

from pointsman.exceptions import ValidationError

_CODE_NORMALIZE_PATTERN = re.compile(r"\s+")


def normalize_user_id(user_id) -> str:
    """External user ids arrive as int or str; stored as str."""
    if user_id is None or isinstance(user_id, bool):
        raise ValidationError(message="User id is required", user_id=user_id)
    value = str(user_id).strip()
    if not value or len(value) > 64:
        raise ValidationError(message="Invalid user id", user_id=user_id)
    return value


def normalize_order_id(order_id) -> str:
    """Optional order reference; None becomes ""."""
    if order_id is None:
        return ""
    value = str(order_id).strip()
    if len(value) > 64:
        raise ValidationError(message="Invalid order id", order_id=order_id)
    return value


def normalize_voucher_code(raw_code) -> str:
    if not isinstance(raw_code, str) or not raw_code.strip():
        raise ValidationError(message="Voucher code is required")
    return _CODE_NORMALIZE_PATTERN.sub("", raw_code).upper()


def to_amount(value, field: str = "amount") -> Decimal:
    """
    Parse a money amount into a non-negative Decimal.

    Floats go through str() so 19.99 stays 19.99.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError("INVALID_AMOUNT", field=field, value=value)
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("INVALID_AMOUNT", field=field, value=str(value))
    if not amount.is_finite() or amount < 0:
        raise ValidationError("INVALID_AMOUNT", field=field, value=str(value))
    return amount


def to_points(value, field: str = "points") -> int:
    """Parse a strictly positive integer number of points."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError("INVALID_POINTS", field=field, value=value)
    return value


def normalize_reward_id(reward_id) -> int:
    """Reward ids are positive integers; numeric strings are accepted."""
    if isinstance(reward_id, bool):
        raise ValidationError(message="Invalid reward id", reward_id=reward_id)
    try:
        value = int(reward_id)
    except (TypeError, ValueError):
        raise ValidationError(message="Invalid reward id", reward_id=str(reward_id))
    if value <= 0 or (isinstance(reward_id, float) and reward_id != value):
        raise ValidationError(message="Invalid reward id", reward_id=str(reward_id))
    return value
