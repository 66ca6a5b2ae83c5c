"""Earning calculator - points owed for an order.

Pure: no database access, no clock. The active configuration comes from
the configured ProgramConfigBackend (see get_program_config).
"""

from dataclasses import dataclass, fields
from decimal import ROUND_FLOOR, Decimal

from django.utils.module_loading import import_string

from pointsman.conf import pointsman_settings
from pointsman.exceptions import ValidationError
from pointsman.utils import to_amount


@dataclass(frozen=True)
class ProgramConfig:
    """
    Earning rules of the loyalty program.

    Defaults are the documented program defaults, used whenever no
    program is configured. Invalid values raise ValidationError
    (INVALID_PROGRAM_CONFIG) at construction.
    """

    points_per_dollar: Decimal = Decimal("1")
    bonus_points_threshold: Decimal = Decimal("50")
    bonus_points_multiplier: Decimal = Decimal("1.5")
    points_for_signup: int = 100
    points_for_first_order: int = 50

    def __post_init__(self):
        for name in ("points_per_dollar", "bonus_points_threshold", "bonus_points_multiplier"):
            raw = getattr(self, name)
            try:
                value = to_amount(raw, field=name)
            except ValidationError:
                raise ValidationError("INVALID_PROGRAM_CONFIG", field=name, value=str(raw))
            object.__setattr__(self, name, value)

        if self.points_per_dollar <= 0:
            raise ValidationError(
                "INVALID_PROGRAM_CONFIG",
                message="Points per dollar must be positive",
                field="points_per_dollar",
            )
        if self.bonus_points_multiplier <= 0:
            raise ValidationError(
                "INVALID_PROGRAM_CONFIG",
                message="Bonus multiplier must be positive",
                field="bonus_points_multiplier",
            )

        for name in ("points_for_signup", "points_for_first_order"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValidationError(
                    "INVALID_PROGRAM_CONFIG",
                    message=f"{name} must be a non-negative integer",
                    field=name,
                    value=value,
                )

    @classmethod
    def from_dict(cls, data: dict) -> "ProgramConfig":
        """Build from a partial mapping; missing keys take the defaults."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValidationError(
                "INVALID_PROGRAM_CONFIG",
                message="Unknown program settings",
                fields=sorted(unknown),
            )
        return cls(**data)


def compute_points(order_amount, config: ProgramConfig) -> int:
    """
    Points earned for an order amount.

    points = floor(amount * points_per_dollar), then, when the amount
    reaches the bonus threshold, floor(points * bonus_points_multiplier).

        >>> compute_points(100, ProgramConfig())
        150
        >>> compute_points(10, ProgramConfig())
        10
    """
    amount = to_amount(order_amount, field="order_amount")

    points = (amount * config.points_per_dollar).to_integral_value(rounding=ROUND_FLOOR)
    if amount >= config.bonus_points_threshold:
        points = (points * config.bonus_points_multiplier).to_integral_value(
            rounding=ROUND_FLOOR
        )
    return int(points)


def get_program_backend():
    """Instantiate the configured ProgramConfigBackend."""
    backend_class = import_string(pointsman_settings.PROGRAM_CONFIG_BACKEND)
    return backend_class()


def get_program_config() -> ProgramConfig:
    """Currently active program configuration (defaults when none)."""
    return get_program_backend().get_active_config()
