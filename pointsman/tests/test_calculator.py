"""
Earning calculator and program configuration tests.
"""

from decimal import Decimal

import pytest

from pointsman.adapters.program_db import DatabaseProgramConfigBackend, StaticProgramConfigBackend
from pointsman.exceptions import ValidationError
from pointsman.models import LoyaltyProgram
from pointsman.protocols import ProgramConfigBackend
from pointsman.services.calculator import ProgramConfig, compute_points, get_program_config


# ═══════════════════════════════════════════════════════════════════
# compute_points
# ═══════════════════════════════════════════════════════════════════


class TestComputePoints:
    """Points owed for an order amount."""

    def test_bonus_applied_at_threshold(self):
        """$100 with the defaults: 100 base x 1.5 = 150."""
        assert compute_points(100, ProgramConfig()) == 150

    def test_no_bonus_below_threshold(self):
        assert compute_points(10, ProgramConfig()) == 10

    def test_threshold_is_inclusive(self):
        assert compute_points(Decimal("50"), ProgramConfig()) == 75

    def test_base_points_floored(self):
        """$19.99 earns 19 points."""
        assert compute_points(Decimal("19.99"), ProgramConfig()) == 19

    def test_bonus_floored(self):
        """$55.55 -> 55 base -> floor(82.5) = 82."""
        assert compute_points(Decimal("55.55"), ProgramConfig()) == 82

    def test_float_amount_taken_at_face_value(self):
        assert compute_points(19.99, ProgramConfig()) == 19

    def test_zero_amount(self):
        assert compute_points(0, ProgramConfig()) == 0

    def test_custom_rate(self):
        config = ProgramConfig(points_per_dollar=Decimal("2.5"), bonus_points_threshold=Decimal("1000"))
        assert compute_points(Decimal("10.00"), config) == 25

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError) as exc:
            compute_points(-5, ProgramConfig())
        assert exc.value.code == "INVALID_AMOUNT"

    def test_garbage_amount_rejected(self):
        with pytest.raises(ValidationError):
            compute_points("lots", ProgramConfig())


# ═══════════════════════════════════════════════════════════════════
# ProgramConfig
# ═══════════════════════════════════════════════════════════════════


class TestProgramConfig:
    """Typed configuration with a validating constructor."""

    def test_defaults(self):
        config = ProgramConfig()
        assert config.points_per_dollar == Decimal("1")
        assert config.bonus_points_threshold == Decimal("50")
        assert config.bonus_points_multiplier == Decimal("1.5")
        assert config.points_for_signup == 100
        assert config.points_for_first_order == 50

    def test_values_coerced_to_decimal(self):
        config = ProgramConfig(points_per_dollar="2", bonus_points_multiplier=1.25)
        assert config.points_per_dollar == Decimal("2")
        assert config.bonus_points_multiplier == Decimal("1.25")

    def test_frozen(self):
        config = ProgramConfig()
        with pytest.raises(AttributeError):
            config.points_for_signup = 5

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"points_per_dollar": 0},
            {"bonus_points_multiplier": Decimal("0")},
            {"bonus_points_threshold": -1},
            {"points_for_signup": -10},
            {"points_for_first_order": 2.5},
            {"points_per_dollar": "abc"},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValidationError) as exc:
            ProgramConfig(**kwargs)
        assert exc.value.code == "INVALID_PROGRAM_CONFIG"

    def test_zero_bonus_points_allowed(self):
        config = ProgramConfig(points_for_signup=0, points_for_first_order=0)
        assert config.points_for_signup == 0

    def test_from_dict_partial(self):
        config = ProgramConfig.from_dict({"points_for_signup": 20})
        assert config.points_for_signup == 20
        assert config.points_per_dollar == Decimal("1")

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ValidationError) as exc:
            ProgramConfig.from_dict({"pointsPerDollar": 2})
        assert exc.value.data["fields"] == ["pointsPerDollar"]


# ═══════════════════════════════════════════════════════════════════
# Config backends
# ═══════════════════════════════════════════════════════════════════


@pytest.mark.django_db
class TestProgramConfigBackends:
    """Active configuration lookup."""

    def test_backend_satisfies_protocol(self):
        assert isinstance(DatabaseProgramConfigBackend(), ProgramConfigBackend)
        assert isinstance(StaticProgramConfigBackend(), ProgramConfigBackend)

    def test_defaults_without_program(self):
        assert get_program_config() == ProgramConfig()

    def test_inactive_program_ignored(self):
        LoyaltyProgram.objects.create(name="Old", points_per_dollar=Decimal("3"), is_active=False)
        assert get_program_config() == ProgramConfig()

    def test_active_program_used(self, program):
        config = get_program_config()
        assert config.points_per_dollar == Decimal("2.00")
        assert config.points_for_signup == 25
        assert compute_points(Decimal("100"), config) == 400

    def test_activate_switches_program(self, program):
        other = LoyaltyProgram.objects.create(name="Plain", is_active=False)
        other.activate()

        program.refresh_from_db()
        assert not program.is_active
        assert get_program_config().points_per_dollar == Decimal("1.00")

    def test_backend_from_settings(self, settings):
        settings.POINTSMAN = {
            "PROGRAM_CONFIG_BACKEND": "pointsman.adapters.program_db.StaticProgramConfigBackend",
        }
        settings.POINTSMAN_PROGRAM = {"points_for_signup": 7}
        assert get_program_config().points_for_signup == 7
