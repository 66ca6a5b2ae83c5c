"""Database ProgramConfigBackend adapter."""

from pointsman.models import LoyaltyProgram
from pointsman.services.calculator import ProgramConfig


class DatabaseProgramConfigBackend:
    """
    Adapter that implements ProgramConfigBackend from the LoyaltyProgram table.

    Configuration in settings.py:
        POINTSMAN = {
            "PROGRAM_CONFIG_BACKEND": "pointsman.adapters.program_db.DatabaseProgramConfigBackend",
        }
    """

    def get_active_config(self) -> ProgramConfig:
        """Return the active program, or defaults when none is active."""
        program = LoyaltyProgram.objects.filter(is_active=True).first()
        if program is None:
            return ProgramConfig()

        return ProgramConfig(
            points_per_dollar=program.points_per_dollar,
            bonus_points_threshold=program.bonus_points_threshold,
            bonus_points_multiplier=program.bonus_points_multiplier,
            points_for_signup=program.points_for_signup,
            points_for_first_order=program.points_for_first_order,
        )


class StaticProgramConfigBackend:
    """
    Adapter that reads the program from settings instead of the database.

    Configuration in settings.py:
        POINTSMAN = {
            "PROGRAM_CONFIG_BACKEND": "pointsman.adapters.program_db.StaticProgramConfigBackend",
        }
        POINTSMAN_PROGRAM = {"points_per_dollar": "2", "points_for_signup": 0}
    """

    def get_active_config(self) -> ProgramConfig:
        from django.conf import settings

        return ProgramConfig.from_dict(getattr(settings, "POINTSMAN_PROGRAM", {}))
