"""Program configuration protocol for cross-app communication."""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pointsman.services.calculator import ProgramConfig


@runtime_checkable
class ProgramConfigBackend(Protocol):
    """
    Protocol for reading the active loyalty program configuration.

    Used by the earning coordinator before every award.
    Implemented by adapters/program_db.py.

    Configuration in settings.py:
        POINTSMAN = {
            "PROGRAM_CONFIG_BACKEND": "pointsman.adapters.program_db.DatabaseProgramConfigBackend",
        }
    """

    def get_active_config(self) -> "ProgramConfig":
        """
        Return the active configuration.

        Returns:
            ProgramConfig; the documented defaults when nothing is configured
        """
        ...
