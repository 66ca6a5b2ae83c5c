"""
Pointsman configuration.

Usage in settings.py:
    POINTSMAN = {
        "VOUCHER_VALIDITY_DAYS": 30,
        "LOCK_TIMEOUT_MS": 5000,
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class PointsmanSettings:
    """Pointsman configuration settings."""

    # Vouchers
    VOUCHER_VALIDITY_DAYS: int = 30
    VOUCHER_CODE_LENGTH: int = 8
    VOUCHER_CODE_ATTEMPTS: int = 5

    # Row lock wait before ConcurrencyContention (PostgreSQL lock_timeout)
    LOCK_TIMEOUT_MS: int = 5000

    # Ledger history
    DEFAULT_TRANSACTION_LIMIT: int = 50
    MAX_TRANSACTION_LIMIT: int = 500

    # Program configuration provider (ProgramConfigBackend)
    PROGRAM_CONFIG_BACKEND: str = "pointsman.adapters.program_db.DatabaseProgramConfigBackend"


def get_pointsman_settings() -> PointsmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "POINTSMAN", {})
    return PointsmanSettings(**user_settings)


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_pointsman_settings(), name)


pointsman_settings = _LazySettings()
