"""Pointsman protocols."""

from pointsman.protocols.program import ProgramConfigBackend

__all__ = [
    "ProgramConfigBackend",
]
