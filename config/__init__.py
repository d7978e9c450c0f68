"""Configuration package for the assessment server."""
from .settings import RULES_FILE, Settings, settings

__all__ = [
    "RULES_FILE",
    "Settings",
    "settings",
]
