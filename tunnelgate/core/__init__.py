"""
Core application modules: configuration, logging, metrics, admin auth
"""

from .config import Settings, settings
from .logging import configure_logging
from .security import require_admin

__all__ = [
    "Settings",
    "settings",
    "configure_logging",
    "require_admin",
]
