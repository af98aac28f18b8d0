"""Delivery Tracker core module.

Shared components used across the service:
- Configuration management
- Cached settings accessor
"""

from deliverytrack.core.config import (
    AdminSettings,
    ConfigValidationError,
    CredentialSettings,
    DatabaseSettings,
    Environment,
    FinishPolicy,
    LifecycleSettings,
    Settings,
)
from deliverytrack.core.settings import (
    clear_settings_cache,
    get_settings,
    get_settings_safe,
)

__all__ = [
    "AdminSettings",
    "ConfigValidationError",
    "CredentialSettings",
    "DatabaseSettings",
    "Environment",
    "FinishPolicy",
    "LifecycleSettings",
    "Settings",
    "clear_settings_cache",
    "get_settings",
    "get_settings_safe",
]
