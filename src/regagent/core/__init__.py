"""Core module.

Shared components used across the service:
- Configuration management
- Settings accessor
"""

from regagent.core.config import (
    AgentSettings,
    ConfigValidationError,
    DatabaseSettings,
    Environment,
    MailboxProviderSettings,
    OcrProviderSettings,
    Settings,
    SMTPSettings,
)
from regagent.core.settings import (
    clear_settings_cache,
    get_settings,
    get_settings_safe,
)

__all__ = [
    "AgentSettings",
    "ConfigValidationError",
    "DatabaseSettings",
    "Environment",
    "MailboxProviderSettings",
    "OcrProviderSettings",
    "SMTPSettings",
    "Settings",
    "clear_settings_cache",
    "get_settings",
    "get_settings_safe",
]
