from blessing_bot.core.config import Settings, get_settings, reload_settings
from blessing_bot.core.logging import setup_logging

__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
    "setup_logging",
]
