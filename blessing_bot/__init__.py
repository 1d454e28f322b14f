"""Telegram bot that turns a theme, a style and a blessing into a greeting image."""

__version__ = "0.1.0"
