from blessing_bot.providers.twemoji.client import TwemojiClient

__all__ = [
    "TwemojiClient",
]
