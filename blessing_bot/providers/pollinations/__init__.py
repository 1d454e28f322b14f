from blessing_bot.providers.pollinations.client import ImageGenerationError, PollinationsClient

__all__ = [
    "ImageGenerationError",
    "PollinationsClient",
]
