from blessing_bot.providers.vision.client import GoogleVisionClient, VisionError

__all__ = [
    "GoogleVisionClient",
    "VisionError",
]
