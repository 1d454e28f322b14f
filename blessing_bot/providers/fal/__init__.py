from blessing_bot.providers.fal.client import FalClient
from blessing_bot.providers.fal.llm import FalTextGenerator

__all__ = [
    "FalClient",
    "FalTextGenerator",
]
