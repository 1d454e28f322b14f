from aiogram import Dispatcher

from .greeting import register_greeting_handlers
from .start import register_start_handlers


def setup_handlers(dp: Dispatcher) -> None:
    # aiogram checks handlers in registration order; commands go first
    register_start_handlers(dp)
    register_greeting_handlers(dp)
