from __future__ import annotations

import time
from typing import Any

from aiogram.fsm.context import FSMContext

# session keys inside FSM data
STAGE_KEY = "greeting_stage"
THEME_ID_KEY = "theme_id"
STYLE_ID_KEY = "style_id"
STARTED_AT_KEY = "started_at"

# conversation stages
STAGE_WAIT_STYLE = "wait_style"
STAGE_WAIT_TEXT = "wait_text"


async def start_session(state: FSMContext, stage: str, **data: Any) -> None:
    """Replace whatever the chat had stored with a fresh session."""
    await state.set_data({**data, STAGE_KEY: stage, STARTED_AT_KEY: time.time()})


async def get_stage(state: FSMContext) -> str | None:
    data = await state.get_data()
    return data.get(STAGE_KEY)


def is_expired(data: dict[str, Any], ttl_seconds: float, now: float | None = None) -> bool:
    started_at = data.get(STARTED_AT_KEY)
    if started_at is None:
        return True
    now = time.time() if now is None else now
    return now - float(started_at) > ttl_seconds
