from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_ROOT = Path(__file__).parent.parent
PROJECT_ROOT = PACKAGE_ROOT.parent

DEFAULT_BLESSING_PROMPT = (
    "請根據主題「{theme}」和風格「{style}」，生成一句長度介於{min_length}到{max_length}個字之間的"
    "繁體中文祝福語。請直接提供祝福語文字，不要包含任何其他說明或引號。"
)
DEFAULT_FALLBACK_PROMPT = (
    "請生成一句長度介於{min_length}到{max_length}個字之間的通用中文祝福語。"
    "請直接提供祝福語文字，不要包含任何其他說明或引號。"
)


class Settings(BaseSettings):
    tg_bot_token: str = ""
    app_env: Literal["local", "vps"] = "local"

    # Session store (aiogram FSM); without redis_url sessions live in memory
    redis_url: str | None = None
    session_ttl_seconds: int = 300

    fal_api_key: str = ""
    fal_run_base_url: str = "https://fal.run"
    fal_llm_endpoint: str = "fal-ai/any-llm"
    fal_llm_model: str = "google/gemini-flash-1.5"

    blessing_prompt_template: str = DEFAULT_BLESSING_PROMPT
    blessing_fallback_prompt_template: str = DEFAULT_FALLBACK_PROMPT
    blessing_final_fallback_text: str = "平安喜樂，萬事如意"
    blessing_min_length: int = 5
    blessing_max_length: int = 15
    blessing_max_attempts: int = 3

    pollinations_base_url: str = "https://image.pollinations.ai/prompt"
    pollinations_model: str = "flux"
    image_width: int = 1024
    image_height: int = 1024
    image_fetch_max_attempts: int = 3
    image_fetch_retry_delay: float = 5.0  # seconds between Pollinations retries

    google_vision_api_key: str | None = None  # object-aware placement is skipped without it
    google_vision_url: str = "https://vision.googleapis.com/v1/images:annotate"

    twemoji_base_url: str = "https://cdnjs.cloudflare.com/ajax/libs/twemoji/14.0.2/72x72"
    twemoji_local_dir: Path = PROJECT_ROOT / "assets" / "twemoji" / "72x72"

    font_path: Path = PROJECT_ROOT / "assets" / "fonts" / "LXGWWenKaiMonoTC-Regular.ttf"
    font_size_divisor: float = 20.0
    text_color: str = "#FFFFFF"
    panel_color: tuple[int, int, int, int] = (0, 0, 0, 128)
    fit_max_attempts: int = 8

    trigger_phrases: list[str] = Field(
        default_factory=lambda: ["開始", "生成圖片", "長輩圖", "我想做圖", "start", "generate image"]
    )
    max_text_length: int = 20
    image_deletion_delay_seconds: float = 10.0
    welcome_message: str = (
        "哈囉！我是您的專屬長輩圖生成器！🌸\n\n"
        "您可以透過我輕鬆生成帶有祝福語的圖片，並分享給親朋好友。\n\n"
        "請輸入 {keywords} 來製作您的第一張長輩圖吧！"
    )
    generation_error_message: str = "圖片生成失敗，系統有點忙，請稍後再試一次。"

    themes_path: Path = PACKAGE_ROOT / "data" / "themes.json"
    styles_path: Path = PACKAGE_ROOT / "data" / "styles.json"
    media_dir: Path = Path("./media")
    log_level: str = "INFO"
    log_dir: Path = Path("./logs")

    model_config = SettingsConfigDict(
        env_file=(".env", "env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def greetings_dir(self) -> Path:
        return self.media_dir / "greetings"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def reload_settings() -> Settings:
    """Re-read settings from the environment (clears the cache)."""
    get_settings.cache_clear()
    return get_settings()
