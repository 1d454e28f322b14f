from __future__ import annotations

import time
from typing import Callable
from urllib.parse import quote

import httpx
from loguru import logger

BASE_URL = "https://image.pollinations.ai/prompt"
DEFAULT_MODEL = "flux"
MAX_ATTEMPTS = 3
RETRY_DELAY = 5.0
DOWNLOAD_TIMEOUT = httpx.Timeout(connect=10.0, read=120.0, write=30.0, pool=30.0)


class ImageGenerationError(RuntimeError):
    """The background image could not be generated."""


class PollinationsClient:
    def __init__(
        self,
        *,
        base_url: str = BASE_URL,
        model: str = DEFAULT_MODEL,
        http_client: httpx.Client | None = None,
        max_attempts: int = MAX_ATTEMPTS,
        retry_delay: float = RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay
        self._sleep = sleep
        self._http = http_client or httpx.Client(timeout=DOWNLOAD_TIMEOUT, follow_redirects=True)

    def build_url(self, prompt: str) -> str:
        return f"{self.base_url}/{quote(prompt, safe='')}"

    def fetch_generated_image(self, prompt: str, width: int, height: int, seed: int) -> bytes:
        url = self.build_url(prompt)
        params = {
            "width": width,
            "height": height,
            "seed": seed,
            "model": self.model,
            "nologo": "true",
        }
        last_error: Exception | None = None
        for attempt in range(self.max_attempts):
            try:
                logger.info("Attempt {}/{}: fetching image from Pollinations (seed {})", attempt + 1, self.max_attempts, seed)
                response = self._http.get(url, params=params)
                response.raise_for_status()
                if not response.content:
                    raise ImageGenerationError("Pollinations returned an empty body")
                logger.info("Pollinations image received: {} bytes", len(response.content))
                return response.content
            except (httpx.HTTPError, ImageGenerationError) as exc:
                last_error = exc
                logger.warning("Attempt {} failed: {}", attempt + 1, exc)
                if attempt < self.max_attempts - 1:
                    logger.info("Retrying in {:.1f}s...", self.retry_delay)
                    self._sleep(self.retry_delay)
        raise ImageGenerationError(
            f"Failed to generate image after {self.max_attempts} attempts: {last_error}"
        ) from last_error

    def close(self) -> None:
        self._http.close()
