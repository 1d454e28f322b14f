from __future__ import annotations

from pathlib import Path

import httpx
from loguru import logger

TWEMOJI_BASE_URL = "https://cdnjs.cloudflare.com/ajax/libs/twemoji/14.0.2/72x72"


class TwemojiClient:
    """Fetches Twemoji PNG bitmaps, preferring a local copy of the 72x72 set."""

    def __init__(
        self,
        *,
        base_url: str = TWEMOJI_BASE_URL,
        local_dir: Path | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.local_dir = Path(local_dir) if local_dir else None
        self._http = http_client or httpx.Client(timeout=httpx.Timeout(10.0), follow_redirects=True)

    def fetch_emoji_bitmap(self, codepoint: str) -> bytes:
        code = codepoint.lower()
        if self.local_dir is not None:
            local_file = self.local_dir / f"{code}.png"
            if local_file.exists():
                logger.debug("Found Twemoji PNG file: {}", local_file.name)
                return local_file.read_bytes()

        url = f"{self.base_url}/{code}.png"
        logger.debug("Loading emoji from: {}", url)
        response = self._http.get(url)
        response.raise_for_status()
        return response.content

    def close(self) -> None:
        self._http.close()
