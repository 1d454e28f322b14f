from __future__ import annotations

import time
from typing import Callable

import httpx
from loguru import logger

RUN_BASE_URL = "https://fal.run"
RUN_CONNECT_TIMEOUT = 10.0
RUN_READ_TIMEOUT = 60.0
RUN_WRITE_TIMEOUT = 30.0
RUN_MAX_ATTEMPTS = 3
RUN_RETRY_BACKOFF = 2.0


def _normalize_path(path: str) -> str:
    return path.strip("/")


class FalClient:
    """Client for the synchronous fal.run endpoints."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = RUN_BASE_URL,
        http_client: httpx.Client | None = None,
        max_attempts: int = RUN_MAX_ATTEMPTS,
        retry_backoff: float = RUN_RETRY_BACKOFF,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.max_attempts = max(1, max_attempts)
        self.retry_backoff = retry_backoff
        self._sleep = sleep
        self._http = http_client or httpx.Client(
            timeout=httpx.Timeout(
                connect=RUN_CONNECT_TIMEOUT,
                read=RUN_READ_TIMEOUT,
                write=RUN_WRITE_TIMEOUT,
                pool=30.0,
            ),
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Key {self.api_key}",
            "Content-Type": "application/json",
        }

    def run_model(self, model: str, payload: dict) -> dict:
        url = f"{self.base_url}/{_normalize_path(model)}"
        logger.debug("fal request: POST {} payload={}", url, payload)
        last_error: Exception | None = None
        for attempt in range(self.max_attempts):
            try:
                response = self._http.post(url, json=payload, headers=self._headers())
                if response.is_error:
                    logger.debug("fal response: {} {} -> {}", url, response.status_code, response.text)
                    response.raise_for_status()
                data = response.json()
                logger.debug("fal response: {} {} -> {}", url, response.status_code, data)
                return data
            except (httpx.TimeoutException, httpx.RemoteProtocolError) as exc:
                last_error = exc
                logger.warning("Attempt {}: run_model {} timed out: {}", attempt + 1, model, exc)
                if attempt < self.max_attempts - 1:
                    self._sleep(self.retry_backoff * (attempt + 1))
        if last_error:
            raise last_error
        raise RuntimeError("run_model failed without explicit error")

    def close(self) -> None:
        self._http.close()
