from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from blessing_bot.core.blessing import QuotaExceededError, TextGenerationError
from blessing_bot.providers.fal.client import FalClient

LLM_ENDPOINT = "fal-ai/any-llm"
DEFAULT_MODEL = "google/gemini-flash-1.5"

# fal answers 429 when rate limited and 402/403 once the account balance is exhausted
QUOTA_STATUS_CODES = frozenset({402, 403, 429})

SYSTEM_PROMPT = "你是一位擅長撰寫溫馨祝福語的助理。只回覆祝福語本身，不要加上說明、標點以外的符號或引號。"


def extract_text(response: Any) -> str | None:
    """Pull the generated text out of an any-llm response."""
    if isinstance(response, str):
        return response
    if not isinstance(response, dict):
        return None
    output = response.get("output")
    if isinstance(output, str) and output:
        return output
    if isinstance(output, dict):
        for key in ("content", "text"):
            if isinstance(output.get(key), str):
                return output[key]
    for key in ("text", "content"):
        if isinstance(response.get(key), str) and response[key]:
            return response[key]
    choices = response.get("choices")
    if choices:
        content = choices[0].get("message", {}).get("content")
        if isinstance(content, str):
            return content
    return None


class FalTextGenerator:
    """Text generation through fal's any-llm router."""

    def __init__(
        self,
        client: FalClient,
        *,
        model: str = DEFAULT_MODEL,
        endpoint: str = LLM_ENDPOINT,
        system_prompt: str = SYSTEM_PROMPT,
        temperature: float = 0.9,
        max_tokens: int = 100,
    ) -> None:
        self.client = client
        self.model = model
        self.endpoint = endpoint
        self.system_prompt = system_prompt
        self.temperature = temperature
        self.max_tokens = max_tokens

    def generate_text(self, prompt: str) -> str:
        payload = {
            "model": self.model,
            "prompt": prompt,
            "system_prompt": self.system_prompt,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        logger.info("Generating text with {} (prompt length: {})", self.model, len(prompt))
        try:
            response = self.client.run_model(self.endpoint, payload)
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status in QUOTA_STATUS_CODES:
                raise QuotaExceededError(f"fal rejected the call with status {status}") from exc
            raise TextGenerationError(f"fal returned status {status}") from exc
        except httpx.HTTPError as exc:
            raise TextGenerationError(f"fal request failed: {exc}") from exc

        text = extract_text(response)
        if not text or not text.strip():
            logger.warning("Unexpected response format: {}", response)
            raise TextGenerationError("fal response contained no text")
        return text.strip()
