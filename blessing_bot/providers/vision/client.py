from __future__ import annotations

import base64
from typing import Any

import httpx
from loguru import logger

from blessing_bot.core.placement import BoundingBox, ObjectAnnotation

VISION_URL = "https://vision.googleapis.com/v1/images:annotate"
MAX_RESULTS = 20


class VisionError(RuntimeError):
    """Object localization failed."""


def parse_annotations(payload: dict[str, Any]) -> list[ObjectAnnotation]:
    responses = payload.get("responses") or [{}]
    first = responses[0]
    if "error" in first:
        raise VisionError(f"Vision API error: {first['error'].get('message', first['error'])}")

    annotations: list[ObjectAnnotation] = []
    for item in first.get("localizedObjectAnnotations", []):
        vertices = item.get("boundingPoly", {}).get("normalizedVertices", [])
        if not vertices:
            continue
        # the API omits coordinates that are zero
        xs = [vertex.get("x", 0.0) for vertex in vertices]
        ys = [vertex.get("y", 0.0) for vertex in vertices]
        annotations.append(
            ObjectAnnotation(
                box=BoundingBox(min(xs), min(ys), max(xs), max(ys)),
                name=item.get("name", ""),
                score=float(item.get("score", 0.0)),
            )
        )
    return annotations


class GoogleVisionClient:
    """Google Cloud Vision object localization over the REST API."""

    def __init__(
        self,
        api_key: str | None,
        *,
        url: str = VISION_URL,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.api_key = api_key
        self.url = url
        self._http = http_client or httpx.Client(timeout=httpx.Timeout(30.0))

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def detect_objects(self, image: bytes) -> list[ObjectAnnotation]:
        if not self.enabled:
            logger.debug("Vision API key not configured, skipping object detection")
            return []
        body = {
            "requests": [
                {
                    "image": {"content": base64.b64encode(image).decode("ascii")},
                    "features": [{"type": "OBJECT_LOCALIZATION", "maxResults": MAX_RESULTS}],
                }
            ]
        }
        logger.info("Analyzing image for object localization ({} bytes)", len(image))
        try:
            response = self._http.post(self.url, params={"key": self.api_key}, json=body)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise VisionError(f"Failed to analyze image with Vision API: {exc}") from exc

        annotations = parse_annotations(payload)
        logger.info("Found {} objects", len(annotations))
        for annotation in annotations:
            logger.debug("Object: {}, score: {:.2f}", annotation.name, annotation.score)
        return annotations

    def close(self) -> None:
        self._http.close()
