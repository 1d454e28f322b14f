from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from loguru import logger


@dataclass(frozen=True)
class BoundingBox:
    """Rectangle in normalized [0, 1] image coordinates."""
    left: float
    top: float
    right: float
    bottom: float

    def to_pixels(self, width: int, height: int) -> tuple[float, float, float, float]:
        def clamp(value: float) -> float:
            return min(1.0, max(0.0, value))

        return (
            clamp(self.left) * width,
            clamp(self.top) * height,
            clamp(self.right) * width,
            clamp(self.bottom) * height,
        )


@dataclass(frozen=True)
class ObjectAnnotation:
    box: BoundingBox
    name: str = ""
    score: float = 0.0


@dataclass(frozen=True)
class PlacementRegion:
    name: str
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def overlap_area(self, x1: float, y1: float, x2: float, y2: float) -> float:
        overlap_w = min(self.right, x2) - max(self.x, x1)
        overlap_h = min(self.bottom, y2) - max(self.y, y1)
        if overlap_w <= 0 or overlap_h <= 0:
            return 0.0
        return overlap_w * overlap_h


# (name, x, y, width, height) as fractions of the image; order breaks ties
CANDIDATE_REGIONS: tuple[tuple[str, float, float, float, float], ...] = (
    ("bottom-center", 0.05, 0.64, 0.90, 0.33),
    ("top-left", 0.03, 0.03, 0.45, 0.30),
    ("top-right", 0.52, 0.03, 0.45, 0.30),
    ("bottom-left", 0.03, 0.67, 0.45, 0.30),
    ("bottom-right", 0.52, 0.67, 0.45, 0.30),
)


def candidate_regions(width: int, height: int) -> list[PlacementRegion]:
    return [
        PlacementRegion(name, x * width, y * height, w * width, h * height)
        for name, x, y, w, h in CANDIDATE_REGIONS
    ]


def select_region(
    width: int,
    height: int,
    annotations: Sequence[ObjectAnnotation] = (),
) -> PlacementRegion:
    """Pick the candidate region with the least total overlap with detected objects.

    ``min`` keeps the first of equally good regions, so declaration order breaks ties.
    """
    boxes = [annotation.box.to_pixels(width, height) for annotation in annotations]
    scored = [
        (sum(region.overlap_area(*box) for box in boxes), region)
        for region in candidate_regions(width, height)
    ]
    best_overlap, best = min(scored, key=lambda item: item[0])
    logger.debug("Selected region {} (overlap {:.1f}px², {} objects)", best.name, best_overlap, len(boxes))
    return best
