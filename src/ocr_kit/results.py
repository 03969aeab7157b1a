"""Result records produced by the layout and OCR stages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np


Rect = Tuple[float, float, float, float]


@dataclass(frozen=True)
class Detection:
    """A class-labeled layout box in original image coordinates."""

    class_id: int
    class_name: str
    score: float
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def rect(self) -> Rect:
        return (self.x1, self.y1, self.x2, self.y2)


@dataclass(frozen=True, eq=False)
class TextBox:
    """Four corner points (top-left, top-right, bottom-right, bottom-left) and a score."""

    points: np.ndarray
    score: float

    def bounding_rect(self) -> Rect:
        """Axis-aligned extrema of the four points."""
        xs = self.points[:, 0]
        ys = self.points[:, 1]
        return (float(xs.min()), float(ys.min()), float(xs.max()), float(ys.max()))

    def as_list(self) -> List[List[float]]:
        return [[float(x), float(y)] for x, y in self.points]


@dataclass(frozen=True)
class TextLine:
    """Recognized text with its axis-aligned box."""

    x1: float
    y1: float
    x2: float
    y2: float
    text: str
    score: float

    @classmethod
    def from_box(cls, box: TextBox, text: str, score: float) -> TextLine:
        x1, y1, x2, y2 = box.bounding_rect()
        return cls(x1=x1, y1=y1, x2=x2, y2=y2, text=text, score=float(score))
