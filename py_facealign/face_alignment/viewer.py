"""
Image viewer abstraction.

Drawing code only needs ``line`` and ``circle``; ``OpenCVViewer`` renders
onto a BGR numpy canvas and can display or persist the result.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, Sequence

import cv2  # type: ignore
import numpy as np

LOGGER = logging.getLogger(__name__)

Color = Sequence[int]


class Viewer(Protocol):
    def line(self, x1: float, y1: float, x2: float, y2: float, thickness: int, color: Color) -> None:
        ...

    def circle(self, x: float, y: float, radius: int, fill: int, color: Color) -> None:
        ...


def _pt(x: float, y: float) -> tuple[int, int]:
    return int(round(x)), int(round(y))


class OpenCVViewer:
    """Viewer backed by an OpenCV BGR image."""

    def __init__(self, image: np.ndarray, window_name: str = "face_alignment"):
        self.image = np.ascontiguousarray(image)
        self.window_name = window_name

    @classmethod
    def from_file(cls, path: Path | str, **kwargs) -> "OpenCVViewer":
        image = cv2.imread(str(path), cv2.IMREAD_COLOR)
        if image is None:
            raise FileNotFoundError(f"Image not found or unreadable: {path}")
        return cls(image, **kwargs)

    def line(self, x1: float, y1: float, x2: float, y2: float, thickness: int, color: Color) -> None:
        cv2.line(self.image, _pt(x1, y1), _pt(x2, y2), tuple(int(c) for c in color), int(thickness))

    def circle(self, x: float, y: float, radius: int, fill: int, color: Color) -> None:
        # fill < 0 draws a filled disc, otherwise it is the outline thickness
        cv2.circle(self.image, _pt(x, y), int(radius), tuple(int(c) for c in color), int(fill))

    def show(self, wait_ms: int = 0) -> int:
        cv2.imshow(self.window_name, self.image)
        return int(cv2.waitKey(int(wait_ms)))

    def save(self, path: Path | str) -> bool:
        out_path = Path(path)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        ok = bool(cv2.imwrite(str(out_path), self.image))
        if not ok:
            LOGGER.warning("Failed to write viewer image to %s", out_path)
        return ok
