from __future__ import annotations

import logging
import math
from enum import Enum

import numpy as np

from .annotations import FaceAnnotation, FacePart, landmark_index

LOGGER = logging.getLogger(__name__)

LEFT_EYE_LABEL = "leye"
RIGHT_EYE_LABEL = "reye"


class ErrorMeasure(str, Enum):
    """Face-size measure used to normalize landmark localization error."""

    PUPILS = "pupils"
    CORNERS = "corners"
    HEIGHT = "height"
    DIAGONAL = "diagonal"

    @classmethod
    def parse(cls, value: str | None, *, strict: bool = False) -> "ErrorMeasure":
        """Resolve measure text by exact match.

        Without ``strict`` anything other than pupils/corners/height,
        including differently cased or padded text, resolves to DIAGONAL.
        """
        text = value or ""
        if text == cls.PUPILS.value:
            return cls.PUPILS
        if text == cls.CORNERS.value:
            return cls.CORNERS
        if text == cls.HEIGHT.value:
            return cls.HEIGHT
        if strict and text != cls.DIAGONAL.value:
            choices = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown error measure {value!r} (expected one of: {choices})")
        return cls.DIAGONAL


def _part_points(ann: FaceAnnotation, label: str) -> np.ndarray:
    part: FacePart | None = ann.part(label)
    if part is None or not part.landmarks:
        raise ValueError(f"Annotation {ann.filename} has no '{label}' landmarks")
    return np.asarray([lm.pos for lm in part.landmarks], dtype=np.float64)


def _pupils_distance(ann: FaceAnnotation) -> float:
    left = _part_points(ann, LEFT_EYE_LABEL).mean(axis=0)
    right = _part_points(ann, RIGHT_EYE_LABEL).mean(axis=0)
    return float(np.linalg.norm(left - right))


def _corners_distance(ann: FaceAnnotation) -> float:
    left_pts = _part_points(ann, LEFT_EYE_LABEL)
    right_pts = _part_points(ann, RIGHT_EYE_LABEL)
    left_center = left_pts.mean(axis=0)
    right_center = right_pts.mean(axis=0)
    # Outer corners are the eye points farthest from the opposite eye.
    left_corner = left_pts[int(np.argmax(np.linalg.norm(left_pts - right_center, axis=1)))]
    right_corner = right_pts[int(np.argmax(np.linalg.norm(right_pts - left_center, axis=1)))]
    return float(np.linalg.norm(left_corner - right_corner))


def normalization_distance(ann: FaceAnnotation, measure: ErrorMeasure) -> float:
    """Return the ground-truth face-size distance for ``measure``."""
    if measure == ErrorMeasure.PUPILS:
        distance = _pupils_distance(ann)
    elif measure == ErrorMeasure.CORNERS:
        distance = _corners_distance(ann)
    elif measure == ErrorMeasure.HEIGHT:
        distance = float(ann.bbox.height)
    else:
        distance = math.hypot(float(ann.bbox.width), float(ann.bbox.height))
    if not distance > 0.0:
        raise ValueError(f"Degenerate {measure.value} normalization for {ann.filename}: {distance}")
    return distance


def get_normalized_errors(
    face: FaceAnnotation,
    ann: FaceAnnotation,
    measure: ErrorMeasure,
) -> tuple[list[int], list[float]]:
    """Per-landmark error of ``face`` against ground truth ``ann``.

    Errors are Euclidean distances expressed as a percentage of the
    normalization distance. Only ground-truth landmarks with a detected
    counterpart (same ``feature_idx``) are reported, in ground-truth order.

    Returns:
        (indices, errors) as parallel lists
    """
    distance = normalization_distance(ann, measure)
    detected = landmark_index(face)

    indices: list[int] = []
    errors: list[float] = []
    seen: set[int] = set()
    for gt in ann.iter_landmarks():
        if gt.feature_idx in seen:
            continue
        seen.add(gt.feature_idx)
        det = detected.get(gt.feature_idx)
        if det is None:
            continue
        offset = np.subtract(det.pos, gt.pos)
        indices.append(gt.feature_idx)
        errors.append(float(100.0 * np.linalg.norm(offset) / distance))

    LOGGER.debug(
        "Normalized %d landmark errors for %s (measure=%s distance=%.3f)",
        len(errors),
        ann.filename,
        measure.value,
        distance,
    )
    return indices, errors
