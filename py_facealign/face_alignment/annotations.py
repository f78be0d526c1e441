from __future__ import annotations

import json
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

LOGGER = logging.getLogger(__name__)

OCCLUSION_THRESHOLD = 0.5


@dataclass
class FaceLandmark:
    """2D facial keypoint with a stable feature index and an occlusion score."""

    feature_idx: int
    x: float
    y: float
    occluded: float = 0.0

    @property
    def pos(self) -> tuple[float, float]:
        return self.x, self.y

    @property
    def is_occluded(self) -> bool:
        return self.occluded >= OCCLUSION_THRESHOLD

    def to_dict(self) -> dict[str, Any]:
        return {
            "feature_idx": int(self.feature_idx),
            "pos": [float(self.x), float(self.y)],
            "occluded": float(self.occluded),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "FaceLandmark":
        pos = d.get("pos")
        if pos is None:
            pos = [d.get("x"), d.get("y")]
        if not isinstance(pos, (list, tuple)) or len(pos) < 2 or pos[0] is None or pos[1] is None:
            raise ValueError(f"Landmark is missing a 2D position: {d!r}")
        if "feature_idx" not in d:
            raise ValueError(f"Landmark is missing feature_idx: {d!r}")
        return cls(
            feature_idx=int(d["feature_idx"]),
            x=float(pos[0]),
            y=float(pos[1]),
            occluded=float(d.get("occluded", 0.0)),
        )


@dataclass
class FacePart:
    """Named, ordered curve of landmarks (jaw, eye, lip contour, ...)."""

    label: str
    landmarks: list[FaceLandmark] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "landmarks": [lm.to_dict() for lm in self.landmarks]}

    @classmethod
    def from_dict(cls, d: dict) -> "FacePart":
        return cls(
            label=str(d.get("label", "")),
            landmarks=[FaceLandmark.from_dict(lm) for lm in d.get("landmarks", [])],
        )


@dataclass
class BoundingBox:
    """Axis-aligned face box as top-left position plus size."""

    x: float
    y: float
    width: float
    height: float

    def to_list(self) -> list[float]:
        return [float(self.x), float(self.y), float(self.width), float(self.height)]

    @classmethod
    def from_value(cls, value: Any) -> "BoundingBox":
        if isinstance(value, dict):
            return cls(
                x=float(value.get("x", 0.0)),
                y=float(value.get("y", 0.0)),
                width=float(value.get("width", 0.0)),
                height=float(value.get("height", 0.0)),
            )
        if isinstance(value, (list, tuple)) and len(value) >= 4:
            x, y, w, h = value[:4]
            return cls(float(x), float(y), float(w), float(h))
        raise ValueError(f"Expected bbox as [x, y, width, height], got {value!r}")


@dataclass(frozen=True)
class HeadPose:
    """Head pose angles in degrees."""

    yaw: float
    pitch: float = 0.0
    roll: float = 0.0


@dataclass
class FaceAnnotation:
    """Ground truth or detected face: bbox, source image, landmark parts and pose."""

    bbox: BoundingBox
    filename: str
    parts: list[FacePart] = field(default_factory=list)
    headpose: HeadPose | None = None

    def iter_landmarks(self) -> Iterable[FaceLandmark]:
        for part in self.parts:
            yield from part.landmarks

    def part(self, label: str) -> FacePart | None:
        for part in self.parts:
            if part.label == label:
                return part
        return None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "filename": self.filename,
            "bbox": self.bbox.to_list(),
            "parts": [part.to_dict() for part in self.parts],
        }
        if self.headpose is not None:
            d["headpose"] = [self.headpose.yaw, self.headpose.pitch, self.headpose.roll]
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "FaceAnnotation":
        if "filename" not in d:
            raise ValueError("Annotation is missing filename")
        headpose = d.get("headpose")
        pose = None
        if isinstance(headpose, dict):
            pose = HeadPose(
                yaw=float(headpose.get("yaw", 0.0)),
                pitch=float(headpose.get("pitch", 0.0)),
                roll=float(headpose.get("roll", 0.0)),
            )
        elif isinstance(headpose, (list, tuple)) and headpose:
            angles = [float(v) for v in headpose[:3]] + [0.0] * (3 - min(len(headpose), 3))
            pose = HeadPose(*angles)
        return cls(
            bbox=BoundingBox.from_value(d.get("bbox", [0.0, 0.0, 0.0, 0.0])),
            filename=str(d["filename"]),
            parts=[FacePart.from_dict(part) for part in d.get("parts", [])],
            headpose=pose,
        )


def landmark_index(annotation: FaceAnnotation) -> dict[int, FaceLandmark]:
    """Map feature_idx -> landmark; the first occurrence in part order wins."""
    index: dict[int, FaceLandmark] = {}
    for landmark in annotation.iter_landmarks():
        index.setdefault(landmark.feature_idx, landmark)
    return index


def load_annotations(path: Path | str) -> list[FaceAnnotation]:
    """
    Load face annotations from a JSONL file (one annotation per line).

    Args:
        path: Path to annotations.jsonl

    Returns:
        Annotations in file order
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Annotations not found: {path}")

    annotations: list[FaceAnnotation] = []
    with open(path) as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                payload = json.loads(line)
            except json.JSONDecodeError as exc:
                raise ValueError(f"{path}:{line_no}: invalid JSON ({exc})") from exc
            annotations.append(FaceAnnotation.from_dict(payload))

    LOGGER.info("Loaded %d annotations from %s", len(annotations), path)
    return annotations


def write_annotations(path: Path | str, annotations: Iterable[FaceAnnotation]) -> int:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with open(path, "w") as f:
        for annotation in annotations:
            f.write(json.dumps(annotation.to_dict()) + "\n")
            count += 1
    return count


def group_by_filename(annotations: Iterable[FaceAnnotation]) -> dict[str, list[FaceAnnotation]]:
    grouped: dict[str, list[FaceAnnotation]] = defaultdict(list)
    for annotation in annotations:
        grouped[annotation.filename].append(annotation)
    return dict(grouped)
