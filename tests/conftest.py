import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from py_facealign.face_alignment.annotations import (  # noqa: E402
    BoundingBox,
    FaceAnnotation,
    FaceLandmark,
    FacePart,
    HeadPose,
)

# feature_idx -> (x, y) for a small two-eye face inside a 100x200 box at (0, 0)
LEFT_EYE = {7: (20.0, 50.0), 8: (40.0, 50.0)}
RIGHT_EYE = {11: (60.0, 50.0), 12: (80.0, 50.0)}
MOUTH = {20: (40.0, 150.0), 21: (50.0, 155.0), 22: (60.0, 150.0)}


def make_face(
    filename: str = "images/face.jpg",
    parts: Optional[Dict[str, Dict[int, Tuple[float, float]]]] = None,
    bbox: Sequence[float] = (0.0, 0.0, 100.0, 200.0),
    occluded: Optional[Dict[int, float]] = None,
    offset: Tuple[float, float] = (0.0, 0.0),
    yaw: Optional[float] = None,
) -> FaceAnnotation:
    """Build an annotation from {label: {feature_idx: (x, y)}}, shifted by ``offset``."""
    if parts is None:
        parts = {"leye": LEFT_EYE, "reye": RIGHT_EYE, "mouth": MOUTH}
    occluded = occluded or {}
    face_parts: List[FacePart] = []
    for label, points in parts.items():
        landmarks = [
            FaceLandmark(
                feature_idx=idx,
                x=x + offset[0],
                y=y + offset[1],
                occluded=occluded.get(idx, 0.0),
            )
            for idx, (x, y) in points.items()
        ]
        face_parts.append(FacePart(label=label, landmarks=landmarks))
    return FaceAnnotation(
        bbox=BoundingBox(*bbox),
        filename=filename,
        parts=face_parts,
        headpose=HeadPose(yaw=yaw) if yaw is not None else None,
    )


@pytest.fixture
def face_factory():
    return make_face
