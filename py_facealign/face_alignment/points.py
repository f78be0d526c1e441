"""
Points-file export of pose-dependent landmark subsets.

Menpo benchmark submissions expect 68 points for semi-frontal faces and 39
points for profile faces, where the profile side is taken from head-pose yaw.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Sequence

from .annotations import FaceAnnotation, landmark_index

LOGGER = logging.getLogger(__name__)

SEMIFRONTAL_POSE = "semifrontal"

SEMIFRONTAL_LANDMARKS = (
    101, 102, 103, 104, 105, 106, 107, 108, 24, 110, 111, 112, 113, 114, 115, 116, 117,
    1, 119, 2, 121, 3, 4, 124, 5, 126, 6,
    128, 129, 130, 17, 16, 133, 134, 135, 18,
    7, 138, 139, 8, 141, 142, 11, 144, 145, 12, 147, 148,
    20, 150, 151, 22, 153, 154, 21, 156, 157, 23, 159, 160, 161, 162, 163, 164, 165, 166, 167, 168,
)

RIGHT_PROFILE_LANDMARKS = (
    101, 102, 103, 104, 105, 106, 107, 108, 24, 110, 111, 112,
    1, 119, 2, 121, 128, 129, 130, 17, 133, 16,
    139, 138, 7, 142, 141, 22, 151, 150, 20, 160, 159, 23, 163, 162, 161, 168, 167,
)

LEFT_PROFILE_LANDMARKS = (
    117, 116, 115, 114, 113, 112, 111, 110, 24, 108, 107, 106,
    6, 126, 5, 124, 128, 129, 130, 17, 135, 18,
    144, 145, 12, 147, 148, 22, 153, 154, 21, 156, 157, 23, 163, 164, 165, 166, 167,
)


def pose_directory(face: FaceAnnotation) -> str:
    return Path(face.filename).parent.name


def menpo_landmark_subset(face: FaceAnnotation) -> tuple[int, ...]:
    if pose_directory(face) == SEMIFRONTAL_POSE:
        return SEMIFRONTAL_LANDMARKS
    yaw = face.headpose.yaw if face.headpose is not None else 0.0
    if yaw > 0.0:
        return RIGHT_PROFILE_LANDMARKS
    return LEFT_PROFILE_LANDMARKS


def write_points_file(face: FaceAnnotation, landmark_ids: Sequence[int], path: Path | str) -> Path:
    """Write ``landmark_ids`` of ``face`` in the ibug ``.pts`` format.

    Ids with no landmark on the face are skipped, so ``n_points`` may exceed
    the number of coordinate rows.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    index = landmark_index(face)
    missing = 0
    with open(path, "w") as f:
        f.write("version: 1\n")
        f.write(f"n_points: {len(landmark_ids)}\n")
        f.write("{\n")
        for idx in landmark_ids:
            landmark = index.get(idx)
            if landmark is None:
                missing += 1
                continue
            f.write(f"{landmark.x:g} {landmark.y:g}\n")
        f.write("}\n")
    if missing:
        LOGGER.warning("%d of %d points missing for %s", missing, len(landmark_ids), face.filename)
    return path


def export_points(faces: Iterable[FaceAnnotation], out_dir: Path | str) -> list[Path]:
    """Write one ``<out_dir>/<pose>/<stem>.pts`` file per face."""
    out_dir = Path(out_dir)
    written: list[Path] = []
    for face in faces:
        target = out_dir / pose_directory(face) / (Path(face.filename).stem + ".pts")
        written.append(write_points_file(face, menpo_landmark_subset(face), target))
    LOGGER.info("Exported %d points files to %s", len(written), out_dir)
    return written
