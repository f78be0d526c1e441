"""
Face alignment evaluation.

Compares detected landmarks against a ground-truth annotation: draws both
skeletons, streams per-landmark normalized errors and keeps annotated images
of the worst fits for inspection.
"""

from __future__ import annotations

import argparse
import logging
import math
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterable, Optional, Sequence, TextIO

import cv2  # type: ignore
import numpy as np
import yaml

from .annotations import FaceAnnotation, landmark_index
from .errors import ErrorMeasure, get_normalized_errors
from .points import export_points
from .viewer import Color, OpenCVViewer, Viewer

LOGGER = logging.getLogger(__name__)

DEFAULT_MEASURE = ErrorMeasure.HEIGHT
DEFAULT_DATABASE = "aflw"
DATABASE_CHOICES = (
    "300w_public", "300w_private", "cofw", "aflw", "wflw", "ls3dw", "300wlp", "menpo", "3dmenpo", "all",
)

# BGR
CYAN = (255, 122, 0)
BLUE = (255, 0, 0)
GREEN = (0, 255, 0)
RED = (0, 0, 255)

GROUND_TRUTH_COLORS = (CYAN, BLUE)
DETECTION_COLORS = (GREEN, RED)


@dataclass
class FaceAlignmentConfig:
    """Evaluation settings shared by show/evaluate/save."""

    measure: ErrorMeasure = DEFAULT_MEASURE
    database: str = DEFAULT_DATABASE

    # Output
    save_dir: Optional[Path] = None
    export_points_dir: Optional[Path] = None

    @classmethod
    def from_yaml(cls, path: Path) -> "FaceAlignmentConfig":
        """Load config from YAML file."""
        path = Path(path)
        if not path.exists():
            LOGGER.warning("Config not found at %s, using defaults", path)
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        section = data.get("face_alignment_eval", {}) or {}
        output = section.get("output", {}) or {}
        save_dir = output.get("save_dir")
        points_dir = output.get("export_points_dir")

        return cls(
            measure=ErrorMeasure.parse(section.get("measure", DEFAULT_MEASURE.value), strict=True),
            database=str(section.get("database", DEFAULT_DATABASE)),
            save_dir=Path(save_dir) if save_dir else None,
            export_points_dir=Path(points_dir) if points_dir else None,
        )


def build_option_parser(base: Optional[FaceAlignmentConfig] = None) -> argparse.ArgumentParser:
    base = base or FaceAlignmentConfig()
    parser = argparse.ArgumentParser(description="FaceAlignment options", add_help=False)
    parser.add_argument(
        "--measure",
        default=base.measure.value,
        help="Select measure [pupils, corners, height, diagonal]",
    )
    parser.add_argument(
        "--database",
        default=base.database,
        help=f"Choose database [{', '.join(DATABASE_CHOICES)}]",
    )
    return parser


def parse_options(
    argv: Optional[Sequence[str]] = None,
    base: Optional[FaceAlignmentConfig] = None,
) -> FaceAlignmentConfig:
    """Read ``--measure`` and ``--database`` from ``argv``.

    Unregistered options are ignored. Measure text that is not pupils,
    corners or height resolves to diagonal.
    """
    base = base or FaceAlignmentConfig()
    parser = build_option_parser(base)
    LOGGER.debug("%s", parser.format_help())

    args, unknown = parser.parse_known_args(list(argv) if argv is not None else None)
    if unknown:
        LOGGER.debug("Ignoring unregistered options: %s", " ".join(unknown))

    return replace(base, measure=ErrorMeasure.parse(args.measure), database=str(args.database))


def marker_sizes(bbox_height: float) -> tuple[int, int]:
    """(radius, thickness) for landmark markers scaled by face height."""
    # round half up
    radius = max(int(math.floor(bbox_height * 0.01 + 0.5)), 3)
    thickness = max(int(math.floor(bbox_height * 0.005 + 0.5)), 2)
    return radius, thickness


def save_threshold(config: FaceAlignmentConfig) -> float:
    """Mean-error threshold above which annotated images are kept."""
    threshold = 8.0
    if config.database == "wflw":
        threshold = 10.0
    if config.measure == ErrorMeasure.HEIGHT:
        threshold = 4.0
    if config.measure == ErrorMeasure.DIAGONAL:
        threshold = 3.0
    return threshold


def next_available_path(dirpath: Path | str, filename: str) -> Path:
    """``<dirpath>/<n>_<basename>`` for the smallest n not already on disk."""
    dirpath = Path(dirpath)
    basename = Path(filename).name
    num = 0
    while True:
        candidate = dirpath / f"{num}_{basename}"
        if not candidate.exists():
            return candidate
        num += 1


def draw_annotation(
    viewer: Viewer,
    annotation: FaceAnnotation,
    colors: tuple[Color, Color],
    radius: int,
    thickness: int,
) -> None:
    """Draw each part as a polyline with a filled marker per landmark.

    ``colors`` is (visible, occluded). A segment is visible when either of
    its endpoints is.
    """
    visible_color, occluded_color = colors
    for part in annotation.parts:
        landmarks = part.landmarks
        for i, landmark in enumerate(landmarks):
            if i + 1 < len(landmarks):
                nxt = landmarks[i + 1]
                if not landmark.is_occluded or not nxt.is_occluded:
                    color = visible_color
                else:
                    color = occluded_color
                viewer.line(landmark.x, landmark.y, nxt.x, nxt.y, thickness, color)
            viewer.circle(
                landmark.x,
                landmark.y,
                radius,
                -1,
                occluded_color if landmark.is_occluded else visible_color,
            )


def format_error_record(
    tag: str,
    face: FaceAnnotation,
    ann: FaceAnnotation,
    measure: ErrorMeasure,
) -> str:
    """One evaluation record: tag, filename, then ``idx err [gt_occ] [det_occ]`` per landmark."""
    indices, errors = get_normalized_errors(face, ann, measure)
    gt_index = landmark_index(ann)
    det_index = landmark_index(face)

    fields = [tag, ann.filename]
    for idx, err in zip(indices, errors):
        fields.append(str(idx))
        fields.append(f"{err:g}")
        gt = gt_index.get(idx)
        if gt is not None:
            fields.append(f"{gt.occluded:g}")
        det = det_index.get(idx)
        if det is not None:
            fields.append(f"{det.occluded:g}")
    return " ".join(fields)


def mean_error(errors: Sequence[float]) -> float:
    if not errors:
        return 0.0
    return float(np.mean(np.asarray(errors, dtype=np.float64)))


class FaceAlignment:
    """Evaluation and visualization for landmark-based face alignment."""

    def __init__(self, config: Optional[FaceAlignmentConfig] = None):
        self.config = config or FaceAlignmentConfig()

    def get_component_class(self) -> str:
        return type(self).__name__

    def parse_options(self, argv: Optional[Sequence[str]] = None) -> FaceAlignmentConfig:
        self.config = parse_options(argv, base=self.config)
        LOGGER.info(
            "FaceAlignment options: measure=%s database=%s",
            self.config.measure.value,
            self.config.database,
        )
        return self.config

    def show(self, viewer: Viewer, faces: Iterable[FaceAnnotation], ann: FaceAnnotation) -> None:
        """Draw ground truth and every detected face on ``viewer``."""
        radius, thickness = marker_sizes(ann.bbox.height)
        draw_annotation(viewer, ann, GROUND_TRUTH_COLORS, radius, thickness)
        for face in faces:
            draw_annotation(viewer, face, DETECTION_COLORS, radius, thickness)

    def evaluate(self, output: TextIO, faces: Iterable[FaceAnnotation], ann: FaceAnnotation) -> int:
        """Write one error record per detected face to ``output``.

        Returns:
            Number of records written
        """
        tag = self.get_component_class()
        count = 0
        for face in faces:
            output.write(format_error_record(tag, face, ann, self.config.measure) + "\n")
            count += 1
        return count

    def save(self, dirpath: Path | str, faces: Sequence[FaceAnnotation], ann: FaceAnnotation) -> list[Path]:
        """Write annotated copies of the source image for faces above the error threshold.

        Returns:
            Paths of the images written
        """
        threshold = save_threshold(self.config)
        image = cv2.imread(ann.filename, cv2.IMREAD_COLOR)
        if image is None:
            LOGGER.warning("Could not read %s, skipping save", ann.filename)
            return []

        canvas = OpenCVViewer(image)
        radius, thickness = marker_sizes(ann.bbox.height)
        draw_annotation(canvas, ann, GROUND_TRUTH_COLORS, radius, thickness)

        written: list[Path] = []
        for face in faces:
            draw_annotation(canvas, face, DETECTION_COLORS, radius, thickness)
            _, errors = get_normalized_errors(face, ann, self.config.measure)
            if not errors:
                LOGGER.warning(
                    "No matched landmarks between %s and ground truth %s, mean error shown as 0",
                    face.filename,
                    ann.filename,
                )
            err = mean_error(errors)
            rows = canvas.image.shape[0]
            cv2.putText(canvas.image, f"{err:f}", (10, rows - 10), cv2.FONT_HERSHEY_SIMPLEX, 1, RED)
            if err > threshold:
                filepath = next_available_path(dirpath, face.filename)
                if canvas.save(filepath):
                    LOGGER.info("Saved %s (mean error %.3f > %.1f)", filepath, err, threshold)
                    written.append(filepath)

        if self.config.database == "menpo" and self.config.export_points_dir is not None:
            export_points(faces, self.config.export_points_dir)

        return written
