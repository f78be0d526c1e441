from .annotations import (
    BoundingBox,
    FaceAnnotation,
    FaceLandmark,
    FacePart,
    HeadPose,
    group_by_filename,
    landmark_index,
    load_annotations,
    write_annotations,
)
from .errors import ErrorMeasure, get_normalized_errors, normalization_distance
from .evaluation import (
    FaceAlignment,
    FaceAlignmentConfig,
    marker_sizes,
    next_available_path,
    parse_options,
    save_threshold,
)
from .viewer import OpenCVViewer, Viewer

__all__ = [
    "BoundingBox",
    "ErrorMeasure",
    "FaceAlignment",
    "FaceAlignmentConfig",
    "FaceAnnotation",
    "FaceLandmark",
    "FacePart",
    "HeadPose",
    "OpenCVViewer",
    "Viewer",
    "get_normalized_errors",
    "group_by_filename",
    "landmark_index",
    "load_annotations",
    "marker_sizes",
    "next_available_path",
    "normalization_distance",
    "parse_options",
    "save_threshold",
    "write_annotations",
]
