"""
CLI entrypoint for face alignment evaluation.

Usage:
    python -m py_facealign.face_alignment --ground-truth GT.jsonl --detections DET.jsonl [options]
"""

import argparse
import logging
import sys
from contextlib import nullcontext
from pathlib import Path

from .annotations import group_by_filename, load_annotations
from .evaluation import FaceAlignment, FaceAlignmentConfig, build_option_parser
from .viewer import OpenCVViewer

DEFAULT_CONFIG_PATH = Path("config/pipeline/face_alignment_eval.yaml")


def build_parser(base: FaceAlignmentConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Face Alignment Evaluation (normalized landmark error)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        parents=[build_option_parser(base)],
        epilog="""
Examples:
    # Stream per-landmark errors to stdout
    python -m py_facealign.face_alignment --ground-truth gt.jsonl --detections det.jsonl

    # Inter-pupil normalization on WFLW, keep the worst fits
    python -m py_facealign.face_alignment --ground-truth gt.jsonl --detections det.jsonl \\
        --measure pupils --database wflw --save-dir output/err/
        """,
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Path to evaluation config",
    )

    parser.add_argument(
        "--ground-truth",
        type=Path,
        required=True,
        help="Ground-truth annotations (JSONL, one face per line)",
    )

    parser.add_argument(
        "--detections",
        type=Path,
        required=True,
        help="Detected annotations (JSONL, grouped by filename)",
    )

    parser.add_argument(
        "--output",
        type=Path,
        help="Write error records here (default: stdout)",
    )

    parser.add_argument(
        "--save-dir",
        type=Path,
        help="Save annotated images whose mean error exceeds the threshold",
    )

    parser.add_argument(
        "--export-points-dir",
        type=Path,
        help="Export menpo .pts files here when --database menpo",
    )

    parser.add_argument(
        "--show",
        action="store_true",
        help="Display ground truth and detections for each image",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print what would be done without executing",
    )

    return parser


def _config_path(argv):
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH)
    known, _ = pre.parse_known_args(argv)
    return known.config


def main(argv=None):
    argv = list(sys.argv[1:] if argv is None else argv)

    # Peek at --verbose so config loading is logged at the right level
    log_level = logging.DEBUG if ("--verbose" in argv or "-v" in argv) else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger = logging.getLogger("face_alignment")

    try:
        base = FaceAlignmentConfig.from_yaml(_config_path(argv))
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    args, unknown = build_parser(base).parse_known_args(argv)
    if unknown:
        logger.warning(f"Ignoring unrecognized arguments: {' '.join(unknown)}")

    evaluator = FaceAlignment(base)
    config = evaluator.parse_options(argv)
    if args.save_dir:
        config.save_dir = args.save_dir
    if args.export_points_dir:
        config.export_points_dir = args.export_points_dir

    logger.info(f"Ground truth: {args.ground_truth}")
    logger.info(f"Detections: {args.detections}")

    if args.dry_run:
        logger.info("[DRY RUN] Would evaluate with:")
        logger.info(f"  Measure: {config.measure.value}")
        logger.info(f"  Database: {config.database}")
        logger.info(f"  Save dir: {config.save_dir}")
        logger.info(f"  Points dir: {config.export_points_dir}")
        return 0

    try:
        ground_truth = load_annotations(args.ground_truth)
        detections = group_by_filename(load_annotations(args.detections))

        if config.save_dir is not None:
            Path(config.save_dir).mkdir(parents=True, exist_ok=True)

        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            sink = open(args.output, "w")
        else:
            sink = nullcontext(sys.stdout)

        records = 0
        saved = 0
        with sink as output:
            for ann in ground_truth:
                faces = detections.get(ann.filename, [])
                if not faces:
                    logger.debug(f"No detections for {ann.filename}")
                records += evaluator.evaluate(output, faces, ann)
                if config.save_dir is not None:
                    saved += len(evaluator.save(config.save_dir, faces, ann))
                if args.show:
                    viewer = OpenCVViewer.from_file(ann.filename)
                    evaluator.show(viewer, faces, ann)
                    viewer.show()

        logger.info(f"Wrote {records} error records for {len(ground_truth)} images")
        if config.save_dir is not None:
            logger.info(f"Saved {saved} images above threshold to {config.save_dir}")
        return 0

    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Evaluation error: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Evaluation failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
