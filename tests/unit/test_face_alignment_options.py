from __future__ import annotations

import pytest

from py_facealign.face_alignment.errors import ErrorMeasure
from py_facealign.face_alignment.evaluation import (
    FaceAlignment,
    FaceAlignmentConfig,
    parse_options,
)


def test_parse_options_defaults() -> None:
    config = parse_options([])

    assert config.measure == ErrorMeasure.HEIGHT
    assert config.database == "aflw"


@pytest.mark.parametrize(
    "text,expected",
    [
        ("pupils", ErrorMeasure.PUPILS),
        ("corners", ErrorMeasure.CORNERS),
        ("height", ErrorMeasure.HEIGHT),
        ("diagonal", ErrorMeasure.DIAGONAL),
        ("foo", ErrorMeasure.DIAGONAL),
        ("HEIGHT", ErrorMeasure.DIAGONAL),
        ("Pupils", ErrorMeasure.DIAGONAL),
        (" corners", ErrorMeasure.DIAGONAL),
    ],
)
def test_parse_options_measure(text: str, expected: ErrorMeasure) -> None:
    assert parse_options(["--measure", text]).measure == expected


def test_parse_options_ignores_unregistered_flags() -> None:
    config = parse_options(
        ["--detector", "sdm", "--database", "wflw", "--verbose", "extra.jsonl", "--measure=pupils"]
    )

    assert config.database == "wflw"
    assert config.measure == ErrorMeasure.PUPILS


def test_parse_options_keeps_base_values_when_absent() -> None:
    base = FaceAlignmentConfig(measure=ErrorMeasure.CORNERS, database="cofw")

    config = parse_options(["--database", "menpo"], base=base)

    assert config.measure == ErrorMeasure.CORNERS
    assert config.database == "menpo"
    # base is left untouched
    assert base.database == "cofw"


def test_component_parse_options_stores_config() -> None:
    evaluator = FaceAlignment()

    config = evaluator.parse_options(["--measure", "corners", "--database", "300w_public"])

    assert evaluator.config is config
    assert evaluator.config.measure == ErrorMeasure.CORNERS
    assert evaluator.config.database == "300w_public"


def test_error_measure_strict_parse_rejects_unknown() -> None:
    assert ErrorMeasure.parse("diagonal", strict=True) == ErrorMeasure.DIAGONAL
    with pytest.raises(ValueError):
        ErrorMeasure.parse("foo", strict=True)
    with pytest.raises(ValueError):
        ErrorMeasure.parse("Height", strict=True)


def test_config_from_yaml(tmp_path) -> None:
    yaml_content = """
face_alignment_eval:
  measure: pupils
  database: wflw
  output:
    save_dir: out/err
    export_points_dir: out/points
"""
    yaml_path = tmp_path / "eval.yaml"
    yaml_path.write_text(yaml_content)

    config = FaceAlignmentConfig.from_yaml(yaml_path)

    assert config.measure == ErrorMeasure.PUPILS
    assert config.database == "wflw"
    assert str(config.save_dir) == "out/err"
    assert str(config.export_points_dir) == "out/points"


def test_config_from_yaml_missing_file_uses_defaults(tmp_path) -> None:
    config = FaceAlignmentConfig.from_yaml(tmp_path / "missing.yaml")

    assert config == FaceAlignmentConfig()


def test_config_from_yaml_rejects_unknown_measure(tmp_path) -> None:
    yaml_path = tmp_path / "eval.yaml"
    yaml_path.write_text("face_alignment_eval:\n  measure: foo\n")

    with pytest.raises(ValueError):
        FaceAlignmentConfig.from_yaml(yaml_path)
