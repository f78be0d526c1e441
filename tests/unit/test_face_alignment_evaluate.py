from __future__ import annotations

import io

from py_facealign.face_alignment import evaluation
from py_facealign.face_alignment.errors import ErrorMeasure
from py_facealign.face_alignment.evaluation import (
    FaceAlignment,
    FaceAlignmentConfig,
    format_error_record,
)


def test_evaluate_writes_one_line_per_detected_face(face_factory) -> None:
    ann = face_factory()
    faces = [face_factory(offset=(3.0, 4.0)), face_factory(offset=(0.0, 0.0))]
    output = io.StringIO()

    count = FaceAlignment().evaluate(output, faces, ann)

    lines = output.getvalue().splitlines()
    assert count == 2
    assert len(lines) == 2
    assert lines[0].split()[:2] == ["FaceAlignment", "images/face.jpg"]
    assert lines[0] == "FaceAlignment images/face.jpg " + " ".join(
        f"{idx} 2.5 0 0" for idx in (7, 8, 11, 12, 20, 21, 22)
    )
    assert lines[1].split()[2:6] == ["7", "0", "0", "0"]


def test_evaluate_without_detections_writes_nothing(face_factory) -> None:
    output = io.StringIO()

    assert FaceAlignment().evaluate(output, [], face_factory()) == 0
    assert output.getvalue() == ""


def test_evaluate_reports_occlusions_from_both_sides(face_factory) -> None:
    parts = {"nose": {30: (10.0, 10.0), 31: (20.0, 10.0)}}
    ann = face_factory(parts=parts, occluded={30: 1.0})
    face = face_factory(parts=parts, occluded={31: 0.75})
    output = io.StringIO()

    FaceAlignment().evaluate(output, [face], ann)

    fields = output.getvalue().split()
    assert fields[2:] == ["30", "0", "1", "0", "31", "0", "0", "0.75"]


def test_evaluate_uses_configured_measure(face_factory) -> None:
    ann = face_factory()
    face = face_factory(offset=(3.0, 4.0))
    output = io.StringIO()

    FaceAlignment(FaceAlignmentConfig(measure=ErrorMeasure.PUPILS)).evaluate(output, [face], ann)

    fields = output.getvalue().split()
    assert fields[3] == "12.5"


def test_record_field_count(face_factory) -> None:
    ann = face_factory()
    face = face_factory(parts={"leye": {7: (21.0, 50.0)}, "mouth": {20: (40.0, 151.0)}})

    indices_count = 2
    record = format_error_record("Tag", face, ann, ErrorMeasure.HEIGHT)

    assert len(record.split()) == 2 + 4 * indices_count


def test_record_tag_follows_component_class(face_factory) -> None:
    class SDMAlignment(FaceAlignment):
        pass

    output = io.StringIO()
    SDMAlignment().evaluate(output, [face_factory()], face_factory())

    assert output.getvalue().startswith("SDMAlignment images/face.jpg 7 0 ")


def test_record_omits_occlusion_for_unmatched_side(face_factory, monkeypatch) -> None:
    ann = face_factory(parts={"nose": {30: (10.0, 10.0)}}, occluded={30: 1.0})
    face = face_factory(parts={"nose": {30: (10.0, 10.0), 31: (20.0, 10.0)}}, occluded={30: 1.0, 31: 0.75})
    monkeypatch.setattr(
        evaluation,
        "get_normalized_errors",
        lambda face, ann, measure: ([30, 31, 99], [1.0, 2.0, 3.0]),
    )

    record = format_error_record("T", face, ann, ErrorMeasure.HEIGHT)

    # 30 on both sides, 31 detection only, 99 on neither
    assert record == "T images/face.jpg 30 1 1 1 31 2 0.75 99 3"


def test_record_omits_occlusion_missing_from_detection(face_factory, monkeypatch) -> None:
    ann = face_factory(parts={"nose": {30: (10.0, 10.0), 32: (30.0, 10.0)}}, occluded={32: 0.25})
    face = face_factory(parts={"nose": {30: (10.0, 10.0)}})
    monkeypatch.setattr(
        evaluation,
        "get_normalized_errors",
        lambda face, ann, measure: ([32], [4.5]),
    )

    assert format_error_record("T", face, ann, ErrorMeasure.HEIGHT) == "T images/face.jpg 32 4.5 0.25"
