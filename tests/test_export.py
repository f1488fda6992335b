from __future__ import annotations

import csv
import json

from reelfinder.export import confidence_label, export_result
from reelfinder.models import AnalysisResult, ExtractedScene, SelectedScene


def _sample_result() -> AnalysisResult:
    return AnalysisResult(
        duration=60.0,
        scenes=[
            ExtractedScene(index=1, scene=SelectedScene(start_time=5.0, end_time=15.0, score=0.83), thumbnail=b"j1", clip=b"c1"),
            ExtractedScene(index=3, scene=SelectedScene(start_time=40.0, end_time=50.0, score=0.55), thumbnail=b"j3", clip=b"c3"),
        ],
        warnings=["Dropped scene 2"],
    )


def test_export_result_writes_clips_thumbnails_and_manifest(tmp_path) -> None:
    exported = export_result(_sample_result(), tmp_path, basename="final", source_path="/tmp/in.mp4")

    assert (tmp_path / "clip_1.mp4").read_bytes() == b"c1"
    assert (tmp_path / "clip_3.jpg").read_bytes() == b"j3"
    assert not (tmp_path / "clip_2.mp4").exists()

    payload = json.loads(exported["json"].read_text(encoding="utf-8"))
    assert payload["scene_count"] == 2
    assert payload["warnings"] == ["Dropped scene 2"]
    assert payload["scenes"][0]["confidence"] == "high"
    assert payload["scenes"][1]["start_seconds"] == 40.0


def test_export_result_csv_contains_confidence(tmp_path) -> None:
    exported = export_result(_sample_result(), tmp_path)

    with exported["csv"].open("r", encoding="utf-8", newline="") as handle:
        rows = list(csv.DictReader(handle))

    assert [row["confidence"] for row in rows] == ["high", "low"]
    assert rows[0]["start_seconds"] == "5.000"
    assert rows[0]["score"] == "0.8300"


def test_confidence_label_thresholds() -> None:
    assert confidence_label(0.8) == "high"
    assert confidence_label(0.6) == "medium"
    assert confidence_label(0.59) == "low"
