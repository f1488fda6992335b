from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any

from reelfinder.models import AnalysisResult, ExtractedScene, SelectedScene


def export_result(
    result: AnalysisResult,
    output_dir: str | Path,
    *,
    basename: str = "scenes",
    source_path: str | None = None,
) -> dict[str, Path]:
    """Write clips, thumbnails and a JSON/CSV scene manifest into ``output_dir``."""

    resolved_output_dir = Path(output_dir)
    resolved_output_dir.mkdir(parents=True, exist_ok=True)

    manifest: list[dict[str, Any]] = []
    for extracted in result.scenes:
        clip_path = resolved_output_dir / f"clip_{extracted.index}.mp4"
        thumbnail_path = resolved_output_dir / f"clip_{extracted.index}.jpg"
        clip_path.write_bytes(extracted.clip)
        thumbnail_path.write_bytes(extracted.thumbnail)
        manifest.append(_manifest_entry(extracted, clip_path=clip_path, thumbnail_path=thumbnail_path))

    json_path = resolved_output_dir / f"{basename}.json"
    csv_path = resolved_output_dir / f"{basename}.csv"

    payload = {
        "source_path": source_path,
        "duration_seconds": round(result.duration, 3),
        "scene_count": len(manifest),
        "scenes": manifest,
        "warnings": list(result.warnings),
    }
    json_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    _write_csv(manifest, csv_path)

    return {
        "json": json_path,
        "csv": csv_path,
    }


def scene_to_dict(scene: SelectedScene) -> dict[str, Any]:
    return {
        "start_seconds": round(scene.start_time, 3),
        "end_seconds": round(scene.end_time, 3),
        "duration_seconds": round(scene.duration, 3),
        "score": round(scene.score, 6),
        "confidence": confidence_label(scene.score),
    }


def confidence_label(score: float) -> str:
    if score >= 0.8:
        return "high"
    if score >= 0.6:
        return "medium"
    return "low"


def _manifest_entry(extracted: ExtractedScene, *, clip_path: Path, thumbnail_path: Path) -> dict[str, Any]:
    return {
        "index": extracted.index,
        **scene_to_dict(extracted.scene),
        "clip_path": str(clip_path),
        "thumbnail_path": str(thumbnail_path),
        "clip_size_bytes": len(extracted.clip),
    }


def _write_csv(manifest: list[dict[str, Any]], path: Path) -> None:
    fields = [
        "index",
        "start_seconds",
        "end_seconds",
        "duration_seconds",
        "score",
        "confidence",
        "clip_path",
        "thumbnail_path",
    ]

    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=fields, extrasaction="ignore")
        writer.writeheader()
        for entry in manifest:
            writer.writerow(
                {
                    **entry,
                    "start_seconds": f"{entry['start_seconds']:.3f}",
                    "end_seconds": f"{entry['end_seconds']:.3f}",
                    "score": f"{entry['score']:.4f}",
                }
            )
