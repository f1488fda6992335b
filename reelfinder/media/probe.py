from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from reelfinder.errors import DecodeError

SHARED_LIBRARY_MARKER = "error while loading shared libraries"


@dataclass(slots=True)
class MediaInfo:
    """Container facts the analysis pipeline needs before decoding."""

    path: Path
    duration_seconds: float
    width: int | None
    height: int | None
    has_video: bool
    has_audio: bool


def probe_media(video_path: str | Path) -> MediaInfo:
    """Probe container duration and stream layout via ffprobe."""

    source_path = Path(video_path).expanduser().resolve()
    if not source_path.exists():
        raise FileNotFoundError(f"Video file not found: {source_path}")

    payload = _run_ffprobe(source_path)
    return _normalize_probe_payload(source_path, payload)


def _run_ffprobe(video_path: Path) -> dict[str, Any]:
    command = [
        "ffprobe",
        "-v",
        "error",
        "-print_format",
        "json",
        "-show_format",
        "-show_streams",
        str(video_path),
    ]

    try:
        completed = subprocess.run(
            command,
            check=True,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as exc:
        raise DecodeError(
            "ffprobe executable was not found. Install FFmpeg so ffprobe is available on PATH."
        ) from exc
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        if SHARED_LIBRARY_MARKER in stderr:
            raise DecodeError(
                f"ffprobe is installed but failed to start because required shared libraries are missing: {stderr}"
            ) from exc
        details = f" ffprobe stderr: {stderr}" if stderr else ""
        raise DecodeError(f"ffprobe failed while probing media file: {video_path}.{details}") from exc

    try:
        return json.loads(completed.stdout)
    except json.JSONDecodeError as exc:
        raise DecodeError("ffprobe returned invalid JSON output.") from exc


def _normalize_probe_payload(video_path: Path, payload: dict[str, Any]) -> MediaInfo:
    streams = payload.get("streams", [])
    format_entry = payload.get("format", {})

    video_streams = [stream for stream in streams if stream.get("codec_type") == "video"]
    audio_streams = [stream for stream in streams if stream.get("codec_type") == "audio"]
    primary_video = video_streams[0] if video_streams else {}

    duration = _to_float(format_entry.get("duration"))
    if duration is None:
        duration = _to_float(primary_video.get("duration"))

    return MediaInfo(
        path=video_path,
        duration_seconds=duration or 0.0,
        width=_to_int(primary_video.get("width")),
        height=_to_int(primary_video.get("height")),
        has_video=bool(video_streams),
        has_audio=bool(audio_streams),
    )


def _to_float(raw_value: Any) -> float | None:
    if raw_value in (None, "N/A", ""):
        return None
    return float(raw_value)


def _to_int(raw_value: Any) -> int | None:
    if raw_value in (None, "N/A", ""):
        return None
    return int(raw_value)
