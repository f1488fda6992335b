from __future__ import annotations

import subprocess
import tempfile
from pathlib import Path
from typing import Any

import numpy as np

from reelfinder.errors import SceneExtractionError

DEFAULT_THUMBNAIL_QUALITY = 70


class FfmpegClipCutter:
    """Cut sub-clips with stream copy, so boundaries may snap to keyframes."""

    def __init__(self, ffmpeg_binary: str = "ffmpeg", container: str = "mp4") -> None:
        self.ffmpeg_binary = ffmpeg_binary
        self.container = container

    def cut(self, source_path: str | Path, start_seconds: float, duration_seconds: float) -> bytes:
        with tempfile.TemporaryDirectory(prefix="reelfinder_clip_") as work_dir:
            output_path = Path(work_dir) / f"clip.{self.container}"
            command = build_cut_command(
                source_path=source_path,
                start_seconds=start_seconds,
                duration_seconds=duration_seconds,
                output_path=output_path,
                ffmpeg_binary=self.ffmpeg_binary,
            )

            try:
                subprocess.run(command, check=True, capture_output=True, text=True)
            except FileNotFoundError as exc:
                raise SceneExtractionError(f"{self.ffmpeg_binary} executable was not found.") from exc
            except subprocess.CalledProcessError as exc:
                stderr = (exc.stderr or "").strip()
                details = f" ffmpeg stderr: {stderr}" if stderr else ""
                raise SceneExtractionError(
                    f"ffmpeg failed to cut {duration_seconds:.3f}s at {start_seconds:.3f}s.{details}"
                ) from exc

            if not output_path.exists() or output_path.stat().st_size == 0:
                raise SceneExtractionError(f"ffmpeg produced no clip for {start_seconds:.3f}s.")
            return output_path.read_bytes()


def build_cut_command(
    *,
    source_path: str | Path,
    start_seconds: float,
    duration_seconds: float,
    output_path: str | Path,
    ffmpeg_binary: str = "ffmpeg",
) -> list[str]:
    return [
        ffmpeg_binary,
        "-v",
        "error",
        "-y",
        "-ss",
        f"{max(0.0, start_seconds):.3f}",
        "-i",
        str(source_path),
        "-t",
        f"{duration_seconds:.3f}",
        "-c:v",
        "copy",
        "-c:a",
        "copy",
        str(output_path),
    ]


def encode_thumbnail(pixels: Any, quality: int = DEFAULT_THUMBNAIL_QUALITY) -> bytes:
    """Encode an RGB frame as JPEG bytes."""

    import cv2

    frame = np.asarray(pixels)
    if frame.ndim != 3 or frame.shape[2] < 3:
        raise SceneExtractionError(f"Cannot encode thumbnail from buffer of shape {frame.shape}.")

    bgr = cv2.cvtColor(np.ascontiguousarray(frame[..., :3]), cv2.COLOR_RGB2BGR)
    ok, encoded = cv2.imencode(".jpg", bgr, [cv2.IMWRITE_JPEG_QUALITY, int(quality)])
    if not ok:
        raise SceneExtractionError("OpenCV failed to encode thumbnail as JPEG.")
    return encoded.tobytes()
