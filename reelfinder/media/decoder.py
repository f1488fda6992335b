from __future__ import annotations

import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Any

import numpy as np

from reelfinder.errors import DecodeError
from reelfinder.features.loudness import read_wav_mono
from reelfinder.media.probe import MediaInfo, probe_media

DEFAULT_AUDIO_SAMPLE_RATE = 16000

logger = logging.getLogger(__name__)


class VideoDecoder:
    """Seekable RGB frame source and full-track audio reader for one video file.

    The OpenCV capture is the single decode cursor for a run. Use the decoder as
    a context manager so the cursor is released even when analysis fails.
    """

    def __init__(
        self,
        video_path: str | Path,
        *,
        audio_sample_rate: int = DEFAULT_AUDIO_SAMPLE_RATE,
    ) -> None:
        self.info: MediaInfo = probe_media(video_path)
        if not self.info.has_video:
            raise DecodeError(f"No video stream found in {self.info.path}")

        self.audio_sample_rate = audio_sample_rate
        self._capture: Any = None

    @property
    def path(self) -> Path:
        return self.info.path

    def __enter__(self) -> VideoDecoder:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def open(self) -> None:
        if self._capture is not None:
            return

        import cv2

        capture = cv2.VideoCapture(str(self.info.path))
        if not capture.isOpened():
            capture.release()
            raise DecodeError(f"Unable to open video for frame analysis: {self.info.path}")
        self._capture = capture

    def close(self) -> None:
        if self._capture is None:
            return
        self._capture.release()
        self._capture = None

    def total_duration(self) -> float:
        return self.info.duration_seconds

    def seek(self, time_seconds: float) -> np.ndarray:
        """Decode the frame at ``time_seconds`` as an HxWx3 RGB array."""

        import cv2

        self.open()
        self._capture.set(cv2.CAP_PROP_POS_MSEC, max(time_seconds, 0.0) * 1000.0)
        ok, frame = self._capture.read()
        if not ok or frame is None:
            raise DecodeError(f"Failed to decode frame at {time_seconds:.3f}s from {self.info.path}")

        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    def sample_audio_buffer(self) -> tuple[np.ndarray, int]:
        """Decode the first audio stream to mono float samples at ``audio_sample_rate``."""

        if not self.info.has_audio:
            logger.info("No audio stream in %s; continuing with skin tone only.", self.info.path)
            return np.zeros(0, dtype=np.float32), self.audio_sample_rate

        with tempfile.TemporaryDirectory(prefix="reelfinder_audio_") as work_dir:
            wav_path = Path(work_dir) / "audio.wav"
            _run_ffmpeg_extract(
                source_path=self.info.path,
                output_path=wav_path,
                target_sample_rate=self.audio_sample_rate,
            )
            return read_wav_mono(wav_path)


def _run_ffmpeg_extract(source_path: Path, output_path: Path, target_sample_rate: int) -> None:
    command = [
        "ffmpeg",
        "-v",
        "error",
        "-y",
        "-i",
        str(source_path),
        "-map",
        "0:a:0",
        "-vn",
        "-ac",
        "1",
        "-ar",
        str(target_sample_rate),
        "-c:a",
        "pcm_s16le",
        str(output_path),
    ]

    try:
        subprocess.run(command, check=True, capture_output=True, text=True)
    except FileNotFoundError as exc:
        raise DecodeError("ffmpeg executable was not found. Install FFmpeg so ffmpeg is available on PATH.") from exc
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        details = f" ffmpeg stderr: {stderr}" if stderr else ""
        raise DecodeError(f"ffmpeg failed to decode audio from {source_path}.{details}") from exc
