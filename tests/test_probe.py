from __future__ import annotations

import json
import subprocess
from pathlib import Path

import pytest

from reelfinder.errors import DecodeError
from reelfinder.media.probe import _run_ffprobe, probe_media


def test_run_ffprobe_wraps_missing_binary_error(tmp_path: Path) -> None:
    video_path = tmp_path / "sample.mp4"
    video_path.write_bytes(b"data")

    def _raise_missing(*args: object, **kwargs: object) -> subprocess.CompletedProcess[str]:
        raise FileNotFoundError("ffprobe")

    with pytest.MonkeyPatch.context() as mp:
        mp.setattr(subprocess, "run", _raise_missing)
        with pytest.raises(DecodeError, match="ffprobe executable was not found"):
            _run_ffprobe(video_path)


def test_run_ffprobe_reports_shared_library_issue(tmp_path: Path) -> None:
    video_path = tmp_path / "sample.mp4"
    video_path.write_bytes(b"data")

    def _raise_process_error(*args: object, **kwargs: object) -> subprocess.CompletedProcess[str]:
        raise subprocess.CalledProcessError(
            returncode=127,
            cmd=["ffprobe", str(video_path)],
            output="",
            stderr=(
                "ffprobe: error while loading shared libraries: "
                "libSvtAv1Enc.so.4: cannot open shared object file: No such file or directory"
            ),
        )

    with pytest.MonkeyPatch.context() as mp:
        mp.setattr(subprocess, "run", _raise_process_error)
        with pytest.raises(DecodeError, match="failed to start because required shared libraries are missing"):
            _run_ffprobe(video_path)


def test_run_ffprobe_wraps_other_called_process_error(tmp_path: Path) -> None:
    video_path = tmp_path / "sample.mp4"
    video_path.write_bytes(b"data")

    def _raise_process_error(*args: object, **kwargs: object) -> subprocess.CompletedProcess[str]:
        raise subprocess.CalledProcessError(
            returncode=1,
            cmd=["ffprobe", str(video_path)],
            output="",
            stderr="invalid data found when processing input",
        )

    with pytest.MonkeyPatch.context() as mp:
        mp.setattr(subprocess, "run", _raise_process_error)
        with pytest.raises(DecodeError, match="ffprobe failed while probing media file"):
            _run_ffprobe(video_path)


def test_probe_media_normalizes_streams(tmp_path: Path, monkeypatch) -> None:
    video_path = tmp_path / "sample.mp4"
    video_path.write_bytes(b"data")
    payload = {
        "format": {"duration": "42.5"},
        "streams": [
            {"codec_type": "video", "width": 1280, "height": 720},
            {"codec_type": "audio", "sample_rate": "48000"},
        ],
    }

    monkeypatch.setattr(
        subprocess,
        "run",
        lambda command, **kwargs: subprocess.CompletedProcess(command, 0, json.dumps(payload), ""),
    )

    info = probe_media(video_path)

    assert info.duration_seconds == 42.5
    assert (info.width, info.height) == (1280, 720)
    assert info.has_video and info.has_audio


def test_probe_media_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="Video file not found"):
        probe_media(tmp_path / "missing.mp4")
