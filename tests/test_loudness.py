from __future__ import annotations

import wave

import numpy as np
import pytest

from reelfinder.features.loudness import extract_audio, read_wav_mono


def test_extract_audio_normalizes_to_track_maximum() -> None:
    rng = np.random.default_rng(7)
    samples = rng.uniform(-0.4, 0.4, size=1000)
    samples[600:650] = 0.9

    features = extract_audio(samples, sample_rate=100, chunk_seconds=0.5)

    assert len(features) == 20
    assert max(feature.intensity for feature in features) == 1.0
    assert all(0.0 <= feature.intensity <= 1.0 for feature in features)
    assert features[12].intensity == 1.0
    assert [feature.time for feature in features[:3]] == [0.0, 0.5, 1.0]


def test_extract_audio_blends_rms_and_peak() -> None:
    steady = np.full(50, 0.5)
    click = np.zeros(50)
    click[0] = 1.0

    features = extract_audio(np.concatenate([steady, click]), sample_rate=100, chunk_seconds=0.5)

    steady_raw = 0.7 * 0.5 + 0.3 * 0.5
    click_raw = 0.7 * np.sqrt(1 / 50) + 0.3 * 1.0
    assert features[0].intensity == 1.0
    assert features[1].intensity == pytest.approx(click_raw / steady_raw)


def test_extract_audio_silent_track_stays_zero() -> None:
    features = extract_audio(np.zeros(400), sample_rate=100, chunk_seconds=0.5)

    assert len(features) == 8
    assert all(feature.intensity == 0.0 for feature in features)


def test_extract_audio_includes_partial_last_chunk_and_reports_progress() -> None:
    progress: list[float] = []

    features = extract_audio(np.full(230, 0.2), sample_rate=100, chunk_seconds=0.5, on_progress=progress.append)

    assert len(features) == 5
    assert features[-1].time == 2.0
    assert progress == [0.2, 0.4, 0.6, 0.8, 1.0]


def test_extract_audio_empty_track_returns_no_features() -> None:
    assert extract_audio([], sample_rate=16000) == []


def test_extract_audio_rejects_invalid_sample_rate() -> None:
    with pytest.raises(ValueError, match="Sample rate"):
        extract_audio([0.1, 0.2], sample_rate=0)


def test_read_wav_mono_downmixes_stereo(tmp_path) -> None:
    path = tmp_path / "stereo.wav"
    left = np.full(100, 16384, dtype=np.int16)
    right = np.zeros(100, dtype=np.int16)
    interleaved = np.column_stack([left, right]).reshape(-1)

    with wave.open(str(path), "wb") as wf:
        wf.setnchannels(2)
        wf.setsampwidth(2)
        wf.setframerate(8000)
        wf.writeframes(interleaved.tobytes())

    samples, sample_rate = read_wav_mono(path)

    assert sample_rate == 8000
    assert len(samples) == 100
    assert samples[0] == pytest.approx(0.25)
