from __future__ import annotations

from reelfinder.models import AudioFeature, FrameFeature
from reelfinder.scoring.fuse import fuse_signals


def _frames(*times: float) -> list[FrameFeature]:
    return [FrameFeature(time=time, skin_confidence=0.5) for time in times]


def test_fuse_uses_nearest_audio_within_tolerance() -> None:
    audio = [AudioFeature(time=0.0, intensity=0.1), AudioFeature(time=0.5, intensity=0.4), AudioFeature(time=1.0, intensity=0.9)]

    fused = fuse_signals(_frames(0.0, 1.05, 2.0), audio, tolerance=0.1)

    assert [sample.audio_intensity for sample in fused] == [0.1, 0.9, 0.0]
    assert [sample.skin_confidence for sample in fused] == [0.5, 0.5, 0.5]


def test_fuse_includes_audio_exactly_at_tolerance() -> None:
    fused = fuse_signals(_frames(1.0), [AudioFeature(time=1.25, intensity=0.6)], tolerance=0.25)

    assert fused[0].audio_intensity == 0.6


def test_fuse_handles_unsorted_audio_and_prefers_earlier_chunk_on_tie() -> None:
    audio = [AudioFeature(time=2.0, intensity=0.2), AudioFeature(time=1.0, intensity=0.7)]

    fused = fuse_signals(_frames(1.5), audio, tolerance=0.5)

    assert fused[0].audio_intensity == 0.7


def test_fuse_without_audio_defaults_to_zero() -> None:
    fused = fuse_signals(_frames(0.0, 1.0), [])

    assert [sample.audio_intensity for sample in fused] == [0.0, 0.0]


def test_refusing_fused_output_changes_nothing() -> None:
    audio = [AudioFeature(time=index * 0.5, intensity=(index % 5) / 4) for index in range(10)]
    frames = [FrameFeature(time=float(index), skin_confidence=index / 10) for index in range(6)]
    fused = fuse_signals(frames, audio)

    refused = fuse_signals(
        [FrameFeature(time=sample.time, skin_confidence=sample.skin_confidence) for sample in fused],
        [AudioFeature(time=sample.time, intensity=sample.audio_intensity) for sample in fused],
    )

    assert refused == fused
