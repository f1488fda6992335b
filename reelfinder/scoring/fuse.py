from __future__ import annotations

from bisect import bisect_left
from collections.abc import Sequence

from reelfinder.models import AudioFeature, FrameFeature, FusedSample

DEFAULT_TOLERANCE_SECONDS = 0.1


def fuse_signals(
    frames: Sequence[FrameFeature],
    audio: Sequence[AudioFeature],
    tolerance: float = DEFAULT_TOLERANCE_SECONDS,
) -> list[FusedSample]:
    """Join every frame feature with the nearest audio chunk in time.

    A frame whose nearest audio chunk is further than ``tolerance`` seconds away
    gets an audio intensity of zero. Values are never interpolated.
    """

    ordered_audio = sorted(audio, key=lambda feature: feature.time)
    audio_times = [feature.time for feature in ordered_audio]

    fused: list[FusedSample] = []
    for frame in frames:
        nearest = _nearest_audio(frame.time, audio_times, ordered_audio)
        intensity = 0.0
        if nearest is not None and abs(nearest.time - frame.time) <= tolerance:
            intensity = nearest.intensity

        fused.append(
            FusedSample(
                time=frame.time,
                skin_confidence=frame.skin_confidence,
                audio_intensity=intensity,
            )
        )

    return fused


def _nearest_audio(
    time: float,
    audio_times: list[float],
    ordered_audio: list[AudioFeature],
) -> AudioFeature | None:
    if not ordered_audio:
        return None

    index = bisect_left(audio_times, time)
    if index == 0:
        return ordered_audio[0]
    if index == len(ordered_audio):
        return ordered_audio[-1]

    before = ordered_audio[index - 1]
    after = ordered_audio[index]
    # earlier chunk wins an exact tie
    if abs(after.time - time) < abs(time - before.time):
        return after
    return before
