from __future__ import annotations

from bisect import bisect_left
from collections.abc import Sequence

from reelfinder.models import CandidateWindow, FusedSample, SelectedScene

DEFAULT_SKIN_WEIGHT = 0.7
DEFAULT_AUDIO_WEIGHT = 0.3


def score_windows(
    fused: Sequence[FusedSample],
    window_seconds: float,
    *,
    skin_weight: float = DEFAULT_SKIN_WEIGHT,
    audio_weight: float = DEFAULT_AUDIO_WEIGHT,
) -> list[CandidateWindow]:
    """Score one candidate window per fused sample start.

    A window starting at ``fused[i].time`` covers every sample in
    ``[start, start + window_seconds)`` and is only a candidate when some later
    sample lies at or beyond its end. Candidates overlap freely.
    """

    if window_seconds <= 0:
        raise ValueError(f"Window length must be positive, got {window_seconds}.")

    times = [sample.time for sample in fused]
    candidates: list[CandidateWindow] = []

    for start_index, sample in enumerate(fused):
        end_index = bisect_left(times, sample.time + window_seconds, lo=start_index)
        if end_index >= len(fused):
            break

        in_window = fused[start_index:end_index]
        skin_mean = sum(item.skin_confidence for item in in_window) / len(in_window)
        audio_mean = sum(item.audio_intensity for item in in_window) / len(in_window)

        candidates.append(
            CandidateWindow(
                start_time=sample.time,
                score=(skin_weight * skin_mean) + (audio_weight * audio_mean),
            )
        )

    return candidates


def select_scenes(
    fused: Sequence[FusedSample],
    window_seconds: float,
    top_k: int,
    *,
    total_duration: float | None = None,
    skin_weight: float = DEFAULT_SKIN_WEIGHT,
    audio_weight: float = DEFAULT_AUDIO_WEIGHT,
) -> list[SelectedScene]:
    """Pick the ``top_k`` best windows and return them in timeline order.

    Ranking uses a stable sort, so equal scores keep chronological order.
    Overlapping windows are not suppressed.
    """

    candidates = score_windows(
        fused,
        window_seconds,
        skin_weight=skin_weight,
        audio_weight=audio_weight,
    )

    ranked = sorted(candidates, key=lambda candidate: -candidate.score)
    chosen = sorted(ranked[: max(top_k, 0)], key=lambda candidate: candidate.start_time)

    scenes: list[SelectedScene] = []
    for candidate in chosen:
        end_time = candidate.start_time + window_seconds
        if total_duration is not None:
            end_time = min(end_time, total_duration)
        scenes.append(SelectedScene(start_time=candidate.start_time, end_time=end_time, score=candidate.score))

    return scenes
