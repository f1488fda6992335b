from __future__ import annotations

import logging
import math
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Callable, Protocol

from reelfinder.config import Settings
from reelfinder.errors import DecodeError
from reelfinder.features.loudness import extract_audio
from reelfinder.features.skin_tone import extract_frame
from reelfinder.media.clip_cutter import encode_thumbnail
from reelfinder.models import (
    AnalysisResult,
    AudioFeature,
    ExtractedScene,
    FrameFeature,
    ProgressStage,
    ProgressUpdate,
    SelectedScene,
)
from reelfinder.scoring.fuse import fuse_signals
from reelfinder.scoring.scene_selector import select_scenes

logger = logging.getLogger(__name__)

ProgressSink = Callable[[ProgressUpdate], None]

ANALYSIS_START_PERCENT = 35
# (start, span) of each stage inside the overall 0-100 range
STAGE_SPANS: dict[str, tuple[int, int]] = {
    "frames": (35, 25),
    "audio": (60, 20),
    "clips": (80, 15),
}


class Decoder(Protocol):
    def seek(self, time_seconds: float) -> Any: ...

    def total_duration(self) -> float: ...

    def sample_audio_buffer(self) -> tuple[Any, int]: ...


class ClipCutter(Protocol):
    def cut(self, source_path: str | Path, start_seconds: float, duration_seconds: float) -> bytes: ...


class ProgressTracker:
    """Fold per-stage fractions into one non-decreasing percent.

    Frame and audio analysis report from different threads; each owns a fixed
    span, so the summed percent only grows.
    """

    def __init__(self, sink: ProgressSink | None = None) -> None:
        self._sink = sink
        self._lock = threading.Lock()
        self._fractions: dict[str, float] = {}
        self._base_percent = 0
        self._last_percent = 0

    @property
    def percent(self) -> int:
        return self._last_percent

    def report(self, stage: ProgressStage, percent: int, task: str | None = None) -> None:
        with self._lock:
            self._base_percent = max(self._base_percent, percent)
            self._emit(stage, self._base_percent, task)

    def advance(self, part: str, fraction: float, task: str | None = None) -> None:
        with self._lock:
            previous = self._fractions.get(part, 0.0)
            self._fractions[part] = max(previous, min(max(fraction, 0.0), 1.0))

            percent = ANALYSIS_START_PERCENT + sum(
                STAGE_SPANS[name][1] * value for name, value in self._fractions.items()
            )
            stage: ProgressStage = "extracting" if part == "clips" else "analyzing"
            self._emit(stage, int(math.floor(percent)), task)

    def _emit(self, stage: ProgressStage, percent: int, task: str | None) -> None:
        percent = max(self._last_percent, min(percent, 100))
        self._last_percent = percent
        if self._sink is not None:
            self._sink(ProgressUpdate(stage=stage, percent=percent, task=task))


def analyze_video(
    decoder: Decoder,
    cutter: ClipCutter,
    *,
    source_path: str | Path,
    settings: Settings,
    scene_duration: float | None = None,
    clip_count: int | None = None,
    on_progress: ProgressSink | None = None,
) -> AnalysisResult:
    """Find the best highlight windows and cut a thumbnail and clip for each.

    Decode failures abort the run. A scene whose thumbnail or clip fails is
    dropped with a warning while its siblings are still returned.
    """

    tracker = ProgressTracker(on_progress)
    duration, scenes = find_highlights(
        decoder,
        settings=settings,
        scene_duration=scene_duration,
        clip_count=clip_count,
        tracker=tracker,
    )

    if not scenes:
        logger.info("No highlight windows fit in %.1fs of video.", duration)
        tracker.report("complete", 100, "No highlights found.")
        return AnalysisResult(duration=duration, scenes=[])

    tracker.report("extracting", STAGE_SPANS["clips"][0], "Extracting highlight clips...")
    extracted, warnings = extract_scenes(
        decoder,
        cutter,
        scenes,
        source_path=source_path,
        settings=settings,
        tracker=tracker,
    )

    if extracted:
        task = "All clips extracted successfully!" if not warnings else f"Extracted {len(extracted)} of {len(scenes)} clips."
    else:
        task = "No clips could be extracted."
    tracker.report("complete", 100, task)
    return AnalysisResult(duration=duration, scenes=extracted, warnings=warnings)


def find_highlights(
    decoder: Decoder,
    *,
    settings: Settings,
    scene_duration: float | None = None,
    clip_count: int | None = None,
    tracker: ProgressTracker | None = None,
) -> tuple[float, list[SelectedScene]]:
    """Run both extractors, fuse them and select the top windows."""

    tracker = tracker or ProgressTracker()
    analysis = settings.analysis
    window_seconds = float(settings.scenes.scene_duration_seconds if scene_duration is None else scene_duration)
    top_k = int(settings.scenes.clip_count if clip_count is None else clip_count)

    tracker.report("preparing", 0, "Loading video...")
    duration = float(decoder.total_duration())
    if duration <= 0:
        raise DecodeError("Video reports no playable duration.")
    tracker.report("analyzing", ANALYSIS_START_PERCENT, "Analyzing video content...")

    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="reelfinder-analysis") as executor:
        frames_future = executor.submit(
            extract_frame_features,
            decoder,
            duration,
            interval_seconds=analysis.frame_interval_seconds,
            region_grid=(analysis.region_rows, analysis.region_cols),
            block_size=analysis.block_size,
            threshold=analysis.skin_threshold,
            on_progress=lambda fraction: tracker.advance("frames", fraction, "Analyzing video frames..."),
        )
        audio_future = executor.submit(
            extract_audio_features,
            decoder,
            chunk_seconds=analysis.audio_chunk_seconds,
            on_progress=lambda fraction: tracker.advance("audio", fraction, "Analyzing audio..."),
        )
        frames = frames_future.result()
        audio = audio_future.result()

    logger.info("Extracted %d frame samples and %d audio chunks.", len(frames), len(audio))

    fused = fuse_signals(frames, audio, tolerance=analysis.fusion_tolerance_seconds)
    scenes = select_scenes(
        fused,
        window_seconds,
        top_k,
        total_duration=duration,
        skin_weight=settings.weights.skin,
        audio_weight=settings.weights.audio,
    )
    for scene in scenes:
        logger.debug("Selected scene %.1f-%.1fs score=%.4f", scene.start_time, scene.end_time, scene.score)

    return duration, scenes


def extract_frame_features(
    decoder: Decoder,
    duration: float,
    *,
    interval_seconds: float = 1.0,
    region_grid: tuple[int, int] = (3, 4),
    block_size: int = 4,
    threshold: float = 0.5,
    on_progress: Callable[[float], None] | None = None,
) -> list[FrameFeature]:
    """Sample the video at a fixed interval and score each frame for skin tone."""

    sample_count = _sample_count(duration, interval_seconds)
    features: list[FrameFeature] = []

    for index in range(sample_count):
        time_seconds = index * interval_seconds
        pixels = decoder.seek(time_seconds)
        features.append(
            extract_frame(
                pixels,
                time=time_seconds,
                region_grid=region_grid,
                block_size=block_size,
                threshold=threshold,
            )
        )
        if on_progress is not None:
            on_progress((index + 1) / sample_count)

    if sample_count == 0 and on_progress is not None:
        on_progress(1.0)
    return features


def extract_audio_features(
    decoder: Decoder,
    *,
    chunk_seconds: float = 0.5,
    on_progress: Callable[[float], None] | None = None,
) -> list[AudioFeature]:
    samples, sample_rate = decoder.sample_audio_buffer()
    return extract_audio(samples, sample_rate, chunk_seconds=chunk_seconds, on_progress=on_progress)


def extract_scenes(
    decoder: Decoder,
    cutter: ClipCutter,
    scenes: list[SelectedScene],
    *,
    source_path: str | Path,
    settings: Settings,
    tracker: ProgressTracker | None = None,
) -> tuple[list[ExtractedScene], list[str]]:
    """Grab a thumbnail and cut a clip per scene, isolating per-scene failures."""

    tracker = tracker or ProgressTracker()
    warnings: list[str] = []
    scene_settings = settings.scenes

    # thumbnails share the decoder's seek cursor, so they are taken in order
    thumbnails: list[bytes | None] = [None] * len(scenes)
    for index, scene in enumerate(scenes):
        try:
            pixels = decoder.seek(scene.start_time + scene_settings.thumbnail_offset_seconds)
            thumbnails[index] = encode_thumbnail(pixels, quality=scene_settings.thumbnail_quality)
        except Exception as exc:
            warnings.append(_scene_warning(index, scene, "thumbnail", exc))

    pending = [index for index, thumbnail in enumerate(thumbnails) if thumbnail is not None]
    clips: list[bytes | None] = [None] * len(scenes)
    completed = 0

    if pending:
        workers = min(settings.pipeline.cut_workers, len(pending))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="reelfinder-cut") as executor:
            futures = {
                executor.submit(cutter.cut, source_path, scenes[index].start_time, scenes[index].duration): index
                for index in pending
            }
            for future in as_completed(futures):
                index = futures[future]
                try:
                    clips[index] = future.result()
                except Exception as exc:
                    warnings.append(_scene_warning(index, scenes[index], "clip", exc))

                completed += 1
                tracker.advance(
                    "clips",
                    completed / len(pending),
                    f"Extracted clip {completed} of {len(pending)}",
                )

    extracted = [
        ExtractedScene(index=index + 1, scene=scene, thumbnail=thumbnail, clip=clip)
        for index, (scene, thumbnail, clip) in enumerate(zip(scenes, thumbnails, clips))
        if thumbnail is not None and clip is not None
    ]
    return extracted, warnings


def _scene_warning(index: int, scene: SelectedScene, artifact: str, exc: Exception) -> str:
    message = (
        f"Dropped scene {index + 1} ({scene.start_time:.1f}-{scene.end_time:.1f}s): "
        f"{artifact} extraction failed: {exc}"
    )
    logger.warning("%s", message)
    return message


def _sample_count(duration: float, interval_seconds: float) -> int:
    if duration <= 0:
        return 0
    if interval_seconds <= 0:
        raise ValueError(f"Frame interval must be positive, got {interval_seconds}.")

    count = math.ceil(duration / interval_seconds)
    # guard float error pushing the last sample onto the end boundary
    while count > 0 and (count - 1) * interval_seconds >= duration:
        count -= 1
    return count
