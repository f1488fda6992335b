from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

ProgressStage = Literal["preparing", "analyzing", "extracting", "complete"]


@dataclass(slots=True)
class SkinRegion:
    """One cell of the coarse region grid laid over a sampled frame."""

    x: float
    y: float
    width: float
    height: float
    confidence: float


@dataclass(slots=True)
class FrameFeature:
    time: float
    skin_confidence: float
    regions: list[SkinRegion] = field(default_factory=list)


@dataclass(slots=True)
class AudioFeature:
    time: float
    intensity: float


@dataclass(slots=True)
class FusedSample:
    """A frame feature joined with the nearest audio chunk."""

    time: float
    skin_confidence: float
    audio_intensity: float


@dataclass(slots=True)
class CandidateWindow:
    start_time: float
    score: float


@dataclass(slots=True)
class SelectedScene:
    start_time: float
    end_time: float
    score: float

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


@dataclass(slots=True)
class ExtractedScene:
    """A selected scene with its thumbnail and clip payloads attached."""

    index: int
    scene: SelectedScene
    thumbnail: bytes
    clip: bytes


@dataclass(slots=True)
class AnalysisResult:
    duration: float
    scenes: list[ExtractedScene]
    warnings: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ProgressUpdate:
    stage: ProgressStage
    percent: int
    task: str | None = None
