from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

DEFAULT_CONFIG_PATH = Path("configs/default.yaml")
ENV_PREFIX = "REELFINDER_"
DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


class AnalysisSettings(BaseModel):
    frame_interval_seconds: float = Field(default=1.0, gt=0)
    block_size: int = Field(default=4, ge=1)
    region_rows: int = Field(default=3, ge=1)
    region_cols: int = Field(default=4, ge=1)
    skin_threshold: float = Field(default=0.5, ge=0, le=1)
    audio_chunk_seconds: float = Field(default=0.5, gt=0)
    fusion_tolerance_seconds: float = Field(default=0.1, ge=0)


class SceneSettings(BaseModel):
    scene_duration_seconds: int = Field(default=10, ge=5, le=30)
    clip_count: int = Field(default=3, ge=1, le=5)
    thumbnail_offset_seconds: float = 1.0
    thumbnail_quality: int = Field(default=70, ge=1, le=100)


class WeightSettings(BaseModel):
    skin: float = 0.7
    audio: float = 0.3


class PipelineSettings(BaseModel):
    output_dir: Path = Path("data/outputs")
    cut_workers: int = Field(default=4, ge=1)
    audio_sample_rate: int = Field(default=16000, gt=0)


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = DEFAULT_LOG_FORMAT


class Settings(BaseModel):
    analysis: AnalysisSettings = Field(default_factory=AnalysisSettings)
    scenes: SceneSettings = Field(default_factory=SceneSettings)
    weights: WeightSettings = Field(default_factory=WeightSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load typed settings from YAML with environment-variable overrides.

    A missing file at the default location yields built-in defaults; an
    explicitly requested file must exist.
    """

    explicit_path = config_path or os.getenv(f"{ENV_PREFIX}CONFIG")
    resolved_path = Path(explicit_path or DEFAULT_CONFIG_PATH)

    if resolved_path.exists():
        raw_config = yaml.safe_load(resolved_path.read_text(encoding="utf-8")) or {}
    elif explicit_path and resolved_path != DEFAULT_CONFIG_PATH:
        raise FileNotFoundError(f"Config file not found: {resolved_path}")
    else:
        raw_config = {}

    data = Settings.model_validate(raw_config).model_dump(mode="python")

    for key, raw_value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue

        suffix = key[len(ENV_PREFIX) :]
        if suffix == "CONFIG":
            continue

        path = [part.lower() for part in suffix.split("__")]
        _apply_override(data, path, raw_value)

    return Settings.model_validate(data)


def _apply_override(data: dict[str, Any], path: list[str], raw_value: str) -> None:
    current: Any = data
    for segment in path[:-1]:
        if not isinstance(current, dict) or segment not in current:
            return
        current = current[segment]

    if not isinstance(current, dict):
        return

    final_key = path[-1]
    if final_key not in current:
        return

    current[final_key] = _coerce_value(raw_value, current[final_key])


def _coerce_value(raw_value: str, existing_value: Any) -> Any:
    if isinstance(existing_value, bool):
        return raw_value.lower() in {"1", "true", "yes", "on"}
    if isinstance(existing_value, int) and not isinstance(existing_value, bool):
        return int(raw_value)
    if isinstance(existing_value, float):
        return float(raw_value)
    if isinstance(existing_value, list | dict):
        return json.loads(raw_value)
    if isinstance(existing_value, Path):
        return Path(raw_value)
    return raw_value
