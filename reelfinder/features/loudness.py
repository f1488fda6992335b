from __future__ import annotations

import logging
import math
import wave
from pathlib import Path
from typing import Any, Callable

import numpy as np

from reelfinder.models import AudioFeature

DEFAULT_CHUNK_SECONDS = 0.5
RMS_WEIGHT = 0.7
PEAK_WEIGHT = 0.3

logger = logging.getLogger(__name__)


def extract_audio(
    samples: Any,
    sample_rate: int,
    chunk_seconds: float = DEFAULT_CHUNK_SECONDS,
    on_progress: Callable[[float], None] | None = None,
) -> list[AudioFeature]:
    """Compute one loudness intensity per fixed chunk, normalized to the track maximum.

    Intensity blends chunk RMS and peak amplitude. Normalization needs the global
    maximum, so every chunk is measured first and rescaled in a second pass. A
    silent track keeps all intensities at zero.
    """

    buffer = np.asarray(samples, dtype=np.float64).reshape(-1)
    if len(buffer) == 0:
        logger.info("Audio track is empty; loudness contributes nothing to scene scores.")
        if on_progress is not None:
            on_progress(1.0)
        return []
    if sample_rate <= 0:
        raise ValueError(f"Sample rate must be positive, got {sample_rate}.")
    if chunk_seconds <= 0:
        raise ValueError(f"Chunk length must be positive, got {chunk_seconds}.")

    chunk_size = max(int(sample_rate * chunk_seconds), 1)
    total_chunks = math.ceil(len(buffer) / chunk_size)

    raw_intensities: list[float] = []
    for chunk_index in range(total_chunks):
        start = chunk_index * chunk_size
        segment = buffer[start : start + chunk_size]

        rms = float(np.sqrt(np.mean(np.square(segment))))
        peak = float(np.max(np.abs(segment)))
        raw_intensities.append((RMS_WEIGHT * rms) + (PEAK_WEIGHT * peak))

        if on_progress is not None:
            on_progress((chunk_index + 1) / total_chunks)

    max_intensity = max(raw_intensities)
    if max_intensity > 0:
        normalized = [value / max_intensity for value in raw_intensities]
    else:
        logger.info("Audio track is silent; loudness contributes nothing to scene scores.")
        normalized = [0.0 for _ in raw_intensities]

    return [
        AudioFeature(time=chunk_index * chunk_seconds, intensity=intensity)
        for chunk_index, intensity in enumerate(normalized)
    ]


def read_wav_mono(path: str | Path) -> tuple[np.ndarray, int]:
    """Read a 16-bit PCM WAV file as float samples in [-1, 1], downmixed to mono."""

    with wave.open(str(path), "rb") as wav_file:
        channels = wav_file.getnchannels()
        sample_rate = int(wav_file.getframerate())
        sample_width = wav_file.getsampwidth()
        frames = wav_file.readframes(wav_file.getnframes())

    if sample_width != 2:
        raise ValueError("Only 16-bit PCM WAV input is supported for loudness analysis.")

    samples = np.frombuffer(frames, dtype=np.int16).astype(np.float32)
    if channels > 1:
        samples = samples.reshape(-1, channels).mean(axis=1)

    return samples / 32768.0, sample_rate
