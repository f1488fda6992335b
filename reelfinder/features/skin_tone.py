from __future__ import annotations

from typing import Any

import numpy as np

from reelfinder.models import FrameFeature, SkinRegion

DEFAULT_BLOCK_SIZE = 4
DEFAULT_REGION_GRID = (3, 4)
DEFAULT_SKIN_THRESHOLD = 0.5


def extract_frame(
    pixels: Any,
    *,
    time: float = 0.0,
    region_grid: tuple[int, int] = DEFAULT_REGION_GRID,
    block_size: int = DEFAULT_BLOCK_SIZE,
    threshold: float = DEFAULT_SKIN_THRESHOLD,
) -> FrameFeature:
    """Score skin-tone prevalence for one decoded RGB(A) frame.

    Only the top-left pixel of every ``block_size`` x ``block_size`` block is
    classified. Blocks whose confidence exceeds ``threshold`` count towards the
    frame score and towards the region grid cell they fall in.
    """

    frame = np.asarray(pixels)
    if frame.ndim != 3 or frame.shape[2] < 3:
        raise ValueError(f"Expected an HxWx3 or HxWx4 pixel buffer, got shape {frame.shape}.")

    height, width = int(frame.shape[0]), int(frame.shape[1])
    if height == 0 or width == 0:
        raise ValueError("Pixel buffer is empty.")

    rows, cols = (max(int(value), 1) for value in region_grid)
    block_size = max(int(block_size), 1)

    sampled = frame[::block_size, ::block_size, :3].astype(np.int32)
    confidence = skin_confidence(sampled[..., 0], sampled[..., 1], sampled[..., 2])
    qualifying = confidence > threshold

    skin_block_count = int(np.count_nonzero(qualifying))
    total_confidence = float(confidence[qualifying].sum())

    block_capacity = (width * height) / float(block_size * block_size)
    skin_ratio = skin_block_count / block_capacity
    average_confidence = total_confidence / (skin_block_count or 1)
    frame_confidence = _clamp(skin_ratio * average_confidence)

    region_width = width / cols
    region_height = height / rows
    region_sums = _accumulate_regions(
        confidence=confidence,
        qualifying=qualifying,
        block_size=block_size,
        region_width=region_width,
        region_height=region_height,
        rows=rows,
        cols=cols,
    )

    region_capacity = (region_width * region_height) / float(block_size * block_size)
    regions: list[SkinRegion] = []
    for row in range(rows):
        for col in range(cols):
            region_confidence = _clamp(float(region_sums[row, col]) / region_capacity)
            if region_confidence <= threshold:
                continue
            regions.append(
                SkinRegion(
                    x=col * region_width,
                    y=row * region_height,
                    width=region_width,
                    height=region_height,
                    confidence=region_confidence,
                )
            )

    return FrameFeature(time=time, skin_confidence=frame_confidence, regions=regions)


def skin_confidence(red: Any, green: Any, blue: Any) -> np.ndarray:
    """Per-pixel skin confidence; zero where none of the tone rules match."""

    r = np.asarray(red, dtype=np.float64)
    g = np.asarray(green, dtype=np.float64)
    b = np.asarray(blue, dtype=np.float64)

    strength = np.minimum(
        1.0,
        (np.minimum(255.0, r) / 255.0)
        * (0.5 + np.abs(r - g) / 100.0)
        * (0.5 + np.abs(r - b) / 100.0),
    )
    return np.where(is_skin_tone(r, g, b), strength, 0.0)


def is_skin_tone(red: Any, green: Any, blue: Any) -> np.ndarray:
    r = np.asarray(red, dtype=np.float64)
    g = np.asarray(green, dtype=np.float64)
    b = np.asarray(blue, dtype=np.float64)

    mid_tone = (
        (r > 95) & (g > 40) & (b > 20)
        & (r > g) & (r > b)
        & (np.abs(r - g) > 15)
        & ((r - g) > 15) & ((r - b) > 15)
    )
    light_tone = (r > 220) & (g > 190) & (b > 170)
    dark_tone = (
        (r > 40) & (r < 110)
        & (g > 20) & (g < 90)
        & (b > 10) & (b < 60)
        & (r > g) & (r > b)
    )
    return mid_tone | light_tone | dark_tone


def _accumulate_regions(
    *,
    confidence: np.ndarray,
    qualifying: np.ndarray,
    block_size: int,
    region_width: float,
    region_height: float,
    rows: int,
    cols: int,
) -> np.ndarray:
    ys = np.arange(confidence.shape[0]) * block_size
    xs = np.arange(confidence.shape[1]) * block_size

    region_rows = np.minimum(np.floor(ys / region_height).astype(np.int64), rows - 1)
    region_cols = np.minimum(np.floor(xs / region_width).astype(np.int64), cols - 1)
    region_index = region_rows[:, None] * cols + region_cols[None, :]

    sums = np.bincount(
        region_index[qualifying],
        weights=confidence[qualifying],
        minlength=rows * cols,
    )
    return sums.reshape(rows, cols)


def _clamp(value: float, minimum: float = 0.0, maximum: float = 1.0) -> float:
    return max(minimum, min(maximum, value))
