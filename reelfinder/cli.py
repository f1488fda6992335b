from __future__ import annotations

import json
import logging
from pathlib import Path
from time import perf_counter

import typer

from reelfinder.config import DEFAULT_CONFIG_PATH, Settings, load_settings
from reelfinder.export import export_result, scene_to_dict
from reelfinder.logging_config import configure_logging
from reelfinder.media.clip_cutter import FfmpegClipCutter
from reelfinder.media.decoder import VideoDecoder
from reelfinder.models import ProgressUpdate
from reelfinder.pipeline import ProgressTracker, analyze_video, find_highlights

app = typer.Typer(help="Find skin-tone and loudness highlights in a video and cut them as clips.")
config_app = typer.Typer(help="Configuration commands.")

app.add_typer(config_app, name="config")

logger = logging.getLogger(__name__)

CONFIG_OPTION_HELP = "Path to YAML configuration file."


class _ProgressPrinter:
    """Echo progress updates to stderr whenever the percent or task changes."""

    def __init__(self) -> None:
        self._last: tuple[int, str | None] | None = None

    def __call__(self, update: ProgressUpdate) -> None:
        key = (update.percent, update.task)
        if key == self._last:
            return
        self._last = key
        typer.echo(f"[{update.percent:3d}%] {update.task or update.stage}", err=True)


def _bootstrap(config_path: Path) -> Settings:
    settings = load_settings(config_path)
    configure_logging(settings.logging)
    logger.debug("Loaded runtime settings from %s", config_path)
    return settings


def _resolve_video(video_path: str) -> Path:
    resolved = Path(video_path).expanduser().resolve()
    if not resolved.exists():
        raise FileNotFoundError(f"Video file not found: {resolved}")
    return resolved


@config_app.command("show")
def show_config(
    config_path: Path = typer.Option(
        DEFAULT_CONFIG_PATH,
        "--config",
        "-c",
        envvar="REELFINDER_CONFIG",
        help=CONFIG_OPTION_HELP,
    )
) -> None:
    """Print resolved runtime configuration."""

    settings = _bootstrap(config_path)
    typer.echo(json.dumps(settings.model_dump(mode="json"), indent=2))


@app.command("analyze")
def analyze(
    video_path: str,
    scene_duration: int | None = typer.Option(None, min=5, max=30, help="Highlight length in seconds."),
    clip_count: int | None = typer.Option(None, min=1, max=5, help="Number of highlights to select."),
    config_path: Path = typer.Option(
        DEFAULT_CONFIG_PATH,
        "--config",
        "-c",
        envvar="REELFINDER_CONFIG",
        help=CONFIG_OPTION_HELP,
    ),
) -> None:
    """Score the video and print the selected windows without cutting clips."""

    settings = _bootstrap(config_path)
    started_at = perf_counter()

    try:
        resolved_video = _resolve_video(video_path)
        with VideoDecoder(resolved_video, audio_sample_rate=settings.pipeline.audio_sample_rate) as decoder:
            duration, scenes = find_highlights(
                decoder,
                settings=settings,
                scene_duration=scene_duration,
                clip_count=clip_count,
                tracker=ProgressTracker(_ProgressPrinter()),
            )
    except (RuntimeError, ValueError, OSError) as exc:
        logger.error("Analysis failed: %s", exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(f"Analysis done in {perf_counter() - started_at:.1f}s", err=True)
    typer.echo(
        json.dumps(
            {
                "status": "ok" if scenes else "no_highlights",
                "video_path": str(resolved_video),
                "duration_seconds": round(duration, 3),
                "scenes": [scene_to_dict(scene) for scene in scenes],
            },
            indent=2,
        )
    )


@app.command("run")
def run_pipeline(
    video_path: str,
    scene_duration: int | None = typer.Option(None, min=5, max=30, help="Highlight length in seconds."),
    clip_count: int | None = typer.Option(None, min=1, max=5, help="Number of highlight clips to cut."),
    output_dir: Path | None = typer.Option(None, "--output-dir", "-o", help="Directory for clips, thumbnails and manifest."),
    config_path: Path = typer.Option(
        DEFAULT_CONFIG_PATH,
        "--config",
        "-c",
        envvar="REELFINDER_CONFIG",
        help=CONFIG_OPTION_HELP,
    ),
) -> None:
    """Run analysis, cut the selected highlights and export them."""

    settings = _bootstrap(config_path)
    started_at = perf_counter()

    try:
        resolved_video = _resolve_video(video_path)
        with VideoDecoder(resolved_video, audio_sample_rate=settings.pipeline.audio_sample_rate) as decoder:
            result = analyze_video(
                decoder,
                FfmpegClipCutter(),
                source_path=resolved_video,
                settings=settings,
                scene_duration=scene_duration,
                clip_count=clip_count,
                on_progress=_ProgressPrinter(),
            )

        for warning in result.warnings:
            typer.echo(f"Warning: {warning}", err=True)

        resolved_output_dir = output_dir or Path(settings.pipeline.output_dir) / resolved_video.stem
        exported = export_result(
            result,
            resolved_output_dir,
            basename=f"{resolved_video.stem}_scenes",
            source_path=str(resolved_video),
        )
    except (RuntimeError, ValueError, OSError) as exc:
        logger.error("Pipeline failed: %s", exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(f"Pipeline done in {perf_counter() - started_at:.1f}s", err=True)
    typer.echo(
        json.dumps(
            {
                "status": "ok" if result.scenes else "no_highlights",
                "video_path": str(resolved_video),
                "duration_seconds": round(result.duration, 3),
                "clip_count": len(result.scenes),
                "warning_count": len(result.warnings),
                "outputs": {key: str(path) for key, path in exported.items()},
            },
            indent=2,
        )
    )


if __name__ == "__main__":
    app()
