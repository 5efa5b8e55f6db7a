"""Command line tools for inspecting saved timeline documents."""

import json
import sys

import click

from .config import get_settings
from .errors import MalformedSerializedStateError
from .logging_config import configure_logging
from .playback import PlaybackScheduler
from .timeline_model import TimelineModel


def _load(path: str) -> TimelineModel:
    model = TimelineModel(settings=get_settings())
    try:
        with open(path, encoding="utf-8") as f:
            text = f.read()
        model.from_json(text)
    except (MalformedSerializedStateError, UnicodeDecodeError) as e:
        click.echo(f"Invalid timeline document {path}: {e}", err=True)
        sys.exit(1)
    return model


def _emit(data):
    click.echo(json.dumps(data, indent=2))


@click.group()
@click.option("--log-level", default=None, help="Override KEYFRAME_TIMELINE_LOG_LEVEL")
def main(log_level):
    """Inspect keyframe timeline documents."""
    settings = get_settings()
    if log_level:
        settings = settings.model_copy(update={"log_level": log_level})
    # stdout carries the JSON output
    configure_logging(settings, stream=sys.stderr)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--time", "-t", "at_time", required=True, type=float, help="Time in seconds")
@click.option("--visible-only", is_flag=True, help="Skip hidden layers")
def snapshot(file, at_time, visible_only):
    """Print every layer's interpolated properties at a time."""
    model = _load(file)
    states = model.get_objects_at_time(at_time, include_hidden=not visible_only)
    _emit([
        {"layerId": s.layer.id, "name": s.layer.name, "properties": s.properties}
        for s in states
    ])


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--time", "-t", "at_time", required=True, type=float, help="Time in seconds")
@click.option("--tolerance", type=float, default=None, help="Match window in seconds")
def keyframes(file, at_time, tolerance):
    """List keyframes near a time."""
    model = _load(file)
    hits = model.get_keyframes_at_time(at_time, tolerance)
    _emit([{"layerId": h.layer_id, **h.keyframe.to_dict()} for h in hits])


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def tree(file):
    """Print the layer list as the layer panel shows it."""
    model = _load(file)
    _emit([
        {
            "id": row.layer.id,
            "name": row.layer.name,
            "indent": row.indent_level,
            "isGroup": model.groups.is_group(row.layer.id),
            "isExpanded": row.layer.is_expanded,
        }
        for row in model.groups.get_layers_with_indentation()
    ])


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--seconds", "-s", required=True, type=float, help="Simulated playback length")
@click.option("--fps", default=60, type=click.IntRange(min=1), help="Ticks per simulated second")
@click.option("--extend/--no-extend", default=True, help="Grow the duration at the end instead of looping")
def play(file, seconds, fps, extend):
    """Simulate playback from the saved current time and print the final status."""
    model = _load(file)
    scheduler = PlaybackScheduler(model, auto_extend=extend)
    scheduler.play()
    delta = 1.0 / fps
    for _ in range(int(round(seconds * fps))):
        scheduler.tick(delta)
    scheduler.pause()
    _emit(scheduler.get_status())


if __name__ == "__main__":
    main()
