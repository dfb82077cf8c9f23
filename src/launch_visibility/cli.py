"""
Command-line interface for the launch visibility engine.

Assess exported launch catalog data from the command line, inspect the
trajectory behind an assessment, or check sky conditions at the observer.
"""

import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from typing import List, Optional

import click
from tabulate import tabulate

from .astronomy import solar_elevation, twilight_level
from .config import ConfigManager, VisibilityConfig
from .engine import VisibilityEngine, create_engine
from .models import Launch
from .utils import load_json_records, parse_datetime, setup_logging, validate_coordinates

logger = logging.getLogger(__name__)


def _load_config(ctx: click.Context, telemetry_dir: Optional[str] = None,
                 images: Optional[str] = None) -> VisibilityConfig:
    config = ConfigManager(ctx.obj.get("config_path")).config
    if telemetry_dir:
        config.providers.telemetry_dir = telemetry_dir
    if images:
        config.providers.images_file = images
    return config


def _load_launches(path: str) -> List[Launch]:
    launches = []
    for record in load_json_records(path):
        try:
            launches.append(Launch.from_descriptor(record))
        except ValueError as e:
            record_id = record.get("id", "?") if isinstance(record, dict) else "?"
            click.echo(f"Skipping launch {record_id}: {e}", err=True)
    return launches


def _fmt_bearing(bearing: Optional[float]) -> str:
    return f"{bearing:.0f}°" if bearing is not None else "-"


@click.group()
@click.option('--log-level', default='WARNING',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
              help='Set logging level')
@click.option('--log-file', type=click.Path(), help='Log file path')
@click.option('--config', 'config_path', type=click.Path(),
              help='Path to visibility.yaml (default: $LAUNCH_VISIBILITY_CONFIG or config/visibility.yaml)')
@click.pass_context
def main(ctx: click.Context, log_level: str, log_file: Optional[str],
         config_path: Optional[str]) -> None:
    """Launch Visibility - Will the next rocket launch be visible from here?"""
    setup_logging(log_level, log_file)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    logger.info("Starting Launch Visibility CLI")


@main.command()
@click.argument('launches_json', type=click.Path(exists=True))
@click.option('--telemetry-dir', type=click.Path(exists=True, file_okay=False),
              help='Directory of <missionRef>.json telemetry files')
@click.option('--images', type=click.Path(exists=True, dir_okay=False),
              help='JSON file of trajectory image metadata keyed by launch id')
@click.option('--format', 'output_format', default='table',
              type=click.Choice(['table', 'json']),
              help='Output format')
@click.pass_context
def assess(ctx: click.Context, launches_json: str, telemetry_dir: Optional[str],
           images: Optional[str], output_format: str) -> None:
    """Assess visibility for every launch in LAUNCHES_JSON.

    LAUNCHES_JSON holds one launch descriptor, a list of them, or a Launch
    Library style page with a "results" list.

    Example:
    assess launches.json --telemetry-dir telemetry/ --format json
    """
    try:
        config = _load_config(ctx, telemetry_dir, images)
        launches = _load_launches(launches_json)
        if not launches:
            click.echo("No valid launches found", err=True)
            sys.exit(1)

        engine = create_engine(config)
        assessments = asyncio.run(engine.assess_many(launches))

        if output_format == 'json':
            payload = [
                {"launchId": launch.id, "name": launch.name, **assessment.to_summary()}
                for launch, assessment in zip(launches, assessments)
            ]
            click.echo(json.dumps(payload, indent=2))
            return

        rows = [
            [
                launch.name,
                launch.net.strftime("%Y-%m-%d %H:%M"),
                assessment.likelihood.value,
                assessment.trajectory_direction.value,
                _fmt_bearing(assessment.bearing_degrees),
                assessment.estimated_time_visible,
                assessment.confidence.value,
            ]
            for launch, assessment in zip(launches, assessments)
        ]
        click.echo(tabulate(
            rows,
            headers=["Launch", "NET (UTC)", "Likelihood", "Direction", "Look", "Visible", "Confidence"],
            tablefmt="simple",
        ))
        click.echo(f"\nObserver: {config.observer.name} "
                   f"({config.observer.latitude:.4f}, {config.observer.longitude:.4f})")
        for launch, assessment in zip(launches, assessments):
            click.echo(f"- {launch.name}: {assessment.reason}")

    except (OSError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.argument('launch_json', type=click.Path(exists=True))
@click.option('--telemetry-dir', type=click.Path(exists=True, file_okay=False),
              help='Directory of <missionRef>.json telemetry files')
@click.option('--images', type=click.Path(exists=True, dir_okay=False),
              help='JSON file of trajectory image metadata keyed by launch id')
@click.option('--format', 'output_format', default='table',
              type=click.Choice(['table', 'json']),
              help='Output format')
@click.option('--visible-only', is_flag=True, help='Only list points above the horizon')
@click.pass_context
def trajectory(ctx: click.Context, launch_json: str, telemetry_dir: Optional[str],
               images: Optional[str], output_format: str, visible_only: bool) -> None:
    """Show the trajectory used for the first launch in LAUNCH_JSON."""
    try:
        config = _load_config(ctx, telemetry_dir, images)
        launches = _load_launches(launch_json)
        if not launches:
            click.echo("No valid launches found", err=True)
            sys.exit(1)
        launch = launches[0]

        engine: VisibilityEngine = create_engine(config)
        data = asyncio.run(engine.get_trajectory(launch))

        if output_format == 'json':
            click.echo(json.dumps(data.to_dict(), indent=2))
            return

        click.echo(f"\n=== {launch.name} ===")
        click.echo(f"Source: {data.source.value} ({data.source.basis})")
        click.echo(f"Confidence: {data.confidence.value}")
        click.echo(f"Direction: {data.trajectory_direction.value}")
        for note in data.notes:
            click.echo(f"Note: {note}")

        window = data.visibility_window
        if window:
            click.echo(f"Visible T+{window.start_time:.0f}s to T+{window.end_time:.0f}s, "
                       f"closest {window.closest_approach_km:.0f} km")
        else:
            click.echo("Never above the horizon")

        points = [p for p in data.points if p.visible or not visible_only]
        if points:
            rows = [
                [f"{p.time:.0f}", f"{p.latitude:.3f}", f"{p.longitude:.3f}",
                 f"{p.altitude / 1000:.1f}", f"{p.distance:.0f}", f"{p.bearing:.0f}",
                 "yes" if p.visible else "no"]
                for p in points
            ]
            click.echo("\n" + tabulate(
                rows,
                headers=["T+s", "Lat", "Lng", "Alt km", "Dist km", "Bearing", "Visible"],
                tablefmt="simple",
            ))

    except (OSError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.option('--lat', type=float, help='Latitude (default: configured observer)')
@click.option('--lng', type=float, help='Longitude (default: configured observer)')
@click.option('--time', 'time_str', type=str,
              help='UTC time (ISO-8601 or YYYY-MM-DD HH:MM:SS, default: now)')
@click.pass_context
def sun(ctx: click.Context, lat: Optional[float], lng: Optional[float],
        time_str: Optional[str]) -> None:
    """Show solar elevation and twilight level for a place and time."""
    try:
        observer = _load_config(ctx).observer
        latitude = observer.latitude if lat is None else lat
        longitude = observer.longitude if lng is None else lng
        if not validate_coordinates(latitude, longitude):
            click.echo(f"Invalid coordinates: {latitude}, {longitude}", err=True)
            sys.exit(1)

        if time_str:
            when = parse_datetime(time_str)
        else:
            when = datetime.now(timezone.utc)

        elevation = solar_elevation(when, latitude, longitude)
        level = twilight_level(elevation)
        click.echo(f"Time: {when.isoformat()}")
        click.echo(f"Location: {latitude:.4f}, {longitude:.4f}")
        click.echo(f"Solar elevation: {elevation:.2f}°")
        click.echo(f"Twilight: {level.label}")

    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command(name='clear-cache')
@click.option('--launch-id', help='Only clear entries for this launch')
@click.pass_context
def clear_cache(ctx: click.Context, launch_id: Optional[str]) -> None:
    """Clear cached trajectories and assessments."""
    try:
        config = _load_config(ctx)
        if config.cache.backend == 'memory':
            click.echo("Cache backend is in-memory; nothing persisted to clear")
            return
        engine = create_engine(config)
        removed = engine.clear_cache(launch_id)
        click.echo(f"Removed {removed} cache entries")

    except (OSError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
