"""Command for showing a route the way the map would draw it."""

import logging
from pathlib import Path

import typer

from ..app import initialize
from ..models import AppConfig
from ..track_loader import track_length_km
from .utils import EchoSurface, format_route
from . import app

logger = logging.getLogger(__name__)


@app.command()
def route(
        data_dir: Path = typer.Argument(
            ...,
            exists=True,
            file_okay=False,
            dir_okay=True,
            readable=True,
            help="Directory holding the POI, route and GPX files"
        ),
        name: str = typer.Argument(..., help="Name of the route to select"),
        track_dir: Path = typer.Option(
            None,
            "--track-dir", "-t",
            help="Directory of the GPX files (default: the data directory)"
        ),
        cache_dir: Path = typer.Option(
            None,
            "--cache-dir",
            help="Tile cache directory (default: OS dependent)"
        ),
):
    """Select a route and print the overlays the map would show."""
    config = AppConfig(
        data_dir=str(data_dir),
        track_dir=str(track_dir) if track_dir else None,
        cache_dir=str(cache_dir) if cache_dir else None,
    )
    context = initialize(config)
    controller = context.controller

    selected = controller.route_named(name)
    if selected is None:
        logger.error(f"No route named {name!r}; known routes: "
                     f"{', '.join(r.name for r in context.routes) or 'none'}")
        raise typer.Abort()

    typer.echo(format_route(selected))
    controller.attach(EchoSurface())
    items = controller.select_route(selected)
    if not items:
        typer.echo("Route track could not be loaded")
        return

    points = items[0].points
    typer.echo(f"Track length: {track_length_km(list(points)):.2f} km "
               f"(declared {selected.distance_km:.2f} km)")
