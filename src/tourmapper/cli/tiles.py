"""Commands for listing and prefetching map tiles."""

import logging
from pathlib import Path

import typer

from ..tile_math import tiles_for_region
from ..tile_store import TilePrefetcher, TileStore
from ..models import DEFAULT_CENTER
from .utils import make_viewport
from . import app

logger = logging.getLogger(__name__)


@app.command()
def tiles(
        lat: float = typer.Option(DEFAULT_CENTER.latitude, "--lat", help="Latitude of the viewport centre"),
        lon: float = typer.Option(DEFAULT_CENTER.longitude, "--lon", help="Longitude of the viewport centre"),
        lat_span: float = typer.Option(0.05, "--lat-span", min=0.0001, help="Latitude span in degrees"),
        lon_span: float = typer.Option(0.05, "--lon-span", min=0.0001, help="Longitude span in degrees"),
        zoom: int = typer.Option(
            15,
            "--zoom", "-z",
            min=0,
            max=19,
            help="Zoom level (0-19, higher is more detailed)"
        ),
):
    """List the tiles covering a viewport."""
    viewport = make_viewport(lat, lon, lat_span, lon_span)
    covering = sorted(tiles_for_region(viewport, zoom), key=lambda t: (t.x, t.y))
    for tile in covering:
        typer.echo(f"{tile.zoom}/{tile.x}/{tile.y}")
    typer.echo(f"{len(covering)} tiles at zoom {zoom}")


@app.command()
def prefetch(
        source_dir: Path = typer.Argument(
            ...,
            exists=True,
            file_okay=False,
            dir_okay=True,
            readable=True,
            help="Tile source directory laid out as {z}/{x}/{y}.png"
        ),
        cache_dir: Path = typer.Option(
            None,
            "--cache-dir",
            help="Tile cache directory (default: OS dependent)"
        ),
        lat: float = typer.Option(DEFAULT_CENTER.latitude, "--lat", help="Latitude of the viewport centre"),
        lon: float = typer.Option(DEFAULT_CENTER.longitude, "--lon", help="Longitude of the viewport centre"),
        lat_span: float = typer.Option(0.05, "--lat-span", min=0.0001, help="Latitude span in degrees"),
        lon_span: float = typer.Option(0.05, "--lon-span", min=0.0001, help="Longitude span in degrees"),
        min_zoom: int = typer.Option(12, "--min-zoom", min=0, max=19, help="Lowest zoom level to prefetch"),
        max_zoom: int = typer.Option(16, "--max-zoom", min=0, max=19, help="Highest zoom level to prefetch"),
):
    """Copy the tiles of a viewport from a tile source into the cache."""
    if min_zoom > max_zoom:
        raise typer.BadParameter("--min-zoom must not be greater than --max-zoom")

    viewport = make_viewport(lat, lon, lat_span, lon_span)
    try:
        store = TileStore(cache_dir=str(cache_dir) if cache_dir else None)
        prefetcher = TilePrefetcher(store, str(source_dir), viewport, min_zoom, max_zoom)
        prefetcher.start()
        result = prefetcher.wait()
    except Exception as e:
        logger.error(f"Error prefetching tiles: {e}")
        raise typer.Abort()

    typer.echo(f"Requested: {result.requested}")
    typer.echo(f"Cached: {result.materialized}")
    typer.echo(f"Already available: {result.skipped}")
    typer.echo(f"Unavailable: {result.failed}")
    typer.echo(f"Cache directory: {store.cache_dir}")
