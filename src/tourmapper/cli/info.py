"""Commands for inspecting data and track files."""

import logging
from pathlib import Path
from typing import List, Optional

import typer

from ..app import POI_FILES, ROUTE_FILES, find_data_file
from ..poi_loader import categories_of, load_pois, load_routes
from ..track_loader import TrackLoader, start_bearing, track_length_km
from .utils import format_poi, format_route
from . import app

logger = logging.getLogger(__name__)


@app.command()
def info(
        data_dir: Path = typer.Argument(
            ...,
            exists=True,
            file_okay=False,
            dir_okay=True,
            readable=True,
            help="Directory holding the POI and route files"
        )
):
    """Display a summary of the POI and route data in a directory."""
    try:
        poi_file = find_data_file(str(data_dir), POI_FILES)
        route_file = find_data_file(str(data_dir), ROUTE_FILES)

        poi_list = load_pois(poi_file) if poi_file else []
        route_list = load_routes(route_file) if route_file else []
        categories = categories_of(poi_list)

        typer.echo(f"Data directory: {data_dir}")
        typer.echo(f"POI file: {poi_file or 'not found'}")
        typer.echo(f"Route file: {route_file or 'not found'}")
        typer.echo(f"Number of POIs: {len(poi_list)}")
        typer.echo(f"Number of routes: {len(route_list)}")
        typer.echo(f"Categories ({len(categories)}): {', '.join(categories)}")

    except Exception as e:
        logger.error(f"Error reading data directory: {e}")
        raise typer.Abort()


@app.command()
def pois(
        data_file: Path = typer.Argument(
            ...,
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            help="Path to a POI file (CSV or XML)"
        ),
        category: Optional[List[str]] = typer.Option(
            None,
            "--category", "-c",
            help="Only list POIs in this category (repeatable)"
        ),
):
    """List the points of interest in a data file."""
    poi_list = load_pois(data_file)
    if category:
        poi_list = [poi for poi in poi_list if poi.has_any_category(category)]

    for poi in poi_list:
        typer.echo(format_poi(poi))
    typer.echo(f"{len(poi_list)} POIs")


@app.command()
def routes(
        data_file: Path = typer.Argument(
            ...,
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            help="Path to a route file (CSV or XML)"
        )
):
    """List the walking routes in a data file."""
    route_list = load_routes(data_file)
    for route in route_list:
        typer.echo(format_route(route))
    typer.echo(f"{len(route_list)} routes")


@app.command()
def track(
        gpx_file: Path = typer.Argument(
            ...,
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            help="Path to the GPX track file"
        )
):
    """Display information about a route track."""
    points = TrackLoader().load_track(gpx_file)
    if not points:
        logger.error("No usable track points found in the GPX file")
        raise typer.Abort()

    typer.echo(f"GPX File: {gpx_file}")
    typer.echo(f"Number of track points: {len(points)}")
    typer.echo(f"Track length: {track_length_km(points):.2f} km")

    bearing = start_bearing(points)
    if bearing is None:
        typer.echo("Start bearing: not available (single point)")
    else:
        typer.echo(f"Start bearing: {bearing:.1f} deg")
