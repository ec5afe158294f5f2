"""Utility functions for the CLI commands."""

import logging

import typer

from ..map_items import RenderUpdate, describe_item
from ..models import GeoPoint, PointOfInterest, Route, Viewport

logger = logging.getLogger(__name__)


def make_viewport(lat: float, lon: float, lat_span: float, lon_span: float) -> Viewport:
    """Build a viewport from command line values.

    Raises:
        typer.BadParameter: If the centre or spans are invalid
    """
    try:
        return Viewport(GeoPoint(lat, lon), lat_span, lon_span)
    except ValueError as e:
        logger.error(f"Invalid viewport: {e}")
        raise typer.BadParameter(str(e))


def format_poi(poi: PointOfInterest) -> str:
    location = poi.location
    return (f"{poi.title} ({location.latitude:.6f},{location.longitude:.6f}) "
            f"[{', '.join(poi.categories)}]")


def format_route(route: Route) -> str:
    duration = f", {route.duration}" if route.duration else ""
    return f"{route.name}: {route.distance_km:.1f} km{duration} (track: {route.track_ref})"


class EchoSurface:
    """Rendering surface that prints every update to the terminal."""

    def apply(self, update: RenderUpdate) -> None:
        if update.region is not None:
            center = update.region.center
            typer.echo(f"region {center.latitude:.6f},{center.longitude:.6f} "
                       f"span {update.region.lat_span:.4f}x{update.region.lon_span:.4f}")
        for item in update.remove:
            typer.echo(f"- {describe_item(item)}")
        for item in update.add:
            typer.echo(f"+ {describe_item(item)}")
