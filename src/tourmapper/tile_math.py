"""Slippy-map (Web Mercator) tile coordinate conversions.

Zoom z has 2^z x 2^z tiles. Tile (0, 0) is the north-west corner of the
world; x grows eastward and y grows southward.
"""

import math
from typing import Set

from .models import GeoPoint, TileIndex, Viewport

# Latitude where the Mercator square ends; beyond it tan/cos blow up.
MAX_LATITUDE = 85.05112878


def point_to_tile(point: GeoPoint, zoom: int) -> TileIndex:
    """Convert a geographic point to the tile containing it.

    Args:
        point: Point to project
        zoom: Zoom level

    Returns:
        TileIndex of the tile covering the point. Points on the poles or the
        antimeridian map to the boundary tiles.
    """
    if zoom < 0:
        raise ValueError(f"Zoom must not be negative: {zoom}")
    n = 2 ** zoom

    lat = max(-MAX_LATITUDE, min(MAX_LATITUDE, point.latitude))
    lat_rad = math.radians(lat)
    x = int((point.longitude + 180.0) / 360.0 * n)
    y = int((1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi) / 2.0 * n)

    x = max(0, min(n - 1, x))
    y = max(0, min(n - 1, y))
    return TileIndex(zoom, x, y)


def tile_to_point(xtile: float, ytile: float, zoom: int) -> GeoPoint:
    """Convert (possibly fractional) tile coordinates to latitude and longitude.

    Integer coordinates give the north-west corner of the tile.
    """
    n = 2.0 ** zoom
    lon_deg = xtile / n * 360.0 - 180.0
    lat_rad = math.atan(math.sinh(math.pi * (1 - 2 * ytile / n)))
    return GeoPoint(math.degrees(lat_rad), lon_deg)


def tile_center(tile: TileIndex) -> GeoPoint:
    """Geographic centre of a tile."""
    return tile_to_point(tile.x + 0.5, tile.y + 0.5, tile.zoom)


def tiles_for_region(viewport: Viewport, zoom: int) -> Set[TileIndex]:
    """Get all tiles needed to cover a viewport at a zoom level.

    The corners are projected separately and every tile of the rectangle
    between them is returned. There is no wraparound across the antimeridian.
    """
    north = min(90.0, viewport.north)
    south = max(-90.0, viewport.south)
    west = max(-180.0, viewport.west)
    east = min(180.0, viewport.east)

    nw = point_to_tile(GeoPoint(north, west), zoom)
    se = point_to_tile(GeoPoint(south, east), zoom)

    return {
        TileIndex(zoom, x, y)
        for x in range(nw.x, se.x + 1)
        for y in range(nw.y, se.y + 1)
    }


def zoom_for_span(lon_span: float, min_zoom: int = 0, max_zoom: int = 19) -> int:
    """Pick the zoom level whose tile grid best fits a longitude span."""
    if lon_span <= 0:
        return max_zoom
    zoom = int(round(math.log2(360.0 / lon_span)))
    return max(min_zoom, min(max_zoom, zoom))
