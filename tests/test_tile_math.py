"""Tests for slippy-map tile conversions."""
import pytest

from tourmapper.models import GeoPoint, TileIndex, Viewport
from tourmapper.tile_math import (MAX_LATITUDE, point_to_tile, tile_center, tile_to_point,
                                  tiles_for_region, zoom_for_span)


def test_origin_at_zoom_one():
    assert point_to_tile(GeoPoint(0.0, 0.0), 1) == TileIndex(1, 1, 1)


def test_zoom_zero_is_single_tile():
    assert point_to_tile(GeoPoint(50.9, -1.4), 0) == TileIndex(0, 0, 0)


def test_known_tile_for_southampton():
    # x = floor((-1.4044 + 180) / 360 * 2^15)
    tile = point_to_tile(GeoPoint(50.9097, -1.4044), 15)
    assert tile.x == 16256
    assert tile.zoom == 15


@pytest.mark.parametrize("zoom", [0, 1, 5, 12, 18])
@pytest.mark.parametrize("lat", [-90.0, -85.1, -45.0, 0.0, 50.9097, 85.06, 90.0])
@pytest.mark.parametrize("lon", [-180.0, -1.4044, 0.0, 179.9999, 180.0])
def test_tile_indices_within_grid(lat, lon, zoom):
    tile = point_to_tile(GeoPoint(lat, lon), zoom)
    n = 2 ** zoom
    assert 0 <= tile.x < n
    assert 0 <= tile.y < n


def test_negative_zoom_rejected():
    with pytest.raises(ValueError):
        point_to_tile(GeoPoint(0.0, 0.0), -1)


def test_tile_to_point_north_west_corner():
    p = tile_to_point(0, 0, 3)
    assert p.latitude == pytest.approx(MAX_LATITUDE, abs=1e-6)
    assert p.longitude == pytest.approx(-180.0)


@pytest.mark.parametrize("tile", [TileIndex(15, 16256, 10980), TileIndex(3, 0, 7), TileIndex(18, 262000, 170000)])
def test_tile_center_round_trip(tile):
    assert point_to_tile(tile_center(tile), tile.zoom) == tile


def test_region_corners_match_projected_corners():
    viewport = Viewport(GeoPoint(50.9097, -1.4044), 0.05, 0.05)
    zoom = 15
    tiles = tiles_for_region(viewport, zoom)

    nw = point_to_tile(GeoPoint(viewport.north, viewport.west), zoom)
    se = point_to_tile(GeoPoint(viewport.south, viewport.east), zoom)
    xs = {t.x for t in tiles}
    ys = {t.y for t in tiles}
    assert min(xs) == nw.x and min(ys) == nw.y
    assert max(xs) == se.x and max(ys) == se.y
    # Full rectangle
    assert len(tiles) == (se.x - nw.x + 1) * (se.y - nw.y + 1)
    assert all(t.zoom == zoom for t in tiles)


def test_region_collapsing_to_a_point_is_one_tile():
    viewport = Viewport(GeoPoint(50.9097, -1.4044), 1e-9, 1e-9)
    tiles = tiles_for_region(viewport, 14)
    assert tiles == {point_to_tile(viewport.center, 14)}


def test_region_clipped_to_world():
    viewport = Viewport(GeoPoint(0.0, 0.0), 200.0, 400.0)
    assert len(tiles_for_region(viewport, 1)) == 4


def test_zoom_for_span():
    assert zoom_for_span(360.0) == 0
    assert zoom_for_span(0.05, 10, 18) == 13
    assert zoom_for_span(100.0, 10, 18) == 10
    assert zoom_for_span(0.00001, 10, 18) == 18
