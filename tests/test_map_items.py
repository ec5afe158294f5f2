"""Tests for render items and their dispatch."""
import pytest

from tourmapper.map_items import (DEFAULT_MARKER_COLOR, DirectionalIndicator, POIMarker,
                                  RenderUpdate, RouteMarker, RoutePolyline, TileLayer,
                                  category_color, describe_item)
from tourmapper.models import GeoPoint, PointOfInterest


def test_category_color_is_case_insensitive():
    assert category_color("Museum") == category_color("museum") == "#AF52DE"
    assert category_color(" PARK ") == "#34C759"


def test_unknown_category_gets_default_color():
    assert category_color("Pubs") == DEFAULT_MARKER_COLOR


def test_marker_color_from_first_category():
    poi = PointOfInterest(GeoPoint(0, 0), "T", "", ("Restaurant", "Museum"))
    assert POIMarker.for_poi(poi).color == "#FF3B30"


@pytest.mark.parametrize("item,expected", [
    (TileLayer(10, 18), "tile layer z10-z18"),
    (RoutePolyline("Loop", (GeoPoint(0, 0), GeoPoint(0, 1))), "polyline of 2 points"),
    (RouteMarker("Loop", GeoPoint(1, 2)), "Start marker at 1.000000,2.000000"),
    (DirectionalIndicator("Loop", GeoPoint(0, 1), 90.0), "direction 90.0 deg"),
    (POIMarker(PointOfInterest(GeoPoint(0, 0), "Bargate", "", ("Historic",)), "#A2845E"),
     "POI 'Bargate' [Historic] #A2845E"),
])
def test_describe_each_item_kind(item, expected):
    assert expected in describe_item(item)


def test_describe_rejects_other_objects():
    with pytest.raises(TypeError):
        describe_item("not an item")


def test_empty_update():
    assert RenderUpdate().is_empty
    assert not RenderUpdate(add=(TileLayer(1, 2),)).is_empty
