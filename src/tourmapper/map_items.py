"""Items the map controller asks a rendering surface to draw.

``MapItem`` is a closed union of the five item kinds; surfaces dispatch on it
with ``match`` instead of inspecting overlay types at runtime.
"""

from dataclasses import dataclass
from typing import Optional, Protocol, Tuple, Union

from .models import GeoPoint, PointOfInterest, Viewport

DEFAULT_MARKER_COLOR = "#FF2D55"  # pink

CATEGORY_COLORS = {
    "museum": "#AF52DE",         # purple
    "park": "#34C759",           # green
    "historic": "#A2845E",       # brown
    "shopping": "#007AFF",       # blue
    "restaurant": "#FF3B30",     # red
    "entertainment": "#FF9500",  # orange
    "transport": "#8E8E93",      # gray
    "education": "#5856D6",      # indigo
    "sports": "#30B0C7",         # teal
}


def category_color(category: str) -> str:
    """Marker colour for a category name (case-insensitive)."""
    return CATEGORY_COLORS.get(category.strip().lower(), DEFAULT_MARKER_COLOR)


@dataclass(frozen=True)
class TileLayer:
    """Offline tile overlay replacing the platform basemap."""
    min_zoom: int
    max_zoom: int
    replaces_basemap: bool = True


@dataclass(frozen=True)
class RoutePolyline:
    route_name: str
    points: Tuple[GeoPoint, ...]


@dataclass(frozen=True)
class RouteMarker:
    route_name: str
    location: GeoPoint
    title: str = "Start"


@dataclass(frozen=True)
class DirectionalIndicator:
    """Arrow placed on the second track point, pointing along the route."""
    route_name: str
    location: GeoPoint
    bearing: float


@dataclass(frozen=True)
class POIMarker:
    poi: PointOfInterest
    color: str

    @classmethod
    def for_poi(cls, poi: PointOfInterest) -> "POIMarker":
        category = poi.categories[0] if poi.categories else ""
        return cls(poi, category_color(category))


MapItem = Union[TileLayer, RoutePolyline, RouteMarker, DirectionalIndicator, POIMarker]


@dataclass(frozen=True)
class RenderUpdate:
    """One batch of changes for the rendering surface.

    Surfaces move to ``region`` (if set), then drop ``remove``, then draw
    ``add``. The controller never puts the same item in both tuples.
    """
    region: Optional[Viewport] = None
    add: Tuple[MapItem, ...] = ()
    remove: Tuple[MapItem, ...] = ()

    @property
    def is_empty(self) -> bool:
        return self.region is None and not self.add and not self.remove


class RenderSurface(Protocol):
    """Anything that can display map updates."""

    def apply(self, update: RenderUpdate) -> None:
        ...


def describe_item(item: MapItem) -> str:
    """One-line human readable description of a map item."""
    match item:
        case TileLayer(min_zoom=min_zoom, max_zoom=max_zoom):
            return f"tile layer z{min_zoom}-z{max_zoom}"
        case RoutePolyline(route_name=name, points=points):
            return f"route {name!r}: polyline of {len(points)} points"
        case RouteMarker(route_name=name, location=location, title=title):
            return f"route {name!r}: {title} marker at {location.latitude:.6f},{location.longitude:.6f}"
        case DirectionalIndicator(route_name=name, location=location, bearing=bearing):
            return (f"route {name!r}: direction {bearing:.1f} deg at "
                    f"{location.latitude:.6f},{location.longitude:.6f}")
        case POIMarker(poi=poi, color=color):
            return f"POI {poi.title!r} [{', '.join(poi.categories)}] {color}"
        case _:
            raise TypeError(f"Not a map item: {item!r}")
