"""Data representation classes for the tourmapper package.

This module contains the value types used throughout the package: geographic
points, tile indices, points of interest, walking routes, the map viewport
and the configuration objects.
"""

from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class GeoPoint:
    """A WGS84 coordinate in degrees."""
    latitude: float
    longitude: float

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Longitude out of range: {self.longitude}")

    def __repr__(self) -> str:
        return f"GeoPoint(lat={self.latitude}, lon={self.longitude})"


@dataclass(frozen=True)
class TileIndex:
    """Address of a slippy-map tile."""
    zoom: int
    x: int
    y: int

    def __post_init__(self):
        if self.zoom < 0:
            raise ValueError(f"Zoom must not be negative: {self.zoom}")
        n = 2 ** self.zoom
        if not (0 <= self.x < n and 0 <= self.y < n):
            raise ValueError(f"Tile {self.x},{self.y} outside zoom {self.zoom} grid")

    @property
    def filename(self) -> str:
        """Asset name used for bundled and cached tiles."""
        return f"{self.zoom}-{self.x}-{self.y}.png"

    def __repr__(self) -> str:
        return f"TileIndex(z={self.zoom}, x={self.x}, y={self.y})"


@dataclass(frozen=True)
class PointOfInterest:
    """A labelled location shown as a marker on the map.

    Two points of interest with the same title and location are the same
    entity; see ``key``.
    """
    location: GeoPoint
    title: str
    description: str = ""
    categories: Tuple[str, ...] = ()
    image: Optional[str] = None
    audio: Optional[str] = None
    directions: Optional[str] = None

    @property
    def key(self) -> Tuple[str, GeoPoint]:
        return self.title, self.location

    def has_any_category(self, categories) -> bool:
        return any(category in categories for category in self.categories)


@dataclass(frozen=True)
class Route:
    """A walking route whose path lives in a separate GPX track file."""
    name: str
    description: str
    track_ref: str
    distance_km: float
    duration: str = ""


# Tracks are plain ordered point lists, reloaded whenever a route is selected.
Track = List[GeoPoint]


@dataclass(frozen=True)
class MapBounds:
    """Geographic box the viewport has to stay inside."""
    north: float
    south: float
    east: float
    west: float

    def __post_init__(self):
        if self.north <= self.south:
            raise ValueError(f"north ({self.north}) must be greater than south ({self.south})")
        if self.east <= self.west:
            raise ValueError(f"east ({self.east}) must be greater than west ({self.west})")

    @property
    def lat_range(self) -> float:
        return self.north - self.south

    @property
    def lon_range(self) -> float:
        return self.east - self.west

    @property
    def center(self) -> GeoPoint:
        return GeoPoint((self.north + self.south) / 2, (self.east + self.west) / 2)

    def contains(self, point: GeoPoint) -> bool:
        return (self.south <= point.latitude <= self.north
                and self.west <= point.longitude <= self.east)


@dataclass(frozen=True)
class Viewport:
    """The displayed map window: a centre plus latitude/longitude spans."""
    center: GeoPoint
    lat_span: float
    lon_span: float

    def __post_init__(self):
        if self.lat_span <= 0 or self.lon_span <= 0:
            raise ValueError(f"Viewport spans must be positive: {self.lat_span}, {self.lon_span}")

    @property
    def north(self) -> float:
        return self.center.latitude + self.lat_span / 2

    @property
    def south(self) -> float:
        return self.center.latitude - self.lat_span / 2

    @property
    def east(self) -> float:
        return self.center.longitude + self.lon_span / 2

    @property
    def west(self) -> float:
        return self.center.longitude - self.lon_span / 2

    def with_center(self, center: GeoPoint) -> "Viewport":
        return replace(self, center=center)

    def with_span(self, lat_span: float, lon_span: float) -> "Viewport":
        return replace(self, lat_span=lat_span, lon_span=lon_span)


# Southampton city centre
DEFAULT_CENTER = GeoPoint(50.9097, -1.4044)


@dataclass
class MapConfig:
    """Configuration for the map view and its tiles."""
    bounds: MapBounds = field(default_factory=lambda: MapBounds(
        north=51.0, south=50.82, east=-1.25, west=-1.56))
    initial_viewport: Viewport = field(default_factory=lambda: Viewport(DEFAULT_CENTER, 0.05, 0.05))
    min_span: float = 0.002
    max_span: float = 0.15
    focus_span: float = 0.01
    min_zoom: int = 10
    max_zoom: int = 18
    prefetch_min_zoom: int = 12
    prefetch_max_zoom: int = 16

    def __post_init__(self):
        if not 0 < self.min_span <= self.max_span:
            raise ValueError(f"Invalid span range: {self.min_span}..{self.max_span}")
        if not 0 <= self.min_zoom <= self.max_zoom:
            raise ValueError(f"Invalid zoom range: {self.min_zoom}..{self.max_zoom}")
        if not 0 <= self.prefetch_min_zoom <= self.prefetch_max_zoom:
            raise ValueError(
                f"Invalid prefetch zoom range: {self.prefetch_min_zoom}..{self.prefetch_max_zoom}")


@dataclass
class AppConfig:
    """Where the application finds its data, tiles and tracks.

    ``cache_dir`` of None selects the operating system default, see
    ``tourmapper.tile_store.default_cache_dir``.
    """
    data_dir: str = "data"
    bundle_dir: Optional[str] = None
    cache_dir: Optional[str] = None
    tile_source_dir: Optional[str] = None
    track_dir: Optional[str] = None
    map: MapConfig = field(default_factory=MapConfig)
