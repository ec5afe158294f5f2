"""Map view state: viewport, category filter and selected route.

The controller owns the state and turns every change into a ``RenderUpdate``
for the rendering surface. It never touches tiles itself; the surface asks
``visible_tiles`` what to draw and resolves each tile through the tile store.
"""

import logging
from typing import Callable, Iterable, List, Optional, Sequence, Set, Tuple

from .map_items import (DirectionalIndicator, MapItem, POIMarker, RenderSurface, RenderUpdate,
                        RouteMarker, RoutePolyline, TileLayer)
from .models import GeoPoint, MapConfig, PointOfInterest, Route, TileIndex, Track, Viewport
from .poi_loader import categories_of
from .tile_math import tiles_for_region, zoom_for_span
from .track_loader import start_bearing

logger = logging.getLogger(__name__)


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def build_route_items(route: Route, track: Track) -> Tuple[MapItem, ...]:
    """Overlay items for a route track.

    An empty track gives no items. The directional indicator needs at least
    two points and sits on the second one.
    """
    if not track:
        return ()

    items: List[MapItem] = [
        RoutePolyline(route.name, tuple(track)),
        RouteMarker(route.name, track[0]),
    ]
    bearing = start_bearing(track)
    if bearing is not None:
        items.append(DirectionalIndicator(route.name, track[1], bearing))
    return tuple(items)


class MapController:
    """Holds the map state and emits render updates when it changes."""

    def __init__(self, pois: Sequence[PointOfInterest], routes: Sequence[Route], config: MapConfig,
                 track_loader: Callable[[str], Track], surface: Optional[RenderSurface] = None,
                 on_poi_selected: Optional[Callable[[PointOfInterest], None]] = None):
        """Initialize the controller.

        Args:
            pois: Loaded points of interest; treated as read-only
            routes: Loaded walking routes; treated as read-only
            config: Bounds, span limits and zoom range of the map
            track_loader: Callable returning the track for a route's track reference
            surface: Rendering surface receiving updates, if any
            on_poi_selected: Called with the POI behind a tapped marker
        """
        self.pois = tuple(pois)
        self.routes = tuple(routes)
        self.config = config
        self.surface = surface
        self.on_poi_selected = on_poi_selected
        self._load_track = track_loader

        self._viewport = self.clamp_viewport(config.initial_viewport)
        self._selected_categories: Set[str] = set(categories_of(self.pois))
        self._selected_route: Optional[Route] = None
        self.selected_poi: Optional[PointOfInterest] = None

        self._tile_layer = TileLayer(config.min_zoom, config.max_zoom)
        self._poi_items: Tuple[POIMarker, ...] = self._markers_for_filter()
        self._route_items: Tuple[MapItem, ...] = ()

    # Rendering

    def _emit(self, update: RenderUpdate) -> None:
        if self.surface is not None and not update.is_empty:
            self.surface.apply(update)

    def attach(self, surface: Optional[RenderSurface] = None) -> None:
        """Send the full current state to a surface."""
        if surface is not None:
            self.surface = surface
        self._emit(RenderUpdate(region=self._viewport, add=tuple(self.overlays)))

    @property
    def overlays(self) -> List[MapItem]:
        return [self._tile_layer, *self._poi_items, *self._route_items]

    @property
    def tile_layer(self) -> TileLayer:
        return self._tile_layer

    def visible_zoom(self) -> int:
        return zoom_for_span(self._viewport.lon_span, self.config.min_zoom, self.config.max_zoom)

    def visible_tiles(self, zoom: Optional[int] = None) -> Set[TileIndex]:
        """Tiles covering the current viewport."""
        if zoom is None:
            zoom = self.visible_zoom()
        return tiles_for_region(self._viewport, zoom)

    # Viewport

    @property
    def viewport(self) -> Viewport:
        return self._viewport

    def clamp_viewport(self, proposed: Viewport) -> Viewport:
        """Fit a proposed viewport into the configured span range and bounds.

        Spans are clamped first; the centre is then moved just far enough for
        the viewport edges to stay inside the bounds, keeping the span.
        """
        bounds = self.config.bounds
        lat_span = min(_clamp(proposed.lat_span, self.config.min_span, self.config.max_span),
                       bounds.lat_range)
        lon_span = min(_clamp(proposed.lon_span, self.config.min_span, self.config.max_span),
                       bounds.lon_range)

        lat = _clamp(proposed.center.latitude,
                     bounds.south + lat_span / 2, bounds.north - lat_span / 2)
        lon = _clamp(proposed.center.longitude,
                     bounds.west + lon_span / 2, bounds.east - lon_span / 2)

        if lat == proposed.center.latitude and lon == proposed.center.longitude:
            center = proposed.center
        else:
            center = GeoPoint(lat, lon)
        return Viewport(center, lat_span, lon_span)

    def update_viewport(self, proposed: Viewport) -> Viewport:
        """Apply a pan/zoom gesture or programmatic move.

        Returns:
            The clamped viewport now in effect
        """
        clamped = self.clamp_viewport(proposed)
        if clamped != self._viewport:
            self._viewport = clamped
            self._emit(RenderUpdate(region=clamped))
        return clamped

    def pan_to(self, center: GeoPoint) -> Viewport:
        return self.update_viewport(self._viewport.with_center(center))

    def zoom_by(self, factor: float) -> Viewport:
        """Scale both spans; a factor below 1 zooms in."""
        if factor <= 0:
            raise ValueError(f"Zoom factor must be positive: {factor}")
        return self.update_viewport(self._viewport.with_span(
            self._viewport.lat_span * factor, self._viewport.lon_span * factor))

    def focus_poi(self, poi: PointOfInterest) -> Viewport:
        """Recentre on a POI picked from the list, zoomed in."""
        span = self.config.focus_span
        return self.update_viewport(Viewport(poi.location, span, span))

    # Category filter

    @property
    def selected_categories(self) -> Set[str]:
        return set(self._selected_categories)

    @property
    def categories(self) -> List[str]:
        return categories_of(self.pois)

    @property
    def visible_pois(self) -> List[PointOfInterest]:
        """POIs sharing at least one category with the filter.

        An empty filter shows nothing.
        """
        return [poi for poi in self.pois if poi.has_any_category(self._selected_categories)]

    def _markers_for_filter(self) -> Tuple[POIMarker, ...]:
        return tuple(POIMarker.for_poi(poi) for poi in self.visible_pois)

    def _refresh_markers(self) -> None:
        old = self._poi_items
        new = self._markers_for_filter()
        self._poi_items = new
        old_set, new_set = set(old), set(new)
        self._emit(RenderUpdate(
            add=tuple(item for item in new if item not in old_set),
            remove=tuple(item for item in old if item not in new_set),
        ))

    def toggle_category(self, category: str) -> bool:
        """Add or remove a category from the filter.

        Returns:
            True if the category is selected afterwards
        """
        if category in self._selected_categories:
            self._selected_categories.discard(category)
            selected = False
        else:
            self._selected_categories.add(category)
            selected = True
        self._refresh_markers()
        return selected

    def select_categories(self, categories: Iterable[str]) -> None:
        self._selected_categories = set(categories)
        self._refresh_markers()

    def select_all_categories(self) -> None:
        self.select_categories(self.categories)

    def clear_categories(self) -> None:
        self.select_categories(())

    # Routes

    @property
    def selected_route(self) -> Optional[Route]:
        return self._selected_route

    def route_named(self, name: str) -> Optional[Route]:
        return next((route for route in self.routes if route.name == name), None)

    def select_route(self, route: Route) -> Tuple[MapItem, ...]:
        """Show a route: its track polyline, start marker and direction arrow.

        The track is loaded afresh on every selection. Any previous route
        overlay is replaced; POI markers and tiles are left alone.

        Returns:
            The overlay items now shown for the route
        """
        track = self._load_track(route.track_ref)
        if not track:
            logger.warning(f"Route {route.name!r} has no usable track points")

        items = build_route_items(route, track)
        old = self._route_items
        self._selected_route = route
        self._route_items = items
        unchanged = set(old) & set(items)
        self._emit(RenderUpdate(
            add=tuple(item for item in items if item not in unchanged),
            remove=tuple(item for item in old if item not in unchanged),
        ))
        return items

    def deselect_route(self) -> None:
        old = self._route_items
        self._selected_route = None
        self._route_items = ()
        self._emit(RenderUpdate(remove=old))

    # Taps

    def tap_annotation(self, title: str, location: GeoPoint) -> Optional[PointOfInterest]:
        """Resolve a tapped marker to its POI by title and coordinate.

        Returns:
            The matching POI, or None if no loaded POI matches
        """
        poi = next((p for p in self.pois if p.title == title and p.location == location), None)
        if poi is None:
            logger.debug(f"No POI for tapped marker {title!r} at {location}")
            return None

        self.selected_poi = poi
        if self.on_poi_selected is not None:
            self.on_poi_selected(poi)
        return poi
