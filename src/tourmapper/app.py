"""Application context: everything loaded at start-up, in one place.

``initialize`` is the single entry point that loads the data files and wires
the tile store, track loader and map controller together. The package keeps
no module-level state; callers hold on to the returned ``AppContext``.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from .map_controller import MapController
from .map_items import RenderSurface
from .models import AppConfig, PointOfInterest, Route
from .poi_loader import load_pois, load_routes
from .tile_store import TilePrefetcher, TileStore
from .track_loader import TrackLoader

logger = logging.getLogger(__name__)

POI_FILES = ("pois.xml", "pois.csv")
ROUTE_FILES = ("routes.xml", "routes.csv")


def find_data_file(data_dir: str, candidates) -> Optional[str]:
    """First existing file among the candidate names, XML preferred."""
    for name in candidates:
        path = os.path.join(data_dir, name)
        if os.path.isfile(path):
            return path
    return None


@dataclass
class AppContext:
    """Loaded data and the services built on it."""
    config: AppConfig
    pois: List[PointOfInterest]
    routes: List[Route]
    tile_store: TileStore
    track_loader: TrackLoader
    controller: MapController
    prefetcher: Optional[TilePrefetcher] = field(default=None)

    def start_prefetch(self) -> TilePrefetcher:
        """Start the background tile prefetch for the initial viewport.

        The region is the configured initial viewport, whatever the map shows
        now. Calling it again returns the prefetcher already started.
        """
        if self.prefetcher is None:
            map_config = self.config.map
            self.prefetcher = TilePrefetcher(
                self.tile_store,
                self.config.tile_source_dir,
                self.controller.clamp_viewport(map_config.initial_viewport),
                min_zoom=map_config.prefetch_min_zoom,
                max_zoom=map_config.prefetch_max_zoom,
            )
            self.prefetcher.start()
        return self.prefetcher

    @property
    def is_loading_tiles(self) -> bool:
        return self.prefetcher is not None and self.prefetcher.is_loading


def initialize(config: AppConfig, surface: Optional[RenderSurface] = None) -> AppContext:
    """Load POIs and routes and build the application services.

    Missing data files give empty collections; the map still works with
    whatever loaded. A surface, if given, receives the full initial state.
    """
    poi_file = find_data_file(config.data_dir, POI_FILES)
    if poi_file is None:
        logger.error(f"No POI file ({' or '.join(POI_FILES)}) in {config.data_dir}")
        pois = []
    else:
        pois = load_pois(poi_file)

    route_file = find_data_file(config.data_dir, ROUTE_FILES)
    if route_file is None:
        logger.warning(f"No route file ({' or '.join(ROUTE_FILES)}) in {config.data_dir}")
        routes = []
    else:
        routes = load_routes(route_file)

    tile_store = TileStore(bundle_dir=config.bundle_dir, cache_dir=config.cache_dir)
    track_loader = TrackLoader(config.track_dir or config.data_dir)
    controller = MapController(pois, routes, config.map, track_loader.load_track, surface=surface)
    if surface is not None:
        controller.attach()

    logger.info(f"Initialized with {len(pois)} POIs and {len(routes)} routes")
    return AppContext(
        config=config,
        pois=pois,
        routes=routes,
        tile_store=tile_store,
        track_loader=track_loader,
        controller=controller,
    )
