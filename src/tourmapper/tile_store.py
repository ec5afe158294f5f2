"""Tile storage for offline map imagery.

Tiles are resolved from a bundled asset directory first and a local cache
directory second. A miss returns empty bytes so the rendering surface shows
"no imagery" instead of falling back to a live basemap; nothing here talks to
a tile server.

The cache is filled by ``TilePrefetcher``, a one-shot background job that
materialises tiles for the initial viewport from a local tile source (the
usual ``{z}/{x}/{y}.png`` layout written by tile downloaders).
"""

import concurrent.futures
import logging
import os
import platform
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from PIL import Image

from .models import TileIndex, Viewport
from .tile_math import tiles_for_region

logger = logging.getLogger(__name__)

SOURCE_EXTENSIONS = (".png", ".jpg", ".jpeg")


def default_cache_dir() -> str:
    """Return the tile cache directory for the current operating system."""
    system = platform.system()
    if system == "Windows":
        # Windows default: %LOCALAPPDATA%\tourmapper\cache
        appdata = os.environ.get("LOCALAPPDATA")
        if appdata:
            return os.path.join(appdata, "tourmapper", "cache")
        return os.path.join(os.path.expanduser("~"), "AppData", "Local", "tourmapper", "cache")
    if system == "Linux":
        # Linux default: ~/.cache/tourmapper
        return os.path.join(os.path.expanduser("~"), ".cache", "tourmapper")
    return os.path.join(os.path.expanduser("~"), ".tourmapper", "cache")


class TileStore:
    """Resolves tile indices to PNG bytes from bundled assets and the cache."""

    def __init__(self, bundle_dir: Optional[str] = None, cache_dir: Optional[str] = None,
                 use_cache: bool = True):
        """Initialize the tile store.

        Args:
            bundle_dir: Directory of tiles shipped with the application, named
                        "{zoom}-{x}-{y}.png". May be None.
            cache_dir: Directory for prefetched tiles. If None, a default directory
                       based on the operating system will be used.
            use_cache: Whether to read and write the cache directory.
        """
        self.bundle_dir = bundle_dir
        self.use_cache = use_cache

        if cache_dir is None:
            logger.info("Using OS dependent cache dir")
            cache_dir = default_cache_dir()
        self.cache_dir = cache_dir
        logger.info(f"Using cache dir: {self.cache_dir}")

        if self.use_cache:
            os.makedirs(self.cache_dir, exist_ok=True)

    def bundle_path(self, tile: TileIndex) -> Optional[str]:
        if not self.bundle_dir:
            return None
        return os.path.join(self.bundle_dir, tile.filename)

    def cache_path(self, tile: TileIndex) -> str:
        return os.path.join(self.cache_dir, tile.filename)

    def get_tile_path(self, tile: TileIndex) -> Optional[str]:
        """Get the path of the file that would serve a tile.

        Returns:
            The bundled asset path, else the cached file path, or None if the
            tile is available from neither.
        """
        for path in self._paths_for(tile):
            if os.path.exists(path):
                return path
        return None

    def _paths_for(self, tile: TileIndex) -> List[str]:
        paths = []
        bundle_path = self.bundle_path(tile)
        if bundle_path:
            paths.append(bundle_path)
        if self.use_cache:
            paths.append(self.cache_path(tile))
        return paths

    def has_tile(self, tile: TileIndex) -> bool:
        return self.get_tile_path(tile) is not None

    def load_tile(self, tile: TileIndex) -> bytes:
        """Load the image bytes of a tile.

        Args:
            tile: Tile to load

        Returns:
            PNG bytes, or empty bytes when no imagery is available. An
            unreadable file is logged and the next source is tried.
        """
        for path in self._paths_for(tile):
            if not os.path.exists(path):
                continue
            try:
                with open(path, "rb") as f:
                    return f.read()
            except OSError as e:
                logger.warning(f"Failed to read tile {tile} from {path}: {e}")

        logger.debug(f"No imagery for tile {tile}")
        return b""

    def store_tile(self, tile: TileIndex, image: Image.Image) -> str:
        """Save an image into the cache as the tile's PNG.

        Each cache file is written once; an existing file is left untouched.
        The image is written to a temporary file and renamed into place so a
        concurrent reader never sees a partial tile.

        Returns:
            Path of the cached tile
        """
        path = self.cache_path(tile)
        if os.path.exists(path):
            return path

        tmp_path = f"{path}.{os.getpid()}.{threading.get_ident()}.tmp"
        try:
            image.save(tmp_path, format="PNG")
            os.replace(tmp_path, path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        logger.debug(f"Cached tile {tile} at {path}")
        return path

    def clear_cache(self) -> int:
        """Delete all cached tiles and return how many files were removed."""
        if not os.path.isdir(self.cache_dir):
            return 0

        removed = 0
        for file_path in Path(self.cache_dir).glob("*.png"):
            try:
                file_path.unlink()
                removed += 1
            except OSError as e:
                logger.warning(f"Failed to delete {file_path}: {e}")
        return removed


@dataclass
class PrefetchResult:
    """Summary of a prefetch run."""
    requested: int = 0
    materialized: int = 0
    skipped: int = 0
    failed: int = 0
    cancelled: bool = False


class TilePrefetcher:
    """Fills the tile cache for a viewport on a single background task.

    The job is fire-and-forget: per-tile failures are logged and counted,
    never raised. ``is_loading`` is the flag a UI binds its loading
    indicator to.
    """

    def __init__(self, store: TileStore, source_dir: Optional[str], viewport: Viewport,
                 min_zoom: int = 12, max_zoom: int = 16):
        self.store = store
        self.source_dir = source_dir
        self.viewport = viewport
        self.min_zoom = min_zoom
        self.max_zoom = max_zoom
        self._cancel_event = threading.Event()
        self._future: Optional[concurrent.futures.Future] = None

    def find_source(self, tile: TileIndex) -> Optional[str]:
        """Locate a tile in the source directory, trying common extensions."""
        if not self.source_dir:
            return None
        for ext in SOURCE_EXTENSIONS:
            path = os.path.join(self.source_dir, str(tile.zoom), str(tile.x), f"{tile.y}{ext}")
            if os.path.exists(path):
                return path
        return None

    def materialize(self, tile: TileIndex) -> bool:
        """Copy one tile from the source into the cache as PNG.

        Returns:
            True if the tile was written, False if the source has no such tile
        """
        source_path = self.find_source(tile)
        if source_path is None:
            return False

        with Image.open(source_path) as image:
            image.load()
            if image.mode not in ("RGB", "RGBA"):
                image = image.convert("RGBA" if "transparency" in image.info else "RGB")
            self.store.store_tile(tile, image)
        return True

    def run(self) -> PrefetchResult:
        """Prefetch every tile of the viewport over the zoom range."""
        result = PrefetchResult()

        for zoom in range(self.min_zoom, self.max_zoom + 1):
            tiles = sorted(tiles_for_region(self.viewport, zoom), key=lambda t: (t.x, t.y))
            logger.info(f"Prefetching {len(tiles)} tiles for zoom level {zoom}")

            for tile in tiles:
                if self._cancel_event.is_set():
                    logger.info("Tile prefetch cancelled")
                    result.cancelled = True
                    return result

                result.requested += 1
                if self.store.has_tile(tile):
                    result.skipped += 1
                    continue

                try:
                    if self.materialize(tile):
                        result.materialized += 1
                    else:
                        logger.debug(f"Tile {tile} not present in source {self.source_dir}")
                        result.failed += 1
                except (OSError, ValueError) as e:
                    logger.warning(f"Failed to prefetch tile {tile}: {e}")
                    result.failed += 1

        logger.info(
            f"Tile prefetch finished: {result.materialized} cached, "
            f"{result.skipped} already available, {result.failed} unavailable"
        )
        return result

    def start(self) -> concurrent.futures.Future:
        """Run the prefetch in the background and return its future."""
        if self._future is not None:
            return self._future

        executor = concurrent.futures.ThreadPoolExecutor(max_workers=1,
                                                         thread_name_prefix="tile-prefetch")
        self._future = executor.submit(self.run)
        # The queued job still runs; the executor just accepts no more work.
        executor.shutdown(wait=False)
        return self._future

    @property
    def is_loading(self) -> bool:
        return self._future is not None and not self._future.done()

    def cancel(self) -> None:
        self._cancel_event.set()

    def wait(self, timeout: Optional[float] = None) -> PrefetchResult:
        """Block until a started prefetch finishes and return its result."""
        if self._future is None:
            raise RuntimeError("Prefetch has not been started")
        return self._future.result(timeout=timeout)
