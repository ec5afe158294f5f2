"""Tests for the tile store and the background prefetch."""
import logging
import os

import pytest
from PIL import Image

from tourmapper.models import GeoPoint, TileIndex, Viewport
from tourmapper.tile_math import tiles_for_region
from tourmapper.tile_store import PrefetchResult, TilePrefetcher, TileStore, default_cache_dir

TILE = TileIndex(15, 16256, 10980)


@pytest.fixture
def store(tmp_path):
    bundle = tmp_path / "bundle"
    bundle.mkdir()
    return TileStore(bundle_dir=str(bundle), cache_dir=str(tmp_path / "cache"))


def write_source_tile(source_dir, tile, ext=".png", mode="RGB"):
    path = source_dir / str(tile.zoom) / str(tile.x) / f"{tile.y}{ext}"
    path.parent.mkdir(parents=True, exist_ok=True)
    fmt = "JPEG" if ext in (".jpg", ".jpeg") else "PNG"
    Image.new(mode, (256, 256), 128).save(path, format=fmt)
    return path


class TestTileStore:
    def test_cache_dir_created(self, tmp_path):
        cache = tmp_path / "nested" / "cache"
        TileStore(cache_dir=str(cache))
        assert cache.is_dir()

    def test_bundle_tile_loaded(self, store):
        with open(os.path.join(store.bundle_dir, TILE.filename), "wb") as f:
            f.write(b"bundled")
        assert store.load_tile(TILE) == b"bundled"

    def test_bundle_preferred_over_cache(self, store):
        with open(os.path.join(store.bundle_dir, TILE.filename), "wb") as f:
            f.write(b"bundled")
        with open(store.cache_path(TILE), "wb") as f:
            f.write(b"cached")
        assert store.load_tile(TILE) == b"bundled"

    def test_cache_used_when_not_bundled(self, store):
        with open(store.cache_path(TILE), "wb") as f:
            f.write(b"cached")
        assert store.load_tile(TILE) == b"cached"
        assert store.get_tile_path(TILE) == store.cache_path(TILE)

    def test_miss_returns_empty_bytes(self, store):
        assert store.load_tile(TILE) == b""
        assert store.get_tile_path(TILE) is None
        assert not store.has_tile(TILE)

    def test_cache_path_is_deterministic(self, store):
        assert store.cache_path(TILE) == os.path.join(store.cache_dir, "15-16256-10980.png")

    def test_cache_ignored_when_disabled(self, tmp_path):
        cache = tmp_path / "cache"
        cache.mkdir()
        (cache / TILE.filename).write_bytes(b"cached")
        no_cache = TileStore(cache_dir=str(cache), use_cache=False)
        assert no_cache.load_tile(TILE) == b""

    def test_store_tile_writes_png_once(self, store):
        path = store.store_tile(TILE, Image.new("RGB", (256, 256), (255, 0, 0)))
        with Image.open(path) as image:
            assert image.format == "PNG"
            assert image.getpixel((0, 0)) == (255, 0, 0)

        store.store_tile(TILE, Image.new("RGB", (256, 256), (0, 0, 255)))
        with Image.open(path) as image:
            assert image.getpixel((0, 0)) == (255, 0, 0)
        assert [name for name in os.listdir(store.cache_dir) if name.endswith(".tmp")] == []

    def test_clear_cache(self, store):
        store.store_tile(TILE, Image.new("RGB", (8, 8)))
        store.store_tile(TileIndex(15, 16257, 10980), Image.new("RGB", (8, 8)))
        assert store.clear_cache() == 2
        assert store.load_tile(TILE) == b""


def test_default_cache_dir_linux(monkeypatch):
    monkeypatch.setattr("tourmapper.tile_store.platform.system", lambda: "Linux")
    assert default_cache_dir().endswith(os.path.join(".cache", "tourmapper"))


def test_default_cache_dir_windows(monkeypatch, tmp_path):
    monkeypatch.setattr("tourmapper.tile_store.platform.system", lambda: "Windows")
    monkeypatch.setenv("LOCALAPPDATA", str(tmp_path))
    assert default_cache_dir() == os.path.join(str(tmp_path), "tourmapper", "cache")


class TestTilePrefetcher:
    VIEWPORT = Viewport(GeoPoint(50.9097, -1.4044), 0.02, 0.02)
    ZOOM = 14

    def region_tiles(self):
        return sorted(tiles_for_region(self.VIEWPORT, self.ZOOM), key=lambda t: (t.x, t.y))

    def test_materializes_tiles_from_source(self, store, tmp_path):
        source = tmp_path / "source"
        tiles = self.region_tiles()
        for tile in tiles:
            write_source_tile(source, tile)

        prefetcher = TilePrefetcher(store, str(source), self.VIEWPORT, self.ZOOM, self.ZOOM)
        result = prefetcher.run()

        assert result == PrefetchResult(requested=len(tiles), materialized=len(tiles))
        for tile in tiles:
            assert store.load_tile(tile).startswith(b"\x89PNG")

    def test_second_run_skips_cached_tiles(self, store, tmp_path):
        source = tmp_path / "source"
        tiles = self.region_tiles()
        for tile in tiles:
            write_source_tile(source, tile)

        TilePrefetcher(store, str(source), self.VIEWPORT, self.ZOOM, self.ZOOM).run()
        result = TilePrefetcher(store, str(source), self.VIEWPORT, self.ZOOM, self.ZOOM).run()
        assert result.skipped == len(tiles)
        assert result.materialized == 0

    def test_missing_and_corrupt_source_tiles_are_counted_not_raised(self, store, tmp_path, caplog):
        source = tmp_path / "source"
        tiles = self.region_tiles()
        for tile in tiles[1:]:
            write_source_tile(source, tile)
        corrupt = source / str(tiles[-1].zoom) / str(tiles[-1].x) / f"{tiles[-1].y}.png"
        corrupt.write_bytes(b"not an image")

        with caplog.at_level(logging.WARNING, logger="tourmapper.tile_store"):
            result = TilePrefetcher(store, str(source), self.VIEWPORT, self.ZOOM, self.ZOOM).run()

        assert result.failed == 2
        assert result.materialized == len(tiles) - 2
        assert any("Failed to prefetch tile" in r.message for r in caplog.records)

    def test_jpeg_source_converted_to_png(self, store, tmp_path):
        source = tmp_path / "source"
        tile = self.region_tiles()[0]
        write_source_tile(source, tile, ext=".jpg", mode="L")

        prefetcher = TilePrefetcher(store, str(source), self.VIEWPORT, self.ZOOM, self.ZOOM)
        assert prefetcher.materialize(tile)
        with Image.open(store.cache_path(tile)) as image:
            assert image.format == "PNG"
            assert image.mode == "RGB"

    def test_no_source_directory(self, store):
        result = TilePrefetcher(store, None, self.VIEWPORT, self.ZOOM, self.ZOOM).run()
        assert result.failed == result.requested > 0

    def test_bundled_tiles_are_not_copied(self, store, tmp_path):
        source = tmp_path / "source"
        tiles = self.region_tiles()
        for tile in tiles:
            write_source_tile(source, tile)
            with open(os.path.join(store.bundle_dir, tile.filename), "wb") as f:
                f.write(b"bundled")

        result = TilePrefetcher(store, str(source), self.VIEWPORT, self.ZOOM, self.ZOOM).run()
        assert result.skipped == len(tiles)
        assert os.listdir(store.cache_dir) == []

    def test_background_run_signals_completion(self, store, tmp_path):
        source = tmp_path / "source"
        for tile in self.region_tiles():
            write_source_tile(source, tile)

        prefetcher = TilePrefetcher(store, str(source), self.VIEWPORT, 13, self.ZOOM)
        future = prefetcher.start()
        assert prefetcher.start() is future
        result = prefetcher.wait(timeout=30)

        assert future.done()
        assert not prefetcher.is_loading
        assert result.materialized == len(self.region_tiles())
        assert result.requested == len(self.region_tiles()) + len(tiles_for_region(self.VIEWPORT, 13))

    def test_cancel_stops_before_next_tile(self, store):
        prefetcher = TilePrefetcher(store, None, self.VIEWPORT, self.ZOOM, self.ZOOM)
        prefetcher.cancel()
        result = prefetcher.run()
        assert result.cancelled
        assert result.requested == 0

    def test_wait_requires_start(self, store):
        prefetcher = TilePrefetcher(store, None, self.VIEWPORT, self.ZOOM, self.ZOOM)
        with pytest.raises(RuntimeError):
            prefetcher.wait()
        assert not prefetcher.is_loading
