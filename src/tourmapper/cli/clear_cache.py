"""Command for clearing the map tiles cache."""

import logging
import os
from pathlib import Path

import typer

from ..tile_store import TileStore
from . import app

logger = logging.getLogger(__name__)


@app.command("clear-cache")
def clear_cache(
        cache_dir: Path = typer.Option(
            None,
            "--cache-dir",
            help="Tile cache directory (default: OS dependent)"
        ),
        yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Clear the map tiles cache directory.

    This command removes all cached map tiles to free up disk space.
    Bundled tiles are never touched.
    """
    try:
        # Without use_cache the store leaves a missing directory alone
        store = TileStore(cache_dir=str(cache_dir) if cache_dir else None, use_cache=False)
        cache_path = store.cache_dir

        if not os.path.exists(cache_path):
            typer.echo(f"Cache directory does not exist: {cache_path}")
            return

        file_count = sum(1 for _ in Path(cache_path).glob("*.png"))
        if file_count == 0:
            typer.echo(f"Cache directory is already empty: {cache_path}")
            return

        if not yes and not typer.confirm(f"Are you sure you want to delete {file_count} tiles from {cache_path}?"):
            typer.echo("Operation cancelled.")
            return

        removed = store.clear_cache()
        typer.echo(f"Successfully cleared {removed} tiles from cache directory: {cache_path}")

    except Exception as e:
        logger.error(f"Error clearing cache: {e}")
        raise typer.Abort()
