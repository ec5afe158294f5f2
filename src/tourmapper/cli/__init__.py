"""Command-line interface for the offline tour map."""

import logging
import sys
import typer

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)

logger = logging.getLogger(__name__)

# Create typer app
app = typer.Typer(invoke_without_command=True, no_args_is_help=True,
                  help="Offline tour map - tiles, points of interest and walking routes")

# Import commands
from .info import info, pois, routes, track
from .route import route
from .tiles import tiles, prefetch
from .clear_cache import clear_cache

if __name__ == "__main__":
    app()
