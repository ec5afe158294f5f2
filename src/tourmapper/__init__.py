"""Offline map tiles, points of interest and walking routes for a tour map."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("tourmapper")
except PackageNotFoundError:
    __version__ = "0.1.0"  # Default version if package is not installed
