"""GPX track loading for walking routes.

Track points with a missing or non-numeric position are dropped and logged;
the remaining points are still returned. The cleaned document is handed to
gpxpy, which does the actual GPX parsing.
"""

import logging
import math
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional, Tuple, Union

import gpxpy
import gpxpy.gpx

from .exceptions import DecodeFailureError, ResourceNotFoundError
from .models import GeoPoint, Track
from .poi_loader import parse_float, parse_latitude, parse_longitude

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0088


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _point_problem(point: ET.Element) -> Optional[str]:
    """Describe why a track point is unusable, or None if it is fine."""
    for attribute, parse in (("lat", parse_latitude), ("lon", parse_longitude)):
        raw = point.get(attribute)
        if raw is None or not raw.strip():
            return f"missing {attribute}"
        try:
            parse(raw)
        except ValueError as e:
            return f"bad {attribute}: {e}"
    return None


def _has_number(element: ET.Element) -> bool:
    try:
        parse_float(element.text or "")
    except ValueError:
        return False
    return True


def sanitize_gpx(text: str) -> Tuple[str, int]:
    """Remove unusable track points from a GPX document.

    Namespaces are stripped so gpxpy sees plain GPX element names. Elevations
    that are not numbers are removed from otherwise valid points.

    Returns:
        Tuple of (cleaned document, number of dropped points)

    Raises:
        DecodeFailureError: If the document is not well-formed XML
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise DecodeFailureError(f"invalid GPX document: {e}") from e

    for element in root.iter():
        if isinstance(element.tag, str):
            element.tag = _local_name(element.tag)

    dropped = 0
    for segment in root.iter("trkseg"):
        for index, point in enumerate(list(segment)):
            if point.tag != "trkpt":
                continue
            problem = _point_problem(point)
            if problem:
                logger.warning(f"Dropping track point {index}: {problem}")
                segment.remove(point)
                dropped += 1
                continue
            for elevation in point.findall("ele"):
                if not _has_number(elevation):
                    point.remove(elevation)

    return ET.tostring(root, encoding="unicode"), dropped


def parse_track(text: str) -> Track:
    """Parse GPX text into the ordered points of all its tracks.

    Raises:
        DecodeFailureError: If the document cannot be decoded
    """
    cleaned, _ = sanitize_gpx(text)
    try:
        gpx = gpxpy.parse(cleaned)
    except gpxpy.gpx.GPXException as e:
        raise DecodeFailureError(f"invalid GPX document: {e}") from e

    points = []
    for track in gpx.tracks:
        for segment in track.segments:
            for point in segment.points:
                points.append(GeoPoint(point.latitude, point.longitude))
    return points


class TrackLoader:
    """Loads route tracks from GPX files in a track directory."""

    def __init__(self, track_dir: Optional[str] = None):
        """Initialize with the directory holding the GPX files.

        Args:
            track_dir: Directory that relative track references resolve against.
                       If None, references are resolved against the working directory.
        """
        self.track_dir = track_dir

    def resolve(self, ref: Union[str, Path]) -> Path:
        """Path of the GPX file a track reference points to.

        A reference without a suffix gets ".gpx" appended.
        """
        path = Path(ref)
        if not path.suffix:
            path = path.with_suffix(".gpx")
        if self.track_dir and not path.is_absolute():
            path = Path(self.track_dir) / path
        return path

    def load_track(self, ref: Union[str, Path]) -> Track:
        """Load the track a route refers to.

        Args:
            ref: Track file name, with or without the .gpx suffix

        Returns:
            The valid track points in order. Empty if the file is missing or
            cannot be decoded.
        """
        path = self.resolve(ref)
        try:
            if not path.is_file():
                raise ResourceNotFoundError(f"Track file not found: {path}")
            with open(path, "r", encoding="utf-8") as gpx_file:
                points = parse_track(gpx_file.read())
        except ResourceNotFoundError as e:
            logger.error(str(e))
            return []
        except DecodeFailureError as e:
            logger.error(f"Error parsing track file {path}: {e}")
            return []
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Error reading track file {path}: {e}")
            return []

        logger.info(f"Parsed {len(points)} track points from {path}")
        return points


def compute_bearing(a: GeoPoint, b: GeoPoint) -> float:
    """Initial great-circle bearing from a to b.

    Returns:
        Degrees clockwise from north in [0, 360)
    """
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    delta_lambda = math.radians(b.longitude - a.longitude)

    theta = math.atan2(
        math.sin(delta_lambda) * math.cos(phi2),
        math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(delta_lambda),
    )
    bearing = (math.degrees(theta) + 360.0) % 360.0
    # Tiny negative angles round up to exactly 360.0
    return 0.0 if bearing >= 360.0 else bearing


def start_bearing(track: Track) -> Optional[float]:
    """Bearing of the first track segment, or None for fewer than two points."""
    if len(track) < 2:
        return None
    return compute_bearing(track[0], track[1])


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points in kilometres."""
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    dphi = phi2 - phi1
    dlambda = math.radians(b.longitude - a.longitude)
    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(1.0, h)))


def track_length_km(track: Track) -> float:
    """Length of a track along its points."""
    return sum(haversine_km(a, b) for a, b in zip(track, track[1:]))
