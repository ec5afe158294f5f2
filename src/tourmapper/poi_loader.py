"""Loading of points of interest and walking routes.

Two file shapes are supported for both kinds of record:

* header-less CSV with double-quote quoting, where the POI category column
  holds a ``;``-separated list;
* XML with one element per record (``<poi>`` / ``<route>``) whose children
  are described by an explicit field schema.

Loading never aborts on a bad record: every record is decoded on its own,
and one that fails validation is logged and skipped. A missing or
undecodable file yields an empty list.
"""

import csv
import io
import logging
import math
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .exceptions import DecodeFailureError, MalformedRecordError, ResourceNotFoundError
from .models import GeoPoint, PointOfInterest, Route

logger = logging.getLogger(__name__)

CATEGORY_SEPARATOR = ";"


def parse_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"not a finite number: {text!r}")
    return value


def parse_latitude(text: str) -> float:
    value = parse_float(text)
    if not -90.0 <= value <= 90.0:
        raise ValueError(f"latitude out of range: {value}")
    return value


def parse_longitude(text: str) -> float:
    value = parse_float(text)
    if not -180.0 <= value <= 180.0:
        raise ValueError(f"longitude out of range: {value}")
    return value


def parse_distance(text: str) -> float:
    """Parse a distance in kilometres, allowing a trailing "km"."""
    cleaned = text.strip()
    if cleaned.lower().endswith("km"):
        cleaned = cleaned[:-2].strip()
    value = parse_float(cleaned)
    if value < 0:
        raise ValueError(f"distance must not be negative: {value}")
    return value


def parse_categories(raw: Union[str, Sequence[str]]) -> Tuple[str, ...]:
    """Split a category list, trimming whitespace and dropping empty names.

    ``raw`` is either a ``;``-separated string or a sequence of names.
    Duplicates are removed keeping the first occurrence.
    """
    tokens = raw.split(CATEGORY_SEPARATOR) if isinstance(raw, str) else raw
    categories = []
    for token in tokens:
        name = (token or "").strip()
        if name and name not in categories:
            categories.append(name)
    if not categories:
        raise ValueError("at least one category is required")
    return tuple(categories)


@dataclass(frozen=True)
class FieldSpec:
    """One field of a record schema.

    Attributes:
        name: Attribute name in the decoded record
        required: Whether a missing or empty value makes the record invalid
        parse: Converter from the raw value; raises ValueError on bad input
        element: XML child element holding the value
    """
    name: str
    required: bool = True
    parse: Callable[[Any], Any] = str.strip
    element: Optional[str] = None

    @property
    def tag(self) -> str:
        return self.element or self.name


POI_SCHEMA = (
    FieldSpec("latitude", parse=parse_latitude),
    FieldSpec("longitude", parse=parse_longitude),
    FieldSpec("title"),
    FieldSpec("description", required=False),
    FieldSpec("categories", parse=parse_categories),
    FieldSpec("image", required=False),
    FieldSpec("audio", required=False),
    FieldSpec("directions", required=False),
)

ROUTE_SCHEMA = (
    FieldSpec("name"),
    FieldSpec("description", required=False),
    FieldSpec("track_ref", element="trackFile"),
    FieldSpec("distance_km", parse=parse_distance, element="distance"),
    FieldSpec("duration", required=False),
)

# Column order of the CSV files and how many columns a row needs at least.
POI_CSV_COLUMNS = ("latitude", "longitude", "title", "description", "categories", "image")
POI_CSV_MIN_COLUMNS = 5
ROUTE_CSV_COLUMNS = ("name", "description", "track_ref", "distance_km", "duration")
ROUTE_CSV_MIN_COLUMNS = 5


def decode_fields(values: Dict[str, Any], schema: Iterable[FieldSpec]) -> Dict[str, Any]:
    """Validate raw values against a schema.

    Args:
        values: Raw values keyed by field name; absent keys count as missing
        schema: Field specifications

    Returns:
        Decoded values keyed by field name, None for absent optional fields

    Raises:
        MalformedRecordError: If a required field is missing or a value fails
            to parse
    """
    decoded = {}
    for spec in schema:
        raw = values.get(spec.name)
        if isinstance(raw, str):
            raw = raw.strip()
        if raw is None or len(raw) == 0:
            if spec.required:
                raise MalformedRecordError("missing required value", field=spec.name)
            decoded[spec.name] = None
            continue
        try:
            decoded[spec.name] = spec.parse(raw)
        except ValueError as e:
            raise MalformedRecordError(str(e), field=spec.name) from e
    return decoded


def _poi_from_fields(fields: Dict[str, Any]) -> PointOfInterest:
    return PointOfInterest(
        location=GeoPoint(fields["latitude"], fields["longitude"]),
        title=fields["title"],
        description=fields["description"] or "",
        categories=fields["categories"],
        image=fields["image"],
        audio=fields["audio"],
        directions=fields["directions"],
    )


def _route_from_fields(fields: Dict[str, Any]) -> Route:
    return Route(
        name=fields["name"],
        description=fields["description"] or "",
        track_ref=fields["track_ref"],
        distance_km=fields["distance_km"],
        duration=fields["duration"] or "",
    )


def decode_poi_row(row: Sequence[str]) -> PointOfInterest:
    """Decode one CSV row into a point of interest."""
    if len(row) < POI_CSV_MIN_COLUMNS:
        raise MalformedRecordError(
            f"expected at least {POI_CSV_MIN_COLUMNS} columns, got {len(row)}")
    return _poi_from_fields(decode_fields(dict(zip(POI_CSV_COLUMNS, row)), POI_SCHEMA))


def decode_route_row(row: Sequence[str]) -> Route:
    """Decode one CSV row into a route."""
    if len(row) < ROUTE_CSV_MIN_COLUMNS:
        raise MalformedRecordError(
            f"expected at least {ROUTE_CSV_MIN_COLUMNS} columns, got {len(row)}")
    return _route_from_fields(decode_fields(dict(zip(ROUTE_CSV_COLUMNS, row)), ROUTE_SCHEMA))


def _inner_markup(element: Optional[ET.Element]) -> Optional[str]:
    """Text of an element including any inline child markup."""
    if element is None:
        return None
    parts = [element.text or ""]
    for child in element:
        parts.append(ET.tostring(child, encoding="unicode"))
    return "".join(parts)


def _element_values(element: ET.Element, schema: Iterable[FieldSpec]) -> Dict[str, Any]:
    return {spec.name: _inner_markup(element.find(spec.tag)) for spec in schema}


def _sections_markup(element: ET.Element) -> str:
    parts = []
    for index, section in enumerate(element.findall("sections/section"), start=1):
        name = (section.findtext("name") or "").strip()
        if not name:
            logger.debug(f"Ignoring section {index} without a name")
            continue
        content = (_inner_markup(section.find("content")) or "").strip()
        parts.append(f"<h3>{name}</h3><p>{content}</p>")
    return "".join(parts)


def decode_poi_element(element: ET.Element) -> PointOfInterest:
    """Decode one ``<poi>`` element.

    Categories come from ``<categories><category>`` children (a bare
    ``<category>`` child is accepted too). Sections are appended to the
    description as ``<h3>name</h3><p>content</p>``.
    """
    values = _element_values(element, POI_SCHEMA)
    category_elements = element.findall("categories/category") or element.findall("category")
    values["categories"] = [c.text or "" for c in category_elements]

    fields = decode_fields(values, POI_SCHEMA)
    sections = _sections_markup(element)
    if sections:
        fields["description"] = (fields["description"] or "") + sections
    return _poi_from_fields(fields)


def decode_route_element(element: ET.Element) -> Route:
    """Decode one ``<route>`` element."""
    return _route_from_fields(decode_fields(_element_values(element, ROUTE_SCHEMA), ROUTE_SCHEMA))


def _parse_csv(text: str, decode: Callable[[Sequence[str]], Any], kind: str) -> List[Any]:
    records = []
    reader = csv.reader(io.StringIO(text), skipinitialspace=True)
    while True:
        try:
            row = next(reader)
        except StopIteration:
            break
        except csv.Error as e:
            # The reader resumes on the line after the broken one
            logger.warning(f"Skipping unreadable {kind} on line {reader.line_num}: {e}")
            continue
        if not any(cell.strip() for cell in row):
            continue
        try:
            records.append(decode(row))
        except MalformedRecordError as e:
            logger.warning(f"Skipping invalid {kind} on line {reader.line_num}: {e}")
    return records


def _parse_xml(text: str, tag: str, decode: Callable[[ET.Element], Any]) -> List[Any]:
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise DecodeFailureError(f"invalid XML document: {e}") from e

    records = []
    for index, element in enumerate(root.iter(tag), start=1):
        try:
            records.append(decode(element))
        except MalformedRecordError as e:
            title = element.findtext("title") or element.findtext("name") or "?"
            logger.warning(f"Skipping invalid {tag} #{index} ({title.strip()}): {e}")
    return records


def _drop_duplicate_pois(pois: List[PointOfInterest]) -> List[PointOfInterest]:
    seen = set()
    unique = []
    for poi in pois:
        if poi.key in seen:
            logger.warning(f"Skipping duplicate POI {poi.title!r} at {poi.location}")
            continue
        seen.add(poi.key)
        unique.append(poi)
    return unique


def parse_pois_csv(text: str) -> List[PointOfInterest]:
    return _drop_duplicate_pois(_parse_csv(text, decode_poi_row, "POI"))


def parse_pois_xml(text: str) -> List[PointOfInterest]:
    """Parse an XML POI document.

    Raises:
        DecodeFailureError: If the document is not well-formed XML
    """
    return _drop_duplicate_pois(_parse_xml(text, "poi", decode_poi_element))


def parse_routes_csv(text: str) -> List[Route]:
    return _parse_csv(text, decode_route_row, "route")


def parse_routes_xml(text: str) -> List[Route]:
    """Parse an XML route document.

    Raises:
        DecodeFailureError: If the document is not well-formed XML
    """
    return _parse_xml(text, "route", decode_route_element)


def detect_format(path: Path, text: str) -> str:
    """Return "xml" or "csv" from the file suffix, else from the content."""
    suffix = path.suffix.lower()
    if suffix == ".xml":
        return "xml"
    if suffix in (".csv", ".txt"):
        return "csv"
    return "xml" if text.lstrip().startswith("<") else "csv"


def _read_source(source: Union[str, Path]) -> Tuple[Path, str]:
    path = Path(source)
    if not path.is_file():
        raise ResourceNotFoundError(f"Data file not found: {path}")
    with open(path, "r", encoding="utf-8-sig") as f:
        return path, f.read()


def _load(source: Union[str, Path], kind: str,
          parse_csv: Callable[[str], List[Any]], parse_xml: Callable[[str], List[Any]]) -> List[Any]:
    try:
        path, text = _read_source(source)
        fmt = detect_format(path, text)
        records = parse_xml(text) if fmt == "xml" else parse_csv(text)
    except ResourceNotFoundError as e:
        logger.error(str(e))
        return []
    except DecodeFailureError as e:
        logger.error(f"Failed to decode {kind} file {source}: {e}")
        return []
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Error reading {kind} file {source}: {e}")
        return []

    logger.info(f"Loaded {len(records)} {kind}s from {source}")
    return records


def load_pois(source: Union[str, Path]) -> List[PointOfInterest]:
    """Load points of interest from a CSV or XML file.

    Args:
        source: Path of the data file

    Returns:
        The valid points of interest in file order; empty if the file is
        missing or cannot be decoded
    """
    return _load(source, "POI", parse_pois_csv, parse_pois_xml)


def load_routes(source: Union[str, Path]) -> List[Route]:
    """Load walking routes from a CSV or XML file.

    Args:
        source: Path of the data file

    Returns:
        The valid routes in file order; empty if the file is missing or
        cannot be decoded
    """
    return _load(source, "route", parse_routes_csv, parse_routes_xml)


def categories_of(pois: Iterable[PointOfInterest]) -> List[str]:
    """Sorted list of every category used by the given POIs."""
    return sorted({category for poi in pois for category in poi.categories})
