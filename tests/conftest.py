import textwrap

import pytest

from tourmapper.models import GeoPoint, MapBounds, MapConfig, PointOfInterest, Route, Viewport


GPX_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="tests" xmlns="http://www.topografix.com/GPX/1/1"
     xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
     xsi:schemaLocation="http://www.topografix.com/GPX/1/1 http://www.topografix.com/GPX/1/1/gpx.xsd">
  <trk>
    <name>Test walk</name>
    <trkseg>
{points}
    </trkseg>
  </trk>
</gpx>
"""


def make_gpx(points) -> str:
    lines = [f'      <trkpt lat="{lat}" lon="{lon}"><ele>5</ele></trkpt>' for lat, lon in points]
    return GPX_TEMPLATE.format(points="\n".join(lines))


@pytest.fixture
def map_config():
    return MapConfig(
        bounds=MapBounds(north=51.0, south=50.8, east=-1.3, west=-1.5),
        initial_viewport=Viewport(GeoPoint(50.9, -1.4), 0.05, 0.05),
        min_span=0.01,
        max_span=0.1,
        focus_span=0.01,
    )


@pytest.fixture
def sample_pois():
    return [
        PointOfInterest(GeoPoint(50.90, -1.40), "Tudor House", "Museum house", ("Museum", "Historic")),
        PointOfInterest(GeoPoint(50.91, -1.41), "Mayflower Park", "Waterside park", ("Park",)),
        PointOfInterest(GeoPoint(50.92, -1.39), "Bargate", "Gatehouse", ("Historic",)),
    ]


@pytest.fixture
def sample_routes():
    return [
        Route("Old Town", "Walls walk", "old-town", 2.5, "1 hour"),
        Route("Waterfront", "Along the docks", "waterfront.gpx", 3.0, "90 minutes"),
    ]


@pytest.fixture
def data_dir(tmp_path):
    """Directory with a POI CSV, a route XML and two GPX tracks."""
    directory = tmp_path / "data"
    directory.mkdir()
    (directory / "pois.csv").write_text(textwrap.dedent("""\
        50.9048,-1.4043,Bargate,"Medieval gatehouse, Grade I listed",Historic;Landmark,bargate.jpg
        50.8963,-1.4048,Tudor House,Museum in a Tudor house,Museum;Historic
        not-a-number,-1.4,Broken,Bad latitude,Historic
        50.9079,-1.4005,East Park,Green space,Park
    """), encoding="utf-8")
    (directory / "routes.xml").write_text(textwrap.dedent("""\
        <routes>
          <route>
            <name>Old Town</name>
            <description>Along the town walls</description>
            <trackFile>old-town</trackFile>
            <distance>2.4 km</distance>
            <duration>1 hour</duration>
          </route>
          <route>
            <name>Docks</name>
            <description>Missing track</description>
            <trackFile>docks.gpx</trackFile>
            <distance>3</distance>
          </route>
        </routes>
    """), encoding="utf-8")
    (directory / "old-town.gpx").write_text(
        make_gpx([(50.9000, -1.4050), (50.9010, -1.4050), (50.9020, -1.4040)]), encoding="utf-8")
    return directory
