"""
Shared test configuration, fixtures, and markers for geoprobe tests.
"""

import json
from typing import Callable, Dict, List, Optional, Tuple, Union

import pytest
from pytest_httpserver import HTTPServer
from requests.structures import CaseInsensitiveDict

from geoprobe.service.config import DiscoveryConfig


def pytest_configure(config):
    """Configure test markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow (>1s)")
    config.addinivalue_line("markers", "net: marks tests requiring network")
    config.addinivalue_line("markers", "property: marks property-based tests")
    config.addinivalue_line("markers", "unit: marks unit tests (fast, pure logic)")
    config.addinivalue_line("markers", "integration: marks integration tests")


class FakeResponse:
    """Minimal stand-in for ``requests.Response`` with a streamable body."""

    def __init__(
        self,
        status_code: int = 200,
        content: Union[bytes, str] = b"",
        headers: Optional[Dict[str, str]] = None,
        reason: str = "OK",
    ):
        self.status_code = status_code
        self.content = content.encode("utf-8") if isinstance(content, str) else content
        self.headers = CaseInsensitiveDict(headers or {})
        self.reason = reason
        self.body_read = False
        self.closed = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def iter_content(self, chunk_size: int = 1):
        self.body_read = True
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start:start + chunk_size]

    def close(self) -> None:
        self.closed = True


Matcher = Union[str, Callable[[str], bool]]


class FakeSession:
    """
    Routes ``get``/``head`` calls to canned responses.

    A route matches when its string occurs in the requested URL, or when
    its callable returns True. Later routes win over earlier ones.
    Unrouted requests get a 404.
    """

    def __init__(self):
        self.routes: List[Tuple[str, Matcher, Union[FakeResponse, Exception]]] = []
        self.calls: List[Tuple[str, str, Dict]] = []

    def route(self, method: str, matcher: Matcher, response: Union[FakeResponse, Exception]) -> None:
        self.routes.append((method.upper(), matcher, response))

    def _dispatch(self, method: str, url: str, **kwargs):
        self.calls.append((method, url, kwargs))
        for route_method, matcher, response in reversed(self.routes):
            if route_method != method:
                continue
            matched = matcher(url) if callable(matcher) else matcher in url
            if matched:
                if isinstance(response, Exception):
                    raise response
                return response
        return FakeResponse(404, b"", reason="Not Found")

    def get(self, url, **kwargs):
        return self._dispatch("GET", url, **kwargs)

    def head(self, url, **kwargs):
        return self._dispatch("HEAD", url, **kwargs)

    def close(self) -> None:
        pass

    def urls(self, method: Optional[str] = None) -> List[str]:
        return [url for call_method, url, _ in self.calls if method is None or call_method == method]


def xml_response(body: str, content_type: str = "application/xml") -> FakeResponse:
    return FakeResponse(200, body, {"Content-Type": content_type})


def json_response(payload, content_type: str = "application/json") -> FakeResponse:
    return FakeResponse(200, json.dumps(payload), {"Content-Type": content_type})


@pytest.fixture
def fake_session():
    """Routing fake for ``requests.Session``."""
    return FakeSession()


@pytest.fixture
def responses():
    """Factories for canned responses."""

    class _Factories:
        plain = FakeResponse
        xml = staticmethod(xml_response)
        json = staticmethod(json_response)

    return _Factories


@pytest.fixture
def config():
    """Discovery configuration with short timeouts."""
    return DiscoveryConfig(capabilities_timeout=2, geojson_timeout=2, arcgis_timeout=2, tile_timeout=2)


@pytest.fixture
def fake_server():
    """Programmable local HTTP server."""
    with HTTPServer(host="127.0.0.1", port=0) as server:
        yield server


# ----------------------------------------------------------------------
# Capabilities documents
# ----------------------------------------------------------------------

WMS_130_CAPABILITIES = """<?xml version="1.0" encoding="UTF-8"?>
<WMS_Capabilities version="1.3.0" xmlns="http://www.opengis.net/wms"
    xmlns:xlink="http://www.w3.org/1999/xlink">
  <Service>
    <Name>WMS</Name>
    <Title>Demo Map Service</Title>
    <Abstract>Topographic layers</Abstract>
    <KeywordList><Keyword>topo</Keyword><Keyword>demo</Keyword></KeywordList>
    <OnlineResource xlink:href="https://maps.example.com/wms"/>
    <ContactInformation>
      <ContactPersonPrimary>
        <ContactPerson>Jo Doe</ContactPerson>
        <ContactOrganization>Example Org</ContactOrganization>
      </ContactPersonPrimary>
      <ContactElectronicMailAddress>maps@example.com</ContactElectronicMailAddress>
    </ContactInformation>
    <Fees>none</Fees>
    <AccessConstraints>none</AccessConstraints>
  </Service>
  <Capability>
    <Request>
      <GetCapabilities>
        <Format>text/xml</Format>
        <DCPType><HTTP><Get><OnlineResource xlink:href="https://maps.example.com/wms?"/></Get></HTTP></DCPType>
      </GetCapabilities>
      <GetMap>
        <Format>image/png</Format>
        <Format>image/jpeg</Format>
        <DCPType><HTTP><Get><OnlineResource xlink:href="https://maps.example.com/wms?map=topo"/></Get></HTTP></DCPType>
      </GetMap>
    </Request>
    <Layer>
      <Title>Root</Title>
      <CRS>EPSG:4326</CRS>
      <CRS>EPSG:3857</CRS>
      <EX_GeographicBoundingBox>
        <westBoundLongitude>3.0</westBoundLongitude>
        <eastBoundLongitude>7.5</eastBoundLongitude>
        <southBoundLatitude>50.5</southBoundLatitude>
        <northBoundLatitude>53.7</northBoundLatitude>
      </EX_GeographicBoundingBox>
      <Attribution>
        <Title>Example Org</Title>
        <OnlineResource xlink:href="https://example.com"/>
      </Attribution>
      <Style>
        <Name>default</Name>
        <Title>Default</Title>
        <LegendURL width="20" height="20">
          <Format>image/png</Format>
          <OnlineResource xlink:href="https://maps.example.com/legend?layer=roads"/>
        </LegendURL>
      </Style>
      <Layer queryable="1">
        <Name>roads</Name>
        <Title>Roads</Title>
        <CRS>EPSG:28992</CRS>
        <CRS>EPSG:4326</CRS>
        <MinScaleDenominator>1000</MinScaleDenominator>
        <MaxScaleDenominator>50000</MaxScaleDenominator>
      </Layer>
      <Layer>
        <Name>water</Name>
        <Title>Water</Title>
        <EX_GeographicBoundingBox>
          <westBoundLongitude>4.0</westBoundLongitude>
          <eastBoundLongitude>5.0</eastBoundLongitude>
          <southBoundLatitude>51.0</southBoundLatitude>
          <northBoundLatitude>52.0</northBoundLatitude>
        </EX_GeographicBoundingBox>
        <Style><Name>blue</Name><Title>Blue</Title></Style>
        <Layer>
          <Name>lakes</Name>
          <Title>Lakes</Title>
        </Layer>
      </Layer>
    </Layer>
  </Capability>
</WMS_Capabilities>
"""

WMS_111_CAPABILITIES = """<?xml version="1.0" encoding="UTF-8"?>
<WMT_MS_Capabilities version="1.1.1">
  <Service>
    <Name>OGC:WMS</Name>
    <Title>Legacy WMS</Title>
  </Service>
  <Capability>
    <Layer>
      <Title>Root</Title>
      <SRS>EPSG:4326 EPSG:900913</SRS>
      <Layer>
        <Name>relief</Name>
        <Title>Relief</Title>
        <ScaleHint min="0.002" max="0.01"/>
        <BoundingBox SRS="EPSG:4326" minx="-10" miny="40" maxx="10" maxy="60"/>
      </Layer>
      <Layer>
        <Name>plain</Name>
        <Title>Plain</Title>
      </Layer>
    </Layer>
  </Capability>
</WMT_MS_Capabilities>
"""

WMTS_CAPABILITIES = """<?xml version="1.0" encoding="UTF-8"?>
<Capabilities xmlns="http://www.opengis.net/wmts/1.0" xmlns:ows="http://www.opengis.net/ows/1.1"
    xmlns:xlink="http://www.w3.org/1999/xlink" version="1.0.0">
  <ows:ServiceIdentification>
    <ows:Title>Tile Service</ows:Title>
    <ows:ServiceType>OGC WMTS</ows:ServiceType>
    <ows:ServiceTypeVersion>1.0.0</ows:ServiceTypeVersion>
  </ows:ServiceIdentification>
  <ows:ServiceProvider>
    <ows:ProviderName>Example Tiles</ows:ProviderName>
  </ows:ServiceProvider>
  <ows:OperationsMetadata>
    <ows:Operation name="GetTile">
      <ows:DCP><ows:HTTP><ows:Get xlink:href="https://tiles.example.com/wmts?"/></ows:HTTP></ows:DCP>
    </ows:Operation>
  </ows:OperationsMetadata>
  <Contents>
    <Layer>
      <ows:Title>Base map</ows:Title>
      <ows:Identifier>basemap</ows:Identifier>
      <ows:WGS84BoundingBox>
        <ows:LowerCorner>-180 -85</ows:LowerCorner>
        <ows:UpperCorner>180 85</ows:UpperCorner>
      </ows:WGS84BoundingBox>
      <Style isDefault="true">
        <ows:Identifier>default</ows:Identifier>
        <LegendURL format="image/png" xlink:href="https://tiles.example.com/legend.png"/>
      </Style>
      <Format>image/png</Format>
      <TileMatrixSetLink>
        <TileMatrixSet>rd</TileMatrixSet>
      </TileMatrixSetLink>
      <TileMatrixSetLink>
        <TileMatrixSet>GoogleMapsCompatible</TileMatrixSet>
        <TileMatrixSetLimits>
          <TileMatrixLimits>
            <TileMatrix>0</TileMatrix>
            <MinTileRow>0</MinTileRow>
            <MaxTileRow>0</MaxTileRow>
            <MinTileCol>0</MinTileCol>
            <MaxTileCol>0</MaxTileCol>
          </TileMatrixLimits>
        </TileMatrixSetLimits>
      </TileMatrixSetLink>
      <ResourceURL format="image/png" resourceType="tile"
          template="https://tiles.example.com/wmts/basemap/{TileMatrixSet}/{TileMatrix}/{TileCol}/{TileRow}.png"/>
    </Layer>
    <Layer>
      <ows:Title>Overlay</ows:Title>
      <ows:Identifier>overlay</ows:Identifier>
      <Format>image/jpeg</Format>
      <TileMatrixSetLink>
        <TileMatrixSet>GoogleMapsCompatible</TileMatrixSet>
      </TileMatrixSetLink>
    </Layer>
    <TileMatrixSet>
      <ows:Identifier>GoogleMapsCompatible</ows:Identifier>
      <ows:SupportedCRS>urn:ogc:def:crs:EPSG:6.18.3:3857</ows:SupportedCRS>
      <TileMatrix>
        <ows:Identifier>0</ows:Identifier>
        <ScaleDenominator>559082264.0287178</ScaleDenominator>
        <TopLeftCorner>-20037508.3427892 20037508.3427892</TopLeftCorner>
        <TileWidth>256</TileWidth>
        <TileHeight>256</TileHeight>
        <MatrixWidth>1</MatrixWidth>
        <MatrixHeight>1</MatrixHeight>
      </TileMatrix>
      <TileMatrix>
        <ows:Identifier>1</ows:Identifier>
        <ScaleDenominator>279541132.0143589</ScaleDenominator>
        <TopLeftCorner>-20037508.3427892 20037508.3427892</TopLeftCorner>
        <TileWidth>256</TileWidth>
        <TileHeight>256</TileHeight>
        <MatrixWidth>2</MatrixWidth>
        <MatrixHeight>2</MatrixHeight>
      </TileMatrix>
    </TileMatrixSet>
    <TileMatrixSet>
      <ows:Identifier>rd</ows:Identifier>
      <ows:SupportedCRS>EPSG:28992</ows:SupportedCRS>
    </TileMatrixSet>
  </Contents>
</Capabilities>
"""

WFS_CAPABILITIES = """<?xml version="1.0" encoding="UTF-8"?>
<wfs:WFS_Capabilities version="2.0.0" xmlns:wfs="http://www.opengis.net/wfs/2.0"
    xmlns:ows="http://www.opengis.net/ows/1.1" xmlns:fes="http://www.opengis.net/fes/2.0"
    xmlns:xlink="http://www.w3.org/1999/xlink">
  <ows:ServiceIdentification>
    <ows:Title>Feature Service</ows:Title>
    <ows:Abstract>Vector data</ows:Abstract>
    <ows:Keywords><ows:Keyword>vector</ows:Keyword></ows:Keywords>
    <ows:ServiceType>WFS</ows:ServiceType>
    <ows:ServiceTypeVersion>2.0.0</ows:ServiceTypeVersion>
    <ows:Fees>NONE</ows:Fees>
    <ows:AccessConstraints>NONE</ows:AccessConstraints>
  </ows:ServiceIdentification>
  <ows:ServiceProvider>
    <ows:ProviderName>Example GIS</ows:ProviderName>
    <ows:ServiceContact>
      <ows:IndividualName>Jo Doe</ows:IndividualName>
      <ows:ContactInfo>
        <ows:Address>
          <ows:City>Utrecht</ows:City>
          <ows:ElectronicMailAddress>gis@example.com</ows:ElectronicMailAddress>
        </ows:Address>
      </ows:ContactInfo>
    </ows:ServiceContact>
  </ows:ServiceProvider>
  <ows:OperationsMetadata>
    <ows:Operation name="GetFeature">
      <ows:DCP><ows:HTTP><ows:Get xlink:href="https://gis.example.com/wfs?"/></ows:HTTP></ows:DCP>
      <ows:Parameter name="outputFormat">
        <ows:AllowedValues>
          <ows:Value>application/gml+xml; version=3.2</ows:Value>
          <ows:Value>application/json</ows:Value>
          <ows:Value>application/geojson+zip</ows:Value>
          <ows:Value>application/geo+json</ows:Value>
        </ows:AllowedValues>
      </ows:Parameter>
    </ows:Operation>
    <ows:Constraint name="ImplementsBasicWFS">
      <ows:NoValues/>
      <ows:DefaultValue>TRUE</ows:DefaultValue>
    </ows:Constraint>
  </ows:OperationsMetadata>
  <wfs:FeatureTypeList>
    <wfs:FeatureType>
      <wfs:Name>ns:parcels</wfs:Name>
      <wfs:Title>Parcels</wfs:Title>
      <wfs:Abstract>Land parcels</wfs:Abstract>
      <ows:Keywords><ows:Keyword>MultiPolygon</ows:Keyword></ows:Keywords>
      <wfs:DefaultCRS>urn:ogc:def:crs:EPSG::28992</wfs:DefaultCRS>
      <wfs:OtherCRS>urn:ogc:def:crs:EPSG::4326</wfs:OtherCRS>
      <wfs:OtherCRS>urn:ogc:def:crs:EPSG::3857</wfs:OtherCRS>
      <ows:WGS84BoundingBox>
        <ows:LowerCorner>3.2 50.7</ows:LowerCorner>
        <ows:UpperCorner>7.2 53.6</ows:UpperCorner>
      </ows:WGS84BoundingBox>
      <wfs:MetadataURL xlink:href="https://gis.example.com/metadata/parcels"/>
    </wfs:FeatureType>
    <wfs:FeatureType>
      <wfs:Name>ns:bus_stops</wfs:Name>
      <wfs:Title>Bus stop points</wfs:Title>
      <wfs:DefaultCRS>urn:ogc:def:crs:EPSG::4326</wfs:DefaultCRS>
    </wfs:FeatureType>
  </wfs:FeatureTypeList>
  <fes:Filter_Capabilities>
    <fes:Conformance>
      <fes:Constraint name="ImplementsQuery"><ows:NoValues/><ows:DefaultValue>TRUE</ows:DefaultValue></fes:Constraint>
      <fes:Constraint name="ImplementsSorting"><ows:NoValues/><ows:DefaultValue>FALSE</ows:DefaultValue></fes:Constraint>
    </fes:Conformance>
    <fes:Id_Capabilities>
      <fes:ResourceIdentifier name="fes:ResourceId"/>
    </fes:Id_Capabilities>
    <fes:Scalar_Capabilities>
      <fes:LogicalOperators/>
      <fes:ComparisonOperators>
        <fes:ComparisonOperator name="PropertyIsEqualTo"/>
        <fes:ComparisonOperator name="PropertyIsLike"/>
      </fes:ComparisonOperators>
    </fes:Scalar_Capabilities>
    <fes:Spatial_Capabilities>
      <fes:GeometryOperands>
        <fes:GeometryOperand name="gml:Envelope"/>
        <fes:GeometryOperand name="gml:Polygon"/>
      </fes:GeometryOperands>
      <fes:SpatialOperators>
        <fes:SpatialOperator name="BBOX"/>
        <fes:SpatialOperator name="Intersects"/>
      </fes:SpatialOperators>
    </fes:Spatial_Capabilities>
    <fes:Functions>
      <fes:Function name="area">
        <fes:Returns>xs:double</fes:Returns>
        <fes:Arguments>
          <fes:Argument name="geometry"><fes:Type>gml:AbstractGeometryType</fes:Type></fes:Argument>
        </fes:Arguments>
      </fes:Function>
    </fes:Functions>
  </fes:Filter_Capabilities>
</wfs:WFS_Capabilities>
"""

FEATURE_COLLECTION = {
    "type": "FeatureCollection",
    "name": "amenities",
    "features": [
        {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [4.9, 52.37]},
            "properties": {"name": "Cafe", "kind": "food"},
        },
        {
            "type": "Feature",
            "geometry": {"type": "LineString", "coordinates": [[4.8, 52.3], [5.1, 52.4]]},
            "properties": {"name": "Path", "length": 12},
        },
        {
            "type": "Feature",
            "geometry": None,
            "properties": None,
        },
    ],
}


@pytest.fixture
def wms_capabilities():
    return WMS_130_CAPABILITIES


@pytest.fixture
def wms_111_capabilities():
    return WMS_111_CAPABILITIES


@pytest.fixture
def wmts_capabilities():
    return WMTS_CAPABILITIES


@pytest.fixture
def wfs_capabilities():
    return WFS_CAPABILITIES


@pytest.fixture
def feature_collection():
    return json.loads(json.dumps(FEATURE_COLLECTION))
