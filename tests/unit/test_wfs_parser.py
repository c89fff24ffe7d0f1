"""Tests for the WFS capabilities parser and GeoJSON helpers."""

from urllib.parse import parse_qsl, urlsplit

import pytest

from geoprobe.errors import InvalidDocumentError
from geoprobe.ogc.types import FeatureType
from geoprobe.ogc.wfs import WFSParser, feature_type_geojson_url, guess_geometry_type, json_output_format


@pytest.fixture
def capabilities(wfs_capabilities):
    return WFSParser().parse_capabilities(wfs_capabilities)


@pytest.mark.unit
class TestWFSParser:
    """Test WFS 2.0.0 parsing."""

    def test_service_identification(self, capabilities):
        identification = capabilities.service_identification
        assert capabilities.version == "2.0.0"
        assert identification.title == "Feature Service"
        assert identification.abstract == "Vector data"
        assert identification.keywords == ["vector"]
        assert identification.fees == "NONE"

    def test_service_provider(self, capabilities):
        provider = capabilities.service_provider
        assert provider.provider_name == "Example GIS"
        assert provider.service_contact.individual_name == "Jo Doe"
        address = provider.service_contact.contact_info.address
        assert address.city == "Utrecht"
        assert address.electronic_mail_address == "gis@example.com"

    def test_output_formats(self, capabilities):
        formats = capabilities.operations_metadata.parameter_values("getfeature", "OUTPUTFORMAT")
        assert len(formats) == 4
        assert "application/json" in formats

    def test_feature_types(self, capabilities):
        parcels, stops = capabilities.feature_type_list
        assert parcels.name == "ns:parcels"
        assert parcels.keywords == ["MultiPolygon"]
        assert parcels.default_crs == "urn:ogc:def:crs:EPSG::28992"
        assert parcels.other_crs == ["urn:ogc:def:crs:EPSG::4326", "urn:ogc:def:crs:EPSG::3857"]
        assert parcels.wgs84_bounding_box.lower_corner == [3.2, 50.7]
        assert parcels.metadata_urls[0].href == "https://gis.example.com/metadata/parcels"
        assert stops.title == "Bus stop points"
        assert stops.wgs84_bounding_box is None

    def test_filter_capabilities(self, capabilities):
        filters = capabilities.filter_capabilities
        assert filters.conformance == {"ImplementsQuery": True, "ImplementsSorting": False}
        assert filters.resource_identifiers == ["fes:ResourceId"]
        assert filters.scalar_capabilities.logical_operators is True
        assert filters.comparison_operators == ["PropertyIsEqualTo", "PropertyIsLike"]
        assert filters.spatial_capabilities.geometry_operands == ["gml:Envelope", "gml:Polygon"]
        assert filters.spatial_capabilities.spatial_operators == ["BBOX", "Intersects"]
        assert filters.temporal_capabilities is None

    def test_functions(self, capabilities):
        (area,) = capabilities.filter_capabilities.functions
        assert area.name == "area"
        assert area.returns == "xs:double"
        assert area.arguments[0].name == "geometry"
        assert area.arguments[0].type == "gml:AbstractGeometryType"

    def test_without_feature_type_list(self):
        capabilities = WFSParser().parse_capabilities(
            '<WFS_Capabilities xmlns="http://www.opengis.net/wfs/2.0" version="2.0.0"/>'
        )
        assert capabilities.feature_type_list is None
        assert capabilities.filter_capabilities is None

    def test_wrong_root(self, wmts_capabilities):
        with pytest.raises(InvalidDocumentError):
            WFSParser().parse_capabilities(wmts_capabilities)


@pytest.mark.unit
class TestJsonOutputFormat:
    """Test output format preference."""

    def test_plain_geojson_wins(self):
        assert json_output_format(["application/json", "geojson+zip", "GEOJSON"]) == "GEOJSON"

    def test_falls_back_to_json(self, capabilities):
        advertised = capabilities.operations_metadata.parameter_values("GetFeature", "outputFormat")
        assert json_output_format(advertised) == "application/json"

    def test_zipped_formats_are_ignored(self):
        assert json_output_format(["application/json+zip"]) == "application/json"

    @pytest.mark.parametrize("formats", [None, [], ["text/xml"]])
    def test_default(self, formats):
        assert json_output_format(formats) == "application/json"


@pytest.mark.unit
class TestGuessGeometryType:
    """Test geometry type inference."""

    def test_explicit_type(self):
        assert guess_geometry_type(FeatureType(name="x", geometry_type="Polygon", keywords=["point"])) == "Polygon"

    def test_multi_keyword(self, capabilities):
        assert guess_geometry_type(capabilities.feature_type_list[0]) == "MultiPolygon"

    def test_name_and_title(self, capabilities):
        assert guess_geometry_type(capabilities.feature_type_list[1]) == "Point"
        assert guess_geometry_type(FeatureType(name="roads", title="Road lines")) == "LineString"
        assert guess_geometry_type(FeatureType(name="service_area")) == "Polygon"

    def test_fallback(self):
        assert guess_geometry_type(FeatureType(name="things")) == "Geometry"


@pytest.mark.unit
class TestFeatureTypeGeoJSONUrl:
    def test_url_uses_advertised_format(self, capabilities):
        url = feature_type_geojson_url(capabilities, "https://gis.example.com/wfs", capabilities.feature_type_list[0])
        query = dict(parse_qsl(urlsplit(url).query))
        assert url.startswith("https://gis.example.com/wfs?")
        assert query == {
            "service": "WFS",
            "request": "GetFeature",
            "version": "2.0.0",
            "typeName": "ns:parcels",
            "outputFormat": "application/json",
            "srsName": "EPSG:4326",
        }

    def test_unnamed_feature_type(self, capabilities):
        assert feature_type_geojson_url(capabilities, "https://gis.example.com/wfs", FeatureType()) is None
