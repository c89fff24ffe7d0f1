"""Integration tests for geoprobe against real map services."""

import pytest

from geoprobe import ServiceTypeEnum, load_service


@pytest.mark.integration
@pytest.mark.net
@pytest.mark.slow
class TestRealServiceIntegration:
    """Smoke tests against live endpoints."""

    WMS_URL = "https://ows.terrestris.de/osm/service"
    WMTS_URL = "https://tiles.arcgis.com/tiles/qHLhLQrcvEnxjtPr/arcgis/rest/services/OS_Open_Background_2/MapServer/WMTS/1.0.0/WMTSCapabilities.xml"
    XYZ_URL = "https://tile.openstreetmap.org/{z}/{x}/{y}.png"

    def test_wms(self):
        info = load_service(self.WMS_URL)

        assert info.ok, info.error
        assert info.type in (ServiceTypeEnum.WMS, ServiceTypeEnum.WFS)
        assert info.service_title

    def test_wmts(self):
        info = load_service(self.WMTS_URL)

        assert info.ok, info.error
        assert info.type == ServiceTypeEnum.WMTS
        assert info.capabilities.contents.layers

    def test_xyz(self):
        info = load_service(self.XYZ_URL)

        assert info.ok, info.error
        assert info.type == ServiceTypeEnum.XYZ
        assert info.capabilities.tile_size.width == 256
