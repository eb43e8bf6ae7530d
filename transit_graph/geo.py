"""Projection of GTFS coordinates into a planar CRS for spatial matching."""

import logging

from pyproj import CRS, Geod, Transformer
from shapely.geometry import Point, Polygon, box

logger = logging.getLogger(__name__)

WGS84 = "EPSG:4326"

# Azimuths (degrees) used to span a search envelope around a location
_ENVELOPE_AZIMUTHS = (0.0, 90.0, 180.0, 270.0)


class GeoProjector:
    """
    Transform WGS84 lon/lat into a projected CRS.

    Search envelopes are computed geodesically (metres on the WGS84
    ellipsoid) before being transformed, so a radius in metres stays
    meaningful whatever the unit of the projected CRS.
    """

    def __init__(self, crs: str = "EPSG:3857") -> None:
        self.crs = CRS.from_user_input(crs)
        if self.crs.is_geographic:
            logger.warning(
                f"CRS {self.crs.to_string()} is geographic, planar distances between "
                f"zones will be in degrees"
            )
        self._transformer = Transformer.from_crs(
            CRS.from_user_input(WGS84), self.crs, always_xy=True
        )
        self._geod = Geod(ellps="WGS84")

    def project_point(self, lon: float, lat: float) -> Point:
        x, y = self._transformer.transform(lon, lat)
        return Point(x, y)

    def search_envelope(self, lon: float, lat: float, radius_m: float) -> Polygon:
        """Projected bounding box covering radius_m metres around lon/lat."""
        if radius_m <= 0:
            raise ValueError(f"Search radius must be positive, got {radius_m}")

        lons: list[float] = []
        lats: list[float] = []
        for azimuth in _ENVELOPE_AZIMUTHS:
            end_lon, end_lat, _ = self._geod.fwd(lon, lat, azimuth, radius_m)
            lons.append(end_lon)
            lats.append(end_lat)

        min_x, min_y, max_x, max_y = self._transformer.transform_bounds(
            min(lons), min(lats), max(lons), max(lats)
        )
        return box(min_x, min_y, max_x, max_y)
