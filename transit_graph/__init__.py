"""Transit Graph Pipeline - Build transit service networks and platform zones from GTFS datasets."""

from transit_graph.api import build_services, build_zoning, convert, validate
from transit_graph.version import VERSION

__version__ = VERSION
__all__ = ["VERSION", "build_services", "build_zoning", "convert", "validate"]
