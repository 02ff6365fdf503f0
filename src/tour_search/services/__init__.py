"""Service clients for the tours API."""

from .location_client import LocationClient
from .search_client import SearchClient

__all__ = [
    "LocationClient",
    "SearchClient",
]
