"""Client for country, hotel and geo search lookups."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from tour_search.geo.models import Country, GeoEntity, Hotel, geo_entity_from_payload
from tour_search.search.errors import NetworkError, SearchApiError

from .base import ApiClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _entries(payload: Any) -> Iterable[Dict[str, Any]]:
    if payload is None:
        return []
    if isinstance(payload, dict):
        return [entry for entry in payload.values() if isinstance(entry, dict)]
    if isinstance(payload, list):
        return [entry for entry in payload if isinstance(entry, dict)]
    raise NetworkError("Lookup response is neither an object nor a list")


def _decode(factory: Callable[[Dict[str, Any]], T], entry: Dict[str, Any]) -> T:
    try:
        return factory(entry)
    except ValueError as exc:
        raise NetworkError(f"Malformed lookup entry: {exc}") from exc


class LocationClient(ApiClient):
    """Thin wrapper around the read-only geo endpoints."""

    async def get_countries(self) -> Dict[str, Country]:
        payload = await self._request_json("GET", "countries")
        countries = [_decode(Country.from_payload, entry) for entry in _entries(payload)]
        return {country.id: country for country in countries}

    async def get_hotels(self, country_id: str) -> Dict[str, Hotel]:
        logger.debug("Hotel lookup for country %s", country_id)
        payload = await self._request_json("GET", "hotels", params={"countryID": country_id})
        hotels = [_decode(Hotel.from_payload, entry) for entry in _entries(payload)]
        return {hotel.id: hotel for hotel in hotels}

    async def get_hotel(self, hotel_id: str | int) -> Hotel:
        payload = await self._request_json("GET", f"hotels/{hotel_id}")
        if not isinstance(payload, dict):
            raise NetworkError(f"Hotel {hotel_id} response is not a JSON object")
        return _decode(Hotel.from_payload, payload)

    async def search_geo(self, query: str) -> List[GeoEntity]:
        logger.debug("Geo search query='%s'", query)
        payload = await self._request_json("GET", "geo", params={"search": query})
        entities: List[GeoEntity] = []
        for entry in _entries(payload):
            entity = _decode(geo_entity_from_payload, entry)
            if entity is not None:
                entities.append(entity)
        return entities

    async def search_geo_best(self, query: str) -> Optional[GeoEntity]:
        try:
            entities = await self.search_geo(query)
        except SearchApiError:
            logger.exception("Geo search failed for query '%s'", query)
            return None
        return entities[0] if entities else None
