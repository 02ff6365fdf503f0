"""Client for the asynchronous tour price search API."""
from __future__ import annotations

import logging
from typing import Any, Dict

from tour_search.search.errors import NetworkError
from tour_search.search.models import SearchPrice, StartSearchResponse

from .base import ApiClient

logger = logging.getLogger(__name__)

SEARCH_PRICES_PATH = "search/prices"
PRICES_PATH = "prices"


class SearchClient(ApiClient):
    """Start, poll and stop server-side price searches."""

    async def start_search(self, country_id: str) -> StartSearchResponse:
        logger.info("Starting price search for country %s", country_id)
        payload = await self._request_json("POST", SEARCH_PRICES_PATH, params={"countryID": country_id})
        if not isinstance(payload, dict):
            raise NetworkError("Start search response is not a JSON object")
        try:
            return StartSearchResponse.from_payload(payload)
        except ValueError as exc:
            raise NetworkError(str(exc)) from exc

    async def get_search_prices(self, token: str) -> Dict[str, Dict[str, Any]]:
        """Return the raw id→price mapping; raises ``HttpError`` (425 included) otherwise."""
        payload = await self._request_json("GET", SEARCH_PRICES_PATH, params={"token": token})
        if payload is None:
            return {}
        if not isinstance(payload, dict):
            raise NetworkError("Search prices response is not a JSON object")
        prices = payload.get("prices") or {}
        if not isinstance(prices, dict):
            raise NetworkError("Search prices payload 'prices' is not an object")
        malformed = [str(key) for key, entry in prices.items() if not isinstance(entry, dict)]
        if malformed:
            raise NetworkError(f"Search prices payload has non-object entries: {', '.join(malformed)}")
        return prices

    async def stop_search_prices(self, token: str) -> None:
        logger.debug("Stopping price search %s", token)
        await self._request_json("DELETE", SEARCH_PRICES_PATH, params={"token": token})

    async def get_price(self, price_id: str) -> SearchPrice:
        payload = await self._request_json("GET", f"{PRICES_PATH}/{price_id}")
        if not isinstance(payload, dict):
            raise NetworkError(f"Price {price_id} response is not a JSON object")
        return SearchPrice.from_payload(payload, fallback_id=price_id)
