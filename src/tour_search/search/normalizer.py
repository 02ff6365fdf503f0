"""Turn raw ``prices`` payloads into ordered, id-carrying results."""
from __future__ import annotations

from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .models import NormalizedResult, SearchPrice


def normalize_search_result(
    token: str,
    prices: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> NormalizedResult:
    """Build a :class:`NormalizedResult` from the API's id→price mapping.

    Entries keep the mapping's insertion order. A price without its own ``id``
    takes the key it was stored under. The input mapping is left untouched.
    """
    price_ids: list[str] = []
    prices_by_id: dict[str, SearchPrice] = {}

    for price_key, payload in (prices or {}).items():
        key = str(price_key)
        prices_by_id[key] = SearchPrice.from_payload(payload, fallback_id=key)
        price_ids.append(key)

    return NormalizedResult(
        token=token,
        received_at=datetime.now(timezone.utc),
        price_ids=tuple(price_ids),
        prices_by_id=MappingProxyType(prices_by_id),
    )
