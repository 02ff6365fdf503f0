"""Dataclasses for search tokens, prices and normalised results."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional, Tuple


class SearchState(enum.Enum):
    IDLE = "idle"
    STARTING = "starting"
    WAITING = "waiting"
    FETCHING = "fetching"
    SUCCEEDED = "succeeded"
    FAILED_FATAL = "failed_fatal"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class StartSearchResponse:
    token: str
    wait_until: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "StartSearchResponse":
        token = payload.get("token")
        if not isinstance(token, str) or not token:
            raise ValueError("Start search response is missing a token")
        wait_until = payload.get("waitUntil")
        return cls(token=token, wait_until=wait_until if isinstance(wait_until, str) and wait_until else None)


@dataclass(frozen=True, slots=True)
class SearchPrice:
    """One tour offer price as returned by the API."""

    id: str
    amount: float
    currency: str
    start_date: Optional[str]
    end_date: Optional[str]
    hotel_id: Optional[str]
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], *, fallback_id: Optional[str] = None) -> "SearchPrice":
        price_id = payload.get("id")
        if price_id in (None, ""):
            price_id = fallback_id
        if price_id in (None, ""):
            raise ValueError("Price payload has no id and no fallback key")
        hotel_id = payload.get("hotelID")
        return cls(
            id=str(price_id),
            amount=payload.get("amount", 0),
            currency=str(payload.get("currency") or ""),
            start_date=payload.get("startDate"),
            end_date=payload.get("endDate"),
            hotel_id=str(hotel_id) if hotel_id is not None else None,
            raw=dict(payload),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "amount": self.amount,
            "currency": self.currency,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "hotelID": self.hotel_id,
        }


@dataclass(frozen=True, slots=True)
class NormalizedResult:
    """Prices of one finished search in the order the API returned them."""

    token: str
    received_at: datetime
    price_ids: Tuple[str, ...]
    prices_by_id: Mapping[str, SearchPrice]

    @property
    def is_empty(self) -> bool:
        return not self.price_ids

    def prices(self) -> list[SearchPrice]:
        return [self.prices_by_id[price_id] for price_id in self.price_ids]

    def to_dict(self) -> dict[str, object]:
        return {
            "token": self.token,
            "received_at": self.received_at.isoformat(),
            "price_ids": list(self.price_ids),
            "prices_by_id": {key: price.to_dict() for key, price in self.prices_by_id.items()},
        }
