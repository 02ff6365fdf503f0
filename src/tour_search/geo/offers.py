"""Join search prices with hotel and country metadata for display."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional

from tour_search.search.models import NormalizedResult, SearchPrice

from .models import Country, Hotel

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TourOffer:
    price: SearchPrice
    hotel: Hotel
    country: Optional[Country] = None

    def to_dict(self) -> dict[str, object]:
        return {
            "price": self.price.to_dict(),
            "hotel": self.hotel.to_dict(),
            "country": (
                {"id": self.country.id, "name": self.country.name, "flag": self.country.flag}
                if self.country
                else None
            ),
        }


def build_tour_offers(
    result: Optional[NormalizedResult],
    hotels: Optional[Mapping[str, Hotel]],
    countries: Optional[Mapping[str, Country]] = None,
) -> List[TourOffer]:
    """Pair each price with its hotel, keeping the result order.

    Prices whose hotel is unknown are skipped.
    """
    if result is None or not hotels:
        return []
    offers: List[TourOffer] = []
    skipped = 0
    for price in result.prices():
        hotel = hotels.get(price.hotel_id) if price.hotel_id is not None else None
        if hotel is None:
            skipped += 1
            continue
        country = (countries or {}).get(hotel.country_id)
        offers.append(TourOffer(price=price, hotel=hotel, country=country))
    if skipped:
        logger.debug("Skipped %s prices without hotel metadata (token %s)", skipped, result.token)
    return offers
