from __future__ import annotations

from tour_search.geo.models import City, Country, Hotel, geo_entity_from_payload, resolve_country_id
from tour_search.geo.offers import build_tour_offers
from tour_search.search import normalize_search_result


def test_resolve_country_id_for_each_entity_type():
    assert resolve_country_id(Country(id="7", name="Egypt")) == "7"
    assert resolve_country_id(City(id="712", name="Hurghada", country_id="7")) == "7"
    assert resolve_country_id(Hotel(id="55", name="Nile Palace", country_id="7")) == "7"
    assert resolve_country_id(None) is None


def test_geo_entity_from_payload_uses_type_discriminator():
    hotel = geo_entity_from_payload({"id": 55, "name": "Nile Palace", "countryId": "7", "type": "hotel"})
    assert isinstance(hotel, Hotel)
    assert geo_entity_from_payload({"id": 1, "type": "airport"}) is None


def test_build_tour_offers_keeps_result_order_and_skips_unknown_hotels():
    result = normalize_search_result(
        "abc",
        {
            "p2": {"amount": 200, "currency": "USD", "hotelID": "56"},
            "p1": {"amount": 100, "currency": "USD", "hotelID": "55"},
            "p3": {"amount": 300, "currency": "USD", "hotelID": "999"},
        },
    )
    hotels = {
        "55": Hotel(id="55", name="Nile Palace", country_id="7"),
        "56": Hotel(id="56", name="Red Sea Resort", country_id="8"),
    }
    countries = {"7": Country(id="7", name="Egypt")}

    offers = build_tour_offers(result, hotels, countries)

    assert [offer.price.id for offer in offers] == ["p2", "p1"]
    assert offers[0].country is None
    assert offers[1].country == countries["7"]
    assert offers[1].to_dict()["hotel"]["name"] == "Nile Palace"


def test_build_tour_offers_without_hotels_is_empty():
    result = normalize_search_result("abc", {"p1": {"amount": 100, "currency": "USD", "hotelID": "55"}})

    assert build_tour_offers(result, None) == []
    assert build_tour_offers(None, {"55": Hotel(id="55", name="x", country_id="7")}) == []
