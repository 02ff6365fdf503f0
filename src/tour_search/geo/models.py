"""Dataclasses for countries, cities, hotels and geo search entities."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union


def _entity_id(payload: Mapping[str, Any], kind: str) -> str:
    value = payload.get("id")
    if value is None or value == "":
        raise ValueError(f"{kind} payload has no id")
    return str(value)


@dataclass(slots=True)
class Country:
    id: str
    name: str
    flag: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Country":
        return cls(
            id=_entity_id(payload, cls.__name__),
            name=payload.get("name") or "",
            flag=payload.get("flag"),
        )


@dataclass(slots=True)
class City:
    id: str
    name: str
    country_id: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "City":
        return cls(
            id=_entity_id(payload, cls.__name__),
            name=payload.get("name") or "",
            country_id=str(payload.get("countryId") or ""),
        )


@dataclass(slots=True)
class Hotel:
    id: str
    name: str
    country_id: str
    city_id: Optional[str] = None
    city_name: Optional[str] = None
    country_name: Optional[str] = None
    img: Optional[str] = None
    description: Optional[str] = None
    services: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Hotel":
        city_id = payload.get("cityId")
        return cls(
            id=_entity_id(payload, cls.__name__),
            name=payload.get("name") or "",
            country_id=str(payload.get("countryId") or ""),
            city_id=str(city_id) if city_id is not None else None,
            city_name=payload.get("cityName"),
            country_name=payload.get("countryName"),
            img=payload.get("img"),
            description=payload.get("description"),
            services=dict(payload.get("services") or {}),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "city_id": self.city_id,
            "city_name": self.city_name,
            "country_id": self.country_id,
            "country_name": self.country_name,
            "img": self.img,
            "description": self.description,
            "services": dict(self.services),
        }


GeoEntity = Union[Country, City, Hotel]


def geo_entity_from_payload(payload: Mapping[str, Any]) -> Optional[GeoEntity]:
    """Decode a geo search entry by its ``type`` discriminator."""
    entity_type = payload.get("type")
    if entity_type == "country":
        return Country.from_payload(payload)
    if entity_type == "city":
        return City.from_payload(payload)
    if entity_type == "hotel":
        return Hotel.from_payload(payload)
    return None


def resolve_country_id(entity: Optional[GeoEntity]) -> Optional[str]:
    """Return the country a search for ``entity`` should cover."""
    if isinstance(entity, Country):
        return entity.id or None
    if isinstance(entity, (City, Hotel)):
        return entity.country_id or None
    return None
