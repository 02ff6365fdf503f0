"""Entry point for manual tour searches."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from tour_search.config.settings import Settings
from tour_search.core.logging import configure_logging
from tour_search.search.orchestrator import SearchOrchestrator
from tour_search.services import LocationClient, SearchClient

logger = logging.getLogger("tour_search.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Search tour offers for a destination")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--country", help="Country id to search")
    target.add_argument(
        "--query",
        help="Free-text destination; the first geo search match decides the country",
    )
    parser.add_argument("--output", type=Path, help="Write offers as JSON to this path")
    parser.add_argument("--log-level", default=None, help="Override TOURS_LOG_LEVEL")
    parser.add_argument(
        "--override",
        action="append",
        metavar="KEY=VALUE",
        help="Override a Settings attribute (repeatable). Values accept JSON literals.",
    )
    return parser


def _decode_override(value: str) -> object:
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


def _apply_overrides(settings: Settings, overrides: dict[str, object]) -> None:
    for key, raw in overrides.items():
        if not hasattr(settings, key):
            logger.warning("Ignoring unknown override '%s'", key)
            continue
        setattr(settings, key, raw)
        logger.info("Override: set %s=%r", key, raw)


async def run(settings: Settings, *, country_id: Optional[str], query: Optional[str], output: Optional[Path]) -> int:
    async with SearchClient(settings=settings) as search_client, LocationClient(settings=settings) as location_client:
        orchestrator = SearchOrchestrator(search_client, location_client, settings=settings)
        await orchestrator.load_countries()

        if query:
            entity = await location_client.search_geo_best(query)
            result = await orchestrator.search_destination(entity)
        else:
            result = await orchestrator.start_search(country_id)

        if result is None:
            logger.error("Search did not complete: %s", orchestrator.status_message() or "cancelled")
            return 1

        offers = orchestrator.current_offers()
        message = orchestrator.status_message()
        if message:
            logger.info(message)
        logger.info(
            "Search %s: %s prices, %s offers with hotel details",
            result.token,
            len(result.price_ids),
            len(offers),
        )
        payload = {
            "country_id": orchestrator.active_selection_id,
            "result": result.to_dict(),
            "offers": [offer.to_dict() for offer in offers],
        }
        if output:
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(json.dumps(payload, indent=2, ensure_ascii=False))
            logger.info("Wrote %s offers to %s", len(offers), output)
        else:
            print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    settings = Settings()

    overrides: dict[str, object] = {}
    if args.override:
        for entry in args.override:
            if "=" not in entry:
                parser.error(f"Override must be in KEY=VALUE form (got '{entry}')")
            key, value = entry.split("=", 1)
            overrides[key.strip()] = _decode_override(value.strip())

    configure_logging(settings, args.log_level)
    if overrides:
        _apply_overrides(settings, overrides)

    sys.exit(asyncio.run(run(settings, country_id=args.country, query=args.query, output=args.output)))


if __name__ == "__main__":
    main()
