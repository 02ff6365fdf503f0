"""Search orchestration: start, poll, normalise and commit tour searches."""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Protocol

from tour_search.config.settings import Settings
from tour_search.geo.models import Country, GeoEntity, Hotel, resolve_country_id
from tour_search.geo.offers import TourOffer, build_tour_offers

from .cancellation import CancellationController
from .errors import (
    FatalSearchFailure,
    HttpError,
    SearchApiError,
    SearchCancelled,
    SearchFailure,
    SelectionError,
    StartFailure,
)
from .models import NormalizedResult, SearchState, StartSearchResponse
from .normalizer import normalize_search_result
from .polling import PricesFetcher, SearchPoller

logger = logging.getLogger(__name__)


class SearchApi(PricesFetcher, Protocol):
    async def start_search(self, country_id: str) -> StartSearchResponse:
        ...

    async def stop_search_prices(self, token: str) -> None:
        ...


class GeoApi(Protocol):
    async def get_countries(self) -> Dict[str, Country]:
        ...

    async def get_hotels(self, country_id: str) -> Dict[str, Hotel]:
        ...


class SearchOrchestrator:
    """Runs one tour search at a time and keeps results per destination.

    ``start_search`` returns the committed result, or ``None`` when the search
    failed or was superseded. Failures meant for the user are also passed to
    ``on_error`` and kept in :attr:`error`; committed results go to
    ``on_result``.
    """

    def __init__(
        self,
        search_client: SearchApi,
        location_client: Optional[GeoApi] = None,
        *,
        settings: Optional[Settings] = None,
        on_result: Optional[Callable[[NormalizedResult], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.search_client = search_client
        self.location_client = location_client
        self.controller = CancellationController(search_client)
        self.on_result = on_result
        self.on_error = on_error

        self.results: Dict[str, NormalizedResult] = {}
        self.hotels: Dict[str, Dict[str, Hotel]] = {}
        self.countries: Dict[str, Country] = {}
        self.active_selection_id: Optional[str] = None
        self.has_searched = False
        self.error: Optional[str] = None
        self.state = SearchState.IDLE
        self.poller: Optional[SearchPoller] = None

    @property
    def is_loading(self) -> bool:
        return self.controller.is_locked

    @property
    def current_result(self) -> Optional[NormalizedResult]:
        if self.active_selection_id is None:
            return None
        return self.results.get(self.active_selection_id)

    @property
    def should_show_empty_state(self) -> bool:
        result = self.current_result
        return (
            self.has_searched
            and not self.is_loading
            and not self.error
            and result is not None
            and result.is_empty
        )

    def status_message(self) -> Optional[str]:
        if self.is_loading:
            return self.settings.loading_message
        if self.error:
            return self.error
        if self.should_show_empty_state:
            return self.settings.empty_results_message
        return None

    def current_offers(self) -> List[TourOffer]:
        if self.active_selection_id is None:
            return []
        return build_tour_offers(
            self.current_result,
            self.hotels.get(self.active_selection_id),
            self.countries,
        )

    async def search_destination(self, entity: Optional[GeoEntity]) -> Optional[NormalizedResult]:
        """Start a search for the country behind a geo search pick."""
        if entity is None:
            self._report_error(SelectionError(self.settings.no_selection_message))
            return None
        country_id = resolve_country_id(entity)
        if not country_id:
            self._report_error(SelectionError(self.settings.unresolved_country_message))
            return None
        return await self.start_search(country_id)

    async def start_search(self, selection_id: Optional[str]) -> Optional[NormalizedResult]:
        selection_id = (selection_id or "").strip()
        if not selection_id:
            self._report_error(SelectionError(self.settings.no_selection_message))
            return None

        # Nothing is awaited until this call holds its lock id, so a later call
        # always supersedes an earlier one.
        abandonment = self.controller.abandon_selection(selection_id, on_abandon=self._drop_result)
        if abandonment is not None:
            self.state = SearchState.CANCELLED
        self.active_selection_id = selection_id
        self.has_searched = True
        self.error = None

        cached = self.results.get(selection_id)
        if cached is not None:
            logger.info("Reusing search %s for %s", cached.token, selection_id)
            if self.on_result is not None:
                self.on_result(cached)
            await self.controller.stop_abandoned(abandonment)
            return cached

        lock_id = self.controller.acquire_submit_lock(selection_id)
        try:
            await self.controller.stop_abandoned(abandonment)
            result = await self._run_search(selection_id, lock_id)
        finally:
            self.controller.release_submit_lock(lock_id)

        if result is not None:
            await self.load_hotels(selection_id)
        return result

    async def on_selection_changed(self, selection_id: str) -> Optional[str]:
        """Abandon a search still running for another destination."""
        abandoned = await self.controller.override_selection(selection_id, on_abandon=self._drop_result)
        if abandoned is not None:
            self.state = SearchState.CANCELLED
        return abandoned

    async def load_countries(self) -> Dict[str, Country]:
        if self.countries or self.location_client is None:
            return self.countries
        try:
            self.countries = await self.location_client.get_countries()
        except SearchApiError:
            logger.exception("Country lookup failed")
        return self.countries

    async def load_hotels(self, country_id: str) -> Optional[Dict[str, Hotel]]:
        if country_id in self.hotels:
            return self.hotels[country_id]
        if self.location_client is None:
            return None
        try:
            hotels = await self.location_client.get_hotels(country_id)
        except SearchApiError:
            logger.exception("Hotel lookup failed for country %s", country_id)
            return None
        self.hotels[country_id] = hotels
        return hotels

    async def _run_search(self, selection_id: str, lock_id: int) -> Optional[NormalizedResult]:
        if not self.controller.is_current_lock(lock_id):
            logger.info("Search for %s superseded before starting", selection_id)
            return None
        await self.controller.retire_active()
        if not self.controller.is_current_lock(lock_id):
            return None

        self._set_state(SearchState.STARTING, lock_id)
        try:
            started = await self.search_client.start_search(selection_id)
        except SearchApiError as exc:
            if not self.controller.is_current_lock(lock_id):
                return None
            self._set_state(SearchState.FAILED_FATAL, lock_id)
            self._report_error(StartFailure(self._start_error_message(exc)))
            return None

        token = started.token
        if not self.controller.is_current_lock(lock_id):
            logger.info("Search %s for %s superseded before polling", token, selection_id)
            await self.controller.notify_stop(token)
            return None

        active = self.controller.install(token, selection_id)
        self.poller = SearchPoller(
            self.search_client,
            token,
            wait_until=started.wait_until,
            cancel_event=active.cancel_event,
            max_error_retries=self.settings.max_error_retries,
            retry_fallback_delay_s=self.settings.retry_fallback_delay_s,
            fatal_message=self.settings.fatal_error_message,
            network_message=self.settings.network_error_message,
            on_state=lambda state: self._set_state(state, lock_id),
        )
        try:
            prices = await self.poller.run()
        except SearchCancelled:
            return None
        except FatalSearchFailure as failure:
            if self.controller.is_active(token):
                self.controller.clear(token)
                self._report_error(failure)
            return None

        if not self.controller.is_active(token):
            logger.info("Discarding result of superseded search %s for %s", token, selection_id)
            return None
        self.controller.clear(token)

        result = normalize_search_result(token, prices)
        self.results[selection_id] = result
        logger.info("Committed %s prices for %s (search %s)", len(result.price_ids), selection_id, token)
        if self.on_result is not None:
            self.on_result(result)
        return result

    def _set_state(self, state: SearchState, lock_id: int) -> None:
        if self.controller.is_current_lock(lock_id):
            self.state = state

    def _start_error_message(self, exc: SearchApiError) -> str:
        if isinstance(exc, HttpError) and exc.payload.message:
            return exc.payload.message
        return self.settings.start_error_message

    def _drop_result(self, selection_id: str) -> None:
        self.results.pop(selection_id, None)

    def _report_error(self, failure: SearchFailure) -> None:
        logger.warning("Search failed: %s", failure.message)
        self.error = failure.message
        if self.on_error is not None:
            self.on_error(failure.message)
