"""Poll a started search until its prices are ready.

The server answers ``425 Too Early`` with a ``waitUntil`` instant while results
are still being assembled; those answers are part of the protocol and never
count against the retry budget. Every other failure does, and the loop gives up
once more than ``max_error_retries`` of them have been seen.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Optional, Protocol

from tour_search.utils.waiting import WaitOutcome, default_retry_timestamp, wait_until

from .errors import FatalSearchFailure, HttpError, NetworkError, SearchCancelled
from .models import SearchState

logger = logging.getLogger(__name__)

MAX_ERROR_RETRIES = 2
RETRY_FALLBACK_DELAY_S = 1.0
DEFAULT_FATAL_MESSAGE = "Could not fetch tour search results."
DEFAULT_NETWORK_MESSAGE = "A network error occurred. Please try again later."


class PricesFetcher(Protocol):
    async def get_search_prices(self, token: str) -> Dict[str, Dict[str, Any]]:
        ...


class SearchPoller:
    """Runs the wait/fetch/retry loop for one search token.

    A poller is single use: :meth:`run` issues at most one request at a time and
    leaves ``attempts`` holding the number of non "too early" failures seen.
    """

    def __init__(
        self,
        client: PricesFetcher,
        token: str,
        *,
        wait_until: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
        max_error_retries: int = MAX_ERROR_RETRIES,
        retry_fallback_delay_s: float = RETRY_FALLBACK_DELAY_S,
        fatal_message: str = DEFAULT_FATAL_MESSAGE,
        network_message: str = DEFAULT_NETWORK_MESSAGE,
        on_state: Optional[Callable[[SearchState], None]] = None,
    ) -> None:
        self.client = client
        self.token = token
        self.cancel_event = cancel_event or asyncio.Event()
        self.max_error_retries = max_error_retries
        self.retry_fallback_delay_s = retry_fallback_delay_s
        self.fatal_message = fatal_message
        self.network_message = network_message
        self.attempts = 0
        self.polls = 0
        self.state = SearchState.WAITING
        self._next_wait_until = wait_until
        self._on_state = on_state

    def _set_state(self, state: SearchState) -> None:
        self.state = state
        if self._on_state is not None:
            self._on_state(state)

    def _cancelled(self) -> SearchCancelled:
        self._set_state(SearchState.CANCELLED)
        logger.info("Search %s cancelled after %s polls", self.token, self.polls)
        return SearchCancelled(self.token)

    def _register_failure(self, message: str, wait_until_hint: Optional[str]) -> None:
        self.attempts += 1
        if self.attempts > self.max_error_retries:
            self._set_state(SearchState.FAILED_FATAL)
            logger.warning(
                "Search %s failed after %s errors (%s polls): %s",
                self.token,
                self.attempts,
                self.polls,
                message,
            )
            raise FatalSearchFailure(message, token=self.token, attempts=self.attempts)
        self._next_wait_until = wait_until_hint or default_retry_timestamp(self.retry_fallback_delay_s)
        logger.info(
            "Retrying search %s (error %s/%s) at %s",
            self.token,
            self.attempts,
            self.max_error_retries,
            self._next_wait_until,
        )

    async def run(self) -> Dict[str, Dict[str, Any]]:
        """Return the raw price mapping once the server has it.

        Raises ``SearchCancelled`` when the cancel event fires at a loop or
        wait boundary and ``FatalSearchFailure`` once the budget is spent.
        """
        while True:
            if self.cancel_event.is_set():
                raise self._cancelled()

            if self._next_wait_until:
                self._set_state(SearchState.WAITING)
                outcome = await wait_until(self._next_wait_until, self.cancel_event)
                self._next_wait_until = None
                if outcome is WaitOutcome.CANCELLED:
                    raise self._cancelled()
                # The event may fire right as the timer elapses.
                if self.cancel_event.is_set():
                    raise self._cancelled()

            self._set_state(SearchState.FETCHING)
            self.polls += 1
            logger.debug("Polling search %s (poll %s)", self.token, self.polls)
            try:
                prices = await self.client.get_search_prices(self.token)
            except HttpError as exc:
                if exc.too_early:
                    self._next_wait_until = exc.payload.wait_until or default_retry_timestamp(
                        self.retry_fallback_delay_s
                    )
                    logger.debug("Search %s not ready; next poll at %s", self.token, self._next_wait_until)
                    continue
                self._register_failure(exc.payload.message or self.fatal_message, exc.payload.wait_until)
                continue
            except NetworkError as exc:
                logger.debug("Search %s poll failed: %s", self.token, exc)
                self._register_failure(self.network_message, None)
                continue

            self._set_state(SearchState.SUCCEEDED)
            logger.info("Search %s returned %s prices after %s polls", self.token, len(prices), self.polls)
            return prices


async def poll_search_prices(
    client: PricesFetcher,
    token: str,
    wait_until: Optional[str] = None,
    **kwargs: Any,
) -> Dict[str, Dict[str, Any]]:
    """Convenience wrapper around :class:`SearchPoller`."""
    return await SearchPoller(client, token, wait_until=wait_until, **kwargs).run()
