from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Any

import pytest

from tour_search.search.errors import (
    ApiErrorPayload,
    FatalSearchFailure,
    HttpError,
    NetworkError,
    SearchCancelled,
)
from tour_search.search.models import SearchState
from tour_search.search.polling import SearchPoller, poll_search_prices
from tour_search.utils.waiting import WaitOutcome, format_instant, utcnow


def _at(seconds: float) -> str:
    return format_instant(utcnow() + timedelta(seconds=seconds))


def _too_early(seconds: float = -1.0) -> HttpError:
    return HttpError(425, ApiErrorPayload(code=425, error=True, message="Search not ready", wait_until=_at(seconds)))


def _server_error(message: str | None = None, wait_until: str | None = None) -> HttpError:
    return HttpError(500, ApiErrorPayload(message=message, wait_until=wait_until))


class _ScriptedClient:
    def __init__(self, outcomes: list[Any]) -> None:
        self._outcomes = list(outcomes)
        self.calls: list[str] = []

    async def get_search_prices(self, token: str) -> dict[str, dict[str, Any]]:
        self.calls.append(token)
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


PRICES = {"p1": {"amount": 999, "currency": "USD", "hotelID": "55"}}


@pytest.mark.asyncio
async def test_too_early_responses_never_count_as_failures():
    client = _ScriptedClient([_too_early() for _ in range(6)] + [PRICES])
    poller = SearchPoller(client, "abc", max_error_retries=2)

    prices = await poller.run()

    assert prices == PRICES
    assert poller.attempts == 0
    assert poller.polls == 7
    assert poller.state is SearchState.SUCCEEDED


@pytest.mark.asyncio
async def test_persistent_failures_end_fatally_after_three_polls():
    client = _ScriptedClient([_server_error("Backend exploded", wait_until=_at(-1)) for _ in range(5)])
    poller = SearchPoller(client, "abc", max_error_retries=2)

    with pytest.raises(FatalSearchFailure) as excinfo:
        await poller.run()

    assert len(client.calls) == 3
    assert excinfo.value.message == "Backend exploded"
    assert excinfo.value.attempts == 3
    assert poller.state is SearchState.FAILED_FATAL


@pytest.mark.asyncio
async def test_network_failures_use_network_message_and_fallback_delay():
    client = _ScriptedClient([NetworkError("connection reset") for _ in range(3)])
    poller = SearchPoller(
        client,
        "abc",
        retry_fallback_delay_s=0.001,
        network_message="Network is down",
    )

    with pytest.raises(FatalSearchFailure, match="Network is down"):
        await poller.run()

    assert len(client.calls) == 3


@pytest.mark.asyncio
async def test_http_failure_without_message_uses_generic_fallback():
    client = _ScriptedClient([_server_error(wait_until=_at(-1)) for _ in range(3)])

    with pytest.raises(FatalSearchFailure) as excinfo:
        await poll_search_prices(client, "abc", fatal_message="Generic failure")

    assert excinfo.value.message == "Generic failure"


@pytest.mark.asyncio
async def test_too_early_between_failures_keeps_counter_unchanged():
    client = _ScriptedClient(
        [
            _server_error(wait_until=_at(-1)),
            _too_early(),
            _too_early(),
            _server_error(wait_until=_at(-1)),
            _too_early(),
            PRICES,
        ]
    )
    poller = SearchPoller(client, "abc", max_error_retries=2)

    assert await poller.run() == PRICES
    assert poller.attempts == 2
    assert poller.polls == 6


@pytest.mark.asyncio
async def test_poller_waits_for_server_hints(monkeypatch: pytest.MonkeyPatch):
    waited: list[str] = []

    async def fake_wait_until(instant, cancel_event=None):
        waited.append(instant)
        return WaitOutcome.ELAPSED

    monkeypatch.setattr("tour_search.search.polling.wait_until", fake_wait_until)

    first, retry, ready = "2030-01-01T00:00:00Z", "2030-01-01T00:00:05Z", "2030-01-01T00:00:07Z"
    client = _ScriptedClient(
        [
            _server_error(wait_until=retry),
            HttpError(425, ApiErrorPayload(wait_until=ready)),
            PRICES,
        ]
    )

    await poll_search_prices(client, "abc", first)

    assert waited == [first, retry, ready]


@pytest.mark.asyncio
async def test_failure_without_hint_schedules_local_fallback(monkeypatch: pytest.MonkeyPatch):
    waited: list[str] = []

    async def fake_wait_until(instant, cancel_event=None):
        waited.append(instant)
        return WaitOutcome.ELAPSED

    monkeypatch.setattr("tour_search.search.polling.wait_until", fake_wait_until)
    monkeypatch.setattr(
        "tour_search.search.polling.default_retry_timestamp", lambda delay_s=1.0: f"fallback+{delay_s}"
    )
    client = _ScriptedClient([NetworkError("timeout"), PRICES])

    await poll_search_prices(client, "abc", retry_fallback_delay_s=1.0)

    assert waited == ["fallback+1.0"]


@pytest.mark.asyncio
async def test_too_early_without_hint_waits_fallback_delay_without_counting(monkeypatch: pytest.MonkeyPatch):
    waited: list[str] = []

    async def fake_wait_until(instant, cancel_event=None):
        waited.append(instant)
        return WaitOutcome.ELAPSED

    monkeypatch.setattr("tour_search.search.polling.wait_until", fake_wait_until)
    monkeypatch.setattr(
        "tour_search.search.polling.default_retry_timestamp", lambda delay_s=1.0: f"fallback+{delay_s}"
    )
    client = _ScriptedClient(
        [
            HttpError(425, ApiErrorPayload()),
            HttpError(425, ApiErrorPayload(message="Still assembling")),
            PRICES,
        ]
    )
    poller = SearchPoller(client, "abc", max_error_retries=0, retry_fallback_delay_s=0.5)

    assert await poller.run() == PRICES
    assert waited == ["fallback+0.5", "fallback+0.5"]
    assert poller.attempts == 0
    assert poller.polls == 3


@pytest.mark.asyncio
async def test_poller_does_not_call_api_when_already_cancelled():
    event = asyncio.Event()
    event.set()
    client = _ScriptedClient([PRICES])
    poller = SearchPoller(client, "abc", cancel_event=event)

    with pytest.raises(SearchCancelled):
        await poller.run()

    assert client.calls == []
    assert poller.state is SearchState.CANCELLED


@pytest.mark.asyncio
async def test_poller_stops_when_cancelled_during_wait():
    event = asyncio.Event()
    client = _ScriptedClient([PRICES])
    poller = SearchPoller(client, "abc", wait_until=_at(5), cancel_event=event)
    asyncio.get_running_loop().call_later(0.02, event.set)

    with pytest.raises(SearchCancelled):
        await poller.run()

    assert client.calls == []


@pytest.mark.asyncio
async def test_poller_reports_state_transitions():
    states: list[SearchState] = []
    client = _ScriptedClient([_too_early(), PRICES])

    await SearchPoller(client, "abc", wait_until=_at(-1), on_state=states.append).run()

    assert states == [
        SearchState.WAITING,
        SearchState.FETCHING,
        SearchState.WAITING,
        SearchState.FETCHING,
        SearchState.SUCCEEDED,
    ]
