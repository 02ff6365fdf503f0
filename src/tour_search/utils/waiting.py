"""Cancellable waits on server-provided ``waitUntil`` instants."""
from __future__ import annotations

import asyncio
import enum
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

logger = logging.getLogger(__name__)

Instant = Union[str, datetime, None]


class WaitOutcome(enum.Enum):
    ELAPSED = "elapsed"
    CANCELLED = "cancelled"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_instant(value: Instant) -> Optional[datetime]:
    """Parse an ISO-8601 instant; naive values and a trailing ``Z`` are read as UTC.

    Returns ``None`` for missing or malformed input.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.debug("Unable to parse wait instant %r", value)
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_instant(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def default_retry_timestamp(delay_s: float = 1.0) -> str:
    """Instant ``delay_s`` seconds from now, used when the server suggests none."""
    return format_instant(utcnow() + timedelta(seconds=delay_s))


async def wait_until(instant: Instant, cancel_event: Optional[asyncio.Event] = None) -> WaitOutcome:
    """Sleep until ``instant`` unless ``cancel_event`` is set first."""
    target = parse_instant(instant)
    if target is None:
        return WaitOutcome.ELAPSED

    delay = (target - utcnow()).total_seconds()
    if delay <= 0:
        return WaitOutcome.ELAPSED

    if cancel_event is None:
        await asyncio.sleep(delay)
        return WaitOutcome.ELAPSED
    if cancel_event.is_set():
        return WaitOutcome.CANCELLED

    logger.debug("Waiting %.3fs until %s", delay, format_instant(target))
    try:
        # wait_for cancels the inner waiter on timeout, so nothing outlives this call.
        await asyncio.wait_for(cancel_event.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return WaitOutcome.ELAPSED
    return WaitOutcome.CANCELLED
