"""Ownership of the single active search and the submit lock."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class SearchStopper(Protocol):
    async def stop_search_prices(self, token: str) -> None:
        ...


@dataclass(slots=True)
class ActiveSearch:
    token: str
    selection_id: str
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()


@dataclass(slots=True)
class Abandonment:
    selection_id: str
    retired: Optional[ActiveSearch] = None


class CancellationController:
    """Tracks at most one live search token and supersedes it on demand.

    One controller belongs to one orchestrator; nothing here is shared at
    module level.
    """

    def __init__(self, stopper: Optional[SearchStopper] = None) -> None:
        self._stopper = stopper
        self._active: Optional[ActiveSearch] = None
        self._lock_id = 0
        self._locked = False
        self._lock_selection_id: Optional[str] = None

    @property
    def active(self) -> Optional[ActiveSearch]:
        return self._active

    def is_active(self, token: str) -> bool:
        return self._active is not None and self._active.token == token

    def install(self, token: str, selection_id: str) -> ActiveSearch:
        if self._active is not None:
            raise RuntimeError(
                f"Search {self._active.token} is still active; retire it before installing {token}"
            )
        self._active = ActiveSearch(token=token, selection_id=selection_id)
        logger.debug("Installed search %s for %s", token, selection_id)
        return self._active

    def clear(self, token: str) -> None:
        if self.is_active(token):
            self._active = None

    async def retire_active(self) -> Optional[ActiveSearch]:
        """Cancel the active search, if any, and ask the server to stop it.

        The slot is empty before the stop request is sent. Stop failures are
        logged and ignored.
        """
        retired = self._retire_slot()
        if retired is not None:
            await self.notify_stop(retired.token)
        return retired

    def _retire_slot(self) -> Optional[ActiveSearch]:
        retired = self._active
        if retired is None:
            return None
        retired.cancel()
        self._active = None
        logger.info("Retired search %s for %s", retired.token, retired.selection_id)
        return retired

    async def notify_stop(self, token: str) -> None:
        if self._stopper is None:
            return
        try:
            await self._stopper.stop_search_prices(token)
        except Exception as exc:
            logger.warning("Stop request for search %s failed: %s", token, exc)

    # Submit lock

    @property
    def is_locked(self) -> bool:
        return self._locked

    @property
    def lock_id(self) -> int:
        return self._lock_id

    @property
    def locked_selection_id(self) -> Optional[str]:
        return self._lock_selection_id if self._locked else None

    def acquire_submit_lock(self, selection_id: str) -> int:
        self._lock_id += 1
        self._locked = True
        self._lock_selection_id = selection_id
        return self._lock_id

    def is_current_lock(self, lock_id: int) -> bool:
        return lock_id == self._lock_id

    def release_submit_lock(self, lock_id: int) -> bool:
        if not self.is_current_lock(lock_id):
            logger.debug("Ignoring release of stale submit lock %s (current %s)", lock_id, self._lock_id)
            return False
        if not self._locked:
            return False
        self._unlock()
        return True

    def _unlock(self) -> None:
        self._locked = False
        self._lock_selection_id = None

    def abandon_selection(
        self,
        selection_id: str,
        on_abandon: Optional[Callable[[str], None]] = None,
    ) -> Optional[Abandonment]:
        """Synchronous half of :meth:`override_selection`.

        Cancels the search locked for another destination, runs ``on_abandon``
        and releases the lock without yielding to the event loop. The caller
        is left to send the stop request for ``Abandonment.retired``.
        """
        abandoned = self._lock_selection_id
        if not self._locked or abandoned is None or abandoned == selection_id:
            return None
        # Bumping the id turns the abandoned attempt's own release into a no-op.
        self._lock_id += 1
        logger.info("Selection changed to %s; abandoning search for %s", selection_id, abandoned)
        retired = self._retire_slot()
        if on_abandon is not None:
            on_abandon(abandoned)
        self._unlock()
        return Abandonment(selection_id=abandoned, retired=retired)

    async def override_selection(
        self,
        selection_id: str,
        on_abandon: Optional[Callable[[str], None]] = None,
    ) -> Optional[str]:
        """Abandon an in-flight search for a destination other than ``selection_id``.

        The active search is cancelled and ``on_abandon`` runs before the lock
        is released; the stop request goes out afterwards. Returns the abandoned
        destination, or ``None`` when nothing was abandoned.
        """
        abandonment = self.abandon_selection(selection_id, on_abandon)
        if abandonment is None:
            return None
        await self.stop_abandoned(abandonment)
        return abandonment.selection_id

    async def stop_abandoned(self, abandonment: Optional[Abandonment]) -> None:
        if abandonment is not None and abandonment.retired is not None:
            await self.notify_stop(abandonment.retired.token)
