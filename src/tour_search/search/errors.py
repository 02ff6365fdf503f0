"""Error types raised by the API clients and the search core."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

TOO_EARLY_STATUS = 425


@dataclass(frozen=True, slots=True)
class ApiErrorPayload:
    """Body of a non-2xx API response; every field is optional."""

    code: Optional[int] = None
    error: Optional[bool] = None
    message: Optional[str] = None
    wait_until: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ApiErrorPayload":
        if not isinstance(payload, dict):
            return cls()
        message = payload.get("message")
        wait_until = payload.get("waitUntil")
        code = payload.get("code")
        return cls(
            code=code if isinstance(code, int) else None,
            error=payload.get("error") if isinstance(payload.get("error"), bool) else None,
            message=message if isinstance(message, str) and message.strip() else None,
            wait_until=wait_until if isinstance(wait_until, str) and wait_until else None,
        )


class SearchApiError(RuntimeError):
    """Base class for failures of a single API call."""


class NetworkError(SearchApiError):
    """The request never produced a usable response."""


class HttpError(SearchApiError):
    """The API answered with a non-2xx status."""

    def __init__(self, status: int, payload: Optional[ApiErrorPayload] = None, *, url: str = "") -> None:
        super().__init__(f"API request failed ({status}){f': {url}' if url else ''}")
        self.status = status
        self.payload = payload or ApiErrorPayload()
        self.url = url

    @property
    def too_early(self) -> bool:
        return self.status == TOO_EARLY_STATUS


class SearchCancelled(Exception):
    """The search was superseded or abandoned; never shown to the user."""

    def __init__(self, token: Optional[str] = None) -> None:
        super().__init__(f"Search {token} cancelled" if token else "Search cancelled")
        self.token = token


class SearchFailure(Exception):
    """Failure that crosses the core boundary with a user-facing message."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class StartFailure(SearchFailure):
    """The start call itself failed; no poll loop was run."""


class FatalSearchFailure(SearchFailure):
    """The retry budget was exhausted while polling for results."""

    def __init__(self, message: str, *, token: Optional[str] = None, attempts: int = 0) -> None:
        super().__init__(message)
        self.token = token
        self.attempts = attempts


class SelectionError(SearchFailure):
    """The user did not select a searchable destination."""
