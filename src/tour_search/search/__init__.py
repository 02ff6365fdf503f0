"""Search core: tokens, polling, cancellation and result normalisation."""

from .errors import (
    FatalSearchFailure,
    HttpError,
    NetworkError,
    SearchCancelled,
    SearchFailure,
    SelectionError,
    StartFailure,
)
from .models import NormalizedResult, SearchPrice, SearchState, StartSearchResponse
from .normalizer import normalize_search_result

__all__ = [
    "FatalSearchFailure",
    "HttpError",
    "NetworkError",
    "NormalizedResult",
    "SearchCancelled",
    "SearchFailure",
    "SearchPrice",
    "SearchState",
    "SelectionError",
    "StartFailure",
    "StartSearchResponse",
    "normalize_search_result",
]
