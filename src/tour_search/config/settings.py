"""Runtime configuration for the tour search client.

Relies on pydantic-settings so that environment variables (prefixed with ``TOURS_``)
can override defaults.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Captures runtime configuration for tour searches."""

    api_base_url: str = Field(
        default="http://localhost:3000/api/",
        description="Base URL of the tours API (search, prices, geo lookups)",
    )
    http_timeout_s: float = Field(default=10.0, description="Per-request HTTP timeout in seconds")
    user_agent: Optional[str] = Field(default="tour-search/0.1.0")
    extra_headers: Dict[str, str] = Field(
        default_factory=dict,
        description="Additional headers sent with every API request; JSON object when provided via env",
    )

    max_error_retries: int = Field(
        default=2,
        description="Non 'too early' poll failures tolerated before a search is abandoned",
    )
    retry_fallback_delay_s: float = Field(
        default=1.0,
        description="Delay before the next poll when a failed response carries no waitUntil",
    )

    log_level: str = Field(default="INFO")
    log_dir: Path = Field(default=Path("data/logs"))

    loading_message: str = "Searching for tours..."
    empty_results_message: str = "No tours were found for your request"
    start_error_message: str = "Something went wrong while starting the tour search. Please try again."
    fatal_error_message: str = "Could not fetch tour search results."
    network_error_message: str = "A network error occurred. Please try again later."
    no_selection_message: str = "Please choose a destination to search."
    unresolved_country_message: str = "Could not determine the country for this search."

    model_config = SettingsConfigDict(
        env_prefix="TOURS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("api_base_url")
    def _normalize_base_url(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("api_base_url must not be empty")
        if not value.endswith("/"):
            value = f"{value}/"
        return value

    @field_validator("log_dir", mode="before")
    def _expand_log_dir(cls, value: str | Path) -> Path:
        if isinstance(value, Path):
            return value
        return Path(value).expanduser()

    @field_validator("extra_headers", mode="before")
    def _parse_extra_headers(cls, value: object) -> Dict[str, str]:
        if value in (None, ""):
            return {}
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError as exc:  # noqa: TRY003
                raise ValueError("extra_headers must be a JSON object") from exc
        if not isinstance(value, dict):
            raise TypeError("extra_headers must be a mapping of header names to values")
        return {str(key): str(item) for key, item in value.items()}

    @field_validator("max_error_retries")
    def _validate_retries(cls, value: int) -> int:
        if value < 0:
            raise ValueError("max_error_retries must not be negative")
        return value

    @field_validator("retry_fallback_delay_s", "http_timeout_s")
    def _validate_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("delays and timeouts must be positive")
        return value

    def ensure_directories(self) -> None:
        """Create directories that must exist at runtime."""
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def http_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        if self.extra_headers:
            logger.debug("Applying %s extra API headers", len(self.extra_headers))
            headers.update(self.extra_headers)
        return headers
