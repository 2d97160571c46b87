"""Runtime settings for the rental synchroniser.

Values come from the process environment, optionally seeded from a ``.env``
file, and are validated once when :class:`Settings` is constructed.
"""

from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigurationError(ValueError):
    """Raised when the record store URL or another setting is unusable."""


class Settings(BaseModel):
    """Connection and logging settings, constant for a run."""

    base_url: str = Field(..., description="Record store API base URL")
    token: str = Field("", description="Bearer token sent with every request")
    log_level: str = Field("INFO", description="Logging level name")
    request_timeout: Optional[float] = Field(
        None, description="Per-request timeout in seconds; None waits indefinitely"
    )

    @field_validator("base_url", mode="before")
    @classmethod
    def validate_base_url(cls, v):
        clean = v.strip() if isinstance(v, str) else ""
        if not clean:
            raise ValueError(
                "The API URL is missing. Set the 'url' environment variable."
            )
        if not clean.startswith("http"):
            raise ValueError(
                f'The provided API URL "{clean}" is invalid. '
                "It must start with http:// or https://."
            )
        return clean.rstrip("/")

    @field_validator("token", mode="before")
    @classmethod
    def validate_token(cls, v):
        return "" if v is None else str(v).strip()

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v):
        level = str(v or "INFO").strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f'Log level must be one of: {", ".join(LOG_LEVELS)}')
        return level

    @field_validator("request_timeout", mode="before")
    @classmethod
    def validate_timeout(cls, v):
        if v in (None, ""):
            return None
        return v

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }

    @classmethod
    def create(cls, **values) -> Settings:
        """Construct settings, converting validation failures to :class:`ConfigurationError`."""
        try:
            return cls(**values)
        except ValidationError as exc:
            messages = "; ".join(err["msg"] for err in exc.errors())
            raise ConfigurationError(messages) from exc

    @classmethod
    def from_env(cls, *, dotenv: bool = True) -> Settings:
        """Load settings from ``url``, ``token``, ``LOG_LEVEL`` and ``REQUEST_TIMEOUT``."""
        if dotenv:
            load_dotenv()
        return cls.create(
            base_url=os.environ.get("url"),
            token=os.environ.get("token"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            request_timeout=os.environ.get("REQUEST_TIMEOUT"),
        )


__all__ = ["ConfigurationError", "Settings", "LOG_LEVELS"]
