"""HTTP client for quote endpoints with a normalized quote record.

The endpoint is expected to answer ``GET`` with a JSON array of objects
carrying ``quote``, ``character``, ``image`` and ``characterDirection``.
Only the first element is surfaced to callers. Transport and body errors are
logged and reported as a missing quote so a polling loop can skip the cycle;
an HTTP error status raises :class:`FatalResponseError` instead.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests


class QuoteParseError(ValueError):
    """Raised when a response body does not have the expected quote shape."""


class FatalResponseError(RuntimeError):
    """Raised when the endpoint answers with a client or server error status."""

    def __init__(self, status_code: int, reason: str, url: str) -> None:
        super().__init__(f"unexpected response {status_code} - {reason} from {url}")
        self.status_code = status_code
        self.reason = reason
        self.url = url


@dataclass(frozen=True)
class QuoteRecord:
    """A single quote as returned by the endpoint."""

    quote: str
    character: str
    image: str = ""
    character_direction: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> "QuoteRecord":
        if not isinstance(payload, dict):
            raise QuoteParseError(f"expected a quote object, got {type(payload).__name__}")
        return cls(
            quote=_str_field(payload, "quote"),
            character=_str_field(payload, "character"),
            image=_str_field(payload, "image"),
            character_direction=_str_field(payload, "characterDirection"),
        )

    def format_line(self) -> str:
        return f'"{self.quote}" - {self.character}'


def _str_field(payload: Dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise QuoteParseError(f"field {key!r} must be a string, got {type(value).__name__}")
    return value


def parse_quotes(body: bytes) -> List[QuoteRecord]:
    """Decode a response body into quote records."""

    try:
        data = json.loads(body)
    except (ValueError, RecursionError) as exc:
        raise QuoteParseError(f"invalid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise QuoteParseError(f"expected a JSON array, got {type(data).__name__}")
    return [QuoteRecord.from_payload(item) for item in data]


class QuoteClient:
    """Fetches quotes from a single endpoint.

    No timeout and no retry are applied to the request; a hung server blocks
    the caller until the connection is dropped.
    """

    def __init__(
        self,
        endpoint: str,
        session: Optional[requests.Session] = None,
        metrics_callback: Optional[Callable[[str], None]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.endpoint = endpoint
        self.session = session or requests.Session()
        self.metrics_callback = metrics_callback
        self.logger = logger or logging.getLogger(__name__)

    def fetch_quote(self) -> Optional[QuoteRecord]:
        """Return the first quote from the endpoint, or ``None`` to skip this cycle."""

        try:
            response = self.session.get(self.endpoint, stream=True)
        except requests.RequestException as exc:
            self.logger.error(
                "error querying API: %s", exc,
                extra={"event": "fetch_error", "endpoint": self.endpoint},
            )
            self._emit_metrics("fetch_errors")
            return None

        with response:
            if response.status_code > 399:
                raise FatalResponseError(response.status_code, response.reason or "", self.endpoint)

            try:
                body = response.content
            except requests.RequestException as exc:
                self.logger.error(
                    "error reading response body: %s", exc,
                    extra={"event": "body_error", "endpoint": self.endpoint},
                )
                self._emit_metrics("fetch_errors")
                return None

        try:
            quotes = parse_quotes(body)
        except QuoteParseError as exc:
            self.logger.error(
                "error reading quotes API - %s", exc,
                extra={"event": "parse_error", "endpoint": self.endpoint},
            )
            self._emit_metrics("parse_errors")
            return None

        if not quotes:
            self.logger.warning(
                "quotes API returned no quotes, skipping",
                extra={"event": "empty_response", "endpoint": self.endpoint},
            )
            self._emit_metrics("empty_responses")
            return None
        return quotes[0]

    def close(self) -> None:
        self.session.close()

    def _emit_metrics(self, name: str) -> None:
        if not self.metrics_callback:
            return
        try:
            self.metrics_callback(name)
        except Exception as exc:  # pragma: no cover - external callback safety
            self.logger.debug("Metric callback failed for %s: %s", name, exc)


__all__ = ["FatalResponseError", "QuoteClient", "QuoteParseError", "QuoteRecord", "parse_quotes"]
