"""
Image Decoration Lookup

Resolves a display image for a catalog item from a metadata search API.

PRINCIPLES:
===========
1. Best effort - a missing image is never an error for the caller
2. Failed lookups are first-class results with an explicit status
3. Never raises out of fetch_image()
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx

from ..config import DecorationConfig
from ..contracts.items import MediaKind
from ..contracts.ports import ImageLookup


class LookupStatus(Enum):
    """Outcome of a single lookup attempt."""
    SUCCESS = "success"
    NO_RESULTS = "no_results"
    NO_IMAGE = "no_image"
    TIMEOUT = "timeout"
    HTTP_ERROR = "http_error"
    PARSE_ERROR = "parse_error"
    NETWORK_ERROR = "network_error"
    DISABLED = "disabled"


@dataclass(frozen=True)
class LookupResult:
    title: str
    media_kind: MediaKind
    status: LookupStatus
    url: Optional[str] = None
    http_status: Optional[int] = None
    error_message: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.status == LookupStatus.SUCCESS


class NullImageLookup(ImageLookup):
    """Lookup used when decoration is disabled. Always resolves to None."""

    async def fetch_image(self, title: str, media_kind: MediaKind) -> Optional[str]:
        return None


class TmdbImageLookup(ImageLookup):
    """
    Poster lookup against The Movie Database search API.

    GUARANTEES:
    ===========
    1. Uses the first search result only
    2. Timeouts, transport errors, non-200 responses and malformed JSON
       all resolve to a LookupResult with a failure status
    """

    def __init__(
        self,
        config: Optional[DecorationConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._config = config or DecorationConfig()
        self._transport = transport

    async def fetch_image(self, title: str, media_kind: MediaKind) -> Optional[str]:
        result = await self.lookup(title, media_kind)
        return result.url

    async def lookup(self, title: str, media_kind: MediaKind) -> LookupResult:
        """Search for a title and return the outcome, never raising."""
        if not self._config.enabled or not self._config.api_key:
            return LookupResult(title=title, media_kind=media_kind, status=LookupStatus.DISABLED)

        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout_seconds,
                transport=self._transport
            ) as client:
                response = await client.get(
                    f"{self._config.base_url}/search/{media_kind.search_type}",
                    params={
                        'api_key': self._config.api_key,
                        'query': title,
                        'page': 1,
                    }
                )

            if response.status_code != 200:
                return LookupResult(
                    title=title,
                    media_kind=media_kind,
                    status=LookupStatus.HTTP_ERROR,
                    http_status=response.status_code,
                    error_message=f"HTTP {response.status_code}"
                )

            return self._parse(title, media_kind, response)

        except httpx.TimeoutException:
            return LookupResult(
                title=title,
                media_kind=media_kind,
                status=LookupStatus.TIMEOUT,
                error_message=f"Timeout after {self._config.timeout_seconds}s"
            )

        except httpx.HTTPError as e:
            return LookupResult(
                title=title,
                media_kind=media_kind,
                status=LookupStatus.NETWORK_ERROR,
                error_message=str(e)
            )

    def _parse(self, title: str, media_kind: MediaKind, response: httpx.Response) -> LookupResult:
        try:
            payload = response.json()
            results = payload.get('results') or []
            first = results[0] if results else None
        except (ValueError, AttributeError, TypeError) as e:
            return LookupResult(
                title=title,
                media_kind=media_kind,
                status=LookupStatus.PARSE_ERROR,
                http_status=response.status_code,
                error_message=str(e)
            )

        if first is None:
            return LookupResult(title=title, media_kind=media_kind, status=LookupStatus.NO_RESULTS)

        poster_path = first.get('poster_path') if isinstance(first, dict) else None
        if not poster_path:
            return LookupResult(title=title, media_kind=media_kind, status=LookupStatus.NO_IMAGE)

        return LookupResult(
            title=title,
            media_kind=media_kind,
            status=LookupStatus.SUCCESS,
            url=f"{self._config.image_base_url}{poster_path}",
            http_status=response.status_code
        )


def create_image_lookup(config: Optional[DecorationConfig] = None) -> ImageLookup:
    """Pick the lookup implementation for the given configuration."""
    config = config or DecorationConfig()
    if config.enabled and config.api_key:
        return TmdbImageLookup(config)
    return NullImageLookup()
