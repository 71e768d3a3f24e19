"""Tools for downloading the Funda search results page by page."""

from __future__ import annotations

import enum
import http.client
import json
import logging
import time
import urllib.request
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union

from .config import (
    DEFAULT_FAILURE_DELAY,
    DEFAULT_PAGE_SIZE,
    DEFAULT_TIMEOUT,
    GARDEN_MARKER,
    FetchConfig,
)
from .ratelimit import RateLimiter

LOGGER = logging.getLogger(__name__)


class FetchError(RuntimeError):
    """Base class for failures while retrieving a page."""


class TransportError(FetchError):
    """Raised when the HTTP request does not produce a usable response."""


class DecodeError(FetchError, ValueError):
    """Raised when a response body does not match the expected schema."""


@dataclass(frozen=True)
class Brokerage:
    """The makelaar that placed a listing."""

    id: int
    name: str


@dataclass(frozen=True)
class Listing:
    """A single search result attributed to its brokerage."""

    brokerage: Brokerage
    has_garden: bool


@dataclass(frozen=True)
class RawListing:
    """One record of the API's 'objects' list."""

    makelaar_id: int
    makelaar_naam: str


@dataclass(frozen=True)
class PageResult:
    """Decoded content of one API page."""

    listings: List[RawListing]
    total_pages: int

    @classmethod
    def from_payload(cls, payload: object) -> "PageResult":
        """Builds a page from decoded JSON, matching field names case-insensitively."""

        if not isinstance(payload, dict):
            raise DecodeError("response body is not a JSON object")
        fields = _lower_keys(payload)

        objects = fields.get("objects")
        if objects is None:
            objects = []
        if not isinstance(objects, list):
            raise DecodeError("'objects' is not a list")
        listings = [listing for listing in map(_decode_listing, objects) if listing is not None]

        paging = fields.get("paging")
        if paging is None:
            total_pages = 0
        elif isinstance(paging, dict):
            total_pages = _lower_keys(paging).get("totalpages", 0)
            if not _is_int(total_pages):
                raise DecodeError("'paging.totalPages' is not an integer")
        else:
            raise DecodeError("'paging' is not an object")

        return cls(listings=listings, total_pages=total_pages)


@dataclass(frozen=True)
class FetchFailure:
    """A page that could not be retrieved or decoded."""

    page: int
    reason: str


FetchResult = Union[PageResult, FetchFailure]


class TerminationReason(enum.Enum):
    """Why a pass over a query stopped."""

    EXHAUSTED = "exhausted"
    EMPTY_PAGE = "empty page"
    FETCH_FAILED = "fetch failed"
    PAGE_LIMIT = "page limit"


@dataclass
class PaginationResult:
    """Everything collected during one pass over a query."""

    query: str
    listings: List[Listing] = field(default_factory=list)
    pages_fetched: int = 0
    reason: Optional[TerminationReason] = None

    @property
    def aborted(self) -> bool:
        """True when the pass ended on an empty or failed page."""

        return self.reason in (TerminationReason.EMPTY_PAGE, TerminationReason.FETCH_FAILED)


class PageFetcher:
    """Fetches and decodes single pages of Funda search results."""

    def __init__(
        self,
        config: FetchConfig,
        *,
        rate_limiter: Optional[RateLimiter] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        timeout: int = DEFAULT_TIMEOUT,
        failure_delay: float = DEFAULT_FAILURE_DELAY,
        transport: Optional[Callable[[str], bytes]] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.config = config
        self.rate_limiter = rate_limiter or RateLimiter()
        self.page_size = page_size
        self.timeout = timeout
        self.failure_delay = failure_delay
        self.transport = transport or self._default_transport
        self._sleep = sleep or time.sleep

    # ------------------------------------------------------------------
    # Networking helpers
    # ------------------------------------------------------------------
    def _default_transport(self, url: str) -> bytes:
        """Downloads the raw response from the provided URL."""

        request = urllib.request.Request(
            url,
            headers={"Accept": "application/json"},
            method="GET",
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                return response.read()
        except http.client.HTTPException as exc:
            raise TransportError(f"Invalid HTTP response: {exc!r}") from exc

    def build_url(self, query: str, page: int) -> str:
        return (
            f"{self.config.base_url}{self.config.api_key}"
            f"/?type=koop&zo={query}&page={page}&pagesize={self.page_size}"
        )

    # ------------------------------------------------------------------
    def fetch(self, query: str, page: int) -> FetchResult:
        """Fetches one page, returning a :class:`FetchFailure` instead of raising."""

        if page < 1:
            raise ValueError(f"page must be at least 1, got {page}")

        self.rate_limiter.wait_for_slot()
        url = self.build_url(query, page)
        LOGGER.debug("Fetching page %s of %s", page, query)
        try:
            raw_response = self.transport(url)
            return PageResult.from_payload(json.loads(raw_response.decode("utf-8")))
        except (FetchError, OSError, ValueError, http.client.HTTPException) as exc:
            LOGGER.warning("Error fetching page %s with %s", page, exc)
            if self.failure_delay:
                self._sleep(self.failure_delay)
            return FetchFailure(page=page, reason=str(exc))


class Paginator:
    """Walks all pages of a query until the result set is exhausted."""

    def __init__(self, fetcher: PageFetcher, *, max_pages: Optional[int] = None) -> None:
        self.fetcher = fetcher
        self.max_pages = max_pages

    def paginate(self, query: str) -> PaginationResult:
        """Collects listings page by page and records why the pass stopped.

        A failed page and an empty page both end the pass; the listings
        gathered so far are kept and the failed page is not retried.
        """

        has_garden = GARDEN_MARKER in query
        result = PaginationResult(query=query)
        page = 1
        while True:
            if self.max_pages is not None and page > self.max_pages:
                result.reason = TerminationReason.PAGE_LIMIT
                break
            response = self.fetcher.fetch(query, page)
            if isinstance(response, FetchFailure):
                result.reason = TerminationReason.FETCH_FAILED
                break
            result.pages_fetched += 1
            if not response.listings:
                result.reason = TerminationReason.EMPTY_PAGE
                break
            result.listings.extend(
                Listing(Brokerage(raw.makelaar_id, raw.makelaar_naam), has_garden)
                for raw in response.listings
            )
            if page >= response.total_pages:
                result.reason = TerminationReason.EXHAUSTED
                break
            page += 1

        LOGGER.info(
            "Finished %s after %s pages (%s): %s listings",
            query,
            result.pages_fetched,
            result.reason.value,
            len(result.listings),
        )
        return result

    def fetch_all(self, query: str) -> List[Listing]:
        return self.paginate(query).listings


# ----------------------------------------------------------------------
def _lower_keys(value: Dict[str, object]) -> Dict[str, object]:
    return {str(key).lower(): item for key, item in value.items()}


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _decode_listing(item: object) -> Optional[RawListing]:
    """Decodes one record; null or missing fields fall back to 0 and ""."""

    if not isinstance(item, dict):
        LOGGER.warning("Skipping listing record that is not an object: %r", item)
        return None
    fields = _lower_keys(item)
    makelaar_id = fields.get("makelaarid")
    makelaar_naam = fields.get("makelaarnaam")
    if makelaar_id is None:
        makelaar_id = 0
    if makelaar_naam is None:
        makelaar_naam = ""
    if not _is_int(makelaar_id) or not isinstance(makelaar_naam, str):
        LOGGER.warning("Skipping listing record with invalid makelaar %r / %r", makelaar_id, makelaar_naam)
        return None
    return RawListing(makelaar_id=makelaar_id, makelaar_naam=makelaar_naam)
