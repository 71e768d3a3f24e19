"""Runs both search passes and prints the makelaar rankings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, TextIO

from .config import DEFAULT_QUERIES, TOP_N, FetchConfig, Query
from .reporting import RankedEntry, count_by_brokerage, render_ranking
from .scraper import PageFetcher, Paginator

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Report:
    query: Query
    entries: List[RankedEntry]


def run(
    config: FetchConfig,
    *,
    fetcher: Optional[PageFetcher] = None,
    queries: Iterable[Query] = DEFAULT_QUERIES,
    stream: Optional[TextIO] = None,
    max_pages: Optional[int] = None,
    limit: int = TOP_N,
) -> List[Report]:
    """Fetches every query in turn, then renders one ranking per query.

    All passes share the fetcher and therefore its rate limiter. Reports are
    only printed once every pass has finished.
    """

    paginator = Paginator(fetcher or PageFetcher(config), max_pages=max_pages)

    collected = []
    for query in queries:
        LOGGER.info("Collecting listings for %s", query.path)
        collected.append((query, paginator.fetch_all(query.path)))

    reports = []
    for query, listings in collected:
        entries = count_by_brokerage(listings, limit=limit)
        render_ranking(query.title, entries, stream)
        reports.append(Report(query=query, entries=entries))
    return reports
