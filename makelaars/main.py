"""Command line interface for the Funda makelaar ranking tool."""

from __future__ import annotations

import argparse
import logging
import re
import sys
from pathlib import Path
from typing import Iterable, List

from .analyzer import Report, run
from .config import (
    DEFAULT_DELAY_BETWEEN_REQUESTS,
    ConfigurationError,
    load_fetch_config,
)
from .ratelimit import RateLimiter
from .reporting import PlottingError, plot_top_brokerages
from .scraper import PageFetcher


def parse_arguments(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Ranks the makelaars with the most properties for sale in Amsterdam on Funda."
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity.",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="dotenv file holding FUNDA_APIKEY and FUNDA_BASEURL.",
    )
    parser.add_argument("--api-key", default=None, help="Funda API key (overrides FUNDA_APIKEY).")
    parser.add_argument("--base-url", default=None, help="Funda API base URL (overrides FUNDA_BASEURL).")
    parser.add_argument(
        "--delay",
        type=float,
        default=DEFAULT_DELAY_BETWEEN_REQUESTS,
        help="Minimum interval in seconds between consecutive requests.",
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        default=None,
        help="Maximum number of pages per query (useful for testing).",
    )
    parser.add_argument(
        "--chart-dir",
        type=Path,
        default=None,
        help="Directory where a bar chart of each ranking is saved.",
    )
    parser.add_argument(
        "--show",
        action="store_true",
        help="Shows the charts on screen (requires a graphical environment).",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)
    if args.delay < 0:
        parser.error("--delay must not be negative")
    if args.max_pages is not None and args.max_pages < 1:
        parser.error("--max-pages must be at least 1")
    return args


def main(argv: Iterable[str] | None = None) -> int:
    args = parse_arguments(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s %(levelname)s %(message)s")
    logging.debug("Arguments: %s", args)

    try:
        config = load_fetch_config(args.env_file, api_key=args.api_key, base_url=args.base_url)
    except ConfigurationError as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    fetcher = PageFetcher(config, rate_limiter=RateLimiter(args.delay))
    reports = run(config, fetcher=fetcher, max_pages=args.max_pages)

    if args.chart_dir or args.show:
        plot_reports(reports, args.chart_dir, show=args.show)

    return 0


def plot_reports(reports: List[Report], chart_dir: Path | None, *, show: bool = False) -> None:
    for report in reports:
        output_path = chart_dir / f"{_slugify(report.query.title)}.png" if chart_dir else None
        try:
            plot_top_brokerages(report.query.title, report.entries, output_path=output_path, show=show)
        except PlottingError as exc:
            logging.warning("Skipping chart: %s", exc)
            continue
        if output_path:
            logging.info("Chart saved to %s", output_path)


def _slugify(title: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
