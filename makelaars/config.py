"""Configuration for the Funda makelaar ranking tool."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from dotenv import find_dotenv, load_dotenv


class ConfigurationError(RuntimeError):
    """Raised when the API credentials cannot be resolved."""


@dataclass(frozen=True)
class FetchConfig:
    """Credentials needed to talk to the Funda partner API."""

    api_key: str
    base_url: str


@dataclass(frozen=True)
class Query:
    """A search query together with the title of its report."""

    title: str
    path: str


DEFAULT_QUERIES: List[Query] = [
    Query(title="TOP 10 MAKELAARS IN AMSTERDAM", path="/amsterdam"),
    Query(title="TOP 10 MAKELAARS IN AMSTERDAM WITH GARDEN", path="/amsterdam/tuin"),
]

# Search fragment that marks a query as garden-filtered.
GARDEN_MARKER = "tuin"

# Environment variables holding the API credentials.
API_KEY_ENV = "FUNDA_APIKEY"
BASE_URL_ENV = "FUNDA_BASEURL"

# Amount of listings requested per page.
DEFAULT_PAGE_SIZE = 25

# Default timeout (in seconds) for HTTP requests.
DEFAULT_TIMEOUT = 30

# Seconds between consecutive requests; the API allows 100 requests per minute.
DEFAULT_DELAY_BETWEEN_REQUESTS = 0.6

# Seconds to pause after a failed request.
DEFAULT_FAILURE_DELAY = 5.0

# Number of brokerages shown in each ranking.
TOP_N = 10


def load_fetch_config(
    env_file: Optional[Path | str] = None,
    *,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
) -> FetchConfig:
    """Resolves the API credentials.

    Explicit arguments win over the environment. Values from ``env_file`` (or a
    ``.env`` file found from the working directory) never override variables
    that are already set.
    """

    load_dotenv(env_file or find_dotenv(usecwd=True))
    api_key = api_key or os.getenv(API_KEY_ENV, "").strip()
    base_url = base_url or os.getenv(BASE_URL_ENV, "").strip()
    if not api_key:
        raise ConfigurationError(f"{API_KEY_ENV} is not set")
    if not base_url:
        raise ConfigurationError(f"{BASE_URL_ENV} is not set")
    return FetchConfig(api_key=api_key, base_url=base_url)
