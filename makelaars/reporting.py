"""Ranking of brokerages and the console/chart reports built from it."""

from __future__ import annotations

import sys
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, TextIO

from .config import TOP_N
from .scraper import Listing

NAME_WIDTH = 50


class PlottingError(RuntimeError):
    """Raised when generating a plot fails due to missing data."""


@dataclass(frozen=True)
class RankedEntry:
    name: str
    count: int


def count_by_brokerage(listings: Iterable[Listing], limit: int = TOP_N) -> List[RankedEntry]:
    """Counts listings per brokerage name, largest first.

    Brokerages are grouped by name, so different ids sharing a display name
    end up in one entry. Ties keep the order in which names were first seen.
    """

    counts = Counter(listing.brokerage.name for listing in listings)
    return [RankedEntry(name, count) for name, count in counts.most_common(limit)]


def format_entry(rank: int, entry: RankedEntry) -> str:
    name = f"{entry.name:<{NAME_WIDTH}.{NAME_WIDTH}}"
    return f"{rank:>2}. {name} -------> {entry.count} properties"


def render_ranking(
    title: str, entries: Sequence[RankedEntry], stream: Optional[TextIO] = None
) -> None:
    """Writes the titled ranking table to ``stream`` (stdout by default)."""

    stream = stream or sys.stdout
    lines = ["", title, "=" * len(title)]
    lines.extend(format_entry(rank, entry) for rank, entry in enumerate(entries, start=1))
    stream.write("\n".join(lines) + "\n")


def _ensure_matplotlib():
    try:
        import matplotlib.pyplot as plt  # type: ignore
    except ModuleNotFoundError as exc:  # pragma: no cover - optional dependency
        raise ModuleNotFoundError(
            "matplotlib is required to generate charts. Install it with 'pip install matplotlib'."
        ) from exc
    return plt


def plot_top_brokerages(
    title: str,
    entries: Sequence[RankedEntry],
    *,
    output_path: Optional[Path | str] = None,
    show: bool = False,
):
    """Generates a horizontal bar chart with the listing count per brokerage."""

    if not entries:
        raise PlottingError(f"No brokerages to plot for '{title}'.")

    plt = _ensure_matplotlib()

    # Largest bar on top.
    names = [entry.name for entry in reversed(entries)]
    counts = [entry.count for entry in reversed(entries)]

    fig, ax = plt.subplots(figsize=(10, 6))
    ax.barh(names, counts, color="tab:orange")
    ax.set_title(title)
    ax.set_xlabel("Properties")
    ax.grid(True, axis="x", linestyle="--", alpha=0.3)
    for position, count in enumerate(counts):
        ax.annotate(str(count), (count, position), xytext=(3, 0), textcoords="offset points", va="center")

    _save_or_show(fig, output_path, show)


def _save_or_show(fig, output_path: Optional[Path | str], show: bool):
    plt = _ensure_matplotlib()
    if output_path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.tight_layout()
        fig.savefig(output_path, bbox_inches="tight")
    if show:
        plt.show()
    plt.close(fig)
