"""Tabular ranking views over a pool.

Builds the leaderboard as a pandas DataFrame (rank by rating, with
win/loss summary) and bins ratings into a zero-filled histogram.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from reelrank.models import INITIAL_ELO, Pool

logger = logging.getLogger(__name__)

LEADERBOARD_COLUMNS = [
    "rank",
    "id",
    "name",
    "year",
    "star_rating",
    "elo",
    "delta",
    "matches",
    "wins",
    "losses",
    "win_rate",
]

SORT_FIELDS = ("elo", "name", "year", "matches")


@dataclass
class HistogramBin:
    """Count of participants whose rating falls in ``[start, start + size)``."""

    start: int
    size: int
    count: int

    @property
    def label(self) -> str:
        return str(self.start)


def build_leaderboard(pool: Pool, initial_elo: float = INITIAL_ELO) -> pd.DataFrame:
    """Build the ranked leaderboard.

    Rank is 1-based by rating, highest first; ties keep pool order.

    Args:
        pool: Participants to rank.
        initial_elo: Reference rating for the ``delta`` column.

    Returns:
        DataFrame with LEADERBOARD_COLUMNS, sorted by rank.
    """
    rows = [
        {
            "id": p.id,
            "name": p.name,
            "year": p.year,
            "star_rating": p.star_rating,
            "elo": p.elo,
            "delta": p.elo - initial_elo,
            "matches": p.matches,
            "wins": p.wins,
            "losses": p.losses,
            "win_rate": p.wins * 100 / p.matches if p.matches else 0.0,
        }
        for p in pool
    ]
    if not rows:
        return pd.DataFrame(columns=LEADERBOARD_COLUMNS)

    df = pd.DataFrame(rows)
    df = df.sort_values("elo", ascending=False, kind="stable").reset_index(drop=True)
    df.insert(0, "rank", np.arange(1, len(df) + 1))
    return df[LEADERBOARD_COLUMNS]


def search(frame: pd.DataFrame, term: str) -> pd.DataFrame:
    """Rows whose name contains ``term``, case-insensitively."""
    if not term:
        return frame
    mask = frame["name"].str.contains(term, case=False, regex=False, na=False)
    return frame[mask]


def sort_leaderboard(
    frame: pd.DataFrame, field: str = "elo", descending: bool = True
) -> pd.DataFrame:
    """Re-sort a leaderboard for display without changing its rank column.

    ``name`` sorts case-insensitively and ``year`` numerically, with
    non-numeric years treated as 0.

    Raises:
        ValueError: If ``field`` is not one of SORT_FIELDS.
    """
    if field not in SORT_FIELDS:
        raise ValueError(f"Cannot sort by {field!r}; choose from {SORT_FIELDS}")

    if field == "name":
        key = frame["name"].str.lower()
    elif field == "year":
        key = pd.to_numeric(frame["year"], errors="coerce").fillna(0)
    else:
        key = frame[field]

    order = key.sort_values(ascending=not descending, kind="stable").index
    return frame.loc[order]


def rating_histogram(pool: Pool, bin_size: int = 50) -> list[HistogramBin]:
    """Bin ratings into contiguous, zero-filled buckets.

    Buckets start at ``floor(elo / bin_size) * bin_size`` and run from the
    lowest to the highest occupied bucket. An empty pool yields [].
    """
    if len(pool) == 0:
        return []
    elos = np.array([p.elo for p in pool], dtype=float)
    starts = (np.floor(elos / bin_size) * bin_size).astype(int)
    edges = np.arange(starts.min(), starts.max() + bin_size, bin_size)
    counts = [int(np.count_nonzero(starts == edge)) for edge in edges]
    logger.debug("Histogram of %d ratings into %d bins", len(elos), len(edges))
    return [
        HistogramBin(start=int(edge), size=bin_size, count=count)
        for edge, count in zip(edges, counts)
    ]
