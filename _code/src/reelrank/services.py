"""Interfaces for the engine's external collaborators.

The engine exchanges values with its host in memory only. Storage, image
lookup and commentary are supplied by the host through these Protocols;
none of them can influence ratings, pairing or analytics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from reelrank.models import Participant, Pool


@runtime_checkable
class PoolStore(Protocol):
    """Host-side persistence for the pool."""

    def load(self) -> Pool:
        """Return the stored pool."""
        ...

    def save(self, pool: Pool) -> None:
        """Persist the pool returned after a mutation."""
        ...


@runtime_checkable
class ImageLookup(Protocol):
    """Resolves a display image for a participant."""

    def lookup(self, participant_id: str, name: str, year: str) -> str | None:
        """Return an opaque image reference, or None if nothing was found."""
        ...


@dataclass
class Vibe:
    """Qualitative read on one side of a comparison."""

    vibe: str = ""
    strengths: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Vibe:
        if not isinstance(data, dict):
            return cls()
        strengths = data.get("strengths") or []
        return cls(
            vibe=str(data.get("vibe", "")),
            strengths=[str(s) for s in strengths if s],
        )


@dataclass
class ComparisonInsight:
    """Display-only commentary on a pair."""

    first: Vibe = field(default_factory=Vibe)
    second: Vibe = field(default_factory=Vibe)
    comparison: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ComparisonInsight:
        """Parse the ``movie1`` / ``movie2`` / ``comparison`` response shape."""
        return cls(
            first=Vibe.from_dict(data.get("movie1")),
            second=Vibe.from_dict(data.get("movie2")),
            comparison=str(data.get("comparison", "")),
        )


@runtime_checkable
class CommentaryService(Protocol):
    """Generates qualitative text about two participants."""

    def compare(self, a: Participant, b: Participant) -> ComparisonInsight | None:
        """Return commentary, or None when the service has nothing to say."""
        ...
