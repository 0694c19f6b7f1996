"""Core value types for the ranking engine.

Participant, MatchRecord and Pool are plain mutable dataclasses. The engine
only ever mutates rating-related fields of participants that already exist;
creation happens once, when the host builds the pool.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Iterator
from dataclasses import asdict, dataclass, field
from typing import Any

INITIAL_ELO = 1200

WIN = "WIN"
LOSS = "LOSS"
_RESULTS = (WIN, LOSS)


class StaleReferenceError(KeyError):
    """Raised when a participant id is not present in the pool."""

    def __init__(self, participant_id: str):
        super().__init__(participant_id)
        self.participant_id = participant_id

    def __str__(self) -> str:
        return f"participant not in pool: {self.participant_id!r}"


@dataclass
class MatchRecord:
    """One outcome from a participant's own perspective.

    Attributes:
        timestamp: Milliseconds since the epoch.
        opponent_id: Identifier of the other side.
        opponent_name: Display name of the other side.
        opponent_elo: Opponent's rating immediately before the match.
        result: WIN or LOSS.
        elo_change: Signed delta applied to this participant.
        new_elo: This participant's rating after the match.
    """

    timestamp: int
    opponent_id: str
    opponent_name: str
    opponent_elo: float
    result: str
    elo_change: float
    new_elo: float

    def __post_init__(self) -> None:
        if self.result not in _RESULTS:
            raise ValueError(f"result must be WIN or LOSS, got {self.result!r}")

    @property
    def elo_before(self) -> float:
        """Rating this participant held going into the match."""
        return self.new_elo - self.elo_change

    @property
    def won(self) -> bool:
        return self.result == WIN

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict suitable for JSON."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MatchRecord:
        return cls(
            timestamp=int(data["timestamp"]),
            opponent_id=str(data["opponent_id"]),
            opponent_name=str(data.get("opponent_name", "")),
            opponent_elo=data["opponent_elo"],
            result=data["result"],
            elo_change=data["elo_change"],
            new_elo=data["new_elo"],
        )


@dataclass
class Participant:
    """A rankable item and its rating state.

    A participant with ``legacy=True`` has matches recorded before the
    per-match ledger existed, so ``history`` covers only the matches
    judged since. With no history at all, trajectory-based analytics fall
    back to the current rating.

    Attributes:
        id: Stable unique identifier.
        name: Display name.
        year: Release/category year, kept as an opaque string.
        elo: Current rating. May be negative; no bound is enforced.
        matches: Total judged matches.
        wins: Judged wins.
        losses: Judged losses.
        history: Chronological MatchRecords.
        star_rating: Optional external prior score (0.5-5.0 stars).
        uri: Optional link back to the source catalogue.
        image_url: Cosmetic image reference; not restored by undo.
        legacy: True when some matches predate the ledger.
    """

    id: str
    name: str
    year: str = ""
    elo: float = INITIAL_ELO
    matches: int = 0
    wins: int = 0
    losses: int = 0
    history: list[MatchRecord] = field(default_factory=list)
    star_rating: float | None = None
    uri: str = ""
    image_url: str | None = None
    legacy: bool = False

    @classmethod
    def new(
        cls,
        id: str,
        name: str,
        year: str = "",
        *,
        star_rating: float | None = None,
        uri: str = "",
        initial_elo: float = INITIAL_ELO,
    ) -> Participant:
        """Create a participant at the initial rating with no matches."""
        return cls(
            id=id,
            name=name,
            year=year,
            elo=initial_elo,
            star_rating=star_rating,
            uri=uri,
        )

    @property
    def has_ledger(self) -> bool:
        """Whether analytics can rely on ``history``."""
        return not self.legacy

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict suitable for JSON.

        Legacy participants that have not been judged since are written
        without a ``history`` key, matching the stored pre-ledger shape.
        Once they gain records the history is always written.
        """
        data = asdict(self)
        data.pop("legacy")
        if self.legacy and not self.history:
            data.pop("history")
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Participant:
        """Build a participant from a stored dict.

        Records with more matches than ledger entries (including those with
        no ``history`` key at all) are treated as legacy participants.
        """
        matches = int(data.get("matches", 0))
        history = [MatchRecord.from_dict(r) for r in data.get("history") or []]
        legacy = matches > len(history)
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            year=str(data.get("year", "")),
            elo=data.get("elo", INITIAL_ELO),
            matches=matches,
            wins=int(data.get("wins", 0)),
            losses=int(data.get("losses", 0)),
            history=history,
            star_rating=data.get("star_rating"),
            uri=data.get("uri", "") or "",
            image_url=data.get("image_url"),
            legacy=legacy,
        )


class Pool:
    """Ordered collection of participants with unique ids."""

    def __init__(self, participants: Iterable[Participant] = ()):
        self._participants: list[Participant] = list(participants)
        self._index: dict[str, int] = {}
        for i, p in enumerate(self._participants):
            if p.id in self._index:
                raise ValueError(f"duplicate participant id: {p.id!r}")
            self._index[p.id] = i

    def __len__(self) -> int:
        return len(self._participants)

    def __iter__(self) -> Iterator[Participant]:
        return iter(self._participants)

    def __getitem__(self, index: int) -> Participant:
        return self._participants[index]

    def __contains__(self, participant_id: object) -> bool:
        return participant_id in self._index

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Pool):
            return NotImplemented
        return self._participants == other._participants

    def __repr__(self) -> str:
        return f"Pool({len(self._participants)} participants)"

    def ids(self) -> list[str]:
        return [p.id for p in self._participants]

    def index_of(self, participant_id: str) -> int:
        """Return the position of a participant.

        Raises:
            StaleReferenceError: If the id is not in the pool.
        """
        try:
            return self._index[participant_id]
        except KeyError:
            raise StaleReferenceError(participant_id) from None

    def get(self, participant_id: str) -> Participant:
        """Return the participant with the given id.

        Raises:
            StaleReferenceError: If the id is not in the pool.
        """
        return self._participants[self.index_of(participant_id)]

    def replace(self, participant: Participant) -> None:
        """Swap in a new value for the participant with the same id."""
        self._participants[self.index_of(participant.id)] = participant

    def copy(self) -> Pool:
        """Return a deep copy; ledgers are not shared with the original."""
        return Pool(copy.deepcopy(self._participants))

    def to_dict(self) -> dict[str, Any]:
        return {"participants": [p.to_dict() for p in self._participants]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Pool:
        return cls(Participant.from_dict(p) for p in data.get("participants", []))
