"""
Allocation matcher: pick the existing reservation a new channel event describes.

Candidates are live reservations on the property with exactly the event's
``(start_date, end_date)``. Overlap or fuzzy matching is deliberately avoided so
back-to-back stays sharing a turnover day are never fused.

Candidates are narrowed by an ordered list of strategies. Each returns a unique
match, no match (try the next strategy) or ambiguous (stop and send the event
to the inbox). If every strategy passes on a non-empty candidate set, the
result is ambiguous: the matcher never guesses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from sqlalchemy.engine import Connection

from sync_calendars.db.readers.reservations import find_exact_date_candidates


class MatchOutcome(str, Enum):
    UNIQUE = "unique"
    NO_MATCH = "no_match"
    AMBIGUOUS = "ambiguous"


@dataclass(frozen=True)
class Candidate:
    id: int
    room_id: Optional[int]
    category_id: Optional[int]
    is_soft_hold: bool = False
    hold_status: Optional[str] = None

    @classmethod
    def from_row(cls, row: Any) -> "Candidate":
        return cls(
            id=row.id,
            room_id=row.room_id,
            category_id=row.category_id,
            is_soft_hold=bool(row.is_soft_hold),
            hold_status=row.hold_status,
        )


@dataclass(frozen=True)
class AllocationRequest:
    property_id: int
    start_date: date
    end_date: date
    uid: Optional[str] = None
    room_hint: Optional[int] = None
    category_hint: Optional[int] = None


@dataclass(frozen=True)
class MatchResult:
    outcome: MatchOutcome
    candidate: Optional[Candidate] = None
    strategy: Optional[str] = None
    candidate_ids: tuple[int, ...] = field(default_factory=tuple)


Strategy = Callable[[AllocationRequest, Sequence[Candidate]], MatchResult]


def _narrow(name: str, matches: list[Candidate]) -> MatchResult:
    if len(matches) == 1:
        return MatchResult(MatchOutcome.UNIQUE, matches[0], name, (matches[0].id,))
    if len(matches) > 1:
        return MatchResult(MatchOutcome.AMBIGUOUS, None, name, tuple(c.id for c in matches))
    return MatchResult(MatchOutcome.NO_MATCH, strategy=name)


def sole_candidate(request: AllocationRequest, candidates: Sequence[Candidate]) -> MatchResult:
    """Exactly one candidate with these dates: it is the stay."""
    if len(candidates) == 1:
        return MatchResult(MatchOutcome.UNIQUE, candidates[0], "sole_candidate", (candidates[0].id,))
    return MatchResult(MatchOutcome.NO_MATCH, strategy="sole_candidate")


def exact_room(request: AllocationRequest, candidates: Sequence[Candidate]) -> MatchResult:
    if request.room_hint is None:
        return MatchResult(MatchOutcome.NO_MATCH, strategy="exact_room")
    return _narrow("exact_room", [c for c in candidates if c.room_id == request.room_hint])


def exact_category(request: AllocationRequest, candidates: Sequence[Candidate]) -> MatchResult:
    """
    Narrow by category.

    Category-scoped feeds hint their category; room-scoped feeds hint the
    category of their room, which only matters once ``exact_room`` found nothing.
    """
    if request.category_hint is None:
        return MatchResult(MatchOutcome.NO_MATCH, strategy="exact_category")
    return _narrow(
        "exact_category", [c for c in candidates if c.category_id == request.category_hint]
    )


DEFAULT_STRATEGIES: tuple[Strategy, ...] = (sole_candidate, exact_room, exact_category)


def choose(
    request: AllocationRequest,
    candidates: Sequence[Candidate],
    strategies: Sequence[Strategy] = DEFAULT_STRATEGIES,
) -> MatchResult:
    """
    Run the strategies over an already-loaded candidate set.

    Returns:
        MatchResult: NO_MATCH only when there are no candidates at all
    """
    if not candidates:
        return MatchResult(MatchOutcome.NO_MATCH)

    for strategy in strategies:
        result = strategy(request, candidates)
        if result.outcome is not MatchOutcome.NO_MATCH:
            return result

    return MatchResult(
        MatchOutcome.AMBIGUOUS, strategy="exhausted", candidate_ids=tuple(c.id for c in candidates)
    )


def match_allocation(
    conn: Connection,
    request: AllocationRequest,
    strategies: Sequence[Strategy] = DEFAULT_STRATEGIES,
) -> MatchResult:
    """
    Load exact-date candidates for the request and choose among them.

    Must run inside the property lock so that the chosen candidate cannot be
    claimed by a concurrent run before it is linked.
    """
    rows = find_exact_date_candidates(
        conn, request.property_id, request.start_date, request.end_date, request.uid
    )
    return choose(request, [Candidate.from_row(row) for row in rows], strategies)
