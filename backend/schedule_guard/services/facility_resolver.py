"""
Facility Fuzzy Resolver

Maps the free-text facility column of an import row onto the organization's
facility registry:
1. blank input                           -> NONE
2. case-insensitive, trimmed equality    -> EXACT
3. closest name within MAX_FUZZY_DISTANCE edits -> FUZZY (registry order breaks ties)
4. anything further away                 -> NONE, left for a human to assign
"""

from enum import Enum
from typing import Optional, Sequence

from pydantic import BaseModel

from schedule_guard.models.facility import Facility

MAX_FUZZY_DISTANCE = 2


class FacilityMatchKind(str, Enum):
    EXACT = "EXACT"
    FUZZY = "FUZZY"
    NONE = "NONE"


class FacilitySuggestion(BaseModel):
    facility_id: int
    name: str


class FacilityMatch(BaseModel):
    kind: FacilityMatchKind
    suggestion: Optional[FacilitySuggestion] = None
    edit_distance: Optional[int] = None


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance with unit-cost insert, delete and substitute."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(
                min(
                    previous[j] + 1,  # deletion
                    current[j - 1] + 1,  # insertion
                    previous[j - 1] + cost,  # substitution
                )
            )
        previous = current
    return previous[-1]


def _normalize(name: str) -> str:
    return name.strip().lower()


def resolve_facility(free_text: Optional[str], facilities: Sequence[Facility]) -> FacilityMatch:
    if not free_text or not free_text.strip():
        return FacilityMatch(kind=FacilityMatchKind.NONE)

    wanted = _normalize(free_text)

    for facility in facilities:
        if _normalize(facility.name) == wanted:
            return FacilityMatch(
                kind=FacilityMatchKind.EXACT,
                suggestion=FacilitySuggestion(facility_id=facility.id, name=facility.name),
            )

    best: Optional[Facility] = None
    best_distance: Optional[int] = None
    for facility in facilities:
        distance = edit_distance(wanted, _normalize(facility.name))
        # strict < keeps the first facility on ties
        if distance <= MAX_FUZZY_DISTANCE and (best_distance is None or distance < best_distance):
            best, best_distance = facility, distance

    if best is None:
        return FacilityMatch(kind=FacilityMatchKind.NONE)

    return FacilityMatch(
        kind=FacilityMatchKind.FUZZY,
        suggestion=FacilitySuggestion(facility_id=best.id, name=best.name),
        edit_distance=best_distance,
    )
