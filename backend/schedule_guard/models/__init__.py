from schedule_guard.models.blocker import Blocker, BlockerApplicability, BlockerFields, BlockerKind
from schedule_guard.models.conflict_override import ConflictOverride, EventType
from schedule_guard.models.facility import Facility
from schedule_guard.models.game import Game, GameStatus, HomeAway
from schedule_guard.models.organization import Organization
from schedule_guard.models.practice import Practice
from schedule_guard.models.season import Season
from schedule_guard.models.team import Team

__all__ = [
    "Organization",
    "Team",
    "Season",
    "Facility",
    "Game",
    "GameStatus",
    "HomeAway",
    "Practice",
    "Blocker",
    "BlockerApplicability",
    "BlockerFields",
    "BlockerKind",
    "ConflictOverride",
    "EventType",
]
