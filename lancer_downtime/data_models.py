"""
Shared data structures for the Lancer Downtime Tracker.

These structures are used by the roll-resolution engine, the downtime
action catalogue, markers and history alike. Every random draw in the
project goes through DiceRoller (or another object with the same draw()
signature) so that rolls are reproducible and logged.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Protocol
import logging
import random


logger = logging.getLogger(__name__)


# =============================================================================
# ERRORS
# =============================================================================


class DowntimeError(Exception):
    """Base class for all tracker errors."""
    pass


class InvalidCheckError(DowntimeError, ValueError):
    """Raised when a check specification is invalid. No dice are drawn."""
    pass


class DrawSourceError(DowntimeError):
    """Raised when a draw source cannot supply the requested batch."""
    pass


# =============================================================================
# ENUMS
# =============================================================================


class CheckKind(str, Enum):
    """The two kinds of randomized check."""
    THRESHOLD_ROLL = "pilot-check"   # LANCER Core: 1d20 + accuracy/difficulty d6
    SUCCESS_POOL = "dice-pool"       # Far Field: Xd6, count 5s and 6s


class OutcomeTier(str, Enum):
    """Outcome tiers shared by both check kinds, best first."""
    TRIUMPH = "triumph"
    SUCCESS = "success"
    CONFLICT = "conflict"
    DISASTER = "disaster"

    @property
    def rank(self) -> int:
        """Ordering key: higher is better."""
        return _TIER_RANKS[self]

    @property
    def is_success(self) -> bool:
        return self in (OutcomeTier.TRIUMPH, OutcomeTier.SUCCESS)


_TIER_RANKS = {
    OutcomeTier.TRIUMPH: 3,
    OutcomeTier.SUCCESS: 2,
    OutcomeTier.CONFLICT: 1,
    OutcomeTier.DISASTER: 0,
}


class ConditionalStatus(str, Enum):
    """Referee decision on a conditional modifier."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DowntimePhase(str, Enum):
    """Narrative phases in which downtime actions are available."""
    TRANSIT = "transit"
    BETWEEN_MISSIONS = "between-missions"
    SHORE_LEAVE = "shore-leave"


class ActionCategory(str, Enum):
    """Downtime action categories."""
    REST = "rest"
    MAINTENANCE = "maintenance"
    DEVELOPMENT = "development"
    SOCIAL = "social"
    LOGISTICS = "logistics"
    PERSONAL = "personal"
    ACQUISITION = "acquisition"


# =============================================================================
# CHARACTERS
# =============================================================================


@dataclass
class Aspect:
    """A Far Field aspect track (e.g. an Expertise or a piece of Equipment)."""
    name: str
    aspect_type: str
    track: int = 0
    marked: int = 0

    @property
    def available(self) -> int:
        """Unmarked boxes left on the track."""
        return self.track - self.marked


@dataclass
class DowntimeCharacter:
    """A pilot taking part in downtime."""
    character_id: str
    name: str
    aspects: list[Aspect] = field(default_factory=list)
    far_field: bool = False

    @property
    def has_far_field_data(self) -> bool:
        """Whether this character uses Far Field rules."""
        return self.far_field or bool(self.aspects)


# =============================================================================
# DICE
# =============================================================================


class DrawSource(Protocol):
    """Anything that can supply a batch of uniform die faces in one call."""

    def draw(self, sides: int, count: int, reason: str = "") -> "DiceResult":
        ...


class DiceRoller:
    """
    Centralized randomization interface.
    All dice rolls must go through this class for reproducibility and logging.
    """

    _instance = None
    _seed: Optional[int] = None
    _roll_log: list = []

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    def set_seed(cls, seed: int) -> None:
        """Set random seed for reproducibility."""
        cls._seed = seed
        random.seed(seed)
        _get_run_log().set_seed(seed)

    @classmethod
    def get_seed(cls) -> Optional[int]:
        return cls._seed

    @classmethod
    def draw(cls, sides: int, count: int, reason: str = "") -> "DiceResult":
        """
        Draw a batch of die faces in a single atomic call.

        Args:
            sides: Number of faces on each die
            count: Number of dice in the batch (0 yields an empty batch)
            reason: Why this draw is being made (for logging)

        Returns:
            DiceResult whose rolls hold exactly `count` values in [1, sides]
        """
        if sides < 1:
            raise ValueError(f"A die needs at least one face, got {sides}")
        if count < 0:
            raise ValueError(f"Cannot draw a negative number of dice: {count}")

        rolls = [random.randint(1, sides) for _ in range(count)]
        return cls._record(f"{count}d{sides}", rolls, reason)

    @classmethod
    def _record(cls, notation: str, rolls: list[int], reason: str) -> "DiceResult":
        result = DiceResult(
            notation=notation,
            rolls=rolls,
            modifier=0,
            total=sum(rolls),
            reason=reason,
        )
        cls._roll_log.append(result)
        _get_run_log().log_roll(
            notation=notation,
            rolls=list(rolls),
            modifier=0,
            total=result.total,
            reason=reason,
        )
        logger.debug(f"Rolled {result}")
        return result

    @classmethod
    def get_roll_log(cls) -> list:
        """Get the complete roll log for the session."""
        return cls._roll_log.copy()

    @classmethod
    def clear_roll_log(cls) -> None:
        """Clear the roll log."""
        cls._roll_log = []


def _get_run_log():
    """Lazy import to avoid circular deps with the observability package."""
    from lancer_downtime.observability.run_log import get_run_log
    return get_run_log()


@dataclass
class DiceResult:
    """Result of a dice roll with full information."""
    notation: str
    rolls: list[int]
    modifier: int
    total: int
    reason: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "notation": self.notation,
            "rolls": list(self.rolls),
            "modifier": self.modifier,
            "total": self.total,
            "reason": self.reason,
        }

    def __str__(self) -> str:
        if self.modifier > 0:
            return f"{self.notation}: {self.rolls} + {self.modifier} = {self.total}"
        elif self.modifier < 0:
            return f"{self.notation}: {self.rolls} - {abs(self.modifier)} = {self.total}"
        return f"{self.notation}: {self.rolls} = {self.total}"
