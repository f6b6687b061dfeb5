"""
Replay system for deterministic check execution.

A ReplayDrawSource hands out previously recorded (or scripted) dice
batches instead of generating new random numbers, so a session's checks
can be re-executed exactly.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence
import json
import logging

from lancer_downtime.data_models import DiceResult, DrawSourceError

logger = logging.getLogger(__name__)


@dataclass
class ReplayDrawSource:
    """
    Draw source backed by a recorded roll stream.

    Each call to draw() consumes exactly one recorded batch. The batch must
    hold `count` faces within [1, sides]; anything else means the replay has
    diverged from the recording and raises DrawSourceError.
    """

    roll_stream: list[dict[str, Any]] = field(default_factory=list)
    seed: Optional[int] = None
    _position: int = field(default=0, init=False, repr=False)

    @classmethod
    def from_batches(cls, *batches: Sequence[int]) -> "ReplayDrawSource":
        """Script a draw source from literal batches, e.g. ([15], [6, 2, 4])."""
        stream = [
            {
                "notation": f"{len(batch)}d?",
                "rolls": list(batch),
                "modifier": 0,
                "total": sum(batch),
                "reason": "scripted",
            }
            for batch in batches
        ]
        return cls(roll_stream=stream)

    @classmethod
    def from_run_log(cls, log_data: dict[str, Any]) -> "ReplayDrawSource":
        """
        Create a replay source from saved run log data.

        Args:
            log_data: Dictionary from RunLog.to_dict() or loaded JSON
        """
        roll_stream = [
            {
                "notation": event.get("notation", ""),
                "rolls": event.get("rolls", []),
                "modifier": event.get("modifier", 0),
                "total": event.get("total", 0),
                "reason": event.get("reason", ""),
            }
            for event in log_data.get("events", [])
            if event.get("event_type") == "roll"
        ]
        return cls(roll_stream=roll_stream, seed=log_data.get("seed"))

    @classmethod
    def load(cls, filepath: str) -> "ReplayDrawSource":
        """Load from a ReplayDrawSource.save() file or a saved RunLog."""
        with open(filepath, "r", encoding="utf-8") as f:
            data = json.load(f)

        if "roll_stream" in data:
            return cls(roll_stream=data.get("roll_stream", []), seed=data.get("seed"))
        return cls.from_run_log(data)

    def save(self, filepath: str) -> None:
        data = {
            "seed": self.seed,
            "roll_stream": self.roll_stream,
        }
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        logger.info(f"Replay stream saved to {filepath}")

    def draw(self, sides: int, count: int, reason: str = "") -> DiceResult:
        """Return the next recorded batch as a DiceResult."""
        if self._position >= len(self.roll_stream):
            raise DrawSourceError(
                f"Replay exhausted at position {self._position}: no batch for {count}d{sides} ({reason})"
            )

        recorded = self.roll_stream[self._position]
        rolls = list(recorded.get("rolls", []))
        if len(rolls) != count:
            raise DrawSourceError(
                f"Replay diverged at position {self._position}: "
                f"expected {count} dice, recorded batch has {len(rolls)}"
            )
        if any(not 1 <= face <= sides for face in rolls):
            raise DrawSourceError(
                f"Replay diverged at position {self._position}: {rolls} out of range for d{sides}"
            )

        self._position += 1
        return DiceResult(
            notation=f"{count}d{sides}",
            rolls=rolls,
            modifier=0,
            total=sum(rolls),
            reason=reason or recorded.get("reason", ""),
        )

    def get_position(self) -> int:
        return self._position

    def get_remaining(self) -> int:
        return max(0, len(self.roll_stream) - self._position)

    def reset(self) -> None:
        """Rewind to the beginning of the stream."""
        self._position = 0

    def __repr__(self) -> str:
        return f"ReplayDrawSource(seed={self.seed}, position={self._position}/{len(self.roll_stream)})"
