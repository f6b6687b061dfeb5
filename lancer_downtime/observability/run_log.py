"""
Run Log system for downtime event tracking.

Captures every deterministic event (dice draws, resolved checks, recorded
downtime actions, marker changes) so a session can be inspected after the
fact and its draws replayed.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional
import json
import logging

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Types of events that can be logged."""

    ROLL = "roll"  # Dice draw
    CHECK = "check"  # Resolved check (confirmed + potential)
    ACTION = "action"  # Recorded downtime action
    MARKER = "marker"  # Timeline marker change
    CUSTOM = "custom"  # Custom event


@dataclass
class LogEvent:
    """Base class for all logged events."""

    # Subclasses set the correct value in __post_init__
    event_type: EventType = EventType.CUSTOM
    timestamp: datetime = field(default_factory=datetime.now)
    sequence_number: int = 0
    context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp.isoformat(),
            "sequence_number": self.sequence_number,
            "context": self.context,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LogEvent":
        """Create from dictionary."""
        return cls(
            event_type=EventType(data["event_type"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            sequence_number=data.get("sequence_number", 0),
            context=data.get("context", {}),
        )

    def __str__(self) -> str:
        return f"[{self.sequence_number}] {self.event_type.value.upper()} {self.context}"


@dataclass
class RollEvent(LogEvent):
    """A dice draw event."""

    notation: str = ""  # e.g., "3d6", "1d20"
    rolls: list[int] = field(default_factory=list)
    modifier: int = 0
    total: int = 0
    reason: str = ""

    def __post_init__(self):
        self.event_type = EventType.ROLL

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base.update(
            {
                "notation": self.notation,
                "rolls": self.rolls,
                "modifier": self.modifier,
                "total": self.total,
                "reason": self.reason,
            }
        )
        return base

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RollEvent":
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            sequence_number=data.get("sequence_number", 0),
            context=data.get("context", {}),
            notation=data.get("notation", ""),
            rolls=data.get("rolls", []),
            modifier=data.get("modifier", 0),
            total=data.get("total", 0),
            reason=data.get("reason", ""),
        )

    def __str__(self) -> str:
        if self.modifier > 0:
            return f"[{self.sequence_number}] ROLL {self.notation}: {self.rolls} + {self.modifier} = {self.total} ({self.reason})"
        elif self.modifier < 0:
            return f"[{self.sequence_number}] ROLL {self.notation}: {self.rolls} - {abs(self.modifier)} = {self.total} ({self.reason})"
        return f"[{self.sequence_number}] ROLL {self.notation}: {self.rolls} = {self.total} ({self.reason})"


@dataclass
class CheckEvent(LogEvent):
    """A resolved check, with both confirmed and potential outcomes."""

    kind: str = ""
    formula: str = ""
    total: int = 0
    outcome: str = ""
    potential_formula: Optional[str] = None
    potential_total: Optional[int] = None
    potential_outcome: Optional[str] = None

    def __post_init__(self):
        self.event_type = EventType.CHECK

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base.update(
            {
                "kind": self.kind,
                "formula": self.formula,
                "total": self.total,
                "outcome": self.outcome,
                "potential_formula": self.potential_formula,
                "potential_total": self.potential_total,
                "potential_outcome": self.potential_outcome,
            }
        )
        return base

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CheckEvent":
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            sequence_number=data.get("sequence_number", 0),
            context=data.get("context", {}),
            kind=data.get("kind", ""),
            formula=data.get("formula", ""),
            total=data.get("total", 0),
            outcome=data.get("outcome", ""),
            potential_formula=data.get("potential_formula"),
            potential_total=data.get("potential_total"),
            potential_outcome=data.get("potential_outcome"),
        )

    def __str__(self) -> str:
        line = f"[{self.sequence_number}] CHECK {self.formula} = {self.total} -> {self.outcome}"
        if self.potential_outcome is not None:
            line += f" (if approved: {self.potential_formula} = {self.potential_total} -> {self.potential_outcome})"
        return line


@dataclass
class ActionEvent(LogEvent):
    """A downtime action recorded against a character."""

    character_id: str = ""
    action_id: str = ""
    action_name: str = ""
    outcome: Optional[str] = None
    marker_id: Optional[str] = None

    def __post_init__(self):
        self.event_type = EventType.ACTION

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base.update(
            {
                "character_id": self.character_id,
                "action_id": self.action_id,
                "action_name": self.action_name,
                "outcome": self.outcome,
                "marker_id": self.marker_id,
            }
        )
        return base

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActionEvent":
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            sequence_number=data.get("sequence_number", 0),
            context=data.get("context", {}),
            character_id=data.get("character_id", ""),
            action_id=data.get("action_id", ""),
            action_name=data.get("action_name", ""),
            outcome=data.get("outcome"),
            marker_id=data.get("marker_id"),
        )

    def __str__(self) -> str:
        outcome = self.outcome or "no roll"
        return f"[{self.sequence_number}] ACTION {self.character_id}: {self.action_name} ({outcome})"


@dataclass
class MarkerEvent(LogEvent):
    """A change to the marker timeline."""

    marker_id: str = ""
    change: str = ""  # created, updated, deleted, activated, reordered
    title: str = ""

    def __post_init__(self):
        self.event_type = EventType.MARKER

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base.update(
            {
                "marker_id": self.marker_id,
                "change": self.change,
                "title": self.title,
            }
        )
        return base

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MarkerEvent":
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            sequence_number=data.get("sequence_number", 0),
            context=data.get("context", {}),
            marker_id=data.get("marker_id", ""),
            change=data.get("change", ""),
            title=data.get("title", ""),
        )

    def __str__(self) -> str:
        return f"[{self.sequence_number}] MARKER {self.change} {self.marker_id} ({self.title})"


_EVENT_CLASSES: dict[EventType, type[LogEvent]] = {
    EventType.ROLL: RollEvent,
    EventType.CHECK: CheckEvent,
    EventType.ACTION: ActionEvent,
    EventType.MARKER: MarkerEvent,
}


class RunLog:
    """
    Central run log for all tracker events.

    Singleton pattern - use get_run_log() to access.
    """

    _instance: Optional["RunLog"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._initialized = True
        self._events: list[LogEvent] = []
        self._sequence: int = 0
        self._seed: Optional[int] = None
        self._session_start: datetime = datetime.now()

    def reset(self) -> None:
        """Reset the log for a new session."""
        self._events = []
        self._sequence = 0
        self._seed = None
        self._session_start = datetime.now()
        logger.info("RunLog reset")

    def set_seed(self, seed: int) -> None:
        """Record the RNG seed used for this session."""
        self._seed = seed
        logger.info(f"RunLog seed set: {seed}")

    def get_seed(self) -> Optional[int]:
        return self._seed

    def _log_event(self, event: LogEvent) -> None:
        self._sequence += 1
        event.sequence_number = self._sequence
        self._events.append(event)

    def log_roll(
        self,
        notation: str,
        rolls: list[int],
        modifier: int,
        total: int,
        reason: str = "",
        context: Optional[dict[str, Any]] = None,
    ) -> RollEvent:
        """Log a dice draw."""
        event = RollEvent(
            notation=notation,
            rolls=rolls,
            modifier=modifier,
            total=total,
            reason=reason,
            context=context or {},
        )
        self._log_event(event)
        return event

    def log_check(
        self,
        kind: str,
        formula: str,
        total: int,
        outcome: str,
        potential_formula: Optional[str] = None,
        potential_total: Optional[int] = None,
        potential_outcome: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> CheckEvent:
        """Log a resolved check."""
        event = CheckEvent(
            kind=kind,
            formula=formula,
            total=total,
            outcome=outcome,
            potential_formula=potential_formula,
            potential_total=potential_total,
            potential_outcome=potential_outcome,
            context=context or {},
        )
        self._log_event(event)
        return event

    def log_action(
        self,
        character_id: str,
        action_id: str,
        action_name: str,
        outcome: Optional[str] = None,
        marker_id: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> ActionEvent:
        """Log a recorded downtime action."""
        event = ActionEvent(
            character_id=character_id,
            action_id=action_id,
            action_name=action_name,
            outcome=outcome,
            marker_id=marker_id,
            context=context or {},
        )
        self._log_event(event)
        return event

    def log_marker(
        self,
        marker_id: str,
        change: str,
        title: str = "",
        context: Optional[dict[str, Any]] = None,
    ) -> MarkerEvent:
        """Log a marker timeline change."""
        event = MarkerEvent(
            marker_id=marker_id,
            change=change,
            title=title,
            context=context or {},
        )
        self._log_event(event)
        return event

    def log_custom(
        self,
        event_name: str,
        details: dict[str, Any],
    ) -> LogEvent:
        """Log a custom event."""
        event = LogEvent(
            event_type=EventType.CUSTOM,
            context={"event_name": event_name, **details},
        )
        self._log_event(event)
        return event

    def get_events(
        self,
        event_type: Optional[EventType] = None,
        since_sequence: int = 0,
    ) -> list[LogEvent]:
        """
        Get logged events.

        Args:
            event_type: Filter by event type (None = all)
            since_sequence: Only events after this sequence number

        Returns:
            List of events
        """
        events = [e for e in self._events if e.sequence_number > since_sequence]
        if event_type:
            events = [e for e in events if e.event_type == event_type]
        return events

    def get_rolls(self) -> list[RollEvent]:
        return [e for e in self._events if isinstance(e, RollEvent)]

    def get_checks(self) -> list[CheckEvent]:
        return [e for e in self._events if isinstance(e, CheckEvent)]

    def get_actions(self) -> list[ActionEvent]:
        return [e for e in self._events if isinstance(e, ActionEvent)]

    def get_roll_stream(self) -> list[dict[str, Any]]:
        """
        Get the roll stream for replay.

        Returns a list of {notation, rolls, modifier, total, reason} for each
        draw, in the order they were made.
        """
        return [
            {
                "notation": e.notation,
                "rolls": e.rolls,
                "modifier": e.modifier,
                "total": e.total,
                "reason": e.reason,
            }
            for e in self.get_rolls()
        ]

    def get_event_count(self) -> int:
        return len(self._events)

    def get_summary(self) -> dict[str, Any]:
        """Get a summary of the run log."""
        return {
            "session_start": self._session_start.isoformat(),
            "seed": self._seed,
            "total_events": len(self._events),
            "rolls": len(self.get_rolls()),
            "checks": len(self.get_checks()),
            "actions": len(self.get_actions()),
            "last_sequence": self._sequence,
        }

    def to_dict(self) -> dict[str, Any]:
        """Serialize the entire log to a dictionary."""
        return {
            "session_start": self._session_start.isoformat(),
            "seed": self._seed,
            "sequence": self._sequence,
            "events": [e.to_dict() for e in self._events],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def save(self, filepath: str) -> None:
        """Save the log to a file."""
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(self.to_json())
        logger.info(f"RunLog saved to {filepath}")

    @classmethod
    def load(cls, filepath: str) -> "RunLog":
        """Load a log from a file, replacing the current contents."""
        with open(filepath, "r", encoding="utf-8") as f:
            data = json.load(f)

        log = get_run_log()
        log.reset()
        log._session_start = datetime.fromisoformat(data["session_start"])
        log._seed = data.get("seed")
        log._sequence = data.get("sequence", 0)

        for event_data in data.get("events", []):
            event_type = EventType(event_data["event_type"])
            event_cls = _EVENT_CLASSES.get(event_type, LogEvent)
            log._events.append(event_cls.from_dict(event_data))

        logger.info(f"RunLog loaded from {filepath}: {len(log._events)} events")
        return log

    def format_log(
        self,
        event_types: Optional[list[EventType]] = None,
        max_events: Optional[int] = None,
    ) -> str:
        """
        Format the log as a human-readable string.

        Args:
            event_types: Filter by event types (None = all)
            max_events: Maximum number of events to include (most recent)

        Returns:
            Formatted log string
        """
        lines = [
            "=== Run Log ===",
            f"Session: {self._session_start.isoformat()}",
            f"Seed: {self._seed if self._seed is not None else 'not set'}",
            f"Total Events: {len(self._events)}",
            "",
        ]

        events = self._events
        if event_types:
            events = [e for e in events if e.event_type in event_types]
        if max_events:
            events = events[-max_events:]

        for event in events:
            lines.append(str(event))

        return "\n".join(lines)


# Singleton access
_run_log: Optional[RunLog] = None


def get_run_log() -> RunLog:
    """Get the global RunLog instance."""
    global _run_log
    if _run_log is None:
        _run_log = RunLog()
    return _run_log


def reset_run_log() -> RunLog:
    """Reset and return the global RunLog instance."""
    log = get_run_log()
    log.reset()
    return log
