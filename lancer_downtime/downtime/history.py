"""
Per-character downtime history.

Every executed action is appended to the character's log together with the
full check result, so the roll can be shown again later without being
re-derived. Entries are never edited apart from the referee's decision on
a conditional modifier, which is bookkeeping only.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional
import logging
import uuid

from lancer_downtime.data_models import ConditionalStatus, DowntimeCharacter, OutcomeTier
from lancer_downtime.downtime.actions import DowntimeAction
from lancer_downtime.rolls.check_executor import CheckResult
from lancer_downtime.storage.settings_store import SettingsStore


logger = logging.getLogger(__name__)


CHARACTER_KEY_PREFIX = "downtime."


def character_key(character_id: str) -> str:
    return f"{CHARACTER_KEY_PREFIX}{character_id}"


@dataclass
class HistoryEntry:
    """One recorded downtime action."""
    character_id: str
    action_id: str
    action_name: str
    success: bool = True
    outcome: Optional[OutcomeTier] = None  # None when no roll was made
    notes: str = ""
    marker_id: Optional[str] = None
    check_result: Optional[dict[str, Any]] = None
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    entry_id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])

    def get_check_result(self) -> Optional[CheckResult]:
        """Rebuild the stored CheckResult for roll-detail display."""
        return CheckResult.from_dict(self.check_result) if self.check_result else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.entry_id,
            "character_id": self.character_id,
            "action_id": self.action_id,
            "action_name": self.action_name,
            "timestamp": self.timestamp,
            "marker_id": self.marker_id,
            "success": self.success,
            "outcome": self.outcome.value if self.outcome else None,
            "notes": self.notes,
            "check_result": self.check_result,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryEntry":
        outcome = data.get("outcome")
        return cls(
            entry_id=data["id"],
            character_id=data["character_id"],
            action_id=data["action_id"],
            action_name=data["action_name"],
            timestamp=data["timestamp"],
            marker_id=data.get("marker_id"),
            success=data.get("success", True),
            outcome=OutcomeTier(outcome) if outcome else None,
            notes=data.get("notes", ""),
            check_result=data.get("check_result"),
        )


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO 8601 timestamp into a naive local datetime.

    A trailing "Z" is read as UTC. Offset-aware values are converted to local
    time, so every stored timestamp compares with every other.

    Raises:
        ValueError: value is not an ISO 8601 timestamp
    """
    if not isinstance(value, str):
        raise ValueError(f"Timestamp must be an ISO 8601 string, got {value!r}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"Invalid timestamp: {value!r}") from None
    if moment.tzinfo is not None:
        moment = moment.astimezone().replace(tzinfo=None)
    return moment


def normalize_timestamp(value: str) -> str:
    """The single stored form of a timestamp: naive local ISO 8601."""
    return parse_timestamp(value).isoformat()


def _newest_first(entries: Iterable[HistoryEntry]) -> list[HistoryEntry]:
    # Later-recorded entries win ties on timestamp
    return sorted(
        reversed(list(entries)),
        key=lambda e: parse_timestamp(e.timestamp),
        reverse=True,
    )


class HistoryRecorder:
    """Append-only downtime log per character, kept in the settings store."""

    def __init__(self, store: SettingsStore):
        self.store = store

    def _load(self, character_id: str) -> dict[str, Any]:
        return self.store.get(
            character_key(character_id),
            {"history": [], "stats": {"total_actions": 0, "last_downtime": None}},
        )

    def record(
        self,
        character_id: str,
        action: DowntimeAction,
        check_result: Optional[CheckResult] = None,
        notes: str = "",
        marker_id: Optional[str] = None,
        timestamp: Optional[str] = None,
    ) -> HistoryEntry:
        """
        Append an action to a character's history.

        Success follows the confirmed outcome (Triumph or Success); an action
        without a roll always counts as a success.

        Raises:
            ValueError: timestamp is not ISO 8601. Nothing is recorded.
        """
        stamp = normalize_timestamp(timestamp) if timestamp is not None else None

        entry = HistoryEntry(
            character_id=character_id,
            action_id=action.action_id,
            action_name=action.name,
            success=check_result.success if check_result else True,
            outcome=check_result.tier if check_result else None,
            notes=notes,
            marker_id=marker_id,
            check_result=check_result.to_dict() if check_result else None,
        )
        if stamp is not None:
            entry.timestamp = stamp

        data = self._load(character_id)
        data["history"].append(entry.to_dict())
        data["stats"] = {
            "total_actions": data["stats"].get("total_actions", 0) + 1,
            "last_downtime": entry.timestamp,
        }
        self.store.set(character_key(character_id), data)

        logger.info(
            f"Recorded {action.name} for {character_id}: "
            f"{entry.outcome.value if entry.outcome else 'no roll'}"
        )
        return entry

    def get_history(self, character_id: str, newest_first: bool = True) -> list[HistoryEntry]:
        entries = [HistoryEntry.from_dict(d) for d in self._load(character_id)["history"]]
        return _newest_first(entries) if newest_first else entries

    def get_stats(self, character_id: str) -> dict[str, Any]:
        return self._load(character_id)["stats"]

    def known_character_ids(self) -> list[str]:
        return [key[len(CHARACTER_KEY_PREFIX):] for key in self.store.keys(CHARACTER_KEY_PREFIX)]

    def marker_history(
        self,
        marker_id: str,
        characters: Optional[Iterable[DowntimeCharacter]] = None,
    ) -> list[HistoryEntry]:
        """
        Entries recorded against a marker, across characters, newest first.

        Args:
            marker_id: The marker to aggregate
            characters: Characters to include (default: everyone with history)
        """
        if characters is None:
            character_ids = self.known_character_ids()
        else:
            character_ids = [c.character_id for c in characters]

        entries = [
            entry
            for character_id in character_ids
            for entry in self.get_history(character_id, newest_first=False)
            if entry.marker_id == marker_id
        ]
        return _newest_first(entries)

    def review_conditional(
        self,
        character_id: str,
        entry_id: str,
        modifier_id: str,
        status: ConditionalStatus,
    ) -> HistoryEntry:
        """
        Record the referee's decision on a conditional in a stored result.

        Only the status flag changes. The confirmed and potential outcomes
        were fixed when the check was rolled.
        """
        data = self._load(character_id)
        for entry_data in data["history"]:
            if entry_data["id"] != entry_id:
                continue
            result = entry_data.get("check_result") or {}
            for conditional in result.get("conditionals", []):
                if conditional["modifier_id"] == modifier_id:
                    conditional["status"] = ConditionalStatus(status).value
                    self.store.set(character_key(character_id), data)
                    logger.info(f"Conditional {modifier_id} on entry {entry_id} marked {conditional['status']}")
                    return HistoryEntry.from_dict(entry_data)
            raise KeyError(f"No conditional {modifier_id} on entry {entry_id}")
        raise KeyError(f"No history entry {entry_id} for {character_id}")
