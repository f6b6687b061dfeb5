"""
Timeline markers.

A marker is a narrative period ("After the Hercynia mission", "Shore leave
on Cradle") that downtime actions are recorded against. Markers are kept
in settings in timeline order; at most one is active at a time, and the
active marker decides whether downtime is currently allowed and who may
take part.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional
import logging
import uuid

from lancer_downtime.data_models import DowntimeCharacter, DowntimeError
from lancer_downtime.observability.run_log import get_run_log
from lancer_downtime.storage.settings_store import SettingsStore


logger = logging.getLogger(__name__)


MARKERS_KEY = "markers"
ACTIVE_MARKER_KEY = "active_marker"

_EDITABLE_FIELDS = {"title", "description", "downtime_allowed", "restrictions", "character_ids"}


class MarkerNotFoundError(DowntimeError, KeyError):
    """Raised when a marker id does not exist."""
    pass


@dataclass
class Marker:
    """A narrative period on the timeline."""
    title: str
    description: str = ""
    downtime_allowed: bool = True
    restrictions: str = ""
    character_ids: list[str] = field(default_factory=list)  # Empty = everyone
    order: int = 0
    marker_id: str = field(default_factory=lambda: f"marker_{uuid.uuid4().hex[:8]}")
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def includes(self, character_id: str) -> bool:
        return not self.character_ids or character_id in self.character_ids

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.marker_id,
            "title": self.title,
            "description": self.description,
            "downtime_allowed": self.downtime_allowed,
            "restrictions": self.restrictions,
            "character_ids": list(self.character_ids),
            "order": self.order,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Marker":
        return cls(
            marker_id=data["id"],
            title=data["title"],
            description=data.get("description", ""),
            downtime_allowed=data.get("downtime_allowed", True),
            restrictions=data.get("restrictions", ""),
            character_ids=list(data.get("character_ids", [])),
            order=data.get("order", 0),
            created_at=data.get("created_at", ""),
        )


class MarkerManager:
    """Create, edit, order and activate timeline markers."""

    def __init__(self, store: SettingsStore):
        self.store = store
        if not store.is_registered(MARKERS_KEY):
            store.register(MARKERS_KEY, [])

    def _load(self) -> list[Marker]:
        return [Marker.from_dict(data) for data in self.store.get(MARKERS_KEY, [])]

    def _save(self, markers: list[Marker]) -> None:
        self.store.set(MARKERS_KEY, [m.to_dict() for m in markers])

    def get_markers(self) -> list[Marker]:
        """All markers in timeline order."""
        return sorted(self._load(), key=lambda m: m.order)

    def get_marker(self, marker_id: str) -> Marker:
        for marker in self._load():
            if marker.marker_id == marker_id:
                return marker
        raise MarkerNotFoundError(marker_id)

    def create_marker(
        self,
        title: str,
        description: str = "",
        downtime_allowed: bool = True,
        restrictions: str = "",
        character_ids: Optional[Iterable[str]] = None,
        activate: bool = True,
    ) -> Marker:
        """
        Append a marker to the end of the timeline.

        Args:
            title: Display title (required)
            activate: Make the new marker the active one

        Returns:
            The created marker
        """
        if not title or not title.strip():
            raise ValueError("A marker needs a title")

        markers = self._load()
        marker = Marker(
            title=title.strip(),
            description=description,
            downtime_allowed=downtime_allowed,
            restrictions=restrictions,
            character_ids=list(character_ids or []),
            order=max((m.order for m in markers), default=-1) + 1,
        )
        markers.append(marker)
        self._save(markers)
        get_run_log().log_marker(marker.marker_id, "created", marker.title)
        logger.info(f"Created marker {marker.marker_id}: {marker.title}")

        if activate:
            self.set_active_marker(marker.marker_id)
        return marker

    def update_marker(self, marker_id: str, **changes: Any) -> Marker:
        """Edit a marker's title, description, downtime flag, restrictions or characters."""
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update marker fields: {sorted(unknown)}")

        markers = self._load()
        for marker in markers:
            if marker.marker_id == marker_id:
                for name, value in changes.items():
                    setattr(marker, name, list(value) if name == "character_ids" else value)
                self._save(markers)
                get_run_log().log_marker(marker_id, "updated", marker.title, context={"fields": sorted(changes)})
                return marker
        raise MarkerNotFoundError(marker_id)

    def delete_marker(self, marker_id: str) -> Marker:
        """Remove a marker. History entries keep their marker id."""
        markers = self._load()
        marker = self.get_marker(marker_id)
        self._save([m for m in markers if m.marker_id != marker_id])
        if self.store.get(ACTIVE_MARKER_KEY) == marker_id:
            self.store.delete(ACTIVE_MARKER_KEY)
        get_run_log().log_marker(marker_id, "deleted", marker.title)
        logger.info(f"Deleted marker {marker_id}: {marker.title}")
        return marker

    def reorder(self, marker_ids: list[str]) -> list[Marker]:
        """Put markers in the given order; every marker must be listed exactly once."""
        markers = {m.marker_id: m for m in self._load()}
        if sorted(marker_ids) != sorted(markers):
            raise ValueError("Reorder must list every marker exactly once")

        for position, marker_id in enumerate(marker_ids):
            markers[marker_id].order = position
        ordered = [markers[marker_id] for marker_id in marker_ids]
        self._save(ordered)
        get_run_log().log_marker("", "reordered", context={"order": list(marker_ids)})
        return ordered

    def set_active_marker(self, marker_id: Optional[str]) -> Optional[Marker]:
        """Activate a marker, or clear the active marker with None."""
        if marker_id is None:
            self.store.delete(ACTIVE_MARKER_KEY)
            return None
        marker = self.get_marker(marker_id)
        self.store.set(ACTIVE_MARKER_KEY, marker_id)
        get_run_log().log_marker(marker_id, "activated", marker.title)
        return marker

    def get_active_marker(self) -> Optional[Marker]:
        marker_id = self.store.get(ACTIVE_MARKER_KEY)
        if marker_id is None:
            return None
        try:
            return self.get_marker(marker_id)
        except MarkerNotFoundError:
            logger.warning(f"Active marker {marker_id} no longer exists")
            return None

    @staticmethod
    def assigned_characters(
        marker: Marker,
        characters: Iterable[DowntimeCharacter],
    ) -> list[DowntimeCharacter]:
        """Characters taking part in a marker (all of them when none are assigned)."""
        return [c for c in characters if marker.includes(c.character_id)]
