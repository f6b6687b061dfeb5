"""
Tests for timeline markers.

Tests MarkerManager from lancer_downtime/downtime/markers.py.
"""

import pytest

from lancer_downtime.downtime.markers import (
    ACTIVE_MARKER_KEY,
    Marker,
    MarkerManager,
    MarkerNotFoundError,
)
from lancer_downtime.observability.run_log import EventType


@pytest.fixture
def markers(store, reset_logs):
    return MarkerManager(store)


class TestMarkerCreation:

    def test_create_appends_and_activates(self, markers):
        first = markers.create_marker("After the Hercynia mission")
        second = markers.create_marker("Shore leave on Cradle", description="Two weeks planetside")

        assert [m.marker_id for m in markers.get_markers()] == [first.marker_id, second.marker_id]
        assert second.order == first.order + 1
        assert markers.get_active_marker().marker_id == second.marker_id

    def test_create_without_activating(self, markers):
        marker = markers.create_marker("Transit to Ras Shamra", activate=False)
        assert markers.get_active_marker() is None
        assert markers.get_marker(marker.marker_id).title == "Transit to Ras Shamra"

    def test_blank_title_rejected(self, markers):
        with pytest.raises(ValueError):
            markers.create_marker("   ")
        assert markers.get_markers() == []

    def test_marker_changes_logged(self, markers, reset_logs):
        marker = markers.create_marker("Refit")
        changes = [e.change for e in reset_logs.get_events(EventType.MARKER)]
        assert changes == ["created", "activated"]
        assert reset_logs.get_events(EventType.MARKER)[0].marker_id == marker.marker_id


class TestMarkerEditing:

    def test_update_fields(self, markers):
        marker = markers.create_marker("Refit")
        updated = markers.update_marker(
            marker.marker_id,
            downtime_allowed=False,
            restrictions="Quarantine",
            character_ids=("pilot_1",),
        )

        assert not updated.downtime_allowed
        assert markers.get_marker(marker.marker_id).restrictions == "Quarantine"
        assert markers.get_marker(marker.marker_id).character_ids == ["pilot_1"]

    def test_update_rejects_unknown_fields(self, markers):
        marker = markers.create_marker("Refit")
        with pytest.raises(ValueError):
            markers.update_marker(marker.marker_id, order=5)

    def test_update_missing_marker(self, markers):
        with pytest.raises(MarkerNotFoundError):
            markers.update_marker("marker_missing", title="X")

    def test_delete_clears_active(self, markers, store):
        marker = markers.create_marker("Refit")
        markers.delete_marker(marker.marker_id)

        assert markers.get_markers() == []
        assert store.get(ACTIVE_MARKER_KEY) is None
        assert markers.get_active_marker() is None

    def test_delete_keeps_other_active(self, markers):
        active = markers.create_marker("One", activate=True)
        other = markers.create_marker("Two", activate=False)
        markers.delete_marker(other.marker_id)
        assert markers.get_active_marker().marker_id == active.marker_id

    def test_reorder(self, markers):
        a = markers.create_marker("A")
        b = markers.create_marker("B")
        c = markers.create_marker("C")

        markers.reorder([c.marker_id, a.marker_id, b.marker_id])

        assert [m.title for m in markers.get_markers()] == ["C", "A", "B"]

    def test_reorder_requires_every_marker_once(self, markers):
        a = markers.create_marker("A")
        b = markers.create_marker("B")
        with pytest.raises(ValueError):
            markers.reorder([a.marker_id])
        with pytest.raises(ValueError):
            markers.reorder([a.marker_id, a.marker_id, b.marker_id])


class TestActiveMarker:

    def test_set_and_clear(self, markers):
        marker = markers.create_marker("Refit", activate=False)
        markers.set_active_marker(marker.marker_id)
        assert markers.get_active_marker().marker_id == marker.marker_id

        assert markers.set_active_marker(None) is None
        assert markers.get_active_marker() is None

    def test_activate_unknown(self, markers):
        with pytest.raises(MarkerNotFoundError):
            markers.set_active_marker("marker_missing")

    def test_dangling_active_marker_ignored(self, markers, store):
        store.set(ACTIVE_MARKER_KEY, "marker_gone")
        assert markers.get_active_marker() is None


class TestAssignedCharacters:

    def test_empty_assignment_means_everyone(self, lancer_pilot, far_field_pilot):
        marker = Marker(title="Open")
        assert MarkerManager.assigned_characters(marker, [lancer_pilot, far_field_pilot]) == [
            lancer_pilot,
            far_field_pilot,
        ]

    def test_assignment_filters(self, lancer_pilot, far_field_pilot):
        marker = Marker(title="Closed", character_ids=["ff_1"])
        assert MarkerManager.assigned_characters(marker, [lancer_pilot, far_field_pilot]) == [far_field_pilot]

    def test_marker_round_trip(self):
        marker = Marker(title="Refit", restrictions="No travel", character_ids=["a"], order=3)
        assert Marker.from_dict(marker.to_dict()) == marker
