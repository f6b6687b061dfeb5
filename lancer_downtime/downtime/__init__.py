"""Downtime actions, markers and history.

Provides the action catalogue, the marker timeline, per-character history
and the engine that runs a downtime action end to end.
"""

from lancer_downtime.downtime.actions import (
    ActionCatalogue,
    ActionSet,
    DowntimeAction,
    FAR_FIELD_ACTIONS,
    LANCER_CORE_ACTIONS,
    base_accuracy,
    base_pool_size,
    determine_check_kind,
    filter_actions_by_phase,
    get_built_in_action_sets,
    group_actions_by_category,
)
from lancer_downtime.downtime.markers import Marker, MarkerManager, MarkerNotFoundError
from lancer_downtime.downtime.history import HistoryEntry, HistoryRecorder
from lancer_downtime.downtime.downtime_engine import (
    DowntimeEngine,
    DowntimeNotAllowedError,
    DowntimeOutcome,
    UnknownActionError,
)

__all__ = [
    "ActionCatalogue",
    "ActionSet",
    "DowntimeAction",
    "FAR_FIELD_ACTIONS",
    "LANCER_CORE_ACTIONS",
    "base_accuracy",
    "base_pool_size",
    "determine_check_kind",
    "filter_actions_by_phase",
    "get_built_in_action_sets",
    "group_actions_by_category",
    "Marker",
    "MarkerManager",
    "MarkerNotFoundError",
    "HistoryEntry",
    "HistoryRecorder",
    "DowntimeEngine",
    "DowntimeNotAllowedError",
    "DowntimeOutcome",
    "UnknownActionError",
]
