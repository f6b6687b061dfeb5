"""
Observability and replay for the Lancer Downtime Tracker.

Records every draw, check, downtime action and marker change, and supports
re-executing checks from a recorded roll stream.
"""

from lancer_downtime.observability.run_log import (
    RunLog,
    LogEvent,
    EventType,
    RollEvent,
    CheckEvent,
    ActionEvent,
    MarkerEvent,
    get_run_log,
    reset_run_log,
)
from lancer_downtime.observability.replay import ReplayDrawSource

__all__ = [
    "RunLog",
    "LogEvent",
    "EventType",
    "RollEvent",
    "CheckEvent",
    "ActionEvent",
    "MarkerEvent",
    "get_run_log",
    "reset_run_log",
    "ReplayDrawSource",
]
