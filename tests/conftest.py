"""
Pytest fixtures for the Lancer Downtime Tracker test suite.

Provides reusable fixtures for dice, scripted draw sources, the settings
store, characters and a wired-up downtime engine.
"""

import pytest

from lancer_downtime.data_models import Aspect, DiceRoller, DowntimeCharacter
from lancer_downtime.downtime.downtime_engine import DowntimeEngine
from lancer_downtime.observability.replay import ReplayDrawSource
from lancer_downtime.observability.run_log import reset_run_log
from lancer_downtime.rolls.check_executor import CheckExecutor
from lancer_downtime.storage.settings_store import SettingsStore


# =============================================================================
# DICE FIXTURES
# =============================================================================


@pytest.fixture
def seeded_dice():
    """Provide a seeded DiceRoller for reproducible tests."""
    DiceRoller.clear_roll_log()
    DiceRoller.set_seed(42)
    yield DiceRoller()
    DiceRoller.clear_roll_log()


@pytest.fixture
def clean_dice():
    """Provide a clean DiceRoller without seed."""
    DiceRoller.clear_roll_log()
    yield DiceRoller()
    DiceRoller.clear_roll_log()


@pytest.fixture
def reset_logs():
    """Reset the dice roll log and the run log before and after a test."""
    DiceRoller.clear_roll_log()
    log = reset_run_log()
    yield log
    DiceRoller.clear_roll_log()
    reset_run_log()


@pytest.fixture
def scripted():
    """Build an executor whose dice come from literal batches."""
    def _make(*batches):
        source = ReplayDrawSource.from_batches(*batches)
        return CheckExecutor(source), source
    return _make


# =============================================================================
# STORE AND ENGINE FIXTURES
# =============================================================================


@pytest.fixture
def store():
    """An empty in-memory settings store."""
    return SettingsStore()


@pytest.fixture
def engine(store, seeded_dice, reset_logs):
    """A downtime engine on an empty store, rolling seeded dice."""
    return DowntimeEngine(store)


# =============================================================================
# CHARACTER FIXTURES
# =============================================================================


@pytest.fixture
def lancer_pilot():
    """A LANCER Core pilot with no Far Field data."""
    return DowntimeCharacter(character_id="pilot_1", name="Kestrel Vance")


@pytest.fixture
def far_field_pilot():
    """A Far Field character with one Expertise and one Equipment aspect."""
    return DowntimeCharacter(
        character_id="ff_1",
        name="Oda Marr",
        aspects=[
            Aspect(name="Field Medic", aspect_type="Expertise", track=4, marked=1),
            Aspect(name="Salvage Rig", aspect_type="Equipment", track=3, marked=0),
        ],
    )
