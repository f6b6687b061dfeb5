"""
Downtime Engine for the Lancer Downtime Tracker.

Runs a downtime action end to end:
1. Look the action up in the active action sets
2. Check the active marker allows downtime for this character
3. Roll the check, when the action needs one (pilot check or dice pool)
4. Record the action, notes and full check result in the character's history

Validation failures stop the flow before anything is recorded, so a
rejected check never leaves a history entry behind.
"""

from dataclasses import dataclass
from typing import Iterable, Optional
import logging

from lancer_downtime.data_models import (
    ActionCategory,
    CheckKind,
    DowntimeCharacter,
    DowntimeError,
    DowntimePhase,
    InvalidCheckError,
)
from lancer_downtime.downtime.actions import (
    ActionCatalogue,
    DowntimeAction,
    base_accuracy,
    base_pool_size,
    determine_check_kind,
    filter_actions_by_phase,
)
from lancer_downtime.downtime.history import HistoryEntry, HistoryRecorder
from lancer_downtime.downtime.markers import MarkerManager
from lancer_downtime.observability.run_log import get_run_log
from lancer_downtime.rolls.check_executor import CheckExecutor, CheckResult, CheckSpecification
from lancer_downtime.rolls.conditional_ledger import ConditionalModifier
from lancer_downtime.storage.settings_store import SettingsStore


logger = logging.getLogger(__name__)


class UnknownActionError(DowntimeError, KeyError):
    """Raised when an action id is not in the active action sets."""
    pass


class DowntimeNotAllowedError(DowntimeError):
    """Raised when the active marker does not allow this downtime action."""
    pass


@dataclass
class DowntimeOutcome:
    """What executing a downtime action produced."""
    action: DowntimeAction
    entry: HistoryEntry
    check_result: Optional[CheckResult] = None

    @property
    def success(self) -> bool:
        return self.entry.success


class DowntimeEngine:
    """
    Engine for downtime actions.

    Manages:
    - The action catalogue (built-in and custom action sets)
    - Timeline markers and the active marker gate
    - Check execution with conditional modifiers
    - Per-character history
    """

    def __init__(self, store: SettingsStore, executor: Optional[CheckExecutor] = None):
        """
        Initialize the downtime engine.

        Args:
            store: Settings store backing the catalogue, markers and history
            executor: Check executor (defaults to one using the shared DiceRoller)
        """
        self.store = store
        self.executor = executor or CheckExecutor()
        self.catalogue = ActionCatalogue(store)
        self.markers = MarkerManager(store)
        self.history = HistoryRecorder(store)

    def available_actions(
        self,
        phase: Optional[DowntimePhase] = None,
        category: Optional[ActionCategory] = None,
    ) -> list[DowntimeAction]:
        """Actions in the active sets, optionally filtered by phase and category."""
        actions = filter_actions_by_phase(self.catalogue.get_actions(), phase)
        if category is not None:
            actions = [a for a in actions if a.category == ActionCategory(category)]
        return actions

    def build_specification(
        self,
        character: Optional[DowntimeCharacter],
        action: DowntimeAction,
        conditionals: Iterable[ConditionalModifier] = (),
        accuracy: int = 0,
        difficulty: int = 0,
        bonus_dice: int = 0,
        reason: str = "",
    ) -> CheckSpecification:
        """
        Build a check specification for an action from the character's sheet.

        Dice pools start from the character's best aspect; pilot checks start
        from the character's base accuracy, plus any extra accuracy given.
        """
        kind = determine_check_kind(action, character)
        if kind == CheckKind.SUCCESS_POOL:
            return CheckSpecification.dice_pool(
                pool_size=base_pool_size(character, action),
                bonus_dice=bonus_dice,
                conditionals=conditionals,
                reason=reason,
            )
        return CheckSpecification.pilot_check(
            accuracy=base_accuracy(character, action) + accuracy,
            difficulty=difficulty,
            conditionals=conditionals,
            reason=reason,
        )

    def check_allowed(self, character: DowntimeCharacter) -> None:
        """
        Raise if the active marker blocks downtime for this character.

        No active marker means downtime is unrestricted.
        """
        marker = self.markers.get_active_marker()
        if marker is None:
            return
        if not marker.downtime_allowed:
            raise DowntimeNotAllowedError(f"Downtime actions are not allowed during '{marker.title}'")
        if not marker.includes(character.character_id):
            raise DowntimeNotAllowedError(f"{character.name} is not part of '{marker.title}'")

    def execute_action(
        self,
        character: DowntimeCharacter,
        action_id: str,
        specification: Optional[CheckSpecification] = None,
        notes: str = "",
    ) -> DowntimeOutcome:
        """
        Execute a downtime action for a character.

        Args:
            character: The character taking the action
            action_id: Action id within the active action sets
            specification: Check to roll; built from the character when omitted
            notes: Free-text description of what happened

        Returns:
            DowntimeOutcome with the history entry and check result

        Raises:
            UnknownActionError: The action is not in the active sets
            DowntimeNotAllowedError: The active marker blocks this action
            InvalidCheckError: The check specification is invalid
        """
        action = self.catalogue.get_action(action_id)
        if action is None:
            raise UnknownActionError(action_id)

        self.check_allowed(character)

        check_result = None
        if action.requires_roll:
            spec = specification or self.build_specification(character, action)
            check_result = self.executor.execute(spec)
        elif specification is not None:
            raise InvalidCheckError(f"{action.name} does not take a roll")

        marker = self.markers.get_active_marker()
        marker_id = marker.marker_id if marker else None
        entry = self.history.record(
            character.character_id,
            action,
            check_result=check_result,
            notes=notes,
            marker_id=marker_id,
        )

        get_run_log().log_action(
            character_id=character.character_id,
            action_id=action.action_id,
            action_name=action.name,
            outcome=entry.outcome.value if entry.outcome else None,
            marker_id=marker_id,
        )
        return DowntimeOutcome(action=action, entry=entry, check_result=check_result)
