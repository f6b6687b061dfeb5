"""
Downtime action catalogue.

Built-in action sets for LANCER Core and the Far Field playtest, plus any
custom sets stored in settings. Also decides which check kind an action
uses for a given character and sizes the starting dice pool.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Optional
import logging

from lancer_downtime.data_models import (
    ActionCategory,
    CheckKind,
    DowntimeCharacter,
    DowntimePhase,
)
from lancer_downtime.storage.settings_store import SettingsStore


logger = logging.getLogger(__name__)


ACTIVE_ACTION_SETS_KEY = "active_action_sets"
CUSTOM_ACTION_SETS_KEY = "custom_action_sets"

LANCER_CORE_SET_ID = "lancer-core"
FAR_FIELD_SET_ID = "far-field"
DEFAULT_ACTIVE_SETS = [LANCER_CORE_SET_ID, FAR_FIELD_SET_ID]

# Pool size used when a character has no usable aspect
DEFAULT_POOL_SIZE = 2

# Aspect type most relevant to each action category
CATEGORY_ASPECT_TYPES: dict[ActionCategory, str] = {
    ActionCategory.DEVELOPMENT: "Expertise",
    ActionCategory.SOCIAL: "Expertise",
    ActionCategory.REST: "Expertise",
    ActionCategory.PERSONAL: "Expertise",
    ActionCategory.ACQUISITION: "Equipment",
    ActionCategory.LOGISTICS: "Equipment",
    ActionCategory.MAINTENANCE: "Equipment",
}


@dataclass
class DowntimeAction:
    """A downtime action a character can take."""
    action_id: str
    name: str
    description: str
    category: Optional[ActionCategory] = None
    phases: list[DowntimePhase] = field(default_factory=list)
    requires_roll: bool = False
    roll_type: Optional[str] = None  # "skill", "pilot-check", "dice-pool", "pool", "recovery"
    has_cost: bool = False
    effects: list[dict[str, Any]] = field(default_factory=list)
    action_set_id: Optional[str] = None
    action_set_name: Optional[str] = None

    def available_in(self, phase: Optional[DowntimePhase]) -> bool:
        """Actions without phases are available in every phase."""
        return phase is None or not self.phases or DowntimePhase(phase) in self.phases

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.action_id,
            "name": self.name,
            "description": self.description,
            "category": self.category.value if self.category else None,
            "phases": [p.value for p in self.phases],
            "requires_roll": self.requires_roll,
            "roll_type": self.roll_type,
            "has_cost": self.has_cost,
            "effects": self.effects,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DowntimeAction":
        category = data.get("category")
        return cls(
            action_id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            category=ActionCategory(category) if category else None,
            phases=[DowntimePhase(p) for p in data.get("phases", [])],
            requires_roll=data.get("requires_roll", False),
            roll_type=data.get("roll_type"),
            has_cost=data.get("has_cost", False),
            effects=list(data.get("effects", [])),
        )


@dataclass
class ActionSet:
    """A named collection of downtime actions."""
    set_id: str
    name: str
    system: str
    source: str = "custom"
    version: str = "1.0.0"
    actions: list[DowntimeAction] = field(default_factory=list)

    def tagged_actions(self) -> list[DowntimeAction]:
        """Copies of the actions, tagged with this set's id and name."""
        return [
            replace(action, action_set_id=self.set_id, action_set_name=self.name)
            for action in self.actions
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.set_id,
            "name": self.name,
            "system": self.system,
            "source": self.source,
            "version": self.version,
            "actions": [a.to_dict() for a in self.actions],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActionSet":
        return cls(
            set_id=data["id"],
            name=data["name"],
            system=data.get("system", data["id"]),
            source=data.get("source", "custom"),
            version=data.get("version", "1.0.0"),
            actions=[DowntimeAction.from_dict(a) for a in data.get("actions", [])],
        )


_ALL_PHASES = [DowntimePhase.TRANSIT, DowntimePhase.BETWEEN_MISSIONS, DowntimePhase.SHORE_LEAVE]
_BETWEEN_AND_LEAVE = [DowntimePhase.BETWEEN_MISSIONS, DowntimePhase.SHORE_LEAVE]
_SHORE_LEAVE = [DowntimePhase.SHORE_LEAVE]


LANCER_CORE_ACTIONS = ActionSet(
    set_id=LANCER_CORE_SET_ID,
    name="LANCER Core",
    system="lancer-core",
    source="built-in",
    actions=[
        DowntimeAction(
            action_id="buy_some_time",
            name="Buy Some Time",
            description=(
                "Keep a volatile situation from exploding. De-escalate a conflict, keep an "
                "enemy at bay, or buy time for something else to happen."
            ),
            category=ActionCategory.SOCIAL,
            phases=_BETWEEN_AND_LEAVE,
            requires_roll=True,
            roll_type="skill",
        ),
        DowntimeAction(
            action_id="get_a_damn_drink",
            name="Get a Damn Drink",
            description=(
                "Blow off steam with your lancemates, share stories and recover from the "
                "stress of combat."
            ),
            category=ActionCategory.PERSONAL,
            phases=_BETWEEN_AND_LEAVE,
        ),
        DowntimeAction(
            action_id="get_connected",
            name="Get Connected",
            description="Make connections, call in favors, or drum up support for a course of action.",
            category=ActionCategory.SOCIAL,
            phases=_SHORE_LEAVE,
            requires_roll=True,
            roll_type="skill",
        ),
        DowntimeAction(
            action_id="get_creative",
            name="Get Creative",
            description="Create something: art, music, writing, engineering projects or other works.",
            category=ActionCategory.DEVELOPMENT,
            phases=_ALL_PHASES,
            requires_roll=True,
            roll_type="skill",
        ),
        DowntimeAction(
            action_id="get_focused",
            name="Get Focused",
            description="Train, study, or otherwise focus on self-improvement.",
            category=ActionCategory.DEVELOPMENT,
            phases=_ALL_PHASES,
            requires_roll=True,
            roll_type="skill",
        ),
        DowntimeAction(
            action_id="get_organized",
            name="Get Organized",
            description="Start, run, or organize a group, business, or other organization.",
            category=ActionCategory.SOCIAL,
            phases=_SHORE_LEAVE,
            requires_roll=True,
            roll_type="skill",
        ),
        DowntimeAction(
            action_id="power_at_a_cost",
            name="Power at a Cost",
            description=(
                "Gain significant power, influence, or resources, but at a cost: a devil's "
                "bargain, a dangerous mission, or a debt."
            ),
            category=ActionCategory.ACQUISITION,
            phases=_SHORE_LEAVE,
            requires_roll=True,
            roll_type="skill",
            has_cost=True,
        ),
        DowntimeAction(
            action_id="scrounge_and_barter",
            name="Scrounge and Barter",
            description="Try to get your hands on something rare, strange, or useful.",
            category=ActionCategory.ACQUISITION,
            phases=_SHORE_LEAVE,
            requires_roll=True,
            roll_type="skill",
        ),
    ],
)


FAR_FIELD_ACTIONS = ActionSet(
    set_id=FAR_FIELD_SET_ID,
    name="Far Field",
    system="far-field",
    source="built-in",
    actions=[
        DowntimeAction(
            action_id="recovery",
            name="Recovery",
            description=(
                "Rest and recover from mission stress. Clear all marked boxes on Aspects and "
                "Resources, and roll to clear burned boxes: Triumph = 3, Conflict = 2, Disaster = 1."
            ),
            category=ActionCategory.REST,
            phases=_BETWEEN_AND_LEAVE,
            requires_roll=True,
            roll_type="recovery",
            effects=[
                {"type": "clearMarks", "target": "aspects"},
                {"type": "clearMarks", "target": "resources"},
                {"type": "rollToClearBurn", "target": "aspects"},
            ],
        ),
        DowntimeAction(
            action_id="take_a_break",
            name="Take a Break",
            description=(
                "Step back completely. Clear all burned boxes, remove all Burdens, and "
                "optionally revise your Drives."
            ),
            category=ActionCategory.REST,
            phases=_SHORE_LEAVE,
            effects=[
                {"type": "clearAllBurn", "target": "aspects"},
                {"type": "removeBurdens"},
                {"type": "allowDriveRevision"},
            ],
        ),
        DowntimeAction(
            action_id="get_academic",
            name="Get Academic",
            description="Research or analyze samples. On success, gain a temporary Insight Resource.",
            category=ActionCategory.DEVELOPMENT,
            phases=_ALL_PHASES,
            requires_roll=True,
            roll_type="skill",
            effects=[{"type": "gainResource", "resourceType": "insight"}],
        ),
        DowntimeAction(
            action_id="get_creative",
            name="Get Creative",
            description="Work on projects or build something new. Creates a persistent Resource.",
            category=ActionCategory.DEVELOPMENT,
            phases=_ALL_PHASES,
            requires_roll=True,
            roll_type="skill",
            effects=[{"type": "gainResource", "resourceType": "creation"}],
        ),
        DowntimeAction(
            action_id="gather_information",
            name="Gather Information",
            description="Investigate, gather rumors, or follow up on mysteries.",
            category=ActionCategory.SOCIAL,
            phases=_SHORE_LEAVE,
            requires_roll=True,
            roll_type="skill",
            effects=[{"type": "gainInformation"}],
        ),
        DowntimeAction(
            action_id="get_connected",
            name="Get Connected",
            description="Make friends or call in favors. Gain a Connection Resource.",
            category=ActionCategory.SOCIAL,
            phases=_SHORE_LEAVE,
            requires_roll=True,
            roll_type="skill",
            effects=[{"type": "gainResource", "resourceType": "connection"}],
        ),
        DowntimeAction(
            action_id="scrounge_and_barter",
            name="Scrounge and Barter",
            description="Dig through junk and trade for rare items, replacement parts or supplies.",
            category=ActionCategory.ACQUISITION,
            phases=_SHORE_LEAVE,
            requires_roll=True,
            roll_type="skill",
            effects=[{"type": "gainResource", "resourceType": "equipment"}],
        ),
        DowntimeAction(
            action_id="repair_equipment",
            name="Repair Equipment",
            description="Fix damaged gear and replenish consumables.",
            category=ActionCategory.MAINTENANCE,
            phases=_ALL_PHASES,
            effects=[
                {"type": "clearMarks", "target": "resources", "filter": "equipment"},
                {"type": "clearMarks", "target": "resources", "filter": "consumable"},
            ],
        ),
        DowntimeAction(
            action_id="personal_project",
            name="Personal Project",
            description="Work on a long-term personal goal. Progress a project track by 1 or more.",
            category=ActionCategory.DEVELOPMENT,
            phases=_ALL_PHASES,
            requires_roll=True,
            roll_type="skill",
            effects=[{"type": "progressProject"}],
        ),
        DowntimeAction(
            action_id="training",
            name="Training",
            description="Practice skills or learn from crewmates.",
            category=ActionCategory.DEVELOPMENT,
            phases=[DowntimePhase.TRANSIT, DowntimePhase.BETWEEN_MISSIONS],
            requires_roll=True,
            roll_type="skill",
            effects=[{"type": "progressSkill"}],
        ),
    ],
)


def get_built_in_action_sets() -> list[ActionSet]:
    return [LANCER_CORE_ACTIONS, FAR_FIELD_ACTIONS]


def group_actions_by_category(actions: Iterable[DowntimeAction]) -> dict[str, list[DowntimeAction]]:
    """Group actions by category value; uncategorized actions go under 'other'."""
    grouped: dict[str, list[DowntimeAction]] = {}
    for action in actions:
        key = action.category.value if action.category else "other"
        grouped.setdefault(key, []).append(action)
    return grouped


def filter_actions_by_phase(
    actions: Iterable[DowntimeAction],
    phase: Optional[DowntimePhase],
) -> list[DowntimeAction]:
    return [action for action in actions if action.available_in(phase)]


def determine_check_kind(action: DowntimeAction, character: Optional[DowntimeCharacter] = None) -> CheckKind:
    """
    Pick the check kind for an action.

    Explicit pool/recovery actions always use a dice pool and explicit pilot
    checks always use a pilot check. Otherwise Far Field characters and the
    Far Field action set use dice pools, and everything else falls back to
    the LANCER Core pilot check.
    """
    if action.roll_type in ("dice-pool", "pool", "recovery"):
        return CheckKind.SUCCESS_POOL
    if action.roll_type == "pilot-check":
        return CheckKind.THRESHOLD_ROLL
    if character is not None and character.has_far_field_data:
        return CheckKind.SUCCESS_POOL
    if action.action_set_id == FAR_FIELD_SET_ID:
        return CheckKind.SUCCESS_POOL
    return CheckKind.THRESHOLD_ROLL


def base_pool_size(character: Optional[DowntimeCharacter], action: DowntimeAction) -> int:
    """
    Starting dice pool for a Far Field character.

    Picks the aspect whose type suits the action's category, breaking ties
    by unmarked boxes; the pool is that aspect's track size, minimum 2.
    """
    if character is None or not character.aspects:
        return DEFAULT_POOL_SIZE

    preferred_type = CATEGORY_ASPECT_TYPES.get(action.category) if action.category else None

    best_aspect = None
    best_score = -1
    for aspect in character.aspects:
        type_match = 1 if aspect.aspect_type == preferred_type else 0
        score = type_match * 100 + aspect.available
        if score > best_score:
            best_score = score
            best_aspect = aspect

    if best_aspect is None:
        return DEFAULT_POOL_SIZE
    return max(DEFAULT_POOL_SIZE, best_aspect.track or DEFAULT_POOL_SIZE)


def base_accuracy(character: Optional[DowntimeCharacter], action: DowntimeAction) -> int:
    """Starting accuracy for a pilot check. Pilot skills are not modelled yet."""
    return 0


class ActionCatalogue:
    """Built-in and custom action sets, with the active selection kept in settings."""

    def __init__(self, store: SettingsStore):
        self.store = store
        if not store.is_registered(ACTIVE_ACTION_SETS_KEY):
            store.register(ACTIVE_ACTION_SETS_KEY, DEFAULT_ACTIVE_SETS)
        if not store.is_registered(CUSTOM_ACTION_SETS_KEY):
            store.register(CUSTOM_ACTION_SETS_KEY, [])

    def all_action_sets(self) -> list[ActionSet]:
        custom = [ActionSet.from_dict(data) for data in self.store.get(CUSTOM_ACTION_SETS_KEY, [])]
        return get_built_in_action_sets() + custom

    def get_action_set(self, set_id: str) -> Optional[ActionSet]:
        for action_set in self.all_action_sets():
            if action_set.set_id == set_id:
                return action_set
        return None

    def add_custom_set(self, action_set: ActionSet) -> None:
        """Store a custom set, replacing any custom set with the same id."""
        if action_set.set_id in (LANCER_CORE_SET_ID, FAR_FIELD_SET_ID):
            raise ValueError(f"Cannot replace built-in action set '{action_set.set_id}'")

        custom = [
            data for data in self.store.get(CUSTOM_ACTION_SETS_KEY, [])
            if data["id"] != action_set.set_id
        ]
        custom.append(action_set.to_dict())
        self.store.set(CUSTOM_ACTION_SETS_KEY, custom)
        logger.info(f"Stored custom action set '{action_set.set_id}' ({len(action_set.actions)} actions)")

    def remove_custom_set(self, set_id: str) -> bool:
        custom = self.store.get(CUSTOM_ACTION_SETS_KEY, [])
        remaining = [data for data in custom if data["id"] != set_id]
        if len(remaining) == len(custom):
            return False
        self.store.set(CUSTOM_ACTION_SETS_KEY, remaining)
        self.set_active_sets([s for s in self.active_set_ids() if s != set_id])
        return True

    def active_set_ids(self) -> list[str]:
        return self.store.get(ACTIVE_ACTION_SETS_KEY, DEFAULT_ACTIVE_SETS)

    def set_active_sets(self, set_ids: Iterable[str]) -> None:
        self.store.set(ACTIVE_ACTION_SETS_KEY, list(set_ids))

    def get_actions(self, set_ids: Optional[Iterable[str]] = None) -> list[DowntimeAction]:
        """All actions from the given (default: active) sets, tagged with their set."""
        wanted = list(set_ids) if set_ids is not None else self.active_set_ids()
        sets = {action_set.set_id: action_set for action_set in self.all_action_sets()}

        actions: list[DowntimeAction] = []
        for set_id in wanted:
            action_set = sets.get(set_id)
            if action_set is None:
                logger.warning(f"Unknown action set '{set_id}' skipped")
                continue
            actions.extend(action_set.tagged_actions())
        return actions

    def get_action(self, action_id: str, set_ids: Optional[Iterable[str]] = None) -> Optional[DowntimeAction]:
        """First action with this id across the given sets, in set order."""
        for action in self.get_actions(set_ids):
            if action.action_id == action_id:
                return action
        return None
