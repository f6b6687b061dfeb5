"""
Tests for the downtime action catalogue.

Tests built-in action sets, phase filtering, check kind selection, pool
sizing and custom action sets from lancer_downtime/downtime/actions.py.
"""

import pytest

from lancer_downtime.data_models import (
    ActionCategory,
    Aspect,
    CheckKind,
    DowntimeCharacter,
    DowntimePhase,
)
from lancer_downtime.downtime.actions import (
    ACTIVE_ACTION_SETS_KEY,
    DEFAULT_POOL_SIZE,
    FAR_FIELD_SET_ID,
    LANCER_CORE_SET_ID,
    ActionCatalogue,
    ActionSet,
    DowntimeAction,
    base_accuracy,
    base_pool_size,
    determine_check_kind,
    filter_actions_by_phase,
    get_built_in_action_sets,
    group_actions_by_category,
)


@pytest.fixture
def catalogue(store):
    return ActionCatalogue(store)


@pytest.fixture
def salvage_set():
    return ActionSet(
        set_id="salvage-crew",
        name="Salvage Crew",
        system="homebrew",
        actions=[
            DowntimeAction(
                action_id="strip_wreck",
                name="Strip a Wreck",
                description="Pull usable parts from a derelict frame.",
                category=ActionCategory.ACQUISITION,
                requires_roll=True,
                roll_type="dice-pool",
            ),
            DowntimeAction(
                action_id="sell_scrap",
                name="Sell Scrap",
                description="Turn the haul into credits.",
            ),
        ],
    )


class TestBuiltInSets:

    def test_both_sets_present(self):
        ids = [s.set_id for s in get_built_in_action_sets()]
        assert ids == [LANCER_CORE_SET_ID, FAR_FIELD_SET_ID]

    def test_action_ids_unique_within_set(self):
        for action_set in get_built_in_action_sets():
            ids = [a.action_id for a in action_set.actions]
            assert len(ids) == len(set(ids))

    def test_non_roll_actions(self, catalogue):
        assert not catalogue.get_action("get_a_damn_drink").requires_roll
        assert not catalogue.get_action("take_a_break").requires_roll
        assert not catalogue.get_action("repair_equipment").requires_roll

    def test_actions_tagged_with_set(self, catalogue):
        action = catalogue.get_action("recovery")
        assert action.action_set_id == FAR_FIELD_SET_ID
        assert action.action_set_name == "Far Field"


class TestFiltering:

    def test_shore_leave_only_actions(self, catalogue):
        actions = filter_actions_by_phase(catalogue.get_actions(), DowntimePhase.SHORE_LEAVE)
        ids = {a.action_id for a in actions}
        assert "scrounge_and_barter" in ids
        assert "training" not in ids

    def test_transit_excludes_shore_leave(self, catalogue):
        actions = filter_actions_by_phase(catalogue.get_actions(), DowntimePhase.TRANSIT)
        ids = {a.action_id for a in actions}
        assert "training" in ids
        assert "get_connected" not in ids

    def test_no_phase_keeps_everything(self, catalogue):
        actions = catalogue.get_actions()
        assert filter_actions_by_phase(actions, None) == actions

    def test_action_without_phases_always_available(self):
        action = DowntimeAction(action_id="x", name="X", description="")
        assert action.available_in(DowntimePhase.TRANSIT)
        assert action.available_in("shore-leave")

    def test_group_by_category(self, salvage_set):
        grouped = group_actions_by_category(salvage_set.actions)
        assert list(grouped) == ["acquisition", "other"]
        assert grouped["other"][0].action_id == "sell_scrap"


class TestCheckKind:

    def test_lancer_action_uses_pilot_check(self, catalogue, lancer_pilot):
        action = catalogue.get_action("get_focused", [LANCER_CORE_SET_ID])
        assert determine_check_kind(action, lancer_pilot) == CheckKind.THRESHOLD_ROLL

    def test_far_field_character_uses_pool(self, catalogue, far_field_pilot):
        action = catalogue.get_action("get_focused", [LANCER_CORE_SET_ID])
        assert determine_check_kind(action, far_field_pilot) == CheckKind.SUCCESS_POOL

    def test_far_field_set_uses_pool(self, catalogue, lancer_pilot):
        action = catalogue.get_action("get_academic")
        assert determine_check_kind(action, lancer_pilot) == CheckKind.SUCCESS_POOL

    def test_explicit_roll_types(self):
        recovery = DowntimeAction(action_id="r", name="R", description="", roll_type="recovery")
        pilot = DowntimeAction(action_id="p", name="P", description="", roll_type="pilot-check")
        far_field = DowntimeCharacter(character_id="c", name="C", far_field=True)

        assert determine_check_kind(recovery) == CheckKind.SUCCESS_POOL
        assert determine_check_kind(pilot, far_field) == CheckKind.THRESHOLD_ROLL


class TestPoolSizing:

    def test_no_aspects_uses_default(self, catalogue, lancer_pilot):
        action = catalogue.get_action("training")
        assert base_pool_size(lancer_pilot, action) == DEFAULT_POOL_SIZE
        assert base_pool_size(None, action) == DEFAULT_POOL_SIZE

    def test_matching_aspect_type_preferred(self, catalogue, far_field_pilot):
        development = catalogue.get_action("training")
        acquisition = catalogue.get_action("scrounge_and_barter", [FAR_FIELD_SET_ID])
        assert base_pool_size(far_field_pilot, development) == 4
        assert base_pool_size(far_field_pilot, acquisition) == 3

    def test_pool_never_below_default(self):
        character = DowntimeCharacter(
            character_id="c", name="C", aspects=[Aspect(name="Tiny", aspect_type="Expertise", track=1)]
        )
        action = DowntimeAction(action_id="x", name="X", description="", category=ActionCategory.SOCIAL)
        assert base_pool_size(character, action) == DEFAULT_POOL_SIZE

    def test_base_accuracy_is_zero(self, catalogue, lancer_pilot):
        assert base_accuracy(lancer_pilot, catalogue.get_action("get_focused")) == 0


class TestCatalogue:

    def test_default_active_sets(self, catalogue):
        assert catalogue.active_set_ids() == [LANCER_CORE_SET_ID, FAR_FIELD_SET_ID]

    def test_get_action_prefers_first_set(self, catalogue):
        action = catalogue.get_action("get_creative")
        assert action.action_set_id == LANCER_CORE_SET_ID
        assert catalogue.get_action("get_creative", [FAR_FIELD_SET_ID]).action_set_id == FAR_FIELD_SET_ID

    def test_unknown_action(self, catalogue):
        assert catalogue.get_action("fly_a_kite") is None

    def test_unknown_set_skipped(self, catalogue):
        actions = catalogue.get_actions(["no-such-set", LANCER_CORE_SET_ID])
        assert {a.action_set_id for a in actions} == {LANCER_CORE_SET_ID}

    def test_set_active_sets_persisted(self, catalogue, store):
        catalogue.set_active_sets([FAR_FIELD_SET_ID])
        assert store.get(ACTIVE_ACTION_SETS_KEY) == [FAR_FIELD_SET_ID]
        assert {a.action_set_id for a in catalogue.get_actions()} == {FAR_FIELD_SET_ID}

    def test_add_custom_set(self, catalogue, salvage_set):
        catalogue.add_custom_set(salvage_set)
        catalogue.set_active_sets([LANCER_CORE_SET_ID, "salvage-crew"])

        action = catalogue.get_action("strip_wreck")
        assert action.action_set_name == "Salvage Crew"
        assert action.category == ActionCategory.ACQUISITION
        assert catalogue.get_action_set("salvage-crew").system == "homebrew"

    def test_custom_set_replaced_by_id(self, catalogue, salvage_set):
        catalogue.add_custom_set(salvage_set)
        salvage_set.name = "Salvage Crew v2"
        catalogue.add_custom_set(salvage_set)

        custom = [s for s in catalogue.all_action_sets() if s.set_id == "salvage-crew"]
        assert len(custom) == 1
        assert custom[0].name == "Salvage Crew v2"

    def test_built_in_set_cannot_be_replaced(self, catalogue):
        with pytest.raises(ValueError):
            catalogue.add_custom_set(ActionSet(set_id=LANCER_CORE_SET_ID, name="Fake", system="x"))

    def test_remove_custom_set_deactivates_it(self, catalogue, salvage_set):
        catalogue.add_custom_set(salvage_set)
        catalogue.set_active_sets([LANCER_CORE_SET_ID, "salvage-crew"])

        assert catalogue.remove_custom_set("salvage-crew")
        assert catalogue.active_set_ids() == [LANCER_CORE_SET_ID]
        assert catalogue.get_action_set("salvage-crew") is None
        assert not catalogue.remove_custom_set("salvage-crew")


class TestActionSerialization:

    def test_action_round_trip(self, catalogue):
        action = catalogue.get_action("recovery")
        restored = DowntimeAction.from_dict(action.to_dict())
        assert restored.action_id == "recovery"
        assert restored.roll_type == "recovery"
        assert restored.phases == action.phases
        assert restored.effects == action.effects
