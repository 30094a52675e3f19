"""
Run Progression Tests

Tests the run state machine over the two-stage test catalog:
run start, map navigation, node rewards, stage transitions, resources,
relics, deck and shop.
"""

import random

from packages.ironwars import (
    CardInstance, NotificationType, RelicEngine, RunProgression,
)


def play(progression, node_id):
    """Move onto a node and complete it."""
    assert progression.move_to_node(node_id), f"{node_id} not accessible"
    completion = progression.complete_node(node_id)
    assert completion is not None
    return completion


def finish_stage_zero(progression):
    play(progression, "a_start")
    play(progression, "a_elite")
    return play(progression, "a_boss")


# =============================================================================
# Run start
# =============================================================================


class TestStartNewRun:
    """Fresh runs stand on the first stage's entry node."""

    def test_fortress_hp_includes_starting_relic(self, started):
        state = started.get_run_state()
        assert state.relics == ["plating"]
        assert state.base_fortress_hp == 500
        assert state.fortress_max_hp == 550
        assert state.fortress_hp == 550

    def test_starting_resources(self, started):
        state = started.get_run_state()
        assert state.gold == 120
        assert state.commander_roster == ["cmd_a"]
        assert [c.id for c in state.deck] == ["c_soldier_1", "c_soldier_2", "c_tank_3"]
        assert state.curses == []

    def test_positioned_on_entry(self, started):
        state = started.get_run_state()
        assert state.current_stage_index == 0
        assert state.current_node_id == "a_start"
        assert started.get_accessible_node_ids() == ["a_start"]
        assert started.get_current_node().id == "a_start"

    def test_persisted(self, started, store):
        assert store.has_saved_run()
        assert store.load_run().to_dict() == started.get_run_state().to_dict()

    def test_high_difficulty_adds_curse(self, progression):
        state = progression.start_new_run("f_iron", difficulty=2)
        assert state.relics == ["plating", "pact"]
        assert state.curses == ["pact"]

    def test_unknown_faction_uses_default_starter(self, progression):
        state = progression.start_new_run("no_such_faction")
        assert state.faction_id == "cog_dominion"
        assert state.base_fortress_hp == 500
        assert state.commander_roster == ["commander_valen"]
        assert len(state.deck) == 8

    def test_commander_override(self, progression):
        state = progression.start_new_run("f_iron", commander_override="cmd_b")
        assert state.commander_roster == ["cmd_b"]
        assert [c.template_id for c in state.deck] == ["c_cannon"]

    def test_start_notifications(self, started, bus):
        types = [n.type for n in bus.get_history()]
        assert types.index(NotificationType.RUN_STARTED) < types.index(NotificationType.STAGE_ENTERED)
        assert types.index(NotificationType.STAGE_ENTERED) < types.index(NotificationType.NODE_SELECTED)

    def test_state_snapshot_is_a_copy(self, started):
        state = started.get_run_state()
        state.gold = 99999
        state.relics.append("forge")
        assert started.get_gold() == 120
        assert started.get_run_state().relics == ["plating"]

    def test_restart_resets_relics(self, started):
        started.add_relic("forge")
        state = started.start_new_run("f_iron")
        assert state.relics == ["plating"]
        assert not started.relic_engine.has_relic("forge")


# =============================================================================
# Navigation
# =============================================================================


class TestNavigation:
    """Single-path branching on the stage map."""

    def test_completion_opens_both_branches(self, started):
        play(started, "a_start")
        assert sorted(started.get_accessible_node_ids()) == ["a_elite", "a_shop"]

    def test_moving_closes_sibling(self, started):
        play(started, "a_start")
        assert started.move_to_node("a_elite")
        assert started.get_accessible_node_ids() == ["a_elite"]
        assert not started.can_access_node("a_shop")
        assert not started.move_to_node("a_shop")

    def test_cannot_skip_ahead(self, started):
        assert not started.move_to_node("a_boss")
        assert not started.move_to_node("missing")
        assert started.get_run_state().current_node_id == "a_start"

    def test_complete_rejects_unknown_and_repeat(self, started):
        assert started.complete_node("missing") is None
        play(started, "a_start")
        assert started.complete_node("a_start") is None

    def test_completing_open_successor_moves_onto_it(self, started):
        play(started, "a_start")
        completion = started.complete_node("a_elite")
        assert completion is not None
        assert started.get_run_state().current_node_id == "a_elite"
        assert started.get_accessible_node_ids() == ["a_boss"]
        assert not started.can_access_node("a_shop")
        assert started.complete_node("a_shop") is None

    def test_cannot_complete_inaccessible_node(self, started):
        assert started.complete_node("a_boss") is None
        assert started.complete_node("a_elite") is None
        state = started.get_run_state()
        assert state.completed_node_ids == []
        assert state.current_stage_index == 0
        assert not started.is_run_complete()

    def test_no_run(self, progression):
        assert not progression.move_to_node("a_start")
        assert progression.complete_node("a_start") is None
        assert progression.get_accessible_node_ids() == []
        assert progression.get_run_state() is None

    def test_completed_nodes_recorded(self, started):
        play(started, "a_start")
        play(started, "a_shop")
        assert started.get_run_state().completed_node_ids == ["a_start", "a_shop"]
        assert started.get_node_snapshot("a_shop").is_completed


# =============================================================================
# Node rewards
# =============================================================================


class TestNodeRewards:

    def test_battle_gold(self, started):
        completion = play(started, "a_start")
        assert completion.gold_awarded == 50
        assert started.get_gold() == 170

    def test_shop_node_awards_no_gold(self, started):
        play(started, "a_start")
        assert play(started, "a_shop").gold_awarded == 0

    def test_elite_offers_relic_choices(self, started):
        play(started, "a_start")
        completion = play(started, "a_elite")
        ids = {r.id for r in completion.relic_choices}
        assert ids == {"forge", "phoenix"}

    def test_battle_offers_no_relics(self, started):
        assert play(started, "a_start").relic_choices == []

    def test_upgrade_once_per_stage(self, started):
        started.add_relic("forge")
        assert play(started, "a_start").upgrade_reward is True
        assert play(started, "a_elite").upgrade_reward is False
        play(started, "a_boss")
        assert play(started, "b_start").upgrade_reward is True

    def test_node_completed_notification(self, started, bus):
        play(started, "a_start")
        [notification] = bus.get_history(NotificationType.NODE_COMPLETED)
        assert notification.payload["id"] == "a_start"


# =============================================================================
# Stage transitions
# =============================================================================


class TestStageTransition:

    def test_boss_advances_stage(self, started, store):
        completion = finish_stage_zero(started)
        assert completion.stage_completed is True
        assert completion.run_completed is False

        state = started.get_run_state()
        assert state.current_stage_index == 1
        assert state.current_node_id == "b_start"
        assert started.get_accessible_node_ids() == ["b_start"]
        assert started.get_current_stage().id == "stage_b"
        assert store.get_meta_progression().highest_stage_reached == 1

    def test_stage_notifications(self, started, bus):
        finish_stage_zero(started)
        assert len(bus.get_history(NotificationType.STAGE_COMPLETED)) == 1
        entered = bus.get_history(NotificationType.STAGE_ENTERED)
        assert [n.payload["id"] for n in entered] == ["stage_a", "stage_b"]

    def test_final_boss_completes_run(self, started, store, bus):
        finish_stage_zero(started)
        play(started, "b_start")
        completion = play(started, "b_boss")

        assert completion.run_completed is True
        assert started.is_run_complete()
        assert started.get_accessible_node_ids() == []
        assert started.get_gold() == 620
        assert store.get_meta_progression().total_runs_completed == 1
        assert len(bus.get_history(NotificationType.RUN_COMPLETED)) == 1

    def test_complete_run_is_terminal(self, started):
        finish_stage_zero(started)
        play(started, "b_start")
        play(started, "b_boss")
        assert not started.move_to_node("b_boss")
        assert started.complete_node("b_start") is None


# =============================================================================
# Resources
# =============================================================================


class TestGold:

    def test_spend(self, started):
        assert started.spend_gold(20)
        assert started.get_gold() == 100

    def test_never_negative(self, started):
        assert not started.spend_gold(121)
        assert started.get_gold() == 120

    def test_negative_amount_is_spent_as_absolute(self, started):
        assert started.spend_gold(-30)
        assert started.get_gold() == 90

    def test_gain_ignores_non_positive(self, started):
        assert started.gain_gold(0) == 0
        assert started.gain_gold(-10) == 0
        assert started.get_gold() == 120


class TestFortress:

    def test_damage_and_heal_cap(self, started):
        assert started.damage_fortress(100) == 100
        assert started.heal_fortress(1000) == 100
        assert started.get_run_state().fortress_hp == 550

    def test_damage_floors_at_zero(self, started):
        assert started.damage_fortress(10000) == 550
        assert started.get_run_state().fortress_hp == 0

    def test_halved_healing(self, started):
        started.add_relic("pact")
        started.damage_fortress(100)
        assert started.heal_fortress(40) == 20

    def test_revive_once(self, started):
        started.add_relic("phoenix")
        started.damage_fortress(10000)
        assert started.get_run_state().fortress_hp == 101
        started.damage_fortress(10000)
        assert started.get_run_state().fortress_hp == 0

    def test_fortress_notification(self, started, bus):
        started.damage_fortress(50)
        notification = bus.get_history(NotificationType.FORTRESS_UPDATED)[-1]
        assert notification.payload == {"hp": 500, "max_hp": 550}


# =============================================================================
# Relics
# =============================================================================


class TestRunRelics:

    def test_add_is_idempotent(self, started):
        assert not started.add_relic("plating")
        assert started.get_run_state().relics == ["plating"]

    def test_unknown_relic(self, started):
        assert not started.add_relic("missing")

    def test_curse_tracked(self, started, bus):
        assert started.add_relic("pact")
        state = started.get_run_state()
        assert state.relics == ["plating", "pact"]
        assert state.curses == ["pact"]
        assert bus.get_history(NotificationType.CURSES_UPDATED)[-1].payload == {"curses": ["pact"]}

        assert started.remove_relic("pact")
        assert started.get_run_state().curses == []

    def test_removing_hp_relic_clamps(self, started):
        assert started.remove_relic("plating")
        state = started.get_run_state()
        assert state.fortress_max_hp == 500
        assert state.fortress_hp == 500

    def test_regaining_hp_relic_heals_delta(self, started):
        started.remove_relic("plating")
        started.damage_fortress(100)
        started.add_relic("plating")
        state = started.get_run_state()
        assert state.fortress_max_hp == 550
        assert state.fortress_hp == 450


# =============================================================================
# Deck, collection & roster
# =============================================================================


class TestDeck:

    def test_add_template_gets_unique_id(self, started):
        card = started.add_card_to_run_deck("c_cannon")
        assert card.id == "c_cannon_4"
        assert card.template_id == "c_cannon"

    def test_instance_id_strips_to_template(self, started):
        card = started.add_card_to_run_deck("c_soldier_2")
        assert card.template_id == "c_soldier"
        assert card.id == "c_soldier_4"

    def test_colliding_instance_reassigned(self, started):
        card = started.add_card_to_run_deck(CardInstance("c_tank_3", "c_tank", upgraded=True))
        assert card.id == "c_tank_4"
        assert card.upgraded

    def test_unknown_template(self, started):
        assert started.add_card_to_run_deck("zzz") is None
        assert len(started.get_deck_snapshot()) == 3

    def test_remove(self, started):
        assert started.remove_card_from_run_deck("c_soldier_1")
        assert not started.remove_card_from_run_deck("c_soldier_1")
        assert [c.id for c in started.get_deck_snapshot()] == ["c_soldier_2", "c_tank_3"]

    def test_set_run_deck(self, started):
        deck = started.set_run_deck(["c_cannon", "zzz", "c_tank"])
        assert [c.template_id for c in deck] == ["c_cannon", "c_tank"]

    def test_remove_random_card_with_predicate(self, started):
        removed = started.remove_random_card(lambda c: c.template_id == "c_tank")
        assert removed.id == "c_tank_3"
        assert started.remove_random_card(lambda c: c.template_id == "c_tank") is None

    def test_collection_holds_base_ids(self, started):
        assert started.add_card_to_collection("c_tank_3")
        assert not started.add_card_to_collection("c_tank")
        assert started.get_card_collection() == ["c_tank"]

    def test_listener_cannot_mutate_deck(self, started, bus):
        bus.on(NotificationType.DECK_UPDATED, lambda n: n.payload["deck"].clear())
        started.add_card_to_run_deck("c_cannon")
        assert len(started.get_deck_snapshot()) == 4


class TestRoster:

    def test_add_commander(self, started, store):
        assert started.add_commander_to_roster("cmd_b")
        assert not started.add_commander_to_roster("cmd_b")
        assert not started.add_commander_to_roster("missing")
        assert started.get_run_state().commander_roster == ["cmd_a", "cmd_b"]
        assert store.is_commander_unlocked("cmd_b")


# =============================================================================
# Shop
# =============================================================================


class TestShop:

    def test_offer_prices(self, started):
        offer = started.build_shop_offer(1)
        assert [c.item_id for c in offer.cards] == ["c_soldier"]
        assert offer.cards[0].price == 80
        assert offer.relic.item_id in ("forge", "phoenix")
        assert offer.relic.price == 205
        assert offer.curse_removal_price == 125

    def test_purchase_requires_gold(self, started):
        offer = started.build_shop_offer(1)
        assert not started.purchase(offer.relic)
        assert started.get_gold() == 120

        started.gain_gold(100)
        assert started.purchase(offer.relic)
        assert started.get_gold() == 15
        assert offer.relic.item_id in started.get_run_state().relics

    def test_purchase_card_goes_to_collection(self, started):
        offer = started.build_shop_offer(1)
        assert started.purchase(offer.cards[0])
        assert started.get_card_collection() == ["c_soldier"]
        assert started.get_gold() == 40


# =============================================================================
# Save / load / abandon
# =============================================================================


class TestSaveLoad:

    def fresh(self, catalog, store, config):
        engine = RelicEngine(catalog, rng=random.Random(1))
        return RunProgression(catalog, engine, store, config=config)

    def test_round_trip(self, started, catalog, store, config):
        play(started, "a_start")
        started.move_to_node("a_elite")

        restored = self.fresh(catalog, store, config)
        assert restored.load_saved_run()
        assert restored.get_run_state().to_dict() == started.get_run_state().to_dict()
        assert restored.get_accessible_node_ids() == ["a_elite"]
        assert restored.get_node_snapshot("a_start").is_completed
        assert restored.relic_engine.has_relic("plating")
        assert restored.relic_engine.apply_fortress_hp_modifier(500) == 550

    def test_round_trip_keeps_curses(self, progression, catalog, store, config):
        progression.start_new_run("f_iron", difficulty=3)
        restored = self.fresh(catalog, store, config)
        restored.load_saved_run()
        assert [r.id for r in restored.relic_engine.get_curses()] == ["pact"]
        assert restored.get_run_state().curses == ["pact"]

    def test_load_completed_run(self, started, catalog, store, config):
        finish_stage_zero(started)
        play(started, "b_start")
        play(started, "b_boss")

        restored = self.fresh(catalog, store, config)
        assert restored.load_saved_run()
        assert restored.is_run_complete()
        assert restored.get_accessible_node_ids() == []

    def test_nothing_to_load(self, progression, bus):
        assert not progression.load_saved_run()
        assert not progression.has_active_run()
        assert bus.get_history(NotificationType.RUN_LOADED) == []

    def test_abandon(self, started, store, bus):
        assert started.abandon_run()
        assert not started.has_active_run()
        assert not store.has_saved_run()
        assert started.relic_engine.get_active_relic_ids() == []
        assert len(bus.get_history(NotificationType.RUN_ABANDONED)) == 1
        assert not started.abandon_run()
