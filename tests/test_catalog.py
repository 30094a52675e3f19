"""
Content Catalog Tests

Tests built-in content, JSON/dict loading and read-only stage lookups.
"""

import json

import pytest

from packages.ironwars import ContentCatalog, ContentError, NodeType, RelicRarity, RelicTrigger
from packages.ironwars.content.relics import SecondaryEffectKind, parse_cost_string


# =============================================================================
# Built-in content
# =============================================================================


class TestDefaultCatalog:
    """Built-in content is complete and internally consistent."""

    def test_stages_sorted_by_index(self, default_catalog):
        stages = default_catalog.get_all_stages()
        assert [s.index for s in stages] == sorted(s.index for s in stages)
        assert len(stages) == 3

    def test_every_stage_has_boss(self, default_catalog):
        for stage in default_catalog.get_all_stages():
            boss = stage.get_node(stage.boss_node_id)
            assert boss is not None
            assert boss.type == NodeType.BOSS

    def test_every_faction_resolves(self, default_catalog):
        for faction in default_catalog.get_all_factions():
            assert default_catalog.get_fortress_for_faction(faction.id) is not None
            commander = default_catalog.get_starter_commander(faction.id)
            assert commander is not None
            assert default_catalog.get_cards_for_commander(commander.id)

    def test_curses_are_cursed(self, default_catalog):
        curses = [r for r in default_catalog.get_all_relics() if r.rarity == RelicRarity.CURSED]
        assert curses
        assert all(r.is_cursed for r in curses)

    def test_unknown_ids_return_none(self, default_catalog):
        assert default_catalog.get_relic("nope") is None
        assert default_catalog.get_card("nope") is None
        assert default_catalog.get_stage_by_index(99) is None
        assert default_catalog.get_stage_by_id("nope") is None
        assert default_catalog.get_fortress_for_faction("nope") is None
        assert default_catalog.get_cards_for_commander("nope") == []


class TestStageCopies:
    """Stage lookups never expose catalog nodes."""

    def test_mutating_copy_does_not_leak(self, catalog):
        stage = catalog.get_stage_by_index(0)
        stage.nodes[0].is_completed = True
        stage.nodes[0].next_node_ids.append("bogus")

        fresh = catalog.get_stage_by_index(0)
        assert fresh.nodes[0].is_completed is False
        assert "bogus" not in fresh.nodes[0].next_node_ids

    def test_lookup_by_id_matches_index(self, catalog):
        assert catalog.get_stage_by_id("stage_b").index == 1


# =============================================================================
# Loading
# =============================================================================


class TestFromDict:
    """Plain data loading."""

    def test_parses_test_content(self, catalog):
        assert catalog.get_relic("phoenix").effect.trigger == RelicTrigger.DAMAGE_TAKEN
        assert catalog.get_fortress_for_faction("f_iron").max_hp == 500
        assert [c.id for c in catalog.get_cards_for_commander("cmd_a")] == [
            "c_soldier", "c_soldier", "c_tank",
        ]
        assert catalog.get_starter_commander("f_iron").id == "cmd_a"

    def test_legacy_cost_string_parsed(self, catalog):
        pact = catalog.get_relic("pact")
        assert pact.is_cursed
        assert pact.effect.has_cost(SecondaryEffectKind.HEALING_HALVED)

    def test_missing_sections_use_builtins(self):
        catalog = ContentCatalog.from_dict({"relics": []})
        assert catalog.get_all_relics() == []
        assert len(catalog.get_all_stages()) == 3
        assert catalog.get_faction("cog_dominion") is not None

    def test_reward_tier_defaults_to_tier(self, catalog):
        node = catalog.get_stage_by_index(1).get_node("b_boss")
        assert node.reward_tier == 3

    def test_invalid_enum_raises_content_error(self, content_data):
        content_data["relics"][0]["rarity"] = "shiny"
        with pytest.raises(ContentError):
            ContentCatalog.from_dict(content_data)

    @pytest.mark.parametrize("field", ["tier", "reward_tier"])
    def test_tier_below_one_raises_content_error(self, content_data, field):
        content_data["stages"][0]["nodes"][0][field] = 0
        with pytest.raises(ContentError, match=field):
            ContentCatalog.from_dict(content_data)

    @pytest.mark.parametrize("field", ["value", "percent_value"])
    def test_non_numeric_effect_value_raises_content_error(self, content_data, field):
        content_data["relics"][0]["effect"][field] = {"amount": 50}
        with pytest.raises(ContentError, match=field):
            ContentCatalog.from_dict(content_data)

    def test_numeric_strings_are_coerced(self, content_data):
        content_data["relics"][0]["effect"]["value"] = "50"
        catalog = ContentCatalog.from_dict(content_data)
        assert catalog.get_relic("plating").effect.value == 50

    def test_missing_id_raises_content_error(self, content_data):
        del content_data["cards"][0]["id"]
        with pytest.raises(ContentError):
            ContentCatalog.from_dict(content_data)


class TestFromJson:
    """File loading."""

    def test_loads_file(self, tmp_path, content_data):
        path = tmp_path / "content.json"
        path.write_text(json.dumps(content_data))
        catalog = ContentCatalog.from_json(path)
        assert catalog.get_relic("plating").effect.value == 50

    def test_missing_file(self, tmp_path):
        with pytest.raises(ContentError):
            ContentCatalog.from_json(tmp_path / "missing.json")

    def test_bad_json(self, tmp_path):
        path = tmp_path / "content.json"
        path.write_text("{not json")
        with pytest.raises(ContentError):
            ContentCatalog.from_json(path)


class TestCostParsing:
    """Legacy free-text cost strings."""

    def test_multiple_costs(self):
        costs = parse_cost_string("healing_halved, fortress_damage_per_wave_10")
        assert [(c.kind, c.magnitude) for c in costs] == [
            (SecondaryEffectKind.HEALING_HALVED, 0),
            (SecondaryEffectKind.FORTRESS_DAMAGE_PER_WAVE, 10),
        ]

    def test_per_wave_not_confused_with_fortress_damage(self):
        costs = parse_cost_string("fortress_damage_per_wave_5")
        assert len(costs) == 1
        assert costs[0].kind == SecondaryEffectKind.FORTRESS_DAMAGE_PER_WAVE

    def test_empty(self):
        assert parse_cost_string(None) == ()
        assert parse_cost_string("") == ()
        assert parse_cost_string("something else") == ()
