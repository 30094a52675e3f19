"""
Shared pytest fixtures for the IronWars run engine test suite.

This module provides reusable fixtures for:
- A small two-stage content catalog with known relics
- Seeded and fixed-roll RNGs
- Relic engine and run progression wired to an in-memory save store
"""

import copy
import os
import random
import sys

import pytest

# Ensure project root is in path
_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _project_root)

from packages.ironwars import (
    ContentCatalog, EngineConfig, MemorySaveStore, NotificationBus,
    RelicEngine, RunProgression,
)


# =============================================================================
# Test Content
# =============================================================================

# Stage 0:  a_start -> a_elite -> a_boss
#                   \-> a_shop  -/
# Stage 1:  b_start -> b_boss
TEST_CONTENT = {
    "stages": [
        {
            "id": "stage_a", "index": 0, "name": "Outskirts", "boss_node_id": "a_boss",
            "nodes": [
                {"id": "a_start", "type": "battle", "tier": 1, "next_node_ids": ["a_elite", "a_shop"]},
                {"id": "a_elite", "type": "elite", "tier": 2, "next_node_ids": ["a_boss"]},
                {"id": "a_shop", "type": "shop", "tier": 1, "next_node_ids": ["a_boss"]},
                {"id": "a_boss", "type": "boss", "tier": 2, "next_node_ids": []},
            ],
        },
        {
            "id": "stage_b", "index": 1, "name": "Keep", "boss_node_id": "b_boss",
            "nodes": [
                {"id": "b_start", "type": "battle", "tier": 2, "next_node_ids": ["b_boss"]},
                {"id": "b_boss", "type": "boss", "tier": 3, "next_node_ids": []},
            ],
        },
    ],
    # plating is the only non-cursed common/rare, so it is always the starting relic
    "relics": [
        {"id": "plating", "name": "Plating", "rarity": "common",
         "effect": {"type": "fortress_hp", "value": 50}},
        {"id": "forge", "name": "Forge", "rarity": "epic",
         "effect": {"type": "auto_upgrade_reward", "trigger": "on_node_complete"}},
        {"id": "phoenix", "name": "Phoenix", "rarity": "legendary",
         "effect": {"type": "fortress_revive", "trigger": "on_damage_taken", "value": 100}},
        {"id": "pact", "name": "Pact", "rarity": "cursed",
         "effect": {"type": "unit_damage_pct", "percent_value": 25, "cost": "healing_halved"}},
    ],
    "cards": [
        {"id": "c_soldier", "name": "Soldier", "rarity": "common"},
        {"id": "c_tank", "name": "Tank", "rarity": "rare", "cost": 5},
        {"id": "c_cannon", "name": "Cannon", "rarity": "epic", "cost": 6},
    ],
    "commanders": [
        {"id": "cmd_a", "name": "Commander A", "faction_id": "f_iron", "is_starter": True,
         "card_ids": ["c_soldier", "c_soldier", "c_tank"]},
        {"id": "cmd_b", "name": "Commander B", "faction_id": "f_iron",
         "card_ids": ["c_cannon"]},
    ],
    "factions": [
        {"id": "f_iron", "name": "Iron", "fortress_id": "fort_iron", "starting_commander_id": "cmd_a"},
    ],
    "fortresses": [
        {"id": "fort_iron", "name": "Iron Fort", "faction_id": "f_iron", "max_hp": 500},
    ],
}


class FixedRandom(random.Random):
    """random.Random whose random() always returns the same value."""

    def __init__(self, value: float):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value


# =============================================================================
# Content Fixtures
# =============================================================================


@pytest.fixture
def content_data():
    """Mutable copy of the test content dictionary."""
    return copy.deepcopy(TEST_CONTENT)


@pytest.fixture
def catalog(content_data):
    """Catalog over the test content."""
    return ContentCatalog.from_dict(content_data)


@pytest.fixture
def default_catalog():
    """Catalog over the built-in content."""
    return ContentCatalog.default()


# =============================================================================
# RNG Fixtures
# =============================================================================


@pytest.fixture
def rng():
    """RNG seeded with 42 for deterministic tests."""
    return random.Random(42)


@pytest.fixture
def low_roll():
    """RNG that always rolls 0.0 (every chance succeeds)."""
    return FixedRandom(0.0)


@pytest.fixture
def high_roll():
    """RNG that always rolls 0.99 (every chance fails)."""
    return FixedRandom(0.99)


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def bus():
    return NotificationBus()


@pytest.fixture
def store():
    return MemorySaveStore()


@pytest.fixture
def config():
    """One starting relic so the test catalog always yields plating."""
    return EngineConfig(starting_relic_count=1)


@pytest.fixture
def engine(catalog, rng, bus):
    """Relic engine over the test catalog."""
    return RelicEngine(catalog, rng=rng, bus=bus)


@pytest.fixture
def default_engine(default_catalog, rng, bus):
    """Relic engine over the built-in relics."""
    return RelicEngine(default_catalog, rng=rng, bus=bus)


@pytest.fixture
def progression(catalog, engine, store, bus, config, rng):
    """Run progression with no active run."""
    return RunProgression(catalog, engine, store, bus=bus, config=config, rng=rng)


@pytest.fixture
def started(progression):
    """Run progression with a fresh run on the test faction."""
    progression.start_new_run("f_iron")
    return progression
