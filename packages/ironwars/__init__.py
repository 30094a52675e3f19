"""
IronWars Run Engine

Roguelike run progression for IronWars: a stage/node-graph state machine plus
a relic modifier and trigger engine. Presentation (scenes, combat loop, UI)
lives elsewhere and talks to this package through RunProgression,
RelicEngine and the NotificationBus.

Core subsystems:
- content: Stages, map nodes, relics, cards, commanders, factions, catalog
- registry: Relic effect handlers, conditions, passive aggregation
- generation: Weighted relic rewards, shop offers
- state: Run-local stage graph, run state
- relic_engine / progression: the two engines
- persistence / config / events: save stores, settings, notifications

Usage:
    from packages.ironwars import (
        ContentCatalog, RelicEngine, RunProgression, MemorySaveStore, NotificationBus,
    )

    catalog = ContentCatalog.default()
    bus = NotificationBus()
    engine = RelicEngine(catalog, rng=random.Random(1), bus=bus)
    run = RunProgression(catalog, engine, MemorySaveStore(), bus=bus)
    run.start_new_run("cog_dominion")
"""

__version__ = "0.1.0"

# Errors
from .errors import ContentError, GraphIntegrityError

# Content
from .content import (
    ContentCatalog, MapNode, Stage, NodeType,
    Relic, RelicEffect, RelicRarity, RelicTrigger, SecondaryEffect, SecondaryEffectKind,
    CardDefinition, Commander, Faction, Fortress,
)

# Relic engine
from .registry import RelicContext
from .registry.relics_passive import RelicModifiers
from .relic_engine import RelicEngine

# Run state & progression
from .state import StageGraph, RunState, CardInstance
from .progression import RunProgression, NodeCompletion, ShopOffer, ShopItem

# Ambient
from .events import NotificationBus, NotificationType, Notification
from .persistence import JsonSaveStore, MemorySaveStore, MetaProgression, SaveStore
from .config import EngineConfig, load_config
