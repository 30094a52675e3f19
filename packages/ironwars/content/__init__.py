"""Static game content: stages, relics, cards, commanders, factions."""

from .relics import (
    Relic, RelicEffect, RelicRarity, RelicTrigger,
    SecondaryEffect, SecondaryEffectKind, parse_cost_string,
    RARITY_WEIGHTS, ALL_RELICS,
)
from .stages import MapNode, Stage, NodeType, COMBAT_NODE_TYPES, DEFAULT_STAGES
from .factions import (
    CardDefinition, CardType, CardRarity, Commander, Faction, Fortress,
    StarterBundle, DEFAULT_STARTER,
)
from .catalog import ContentCatalog
