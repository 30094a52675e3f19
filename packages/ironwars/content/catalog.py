"""
Content Catalog - read-only lookups by id.

The catalog is the only source of stage graphs, relic definitions, cards,
commanders, factions and fortresses. Nothing in the engine mutates it;
stage lookups hand out copies so callers can never edit catalog nodes.

Usage:
    catalog = ContentCatalog.default()
    catalog = ContentCatalog.from_json("content/ironwars.json")

JSON layout (every section optional, missing sections use the built-ins):
    {
      "stages":     [{"id", "index", "name", "boss_node_id", "next_stage_id",
                      "nodes": [{"id", "type", "tier", "next_node_ids", ...}]}],
      "relics":     [{"id", "name", "rarity", "effect": {"type", "trigger",
                      "value", "percent_value", "condition", "cost"}}],
      "cards":      [{"id", "name", "card_type", "cost", "rarity"}],
      "commanders": [{"id", "name", "faction_id", "card_ids", "is_starter"}],
      "factions":   [{"id", "name", "fortress_id", "starting_commander_id"}],
      "fortresses": [{"id", "name", "faction_id", "max_hp"}]
    }
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from ..errors import ContentError
from .factions import (
    ALL_CARDS, ALL_COMMANDERS, ALL_FACTIONS, ALL_FORTRESSES,
    CardDefinition, CardRarity, CardType, Commander, Faction, Fortress,
)
from .relics import (
    ALL_RELICS, Relic, RelicEffect, RelicRarity, RelicTrigger,
    SecondaryEffect, SecondaryEffectKind, parse_cost_string,
)
from .stages import DEFAULT_STAGES, MapNode, NodeType, Stage

logger = logging.getLogger(__name__)


class ContentCatalog:
    """Immutable content lookups."""

    def __init__(
        self,
        stages: Iterable[Stage],
        relics: Iterable[Relic],
        cards: Iterable[CardDefinition],
        commanders: Iterable[Commander],
        factions: Iterable[Faction],
        fortresses: Iterable[Fortress],
    ):
        self._stages_by_index: Dict[int, Stage] = {}
        self._stages_by_id: Dict[str, Stage] = {}
        for stage in stages:
            stage = stage.copy()
            self._stages_by_index[stage.index] = stage
            self._stages_by_id[stage.id] = stage

        self._relics: Dict[str, Relic] = {r.id: r for r in relics}
        self._cards: Dict[str, CardDefinition] = {c.id: c for c in cards}
        self._commanders: Dict[str, Commander] = {c.id: c for c in commanders}
        self._factions: Dict[str, Faction] = {f.id: f for f in factions}
        self._fortresses: Dict[str, Fortress] = {f.id: f for f in fortresses}

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def default(cls) -> 'ContentCatalog':
        """Catalog over the built-in content."""
        return cls(
            stages=DEFAULT_STAGES,
            relics=ALL_RELICS.values(),
            cards=ALL_CARDS.values(),
            commanders=ALL_COMMANDERS.values(),
            factions=ALL_FACTIONS.values(),
            fortresses=ALL_FORTRESSES.values(),
        )

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> 'ContentCatalog':
        """Load a catalog from a JSON content file."""
        path = Path(path)
        try:
            data = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise ContentError(f"Cannot read content file {path}: {e}") from e
        catalog = cls.from_dict(data)
        logger.info(
            "Loaded content from %s: %d stages, %d relics, %d cards",
            path, len(catalog._stages_by_index), len(catalog._relics), len(catalog._cards),
        )
        return catalog

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ContentCatalog':
        """Build a catalog from plain data. Missing sections use the built-ins."""
        try:
            stages = ([_parse_stage(s, i) for i, s in enumerate(data["stages"])]
                      if "stages" in data else DEFAULT_STAGES)
            relics = ([_parse_relic(r) for r in data["relics"]]
                      if "relics" in data else ALL_RELICS.values())
            cards = ([_parse_card(c) for c in data["cards"]]
                     if "cards" in data else ALL_CARDS.values())
            commanders = ([_parse_commander(c) for c in data["commanders"]]
                          if "commanders" in data else ALL_COMMANDERS.values())
            factions = ([Faction(**f) for f in data["factions"]]
                        if "factions" in data else ALL_FACTIONS.values())
            fortresses = ([Fortress(**f) for f in data["fortresses"]]
                          if "fortresses" in data else ALL_FORTRESSES.values())
        except (KeyError, TypeError, ValueError) as e:
            raise ContentError(f"Invalid content definition: {e}") from e

        return cls(stages, relics, cards, commanders, factions, fortresses)

    # =========================================================================
    # Stages
    # =========================================================================

    def get_all_stages(self) -> List[Stage]:
        """All stages sorted by index (copies)."""
        return [self._stages_by_index[i].copy() for i in sorted(self._stages_by_index)]

    def get_stage_by_index(self, index: int) -> Optional[Stage]:
        stage = self._stages_by_index.get(index)
        return stage.copy() if stage else None

    def get_stage_by_id(self, stage_id: str) -> Optional[Stage]:
        stage = self._stages_by_id.get(stage_id)
        return stage.copy() if stage else None

    # =========================================================================
    # Relics
    # =========================================================================

    def get_relic(self, relic_id: str) -> Optional[Relic]:
        return self._relics.get(relic_id)

    def get_all_relics(self) -> List[Relic]:
        return list(self._relics.values())

    # =========================================================================
    # Cards & commanders
    # =========================================================================

    def get_card(self, card_id: str) -> Optional[CardDefinition]:
        return self._cards.get(card_id)

    def get_all_cards(self) -> List[CardDefinition]:
        return list(self._cards.values())

    def get_cards_by_rarity(self, rarity: Union[CardRarity, str]) -> List[CardDefinition]:
        rarity = CardRarity(rarity) if isinstance(rarity, str) else rarity
        return [c for c in self._cards.values() if c.rarity == rarity]

    def get_commander(self, commander_id: str) -> Optional[Commander]:
        return self._commanders.get(commander_id)

    def get_all_commanders(self) -> List[Commander]:
        return list(self._commanders.values())

    def get_cards_for_commander(self, commander_id: str) -> List[CardDefinition]:
        """Card templates owned by a commander, in deck order (duplicates kept)."""
        commander = self._commanders.get(commander_id)
        if commander is None:
            return []
        return [self._cards[cid] for cid in commander.card_ids if cid in self._cards]

    def get_starter_commander(self, faction_id: str) -> Optional[Commander]:
        faction = self._factions.get(faction_id)
        if faction and faction.starting_commander_id in self._commanders:
            return self._commanders[faction.starting_commander_id]
        for commander in self._commanders.values():
            if commander.faction_id == faction_id and commander.is_starter:
                return commander
        return None

    # =========================================================================
    # Factions
    # =========================================================================

    def get_faction(self, faction_id: str) -> Optional[Faction]:
        return self._factions.get(faction_id)

    def get_all_factions(self) -> List[Faction]:
        return list(self._factions.values())

    def get_fortress(self, fortress_id: str) -> Optional[Fortress]:
        return self._fortresses.get(fortress_id)

    def get_fortress_for_faction(self, faction_id: str) -> Optional[Fortress]:
        faction = self._factions.get(faction_id)
        if faction is None:
            return None
        return self._fortresses.get(faction.fortress_id)


# =============================================================================
# Parsing helpers
# =============================================================================

def _parse_stage(data: Dict[str, Any], position: int) -> Stage:
    index = int(data.get("index", position))
    nodes = [_parse_node(n, index) for n in data.get("nodes", [])]
    boss_node_id = data.get("boss_node_id") or next(
        (n.id for n in nodes if n.type == NodeType.BOSS), ""
    )
    return Stage(
        id=data.get("id", f"stage_{index}"),
        index=index,
        name=data.get("name", f"Stage {index + 1}"),
        boss_node_id=boss_node_id,
        nodes=nodes,
        next_stage_id=data.get("next_stage_id") or None,
        theme=data.get("theme"),
    )


def _number(value: Any, name: str) -> Union[int, float]:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"{name} must be a number, got {value!r}")
    number = float(value)
    return int(number) if number.is_integer() else number


def _tier(value: Any, name: str) -> int:
    tier = int(value)
    if tier < 1:
        raise ValueError(f"{name} must be >= 1, got {tier}")
    return tier


def _parse_node(data: Dict[str, Any], stage_index: int) -> MapNode:
    tier = _tier(data.get("tier", 1), f"Node {data.get('id')} tier")
    node_type = NodeType(data.get("type", NodeType.BATTLE.value))
    return MapNode(
        id=data["id"],
        type=node_type,
        stage_index=stage_index,
        tier=tier,
        next_node_ids=list(data.get("next_node_ids", [])),
        encounter_id=data.get("encounter_id") or None,
        reward_tier=_tier(data.get("reward_tier", tier), f"Node {data['id']} reward_tier"),
        pos_x=data.get("pos_x", 0),
        pos_y=data.get("pos_y", 0),
        icon_key=data.get("icon_key", f"node_{node_type.value}"),
    )


def _parse_relic(data: Dict[str, Any]) -> Relic:
    effect_data = data.get("effect", {"type": "custom"})
    if "costs" in effect_data:
        costs = tuple(
            SecondaryEffect(SecondaryEffectKind(c["kind"]), int(c.get("magnitude", 0)))
            for c in effect_data["costs"]
        )
    else:
        costs = parse_cost_string(effect_data.get("cost"))

    effect = RelicEffect(
        type=effect_data["type"],
        trigger=RelicTrigger(effect_data.get("trigger") or RelicTrigger.PASSIVE.value),
        value=_number(effect_data.get("value", 0), f"Relic {data.get('id')} value"),
        percent_value=_number(effect_data.get("percent_value", 0),
                              f"Relic {data.get('id')} percent_value"),
        condition=effect_data.get("condition") or None,
        costs=costs,
        spawn_id=effect_data.get("spawn_id"),
    )
    return Relic(
        id=data["id"],
        name=data.get("name", data["id"]),
        rarity=RelicRarity(data.get("rarity", RelicRarity.COMMON.value)),
        effect=effect,
        description=data.get("description", ""),
        is_cursed=bool(data.get("is_cursed", False)),
        price=int(data.get("price", 0)),
    )


def _parse_card(data: Dict[str, Any]) -> CardDefinition:
    return CardDefinition(
        id=data["id"],
        name=data.get("name", data["id"]),
        card_type=CardType(data.get("card_type", CardType.UNIT.value)),
        cost=int(data.get("cost", 1)),
        rarity=CardRarity(data.get("rarity", CardRarity.COMMON.value)),
        description=data.get("description", ""),
    )


def _parse_commander(data: Dict[str, Any]) -> Commander:
    return Commander(
        id=data["id"],
        name=data.get("name", data["id"]),
        faction_id=data["faction_id"],
        cooldown=int(data.get("cooldown", 2000)),
        is_starter=bool(data.get("is_starter", False)),
        card_ids=tuple(data.get("card_ids", [])),
    )
