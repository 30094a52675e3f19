"""
Run State - Complete state of an IronWars run in progress.

Tracks everything needed to:
1. Resume a run exactly from a save
2. Re-derive fortress max HP whenever the relic set changes
3. Give presentation layers a full snapshot of the run

RunState is owned by RunProgression and never handed out by reference;
every read goes through copy().
"""

import re
from copy import deepcopy
from dataclasses import dataclass, field
from typing import List, Optional

_SERIAL_SUFFIX = re.compile(r"_\d+$")


def base_card_id(card_id: str) -> str:
    """
    Strip up to two trailing _<digits> suffixes.

    "card_cog_soldier_3" -> "card_cog_soldier"
    "card_cog_soldier_3_1" -> "card_cog_soldier"
    """
    stripped = _SERIAL_SUFFIX.sub("", card_id)
    return _SERIAL_SUFFIX.sub("", stripped)


@dataclass
class CardInstance:
    """
    One card copy in the run deck.

    Instances are unique per copy: id is "<template_id>_<serial>" so two
    copies of the same template can be upgraded or removed independently.
    """
    id: str
    template_id: str
    upgraded: bool = False

    def __repr__(self) -> str:
        suffix = "+" if self.upgraded else ""
        return f"{self.id}{suffix}"

    def copy(self) -> 'CardInstance':
        return CardInstance(id=self.id, template_id=self.template_id, upgraded=self.upgraded)

    def to_dict(self) -> dict:
        return {"id": self.id, "template_id": self.template_id, "upgraded": self.upgraded}

    @classmethod
    def from_dict(cls, data: dict) -> 'CardInstance':
        return cls(
            id=data["id"],
            template_id=data.get("template_id") or base_card_id(data["id"]),
            upgraded=data.get("upgraded", False),
        )


@dataclass
class RunState:
    """
    Complete state of a run in progress.

    relics holds every active relic id (curses included); curses is the
    cursed subset. base_fortress_hp is the faction fortress HP before relic
    modifiers, so fortress_max_hp can be re-derived on relic changes.
    """
    faction_id: str
    difficulty: int = 0
    current_stage_index: int = 0
    current_node_id: Optional[str] = None
    completed_node_ids: List[str] = field(default_factory=list)

    # Fortress
    fortress_hp: int = 0
    fortress_max_hp: int = 0
    base_fortress_hp: int = 0

    # Economy & cards
    gold: int = 0
    deck: List[CardInstance] = field(default_factory=list)
    card_collection: List[str] = field(default_factory=list)

    # Relics
    relics: List[str] = field(default_factory=list)
    curses: List[str] = field(default_factory=list)

    commander_roster: List[str] = field(default_factory=list)

    is_complete: bool = False
    next_card_serial: int = 0

    @property
    def fortress_hp_percent(self) -> float:
        if self.fortress_max_hp <= 0:
            return 0.0
        return self.fortress_hp / self.fortress_max_hp * 100

    def allocate_card_id(self, template_id: str) -> str:
        """Next unique instance id for a template."""
        self.next_card_serial += 1
        return f"{template_id}_{self.next_card_serial}"

    def copy(self) -> 'RunState':
        return deepcopy(self)

    def to_dict(self) -> dict:
        """Serialize to dictionary (for saving)."""
        return {
            "faction_id": self.faction_id,
            "difficulty": self.difficulty,
            "current_stage_index": self.current_stage_index,
            "current_node_id": self.current_node_id,
            "completed_node_ids": list(self.completed_node_ids),
            "fortress_hp": self.fortress_hp,
            "fortress_max_hp": self.fortress_max_hp,
            "base_fortress_hp": self.base_fortress_hp,
            "gold": self.gold,
            "deck": [c.to_dict() for c in self.deck],
            "card_collection": list(self.card_collection),
            "relics": list(self.relics),
            "curses": list(self.curses),
            "commander_roster": list(self.commander_roster),
            "is_complete": self.is_complete,
            "next_card_serial": self.next_card_serial,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'RunState':
        """Deserialize from dictionary (for loading)."""
        deck = [CardInstance.from_dict(c) for c in data.get("deck", [])]
        max_hp = data.get("fortress_max_hp", 0)
        return cls(
            faction_id=data["faction_id"],
            difficulty=data.get("difficulty", 0),
            current_stage_index=data.get("current_stage_index", 0),
            current_node_id=data.get("current_node_id"),
            completed_node_ids=list(data.get("completed_node_ids", [])),
            fortress_hp=data.get("fortress_hp", max_hp),
            fortress_max_hp=max_hp,
            base_fortress_hp=data.get("base_fortress_hp", max_hp),
            gold=data.get("gold", 0),
            deck=deck,
            card_collection=list(data.get("card_collection", [])),
            relics=list(data.get("relics", [])),
            curses=list(data.get("curses", [])),
            commander_roster=list(data.get("commander_roster", [])),
            is_complete=data.get("is_complete", False),
            next_card_serial=data.get("next_card_serial", _max_serial(deck)),
        )


def _max_serial(deck: List[CardInstance]) -> int:
    serials = [int(m.group()[1:]) for m in (_SERIAL_SUFFIX.search(c.id) for c in deck) if m]
    return max(serials, default=0)
