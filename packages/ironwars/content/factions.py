"""
Factions, fortresses, commanders and cards.

Each faction owns a fortress (starting max HP) and a starter commander.
Commanders own card templates; a run's starting deck is the starter
commander's card list, one instance per entry.

DEFAULT_STARTER is the hardcoded bundle used when catalog lookups fail.
"""

from dataclasses import dataclass, field
from typing import Dict, List
from enum import Enum


class CardType(Enum):
    UNIT = "unit"
    STRUCTURE = "structure"
    SPELL = "spell"
    MODULE = "module"


class CardRarity(Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


@dataclass(frozen=True)
class CardDefinition:
    """A card template."""
    id: str
    name: str
    card_type: CardType = CardType.UNIT
    cost: int = 1
    rarity: CardRarity = CardRarity.COMMON
    description: str = ""


@dataclass(frozen=True)
class Commander:
    """A commander and the card templates it brings."""
    id: str
    name: str
    faction_id: str
    cooldown: int = 2000
    is_starter: bool = False
    card_ids: tuple = ()


@dataclass(frozen=True)
class Fortress:
    id: str
    name: str
    faction_id: str
    max_hp: int


@dataclass(frozen=True)
class Faction:
    id: str
    name: str
    fortress_id: str
    starting_commander_id: str
    description: str = ""


@dataclass(frozen=True)
class StarterBundle:
    """Fallback starting resources."""
    faction_id: str
    fortress_max_hp: int
    commander_id: str
    deck: List[str] = field(default_factory=list)


# ============================================================================
# CARDS
# ============================================================================

ALL_CARDS: Dict[str, CardDefinition] = {
    card.id: card for card in [
        CardDefinition("card_cog_soldier", "Feral Warrior", CardType.UNIT, 2),
        CardDefinition("card_cog_railgunner", "Railgunner", CardType.UNIT, 3),
        CardDefinition("card_aegis_tank", "Aegis Tank", CardType.UNIT, 5, CardRarity.RARE),
        CardDefinition("card_medic_drone", "Medic Druid", CardType.UNIT, 3, CardRarity.RARE),
        CardDefinition("card_thunder_cannon", "Thunder Mage", CardType.UNIT, 6, CardRarity.EPIC),
        CardDefinition("card_overclock", "Overclock", CardType.SPELL, 1),
        CardDefinition("card_barricade", "Barricade", CardType.STRUCTURE, 2),
        CardDefinition("card_shield_module", "Shield Module", CardType.MODULE, 2, CardRarity.RARE),
        CardDefinition("card_orbital_strike", "Orbital Strike", CardType.SPELL, 4, CardRarity.EPIC),
        CardDefinition("card_titan_frame", "Titan Frame", CardType.UNIT, 8, CardRarity.LEGENDARY),
        CardDefinition("card_jade_monk", "Jade Monk", CardType.UNIT, 2),
        CardDefinition("card_crane_archer", "Crane Archer", CardType.UNIT, 3),
        CardDefinition("card_chi_burst", "Chi Burst", CardType.SPELL, 2, CardRarity.RARE),
        CardDefinition("card_dragon_guard", "Dragon Guard", CardType.UNIT, 6, CardRarity.EPIC),
    ]
}

# ============================================================================
# COMMANDERS
# ============================================================================

ALL_COMMANDERS: Dict[str, Commander] = {
    cmd.id: cmd for cmd in [
        Commander(
            "commander_valen", "Director Valen", "cog_dominion", cooldown=2000, is_starter=True,
            card_ids=("card_cog_soldier", "card_cog_soldier", "card_cog_soldier",
                      "card_cog_railgunner", "card_cog_railgunner",
                      "card_overclock", "card_barricade", "card_aegis_tank"),
        ),
        Commander(
            "commander_ironjaw", "Marshal Ironjaw", "cog_dominion", cooldown=2500,
            card_ids=("card_thunder_cannon", "card_shield_module", "card_orbital_strike"),
        ),
        Commander(
            "commander_mei", "Abbess Mei", "jade_dynasty", cooldown=1800, is_starter=True,
            card_ids=("card_jade_monk", "card_jade_monk", "card_jade_monk",
                      "card_crane_archer", "card_crane_archer", "card_chi_burst"),
        ),
        Commander(
            "commander_long", "General Long", "jade_dynasty", cooldown=2200,
            card_ids=("card_dragon_guard", "card_chi_burst"),
        ),
    ]
}

# ============================================================================
# FACTIONS & FORTRESSES
# ============================================================================

ALL_FORTRESSES: Dict[str, Fortress] = {
    f.id: f for f in [
        Fortress("iron_citadel", "Iron Citadel", "cog_dominion", 500),
        Fortress("jade_palace", "Jade Palace", "jade_dynasty", 450),
    ]
}

ALL_FACTIONS: Dict[str, Faction] = {
    f.id: f for f in [
        Faction("cog_dominion", "Cog Dominion", "iron_citadel", "commander_valen",
                "Industrial war machines and disciplined infantry."),
        Faction("jade_dynasty", "Jade Dynasty", "jade_palace", "commander_mei",
                "Monks and archers who bend chi to their will."),
    ]
}

DEFAULT_STARTER = StarterBundle(
    faction_id="cog_dominion",
    fortress_max_hp=500,
    commander_id="commander_valen",
    deck=list(ALL_COMMANDERS["commander_valen"].card_ids),
)
