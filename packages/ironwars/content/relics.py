"""
IronWars Relic Definitions.

Relic structure:
- id: Unique identifier string
- rarity: COMMON, RARE, EPIC, LEGENDARY, MYTHIC, CURSED
- effect: one RelicEffect descriptor (type tag + trigger + numbers)

Triggers (when the effect is evaluated):
- passive: folded into the cached modifier aggregate (unless conditional)
- on_run_start: once, before the run state is built
- on_gold_gain: every gold gain
- on_node_complete: every completed map node
- on_damage_taken: fortress damage
- on_wave_end, on_shop_enter, on_unit_death, on_damage_dealt

Secondary effects (drawbacks):
- Stored as (kind, magnitude) pairs on the effect
- Aggregate kinds fold into the modifier set (healing_halved, hand_size_reduce...)
- Context kinds feed trigger results (fortress_damage, fortress_damage_per_wave)
"""

from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple
from enum import Enum
import re


class RelicRarity(Enum):
    """Relic rarities. Weighted selection uses RARITY_WEIGHTS."""
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"
    MYTHIC = "mythic"
    CURSED = "cursed"


RARITY_WEIGHTS: Dict[RelicRarity, int] = {
    RelicRarity.COMMON: 50,
    RelicRarity.RARE: 30,
    RelicRarity.EPIC: 15,
    RelicRarity.LEGENDARY: 4,
    RelicRarity.MYTHIC: 1,
    RelicRarity.CURSED: 0,
}

# Weight for rarities missing from the table
DEFAULT_RARITY_WEIGHT = 10


class RelicTrigger(Enum):
    """Run events at which relic effects are evaluated."""
    PASSIVE = "passive"
    RUN_START = "on_run_start"
    GOLD_GAIN = "on_gold_gain"
    NODE_COMPLETE = "on_node_complete"
    DAMAGE_TAKEN = "on_damage_taken"
    WAVE_END = "on_wave_end"
    SHOP_ENTER = "on_shop_enter"
    UNIT_DEATH = "on_unit_death"
    DAMAGE_DEALT = "on_damage_dealt"


class SecondaryEffectKind(Enum):
    """Drawbacks attached to a relic effect."""
    # Folded into the modifier aggregate
    HEALING_HALVED = "healing_halved"
    UNIT_SPEED_REDUCE = "unit_speed_reduce"
    HAND_SIZE_REDUCE = "hand_size_reduce"
    SHOP_COST_INCREASE = "shop_cost_increase"
    COMMANDER_COOLDOWN_INCREASE = "commander_cooldown_increase"

    # Written into trigger contexts
    FORTRESS_DAMAGE = "fortress_damage"
    FORTRESS_DAMAGE_PER_WAVE = "fortress_damage_per_wave"


@dataclass(frozen=True)
class SecondaryEffect:
    """A structured relic drawback."""
    kind: SecondaryEffectKind
    magnitude: int = 0


# Longest kinds first so "fortress_damage_per_wave_10" never matches "fortress_damage_"
_COST_PATTERN = re.compile(
    r"(fortress_damage_per_wave|fortress_damage|unit_speed_reduce|hand_size_reduce"
    r"|shop_cost_increase|commander_cooldown_increase|healing_halved)(?:_(\d+))?"
)


def parse_cost_string(cost: Optional[str]) -> Tuple[SecondaryEffect, ...]:
    """
    Convert a legacy free-text cost string into secondary effects.

    Used once at content load time. Unknown fragments are ignored.

    Example:
        "healing_halved, fortress_damage_per_wave_10" ->
        (SecondaryEffect(HEALING_HALVED, 0), SecondaryEffect(FORTRESS_DAMAGE_PER_WAVE, 10))
    """
    if not cost:
        return ()
    effects = []
    for match in _COST_PATTERN.finditer(cost.lower()):
        kind = SecondaryEffectKind(match.group(1))
        magnitude = int(match.group(2)) if match.group(2) else 0
        effects.append(SecondaryEffect(kind=kind, magnitude=magnitude))
    return tuple(effects)


@dataclass(frozen=True)
class RelicEffect:
    """The single effect a relic provides."""
    type: str
    trigger: RelicTrigger = RelicTrigger.PASSIVE
    value: float = 0
    percent_value: float = 0
    condition: Optional[str] = None
    costs: Tuple[SecondaryEffect, ...] = ()
    spawn_id: Optional[str] = None

    def cost_magnitude(self, kind: SecondaryEffectKind) -> int:
        """Sum of magnitudes of all secondary effects of a kind."""
        return sum(c.magnitude for c in self.costs if c.kind == kind)

    def has_cost(self, kind: SecondaryEffectKind) -> bool:
        return any(c.kind == kind for c in self.costs)


@dataclass(frozen=True)
class Relic:
    """A relic definition. Catalog-owned and immutable."""
    id: str
    name: str
    rarity: RelicRarity
    effect: RelicEffect
    description: str = ""
    is_cursed: bool = False
    price: int = 0

    def __post_init__(self):
        if self.rarity == RelicRarity.CURSED and not self.is_cursed:
            object.__setattr__(self, "is_cursed", True)

    def copy(self) -> 'Relic':
        return replace(self)


# ============================================================================
# COMMON RELICS
# ============================================================================

IRON_PLATING = Relic(
    id="iron_plating", name="Iron Plating", rarity=RelicRarity.COMMON,
    effect=RelicEffect(type="fortress_hp", value=50),
    description="Fortress gains 50 max HP.",
)

SHARPENED_STEEL = Relic(
    id="sharpened_steel", name="Sharpened Steel", rarity=RelicRarity.COMMON,
    effect=RelicEffect(type="unit_damage_pct", percent_value=10),
    description="Units deal 10% more damage.",
)

TEMPERED_ARMOR = Relic(
    id="tempered_armor", name="Tempered Armor", rarity=RelicRarity.COMMON,
    effect=RelicEffect(type="unit_armor", value=2),
    description="Units gain 2 armor.",
)

SWIFT_BOOTS = Relic(
    id="swift_boots", name="Swift Boots", rarity=RelicRarity.COMMON,
    effect=RelicEffect(type="unit_move_speed_pct", percent_value=15),
    description="Units move 15% faster.",
)

MERCHANT_SEAL = Relic(
    id="merchant_seal", name="Merchant Seal", rarity=RelicRarity.COMMON,
    effect=RelicEffect(type="gold_gain_pct", percent_value=20),
    description="Gain 20% more gold.",
)

FIELD_MEDIC = Relic(
    id="field_medic", name="Field Medic Kit", rarity=RelicRarity.COMMON,
    effect=RelicEffect(type="post_battle_heal", trigger=RelicTrigger.NODE_COMPLETE, value=20),
    description="Heal the fortress 20 HP after every node.",
)

SEED_FUND = Relic(
    id="seed_fund", name="Seed Fund", rarity=RelicRarity.COMMON,
    effect=RelicEffect(type="gain_gold_flat", trigger=RelicTrigger.RUN_START, value=75),
    description="Start the run with 75 extra gold.",
)

# ============================================================================
# RARE RELICS
# ============================================================================

REINFORCED_WALLS = Relic(
    id="reinforced_walls", name="Reinforced Walls", rarity=RelicRarity.RARE,
    effect=RelicEffect(type="fortress_hp_pct", percent_value=10),
    description="Fortress max HP +10%.",
)

RAPID_LOADER = Relic(
    id="rapid_loader", name="Rapid Loader", rarity=RelicRarity.RARE,
    effect=RelicEffect(type="unit_attack_speed_pct", percent_value=10),
    description="Units attack 10% faster.",
)

LONG_SCOPE = Relic(
    id="long_scope", name="Long Scope", rarity=RelicRarity.RARE,
    effect=RelicEffect(type="unit_range", value=40, condition="ranged"),
    description="Ranged units gain 40 range.",
)

GUILD_CARD = Relic(
    id="guild_card", name="Guild Card", rarity=RelicRarity.RARE,
    effect=RelicEffect(type="shop_discount_pct", percent_value=20),
    description="Shop prices are 20% lower.",
)

TACTICAL_MANUAL = Relic(
    id="tactical_manual", name="Tactical Manual", rarity=RelicRarity.RARE,
    effect=RelicEffect(type="card_draw", value=1),
    description="Draw 1 additional card.",
)

LUCKY_COIN = Relic(
    id="lucky_coin", name="Lucky Coin", rarity=RelicRarity.RARE,
    effect=RelicEffect(type="gold_double_chance", trigger=RelicTrigger.NODE_COMPLETE,
                       percent_value=25),
    description="25% chance to double node gold.",
)

LAST_STAND = Relic(
    id="last_stand", name="Last Stand", rarity=RelicRarity.RARE,
    effect=RelicEffect(type="unit_damage_pct", percent_value=30, condition="unit_hp_below_50"),
    description="Units below 50% HP deal 30% more damage.",
)

# ============================================================================
# EPIC RELICS
# ============================================================================

WAR_BANNER = Relic(
    id="war_banner", name="War Banner", rarity=RelicRarity.EPIC,
    effect=RelicEffect(type="commander_cooldown_pct", percent_value=-20),
    description="Commander skills recharge 20% faster.",
)

COMMANDER_SIGIL = Relic(
    id="commander_sigil", name="Commander Sigil", rarity=RelicRarity.EPIC,
    effect=RelicEffect(type="commander_damage_pct", percent_value=25),
    description="Commander skills deal 25% more damage.",
)

MASTER_FORGE = Relic(
    id="master_forge", name="Master Forge", rarity=RelicRarity.EPIC,
    effect=RelicEffect(type="auto_upgrade_reward", trigger=RelicTrigger.NODE_COMPLETE),
    description="The first reward each stage is upgraded.",
)

TROPHY_CASE = Relic(
    id="trophy_case", name="Trophy Case", rarity=RelicRarity.EPIC,
    effect=RelicEffect(type="boss_reward_bonus", trigger=RelicTrigger.NODE_COMPLETE, value=1),
    description="Bosses grant an extra rare card.",
)

HIGH_GROUND = Relic(
    id="high_ground", name="High Ground", rarity=RelicRarity.EPIC,
    effect=RelicEffect(type="unit_armor", value=4, condition="fortress_hp_above_75"),
    description="Units gain 4 armor while the fortress is above 75% HP.",
)

# ============================================================================
# LEGENDARY / MYTHIC RELICS
# ============================================================================

PHOENIX_FEATHER = Relic(
    id="phoenix_feather", name="Phoenix Feather", rarity=RelicRarity.LEGENDARY,
    effect=RelicEffect(type="fortress_revive", trigger=RelicTrigger.DAMAGE_TAKEN, value=150),
    description="Once per run, survive lethal damage and heal 150.",
)

MOLTEN_HEART = Relic(
    id="molten_heart", name="Molten Heart", rarity=RelicRarity.LEGENDARY,
    effect=RelicEffect(type="unit_damage_pct", trigger=RelicTrigger.DAMAGE_DEALT, percent_value=15),
    description="Units deal 15% more damage.",
)

SMUGGLER_MAP = Relic(
    id="smuggler_map", name="Smuggler's Map", rarity=RelicRarity.LEGENDARY,
    effect=RelicEffect(
        type="reward_choice_bonus", trigger=RelicTrigger.NODE_COMPLETE, value=1,
        costs=(SecondaryEffect(SecondaryEffectKind.FORTRESS_DAMAGE, 25),),
    ),
    description="One more reward choice. Each choice costs 25 fortress HP.",
)

NECRO_TOTEM = Relic(
    id="necro_totem", name="Necro Totem", rarity=RelicRarity.MYTHIC,
    effect=RelicEffect(type="unit_death_spawn", trigger=RelicTrigger.UNIT_DEATH,
                       percent_value=20, spawn_id="skeleton_warrior"),
    description="Fallen units have a 20% chance to rise as skeletons.",
)

# ============================================================================
# CURSES
# ============================================================================

BLOOD_PACT = Relic(
    id="blood_pact", name="Blood Pact", rarity=RelicRarity.CURSED,
    effect=RelicEffect(
        type="unit_damage_pct", percent_value=25,
        costs=(SecondaryEffect(SecondaryEffectKind.HEALING_HALVED),),
    ),
    description="Units deal 25% more damage. Healing is halved.",
)

LEADEN_GEARS = Relic(
    id="leaden_gears", name="Leaden Gears", rarity=RelicRarity.CURSED,
    effect=RelicEffect(
        type="unit_armor", value=3,
        costs=(SecondaryEffect(SecondaryEffectKind.UNIT_SPEED_REDUCE, 20),
               SecondaryEffect(SecondaryEffectKind.HAND_SIZE_REDUCE, 2)),
    ),
    description="Units gain 3 armor but move 20% slower. Hand size -2.",
)

GAMBLERS_DEBT = Relic(
    id="gamblers_debt", name="Gambler's Debt", rarity=RelicRarity.CURSED,
    effect=RelicEffect(
        type="gold_gamble", trigger=RelicTrigger.NODE_COMPLETE,
        costs=(SecondaryEffect(SecondaryEffectKind.SHOP_COST_INCREASE, 25),),
    ),
    description="Node gold is doubled or lost. Shop prices +25%.",
)

BURNING_BANNER = Relic(
    id="burning_banner", name="Burning Banner", rarity=RelicRarity.CURSED,
    effect=RelicEffect(
        type="resource_gain", trigger=RelicTrigger.WAVE_END, value=2,
        costs=(SecondaryEffect(SecondaryEffectKind.FORTRESS_DAMAGE_PER_WAVE, 10),
               SecondaryEffect(SecondaryEffectKind.COMMANDER_COOLDOWN_INCREASE, 50)),
    ),
    description="Gain 2 resource per wave. The fortress burns for 10 each wave.",
)


ALL_RELICS: Dict[str, Relic] = {
    relic.id: relic for relic in [
        IRON_PLATING, SHARPENED_STEEL, TEMPERED_ARMOR, SWIFT_BOOTS, MERCHANT_SEAL,
        FIELD_MEDIC, SEED_FUND,
        REINFORCED_WALLS, RAPID_LOADER, LONG_SCOPE, GUILD_CARD, TACTICAL_MANUAL,
        LUCKY_COIN, LAST_STAND,
        WAR_BANNER, COMMANDER_SIGIL, MASTER_FORGE, TROPHY_CASE, HIGH_GROUND,
        PHOENIX_FEATHER, MOLTEN_HEART, SMUGGLER_MAP, NECRO_TOTEM,
        BLOOD_PACT, LEADEN_GEARS, GAMBLERS_DEBT, BURNING_BANNER,
    ]
}
