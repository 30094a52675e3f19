"""Data-driven passive relic aggregation.

Passive effects without a condition are folded into a cached RelicModifiers
aggregate. Conditional passives (and damage-dealt damage bonuses) become
ConditionalModifier entries whose predicates the stat accessors evaluate
against the supplied context.
"""

from dataclasses import dataclass, fields, replace
from typing import Callable, Dict, Iterable, List, Tuple

from . import RelicContext
from .conditions import check_condition
from ..content.relics import Relic, RelicTrigger, SecondaryEffectKind


@dataclass
class RelicModifiers:
    """Aggregate numeric modifiers from all active relics."""
    fortress_hp: float = 0
    fortress_hp_percent: float = 0
    unit_damage_percent: float = 0
    unit_armor_flat: float = 0
    unit_move_speed_percent: float = 0
    unit_attack_speed_percent: float = 0
    unit_range_flat: float = 0
    gold_gain_percent: float = 0
    shop_discount_percent: float = 0
    card_draw_bonus: float = 0
    commander_cooldown_percent: float = 0
    commander_damage_percent: float = 0
    healing_percent: float = 0
    max_hand_size_modifier: float = 0

    def copy(self) -> 'RelicModifiers':
        return replace(self)

    def to_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class ConditionalModifier:
    """A modifier contribution that applies only when its predicate holds."""
    relic_id: str
    field: str
    amount: float
    predicate: Callable[[RelicContext], bool]

    def applies(self, ctx: RelicContext) -> bool:
        return self.predicate(ctx)


# Passive effect type -> (modifier field, effect attribute holding the amount)
PASSIVE_EFFECTS: Dict[str, Tuple[str, str]] = {
    "fortress_hp": ("fortress_hp", "value"),
    "fortress_hp_pct": ("fortress_hp_percent", "percent_value"),
    "unit_damage_pct": ("unit_damage_percent", "percent_value"),
    "unit_armor": ("unit_armor_flat", "value"),
    "unit_move_speed_pct": ("unit_move_speed_percent", "percent_value"),
    "unit_attack_speed_pct": ("unit_attack_speed_percent", "percent_value"),
    "unit_range": ("unit_range_flat", "value"),
    "gold_gain_pct": ("gold_gain_percent", "percent_value"),
    "shop_discount_pct": ("shop_discount_percent", "percent_value"),
    "card_draw": ("card_draw_bonus", "value"),
    "commander_cooldown_pct": ("commander_cooldown_percent", "percent_value"),
    "commander_damage_pct": ("commander_damage_percent", "percent_value"),
    "healing_pct": ("healing_percent", "percent_value"),
    "hand_size": ("max_hand_size_modifier", "value"),
}

# Aggregate secondary effects: kind -> (modifier field, sign). healing_halved is fixed at -50.
AGGREGATE_COSTS: Dict[SecondaryEffectKind, Tuple[str, int]] = {
    SecondaryEffectKind.HEALING_HALVED: ("healing_percent", -1),
    SecondaryEffectKind.UNIT_SPEED_REDUCE: ("unit_move_speed_percent", -1),
    SecondaryEffectKind.HAND_SIZE_REDUCE: ("max_hand_size_modifier", -1),
    SecondaryEffectKind.SHOP_COST_INCREASE: ("shop_discount_percent", -1),
    SecondaryEffectKind.COMMANDER_COOLDOWN_INCREASE: ("commander_cooldown_percent", 1),
}

HEALING_HALVED_PERCENT = 50


def _always(ctx: RelicContext) -> bool:
    return True


def _condition_predicate(condition: str) -> Callable[[RelicContext], bool]:
    return lambda ctx: check_condition(condition, ctx)


def aggregate_modifiers(relics: Iterable[Relic]) -> Tuple[RelicModifiers, List[ConditionalModifier]]:
    """
    Recompute the aggregate and the conditional list from scratch.

    The result depends only on the set of relics, never on their order.
    """
    mods = RelicModifiers()
    conditional: List[ConditionalModifier] = []

    for relic in relics:
        effect = relic.effect

        target = PASSIVE_EFFECTS.get(effect.type)
        if target is not None:
            field_name, attr = target
            amount = getattr(effect, attr) or 0
            if effect.trigger == RelicTrigger.PASSIVE:
                if effect.condition:
                    conditional.append(ConditionalModifier(
                        relic.id, field_name, amount, _condition_predicate(effect.condition)))
                else:
                    setattr(mods, field_name, getattr(mods, field_name) + amount)
            elif effect.trigger == RelicTrigger.DAMAGE_DEALT and effect.type == "unit_damage_pct":
                predicate = (_condition_predicate(effect.condition)
                             if effect.condition else _always)
                conditional.append(ConditionalModifier(relic.id, field_name, amount, predicate))

        for cost in effect.costs:
            cost_target = AGGREGATE_COSTS.get(cost.kind)
            if cost_target is None:
                continue
            field_name, sign = cost_target
            magnitude = (HEALING_HALVED_PERCENT
                         if cost.kind == SecondaryEffectKind.HEALING_HALVED else cost.magnitude)
            setattr(mods, field_name, getattr(mods, field_name) + sign * magnitude)

    return mods, conditional


def conditional_bonus(conditional: Iterable[ConditionalModifier], field_name: str,
                      ctx: RelicContext) -> float:
    """Sum of conditional contributions to a field whose predicates hold for ctx."""
    return sum(c.amount for c in conditional if c.field == field_name and c.applies(ctx))
