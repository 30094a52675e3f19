"""
Relic Effect Implementations.

This module contains all relic effect handlers using the registry pattern.
Each handler is registered via decorator and called by RelicEngine.apply_trigger
for every active relic whose effect trigger matches the evaluated trigger.

Organized by the trigger the handler is limited to.
"""

from __future__ import annotations

from . import relic_effect, EffectContext
from ..content.relics import RelicTrigger, SecondaryEffectKind


# =============================================================================
# Any trigger
# =============================================================================

@relic_effect("card_draw")
def card_draw(ctx: EffectContext) -> bool:
    """Tactical Manual (triggered variants): extra cards drawn."""
    ctx.result.card_draw_bonus += int(ctx.effect.value)
    return True


@relic_effect("resource_gain")
def resource_gain(ctx: EffectContext) -> bool:
    """Burning Banner: extra deployment resource."""
    ctx.result.resource_bonus += int(ctx.effect.value)
    return True


@relic_effect("fortress_heal")
def fortress_heal(ctx: EffectContext) -> bool:
    ctx.result.fortress_heal_bonus += int(ctx.effect.value)
    return True


@relic_effect("reward_choice_bonus")
def reward_choice_bonus(ctx: EffectContext) -> bool:
    """Smuggler's Map: one more reward choice (fortress damage cost applied by the engine)."""
    ctx.result.reward_choice_bonus += int(ctx.effect.value)
    return True


@relic_effect("auto_upgrade_reward")
def auto_upgrade_reward(ctx: EffectContext) -> bool:
    """Master Forge: upgrade the first reward of each stage."""
    if ctx.guards.reward_upgraded:
        return False
    ctx.guards.reward_upgraded = True
    ctx.result.upgrade_reward = True
    return True


# =============================================================================
# ON_RUN_START
# =============================================================================

@relic_effect("gain_gold_flat", trigger=RelicTrigger.RUN_START)
def gain_gold_flat(ctx: EffectContext) -> bool:
    """Seed Fund: flat gold added to the starting purse."""
    ctx.result.gold_bonus += int(ctx.effect.value)
    return True


# =============================================================================
# ON_GOLD_GAIN
# =============================================================================

@relic_effect("gold_gain_pct", trigger=RelicTrigger.GOLD_GAIN)
def gold_gain_pct(ctx: EffectContext) -> bool:
    ctx.result.gold_multiplier *= 1 + ctx.effect.percent_value / 100
    return True


# =============================================================================
# ON_NODE_COMPLETE
# =============================================================================

@relic_effect("post_battle_heal", trigger=RelicTrigger.NODE_COMPLETE)
def post_battle_heal(ctx: EffectContext) -> bool:
    """Field Medic Kit: heal the fortress after each node."""
    ctx.result.fortress_heal_bonus += int(ctx.effect.value)
    return True


@relic_effect("gold_double_chance", trigger=RelicTrigger.NODE_COMPLETE)
def gold_double_chance(ctx: EffectContext) -> bool:
    """Lucky Coin: percent chance to double node gold. Counts as applied either way."""
    if ctx.roll_percent(ctx.effect.percent_value):
        ctx.result.gold_multiplier *= 2
    return True


@relic_effect("gold_gamble", trigger=RelicTrigger.NODE_COMPLETE)
def gold_gamble(ctx: EffectContext) -> bool:
    """Gambler's Debt: node gold is doubled or lost on a coin flip."""
    if ctx.rng.random() < 0.5:
        ctx.result.gold_multiplier *= 2
    else:
        ctx.result.gold_multiplier = 0
    return True


@relic_effect("boss_reward_bonus", trigger=RelicTrigger.NODE_COMPLETE)
def boss_reward_bonus(ctx: EffectContext) -> bool:
    """Trophy Case: bonus rare card from bosses."""
    if ctx.result.node_type != "boss":
        return False
    ctx.result.bonus_rare_card += int(ctx.effect.value)
    return True


# =============================================================================
# ON_DAMAGE_TAKEN
# =============================================================================

@relic_effect("fortress_revive", trigger=RelicTrigger.DAMAGE_TAKEN)
def fortress_revive(ctx: EffectContext) -> bool:
    """Phoenix Feather: survive one lethal hit and heal."""
    if ctx.guards.revive_used or not ctx.result.would_be_lethal:
        return False
    ctx.guards.revive_used = True
    ctx.result.prevent_death = True
    ctx.result.fortress_heal_bonus += int(ctx.effect.value)
    return True


# =============================================================================
# ON_UNIT_DEATH
# =============================================================================

@relic_effect("unit_death_spawn", trigger=RelicTrigger.UNIT_DEATH)
def unit_death_spawn(ctx: EffectContext) -> bool:
    """Necro Totem: fallen units may rise as the configured spawn."""
    if not ctx.roll_percent(ctx.effect.percent_value):
        return False
    ctx.result.spawn_unit_id = ctx.effect.spawn_id
    return True


# =============================================================================
# Secondary effects written into trigger contexts
# =============================================================================

def apply_context_costs(ctx: EffectContext, applied: bool) -> bool:
    """
    Add fortress damage drawbacks to the trigger result.

    FORTRESS_DAMAGE accompanies the primary effect; FORTRESS_DAMAGE_PER_WAVE
    fires on every wave-end match. Returns True if anything was added.
    """
    added = False
    if applied and ctx.effect.has_cost(SecondaryEffectKind.FORTRESS_DAMAGE):
        ctx.result.fortress_damage += ctx.effect.cost_magnitude(SecondaryEffectKind.FORTRESS_DAMAGE)
        added = True
    if (ctx.trigger == RelicTrigger.WAVE_END
            and ctx.effect.has_cost(SecondaryEffectKind.FORTRESS_DAMAGE_PER_WAVE)):
        ctx.result.fortress_damage += ctx.effect.cost_magnitude(
            SecondaryEffectKind.FORTRESS_DAMAGE_PER_WAVE
        )
        added = True
    return added
