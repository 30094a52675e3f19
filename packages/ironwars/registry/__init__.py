"""
Relic Effect Registry for the IronWars run engine.

Provides decorator-based registration of relic effect handlers, keyed by
trigger and effect type tag:

- Trigger handlers (relic_effects.py): evaluated by RelicEngine.apply_trigger
- Conditions (conditions.py): closed vocabulary of context predicates
- Passive aggregation (relics_passive.py): folds passive effects into RelicModifiers

Usage:
    from packages.ironwars.registry import relic_effect, EffectContext

    @relic_effect("post_battle_heal", trigger=RelicTrigger.NODE_COMPLETE)
    def post_battle_heal(ctx: EffectContext) -> bool:
        ctx.result.fortress_heal_bonus += ctx.effect.value
        return True

A handler returns True when the effect applied and False when it declined.
Handlers registered without a trigger match every trigger.
"""

from __future__ import annotations

import copy
import functools
import random
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Union

from ..content.relics import Relic, RelicEffect, RelicTrigger


# Key used for handlers that apply regardless of trigger
ANY_TRIGGER = "*"


# =============================================================================
# Context Classes - Passed to effect handlers
# =============================================================================

@dataclass
class RelicContext:
    """
    Inputs and accumulated outputs of one trigger evaluation.

    The engine evaluates handlers against a copy; the caller's context is
    never mutated.
    """
    # Inputs
    amount: Optional[float] = None
    node_type: Optional[str] = None
    unit_type: Optional[str] = None
    unit_hp_percent: Optional[float] = None
    fortress_hp_percent: Optional[float] = None
    would_be_lethal: bool = False

    # Accumulated outputs
    card_draw_bonus: int = 0
    resource_bonus: int = 0
    fortress_heal_bonus: int = 0
    gold_multiplier: float = 1.0
    gold_bonus: int = 0
    reward_choice_bonus: int = 0
    fortress_damage: int = 0
    bonus_rare_card: int = 0
    prevent_death: bool = False
    upgrade_reward: bool = False
    spawn_unit_id: Optional[str] = None

    extra: Dict[str, Any] = field(default_factory=dict)

    def copy(self) -> 'RelicContext':
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount": self.amount,
            "node_type": self.node_type,
            "unit_type": self.unit_type,
            "unit_hp_percent": self.unit_hp_percent,
            "fortress_hp_percent": self.fortress_hp_percent,
            "would_be_lethal": self.would_be_lethal,
            "card_draw_bonus": self.card_draw_bonus,
            "resource_bonus": self.resource_bonus,
            "fortress_heal_bonus": self.fortress_heal_bonus,
            "gold_multiplier": self.gold_multiplier,
            "gold_bonus": self.gold_bonus,
            "reward_choice_bonus": self.reward_choice_bonus,
            "fortress_damage": self.fortress_damage,
            "bonus_rare_card": self.bonus_rare_card,
            "prevent_death": self.prevent_death,
            "upgrade_reward": self.upgrade_reward,
            "spawn_unit_id": self.spawn_unit_id,
            "extra": copy.deepcopy(self.extra),
        }


@dataclass
class OneShotGuards:
    """Run-scoped flags for effects that fire at most once per window."""
    revive_used: bool = False
    reward_upgraded: bool = False


@dataclass
class EffectContext:
    """Context passed to an effect handler."""
    relic: Relic
    trigger: RelicTrigger
    result: RelicContext
    rng: random.Random
    guards: OneShotGuards

    @property
    def effect(self) -> RelicEffect:
        return self.relic.effect

    def roll_percent(self, chance: float) -> bool:
        """True with probability chance/100."""
        return self.rng.random() * 100 < chance


EffectHandler = Callable[[EffectContext], bool]


# =============================================================================
# Registry
# =============================================================================

class TriggerRegistry:
    """Registry of effect handlers keyed by trigger and effect type."""

    def __init__(self, name: str):
        self.name = name
        # handlers[trigger][effect_type] = handler_func
        self._handlers: Dict[str, Dict[str, EffectHandler]] = {}

    def register(self, trigger: str, effect_type: str, handler: EffectHandler):
        """Register a handler for an effect type under a trigger."""
        self._handlers.setdefault(trigger, {})[effect_type] = handler

    def get_handler(self, trigger: str, effect_type: str) -> Optional[EffectHandler]:
        """Handler for an effect type, falling back to trigger-agnostic handlers."""
        for key in (trigger, ANY_TRIGGER):
            handler = self._handlers.get(key, {}).get(effect_type)
            if handler is not None:
                return handler
        return None


EFFECT_REGISTRY = TriggerRegistry("relic_effects")


# =============================================================================
# Decorators
# =============================================================================

def relic_effect(effect_type: str, trigger: Union[RelicTrigger, str, None] = None):
    """
    Decorator to register a relic effect handler.

    Args:
        effect_type: Effect type tag (e.g., "post_battle_heal")
        trigger: Trigger the handler is limited to; None matches every trigger
    """
    if trigger is None:
        key = ANY_TRIGGER
    else:
        key = trigger.value if isinstance(trigger, RelicTrigger) else trigger

    def decorator(func: EffectHandler) -> EffectHandler:
        EFFECT_REGISTRY.register(key, effect_type, func)

        @functools.wraps(func)
        def wrapper(ctx: EffectContext) -> bool:
            return func(ctx)

        return wrapper
    return decorator


def execute_effect(ctx: EffectContext) -> bool:
    """Run the handler for ctx.relic's effect. Returns True if it applied."""
    handler = EFFECT_REGISTRY.get_handler(ctx.trigger.value, ctx.effect.type)
    if handler is None:
        return False
    return bool(handler(ctx))


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    # Context classes
    "RelicContext",
    "OneShotGuards",
    "EffectContext",

    # Registry
    "TriggerRegistry",
    "EFFECT_REGISTRY",
    "ANY_TRIGGER",

    # Decorators / execution
    "relic_effect",
    "execute_effect",
]

# Import handlers to register them (decorators populate the registry)
from . import relic_effects as _relic_effects  # noqa: F401, E402
