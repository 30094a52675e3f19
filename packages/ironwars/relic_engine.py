"""
Relic Engine - Modifier aggregation and trigger dispatch for one run.

The engine owns the set of active relics and derives from it:
- A cached RelicModifiers aggregate of unconditional passive effects
- A list of ConditionalModifier closures evaluated per accessor call
- Trigger results (apply_trigger) built by the effect registry handlers

Both caches are rebuilt in full, synchronously, inside add_relic/remove_relic.
Reads never recompute.

Usage:
    engine = RelicEngine(ContentCatalog.default(), rng=random.Random(42))
    engine.add_relic("iron_plating")
    engine.apply_fortress_hp_modifier(500)          # 550
    ctx = engine.apply_trigger(RelicTrigger.NODE_COMPLETE, RelicContext(node_type="boss"))
"""

from __future__ import annotations

import logging
import math
import random
from typing import Dict, List, Optional, Sequence

from .content.catalog import ContentCatalog
from .content.relics import Relic, RelicTrigger
from .events import NotificationBus, NotificationType
from .generation import rewards
from .registry import EffectContext, OneShotGuards, RelicContext, execute_effect
from .registry.conditions import check_condition
from .registry.relic_effects import apply_context_costs
from .registry.relics_passive import (
    ConditionalModifier, RelicModifiers, aggregate_modifiers, conditional_bonus,
)

logger = logging.getLogger(__name__)


# Accessor floors
MIN_ATTACK_SPEED = 0.1
MIN_HAND_SIZE = 1
MIN_SHOP_PRICE = 1
MIN_COMMANDER_COOLDOWN = 1000


class RelicEngine:
    """Active relics, cached modifiers and trigger evaluation for one run."""

    def __init__(
        self,
        catalog: ContentCatalog,
        rng: Optional[random.Random] = None,
        bus: Optional[NotificationBus] = None,
    ):
        self.catalog = catalog
        self.rng = rng if rng is not None else random.Random()
        self.bus = bus

        # Insertion-ordered: trigger evaluation walks relics in acquisition order
        self._active: Dict[str, Relic] = {}
        self._modifiers = RelicModifiers()
        self._conditional: List[ConditionalModifier] = []
        self._guards = OneShotGuards()

    # =========================================================================
    # Active relic set
    # =========================================================================

    def add_relic(self, relic_id: str) -> bool:
        """Activate a relic. False if unknown or already active."""
        if relic_id in self._active:
            return False
        relic = self.catalog.get_relic(relic_id)
        if relic is None:
            logger.warning("Relic not found: %s", relic_id)
            return False

        self._active[relic_id] = relic
        self._recalculate()
        logger.debug("Added relic %s", relic_id)
        self._emit(NotificationType.RELIC_ADDED, {"relic_id": relic_id, "name": relic.name})
        return True

    def remove_relic(self, relic_id: str) -> bool:
        """Deactivate a relic. False if it was not active."""
        relic = self._active.pop(relic_id, None)
        if relic is None:
            return False

        self._recalculate()
        logger.debug("Removed relic %s", relic_id)
        self._emit(NotificationType.RELIC_REMOVED, {"relic_id": relic_id, "name": relic.name})
        return True

    def has_relic(self, relic_id: str) -> bool:
        return relic_id in self._active

    def get_active_relics(self) -> List[Relic]:
        return list(self._active.values())

    def get_active_relic_ids(self) -> List[str]:
        return list(self._active.keys())

    def get_curses(self) -> List[Relic]:
        return [r for r in self._active.values() if r.is_cursed]

    def load_relics_from_ids(self, relic_ids: Sequence[str]) -> int:
        """Reset, then activate relic ids in order. Returns how many were added."""
        self.reset()
        return sum(1 for relic_id in relic_ids if self.add_relic(relic_id))

    def _recalculate(self) -> None:
        self._modifiers, self._conditional = aggregate_modifiers(self._active.values())

    # =========================================================================
    # Modifier reads
    # =========================================================================

    def get_modifiers(self) -> RelicModifiers:
        """Copy of the cached aggregate."""
        return self._modifiers.copy()

    def get_modifier(self, name: str) -> float:
        return getattr(self._modifiers, name)

    def _total(self, field_name: str, context: Optional[RelicContext]) -> float:
        ctx = context if context is not None else RelicContext()
        return getattr(self._modifiers, field_name) + conditional_bonus(
            self._conditional, field_name, ctx
        )

    # =========================================================================
    # Triggers
    # =========================================================================

    def apply_trigger(self, trigger: RelicTrigger, context: Optional[RelicContext] = None) -> RelicContext:
        """
        Evaluate every active relic whose effect trigger matches.

        Handlers run in relic acquisition order against a copy of the input
        context; the accumulated copy is returned.
        """
        result = context.copy() if context is not None else RelicContext()

        for relic in list(self._active.values()):
            effect = relic.effect
            if effect.trigger != trigger:
                continue
            if effect.condition and not check_condition(effect.condition, result):
                continue

            effect_ctx = EffectContext(
                relic=relic, trigger=trigger, result=result,
                rng=self.rng, guards=self._guards,
            )
            applied = execute_effect(effect_ctx)
            cost_applied = apply_context_costs(effect_ctx, applied)

            if applied or cost_applied:
                logger.debug("Relic %s triggered on %s", relic.id, trigger.value)
                self._emit(NotificationType.RELIC_TRIGGERED, {
                    "relic_id": relic.id,
                    "trigger": trigger.value,
                    "context": result.to_dict(),
                })

        return result

    # =========================================================================
    # Stat accessors
    # =========================================================================

    def apply_damage_modifier(self, base_damage: float, context: Optional[RelicContext] = None) -> int:
        pct = self._total("unit_damage_percent", context)
        return math.floor(base_damage * (100 + pct) / 100)

    def apply_armor_modifier(self, base_armor: float, context: Optional[RelicContext] = None) -> float:
        return max(0, base_armor + self._total("unit_armor_flat", context))

    def apply_range_modifier(self, base_range: float, context: Optional[RelicContext] = None) -> float:
        return max(0, base_range + self._total("unit_range_flat", context))

    def apply_move_speed_modifier(self, base_speed: float, context: Optional[RelicContext] = None) -> float:
        pct = self._total("unit_move_speed_percent", context)
        return max(0, base_speed * (100 + pct) / 100)

    def apply_attack_speed_modifier(self, base_speed: float, context: Optional[RelicContext] = None) -> float:
        pct = self._total("unit_attack_speed_percent", context)
        return max(MIN_ATTACK_SPEED, base_speed * (100 + pct) / 100)

    def apply_fortress_hp_modifier(self, base_hp: float, context: Optional[RelicContext] = None) -> int:
        flat = self._total("fortress_hp", context)
        pct = self._total("fortress_hp_percent", context)
        return math.floor((base_hp + flat) * (100 + pct) / 100)

    def apply_healing_modifier(self, base_healing: float, context: Optional[RelicContext] = None) -> int:
        pct = self._total("healing_percent", context)
        return max(0, math.floor(base_healing * (100 + pct) / 100))

    def apply_gold_modifier(self, base_gold: float, context: Optional[RelicContext] = None) -> int:
        """Gold after the gold-gain trigger multiplier and the gold percent bonus."""
        trigger_ctx = context.copy() if context is not None else RelicContext()
        trigger_ctx.amount = base_gold
        result = self.apply_trigger(RelicTrigger.GOLD_GAIN, trigger_ctx)
        pct = self._total("gold_gain_percent", context)
        return math.floor(base_gold * result.gold_multiplier * (100 + pct) / 100)

    def apply_shop_discount(self, base_price: float, context: Optional[RelicContext] = None) -> int:
        discount = self._total("shop_discount_percent", context)
        return max(MIN_SHOP_PRICE, math.floor(base_price * (100 - discount) / 100))

    def get_effective_max_hand_size(self, base_size: int, context: Optional[RelicContext] = None) -> int:
        return max(MIN_HAND_SIZE, int(base_size + self._total("max_hand_size_modifier", context)))

    def get_effective_commander_cooldown(self, base_cooldown: float,
                                         context: Optional[RelicContext] = None) -> float:
        pct = self._total("commander_cooldown_percent", context)
        return max(MIN_COMMANDER_COOLDOWN, base_cooldown * (100 + pct) / 100)

    def get_card_draw_bonus(self, context: Optional[RelicContext] = None) -> int:
        return int(self._total("card_draw_bonus", context))

    # =========================================================================
    # Reward generation
    # =========================================================================

    def generate_starting_relics(self, count: int) -> List[str]:
        return rewards.generate_starting_relics(self.rng, self.catalog.get_all_relics(), count)

    def generate_random_curse(self) -> Optional[Relic]:
        return rewards.generate_random_curse(self.rng, self.catalog.get_all_relics())

    def generate_relic_reward(self, tier: int, exclude_ids: Sequence[str] = (),
                              count: int = rewards.DEFAULT_REWARD_CHOICES) -> List[Relic]:
        """Reward choices; active relics are always excluded."""
        return rewards.generate_relic_reward(
            self.rng, self.catalog.get_all_relics(), tier,
            exclude_ids=exclude_ids, active_ids=self._active.keys(), count=count,
        )

    def generate_shop_relic(self, tier: int) -> Optional[Relic]:
        return rewards.generate_shop_relic(
            self.rng, self.catalog.get_all_relics(), tier, active_ids=self._active.keys(),
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def reset(self) -> None:
        """Drop every relic, empty the aggregate and clear both one-shot guards."""
        self._active.clear()
        self._modifiers = RelicModifiers()
        self._conditional = []
        self._guards = OneShotGuards()

    def reset_battle_state(self) -> None:
        """Re-arm the revive guard."""
        self._guards.revive_used = False

    def reset_stage_state(self) -> None:
        """Re-arm the reward-upgrade guard."""
        self._guards.reward_upgraded = False

    @property
    def revive_used(self) -> bool:
        return self._guards.revive_used

    @property
    def reward_upgraded(self) -> bool:
        return self._guards.reward_upgraded

    def _emit(self, notification_type: NotificationType, payload: dict) -> None:
        if self.bus is not None:
            self.bus.emit(notification_type, payload)
