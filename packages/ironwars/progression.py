"""
Run Progression - the state machine for one IronWars run.

States:
    no active run --start_new_run / load_saved_run--> standing on a node
    standing on a node --complete_node(boss)--> stage transition
    stage transition --> next stage entry node | run complete (terminal)
    any active state --abandon_run--> no active run

Map rule: after completing a node only its direct, not-yet-completed
successors open; moving onto one of them closes the others for good.

The state machine owns the RunState and the run-local StageGraph. Every
read hands out a copy. Illegal transitions and unknown ids return a falsy
result; the only exception raised is GraphIntegrityError for malformed
content.

Usage:
    catalog = ContentCatalog.default()
    bus = NotificationBus()
    engine = RelicEngine(catalog, rng=random.Random(7), bus=bus)
    run = RunProgression(catalog, engine, MemorySaveStore(), bus=bus)

    run.start_new_run("cog_dominion", difficulty=0)
    while run.has_active_run() and not run.is_run_complete():
        node_id = run.get_accessible_node_ids()[0]
        run.move_to_node(node_id)
        run.complete_node(node_id)
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from .config import EngineConfig
from .content.catalog import ContentCatalog
from .content.factions import DEFAULT_STARTER
from .content.relics import Relic, RelicTrigger
from .content.stages import COMBAT_NODE_TYPES, MapNode, NodeType, Stage
from .events import NotificationBus, NotificationType
from .generation import rewards
from .persistence import SaveStore
from .registry import RelicContext
from .relic_engine import RelicEngine
from .state.graph import StageGraph
from .state.run import CardInstance, RunState, base_card_id

logger = logging.getLogger(__name__)

RELIC_REWARD_NODE_TYPES = (NodeType.ELITE, NodeType.BOSS)

SHOP_CARD_COUNT = 3


# =============================================================================
# Result records
# =============================================================================

@dataclass
class NodeCompletion:
    """What completing a node produced."""
    node: MapNode
    context: RelicContext
    healing: int = 0
    fortress_damage: int = 0
    gold_awarded: int = 0
    relic_choices: List[Relic] = field(default_factory=list)
    upgrade_reward: bool = False
    bonus_rare_cards: int = 0
    stage_completed: bool = False
    run_completed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node": self.node.to_dict(),
            "context": self.context.to_dict(),
            "healing": self.healing,
            "fortress_damage": self.fortress_damage,
            "gold_awarded": self.gold_awarded,
            "relic_choices": [r.id for r in self.relic_choices],
            "upgrade_reward": self.upgrade_reward,
            "bonus_rare_cards": self.bonus_rare_cards,
            "stage_completed": self.stage_completed,
            "run_completed": self.run_completed,
        }


@dataclass
class ShopItem:
    """One priced shop offer."""
    item_id: str
    kind: str
    price: int
    base_price: int

    def to_dict(self) -> Dict[str, Any]:
        return {"item_id": self.item_id, "kind": self.kind,
                "price": self.price, "base_price": self.base_price}


@dataclass
class ShopOffer:
    tier: int
    cards: List[ShopItem] = field(default_factory=list)
    relic: Optional[ShopItem] = None
    curse_removal_price: int = 0
    context: RelicContext = field(default_factory=RelicContext)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tier": self.tier,
            "cards": [c.to_dict() for c in self.cards],
            "relic": self.relic.to_dict() if self.relic else None,
            "curse_removal_price": self.curse_removal_price,
        }


# =============================================================================
# State machine
# =============================================================================

class RunProgression:
    """Drives one run through the stage graph."""

    def __init__(
        self,
        catalog: ContentCatalog,
        relic_engine: RelicEngine,
        store: SaveStore,
        bus: Optional[NotificationBus] = None,
        config: Optional[EngineConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.catalog = catalog
        self.relic_engine = relic_engine
        self.store = store
        self.bus = bus if bus is not None else NotificationBus()
        self.config = config if config is not None else EngineConfig()
        self.rng = rng if rng is not None else relic_engine.rng

        self._state: Optional[RunState] = None
        self._graph: Optional[StageGraph] = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start_new_run(
        self,
        faction_id: str = DEFAULT_STARTER.faction_id,
        difficulty: int = 0,
        commander_override: Optional[str] = None,
    ) -> RunState:
        """Build a fresh run and stand on the first stage's entry node."""
        graph = StageGraph.from_catalog(self.catalog)

        faction = self.catalog.get_faction(faction_id)
        if faction is None:
            logger.warning("Unknown faction %s, using default starter", faction_id)
            faction_id = DEFAULT_STARTER.faction_id

        fortress = self.catalog.get_fortress_for_faction(faction_id)
        base_hp = fortress.max_hp if fortress else DEFAULT_STARTER.fortress_max_hp

        commander = None
        if commander_override:
            commander = self.catalog.get_commander(commander_override)
            if commander is None:
                logger.warning("Unknown commander override %s", commander_override)
        if commander is None:
            commander = self.catalog.get_starter_commander(faction_id)
        commander_id = commander.id if commander else DEFAULT_STARTER.commander_id
        deck_templates = list(commander.card_ids) if commander and commander.card_ids \
            else list(DEFAULT_STARTER.deck)

        # Relics first: fortress HP and starting gold depend on them
        engine = self.relic_engine
        engine.reset()
        for relic_id in engine.generate_starting_relics(self.config.starting_relic_count):
            engine.add_relic(relic_id)
        if difficulty >= self.config.curse_difficulty_threshold:
            curse = engine.generate_random_curse()
            if curse is not None:
                engine.add_relic(curse.id)

        max_hp = engine.apply_fortress_hp_modifier(base_hp)
        start_ctx = engine.apply_trigger(RelicTrigger.RUN_START, RelicContext())

        state = RunState(
            faction_id=faction_id,
            difficulty=difficulty,
            fortress_hp=max_hp,
            fortress_max_hp=max_hp,
            base_fortress_hp=base_hp,
            gold=self.config.starting_gold + start_ctx.gold_bonus,
            relics=engine.get_active_relic_ids(),
            curses=[r.id for r in engine.get_curses()],
            commander_roster=[commander_id],
        )
        state.deck = [CardInstance(state.allocate_card_id(t), t) for t in deck_templates]

        first_index = graph.first_stage_index()
        entry = graph.get_entry_node(first_index)
        state.current_stage_index = first_index
        state.current_node_id = entry.id

        self._graph = graph
        self._state = state
        graph.recompute_accessibility(entry.id)
        self._persist()

        logger.info("Run started: faction=%s difficulty=%d relics=%s",
                    faction_id, difficulty, state.relics)
        self._emit(NotificationType.RUN_STARTED, state.to_dict())
        self._emit(NotificationType.STAGE_ENTERED, graph.get_stage(first_index).to_dict())
        self._emit(NotificationType.NODE_SELECTED, entry.to_dict())
        return state.copy()

    def load_saved_run(self) -> bool:
        """Restore the saved run. False (and no side effect) if there is none."""
        state = self.store.load_run()
        if state is None:
            return False

        graph = StageGraph.from_catalog(self.catalog)
        graph.mark_completed(state.completed_node_ids)

        self.relic_engine.load_relics_from_ids(list(state.relics) + list(state.curses))

        self._graph = graph
        self._state = state
        graph.recompute_accessibility(None if state.is_complete else state.current_node_id)

        logger.info("Run loaded: stage=%d node=%s", state.current_stage_index, state.current_node_id)
        self._emit(NotificationType.RUN_LOADED, state.to_dict())
        stage = graph.get_stage(state.current_stage_index)
        if stage is not None:
            self._emit(NotificationType.STAGE_ENTERED, stage.to_dict())
        node = graph.get_node(state.current_node_id) if state.current_node_id else None
        if node is not None:
            self._emit(NotificationType.NODE_SELECTED, node.to_dict())
        return True

    def abandon_run(self) -> bool:
        """Delete the save and drop the active run. False if there was nothing to abandon."""
        had_run = self._state is not None or self.store.has_saved_run()
        self.store.delete_run()
        self.relic_engine.reset()
        self._state = None
        self._graph = None
        if had_run:
            logger.info("Run abandoned")
            self._emit(NotificationType.RUN_ABANDONED, {})
        return had_run

    # =========================================================================
    # Map navigation
    # =========================================================================

    def move_to_node(self, node_id: str) -> bool:
        if not self._is_playing():
            return False
        node = self._graph.get_node(node_id)
        if node is None or not node.is_accessible:
            return False

        self._state.current_node_id = node_id
        self._graph.recompute_accessibility(node_id)
        self._persist()
        self._emit(NotificationType.NODE_SELECTED, node.to_dict())
        return True

    def can_access_node(self, node_id: str) -> bool:
        if not self._is_playing():
            return False
        node = self._graph.get_node(node_id)
        return node is not None and node.is_accessible and not node.is_completed

    def complete_node(self, node_id: str) -> Optional[NodeCompletion]:
        """
        Complete a node and apply its rewards.

        Only accessible nodes can be completed. An accessible node other than
        the current one (an open successor) is moved onto first, so the
        sibling branches close.

        Returns None if there is no playable run, the node is unknown,
        already completed, or not accessible.
        """
        if not self._is_playing():
            return None
        node = self._graph.get_node(node_id)
        if node is None or node.is_completed or not node.is_accessible:
            return None

        state = self._state
        if state.current_node_id != node_id:
            self.move_to_node(node_id)
        node.is_completed = True
        node.is_accessible = False
        if node_id not in state.completed_node_ids:
            state.completed_node_ids.append(node_id)
        self._persist()
        self._emit(NotificationType.NODE_COMPLETED, node.to_dict())

        ctx = self.relic_engine.apply_trigger(
            RelicTrigger.NODE_COMPLETE,
            RelicContext(node_type=node.type.value, fortress_hp_percent=state.fortress_hp_percent),
        )
        completion = NodeCompletion(
            node=node.copy(),
            context=ctx,
            upgrade_reward=ctx.upgrade_reward,
            bonus_rare_cards=ctx.bonus_rare_card,
        )

        if ctx.fortress_heal_bonus > 0:
            completion.healing = self.heal_fortress(ctx.fortress_heal_bonus)
        if ctx.fortress_damage > 0:
            completion.fortress_damage = self.damage_fortress(ctx.fortress_damage)

        gold = ctx.gold_bonus
        if node.type in COMBAT_NODE_TYPES:
            gold += math.floor(node.reward_tier * self.config.gold_per_reward_tier * ctx.gold_multiplier)
        if gold > 0:
            completion.gold_awarded = self.gain_gold(gold)

        if node.type in RELIC_REWARD_NODE_TYPES:
            count = self.config.reward_choices + ctx.reward_choice_bonus
            completion.relic_choices = self.relic_engine.generate_relic_reward(node.reward_tier, count=count)

        if self._graph.is_boss_node(node):
            completion.stage_completed = True
            completion.run_completed = self._complete_stage(node.stage_index)
        else:
            self._graph.recompute_accessibility(state.current_node_id)
            self._persist()

        completion.node = node.copy()
        return completion

    def _complete_stage(self, stage_index: int) -> bool:
        """Advance past a finished stage. Returns True if the run is now complete."""
        state = self._state
        stage = self._graph.get_stage(stage_index)
        self._emit(NotificationType.STAGE_COMPLETED, stage.to_dict())

        next_stage = self._graph.get_next_stage(stage)
        if next_stage is None:
            state.is_complete = True
            self._graph.recompute_accessibility(None)
            self.store.increment_runs_completed()
            self.store.update_highest_stage(stage_index)
            self._persist()
            logger.info("Run completed at stage %d", stage_index)
            self._emit(NotificationType.RUN_COMPLETED, state.to_dict())
            return True

        state.current_stage_index = next_stage.index
        self.relic_engine.reset_stage_state()
        entry = self._graph.get_entry_node(next_stage.index)
        state.current_node_id = entry.id
        self._graph.recompute_accessibility(entry.id)
        self.store.update_highest_stage(next_stage.index)
        self._persist()
        logger.info("Entered stage %d (%s)", next_stage.index, next_stage.name)
        self._emit(NotificationType.STAGE_ENTERED, next_stage.to_dict())
        return False

    # =========================================================================
    # Resources
    # =========================================================================

    def gain_gold(self, amount: int) -> int:
        """Add gold after relic modifiers. Returns the gold actually gained."""
        if self._state is None or amount <= 0:
            return 0
        gained = self.relic_engine.apply_gold_modifier(amount)
        self._state.gold += gained
        self._persist()
        self._emit(NotificationType.GOLD_UPDATED, {"gold": self._state.gold, "delta": gained})
        return gained

    def spend_gold(self, amount: int, discounted: bool = False) -> bool:
        """Spend |amount| gold (shop-discounted if asked). False if it would go negative."""
        if self._state is None:
            return False
        cost = abs(amount)
        if discounted:
            cost = self.relic_engine.apply_shop_discount(cost)
        if self._state.gold - cost < 0:
            return False
        self._state.gold -= cost
        self._persist()
        self._emit(NotificationType.GOLD_UPDATED, {"gold": self._state.gold, "delta": -cost})
        return True

    def heal_fortress(self, amount: int) -> int:
        """Heal after the healing modifier, capped at max HP. Returns HP restored."""
        if self._state is None or amount <= 0:
            return 0
        state = self._state
        healing = self.relic_engine.apply_healing_modifier(amount)
        new_hp = max(state.fortress_hp, min(state.fortress_hp + healing, state.fortress_max_hp))
        restored = new_hp - state.fortress_hp
        state.fortress_hp = new_hp
        self._persist()
        self._emit_fortress()
        return restored

    def damage_fortress(self, amount: int) -> int:
        """
        Damage the fortress. Returns damage applied.

        Lethal damage evaluates the damage-taken trigger; a revive leaves the
        fortress at 1 HP plus the revive heal.
        """
        if self._state is None or amount <= 0:
            return 0
        state = self._state
        old_hp = state.fortress_hp
        lethal = old_hp - amount <= 0

        ctx = self.relic_engine.apply_trigger(
            RelicTrigger.DAMAGE_TAKEN,
            RelicContext(amount=amount, would_be_lethal=lethal,
                         fortress_hp_percent=state.fortress_hp_percent),
        )
        if lethal and ctx.prevent_death:
            state.fortress_hp = min(state.fortress_max_hp, 1 + ctx.fortress_heal_bonus)
            applied = max(0, old_hp - 1)
            logger.info("Fortress revived at %d HP", state.fortress_hp)
        else:
            state.fortress_hp = max(0, old_hp - amount)
            applied = old_hp - state.fortress_hp

        self._persist()
        self._emit_fortress()
        return applied

    # =========================================================================
    # Relics
    # =========================================================================

    def add_relic(self, relic_id: str) -> bool:
        if self._state is None or not self.relic_engine.add_relic(relic_id):
            return False
        relic = self.relic_engine.catalog.get_relic(relic_id)
        state = self._state
        if relic_id not in state.relics:
            state.relics.append(relic_id)
        if relic.is_cursed and relic_id not in state.curses:
            state.curses.append(relic_id)
        self._after_relic_change(relic)
        return True

    def remove_relic(self, relic_id: str) -> bool:
        if self._state is None or not self.relic_engine.remove_relic(relic_id):
            return False
        relic = self.relic_engine.catalog.get_relic(relic_id)
        state = self._state
        if relic_id in state.relics:
            state.relics.remove(relic_id)
        if relic_id in state.curses:
            state.curses.remove(relic_id)
        self._after_relic_change(relic)
        return True

    def _after_relic_change(self, relic: Relic) -> None:
        state = self._state
        max_hp_changed = self._rederive_max_hp()
        self._persist()
        self._emit(NotificationType.RELICS_UPDATED, {"relics": list(state.relics)})
        if relic.is_cursed:
            self._emit(NotificationType.CURSES_UPDATED, {"curses": list(state.curses)})
        if max_hp_changed:
            self._emit_fortress()

    def _rederive_max_hp(self) -> bool:
        """Recompute fortress max HP from base HP. Returns True if it moved."""
        state = self._state
        new_max = self.relic_engine.apply_fortress_hp_modifier(state.base_fortress_hp)
        delta = new_max - state.fortress_max_hp
        if delta == 0:
            return False
        state.fortress_max_hp = new_max
        state.fortress_hp = min(state.fortress_hp + max(0, delta), new_max)
        return True

    # =========================================================================
    # Deck & collection
    # =========================================================================

    def add_card_to_run_deck(self, card: Union[str, CardInstance]) -> Optional[CardInstance]:
        """
        Add a card to the deck.

        A template id gets a fresh unique instance id. An instance keeps its
        id unless it collides with a deck card. Unknown templates return None.
        """
        if self._state is None:
            return None
        instance = self._make_instance(card)
        if instance is None:
            return None
        self._state.deck.append(instance)
        self._deck_changed()
        return instance.copy()

    def remove_card_from_run_deck(self, instance_id: str) -> bool:
        if self._state is None:
            return False
        for i, card in enumerate(self._state.deck):
            if card.id == instance_id:
                del self._state.deck[i]
                self._deck_changed()
                return True
        return False

    def set_run_deck(self, cards: Iterable[Union[str, CardInstance]]) -> List[CardInstance]:
        """Replace the deck. Unknown templates are skipped."""
        if self._state is None:
            return []
        self._state.deck = []
        for card in cards:
            instance = self._make_instance(card)
            if instance is not None:
                self._state.deck.append(instance)
        self._deck_changed()
        return self.get_deck_snapshot()

    def add_card_to_collection(self, card_id: str) -> bool:
        """Add a card's base template id to the collection. False if already present."""
        if self._state is None:
            return False
        template_id = base_card_id(card_id)
        if template_id in self._state.card_collection:
            return False
        self._state.card_collection.append(template_id)
        self._deck_changed()
        return True

    def remove_random_card(self, predicate: Optional[Callable[[CardInstance], bool]] = None
                           ) -> Optional[CardInstance]:
        """Remove a uniformly random deck card (among those matching predicate)."""
        if self._state is None or not self._state.deck:
            return None
        deck = self._state.deck
        indices = [i for i, card in enumerate(deck) if predicate is None or predicate(card.copy())]
        if not indices:
            return None
        removed = deck.pop(self.rng.choice(indices))
        self._deck_changed()
        return removed

    def _make_instance(self, card: Union[str, CardInstance]) -> Optional[CardInstance]:
        state = self._state
        if isinstance(card, CardInstance):
            instance = card.copy()
            if any(c.id == instance.id for c in state.deck):
                instance.id = state.allocate_card_id(instance.template_id)
            return instance
        template_id = base_card_id(card)
        if self.catalog.get_card(template_id) is None:
            logger.warning("Unknown card template: %s", card)
            return None
        return CardInstance(state.allocate_card_id(template_id), template_id)

    def _deck_changed(self) -> None:
        self._persist()
        self._emit(NotificationType.DECK_UPDATED, {
            "deck": [c.to_dict() for c in self._state.deck],
            "collection": list(self._state.card_collection),
        })

    # =========================================================================
    # Roster
    # =========================================================================

    def add_commander_to_roster(self, commander_id: str) -> bool:
        if self._state is None or self.catalog.get_commander(commander_id) is None:
            return False
        if commander_id in self._state.commander_roster:
            return False
        self._state.commander_roster.append(commander_id)
        self.store.unlock_commander(commander_id)
        self._persist()
        self._emit(NotificationType.ROSTER_UPDATED, {"roster": list(self._state.commander_roster)})
        return True

    # =========================================================================
    # Shop
    # =========================================================================

    def build_shop_offer(self, tier: int) -> Optional[ShopOffer]:
        """Card and relic offers for a shop, discounted by relics."""
        if self._state is None:
            return None
        engine = self.relic_engine
        ctx = engine.apply_trigger(RelicTrigger.SHOP_ENTER, RelicContext(amount=tier))

        offer = ShopOffer(tier=tier, context=ctx)
        base_card = rewards.card_price(tier)
        for card in rewards.generate_card_choices(self.rng, self.catalog.get_all_cards(),
                                                  tier, SHOP_CARD_COUNT):
            offer.cards.append(ShopItem(card.id, "card", engine.apply_shop_discount(base_card), base_card))

        relic = engine.generate_shop_relic(tier)
        if relic is not None:
            base_relic = rewards.relic_price(tier)
            offer.relic = ShopItem(relic.id, "relic", engine.apply_shop_discount(base_relic), base_relic)

        offer.curse_removal_price = rewards.curse_removal_price(tier)
        return offer

    def purchase(self, item: ShopItem) -> bool:
        """Pay an already-discounted shop price and take the item."""
        if self._state is None or not self.spend_gold(item.price):
            return False
        if item.kind == "relic":
            return self.add_relic(item.item_id)
        self.add_card_to_collection(item.item_id)
        return True

    # =========================================================================
    # Reads
    # =========================================================================

    def has_active_run(self) -> bool:
        return self._state is not None

    def is_run_complete(self) -> bool:
        return self._state is not None and self._state.is_complete

    def get_run_state(self) -> Optional[RunState]:
        return self._state.copy() if self._state else None

    def get_gold(self) -> int:
        return self._state.gold if self._state else 0

    def get_stage_snapshot(self, index: int) -> Optional[Stage]:
        stage = self._graph.get_stage(index) if self._graph else None
        return stage.copy() if stage else None

    def get_node_snapshot(self, node_id: str) -> Optional[MapNode]:
        node = self._graph.get_node(node_id) if self._graph else None
        return node.copy() if node else None

    def get_current_stage(self) -> Optional[Stage]:
        if self._state is None:
            return None
        return self.get_stage_snapshot(self._state.current_stage_index)

    def get_current_node(self) -> Optional[MapNode]:
        if self._state is None or self._state.current_node_id is None:
            return None
        return self.get_node_snapshot(self._state.current_node_id)

    def get_nodes_for_stage(self, index: int) -> List[MapNode]:
        if self._graph is None:
            return []
        return [n.copy() for n in self._graph.get_nodes_for_stage(index)]

    def get_accessible_node_ids(self) -> List[str]:
        if self._graph is None:
            return []
        return self._graph.get_accessible_node_ids()

    def get_deck_snapshot(self) -> List[CardInstance]:
        return [c.copy() for c in self._state.deck] if self._state else []

    def get_card_collection(self) -> List[str]:
        return list(self._state.card_collection) if self._state else []

    # =========================================================================
    # Internals
    # =========================================================================

    def _is_playing(self) -> bool:
        return self._state is not None and not self._state.is_complete

    def _persist(self) -> None:
        if self._state is not None and not self.store.save_run(self._state):
            logger.error("Failed to save run state")

    def _emit_fortress(self) -> None:
        self._emit(NotificationType.FORTRESS_UPDATED, {
            "hp": self._state.fortress_hp,
            "max_hp": self._state.fortress_max_hp,
        })

    def _emit(self, notification_type: NotificationType, payload: Dict[str, Any]) -> None:
        self.bus.emit(notification_type, payload)
