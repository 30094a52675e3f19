"""
IronWars - Reward Generation

Implements relic reward mechanics:
- Rarity-weighted sampling without replacement
- Starting relics (non-cursed common/rare)
- Curse grants for higher difficulties
- Elite/boss relic reward choices with tier -> rarity targeting
- Shop relic offers and shop prices

All randomness comes from an injected random.Random for seed reproducibility.
"""

import random
from typing import Iterable, List, Optional, Sequence

from ..content.factions import CardDefinition, CardRarity
from ..content.relics import (
    Relic, RelicRarity, RARITY_WEIGHTS, DEFAULT_RARITY_WEIGHT,
)


# ============================================================================
# CONSTANTS
# ============================================================================

STARTING_RARITIES = (RelicRarity.COMMON, RelicRarity.RARE)

DEFAULT_REWARD_CHOICES = 3

# Shop pricing by node tier
CARD_BASE_PRICE = 60
CARD_PRICE_PER_TIER = 20
RELIC_BASE_PRICE = 180
RELIC_PRICE_PER_TIER = 25
CURSE_REMOVAL_BASE_PRICE = 100
CURSE_REMOVAL_PRICE_PER_TIER = 25


def rarity_weight(relic: Relic) -> int:
    return RARITY_WEIGHTS.get(relic.rarity, DEFAULT_RARITY_WEIGHT)


def target_rarity_for_tier(tier: int) -> RelicRarity:
    """
    Preferred reward rarity for a node tier.

    <=1 common, 2 rare, 3 epic, >=4 legendary.
    """
    if tier <= 1:
        return RelicRarity.COMMON
    if tier == 2:
        return RelicRarity.RARE
    if tier == 3:
        return RelicRarity.EPIC
    return RelicRarity.LEGENDARY


def pick_random_relics(rng: random.Random, pool: Sequence[Relic], count: int) -> List[Relic]:
    """
    Rarity-weighted sampling without replacement.

    Zero-weight relics are never picked; returns fewer than count when the
    pool runs out of pickable relics.
    """
    selected: List[Relic] = []
    remaining = list(pool)

    while len(selected) < count and remaining:
        weights = [rarity_weight(r) for r in remaining]
        total = sum(weights)
        if total <= 0:
            break

        roll = rng.random() * total
        chosen = None
        for i, weight in enumerate(weights):
            if weight > 0 and roll < weight:
                chosen = i
                break
            roll -= weight
        if chosen is None:
            # Float rounding left roll at the top edge
            chosen = max(i for i, w in enumerate(weights) if w > 0)

        selected.append(remaining.pop(chosen))

    return selected


def generate_starting_relics(rng: random.Random, relics: Iterable[Relic], count: int) -> List[str]:
    """
    Starting relic ids drawn from non-cursed common/rare relics.

    Falls back to every non-cursed relic if that pool is too small.
    """
    non_cursed = [r for r in relics if not r.is_cursed]
    starting_pool = [r for r in non_cursed if r.rarity in STARTING_RARITIES]
    pool = starting_pool if len(starting_pool) >= count else non_cursed
    return [r.id for r in pick_random_relics(rng, pool, count)]


def generate_random_curse(rng: random.Random, relics: Iterable[Relic]) -> Optional[Relic]:
    """Uniformly random curse, or None if the catalog has none."""
    curses = [r for r in relics if r.is_cursed]
    if not curses:
        return None
    return rng.choice(curses)


def generate_relic_reward(
    rng: random.Random,
    relics: Iterable[Relic],
    tier: int,
    exclude_ids: Iterable[str] = (),
    active_ids: Iterable[str] = (),
    count: int = DEFAULT_REWARD_CHOICES,
) -> List[Relic]:
    """
    Relic reward choices for a node tier.

    Excludes cursed, explicitly excluded and already active relics. Prefers
    the tier's target rarity; an empty preferred pool widens to everything
    that remains.

    Args:
        rng: Reward RNG
        relics: Every relic in the catalog
        tier: Reward tier of the completed node
        exclude_ids: Relic ids to skip (e.g. already offered)
        active_ids: Relic ids the run already owns
        count: Number of choices

    Returns:
        Up to count distinct relics
    """
    excluded = set(exclude_ids) | set(active_ids)
    available = [r for r in relics if not r.is_cursed and r.id not in excluded]
    if not available:
        return []

    target = target_rarity_for_tier(tier)
    preferred = [r for r in available if r.rarity == target]
    pool = preferred if preferred else available
    return pick_random_relics(rng, pool, count)


def generate_shop_relic(
    rng: random.Random,
    relics: Iterable[Relic],
    tier: int,
    active_ids: Iterable[str] = (),
) -> Optional[Relic]:
    """One relic for a shop of the given tier."""
    choices = generate_relic_reward(rng, relics, tier, active_ids=active_ids, count=1)
    return choices[0] if choices else None


def card_price(tier: int) -> int:
    """Undiscounted shop price of a card."""
    return CARD_BASE_PRICE + CARD_PRICE_PER_TIER * tier


def relic_price(tier: int) -> int:
    """Undiscounted shop price of a relic."""
    return RELIC_BASE_PRICE + RELIC_PRICE_PER_TIER * tier


def card_rarity_for_tier(tier: int) -> CardRarity:
    """<=1 common, 2 rare, >=3 epic."""
    if tier <= 1:
        return CardRarity.COMMON
    if tier == 2:
        return CardRarity.RARE
    return CardRarity.EPIC


def generate_card_choices(
    rng: random.Random,
    cards: Iterable[CardDefinition],
    tier: int,
    count: int = DEFAULT_REWARD_CHOICES,
) -> List[CardDefinition]:
    """Distinct card templates of the tier's rarity, widening to all cards if none match."""
    all_cards = list(cards)
    target = card_rarity_for_tier(tier)
    pool = [c for c in all_cards if c.rarity == target] or all_cards
    return rng.sample(pool, min(count, len(pool)))


def curse_removal_price(tier: int) -> int:
    return CURSE_REMOVAL_BASE_PRICE + CURSE_REMOVAL_PRICE_PER_TIER * tier
