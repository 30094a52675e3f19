"""Relic reward and shop generation."""

from .rewards import (
    pick_random_relics,
    target_rarity_for_tier,
    generate_starting_relics,
    generate_random_curse,
    generate_relic_reward,
    generate_shop_relic,
    card_price,
    relic_price,
    curse_removal_price,
    card_rarity_for_tier,
    generate_card_choices,
)
