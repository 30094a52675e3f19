"""Relic effect conditions.

Conditions are evaluated per call against a RelicContext and never cached.
The vocabulary is closed: unknown tags evaluate to False.
"""

from typing import Callable, Dict, Optional

from . import RelicContext


def _ranged(ctx: RelicContext) -> bool:
    return ctx.unit_type == "ranged"


def _unit_hp_below_50(ctx: RelicContext) -> bool:
    return ctx.unit_hp_percent is not None and ctx.unit_hp_percent < 50


def _fortress_hp_above_75(ctx: RelicContext) -> bool:
    return ctx.fortress_hp_percent is not None and ctx.fortress_hp_percent > 75


def _elite(ctx: RelicContext) -> bool:
    return ctx.node_type == "elite"


def _boss(ctx: RelicContext) -> bool:
    return ctx.node_type == "boss"


def _fortress_lethal(ctx: RelicContext) -> bool:
    return bool(ctx.would_be_lethal)


CONDITIONS: Dict[str, Callable[[RelicContext], bool]] = {
    "ranged": _ranged,
    "unit_hp_below_50": _unit_hp_below_50,
    "fortress_hp_above_75": _fortress_hp_above_75,
    "elite": _elite,
    "boss": _boss,
    "fortress_lethal": _fortress_lethal,
}


def check_condition(condition: Optional[str], ctx: Optional[RelicContext]) -> bool:
    """Evaluate a condition tag. No tag is always true; unknown tags are false."""
    if not condition:
        return True
    predicate = CONDITIONS.get(condition)
    if predicate is None or ctx is None:
        return False
    return predicate(ctx)
