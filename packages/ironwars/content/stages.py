"""
Stage and map node definitions.

A stage is a small directed graph of encounter nodes ending in one boss
node. Stages chain by explicit next_stage_id or by index + 1.

Default campaign (3 stages):

    Stage 0 (Rustfields)        Stage 1 (Ember Pass)      Stage 2 (Iron Throne)
    s0_start                    s1_start                  s2_start
     |-> s0_battle -> s0_elite   |-> s1_elite              |-> s2_elite_a
     |            \-> s0_shop    |-> s1_event              |-> s2_elite_b
     \-> s0_event -> s0_shop     ... -> s1_rest -> s1_boss  ... -> s2_rest -> s2_boss
                  \-> s0_rest
    ... -> s0_boss
"""

from dataclasses import dataclass, field
from typing import List, Optional
from enum import Enum


class NodeType(Enum):
    """Encounter types on the stage map."""
    BATTLE = "battle"
    ELITE = "elite"
    BOSS = "boss"
    EVENT = "event"
    SHOP = "shop"
    RECRUITMENT = "recruitment"
    REST = "rest"


# Node types that award combat rewards (gold, relic choices)
COMBAT_NODE_TYPES = (NodeType.BATTLE, NodeType.ELITE, NodeType.BOSS)


@dataclass
class MapNode:
    """
    One encounter location on a stage map.

    Everything except is_completed / is_accessible is fixed content data.
    The two flags are run-local and owned by the progression state machine.
    """
    id: str
    type: NodeType
    stage_index: int
    tier: int = 1
    next_node_ids: List[str] = field(default_factory=list)
    encounter_id: Optional[str] = None
    reward_tier: Optional[int] = None

    # Presentation hints
    pos_x: float = 0
    pos_y: float = 0
    icon_key: str = "node_battle"

    # Run-local flags
    is_completed: bool = False
    is_accessible: bool = False

    def __post_init__(self):
        if self.reward_tier is None:
            self.reward_tier = self.tier

    @property
    def is_boss(self) -> bool:
        return self.type == NodeType.BOSS

    def copy(self) -> 'MapNode':
        """Create an independent copy (edge list included)."""
        return MapNode(
            id=self.id, type=self.type, stage_index=self.stage_index,
            tier=self.tier, next_node_ids=list(self.next_node_ids),
            encounter_id=self.encounter_id, reward_tier=self.reward_tier,
            pos_x=self.pos_x, pos_y=self.pos_y, icon_key=self.icon_key,
            is_completed=self.is_completed, is_accessible=self.is_accessible,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "stage_index": self.stage_index,
            "tier": self.tier,
            "next_node_ids": list(self.next_node_ids),
            "encounter_id": self.encounter_id,
            "reward_tier": self.reward_tier,
            "pos_x": self.pos_x,
            "pos_y": self.pos_y,
            "icon_key": self.icon_key,
            "is_completed": self.is_completed,
            "is_accessible": self.is_accessible,
        }


@dataclass
class Stage:
    """An ordered collection of nodes with one designated boss node."""
    id: str
    index: int
    name: str
    boss_node_id: str
    nodes: List[MapNode] = field(default_factory=list)
    next_stage_id: Optional[str] = None
    theme: Optional[str] = None

    def get_node(self, node_id: str) -> Optional[MapNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def copy(self) -> 'Stage':
        return Stage(
            id=self.id, index=self.index, name=self.name,
            boss_node_id=self.boss_node_id,
            nodes=[n.copy() for n in self.nodes],
            next_stage_id=self.next_stage_id, theme=self.theme,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "index": self.index,
            "name": self.name,
            "boss_node_id": self.boss_node_id,
            "next_stage_id": self.next_stage_id,
            "theme": self.theme,
            "nodes": [n.to_dict() for n in self.nodes],
        }


def _node(node_id: str, node_type: NodeType, stage: int, tier: int,
          next_ids: List[str], x: float, y: float,
          encounter: Optional[str] = None) -> MapNode:
    return MapNode(
        id=node_id, type=node_type, stage_index=stage, tier=tier,
        next_node_ids=next_ids, encounter_id=encounter,
        pos_x=x, pos_y=y, icon_key=f"node_{node_type.value}",
    )


# ============================================================================
# DEFAULT CAMPAIGN
# ============================================================================

RUSTFIELDS = Stage(
    id="stage_rustfields", index=0, name="Rustfields", theme="scrapyard",
    boss_node_id="s0_boss",
    nodes=[
        _node("s0_start", NodeType.BATTLE, 0, 1, ["s0_battle", "s0_event"], 0, 2, "raiders_scouts"),
        _node("s0_battle", NodeType.BATTLE, 0, 1, ["s0_elite", "s0_shop"], 1, 1, "raiders_pack"),
        _node("s0_event", NodeType.EVENT, 0, 1, ["s0_shop", "s0_rest"], 1, 3),
        _node("s0_elite", NodeType.ELITE, 0, 2, ["s0_boss"], 2, 0, "scrap_golem"),
        _node("s0_shop", NodeType.SHOP, 0, 1, ["s0_boss"], 2, 2),
        _node("s0_rest", NodeType.REST, 0, 1, ["s0_boss"], 2, 4),
        _node("s0_boss", NodeType.BOSS, 0, 3, [], 3, 2, "warlord_krag"),
    ],
)

EMBER_PASS = Stage(
    id="stage_ember_pass", index=1, name="Ember Pass", theme="volcanic",
    boss_node_id="s1_boss", next_stage_id="stage_iron_throne",
    nodes=[
        _node("s1_start", NodeType.RECRUITMENT, 1, 2, ["s1_elite", "s1_event"], 0, 2),
        _node("s1_elite", NodeType.ELITE, 1, 3, ["s1_rest"], 1, 1, "ember_drake"),
        _node("s1_event", NodeType.EVENT, 1, 2, ["s1_battle"], 1, 3),
        _node("s1_battle", NodeType.BATTLE, 1, 2, ["s1_rest", "s1_shop"], 2, 3, "ash_cultists"),
        _node("s1_shop", NodeType.SHOP, 1, 2, ["s1_boss"], 3, 4),
        _node("s1_rest", NodeType.REST, 1, 2, ["s1_boss"], 3, 1),
        _node("s1_boss", NodeType.BOSS, 1, 4, [], 4, 2, "magma_titan"),
    ],
)

IRON_THRONE = Stage(
    id="stage_iron_throne", index=2, name="Iron Throne", theme="citadel",
    boss_node_id="s2_boss",
    nodes=[
        _node("s2_start", NodeType.BATTLE, 2, 3, ["s2_elite_a", "s2_elite_b"], 0, 2, "throne_guard"),
        _node("s2_elite_a", NodeType.ELITE, 2, 4, ["s2_rest"], 1, 1, "iron_inquisitor"),
        _node("s2_elite_b", NodeType.ELITE, 2, 4, ["s2_rest"], 1, 3, "siege_colossus"),
        _node("s2_rest", NodeType.REST, 2, 3, ["s2_boss"], 2, 2),
        _node("s2_boss", NodeType.BOSS, 2, 5, [], 3, 2, "iron_emperor"),
    ],
)

DEFAULT_STAGES: List[Stage] = [RUSTFIELDS, EMBER_PASS, IRON_THRONE]
