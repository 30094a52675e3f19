"""
Stage Graph - the run-local copy of the campaign map.

The graph clones every catalog stage so the run-local flags (is_completed,
is_accessible) can be mutated without touching catalog data. It is validated
once at build time; a malformed stage raises GraphIntegrityError. Each stage
must be acyclic with its boss reachable from the entry node, and an explicit
next_stage_id must name a later stage.

Accessibility rule (single-path branching):
- Every node is reset to inaccessible
- If the current node is not completed, it alone is accessible
- If it is completed, its direct not-yet-completed successors are accessible

Siblings of the chosen path are never reopened because accessibility only
ever flows forward from the current node.
"""

import logging
from typing import Dict, Iterable, List, Optional, Set

from ..content.stages import MapNode, Stage
from ..errors import GraphIntegrityError

logger = logging.getLogger(__name__)


class StageGraph:
    """Run-local stage graph with precomputed inbound edges."""

    def __init__(self, stages: Iterable[Stage]):
        self._stages: Dict[int, Stage] = {}
        self._stages_by_id: Dict[str, Stage] = {}
        self._nodes: Dict[str, MapNode] = {}
        self._entry_ids: Dict[int, str] = {}

        for stage in sorted(stages, key=lambda s: s.index):
            stage = stage.copy()
            for node in stage.nodes:
                if node.id in self._nodes:
                    raise GraphIntegrityError(f"Duplicate node id {node.id!r}", stage.id)
                node.is_completed = False
                node.is_accessible = False
                self._nodes[node.id] = node
            self._stages[stage.index] = stage
            self._stages_by_id[stage.id] = stage

        self._validate()

    @classmethod
    def from_catalog(cls, catalog) -> 'StageGraph':
        return cls(catalog.get_all_stages())

    # =========================================================================
    # Validation
    # =========================================================================

    def _validate(self) -> None:
        if not self._stages:
            raise GraphIntegrityError("Campaign has no stages")
        for stage in self._stages.values():
            if not stage.nodes:
                raise GraphIntegrityError(f"Stage {stage.id} has no nodes", stage.id)
            if stage.get_node(stage.boss_node_id) is None:
                raise GraphIntegrityError(
                    f"Stage {stage.id} boss node {stage.boss_node_id!r} does not exist", stage.id
                )

            inbound: Dict[str, int] = {node.id: 0 for node in stage.nodes}
            for node in stage.nodes:
                for next_id in node.next_node_ids:
                    target = self._nodes.get(next_id)
                    if target is None:
                        raise GraphIntegrityError(
                            f"Node {node.id} links to unknown node {next_id!r}", stage.id
                        )
                    if target.stage_index < stage.index:
                        raise GraphIntegrityError(
                            f"Node {node.id} links back to earlier stage node {next_id}", stage.id
                        )
                    if next_id in inbound:
                        inbound[next_id] += 1

            entry_id = next((node.id for node in stage.nodes if inbound[node.id] == 0), None)
            if entry_id is None:
                raise GraphIntegrityError(f"Stage {stage.id} has no entry node", stage.id)
            self._check_acyclic(stage, inbound)
            if stage.boss_node_id not in self._reachable_from(stage, entry_id):
                raise GraphIntegrityError(
                    f"Stage {stage.id} boss node {stage.boss_node_id} is unreachable from {entry_id}",
                    stage.id,
                )
            self._entry_ids[stage.index] = entry_id

        for stage in self._stages.values():
            if not stage.next_stage_id:
                continue
            target = self._stages_by_id.get(stage.next_stage_id)
            if target is None:
                raise GraphIntegrityError(
                    f"Stage {stage.id} chains to unknown stage {stage.next_stage_id!r}", stage.id
                )
            if target.index <= stage.index:
                raise GraphIntegrityError(
                    f"Stage {stage.id} chains back to stage {target.id}", stage.id
                )

        logger.debug("Built stage graph: %d stages, %d nodes", len(self._stages), len(self._nodes))

    @staticmethod
    def _stage_successors(stage: Stage, node: MapNode) -> List[str]:
        return [next_id for next_id in node.next_node_ids if stage.get_node(next_id) is not None]

    def _check_acyclic(self, stage: Stage, inbound: Dict[str, int]) -> None:
        """Kahn's algorithm over same-stage edges; leftover nodes sit on a cycle."""
        remaining = dict(inbound)
        ready = [node_id for node_id, count in remaining.items() if count == 0]
        visited = 0
        while ready:
            node_id = ready.pop()
            visited += 1
            for next_id in self._stage_successors(stage, self._nodes[node_id]):
                remaining[next_id] -= 1
                if remaining[next_id] == 0:
                    ready.append(next_id)
        if visited < len(stage.nodes):
            looped = sorted(node_id for node_id, count in remaining.items() if count > 0)
            raise GraphIntegrityError(
                f"Stage {stage.id} has a cycle through {', '.join(looped)}", stage.id
            )

    def _reachable_from(self, stage: Stage, start_id: str) -> Set[str]:
        seen = {start_id}
        stack = [start_id]
        while stack:
            for next_id in self._stage_successors(stage, self._nodes[stack.pop()]):
                if next_id not in seen:
                    seen.add(next_id)
                    stack.append(next_id)
        return seen

    # =========================================================================
    # Lookups
    # =========================================================================

    @property
    def stage_count(self) -> int:
        return len(self._stages)

    def first_stage_index(self) -> int:
        return min(self._stages)

    def get_stage(self, index: int) -> Optional[Stage]:
        return self._stages.get(index)

    def get_stage_by_id(self, stage_id: str) -> Optional[Stage]:
        return self._stages_by_id.get(stage_id)

    def get_node(self, node_id: str) -> Optional[MapNode]:
        return self._nodes.get(node_id)

    def get_nodes_for_stage(self, index: int) -> List[MapNode]:
        stage = self._stages.get(index)
        return list(stage.nodes) if stage else []

    def get_entry_node(self, stage_index: int) -> Optional[MapNode]:
        entry_id = self._entry_ids.get(stage_index)
        return self._nodes.get(entry_id) if entry_id else None

    def get_next_stage(self, stage: Stage) -> Optional[Stage]:
        """Explicit next_stage_id if present, else index + 1."""
        if stage.next_stage_id:
            return self._stages_by_id.get(stage.next_stage_id)
        return self._stages.get(stage.index + 1)

    def is_boss_node(self, node: MapNode) -> bool:
        stage = self._stages.get(node.stage_index)
        return stage is not None and stage.boss_node_id == node.id

    def get_accessible_node_ids(self) -> List[str]:
        return [node_id for node_id, node in self._nodes.items() if node.is_accessible]

    # =========================================================================
    # Run-local flags
    # =========================================================================

    def mark_completed(self, node_ids: Iterable[str]) -> None:
        for node_id in node_ids:
            node = self._nodes.get(node_id)
            if node is not None:
                node.is_completed = True
                node.is_accessible = False

    def recompute_accessibility(self, current_node_id: Optional[str]) -> List[str]:
        """Apply the single-path accessibility rule. Returns the accessible ids."""
        for node in self._nodes.values():
            node.is_accessible = False

        current = self._nodes.get(current_node_id) if current_node_id else None
        if current is None:
            return []

        if not current.is_completed:
            current.is_accessible = True
        else:
            for next_id in current.next_node_ids:
                successor = self._nodes.get(next_id)
                if successor is not None and not successor.is_completed:
                    successor.is_accessible = True

        return self.get_accessible_node_ids()
