"""
Run and meta-progression storage.

Separates persistence from the progression state machine for testability.
Both stores keep one save envelope:

    {
      "version": "1.0.0",
      "run_state": {...} | null,
      "meta_progression": {"unlocked_commander_ids", "unlocked_relic_ids",
                           "total_runs_completed", "highest_stage_reached"},
      "timestamp": "2026-01-01T12:00:00"
    }

Implementations:
- JsonSaveStore: one JSON file with a .bak copy of the previous save (production)
- MemorySaveStore: envelope held in memory (testing)
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union, runtime_checkable

from .state.run import RunState

logger = logging.getLogger(__name__)

SAVE_VERSION = "1.0.0"


@dataclass
class MetaProgression:
    """Unlocks and statistics that persist across runs."""
    unlocked_commander_ids: List[str] = field(default_factory=list)
    unlocked_relic_ids: List[str] = field(default_factory=list)
    total_runs_completed: int = 0
    highest_stage_reached: int = 0

    def copy(self) -> 'MetaProgression':
        return MetaProgression.from_dict(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unlocked_commander_ids": list(self.unlocked_commander_ids),
            "unlocked_relic_ids": list(self.unlocked_relic_ids),
            "total_runs_completed": self.total_runs_completed,
            "highest_stage_reached": self.highest_stage_reached,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MetaProgression':
        return cls(
            unlocked_commander_ids=list(data.get("unlocked_commander_ids", [])),
            unlocked_relic_ids=list(data.get("unlocked_relic_ids", [])),
            total_runs_completed=int(data.get("total_runs_completed", 0)),
            highest_stage_reached=int(data.get("highest_stage_reached", 0)),
        )


@runtime_checkable
class SaveStore(Protocol):
    """Storage interface used by RunProgression."""

    def save_run(self, state: RunState) -> bool:
        """Persist the active run. Returns False if the write failed."""
        ...

    def load_run(self) -> Optional[RunState]:
        """The saved run, or None if there is none (or it is unreadable)."""
        ...

    def delete_run(self) -> None:
        ...

    def has_saved_run(self) -> bool:
        ...

    def get_meta_progression(self) -> MetaProgression:
        ...

    def is_commander_unlocked(self, commander_id: str) -> bool:
        ...

    def unlock_commander(self, commander_id: str) -> bool:
        ...

    def is_relic_unlocked(self, relic_id: str) -> bool:
        ...

    def unlock_relic(self, relic_id: str) -> bool:
        ...

    def increment_runs_completed(self) -> int:
        ...

    def update_highest_stage(self, stage_index: int) -> bool:
        ...


class MemorySaveStore:
    """
    In-memory save storage.

    No file I/O; JsonSaveStore layers file persistence on top.
    """

    def __init__(self):
        self._run_data: Optional[Dict[str, Any]] = None
        self._meta = MetaProgression()
        self.timestamp: Optional[datetime] = None

    def _persist(self) -> bool:
        self.timestamp = datetime.now()
        return True

    # -------------------------------------------------------------------------
    # Run state
    # -------------------------------------------------------------------------

    def save_run(self, state: RunState) -> bool:
        self._run_data = state.to_dict()
        return self._persist()

    def load_run(self) -> Optional[RunState]:
        if self._run_data is None:
            return None
        try:
            return RunState.from_dict(self._run_data)
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Saved run is malformed: %s", e)
            return None

    def delete_run(self) -> None:
        self._run_data = None
        self._persist()

    def has_saved_run(self) -> bool:
        return self._run_data is not None

    # -------------------------------------------------------------------------
    # Meta progression
    # -------------------------------------------------------------------------

    def get_meta_progression(self) -> MetaProgression:
        return self._meta.copy()

    def is_commander_unlocked(self, commander_id: str) -> bool:
        return commander_id in self._meta.unlocked_commander_ids

    def unlock_commander(self, commander_id: str) -> bool:
        if commander_id in self._meta.unlocked_commander_ids:
            return False
        self._meta.unlocked_commander_ids.append(commander_id)
        self._persist()
        return True

    def is_relic_unlocked(self, relic_id: str) -> bool:
        return relic_id in self._meta.unlocked_relic_ids

    def unlock_relic(self, relic_id: str) -> bool:
        if relic_id in self._meta.unlocked_relic_ids:
            return False
        self._meta.unlocked_relic_ids.append(relic_id)
        self._persist()
        return True

    def increment_runs_completed(self) -> int:
        self._meta.total_runs_completed += 1
        self._persist()
        return self._meta.total_runs_completed

    def update_highest_stage(self, stage_index: int) -> bool:
        """Record a new highest stage. False if not higher than the current record."""
        if stage_index <= self._meta.highest_stage_reached:
            return False
        self._meta.highest_stage_reached = stage_index
        self._persist()
        return True

    # -------------------------------------------------------------------------
    # Envelope
    # -------------------------------------------------------------------------

    def to_envelope(self) -> Dict[str, Any]:
        return {
            "version": SAVE_VERSION,
            "run_state": self._run_data,
            "meta_progression": self._meta.to_dict(),
            "timestamp": (self.timestamp or datetime.now()).isoformat(),
        }

    def export_save_data(self) -> str:
        return json.dumps(self.to_envelope(), indent=2)

    def import_save_data(self, raw: str) -> bool:
        """Replace everything with an exported envelope. False if it is not one."""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("Cannot import save data: %s", e)
            return False
        if not isinstance(data, dict) or "version" not in data or "meta_progression" not in data:
            logger.error("Invalid save data format")
            return False
        self._apply_envelope(data)
        return self._persist()

    def reset_all_data(self) -> None:
        self._run_data = None
        self._meta = MetaProgression()
        self._persist()

    def _apply_envelope(self, data: Dict[str, Any]) -> None:
        if data.get("version") != SAVE_VERSION:
            logger.warning("Save version mismatch: %s vs %s", data.get("version"), SAVE_VERSION)
        self._run_data = data.get("run_state")
        self._meta = MetaProgression.from_dict(data.get("meta_progression") or {})


class JsonSaveStore(MemorySaveStore):
    """
    File-based save storage using JSON.

    Features:
    - Backup of the previous save on every write (<name>.json.bak)
    - Unreadable saves degrade to "no saved run" with a logged error
    """

    def __init__(self, path: Union[Path, str] = "saves/ironwars_save.json"):
        super().__init__()
        self.path = Path(path)
        self._load_from_disk()

    def _load_from_disk(self) -> None:
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text())
            self._apply_envelope(data)
        except (OSError, json.JSONDecodeError, AttributeError) as e:
            logger.error("Failed to load save data from %s: %s", self.path, e)

    def _persist(self) -> bool:
        super()._persist()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)

            # Backup previous save
            if self.path.exists():
                backup = self.path.with_suffix(".json.bak")
                backup.write_text(self.path.read_text())

            self.path.write_text(json.dumps(self.to_envelope(), indent=2))
            return True
        except OSError as e:
            logger.error("Failed to persist save data to %s: %s", self.path, e)
            return False
