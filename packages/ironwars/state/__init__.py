"""Run-local state: the stage graph and the run state record."""

from .graph import StageGraph
from .run import RunState, CardInstance, base_card_id
