import copy

from dataclasses import dataclass, field
from typing import Optional, Dict, List, Tuple


############ Errors ############
class ConfigurationError(RuntimeError):
    """
    Required parameters are missing or malformed. Fatal before any pipeline work.
    """


class SpawnError(RuntimeError):
    """
    The planning scene rejected a collision object.
    """


class PerceptionError(RuntimeError):
    """
    The segmentation server finished without a usable result.
    """


class PerceptionUnavailableError(PerceptionError):
    """
    The segmentation server did not come up within the connection timeout.
    """


############ Outcomes ############
class PipelineOutcome:
    Completed = "Completed"
    AbortedOnFailure = "AbortedOnFailure"
    AbortedOnPerceptionTimeout = "AbortedOnPerceptionTimeout"


# perception timeout keeps its historical exit status of 0
EXIT_CODES = {
    PipelineOutcome.Completed: 0,
    PipelineOutcome.AbortedOnPerceptionTimeout: 0,
    PipelineOutcome.AbortedOnFailure: 1,
}


class CollisionOperation:
    ADD = "add"
    REMOVE = "remove"
    MOVE = "move"


############ Geometry ############
@dataclass
class Pose:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    orientation: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)

    @property
    def position(self):
        return (self.x, self.y, self.z)


@dataclass
class SolidPrimitive:
    dimensions: Tuple[float, float, float]
    type: str = "box"

    @property
    def height(self):
        return self.dimensions[2]


@dataclass
class CollisionObject:
    id: str
    frame_id: str
    primitive: SolidPrimitive
    pose: Pose
    operation: str = CollisionOperation.ADD

    def copy(self):
        return copy.deepcopy(self)


############ Perception ############
@dataclass(frozen=True)
class PerceptionEstimate:
    frame_id: str
    x: float
    y: float


############ Pipeline ############
@dataclass
class PipelineState:
    spawn_objs: List[str]
    index: int = 0
    predecessors: Dict[str, Optional[str]] = field(default_factory=dict)
    running_tally: List[str] = field(default_factory=list)
    completed: List[str] = field(default_factory=list)

    @property
    def current(self):
        return self.spawn_objs[self.index]

    def done(self):
        return self.index >= len(self.spawn_objs)

    def advance(self):
        self.index += 1


@dataclass
class PipelineResult:
    outcome: str
    completed: List[str] = field(default_factory=list)
    predecessors: Dict[str, Optional[str]] = field(default_factory=dict)
    failed_object: Optional[str] = None
    failed_stage: Optional[str] = None

    @property
    def exit_code(self):
        return EXIT_CODES[self.outcome]

    def to_json(self):
        return {
            "outcome": self.outcome,
            "exit_code": self.exit_code,
            "completed": list(self.completed),
            "predecessors": dict(self.predecessors),
            "failed_object": self.failed_object,
            "failed_stage": self.failed_stage,
        }
