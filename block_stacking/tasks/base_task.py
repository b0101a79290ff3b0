import abc
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from block_stacking.utils.param_util import get_optional
from block_stacking.utils.registry import Registry

logger = logging.getLogger(__name__)
logger.setLevel(logging.DEBUG)


TASK = Registry("Task")


def create_task(task_name: str, *args, **kwargs):
    return TASK.get(task_name)(*args, **kwargs)


@dataclass(frozen=True)
class TaskConfig:
    """
    Immutable task settings shared by every per-object task.
    """

    task: str = "StackPickPlaceTask"
    task_name: str = "deep_pick_place_task"
    world_frame: str = "base_link"
    robot_base: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    max_reach: float = 0.85
    # surface point where objects without a predecessor are placed
    place_pose: Tuple[float, float, float] = (0.5, 0.25, 0.0)
    place_surface_offset: float = 0.0001

    @classmethod
    def from_cfg(cls, task_cfg):
        defaults = cls()
        return cls(
            task=get_optional(task_cfg, "task", defaults.task),
            task_name=get_optional(task_cfg, "task_name", defaults.task_name),
            world_frame=get_optional(task_cfg, "world_frame", defaults.world_frame),
            robot_base=tuple(
                float(v) for v in get_optional(task_cfg, "robot_base", defaults.robot_base)
            ),
            max_reach=float(get_optional(task_cfg, "max_reach", defaults.max_reach)),
            place_pose=tuple(
                float(v) for v in get_optional(task_cfg, "place_pose", defaults.place_pose)
            ),
            place_surface_offset=float(
                get_optional(task_cfg, "place_surface_offset", defaults.place_surface_offset)
            ),
        )


class PickPlaceTask(abc.ABC):
    """
    One pick-and-place attempt for a single object.

    Lifecycle: load_parameters -> init -> plan -> (execute). A task is used for
    exactly one object; create a new one for the next object.
    """

    def __init__(self, task_config: TaskConfig, scene, *args, **kwargs):
        self.config = task_config
        self._scene = scene

        # to be set: object & the object it is stacked on
        self._object_name = None  # str
        self._prev_object = None  # Optional[str]

        self._params_loaded = False
        self._initialized = False

    def __str__(self):
        return f"{self.__class__.__name__}({self._object_name})"

    @property
    def object_name(self):
        return self._object_name

    @property
    def prev_object(self) -> Optional[str]:
        return self._prev_object

    def load_parameters(self, object_name: str, prev_object: Optional[str] = None):
        assert not self._params_loaded, "Task parameters already loaded! Create a new task."
        self._object_name = object_name
        self._prev_object = prev_object or None
        self._params_loaded = True

    def init(self):
        assert self._params_loaded, "Task not configured! Run 'load_parameters' first."
        assert not self._initialized, "Task already initialized!"
        self._initialized = True
        logger.info(
            f"Initialized {self.config.task_name} for {self._object_name}"
            + (f" on {self._prev_object}" if self._prev_object else "")
        )

    @abc.abstractmethod
    def plan(self) -> bool:
        raise NotImplementedError("Override me!")

    @abc.abstractmethod
    def execute(self) -> bool:
        raise NotImplementedError("Override me!")
