import logging
from dataclasses import dataclass
from typing import Optional

from termcolor import colored

from block_stacking.tasks.base_task import TASK, PickPlaceTask
from block_stacking.utils.common_util import CollisionOperation, Pose
from block_stacking.utils.general_util import l2_distance_np

logger = logging.getLogger(__name__)
logger.setLevel(logging.DEBUG)


@dataclass
class PickPlaceSolution:
    object_name: str
    pick_pose: Pose
    place_pose: Pose
    support: Optional[str] = None
    cost: float = 0.0


@TASK.register()
class StackPickPlaceTask(PickPlaceTask):
    """
    Picks an object where it currently is in the scene and places it either on
    top of its predecessor or at the configured place pose.

    Planning only checks reachability and stacking geometry.
    """

    def __init__(self, task_config, scene, *args, **kwargs):
        super().__init__(task_config, scene)
        self._solution = None  # PickPlaceSolution

    @property
    def solution(self):
        return self._solution

    def _reachable(self, label, pose: Pose):
        reach = l2_distance_np(pose.position, self.config.robot_base)
        if reach > self.config.max_reach:
            logger.error(
                colored(
                    f"{label} pose of {self._object_name} out of reach "
                    f"({reach:.3f} > {self.config.max_reach:.3f})",
                    "red",
                )
            )
            return False
        return True

    def _place_pose(self, obj):
        height = obj.primitive.height
        offset = self.config.place_surface_offset

        if self._prev_object is None:
            x, y, z = self.config.place_pose
            return Pose(x=x, y=y, z=z + 0.5 * height + offset, orientation=obj.pose.orientation)

        support = self._scene.get_object(self._prev_object)
        if support is None:
            logger.error(f"Cannot place {self._object_name}: {self._prev_object} is not in the scene")
            return None
        if support.frame_id != obj.frame_id:
            logger.error(
                f"Cannot stack {self._object_name} ({obj.frame_id}) on "
                f"{self._prev_object} ({support.frame_id})"
            )
            return None

        return Pose(
            x=support.pose.x,
            y=support.pose.y,
            z=support.pose.z + 0.5 * support.primitive.height + 0.5 * height + offset,
            orientation=support.pose.orientation,
        )

    def plan(self) -> bool:
        assert self._initialized, "Task not initialized! Run 'init' first."
        self._solution = None

        obj = self._scene.get_object(self._object_name)
        if obj is None:
            logger.error(f"Cannot plan for {self._object_name}: object is not in the scene")
            return False

        place_pose = self._place_pose(obj)
        if place_pose is None:
            return False

        if not (self._reachable("pick", obj.pose) and self._reachable("place", place_pose)):
            return False

        self._solution = PickPlaceSolution(
            object_name=self._object_name,
            pick_pose=obj.pose,
            place_pose=place_pose,
            support=self._prev_object,
            cost=float(l2_distance_np(obj.pose.position, place_pose.position)),
        )
        logger.debug(
            f"Plan for {self._object_name}: place at "
            f"({place_pose.x:.3f}, {place_pose.y:.3f}, {place_pose.z:.3f}), "
            f"cost {self._solution.cost:.3f}"
        )
        return True

    def execute(self) -> bool:
        assert self._solution is not None, "No plan to execute! Run 'plan' first."

        obj = self._scene.get_object(self._object_name)
        if obj is None:
            logger.error(f"Cannot execute: {self._object_name} disappeared from the scene")
            return False

        obj.pose = self._solution.place_pose
        obj.operation = CollisionOperation.MOVE
        return self._scene.apply_collision_object(obj)
