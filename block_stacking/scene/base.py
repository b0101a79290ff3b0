import abc
import logging
import threading
from typing import Dict, List, Optional

from termcolor import colored

from block_stacking.utils.common_util import CollisionObject, CollisionOperation, SpawnError
from block_stacking.utils.param_util import get_optional
from block_stacking.utils.registry import Registry

logger = logging.getLogger(__name__)
logger.setLevel(logging.DEBUG)

SCENE = Registry("Scene")


def create_scene(scene_name: str, *args, **kwargs):
    return SCENE.get(scene_name)(*args, **kwargs)


def spawn_object(scene, obj: CollisionObject):
    """
    Apply obj to the scene, raising SpawnError if the scene rejects it.
    """
    if not scene.apply_collision_object(obj):
        raise SpawnError(f"Failed to spawn object: {obj.id}")
    logger.info(colored(f"Spawned {obj.id} in {obj.frame_id}", "green"))


class PlanningScene(abc.ABC):
    def __str__(self):
        return self.__class__.__name__

    @abc.abstractmethod
    def apply_collision_object(self, obj: CollisionObject) -> bool:
        """
        Add, move or remove a collision object. Returns False if rejected.
        """
        raise NotImplementedError("Override me!")

    @abc.abstractmethod
    def get_object(self, object_id: str) -> Optional[CollisionObject]:
        raise NotImplementedError("Override me!")

    @abc.abstractmethod
    def object_ids(self) -> List[str]:
        raise NotImplementedError("Override me!")


@SCENE.register()
class InMemoryPlanningScene(PlanningScene):
    """
    Thread-safe planning scene holding copies of the applied collision objects.
    """

    def __init__(self, scene_cfg=None, *args, **kwargs):
        known_frames = get_optional(scene_cfg, "known_frames", []) or []
        self._known_frames = set(known_frames)
        self._objects: Dict[str, CollisionObject] = {}
        self._lock = threading.Lock()

    def _validate(self, obj: CollisionObject):
        if not obj.id:
            return "empty object id"
        if not obj.frame_id:
            return "empty frame id"
        if self._known_frames and obj.frame_id not in self._known_frames:
            return f"unknown frame '{obj.frame_id}'"
        if obj.primitive.type != "box":
            return f"unsupported primitive '{obj.primitive.type}'"
        if len(obj.primitive.dimensions) != 3 or min(obj.primitive.dimensions) <= 0:
            return f"invalid box dimensions {obj.primitive.dimensions}"
        return None

    def apply_collision_object(self, obj: CollisionObject) -> bool:
        with self._lock:
            if obj.operation == CollisionOperation.REMOVE:
                if obj.id not in self._objects:
                    logger.warning(f"Cannot remove unknown object {obj.id}")
                    return False
                del self._objects[obj.id]
                return True

            error = self._validate(obj)
            if error is not None:
                logger.warning(f"Rejected collision object {obj.id!r}: {error}")
                return False

            if obj.operation == CollisionOperation.MOVE and obj.id not in self._objects:
                logger.warning(f"Cannot move unknown object {obj.id}")
                return False

            stored = obj.copy()
            stored.operation = CollisionOperation.ADD
            self._objects[obj.id] = stored
            return True

    def get_object(self, object_id: str) -> Optional[CollisionObject]:
        with self._lock:
            obj = self._objects.get(object_id)
            return obj.copy() if obj is not None else None

    def object_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._objects.keys())
