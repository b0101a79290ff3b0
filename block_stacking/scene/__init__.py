from block_stacking.scene.base import (
    SCENE,
    create_scene,
    spawn_object,
    PlanningScene,
    InMemoryPlanningScene,
)
from block_stacking.scene.builder import build_object, build_table, apply_perception_estimate
from block_stacking.scene.observation import ObservationBus, CloudPublisher, SceneSnapshot
