import logging

from omegaconf import DictConfig

from block_stacking.utils.common_util import (
    CollisionObject,
    CollisionOperation,
    PerceptionEstimate,
    SolidPrimitive,
)
from block_stacking.utils.param_util import ParamLoader

logger = logging.getLogger(__name__)
logger.setLevel(logging.DEBUG)


def _build_box(cfg: DictConfig, name_key: str, frame_key: str, dims_key: str, pose_key: str):
    params = ParamLoader(cfg)
    object_name = params.get(name_key)
    reference_frame = params.get(frame_key)
    dimensions = params.get_dimensions(dims_key)
    pose = params.get_pose(pose_key)
    params.shutdown_if_error()

    # align the base, not the center, with the configured surface height
    pose.z += 0.5 * dimensions[2]

    return CollisionObject(
        id=str(object_name),
        frame_id=str(reference_frame),
        primitive=SolidPrimitive(dimensions=dimensions),
        pose=pose,
        operation=CollisionOperation.ADD,
    )


def build_table(cfg: DictConfig) -> CollisionObject:
    return _build_box(cfg, "table_name", "table_reference_frame", "table_dimensions", "table_pose")


def build_object(name: str, cfg: DictConfig) -> CollisionObject:
    return _build_box(
        cfg, f"{name}_name", "object_reference_frame", f"{name}_dimensions", f"{name}_pose"
    )


def apply_perception_estimate(obj: CollisionObject, estimate: PerceptionEstimate):
    """
    Overwrite the planar position with the estimate. Frame and z are kept.
    """
    if estimate.frame_id != obj.frame_id:
        logger.warning(
            f"Estimate frame {estimate.frame_id} differs from {obj.id} frame {obj.frame_id}; "
            "using the estimate x/y as is"
        )
    obj.pose.x = estimate.x
    obj.pose.y = estimate.y
    return obj
