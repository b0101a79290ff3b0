from block_stacking.perception.action_client import GoalStatus, SegmentGoal, SimpleActionClient
from block_stacking.perception.servers import (
    SEGMENT_SERVER,
    create_segment_server,
    SegmentServer,
    SimulatedCylinderSegmentServer,
)
from block_stacking.perception.segment_client import CylinderSegmentClient
