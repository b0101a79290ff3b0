from block_stacking.tasks.base_task import TASK, create_task, TaskConfig, PickPlaceTask
from block_stacking.tasks.stack_pick_place_task import StackPickPlaceTask, PickPlaceSolution
