"""Shared fixtures and fake collaborators for pipeline tests."""

import pytest
import threading
from omegaconf import OmegaConf

from block_stacking.perception import GoalStatus, SegmentServer
from block_stacking.scene import InMemoryPlanningScene, SceneSnapshot
from block_stacking.tasks import PickPlaceTask
from block_stacking.utils.common_util import PerceptionEstimate


def make_cfg(**overrides):
    cfg = {
        "runner": "StackBlocksRunner",
        "save_dir": None,
        "keep_alive": False,
        "spawn_table": False,
        "table_name": "table",
        "table_reference_frame": "base_link",
        "table_dimensions": [0.4, 0.5, 0.1],
        "table_pose": [0.5, 0.0, 0.0, 0.0, 0.0, 0.0],
        "spawn_objs": ["block3", "block2", "block1"],
        "object_reference_frame": "base_link",
        "cylinder_segment": False,
        "execute": False,
        "scene": {"scene": "InMemoryPlanningScene", "startup_delay": 0.0},
        "observation": {"topic": "move_group/filtered_cloud", "rate_hz": 10.0},
        "settle": {"interval": 0.5},
        "perception": {"result_timeout": 180.0, "server_timeout": 30.0, "per_object": False},
        "task": {"task": "StackPickPlaceTask"},
    }
    for idx, name in enumerate(["block1", "block2", "block3", "block4"]):
        cfg[f"{name}_name"] = name
        cfg[f"{name}_dimensions"] = [0.05, 0.05, 0.05]
        cfg[f"{name}_pose"] = [0.45 + 0.05 * idx, -0.15, 0.1, 0.0, 0.0, 0.0]
    cfg.update(overrides)
    return OmegaConf.create(cfg)


class SimClock(object):
    """
    Clock that never blocks: sleeping and timing out advance simulated time.
    """

    def __init__(self, start=0.0):
        self._now = start
        self.sleeps = []

    def now(self):
        return self._now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self._now += seconds

    def wait(self, event: threading.Event, timeout=None):
        if event.is_set():
            return True
        if timeout is None:
            return event.wait()

        self._now += timeout
        return event.is_set()


class EventLog(list):
    def names(self, kind):
        return [e[1] for e in self if e[0] == kind]

    def kinds(self):
        return [e[0] for e in self]


class FakeObservations:
    """Returns a snapshot immediately on every wait."""

    def __init__(self, events):
        self.events = events
        self.topics = []

    def wait_for_message(self, topic, timeout=None):
        self.topics.append(topic)
        self.events.append(("wait", topic))
        return SceneSnapshot(seq=len(self.topics), stamp=0.0, object_ids=())


class RecordingTask(PickPlaceTask):
    """Records every call; plan/execute outcomes are looked up by object name."""

    def __init__(self, events, plan_results=None, execute_results=None):
        super().__init__(task_config=None, scene=None)
        self.events = events
        self.plan_results = plan_results or {}
        self.execute_results = execute_results or {}

    def load_parameters(self, object_name, prev_object=None):
        super().load_parameters(object_name, prev_object)
        self.events.append(("load_parameters", object_name, prev_object))

    def init(self):
        assert self._params_loaded
        self._initialized = True
        self.events.append(("init", self.object_name))

    def plan(self):
        self.events.append(("plan", self.object_name))
        return self.plan_results.get(self.object_name, True)

    def execute(self):
        self.events.append(("execute", self.object_name))
        return self.execute_results.get(self.object_name, True)


class RecordingScene(InMemoryPlanningScene):
    def __init__(self, events, reject=()):
        super().__init__()
        self.events = events
        self.reject = set(reject)

    def apply_collision_object(self, obj):
        self.events.append(("spawn", obj.id))
        if obj.id in self.reject:
            return False
        return super().apply_collision_object(obj)


class FakeSegmentServer(SegmentServer):
    """
    mode: 'succeed' answers synchronously, 'never' never answers,
    'abort' aborts, 'offline' never becomes ready.
    """

    def __init__(self, mode="succeed", estimates=None):
        super().__init__()
        self.mode = mode
        self.estimates = list(estimates or [PerceptionEstimate("base_link", 0.42, -0.07)])
        self.goals = 0
        self.cancelled = 0

    def start(self):
        if self.mode != "offline":
            self.ready.set()

    def send_goal(self, goal, done_cb):
        self.goals += 1
        if self.mode == "succeed":
            estimate = self.estimates[min(self.goals, len(self.estimates)) - 1]
            done_cb(GoalStatus.SUCCEEDED, estimate)
        elif self.mode == "abort":
            done_cb(GoalStatus.ABORTED, None)

    def cancel(self):
        self.cancelled += 1


@pytest.fixture
def events():
    return EventLog()


@pytest.fixture
def clock():
    return SimClock()


@pytest.fixture
def observations(events):
    return FakeObservations(events)


@pytest.fixture
def scene(events):
    return RecordingScene(events)


@pytest.fixture
def make_runner(events, clock, observations, scene):
    """Builds a StackBlocksRunner with fake collaborators; returns (runner, tasks)."""
    from block_stacking.runners import create_runner

    def _make(cfg=None, plan_results=None, execute_results=None, segment_server=None, runner_scene=None):
        tasks = []

        def task_factory():
            task = RecordingTask(events, plan_results, execute_results)
            tasks.append(task)
            return task

        runner = create_runner(
            "StackBlocksRunner",
            cfg if cfg is not None else make_cfg(),
            scene=runner_scene if runner_scene is not None else scene,
            observations=observations,
            segment_server=segment_server,
            task_factory=task_factory,
            clock=clock,
        )
        return runner, tasks

    return _make
