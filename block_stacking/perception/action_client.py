import logging
import threading
import functools
from dataclasses import dataclass

from block_stacking.utils.general_util import WallClock

logger = logging.getLogger(__name__)
logger.setLevel(logging.DEBUG)


class GoalStatus:
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    PREEMPTED = "PREEMPTED"
    SUCCEEDED = "SUCCEEDED"
    ABORTED = "ABORTED"
    LOST = "LOST"


@dataclass(frozen=True)
class SegmentGoal:
    """
    Segmentation goals carry no parameters.
    """


class SimpleActionClient(object):
    """
    Single-goal client for a segment server: connect, send a goal, wait for
    the result with a deadline.
    """

    def __init__(self, server, clock=None):
        self._server = server
        self._clock = clock or WallClock()
        self._lock = threading.Lock()
        self._goal_id = 0
        self._done = threading.Event()
        self._state = GoalStatus.LOST
        self._result = None

    def wait_for_server(self, timeout=None) -> bool:
        return self._clock.wait(self._server.ready, timeout)

    def send_goal(self, goal: SegmentGoal):
        with self._lock:
            self._goal_id += 1
            self._done = threading.Event()
            self._state = GoalStatus.PENDING
            self._result = None
            goal_id = self._goal_id

        self._server.send_goal(goal, functools.partial(self._on_done, goal_id))
        with self._lock:
            if self._state == GoalStatus.PENDING and goal_id == self._goal_id:
                self._state = GoalStatus.ACTIVE

    def _on_done(self, goal_id, state, result):
        with self._lock:
            # late answer for a goal that was cancelled or replaced
            if goal_id != self._goal_id or self._done.is_set():
                return
            self._state = state
            self._result = result
            self._done.set()

    def wait_for_result(self, timeout=None) -> bool:
        return self._clock.wait(self._done, timeout)

    def cancel_goal(self):
        self._server.cancel()
        with self._lock:
            if not self._done.is_set():
                self._state = GoalStatus.PREEMPTED
                self._done.set()

    def get_state(self):
        with self._lock:
            return self._state

    def get_result(self):
        with self._lock:
            return self._result
