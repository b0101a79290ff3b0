import abc
import logging
import threading

from block_stacking.perception.action_client import GoalStatus
from block_stacking.utils.common_util import PerceptionEstimate
from block_stacking.utils.param_util import get_optional
from block_stacking.utils.registry import Registry

logger = logging.getLogger(__name__)
logger.setLevel(logging.DEBUG)

SEGMENT_SERVER = Registry("SegmentServer")


def create_segment_server(server_name: str, *args, **kwargs):
    return SEGMENT_SERVER.get(server_name)(*args, **kwargs)


class SegmentServer(abc.ABC):
    """
    Segmentation action server. ready is set once goals are accepted.
    """

    def __init__(self, *args, **kwargs):
        self.ready = threading.Event()

    def __str__(self):
        return self.__class__.__name__

    def start(self):
        self.ready.set()

    def shutdown(self):
        self.ready.clear()

    @abc.abstractmethod
    def send_goal(self, goal, done_cb):
        """
        Accept goal; call done_cb(state, result) when it finishes.
        """
        raise NotImplementedError("Override me!")

    def cancel(self):
        pass


@SEGMENT_SERVER.register()
class SimulatedCylinderSegmentServer(SegmentServer):
    """
    Answers every goal with a configured centroid after a processing delay.
    """

    def __init__(self, server_cfg=None, *args, **kwargs):
        super().__init__()
        self.frame_id = get_optional(server_cfg, "frame_id", "base_link")
        self.x = float(get_optional(server_cfg, "x", 0.0))
        self.y = float(get_optional(server_cfg, "y", 0.0))
        self.startup_delay = float(get_optional(server_cfg, "startup_delay", 0.0))
        self.processing_delay = float(get_optional(server_cfg, "processing_delay", 0.0))
        self.fail = bool(get_optional(server_cfg, "fail", False))

        self._cancelled = threading.Event()
        self._stopped = threading.Event()
        self._workers = []

    def start(self):
        self._stopped.clear()
        if self.startup_delay <= 0:
            self.ready.set()
            return

        def _come_up():
            if not self._stopped.wait(self.startup_delay):
                self.ready.set()
                logger.debug("Simulated segment server ready")

        threading.Thread(target=_come_up, name="segment-server-startup", daemon=True).start()

    def shutdown(self):
        self._stopped.set()
        self._cancelled.set()
        super().shutdown()
        for worker in self._workers:
            worker.join(timeout=1.0)
        self._workers = []

    def send_goal(self, goal, done_cb):
        self._cancelled.clear()
        worker = threading.Thread(
            target=self._execute, args=(goal, done_cb), name="segment-server-goal", daemon=True
        )
        self._workers.append(worker)
        worker.start()

    def cancel(self):
        self._cancelled.set()

    def _execute(self, goal, done_cb):
        if self._cancelled.wait(self.processing_delay):
            done_cb(GoalStatus.PREEMPTED, None)
            return

        if self.fail:
            logger.warning("Simulated segmentation failed")
            done_cb(GoalStatus.ABORTED, None)
            return

        done_cb(GoalStatus.SUCCEEDED, PerceptionEstimate(frame_id=self.frame_id, x=self.x, y=self.y))
