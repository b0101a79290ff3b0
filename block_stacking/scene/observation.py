import time
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Tuple

logger = logging.getLogger(__name__)
logger.setLevel(logging.DEBUG)


@dataclass(frozen=True)
class SceneSnapshot:
    seq: int
    stamp: float
    object_ids: Tuple[str, ...]


class ObservationBus(object):
    """
    Latest-message store per topic. Publishers run on background threads while
    the pipeline blocks in wait_for_message.
    """

    def __init__(self):
        self._cond = threading.Condition()
        self._seq: Dict[str, int] = {}
        self._latest: Dict[str, Any] = {}

    def publish(self, topic: str, msg: Any):
        with self._cond:
            self._seq[topic] = self._seq.get(topic, 0) + 1
            self._latest[topic] = msg
            self._cond.notify_all()

    def message_count(self, topic: str):
        with self._cond:
            return self._seq.get(topic, 0)

    def wait_for_message(self, topic: str, timeout=None):
        """
        Block until a message newer than this call arrives on topic.

        Returns the message, or None if timeout (seconds) expires first.
        """
        with self._cond:
            start = self._seq.get(topic, 0)
            arrived = self._cond.wait_for(lambda: self._seq.get(topic, 0) > start, timeout)
            if not arrived:
                return None
            return self._latest[topic]


class CloudPublisher(object):
    """
    Publishes a snapshot of the planning scene on topic at a fixed rate.
    """

    def __init__(self, scene, bus: ObservationBus, topic: str, rate_hz: float = 10.0):
        assert rate_hz > 0, "Publish rate must be positive!"
        self._scene = scene
        self._bus = bus
        self._topic = topic
        self._period = 1.0 / rate_hz
        self._stop = threading.Event()
        self._thread = None
        self._seq = 0

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._spin, name=f"publisher:{self._topic}", daemon=True)
        self._thread.start()
        logger.debug(f"Publishing {self._topic} at {1.0 / self._period:.1f} Hz")

    def stop(self):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=2 * self._period + 1.0)
            self._thread = None

    def _spin(self):
        while not self._stop.wait(self._period):
            self._seq += 1
            snapshot = SceneSnapshot(
                seq=self._seq, stamp=time.time(), object_ids=tuple(self._scene.object_ids())
            )
            self._bus.publish(self._topic, snapshot)
