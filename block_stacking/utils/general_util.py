import numpy as np

import time
import threading
from termcolor import colored


############# Geometry ############
def l2_distance_np(x, y):
    return np.linalg.norm(np.asarray(x, dtype=float) - np.asarray(y, dtype=float))


def rpy_to_quaternion(roll, pitch, yaw):
    """
    Fixed-axis XYZ roll/pitch/yaw to an (x, y, z, w) quaternion.
    """
    cr, sr = np.cos(roll / 2), np.sin(roll / 2)
    cp, sp = np.cos(pitch / 2), np.sin(pitch / 2)
    cy, sy = np.cos(yaw / 2), np.sin(yaw / 2)

    qx = sr * cp * cy - cr * sp * sy
    qy = cr * sp * cy + sr * cp * sy
    qz = cr * cp * sy - sr * sp * cy
    qw = cr * cp * cy + sr * sp * sy
    return (float(qx), float(qy), float(qz), float(qw))


############# Clocks ###############
class WallClock(object):
    def now(self):
        return time.monotonic()

    def sleep(self, seconds):
        time.sleep(seconds)

    def wait(self, event: threading.Event, timeout=None):
        """
        Block until event is set or timeout (seconds, None = forever) passes.
        """
        return event.wait(timeout)


############# Timer ###############
class Timer(object):
    def __init__(self, logger, clock=None, color="blue"):
        self.logger = logger
        self.clock = clock or WallClock()
        self.last_time = []
        self.event = []
        self.color = color

    def tic(self, event: str):
        self.last_time.append(self.clock.now())
        self.event.append(event)

    def toc(self):
        elapsed = None
        if len(self.last_time) > 0:
            elapsed = self.clock.now() - self.last_time.pop()

            self.logger.debug(
                colored(
                    f"Elapsed time: {elapsed:.3f} seconds for {self.event.pop()}",
                    self.color,
                )
            )
        return elapsed
