import logging

from termcolor import colored

from block_stacking.perception.action_client import GoalStatus, SegmentGoal, SimpleActionClient
from block_stacking.utils.common_util import (
    PerceptionError,
    PerceptionEstimate,
    PerceptionUnavailableError,
)

logger = logging.getLogger(__name__)
logger.setLevel(logging.DEBUG)

DEFAULT_RESULT_TIMEOUT = 180.0
DEFAULT_SERVER_TIMEOUT = 30.0


class CylinderSegmentClient(object):
    """
    Asks the segmentation server for the planar centroid of the segmented object.
    """

    def __init__(
        self,
        server,
        clock=None,
        action_name: str = "cylinder_segment",
        server_timeout=DEFAULT_SERVER_TIMEOUT,
        result_timeout=DEFAULT_RESULT_TIMEOUT,
    ):
        self._client = SimpleActionClient(server, clock=clock)
        self._action_name = action_name
        # None waits for the server forever
        self._server_timeout = server_timeout
        self._result_timeout = result_timeout

    def segment(self):
        """
        Run one segmentation request.

        Returns:
            PerceptionEstimate, or None if no result arrived before the deadline.

        Raises:
            PerceptionUnavailableError: the server did not come up in time.
            PerceptionError: the server finished without a result.
        """
        logger.info(f"Waiting for {self._action_name} action server to start.")
        if not self._client.wait_for_server(self._server_timeout):
            raise PerceptionUnavailableError(
                f"{self._action_name} action server not available after {self._server_timeout} seconds"
            )
        logger.info(f"{self._action_name} action server started")

        self._client.send_goal(SegmentGoal())

        if not self._client.wait_for_result(self._result_timeout):
            logger.info(colored("Action did not finish before the time out.", "red"))
            self._client.cancel_goal()
            return None

        state = self._client.get_state()
        logger.info(f"Action finished: {state}")

        result = self._client.get_result()
        if state != GoalStatus.SUCCEEDED or result is None:
            raise PerceptionError(f"{self._action_name} finished in state {state} without a result")

        logger.warning(
            colored(f"X,Y {result.frame_id} RESULT: ({result.x:.2f}, {result.y:.2f})", "yellow")
        )
        return PerceptionEstimate(frame_id=result.frame_id, x=float(result.x), y=float(result.y))
