import logging
from typing import Dict, Optional, Sequence

logger = logging.getLogger(__name__)
logger.setLevel(logging.DEBUG)


# object -> object it is stacked on
DEFAULT_DEPENDENCIES = {
    "block2": "block3",
    "block1": "block2",
}


class DependencyResolver(object):
    """
    Decides which previously placed object the current one is stacked on.

    Names missing from the table have no predecessor, unless carry_previous is
    set, in which case they inherit the last object handed to a task.
    """

    def __init__(self, table: Optional[Dict[str, str]] = None, carry_previous: bool = False):
        self._table = dict(DEFAULT_DEPENDENCIES if table is None else table)
        self._carry_previous = carry_previous

    @property
    def table(self):
        return dict(self._table)

    def predecessor_of(self, object_name: str, running_tally: Sequence[str] = ()):
        if object_name in self._table:
            prev_obj = self._table[object_name]
            if prev_obj not in running_tally:
                logger.warning(f"{object_name} depends on {prev_obj}, which has not been placed yet")
            return prev_obj

        if self._carry_previous and len(running_tally) > 0:
            return running_tally[-1]

        return None
