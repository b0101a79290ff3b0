import logging
from typing import Any, List

from omegaconf import OmegaConf, DictConfig, ListConfig

from block_stacking.utils.common_util import ConfigurationError, Pose
from block_stacking.utils.general_util import rpy_to_quaternion

logger = logging.getLogger(__name__)
logger.setLevel(logging.DEBUG)

_NOT_FOUND = object()


def _to_python(value):
    if isinstance(value, (DictConfig, ListConfig)):
        return OmegaConf.to_container(value, resolve=True)
    return value


def get_optional(cfg: DictConfig, key: str, default: Any = None):
    """
    Read an optional parameter, falling back to default when absent or '???'.
    An explicit null is returned as None.
    """
    if cfg is None:
        return default
    if isinstance(cfg, dict):
        cfg = OmegaConf.create(cfg)
    value = OmegaConf.select(cfg, key, default=_NOT_FOUND)
    if value is _NOT_FOUND:
        return default
    return _to_python(value)


class ParamLoader(object):
    """
    Collects required parameters and counts the missing ones, so every
    problem is logged before startup is aborted.
    """

    def __init__(self, cfg: DictConfig, name: str = "block_stacking"):
        self._cfg = cfg
        self._name = name
        self.errors: List[str] = []

    def invalid(self, key: str, reason: str):
        logger.error(f"[{self._name}] Parameter '{key}' {reason}")
        self.errors.append(key)

    def get(self, key: str):
        value = OmegaConf.select(self._cfg, key, default=_NOT_FOUND)
        if value is _NOT_FOUND or value is None:
            self.invalid(key, "is missing")
            return None
        return _to_python(value)

    def get_bool(self, key: str):
        value = self.get(key)
        if value is not None and not isinstance(value, bool):
            self.invalid(key, f"must be a bool, got {value!r}")
            return None
        return value

    def get_string_list(self, key: str):
        value = self.get(key)
        if value is None:
            return None
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            self.invalid(key, f"must be a list of names, got {value!r}")
            return None
        return value

    def _to_floats(self, key: str, value):
        try:
            return tuple(float(v) for v in value)
        except (TypeError, ValueError):
            self.invalid(key, f"must be numeric, got {value!r}")
            return None

    def get_dimensions(self, key: str):
        value = self.get(key)
        if value is None:
            return None
        if not isinstance(value, list) or len(value) != 3:
            self.invalid(key, f"must have exactly 3 entries, got {value!r}")
            return None
        return self._to_floats(key, value)

    def get_pose(self, key: str):
        """
        Accepts [x, y, z, roll, pitch, yaw] or [x, y, z, qx, qy, qz, qw].
        """
        value = self.get(key)
        if value is None:
            return None
        if not isinstance(value, list) or len(value) not in (6, 7):
            self.invalid(key, f"must have 6 (xyz rpy) or 7 (xyz quat) entries, got {value!r}")
            return None

        value = self._to_floats(key, value)
        if value is None:
            return None
        if len(value) == 6:
            orientation = rpy_to_quaternion(*value[3:])
        else:
            orientation = tuple(value[3:])
        return Pose(x=value[0], y=value[1], z=value[2], orientation=orientation)

    def shutdown_if_error(self):
        if len(self.errors) > 0:
            raise ConfigurationError(
                f"[{self._name}] {len(self.errors)} missing or invalid parameter(s): "
                + ", ".join(self.errors)
            )
