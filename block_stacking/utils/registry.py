from typing import Dict, Optional


class Registry(object):
    """
    Name -> class mapping used to select components from config.

    Usage:
        SCENE = Registry("Scene")

        @SCENE.register()
        class MyScene(PlanningScene):
            ...

        scene_cls = SCENE.get("MyScene")
    """

    def __init__(self, name: str):
        self._name = name
        self._obj_map: Dict[str, object] = {}

    def _do_register(self, name: str, obj: object):
        assert (
            name not in self._obj_map
        ), f"An object named '{name}' was already registered in '{self._name}' registry!"
        self._obj_map[name] = obj

    def register(self, obj: Optional[object] = None):
        if obj is None:
            # used as a decorator
            def deco(func_or_class):
                self._do_register(func_or_class.__name__, func_or_class)
                return func_or_class

            return deco

        self._do_register(obj.__name__, obj)
        return obj

    def get(self, name: str):
        ret = self._obj_map.get(name)
        if ret is None:
            raise KeyError(f"No object named '{name}' found in '{self._name}' registry!")
        return ret

    def __contains__(self, name: str):
        return name in self._obj_map

    def __iter__(self):
        return iter(self._obj_map.items())
