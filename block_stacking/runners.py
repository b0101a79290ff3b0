import signal
import logging
import threading
from pathlib import Path
from termcolor import colored

from block_stacking.perception import CylinderSegmentClient, create_segment_server
from block_stacking.perception.segment_client import DEFAULT_RESULT_TIMEOUT, DEFAULT_SERVER_TIMEOUT
from block_stacking.scene import (
    CloudPublisher,
    ObservationBus,
    apply_perception_estimate,
    build_object,
    build_table,
    create_scene,
    spawn_object,
)
from block_stacking.tasks import TaskConfig, create_task
from block_stacking.utils.common_util import (
    PerceptionError,
    PipelineOutcome,
    PipelineResult,
    PipelineState,
)
from block_stacking.utils.dependency_util import DependencyResolver
from block_stacking.utils.general_util import Timer, WallClock
from block_stacking.utils.io_util import dump_json, mkdir
from block_stacking.utils.param_util import ParamLoader, get_optional
from block_stacking.utils.registry import Registry

logger = logging.getLogger(__name__)
logger.setLevel(logging.DEBUG)

RUNNER = Registry("Runner")


def create_runner(runner_name, *args, **kwargs):
    return RUNNER.get(runner_name)(*args, **kwargs)


class _BaseRunner:
    """
    Wires the pipeline collaborators from config. Any collaborator can be
    passed in explicitly instead.
    """

    def __init__(
        self,
        cfg,
        scene=None,
        observations=None,
        segment_server=None,
        task_factory=None,
        clock=None,
    ):
        self.cfg = cfg
        self.clock = clock or WallClock()
        self.timer = Timer(logger, clock=self.clock)

        # planning scene
        self.scene = scene
        if self.scene is None:
            self.scene = create_scene(
                get_optional(cfg, "scene.scene", "InMemoryPlanningScene"),
                scene_cfg=get_optional(cfg, "scene", {}),
            )
        self.startup_delay = float(get_optional(cfg, "scene.startup_delay", 1.0))

        # world observations; publish scene snapshots unless a bus is supplied
        self.observation_topic = get_optional(cfg, "observation.topic", "move_group/filtered_cloud")
        self.publisher = None
        self.observations = observations
        if self.observations is None:
            self.observations = ObservationBus()
            self.publisher = CloudPublisher(
                self.scene,
                self.observations,
                self.observation_topic,
                rate_hz=float(get_optional(cfg, "observation.rate_hz", 10.0)),
            )
        self.settle_interval = float(get_optional(cfg, "settle.interval", 0.5))

        # perception
        self.segment_server = segment_server
        if self.segment_server is None and get_optional(cfg, "perception.server") is not None:
            self.segment_server = create_segment_server(
                get_optional(cfg, "perception.server"),
                server_cfg=get_optional(cfg, "perception.server_cfg", {}),
            )
        self.segment_client = None
        if self.segment_server is not None:
            self.segment_client = CylinderSegmentClient(
                self.segment_server,
                clock=self.clock,
                action_name=get_optional(cfg, "perception.action_name", "cylinder_segment"),
                server_timeout=get_optional(cfg, "perception.server_timeout", DEFAULT_SERVER_TIMEOUT),
                result_timeout=float(
                    get_optional(cfg, "perception.result_timeout", DEFAULT_RESULT_TIMEOUT)
                ),
            )
        self.perception_per_object = bool(get_optional(cfg, "perception.per_object", False))

        # stacking dependencies
        self.resolver = DependencyResolver(
            table=get_optional(cfg, "dependencies.table"),
            carry_previous=bool(get_optional(cfg, "dependencies.carry_previous", False)),
        )

        # a fresh task per object, all built from the same immutable config
        self.task_config = TaskConfig.from_cfg(get_optional(cfg, "task", {}))
        self.task_factory = task_factory or self._create_task

        self.keep_alive = bool(get_optional(cfg, "keep_alive", False))
        self.save_dir = get_optional(cfg, "save_dir")

        logger.info(f"Run {str(self)} with scene {str(self.scene)} and task {self.task_config.task}")

    def __str__(self):
        return self.__class__.__name__

    def _create_task(self):
        return create_task(self.task_config.task, self.task_config, self.scene)

    def setup(self):
        if self.publisher is not None:
            self.publisher.start()
        if self.segment_server is not None:
            self.segment_server.start()

    def teardown(self):
        if self.segment_server is not None:
            self.segment_server.shutdown()
        if self.publisher is not None:
            self.publisher.stop()

    def save_result(self, result: PipelineResult):
        if self.save_dir is None:
            return
        save_dir = Path(self.save_dir)
        mkdir(save_dir)
        dump_json(result.to_json(), save_dir / "pipeline_result.json")
        logger.info(f"Save pipeline result at: {str(save_dir / 'pipeline_result.json')}")

    def wait_for_shutdown(self):
        """
        Keep background services alive until SIGINT / SIGTERM.
        """
        stop = threading.Event()
        previous = {
            sig: signal.signal(sig, lambda *_: stop.set()) for sig in (signal.SIGINT, signal.SIGTERM)
        }
        logger.info("Pipeline finished; waiting for shutdown")
        try:
            while not stop.wait(0.5):
                pass
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

    def run(self) -> PipelineResult:
        self.setup()
        try:
            result = self.run_pipeline()
            self.save_result(result)
            if self.keep_alive:
                self.wait_for_shutdown()
            return result
        finally:
            self.teardown()

    def run_pipeline(self) -> PipelineResult:
        raise NotImplementedError("Override me!")


@RUNNER.register()
class StackBlocksRunner(_BaseRunner):
    """
    Spawns, plans and (optionally) executes each configured object in order,
    stopping at the first failure.
    """

    def wait_for_scene_settle(self):
        # one message may predate the object just spawned
        logger.info("Waiting for octomap update")
        self.observations.wait_for_message(self.observation_topic)
        self.clock.sleep(self.settle_interval)
        self.observations.wait_for_message(self.observation_topic)
        logger.info("Finished waiting for octomap update")

    def _result(self, state, outcome, failed_object=None, failed_stage=None):
        return PipelineResult(
            outcome=outcome,
            completed=list(state.completed),
            predecessors=dict(state.predecessors),
            failed_object=failed_object,
            failed_stage=failed_stage,
        )

    def _perceive(self, state, object_name=None):
        """
        Returns (estimate, None) on success, or (None, terminal result).
        """
        try:
            estimate = self.segment_client.segment()
        except PerceptionError as e:
            logger.error(colored(f"Perception failed: {e}", "red"))
            return None, self._result(
                state, PipelineOutcome.AbortedOnFailure, object_name, "perception"
            )

        if estimate is None:
            logger.warning("No perception result; nothing to stack")
            return None, self._result(
                state, PipelineOutcome.AbortedOnPerceptionTimeout, object_name, "perception"
            )
        return estimate, None

    def run_pipeline(self) -> PipelineResult:
        cfg = self.cfg

        # give the planning scene time to come up
        self.clock.sleep(self.startup_delay)

        if get_optional(cfg, "spawn_table", False):
            spawn_object(self.scene, build_table(cfg))

        params = ParamLoader(cfg)
        spawn_objs = params.get_string_list("spawn_objs")
        cylinder_segment = params.get_bool("cylinder_segment")
        execute = False
        if get_optional(cfg, "execute") is not None:
            execute = params.get_bool("execute")
        if cylinder_segment and self.segment_client is None:
            params.invalid("cylinder_segment", "is set but no perception.server is configured")
        params.shutdown_if_error()

        state = PipelineState(spawn_objs=list(spawn_objs))

        estimate = None
        if cylinder_segment and not self.perception_per_object:
            estimate, result = self._perceive(state)
            if result is not None:
                return result

        while not state.done():
            obj_name = state.current
            logger.info(f"-------- {obj_name} ({state.index + 1}/{len(state.spawn_objs)}) --------")

            prev_obj = self.resolver.predecessor_of(obj_name, state.running_tally)
            state.predecessors[obj_name] = prev_obj

            cobj = build_object(obj_name, cfg)
            if cylinder_segment:
                if self.perception_per_object:
                    estimate, result = self._perceive(state, obj_name)
                    if result is not None:
                        return result
                apply_perception_estimate(cobj, estimate)
            logger.warning(
                f"COBJ {cobj.frame_id} RESULT: "
                f"({cobj.pose.x:.2f}, {cobj.pose.y:.2f}, {cobj.pose.z:.2f})"
            )
            spawn_object(self.scene, cobj)

            task = self.task_factory()
            task.load_parameters(obj_name, prev_obj)
            state.running_tally.append(obj_name)
            task.init()

            self.wait_for_scene_settle()

            self.timer.tic(f"planning {obj_name}")
            planned = task.plan()
            self.timer.toc()
            if not planned:
                logger.info(colored(f"Planning failed for {obj_name}", "red"))
                return self._result(state, PipelineOutcome.AbortedOnFailure, obj_name, "plan")
            logger.info(colored(f"Planning succeeded for {obj_name}", "green"))

            if execute:
                self.timer.tic(f"executing {obj_name}")
                executed = task.execute()
                self.timer.toc()
                if not executed:
                    logger.info(colored(f"Execution failed for {obj_name}", "red"))
                    return self._result(state, PipelineOutcome.AbortedOnFailure, obj_name, "execute")
                logger.info(colored(f"Execution complete for {obj_name}", "green"))
            else:
                logger.info("Execution disabled")

            state.completed.append(obj_name)
            state.advance()

        logger.info(colored(f"Stacked {len(state.completed)} object(s)", "green"))
        return self._result(state, PipelineOutcome.Completed)
