"""Tests for the packaged hydra config and a full run with the in-process collaborators."""

import subprocess
import sys

import pytest
from hydra import compose, initialize_config_module

from block_stacking.runners import create_runner
from block_stacking.utils.common_util import PipelineOutcome

FAST = [
    "scene.startup_delay=0",
    "settle.interval=0.01",
    "observation.rate_hz=200",
    "perception.server_cfg.startup_delay=0",
    "perception.server_cfg.processing_delay=0.01",
    "perception.result_timeout=5",
]


def _compose(overrides=()):
    with initialize_config_module(version_base=None, config_module="block_stacking.configs"):
        return compose(config_name="stack_blocks", overrides=list(overrides))


class TestPackagedConfig:
    def test_defaults(self):
        cfg = _compose()
        assert cfg.runner == "StackBlocksRunner"
        assert list(cfg.spawn_objs) == ["block3", "block2", "block1"]
        assert cfg.perception.result_timeout == 180.0
        assert cfg.settle.interval == 0.5
        assert dict(cfg.dependencies.table) == {"block2": "block3", "block1": "block2"}


class TestFullRun:
    def test_stacks_all_blocks(self):
        cfg = _compose(FAST)
        runner = create_runner(cfg.runner, cfg)
        result = runner.run()

        assert result.outcome == PipelineOutcome.Completed
        assert result.completed == ["block3", "block2", "block1"]

        scene = runner.scene
        assert scene.object_ids() == ["block1", "block2", "block3", "table"]
        block3 = scene.get_object("block3").pose
        block1 = scene.get_object("block1").pose
        assert (block3.x, block3.y) == pytest.approx((0.5, 0.15))
        assert (block1.x, block1.y) == pytest.approx((0.5, 0.15))
        assert block1.z == pytest.approx(block3.z + 0.1, abs=1e-3)
        assert not runner.publisher.running

    def test_perception_places_blocks_at_estimate(self):
        cfg = _compose(FAST + ["cylinder_segment=true", "execute=false"])
        runner = create_runner(cfg.runner, cfg)
        result = runner.run()

        assert result.outcome == PipelineOutcome.Completed
        for name in ["block1", "block2", "block3"]:
            pose = runner.scene.get_object(name).pose
            assert (pose.x, pose.y) == pytest.approx((0.5, -0.1))

    def test_unreachable_place_aborts(self):
        cfg = _compose(FAST + ["task.place_pose=[2.0,0.0,0.1]"])
        result = create_runner(cfg.runner, cfg).run()

        assert result.outcome == PipelineOutcome.AbortedOnFailure
        assert result.failed_object == "block3"
        assert result.exit_code == 1


def _run_main(tmp_path, overrides):
    keys = {o.split("=", 1)[0] for o in overrides}
    fast = [o for o in FAST if o.split("=", 1)[0] not in keys]
    return subprocess.run(
        [sys.executable, "-m", "block_stacking.main", f"hydra.run.dir={tmp_path / 'hydra'}"]
        + fast
        + list(overrides),
        cwd=tmp_path,
        capture_output=True,
        text=True,
        timeout=120,
    )


class TestMain:
    def test_completed_run_creates_fresh_save_dir(self, tmp_path):
        save_dir = tmp_path / "not" / "yet" / "there"
        proc = _run_main(tmp_path, [f"save_dir={save_dir}"])

        assert proc.returncode == 0, proc.stderr
        assert (save_dir / "config.yaml").is_file()
        assert (save_dir / "pipeline_result.json").is_file()

    def test_perception_timeout_exits_zero(self, tmp_path):
        save_dir = tmp_path / "timeout"
        proc = _run_main(
            tmp_path,
            [
                f"save_dir={save_dir}",
                "cylinder_segment=true",
                "perception.server_cfg.processing_delay=30",
                "perception.result_timeout=0.2",
            ],
        )

        assert proc.returncode == 0, proc.stderr
        saved = (save_dir / "pipeline_result.json").read_text()
        assert PipelineOutcome.AbortedOnPerceptionTimeout in saved

    def test_plan_failure_exits_one(self, tmp_path):
        save_dir = tmp_path / "plan_failure"
        proc = _run_main(tmp_path, [f"save_dir={save_dir}", "task.place_pose=[2.0,0.0,0.1]"])

        assert proc.returncode == 1
        assert PipelineOutcome.AbortedOnFailure in (save_dir / "pipeline_result.json").read_text()
