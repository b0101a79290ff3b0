import sys
import hydra
import logging
from pathlib import Path
from hydra.core.hydra_config import HydraConfig
from omegaconf import DictConfig, OmegaConf

from block_stacking.runners import create_runner
from block_stacking.utils.io_util import mkdir

logger = logging.getLogger(__name__)
logger.setLevel(logging.DEBUG)


@hydra.main(version_base=None, config_path="configs", config_name="stack_blocks")
def main(cfg: DictConfig):
    logger.info(f"Init {cfg.node_name}")

    # default to the hydra run directory
    if cfg.save_dir is None:
        cfg.save_dir = HydraConfig.get().runtime.output_dir

    # dump config
    mkdir(Path(cfg.save_dir))
    OmegaConf.save(cfg, Path(cfg.save_dir) / "config.yaml")

    runner = create_runner(cfg.runner, cfg)
    result = runner.run()

    logger.info(f"Pipeline outcome: {result.outcome} (exit code {result.exit_code})")
    sys.exit(result.exit_code)


if __name__ == "__main__":
    main()
