"""
Run Auction Script.

Usage:
    python scripts/run_auction.py auction.total_supply=5000 experiment.seed=7
"""

import logging
import os

import hydra
from omegaconf import DictConfig

from cca.simulation import Simulation


@hydra.main(version_base=None, config_path="../conf", config_name="config")
def main(cfg: DictConfig):
    # Configure logging
    log_level = getattr(logging, cfg.experiment.log_level.upper())

    logging.getLogger().setLevel(log_level)
    logging.getLogger("cca").setLevel(log_level)
    logging.getLogger("bidders").setLevel(log_level)

    # Add handler if none exists (Hydra might capture, but we want stdout)
    if not logging.getLogger().handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('[%(asctime)s][%(name)s][%(levelname)s] - %(message)s'))
        logging.getLogger().addHandler(handler)

    logging.info(f"Running auction: {cfg.experiment.name}")

    simulation = Simulation(cfg)
    results = simulation.run()

    # Save results
    output_dir = cfg.experiment.output_dir
    os.makedirs(output_dir, exist_ok=True)
    results.to_csv(os.path.join(output_dir, "bids.csv"), index=False)
    simulation.checkpoint_frame().to_csv(os.path.join(output_dir, "checkpoints.csv"), index=False)

    logging.info(f"Results saved to {output_dir}")
    for key, value in simulation.summary(results).items():
        logging.info(f"  {key}: {value}")
    if len(results):
        print(results.groupby("bidder_type")[["tokens_filled", "currency_spent"]].sum())


if __name__ == "__main__":
    main()
