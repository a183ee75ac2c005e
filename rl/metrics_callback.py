"""
Custom callback for tracking task-specific metrics during training.
Records: cash collected, enemies defeated, hits taken, levels cleared.
"""

import os
import csv
from typing import Dict, List, Any, Optional
from stable_baselines3.common.callbacks import BaseCallback


class MetricsCallback(BaseCallback):
    """
    Callback to track and log task-specific metrics per episode.
    Saves to CSV for easy plotting.
    """

    def __init__(
        self,
        log_dir: str,
        algo_name: str,
        verbose: int = 1,
    ):
        super().__init__(verbose)
        self.log_dir = log_dir
        self.algo_name = algo_name

        # Episode tracking
        self.episode_rewards: List[float] = []
        self.episode_lengths: List[int] = []
        self.episode_cash: List[float] = []
        self.episode_defeats: List[float] = []
        self.episode_hits: List[float] = []
        self.episode_cleared: List[float] = []

        # CSV file
        self.csv_path: Optional[str] = None
        self.csv_file = None
        self.csv_writer = None

    def _on_training_start(self) -> None:
        """Initialize CSV file for logging."""
        os.makedirs(self.log_dir, exist_ok=True)
        self.csv_path = os.path.join(self.log_dir, f"{self.algo_name}_metrics.csv")

        self.csv_file = open(self.csv_path, "w", newline="")
        self.csv_writer = csv.writer(self.csv_file)
        self.csv_writer.writerow([
            "timestep", "episode", "reward", "length",
            "cash", "defeats", "hits", "cleared", "combined_score"
        ])
        self.csv_file.flush()

        if self.verbose > 0:
            print(f"[MetricsCallback] Logging to {self.csv_path}")

    def _on_step(self) -> bool:
        """Called after each step."""
        infos = self.locals.get("infos", [])
        dones = self.locals.get("dones", [])

        for info, done in zip(infos, dones):
            # Monitor wrapper adds episode info on the final step
            if not (done and "episode" in info):
                continue

            ep_info = info["episode"]
            ep_reward = ep_info["r"]
            ep_length = ep_info["l"]

            cash = info.get("cash_collected", 0)
            defeats = info.get("enemies_defeated", 0)
            hits = info.get("hits_taken", 0)
            cleared = 1.0 if info.get("level_complete", False) else 0.0

            self.episode_rewards.append(ep_reward)
            self.episode_lengths.append(ep_length)
            self.episode_cash.append(cash)
            self.episode_defeats.append(defeats)
            self.episode_hits.append(hits)
            self.episode_cleared.append(cleared)

            if self.csv_writer:
                self.csv_writer.writerow([
                    self.num_timesteps,
                    len(self.episode_rewards),
                    ep_reward,
                    ep_length,
                    cash,
                    defeats,
                    hits,
                    cleared,
                    info.get("combined_score", 0),
                ])
                self.csv_file.flush()

            if self.verbose > 0 and len(self.episode_rewards) % 10 == 0:
                avg_reward = sum(self.episode_rewards[-10:]) / 10
                clear_rate = sum(self.episode_cleared[-10:]) / 10
                print(f"[{self.algo_name}] Episode {len(self.episode_rewards)}, "
                      f"Timestep {self.num_timesteps}, "
                      f"Avg Reward (10 ep): {avg_reward:.2f}, "
                      f"Clear rate: {clear_rate:.0%}")

        return True

    def _on_training_end(self) -> None:
        """Cleanup CSV file."""
        if self.csv_file:
            self.csv_file.close()
            if self.verbose > 0:
                print(f"[MetricsCallback] Saved {len(self.episode_rewards)} episodes to {self.csv_path}")

    def get_summary(self) -> Dict[str, Any]:
        """Get summary statistics."""
        if not self.episode_rewards:
            return {}

        import numpy as np
        return {
            "mean_reward": np.mean(self.episode_rewards),
            "std_reward": np.std(self.episode_rewards),
            "mean_length": np.mean(self.episode_lengths),
            "total_episodes": len(self.episode_rewards),
            "mean_cash": np.mean(self.episode_cash),
            "mean_hits": np.mean(self.episode_hits),
            "clear_rate": np.mean(self.episode_cleared),
        }


class TensorboardMetricsCallback(BaseCallback):
    """
    Extended callback that logs task-specific metrics to TensorBoard.
    """

    def __init__(self, verbose: int = 0):
        super().__init__(verbose)

    def _on_step(self) -> bool:
        infos = self.locals.get("infos", [])
        dones = self.locals.get("dones", [])

        for info, done in zip(infos, dones):
            if done and "episode" in info:
                ep = info["episode"]
                if self.logger:
                    self.logger.record("custom/episode_reward", ep["r"])
                    self.logger.record("custom/episode_length", ep["l"])
                    self.logger.record("custom/cash_collected", info.get("cash_collected", 0))
                    self.logger.record("custom/hits_taken", info.get("hits_taken", 0))
                    self.logger.record("custom/combined_score", info.get("combined_score", 0))

        return True
