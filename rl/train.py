"""
Train a policy for the player slot of Money Grab with Stable-Baselines3.

PPO runs on several normalised envs, DQN on a single env (the action is
already Discrete(5)). Both log the per-episode maze metrics CSV.

    python -m rl.train --algo ppo --timesteps 200000 --lock-on
"""

import os
import argparse
from typing import Any, Dict, Optional

from stable_baselines3 import PPO, DQN
from stable_baselines3.common.vec_env import DummyVecEnv, VecNormalize
from stable_baselines3.common.callbacks import CheckpointCallback, EvalCallback
from stable_baselines3.common.monitor import Monitor

from game.maze import MazeChaseEnv
from rl.configs.maze_config import ENV_CONFIG, REWARD_CONFIG, PPO_CONFIG, DQN_CONFIG, TRAINING_CONFIG
from rl.metrics_callback import MetricsCallback, TensorboardMetricsCallback

ALGORITHMS = {
    "ppo": (PPO, PPO_CONFIG),
    "dqn": (DQN, DQN_CONFIG),
}


def env_settings(
    strict: bool = False,
    lock_on: bool = False,
    start_level: Optional[int] = None,
    **overrides,
) -> Dict[str, Any]:
    """ENV_CONFIG with the game-variant flags applied"""
    cfg = dict(ENV_CONFIG)
    if strict:
        cfg["collision_mode"] = "strict"
    if lock_on:
        cfg["enemy_mode"] = "lock_on"
    if start_level is not None:
        cfg["start_level"] = start_level
    cfg.update(overrides)
    return cfg


def make_env(
    render_mode: Optional[str] = None,
    seed: Optional[int] = None,
    env_config: Optional[Dict[str, Any]] = None,
):
    """Factory function to create the environment"""
    cfg = env_config or ENV_CONFIG

    def _init():
        env = MazeChaseEnv(render_mode=render_mode, reward_config=REWARD_CONFIG, **cfg)
        env = Monitor(env)
        if seed is not None:
            env.reset(seed=seed)
        return env
    return _init


def build_vec_envs(algo: str, n_envs: int, env_config: Optional[Dict[str, Any]] = None):
    """Training and evaluation envs; PPO also normalises observations and rewards"""
    if algo == "dqn":
        n_envs = 1
    env = DummyVecEnv([make_env(seed=i, env_config=env_config) for i in range(n_envs)])
    eval_env = DummyVecEnv([make_env(seed=100, env_config=env_config)])
    if algo == "ppo":
        env = VecNormalize(env, norm_obs=True, norm_reward=True)
        eval_env = VecNormalize(eval_env, norm_obs=True, norm_reward=False, training=False)
    return env, eval_env


def train(
    algo: str = "ppo",
    total_timesteps: Optional[int] = None,
    n_envs: int = 4,
    env_config: Optional[Dict[str, Any]] = None,
    model_overrides: Optional[Dict[str, Any]] = None,
    save_dir: Optional[str] = None,
    log_dir: Optional[str] = None,
    use_tensorboard: bool = True,
):
    """
    Train one algorithm on the maze-chase environment.

    Returns (model, metrics_callback, final_model_path).
    """
    if algo not in ALGORITHMS:
        raise ValueError(f"Unknown algorithm: {algo}")
    algo_cls, algo_config = ALGORITHMS[algo]

    if total_timesteps is None:
        total_timesteps = TRAINING_CONFIG["total_timesteps"]
    save_dir = save_dir or os.path.join(TRAINING_CONFIG["model_dir"], algo)
    log_dir = log_dir or os.path.join(TRAINING_CONFIG["log_dir"], algo)
    os.makedirs(save_dir, exist_ok=True)
    os.makedirs(log_dir, exist_ok=True)

    env, eval_env = build_vec_envs(algo, n_envs, env_config)
    n_envs = env.num_envs

    cfg = env_config or ENV_CONFIG
    print(f"\n{'='*60}")
    print(f"Training {algo.upper()} for {total_timesteps:,} timesteps on {n_envs} env(s)")
    print(f"Enemies: {cfg['enemy_mode']}, collisions: {cfg['collision_mode']}, "
          f"start level: {cfg['start_level'] + 1}")
    print(f"{'='*60}\n")

    callbacks = [
        CheckpointCallback(
            save_freq=max(1, TRAINING_CONFIG["save_freq"] // n_envs),
            save_path=save_dir,
            name_prefix=f"{algo}_maze",
        ),
        EvalCallback(
            eval_env,
            best_model_save_path=save_dir,
            log_path=log_dir,
            eval_freq=max(1, TRAINING_CONFIG["eval_freq"] // n_envs),
            deterministic=True,
            render=False,
        ),
    ]
    metrics_callback = MetricsCallback(log_dir=log_dir, algo_name=algo, verbose=1)
    callbacks += [metrics_callback, TensorboardMetricsCallback(verbose=0)]

    params = dict(algo_config, **(model_overrides or {}))
    tensorboard_log = os.path.join(TRAINING_CONFIG["tensorboard_log"], algo) if use_tensorboard else None
    model = algo_cls(env=env, tensorboard_log=tensorboard_log, **params)

    model.learn(total_timesteps=total_timesteps, callback=callbacks)

    final_path = os.path.join(save_dir, f"{algo}_maze_final")
    model.save(final_path)
    if isinstance(env, VecNormalize):
        env.save(os.path.join(save_dir, "vec_normalize.pkl"))
    env.close()
    eval_env.close()

    print(f"\n{'='*60}")
    print(f"{algo.upper()} training complete! Model saved to {final_path}")
    summary = metrics_callback.get_summary()
    if summary:
        print(f"Mean Reward: {summary['mean_reward']:.2f} ± {summary['std_reward']:.2f}")
        print(f"Mean cash / hits: {summary['mean_cash']:.1f} / {summary['mean_hits']:.1f}")
        print(f"Clear Rate: {summary['clear_rate']:.1%} over {summary['total_episodes']} episodes")
    print(f"{'='*60}\n")

    return model, metrics_callback, final_path


def main():
    parser = argparse.ArgumentParser(description="Train an RL player for Money Grab")
    parser.add_argument("--algo", type=str, default="ppo", choices=["ppo", "dqn", "all"],
                        help="RL algorithm to use (default: ppo)")
    parser.add_argument("--timesteps", type=int, default=None,
                        help=f"Total timesteps to train (default: {TRAINING_CONFIG['total_timesteps']})")
    parser.add_argument("--n-envs", type=int, default=4,
                        help="Number of parallel environments for PPO (default: 4)")
    parser.add_argument("--strict", action="store_true",
                        help="Enemy contact without a power-up ends the episode")
    parser.add_argument("--lock-on", action="store_true",
                        help="Enemies commit to a target once they get close")
    parser.add_argument("--start-level", type=int, default=None,
                        help="0-based level to train on (default: 0)")
    parser.add_argument("--max-steps", type=int, default=None,
                        help=f"Episode step limit (default: {ENV_CONFIG['max_steps']})")

    args = parser.parse_args()

    overrides = {"max_steps": args.max_steps} if args.max_steps else {}
    env_config = env_settings(args.strict, args.lock_on, args.start_level, **overrides)

    algos = ["dqn", "ppo"] if args.algo == "all" else [args.algo]
    for algo in algos:
        train(algo, total_timesteps=args.timesteps, n_envs=args.n_envs, env_config=env_config)


if __name__ == "__main__":
    main()
