"""
Evaluate a trained Money Grab player against a random-policy baseline.

Both policies run through the same episode loop, so the team score and
clear rate they report are directly comparable.
"""

import argparse
import time
import numpy as np
from typing import Any, Callable, Dict, Optional

from stable_baselines3 import PPO, DQN
from stable_baselines3.common.vec_env import DummyVecEnv, VecNormalize

from game.maze import MazeChaseEnv
from game.maze.env import ACTION_DIRECTIONS
from rl.configs.maze_config import ENV_CONFIG, REWARD_CONFIG
from rl.train import env_settings

MODEL_CLASSES = {"ppo": PPO, "dqn": DQN}


def load_model(model_path: str, algo: str = "ppo"):
    if algo not in MODEL_CLASSES:
        raise ValueError(f"Unknown algorithm: {algo}")
    return MODEL_CLASSES[algo].load(model_path)


def _run_episodes(
    policy: Callable[[np.ndarray], np.ndarray],
    n_episodes: int,
    render: bool = False,
    seed: Optional[int] = None,
    vec_normalize_path: Optional[str] = None,
    env_config: Optional[Dict[str, Any]] = None,
    label: str = "policy",
) -> Dict[str, Any]:
    """Play whole episodes with `policy(obs) -> actions` and collect the maze metrics"""
    cfg = env_config or ENV_CONFIG
    base_env = MazeChaseEnv(render_mode="human" if render else None,
                            reward_config=REWARD_CONFIG, **cfg)
    env = DummyVecEnv([lambda: base_env])
    if vec_normalize_path:
        env = VecNormalize.load(vec_normalize_path, env)
        env.training = False
        env.norm_reward = False

    episodes = {key: [] for key in ("reward", "length", "combined_score", "cash", "hits", "cleared")}

    for episode in range(n_episodes):
        if seed is not None:
            env.seed(seed + episode)
        obs = env.reset()
        total_reward = 0.0
        steps = 0

        while True:
            obs, reward, done, info = env.step(policy(obs))
            total_reward += float(reward[0])
            steps += 1

            if render and base_env._window:
                base_env._window.dispatch_events()
                base_env._window.on_draw()
                base_env._window.flip()
                time.sleep(0.05)

            if done[0]:
                break

        # DummyVecEnv auto-resets, info still holds the final step
        final = info[0]
        episodes["reward"].append(total_reward)
        episodes["length"].append(steps)
        episodes["combined_score"].append(final.get("combined_score", 0))
        episodes["cash"].append(final.get("cash_collected", 0))
        episodes["hits"].append(final.get("hits_taken", 0))
        episodes["cleared"].append(1.0 if final.get("level_complete", False) else 0.0)

        print(f"[{label}] Episode {episode + 1}/{n_episodes}: "
              f"Reward = {total_reward:.2f}, Length = {steps}, "
              f"Team score = {episodes['combined_score'][-1]}, "
              f"Cleared = {bool(episodes['cleared'][-1])}")

    env.close()
    return _summarize(episodes, label)


def _summarize(episodes: Dict[str, list], label: str) -> Dict[str, Any]:
    results = {
        "mean_reward": float(np.mean(episodes["reward"])),
        "std_reward": float(np.std(episodes["reward"])),
        "mean_length": float(np.mean(episodes["length"])),
        "mean_score": float(np.mean(episodes["combined_score"])),
        "mean_cash": float(np.mean(episodes["cash"])),
        "mean_hits": float(np.mean(episodes["hits"])),
        "clear_rate": float(np.mean(episodes["cleared"])),
        "episode_rewards": episodes["reward"],
        "episode_lengths": episodes["length"],
    }

    print("\n" + "="*50)
    print(f"{label} results ({len(episodes['reward'])} episodes):")
    print(f"Mean Reward: {results['mean_reward']:.2f} ± {results['std_reward']:.2f}")
    print(f"Mean Episode Length: {results['mean_length']:.1f}")
    print(f"Mean Team Score: {results['mean_score']:.1f}")
    print(f"Cash / Hits: {results['mean_cash']:.1f} / {results['mean_hits']:.1f}")
    print(f"Clear Rate: {results['clear_rate']:.1%}")
    print("="*50)
    return results


def evaluate_model(
    model_path: str,
    algo: str = "ppo",
    n_episodes: int = 10,
    render: bool = True,
    seed: Optional[int] = None,
    vec_normalize_path: Optional[str] = None,
    env_config: Optional[Dict[str, Any]] = None,
):
    """
    Evaluate a trained model

    Args:
        model_path: Path to the saved model
        algo: Algorithm used ('ppo' or 'dqn')
        n_episodes: Number of episodes to evaluate
        render: Whether to open the Arcade window
        seed: Seed for the first episode, later episodes count up from it
        vec_normalize_path: Path to VecNormalize stats (for PPO)
        env_config: Environment settings the model was trained with
    """
    model = load_model(model_path, algo)

    def policy(obs):
        action, _ = model.predict(obs, deterministic=True)
        return action

    return _run_episodes(policy, n_episodes, render, seed, vec_normalize_path,
                         env_config, label=algo.upper())


def compare_with_random(
    n_episodes: int = 10,
    seed: Optional[int] = None,
    env_config: Optional[Dict[str, Any]] = None,
):
    """
    Evaluate a uniform random policy baseline
    """
    rng = np.random.default_rng(seed)
    n_actions = len(ACTION_DIRECTIONS)

    def policy(obs):
        return rng.integers(0, n_actions, size=len(obs))

    return _run_episodes(policy, n_episodes, seed=seed, env_config=env_config, label="Random")


def main():
    parser = argparse.ArgumentParser(description="Evaluate a trained Money Grab player")
    parser.add_argument("model_path", type=str, help="Path to the trained model")
    parser.add_argument("--algo", type=str, default="ppo", choices=sorted(MODEL_CLASSES),
                        help="Algorithm used to train the model (default: ppo)")
    parser.add_argument("--n-episodes", type=int, default=10,
                        help="Number of evaluation episodes (default: 10)")
    parser.add_argument("--no-render", action="store_true", help="Disable rendering")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument("--vec-normalize", type=str, default=None,
                        help="Path to VecNormalize stats file (for PPO)")
    parser.add_argument("--strict", action="store_true",
                        help="Evaluate with strict collisions")
    parser.add_argument("--lock-on", action="store_true",
                        help="Evaluate against lock-on enemies")
    parser.add_argument("--compare-random", action="store_true",
                        help="Also evaluate random policy for comparison")

    args = parser.parse_args()

    env_config = env_settings(strict=args.strict, lock_on=args.lock_on)

    results = evaluate_model(
        model_path=args.model_path,
        algo=args.algo,
        n_episodes=args.n_episodes,
        render=not args.no_render,
        seed=args.seed,
        vec_normalize_path=args.vec_normalize,
        env_config=env_config,
    )

    if args.compare_random:
        print("\n")
        random_results = compare_with_random(args.n_episodes, args.seed, env_config)
        print(f"\nImprovement over random: "
              f"reward {results['mean_reward'] - random_results['mean_reward']:+.2f}, "
              f"team score {results['mean_score'] - random_results['mean_score']:+.1f}")


if __name__ == "__main__":
    main()
