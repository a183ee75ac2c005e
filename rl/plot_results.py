"""
Plotting script for maze-chase training runs.
Reads the per-episode CSVs written by MetricsCallback.
"""

import os
import argparse
import pandas as pd
import numpy as np
import matplotlib.pyplot as plt
from typing import Dict, Optional

ALGO_COLORS = {"dqn": "#2ecc71", "ppo": "#3498db"}


def load_metrics(log_dir: str, algo: str) -> Optional[pd.DataFrame]:
    """Load metrics CSV for an algorithm."""
    for csv_path in (
        os.path.join(log_dir, algo, f"{algo}_metrics.csv"),
        os.path.join(log_dir, f"{algo}_metrics.csv"),
    ):
        if os.path.exists(csv_path):
            return pd.read_csv(csv_path)
    return None


def smooth(data: np.ndarray, window: int = 10) -> np.ndarray:
    """Apply rolling average smoothing."""
    if len(data) < window:
        return data
    kernel = np.ones(window) / window
    return np.convolve(data, kernel, mode="valid")


def _plot_smoothed(ax, df: pd.DataFrame, column: str, window: int, **kwargs):
    values = smooth(df[column].values.astype(float), window)
    ax.plot(df["timestep"].values[:len(values)], values, linewidth=2, **kwargs)


def plot_learning_curve(
    df: pd.DataFrame,
    algo: str,
    output_dir: str,
    window: int = 50,
):
    """Reward, team score, clear rate and pickups/hits for one algorithm."""
    fig, axes = plt.subplots(2, 2, figsize=(14, 10))
    fig.suptitle(f"{algo.upper()} on Money Grab", fontsize=16, fontweight="bold")

    ax = axes[0, 0]
    _plot_smoothed(ax, df, "reward", window, label=f"{algo} (smoothed)")
    ax.set_ylabel("Episode Reward")
    ax.set_title("Episode Reward vs Timesteps")
    ax.legend()

    ax = axes[0, 1]
    _plot_smoothed(ax, df, "combined_score", window, color="orange")
    ax.set_ylabel("Team Score")
    ax.set_title("Team Score vs Timesteps")

    ax = axes[1, 0]
    _plot_smoothed(ax, df, "cleared", window, color="green")
    ax.set_ylabel("Clear Rate")
    ax.set_title("Level Clear Rate vs Timesteps")
    ax.set_ylim(0, 1.1)

    ax = axes[1, 1]
    _plot_smoothed(ax, df, "cash", window, label="cash collected")
    _plot_smoothed(ax, df, "hits", window, label="hits taken", color="red")
    ax.set_ylabel("Per Episode")
    ax.set_title("Pickups and Hits")
    ax.legend()

    for ax in axes.flat:
        ax.set_xlabel("Timesteps")
        ax.grid(True, alpha=0.3)

    plt.tight_layout()

    os.makedirs(output_dir, exist_ok=True)
    save_path = os.path.join(output_dir, f"{algo}_learning_curve.png")
    plt.savefig(save_path, dpi=150, bbox_inches="tight")
    plt.close()

    print(f"Saved {algo} learning curve to {save_path}")
    return save_path


def plot_comparison(
    data: Dict[str, pd.DataFrame],
    output_dir: str,
    window: int = 50,
):
    """Overlay every algorithm's reward and clear-rate curves."""
    fig, axes = plt.subplots(1, 2, figsize=(14, 5))
    fig.suptitle("Algorithm Comparison", fontsize=16, fontweight="bold")

    for algo, df in data.items():
        if df is None or len(df) == 0:
            continue
        color = ALGO_COLORS.get(algo)
        _plot_smoothed(axes[0], df, "reward", window, label=algo.upper(), color=color)
        _plot_smoothed(axes[1], df, "cleared", window, label=algo.upper(), color=color)

    axes[0].set_ylabel("Episode Reward")
    axes[1].set_ylabel("Clear Rate")
    for ax in axes:
        ax.set_xlabel("Timesteps")
        ax.legend()
        ax.grid(True, alpha=0.3)

    plt.tight_layout()

    os.makedirs(output_dir, exist_ok=True)
    save_path = os.path.join(output_dir, "algorithm_comparison.png")
    plt.savefig(save_path, dpi=150, bbox_inches="tight")
    plt.close()

    print(f"Saved comparison plot to {save_path}")
    return save_path


def generate_summary_report(data: Dict[str, pd.DataFrame], output_dir: str):
    """Generate a text summary report."""
    report_lines = [
        "=" * 60,
        "MONEY GRAB TRAINING SUMMARY",
        "=" * 60,
        "",
    ]

    for algo, df in data.items():
        if df is None or len(df) == 0:
            continue
        final = df.tail(100)
        report_lines += [
            f"\n{algo.upper()} Results:",
            "-" * 40,
            f"  Total Episodes: {len(df)}",
            f"  Total Timesteps: {df['timestep'].max():,}",
            f"  Mean Reward: {df['reward'].mean():.2f} ± {df['reward'].std():.2f}",
            f"  Mean Team Score: {df['combined_score'].mean():.1f}",
            "\n  Final Performance (last 100 episodes):",
            f"    Mean Reward: {final['reward'].mean():.2f}",
            f"    Clear Rate: {final['cleared'].mean():.2%}",
            f"    Cash / Hits: {final['cash'].mean():.1f} / {final['hits'].mean():.1f}",
        ]

    report_lines.append("\n" + "=" * 60)

    report = "\n".join(report_lines)
    print(report)

    os.makedirs(output_dir, exist_ok=True)
    report_path = os.path.join(output_dir, "experiment_summary.txt")
    with open(report_path, "w") as f:
        f.write(report)

    print(f"\nSaved summary report to {report_path}")
    return report_path


def main():
    parser = argparse.ArgumentParser(description="Plot maze-chase training results")
    parser.add_argument("--log-dir", type=str, default="./logs", help="Directory containing log files")
    parser.add_argument("--output-dir", type=str, default="./plots", help="Directory to save plots")
    parser.add_argument("--window", type=int, default=50, help="Smoothing window size (default: 50)")
    parser.add_argument("--algos", nargs="+", default=["dqn", "ppo"], help="Algorithms to plot")

    args = parser.parse_args()

    print(f"Loading metrics from {args.log_dir}...")

    data = {}
    for algo in args.algos:
        df = load_metrics(args.log_dir, algo)
        if df is not None:
            print(f"  Loaded {algo}: {len(df)} episodes")
        else:
            print(f"  No data found for {algo}")
        data[algo] = df

    if not any(d is not None for d in data.values()):
        print("\nNo data found! Make sure training has generated metrics files.")
        return

    for algo, df in data.items():
        if df is not None:
            plot_learning_curve(df, algo, args.output_dir, args.window)

    if sum(1 for d in data.values() if d is not None) > 1:
        plot_comparison(data, args.output_dir, args.window)

    generate_summary_report(data, args.output_dir)

    print(f"\nAll plots saved to {args.output_dir}/")


if __name__ == "__main__":
    main()
