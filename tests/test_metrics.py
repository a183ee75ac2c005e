import numpy as np
import pandas as pd

from rl.plot_results import generate_summary_report, load_metrics, smooth


def _write_metrics(path, n=20):
    df = pd.DataFrame({
        "timestep": np.arange(1, n + 1) * 1000,
        "episode": np.arange(1, n + 1),
        "reward": np.linspace(-5.0, 15.0, n),
        "length": np.full(n, 300),
        "cash": np.arange(n) % 5,
        "defeats": np.zeros(n),
        "hits": np.ones(n),
        "cleared": (np.arange(n) % 2).astype(float),
        "combined_score": np.arange(n) * 100,
    })
    df.to_csv(path, index=False)
    return df


def test_smooth_is_a_moving_average():
    assert np.allclose(smooth(np.array([1.0, 2.0, 3.0, 4.0]), window=2), [1.5, 2.5, 3.5])
    short = np.array([1.0, 2.0])
    assert smooth(short, window=5) is short


def test_load_metrics_finds_algo_subdir(tmp_path):
    (tmp_path / "ppo").mkdir()
    _write_metrics(tmp_path / "ppo" / "ppo_metrics.csv")
    df = load_metrics(str(tmp_path), "ppo")
    assert len(df) == 20
    assert load_metrics(str(tmp_path), "dqn") is None


def test_summary_report_lists_clear_rate(tmp_path):
    df = _write_metrics(tmp_path / "dqn_metrics.csv")
    path = generate_summary_report({"dqn": df, "ppo": None}, str(tmp_path / "out"))
    text = open(path).read()
    assert "DQN Results" in text
    assert "PPO" not in text
    assert "Clear Rate: 50.00%" in text
