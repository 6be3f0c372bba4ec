from __future__ import annotations
from pathlib import Path
from typing import Mapping
import matplotlib.pyplot as plt
import numpy as np

from relearn.tabular.policy import PolicyTable


def smooth_runs(runs: np.ndarray, window: int) -> np.ndarray:
    """
    Trailing moving average of every run of a (n_runs, n_episodes) array, along the episode axis.

    The first episodes average over what is available so far, so the output keeps the input shape.

    :param runs: Per-run curves, shape (n_runs, n_episodes). A 1D array is treated as a single run.
        :type runs: np.ndarray
    :param window: Window size in episodes. 1 (or less) returns the curves unchanged.
        :type window: int

    :return: Smoothed curves, shape (n_runs, n_episodes).
        :rtype: np.ndarray
    """
    runs = np.atleast_2d(np.asarray(runs, dtype=np.float64))
    if window <= 1 or runs.shape[1] == 0:
        return runs

    csum = np.cumsum(runs, axis=1)
    out = csum.copy()
    out[:, window:] = csum[:, window:] - csum[:, :-window]
    counts = np.minimum(np.arange(1, runs.shape[1] + 1), window)
    return out / counts


def save_updater_curves(
    runs_by_updater: Mapping[str, np.ndarray],
    *,
    title: str,
    ylabel: str,
    out_path: str | Path,
    smooth_window: int = 1,
    band_k: float = 1.0,
) -> Path:
    """
    Compare updaters on one metric (return, success rate, ...) per episode.

    Each updater contributes a (n_runs, n_episodes) array. The plot shows the mean over runs and a
    shaded band of mean ± band_k * std (sample std, skipped when there is a single run or band_k is 0).

    :param runs_by_updater: Updater name -> per-run curves.
        :type runs_by_updater: Mapping[str, np.ndarray]
    :param title: Plot title.
        :type title: str
    :param ylabel: y-axis label (x is always the episode index).
        :type ylabel: str
    :param out_path: Output path for the saved image.
        :type out_path: str | Path
    :param smooth_window: Moving average window applied to every run before aggregating.
        :type smooth_window: int
    :param band_k: Band width in std units.
        :type band_k: float

    :return: Path of the saved image.
        :rtype: Path
    """
    if not runs_by_updater:
        raise ValueError("runs_by_updater must contain at least one updater")

    curves = {name: smooth_runs(runs, smooth_window) for name, runs in runs_by_updater.items()}
    lengths = {c.shape[1] for c in curves.values()}
    if len(lengths) != 1:
        raise ValueError(f"all updaters must have the same number of episodes, got {sorted(lengths)}")

    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    fig, ax = plt.subplots()
    for name, c in curves.items():
        x = np.arange(1, c.shape[1] + 1)
        mean = c.mean(axis=0)
        ax.plot(x, mean, label=f"{name} ({c.shape[0]} runs)")
        if band_k > 0 and c.shape[0] > 1:
            # ddof=1 -> sample std across runs
            std = c.std(axis=0, ddof=1)
            ax.fill_between(x, mean - band_k * std, mean + band_k * std, alpha=0.2)

    ax.set_title(title)
    ax.set_xlabel("Episode")
    ax.set_ylabel(ylabel)
    ax.grid(True)
    ax.legend()
    fig.tight_layout()
    fig.savefig(out_path)
    plt.close(fig)
    return out_path


def save_policy_heatmap(policy: PolicyTable, *, title: str, out_path: str | Path) -> Path:
    """
    Save the table as a (states x actions) heatmap, axes sorted by the keys' ordering.

    :param policy: Table to draw.
        :type policy: PolicyTable
    :param title: Plot title.
        :type title: str
    :param out_path: Output path for the saved image.
        :type out_path: str | Path

    :return: Path of the saved image.
        :rtype: Path
    """
    Q, states, actions = policy.to_array()
    if Q.size == 0:
        raise ValueError("Cannot draw an empty policy table")

    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    fig, ax = plt.subplots(figsize=(1.5 + 0.8 * len(actions), 1.0 + 0.3 * len(states)))
    im = ax.imshow(Q, aspect="auto", cmap="viridis")
    ax.set_xticks(np.arange(len(actions)))
    ax.set_xticklabels([str(a.descriptor) for a in actions])
    ax.set_yticks(np.arange(len(states)))
    ax.set_yticklabels([str(s.descriptor) for s in states])
    ax.set_title(title)
    fig.colorbar(im, ax=ax)
    fig.tight_layout()
    fig.savefig(out_path)
    plt.close(fig)
    return out_path
