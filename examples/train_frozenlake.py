"""
Train the relearn updaters on Gymnasium's FrozenLake (toy-text, discrete).

Run from repo root:
    python examples/train_frozenlake.py

It saves a plot to:
    assets/plots/frozenlake_success_rate.png

FrozenLake observations are ints (cell index) and actions are ints 0..3, so they are used as
descriptors directly. The environment gives reward 1 only when the goal is reached, which becomes
the reward of the last state of the episode.

Tip:
    The default map is slippery: the probabilistic updater sees several successors per (s, a),
    try --not-slippery to compare with the deterministic case.
"""

from __future__ import annotations

import argparse
from pathlib import Path
import numpy as np

from relearn.common.exploration import epsilon_greedy, linear_epsilon
from relearn.common.gym_utils import make_first_available, rollout_episode
from relearn.common.plotting import save_updater_curves
from relearn.common.seeding import seed_everything
from relearn.tabular import PolicyTable, QLearning, QProbabilistic


def run(env, updater, args: argparse.Namespace, seed: int) -> np.ndarray:
    """
    Train one updater and return 1.0/0.0 per episode (goal reached or not).

    :return: Success flag per episode.
        :rtype: np.ndarray
    """
    rng = np.random.default_rng(seed)
    actions = list(range(int(env.action_space.n)))
    table = PolicyTable()
    success = np.zeros(args.episodes, dtype=np.float64)

    for ep in range(args.episodes):
        eps = linear_epsilon(ep, args.epsilon, args.epsilon_end, decay_steps=max(1, args.episodes // 2))
        episode, ret = rollout_episode(
            env,
            lambda s: epsilon_greedy(table, s, actions, epsilon=eps, rng=rng),
            max_steps=args.max_steps,
            seed=seed + ep,
        )
        updater(episode, table)
        success[ep] = 1.0 if ret > 0 else 0.0

    return success


def parse_args() -> argparse.Namespace:
    """
    Parse CLI arguments.

    :return: Parsed args.
        :rtype: argparse.Namespace
    """
    p = argparse.ArgumentParser(description="Train Q-learning vs probabilistic Q updates on FrozenLake.")
    p.add_argument("--episodes", type=int, default=2000, help="Episodes per run.")
    p.add_argument("--max-steps", type=int, default=100, help="Max steps per episode.")
    p.add_argument("--alpha", type=float, default=0.5, help="Learning rate (Q-learning only).")
    p.add_argument("--gamma", type=float, default=0.95, help="Discount factor.")
    p.add_argument("--epsilon", type=float, default=1.0, help="Initial exploration probability.")
    p.add_argument("--epsilon-end", type=float, default=0.05, help="Final exploration probability.")
    p.add_argument("--seed", type=int, default=0, help="Master seed.")
    p.add_argument("--smooth", type=int, default=100, help="Smoothing window for plotting.")
    p.add_argument("--not-slippery", action="store_true", help="Use the deterministic map.")

    return p.parse_args()


def main():
    args = parse_args()
    seed_everything(args.seed)

    env = make_first_available(["FrozenLake-v1", "FrozenLake-v0"], is_slippery=not args.not_slippery)

    try:
        success_q = run(env, QLearning(alpha=args.alpha, gamma=args.gamma), args, seed=args.seed)
        success_p = run(env, QProbabilistic(gamma=args.gamma), args, seed=args.seed + 10_000)
    finally:
        env.close()

    out_path = save_updater_curves(
        {"Q-learning": success_q[None, :], "Probabilistic": success_p[None, :]},
        title="FrozenLake: success rate",
        ylabel="Goal reached (moving average)",
        out_path=Path("assets/plots") / "frozenlake_success_rate.png",
        smooth_window=args.smooth,
    )
    print(f"Saved plot: {out_path.resolve()}")

    tail = min(200, args.episodes)
    print("\nSuccess rate over the last episodes:")
    print(f"  Q-learning:    {success_q[-tail:].mean() * 100:.1f}%")
    print(f"  Probabilistic: {success_p[-tail:].mean() * 100:.1f}%")


if __name__ == "__main__":
    main()
