"""
Train Q-learning vs the probabilistic updater on the relearn Gridworld.

Run from repo root:
    python examples/train_gridworld.py

It saves plots to:
    assets/plots/gridworld_returns.png
    assets/plots/gridworld_q_learning_values.png
    assets/plots/gridworld_q_probabilistic_values.png

How it works:
    The updaters never pick actions. Each episode is played with ε-greedy over the updater's own table,
    recorded as links, and then handed to the updater as a whole (episode-level update, not per step).

Tip:
    Use --print-policies to print the greedy policy learned by each updater as arrows.
"""

from __future__ import annotations

import argparse
from pathlib import Path
import numpy as np

from relearn.common.exploration import epsilon_greedy, linear_epsilon
from relearn.common.plotting import save_policy_heatmap, save_updater_curves
from relearn.common.seeding import seed_everything
from relearn.tabular import Gridworld, PolicyTable, QLearning, QProbabilistic, StateKey


ARROWS = {
    "up": "↑",
    "right": "→",
    "down": "↓",
    "left": "←",
}


def format_policy(env: Gridworld, policy: PolicyTable) -> str:
    """
    Format the greedy policy of a table as a grid:
        - '+' / '-' terminal cells (by sign of their reward)
        - '#' blocked cells
        - '?' cells never updated
        - arrows elsewhere

    :param env: Gridworld the table was trained on.
        :type env: Gridworld
    :param policy: Trained table.
        :type policy: PolicyTable

    :return: Multi-line string of the policy grid.
        :rtype: str
    """
    rows = []
    for r in range(env.height):
        cells = []
        for c in range(env.width):
            if (r, c) in env.blocked:
                cells.append("#")
            elif env.is_terminal((r, c)):
                cells.append("+" if env.terminals[(r, c)] > 0 else "-")
            else:
                best = policy.best_action(StateKey((r, c)))
                cells.append("?" if best is None else ARROWS[best.descriptor])
        rows.append(" ".join(cells))
    return "\n".join(rows)


def train(
    env: Gridworld,
    updater,
    episodes: int,
    max_steps: int,
    epsilon_start: float,
    epsilon_end: float,
    rng: np.random.Generator,
) -> tuple[PolicyTable, np.ndarray]:
    """
    Play `episodes` episodes with decaying ε-greedy and update the table after each one.

    :return: (trained table, return per episode)
        :rtype: tuple[PolicyTable, np.ndarray]
    """
    table = PolicyTable()
    returns = np.zeros(episodes, dtype=np.float64)

    for ep in range(episodes):
        eps = linear_epsilon(ep, epsilon_start, epsilon_end, decay_steps=max(1, episodes // 2))
        episode, ret = env.run_episode(
            lambda s: epsilon_greedy(table, s, env.actions, epsilon=eps, rng=rng),
            max_steps=max_steps,
        )
        updater(episode, table)
        returns[ep] = ret

    return table, returns


def parse_args() -> argparse.Namespace:
    """
    Parse CLI arguments.

    :return: Parsed args.
        :rtype: argparse.Namespace
    """
    p = argparse.ArgumentParser(description="Train Q-learning vs probabilistic Q updates on a Gridworld.")
    p.add_argument("--episodes", type=int, default=500, help="Episodes per run.")
    p.add_argument("--runs", type=int, default=10, help="Number of runs to average.")
    p.add_argument("--max-steps", type=int, default=50, help="Max steps per episode.")
    p.add_argument("--alpha", type=float, default=0.5, help="Learning rate (Q-learning only).")
    p.add_argument("--gamma", type=float, default=0.9, help="Discount factor.")
    p.add_argument("--epsilon", type=float, default=1.0, help="Initial exploration probability.")
    p.add_argument("--epsilon-end", type=float, default=0.05, help="Final exploration probability.")
    p.add_argument("--seed", type=int, default=0, help="Master seed.")
    p.add_argument("--smooth", type=int, default=20, help="Smoothing window for plotting.")
    p.add_argument("--print-policies", action="store_true", help="Print the greedy policy learned by each updater.")

    return p.parse_args()


def main():
    """
    - for each run: new Gridworld + fresh updaters (the probabilistic memory starts empty)
    - train both updaters and store their returns
    - average returns across runs, save plots and print the last tables' policies
    """
    args = parse_args()
    rng = seed_everything(args.seed)

    returns_q = np.zeros(shape=(args.runs, args.episodes), dtype=np.float64)
    returns_p = np.zeros(shape=(args.runs, args.episodes), dtype=np.float64)

    last_q: PolicyTable | None = None
    last_p: PolicyTable | None = None
    env = Gridworld(seed=args.seed)

    for run_idx in range(args.runs):
        run_seed = int(rng.integers(low=0, high=1_000_000))
        env = Gridworld(seed=run_seed)

        last_q, returns_q[run_idx] = train(
            env, QLearning(alpha=args.alpha, gamma=args.gamma), args.episodes, args.max_steps,
            args.epsilon, args.epsilon_end, np.random.default_rng(run_seed),
        )
        last_p, returns_p[run_idx] = train(
            env, QProbabilistic(gamma=args.gamma), args.episodes, args.max_steps,
            args.epsilon, args.epsilon_end, np.random.default_rng(run_seed + 1),
        )

        if (run_idx + 1) % max(1, args.runs // 5) == 0:
            print(f"Completed run {run_idx + 1}/{args.runs}")

    out_dir = Path("assets/plots")
    saved = [
        save_updater_curves(
            {"Q-learning": returns_q, "Probabilistic": returns_p},
            title="Gridworld: return per episode (mean ± 1 std)",
            ylabel="Return",
            out_path=out_dir / "gridworld_returns.png",
            smooth_window=args.smooth,
        ),
        save_policy_heatmap(last_q, title="Q-learning values", out_path=out_dir / "gridworld_q_learning_values.png"),
        save_policy_heatmap(last_p, title="Probabilistic values", out_path=out_dir / "gridworld_q_probabilistic_values.png"),
    ]

    print("Saved plots:")
    for path in saved:
        print(f"  {path.resolve()}")

    tail = min(100, args.episodes)
    print("\nFinal performance (mean return over last episodes):")
    print(f"  Q-learning:    {returns_q[:, -tail:].mean():.3f}")
    print(f"  Probabilistic: {returns_p[:, -tail:].mean():.3f}")

    if args.print_policies:
        print("\nGreedy policy learned by Q-learning:")
        print(format_policy(env, last_q))
        print("\nGreedy policy learned by the probabilistic updater:")
        print(format_policy(env, last_p))


if __name__ == "__main__":
    main()
