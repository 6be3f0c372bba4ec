from __future__ import annotations

import warnings
from typing import Callable, Iterable, Mapping

import numpy as np

from relearn.tabular.keys import ActionKey, Link, StateKey

Position = tuple[int, int]

# action descriptor -> (d_row, d_col)
MOVES: dict[str, Position] = {
    "up": (-1, 0),
    "right": (0, 1),
    "down": (1, 0),
    "left": (0, -1),
}


class Gridworld:
    """
    A small deterministic Gridworld simulator producing relearn episodes.

    States are (row, col) tuples and actions are the strings in MOVES, both used directly as
    descriptors: tuples and strings are hashable and orderable, which is all the tabular core needs.

    Default behaviour:
    - stepping into walls (or blocked cells) keeps you in the same cell
    - reaching a terminal cell ends the episode and yields that cell's reward
    - every other step yields `step_reward` (default 0)

    Episodes follow the relearn convention: one Link(s_t, a_t) per action taken, and the state of the
    last link carries the reward of the transition that ended the episode.

    :param height: Number of rows.
        :type height: int
    :param width: Number of columns.
        :type width: int
    :param terminals: Terminal cells and their reward, e.g. {(0, 3): 1.0, (1, 3): -1.0}.
        :type terminals: Mapping[tuple[int, int], float]
    :param blocked: Cells that cannot be entered.
        :type blocked: Iterable[tuple[int, int]]
    :param step_reward: Reward for non-terminal transitions.
        :type step_reward: float
    :param seed: RNG seed (only used to sample start cells).
        :type seed: int | None
    """

    def __init__(
        self,
        height: int = 3,
        width: int = 4,
        terminals: Mapping[Position, float] | None = None,
        blocked: Iterable[Position] = ((1, 1),),
        step_reward: float = 0.0,
        seed: int | None = None,
    ):
        self.height = int(height)
        self.width = int(width)
        self.step_reward = float(step_reward)
        self.rng = np.random.default_rng(seed)

        if terminals is None:
            terminals = {(0, self.width - 1): 1.0, (1, self.width - 1): -1.0}
        self.terminals = {self._check_pos(pos): float(r) for pos, r in terminals.items()}
        self.blocked = {self._check_pos(pos) for pos in blocked}

        self._pos: Position | None = None
        self._done = False

    @property
    def actions(self) -> list[str]:
        return list(MOVES)

    def _check_pos(self, pos: Iterable[int]) -> Position:
        row, col = (int(v) for v in pos)
        if not (0 <= row < self.height and 0 <= col < self.width):
            raise ValueError(f"position {(row, col)} is outside the {self.height}x{self.width} grid")
        return row, col

    def cells(self) -> list[Position]:
        """
        :return: Every cell that can be occupied (blocked cells excluded), row-major order.
            :rtype: list[tuple[int, int]]
        """
        return [
            (r, c) for r in range(self.height) for c in range(self.width) if (r, c) not in self.blocked
        ]

    def is_terminal(self, pos: Position) -> bool:
        return tuple(pos) in self.terminals

    def move(self, pos: Position, action: str) -> Position:
        """
        Deterministic transition function.

        :param pos: Current cell.
            :type pos: tuple[int, int]
        :param action: One of "up", "right", "down", "left".
            :type action: str

        :return: Next cell.
            :rtype: tuple[int, int]
        """
        if action not in MOVES:
            raise ValueError(f"Invalid action {action!r}. Must be one of {list(MOVES)}.")

        d_row, d_col = MOVES[action]
        row = min(max(pos[0] + d_row, 0), self.height - 1)
        col = min(max(pos[1] + d_col, 0), self.width - 1)
        if (row, col) in self.blocked:
            return tuple(pos)
        return row, col

    def reset(self, start: Position | None = None) -> Position:
        """
        Reset the simulator.

        :param start: Optional start cell. If None, use a random non-terminal cell.
            :type start: tuple[int, int] | None

        :return: Start cell.
            :rtype: tuple[int, int]
        """
        if start is not None:
            start = self._check_pos(start)
            if self.is_terminal(start) or start in self.blocked:
                warnings.warn(message=f"The cell {start} cannot be a start cell. Another cell will be sampled randomly.",
                              category=RuntimeWarning)
            else:
                self._pos = start
                self._done = False
                return self._pos

        candidates = [pos for pos in self.cells() if not self.is_terminal(pos)]
        if not candidates:
            raise ValueError("Every free cell is terminal. Cannot sample a start cell.")

        self._pos = candidates[int(self.rng.integers(low=0, high=len(candidates)))]
        self._done = False
        return self._pos

    def step(self, action: str) -> tuple[Position, float, bool]:
        """
        Step the simulator by one action.

        :param action: Action descriptor.
            :type action: str

        :return: (next_cell, reward, done)
            :rtype: tuple[tuple[int, int], float, bool]
        """
        if self._pos is None:
            raise RuntimeError("You must call reset() before step().")
        if self._done:
            raise RuntimeError("Episode is done. Call reset() before calling step() again.")

        self._pos = self.move(self._pos, action)
        self._done = self.is_terminal(self._pos)
        reward = self.terminals[self._pos] if self._done else self.step_reward
        return self._pos, reward, self._done

    def run_episode(
        self,
        choose_action: Callable[[StateKey], str],
        max_steps: int = 100,
        start: Position | None = None,
    ) -> tuple[list[Link], float]:
        """
        Play one episode and record it as links.

        :param choose_action: Maps the current state key to an action descriptor (exploration policy).
            :type choose_action: Callable[[StateKey], str]
        :param max_steps: Safety cap on the episode length.
            :type max_steps: int
        :param start: Optional start cell (see reset()).
            :type start: tuple[int, int] | None

        :return: (episode, return), where return is the sum of rewards seen.
            :rtype: tuple[list[Link], float]
        """
        pos = self.reset(start)
        episode: list[Link] = []
        total_reward = 0.0

        for _ in range(max_steps):
            action = choose_action(StateKey(pos))
            next_pos, reward, done = self.step(action)
            total_reward += reward
            # each state carries the reward of the transition taken from it,
            # so the last link holds the reward that ended the episode
            episode.append(Link(state=StateKey(pos, reward=reward), action=ActionKey(action)))
            pos = next_pos
            if done:
                break

        return episode, total_reward
