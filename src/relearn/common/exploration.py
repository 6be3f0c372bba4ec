from __future__ import annotations

from typing import Any, Sequence

import numpy as np

from relearn.tabular.keys import ActionKey, StateKey
from relearn.tabular.policy import PolicyTable


def epsilon_greedy(
    policy: PolicyTable,
    state: StateKey,
    actions: Sequence[Any],
    epsilon: float,
    rng: np.random.Generator,
) -> Any:
    """
    Choose an action descriptor with ε-greedy over a PolicyTable.

    The updaters never choose actions, so example scripts drive the environment with this:
        1. With probability epsilon: explore -> uniform random action
        2. Else: exploit -> an action with the maximum value in that state

    Unrecorded actions count as 0.0 (same default as PolicyTable.value), and ties are broken at random:
    early on most values are equal, and always taking the first one would bias the behaviour.

    :param policy: Table to read values from.
        :type policy: PolicyTable
    :param state: Current state key.
        :type state: StateKey
    :param actions: Action descriptors available in this state.
        :type actions: Sequence[Any]
    :param epsilon: Exploration probability.
        :type epsilon: float
    :param rng: Random generator.
        :type rng: np.random.Generator

    :return: Chosen action descriptor.
        :rtype: Any
    """
    if len(actions) == 0:
        raise ValueError("actions must not be empty")

    # Exploration
    if rng.random() < epsilon:
        return actions[int(rng.integers(low=0, high=len(actions)))]

    # Exploitation
    q = np.array([policy.value(state, ActionKey(a)) for a in actions], dtype=np.float64)
    best_actions = np.flatnonzero(np.isclose(a=q, b=np.max(q)))
    return actions[int(rng.choice(best_actions))]


def linear_epsilon(step: int, epsilon_start: float, epsilon_end: float, decay_steps: int) -> float:
    """
    Linearly decay ε from epsilon_start to epsilon_end over decay_steps, then keep it at epsilon_end.

    :param step: Current step (or episode) index.
        :type step: int
    :param epsilon_start: Initial ε.
        :type epsilon_start: float
    :param epsilon_end: Final ε.
        :type epsilon_end: float
    :param decay_steps: Number of steps of the decay.
        :type decay_steps: int

    :return: ε at this step.
        :rtype: float
    """
    if decay_steps <= 0:
        raise ValueError("decay_steps must be >= 1")

    frac = min(1.0, max(0, step) / decay_steps)
    return float(epsilon_start + frac * (epsilon_end - epsilon_start))
