from __future__ import annotations

from collections import Counter
from typing import Iterator

from relearn.tabular.keys import ActionKey, StateKey

Transition = tuple[StateKey, ActionKey, StateKey]


class TransitionMemory:
    """
    Observation counts of transitions (s_t, a_t) -> s_{t+1}.

    Counts live in one flat Counter keyed by the triplet (state, action, next_state).
    A second Counter keyed by (state, action) tracks how many DISTINCT next states were seen,
    so successors() is O(1) instead of a scan.

    The memory only grows: there is no eviction, decay or reset.
    """

    def __init__(self) -> None:
        self._counts: Counter[Transition] = Counter()
        self._successors: Counter[tuple[StateKey, ActionKey]] = Counter()
        self._observations: Counter[tuple[StateKey, ActionKey]] = Counter()

    def __len__(self) -> int:
        """
        :return: Number of distinct (state, action, next_state) triplets observed.
            :rtype: int
        """
        return len(self._counts)

    def __contains__(self, transition: object) -> bool:
        return transition in self._counts

    def __repr__(self) -> str:
        return f"{type(self).__name__}(transitions={len(self._counts)})"

    def observe(self, state: StateKey, action: ActionKey, next_state: StateKey) -> int:
        """
        Record one observation of (state, action) -> next_state.

        :param state: State s_t.
            :type state: StateKey
        :param action: Action a_t.
            :type action: ActionKey
        :param next_state: State s_{t+1}.
            :type next_state: StateKey

        :return: Updated count for the transition.
            :rtype: int
        """
        key = (state, action, next_state)
        if key not in self._counts:
            self._successors[(state, action)] += 1
        self._counts[key] += 1
        self._observations[(state, action)] += 1
        return self._counts[key]

    def count(self, state: StateKey, action: ActionKey, next_state: StateKey) -> int:
        """
        :return: How many times (state, action) -> next_state was observed (0 if never).
            :rtype: int
        """
        return self._counts.get((state, action, next_state), 0)

    def successors(self, state: StateKey, action: ActionKey) -> int:
        """
        :return: Number of distinct next states observed after (state, action).
            :rtype: int
        """
        return self._successors.get((state, action), 0)

    def observations(self, state: StateKey, action: ActionKey) -> int:
        """
        :return: Total observations of (state, action), summed over all next states.
            :rtype: int
        """
        return self._observations.get((state, action), 0)

    def probability(self, state: StateKey, action: ActionKey, next_state: StateKey) -> float:
        """
        Transition weight used by QProbabilistic:

            P = count(s, a, s') / successors(s, a)

        The denominator is the number of DISTINCT next states, not the total number of
        observations, so P is not a normalized frequency once (s, a) has several successors
        (e.g. counts {x: 2, y: 1} give P(x) = 2/2 = 1.0 instead of 2/3).
        QProbabilistic's values depend on this exact ratio, so it is kept as is.
        Compare with count() / observations() for the classical frequency.

        :param state: State s_t.
            :type state: StateKey
        :param action: Action a_t.
            :type action: ActionKey
        :param next_state: State s_{t+1}.
            :type next_state: StateKey

        :return: count / distinct successors, or 0.0 if (state, action) was never observed.
            :rtype: float
        """
        successors = self.successors(state, action)
        if successors == 0:
            return 0.0
        return self.count(state, action, next_state) / successors

    def items(self) -> Iterator[tuple[Transition, int]]:
        """
        Iterate over ((state, action, next_state), count) in first-observed order.

        :return: Iterator of (transition, count).
            :rtype: Iterator[tuple[Transition, int]]
        """
        return iter(self._counts.items())
