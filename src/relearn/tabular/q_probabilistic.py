from __future__ import annotations

import logging

from relearn.tabular.keys import ActionKey, Episode, StateKey
from relearn.tabular.memory import TransitionMemory
from relearn.tabular.policy import PolicyTable

logger = logging.getLogger(__name__)


class QProbabilistic:
    """
    Non-deterministic (frequency based) Q update.

    The updater remembers every transition (s_t, a_t) -> s_{t+1} it has ever been shown and turns
    those counts into a transition weight P. Each call runs two phases:

        1. count the transitions of the whole episode into the memory
        2. recompute every step from the updated counts:

            Q(s_t,a_t) <- P * r(s_t) + gamma * (max_a Q(s_{t+1},a) * P)   (t < T)
            Q(s_T,a_T) <- r(s_T)                                          (last step)

    where P = count(s_t,a_t,s_{t+1}) / number of distinct next states seen after (s_t,a_t).
    See TransitionMemory.probability for why this is not a normalized frequency.

    The memory belongs to this instance: keep one updater alive across episodes to accumulate
    statistics, create a new one to start from scratch.

    :param gamma: Discount factor in [0, 1].
        :type gamma: float
    """

    def __init__(self, gamma: float = 0.99):
        self.gamma = float(gamma)
        if not (0.0 <= self.gamma <= 1.0):
            raise ValueError(f"gamma must be in [0, 1], got {self.gamma}")

        self._memory = TransitionMemory()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(gamma={self.gamma}, memory={self._memory!r})"

    @property
    def memory(self) -> TransitionMemory:
        """
        Transition counts accumulated so far (read it, don't write it).

        :return: The updater's memory.
            :rtype: TransitionMemory
        """
        return self._memory

    def q_value(self, episode: Episode, index: int, policy: PolicyTable) -> tuple[StateKey, ActionKey, float]:
        """
        Compute the new value of step `index` from the current memory, without writing it.

        The transitions of `episode` must already be in the memory (__call__ does that first),
        otherwise a non-terminal step would have no successor to divide by.

        :param episode: Sequence of links.
            :type episode: Episode
        :param index: Step index in [0, len(episode) - 1].
            :type index: int
        :param policy: Table read for max_a Q(s_{t+1},a).
            :type policy: PolicyTable

        :return: (state, action, new value)
            :rtype: tuple[StateKey, ActionKey, float]
        """
        if not (0 <= index < len(episode)):
            raise IndexError(f"step index {index} out of range for an episode of length {len(episode)}")

        step = episode[index]
        if index == len(episode) - 1:
            return step.state, step.action, step.state.reward

        next_state = episode[index + 1].state
        successors = self._memory.successors(step.state, step.action)
        if successors == 0:
            raise RuntimeError(
                f"transition from step {index} was never observed, update the memory before computing values"
            )

        prob = self._memory.count(step.state, step.action, next_state) / successors
        r_expected = prob * step.state.reward
        q_next = policy.best_value(next_state)

        return step.state, step.action, r_expected + self.gamma * (q_next * prob)

    def __call__(self, episode: Episode, policy: PolicyTable) -> None:
        """
        Count the episode's transitions, then update every step of the episode.

        :param episode: Sequence of links (empty is a no-op).
            :type episode: Episode
        :param policy: Table to update in place.
            :type policy: PolicyTable

        :return: None
            :rtype: None
        """
        # phase 1 must finish before phase 2: probabilities use the counts of the whole episode
        for i in range(len(episode) - 1):
            self._memory.observe(episode[i].state, episode[i].action, episode[i + 1].state)

        for i in range(len(episode)):
            state, action, q = self.q_value(episode, i, policy)
            policy.update(state, action, q)

        logger.debug(
            "Probabilistic update over %d steps, memory holds %d transitions", len(episode), len(self._memory)
        )
