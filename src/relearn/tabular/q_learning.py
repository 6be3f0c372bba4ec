from __future__ import annotations

import logging

from relearn.tabular.keys import ActionKey, Episode, StateKey
from relearn.tabular.policy import PolicyTable

logger = logging.getLogger(__name__)


class QLearning:
    """
    Deterministic Q-learning update over a whole episode.

    The episode is swept ONCE, forward, and every step is written to the table before moving on:

        Q(s_t,a_t) <- Q(s_t,a_t) + alpha * [r(s_t) + gamma * max_a Q(s_{t+1},a) - Q(s_t,a_t)]   (t < T)
        Q(s_T,a_T) <- r(s_T)                                                                   (last step)

    Two details differ from the textbook per-transition agent:
        - r(s_t) is the reward attached to the CURRENT state of the step, not the next one.
        - max_a Q(s_{t+1},a) is read from the table as it is at step t. On an empty table the terminal
          reward only reaches the step before it on the next call, and a state visited twice in the same
          episode is bootstrapped from its value before this sweep touched it.

    Exploration lives outside: this class never chooses actions, it only estimates values.

    :param alpha: Learning rate in (0, 1].
        :type alpha: float
    :param gamma: Discount factor in [0, 1].
        :type gamma: float
    """

    def __init__(self, alpha: float = 0.1, gamma: float = 0.99):
        self.alpha = float(alpha)
        self.gamma = float(gamma)

        if not (0.0 < self.alpha <= 1.0):
            raise ValueError(f"alpha must be in (0, 1], got {self.alpha}")
        if not (0.0 <= self.gamma <= 1.0):
            raise ValueError(f"gamma must be in [0, 1], got {self.gamma}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(alpha={self.alpha}, gamma={self.gamma})"

    def q_value(self, episode: Episode, index: int, policy: PolicyTable) -> tuple[StateKey, ActionKey, float]:
        """
        Compute the new value of step `index` without writing it.

        :param episode: Sequence of links.
            :type episode: Episode
        :param index: Step index in [0, len(episode) - 1].
            :type index: int
        :param policy: Table read for Q(s_t,a_t) and max_a Q(s_{t+1},a).
            :type policy: PolicyTable

        :return: (state, action, new value)
            :rtype: tuple[StateKey, ActionKey, float]
        """
        if not (0 <= index < len(episode)):
            raise IndexError(f"step index {index} out of range for an episode of length {len(episode)}")

        step = episode[index]
        if index == len(episode) - 1:
            # terminal step: no bootstrap, the observed reward is the value
            return step.state, step.action, step.state.reward

        q = policy.value(step.state, step.action)
        q_next = policy.best_value(episode[index + 1].state)
        r = step.state.reward

        td_error = r + self.gamma * q_next - q
        return step.state, step.action, q + self.alpha * td_error

    def __call__(self, episode: Episode, policy: PolicyTable) -> None:
        """
        Apply the update to every step of the episode, in order.

        :param episode: Sequence of links (empty is a no-op).
            :type episode: Episode
        :param policy: Table to update in place.
            :type policy: PolicyTable

        :return: None
            :rtype: None
        """
        for i in range(len(episode)):
            state, action, q = self.q_value(episode, i, policy)
            policy.update(state, action, q)

        logger.debug("Q-learning update over %d steps, table has %d states", len(episode), len(policy))
