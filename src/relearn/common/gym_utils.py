from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

import gymnasium as gym

from relearn.tabular.keys import ActionKey, Link, StateKey

logger = logging.getLogger(__name__)


def make_first_available(env_ids: Iterable[str], **kwargs: Any) -> gym.Env:
    """
    Try environment IDs in order and return the first one that works.

    This is useful because toy-text env IDs can differ slightly across versions.

    :param env_ids: Candidate Gymnasium environment IDs.
        :type env_ids: Iterable[str]
    :param kwargs: Extra keyword arguments for gym.make (e.g. is_slippery=False).
        :type kwargs: Any

    :return: A created Gymnasium environment.
        :rtype: gym.Env
    """
    env_ids = list(env_ids)
    last_err: Exception | None = None
    for env_id in env_ids:
        try:
            return gym.make(env_id, **kwargs)
        except Exception as e:
            logger.debug("Could not make %s: %s", env_id, e)
            last_err = e
    raise RuntimeError(f"None of the env IDs worked: {env_ids}") from last_err


def rollout_episode(
    env: gym.Env,
    choose_action: Callable[[StateKey], Any],
    max_steps: int = 500,
    seed: int | None = None,
) -> tuple[list[Link], float]:
    """
    Play one Gymnasium episode and record it as relearn links.

    Observations and actions are used as descriptors directly, so this fits discrete (toy-text)
    environments whose observations are ints. Each state carries the reward of the transition taken
    from it, which makes the last link hold the reward that ended the episode.

    :param env: Gymnasium environment (reset/step API with terminated/truncated flags).
        :type env: gym.Env
    :param choose_action: Maps the current state key to an action.
        :type choose_action: Callable[[StateKey], Any]
    :param max_steps: Max steps per episode.
        :type max_steps: int
    :param seed: Optional seed passed to env.reset().
        :type seed: int | None

    :return: (episode, return)
        :rtype: tuple[list[Link], float]
    """
    obs, _ = env.reset(seed=seed)
    episode: list[Link] = []
    total_reward = 0.0

    for _ in range(max_steps):
        obs = int(obs)
        action = choose_action(StateKey(obs))
        next_obs, reward, terminated, truncated, _ = env.step(action)
        total_reward += float(reward)
        episode.append(Link(state=StateKey(obs, reward=float(reward)), action=ActionKey(int(action))))
        obs = next_obs
        if terminated or truncated:
            break

    return episode, total_reward
