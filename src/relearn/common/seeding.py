from __future__ import annotations
import random
import numpy as np


def seed_everything(seed: int) -> np.random.Generator:
    """
    Seed Python's `random` and NumPy's global RNG, and return a fresh Generator for the caller.

    The tabular core itself is deterministic (no randomness in the updaters), so only the
    collaborators need seeding: exploration, start cells sampled by the Gridworld and Gymnasium resets.

    :param seed: Master seed.
        :type seed: int

    :return: np.random.Generator seeded with `seed`.
        :rtype: np.random.Generator
    """
    seed = int(seed)
    random.seed(seed)
    np.random.seed(seed)
    return np.random.default_rng(seed)
