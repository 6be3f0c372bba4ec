"""
Tabular value estimation over arbitrary state/action descriptors.

Includes:
- StateKey / ActionKey / Link / Episode: wrap any hashable, orderable caller value
- PolicyTable: Q(s,a) storage with zero defaults
- QLearning: deterministic single-sweep Q-learning update
- QProbabilistic: frequency based update with its TransitionMemory
- a small Gridworld simulator producing episodes
"""

from .keys import ActionKey, Descriptor, Episode, Link, StateKey, make_episode
from .policy import PolicyRecord, PolicyTable
from .memory import TransitionMemory
from .q_learning import QLearning
from .q_probabilistic import QProbabilistic
from .gridworld import Gridworld

__all__ = [
    "ActionKey",
    "Descriptor",
    "Episode",
    "Link",
    "StateKey",
    "make_episode",
    "PolicyRecord",
    "PolicyTable",
    "TransitionMemory",
    "QLearning",
    "QProbabilistic",
    "Gridworld",
]
