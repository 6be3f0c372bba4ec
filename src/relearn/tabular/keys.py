from __future__ import annotations

import copy
from abc import ABCMeta, abstractmethod
from dataclasses import dataclass
from functools import total_ordering
from numbers import Real
from typing import Any, Generic, Sequence, TypeVar


def _check_methods(cls: type, *methods: str) -> bool:
    """
    Return True if every method is defined (and not disabled with None) somewhere in the MRO below object.

    Same rule the collections.abc one-trick ponies use (e.g. Hashable sets __hash__ = None to opt out),
    except that object's own identity hash/eq and NotImplemented-returning __lt__ do not count.
    """
    mro = cls.__mro__
    for method in methods:
        for base in mro:
            if base is object:
                continue
            if method in base.__dict__:
                if base.__dict__[method] is None:
                    return False
                break
        else:
            return False
    return True


class Descriptor(metaclass=ABCMeta):
    """
    Capability set a state/action descriptor must provide: hash, equality and ordering.

    This is the only thing the tabular core knows about the caller's types.
    Builtins such as int, str, float and tuples of them satisfy it out of the box, and so does any
    class defining __hash__, __eq__ and __lt__ (for example a @dataclass(frozen=True, order=True)).

    The core does NOT check that these methods are consistent with each other:
        a == b must imply hash(a) == hash(b), and __lt__ must be a strict weak ordering.
    Breaking that is a caller bug and gives undefined table behaviour.
    """

    __slots__ = ()

    @abstractmethod
    def __hash__(self) -> int:
        return 0

    @abstractmethod
    def __eq__(self, other: object) -> bool:
        return False

    @abstractmethod
    def __lt__(self, other: Any) -> bool:
        return False

    @classmethod
    def __subclasshook__(cls, C: type):
        if cls is Descriptor:
            return _check_methods(C, "__hash__", "__eq__", "__lt__")
        return NotImplemented


D = TypeVar("D", bound=Descriptor)
S = TypeVar("S", bound=Descriptor)
A = TypeVar("A", bound=Descriptor)


def _copy_descriptor(descriptor: Any, kind: str) -> Any:
    """
    Validate a descriptor and return a private deep copy of it.

    :param descriptor: Caller value to wrap.
        :type descriptor: Any
    :param kind: "state" or "action", only used in the error message.
        :type kind: str

    :return: Deep copy of descriptor.
        :rtype: Any
    """
    if not isinstance(descriptor, Descriptor):
        raise TypeError(
            f"{kind} descriptor of type {type(descriptor).__name__} must be hashable, "
            f"comparable with == and orderable with <"
        )
    # keys never alias caller state -> later mutation of the caller object cannot corrupt the table
    return copy.deepcopy(descriptor)


@total_ordering
@dataclass(frozen=True, eq=False)
class StateKey(Generic[D]):
    """
    A state s_t: wraps a caller descriptor plus the reward observed in that state.

    Equality, ordering and hashing delegate to the descriptor only, the reward is not part of the identity.
    So StateKey((0, 1), reward=0.0) == StateKey((0, 1), reward=5.0).

    By convention the last state of an episode carries the terminal (ground truth) reward,
    every other state usually keeps the default 0.

    :param descriptor: Caller value describing the state (deep-copied).
        :type descriptor: D
    :param reward: Reward attached to this state.
        :type reward: float
    """

    descriptor: D
    reward: float = 0.0

    def __post_init__(self) -> None:
        if not isinstance(self.reward, Real):
            raise TypeError(f"reward must be a real number, got {type(self.reward).__name__}")

        # frozen dataclass -> go through object.__setattr__
        object.__setattr__(self, "descriptor", _copy_descriptor(self.descriptor, kind="state"))
        object.__setattr__(self, "reward", float(self.reward))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StateKey):
            return NotImplemented
        return bool(self.descriptor == other.descriptor)

    def __lt__(self, other: StateKey) -> bool:
        if not isinstance(other, StateKey):
            return NotImplemented
        return bool(self.descriptor < other.descriptor)

    def __hash__(self) -> int:
        return hash(self.descriptor)


@total_ordering
@dataclass(frozen=True, eq=False)
class ActionKey(Generic[D]):
    """
    An action a_t: wraps a caller descriptor.

    Equality, ordering and hashing delegate to the descriptor.

    :param descriptor: Caller value describing the action (deep-copied).
        :type descriptor: D
    """

    descriptor: D

    def __post_init__(self) -> None:
        object.__setattr__(self, "descriptor", _copy_descriptor(self.descriptor, kind="action"))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ActionKey):
            return NotImplemented
        return bool(self.descriptor == other.descriptor)

    def __lt__(self, other: ActionKey) -> bool:
        if not isinstance(other, ActionKey):
            return NotImplemented
        return bool(self.descriptor < other.descriptor)

    def __hash__(self) -> int:
        return hash(self.descriptor)


@dataclass(frozen=True, order=True)
class Link(Generic[S, A]):
    """
    One observed step of an episode: the state we were in and the action we took.

    Frozen + order=True gives equality, hashing and lexicographic ordering on (state, action).

    :param state: State key s_t.
        :type state: StateKey
    :param action: Action key a_t.
        :type action: ActionKey
    """

    state: StateKey[S]
    action: ActionKey[A]


# An episode is just an ordered, finite sequence of links.
# The reward of the last link's state is the terminal reward.
Episode = Sequence[Link]


def make_episode(steps: Sequence[tuple[Any, Any]], terminal_reward: float = 0.0) -> list[Link]:
    """
    Build an episode from raw (state descriptor, action descriptor) pairs.

    Every state gets reward 0 except the last one, which gets terminal_reward.
    Use StateKey/Link directly if intermediate states carry rewards too.

    :param steps: Sequence of (state_descriptor, action_descriptor).
        :type steps: Sequence[tuple[Any, Any]]
    :param terminal_reward: Reward attached to the final state.
        :type terminal_reward: float

    :return: Episode as a list of links.
        :rtype: list[Link]
    """
    episode: list[Link] = []
    last = len(steps) - 1
    for i, (state, action) in enumerate(steps):
        reward = terminal_reward if i == last else 0.0
        episode.append(Link(state=StateKey(state, reward=reward), action=ActionKey(action)))
    return episode
