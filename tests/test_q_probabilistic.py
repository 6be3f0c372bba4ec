import numpy as np
import pytest

from relearn.tabular import (
    ActionKey,
    Gridworld,
    Link,
    PolicyTable,
    QProbabilistic,
    StateKey,
    TransitionMemory,
    make_episode,
)


def test_three_step_episode() -> None:
    """
    Episode s0 -> s1 -> s2 (reward 8) applied once on an empty table and memory.

    Each (s_t, a_t) has one successor seen once -> P = 1/1 = 1.
        Q(s0,a0) = 1 * r(s0) + gamma * (max Q(s1,.) * 1) = 0   (s1 not written yet)
        Q(s1,a1) = 1 * r(s1) + gamma * (max Q(s2,.) * 1) = 0   (s2 not written yet)
        Q(s2,a2) = r(s2) = 8
    """
    table = PolicyTable()
    updater = QProbabilistic(gamma=0.9)
    episode = make_episode([("s0", "a0"), ("s1", "a1"), ("s2", "a2")], terminal_reward=8.0)

    updater(episode, table)

    s0, s1, s2 = StateKey("s0"), StateKey("s1"), StateKey("s2")
    a0, a1, a2 = ActionKey("a0"), ActionKey("a1"), ActionKey("a2")

    assert updater.memory.count(s0, a0, s1) == 1
    assert updater.memory.successors(s0, a0) == 1
    assert updater.memory.probability(s0, a0, s1) == 1.0
    assert len(updater.memory) == 2

    assert table.value(s0, a0) == 0.0
    assert table.value(s1, a1) == 0.0
    assert table.value(s2, a2) == 8.0


def test_terminal_step_passes_reward_through() -> None:
    table = PolicyTable()
    updater = QProbabilistic(gamma=0.9)
    s0, a0 = StateKey("s0", reward=7.0), ActionKey("a0")

    updater([Link(s0, a0)], table)

    assert table.value(s0, a0) == 7.0
    # a single step has no transition to count
    assert len(updater.memory) == 0


def test_counts_accumulate_across_calls() -> None:
    """
    Known quirk: P divides by the number of DISTINCT successors, so repeating the same episode
    pushes P above 1.

    gamma=0.9, episode s0 -> s1 (reward 2) -> s2 (reward 8):
        call 1: P = 1/1
            Q(s0,a0) = 1*0 + 0.9 * (0 * 1) = 0
            Q(s1,a1) = 1*2 + 0.9 * (0 * 1) = 2
        call 2: P = 2/1 = 2
            Q(s0,a0) = 2*0 + 0.9 * (2 * 2) = 3.6   (max Q(s1,.) = 2 from call 1)
            Q(s1,a1) = 2*2 + 0.9 * (8 * 2) = 18.4  (max Q(s2,.) = 8 from call 1)
    """
    table = PolicyTable()
    updater = QProbabilistic(gamma=0.9)
    episode = [
        Link(StateKey("s0"), ActionKey("a0")),
        Link(StateKey("s1", reward=2.0), ActionKey("a1")),
        Link(StateKey("s2", reward=8.0), ActionKey("a2")),
    ]

    updater(episode, table)
    assert table.value(StateKey("s0"), ActionKey("a0")) == 0.0
    assert np.isclose(a=table.value(StateKey("s1"), ActionKey("a1")), b=2.0)

    updater(episode, table)
    assert updater.memory.count(StateKey("s0"), ActionKey("a0"), StateKey("s1")) == 2
    assert updater.memory.probability(StateKey("s0"), ActionKey("a0"), StateKey("s1")) == 2.0
    assert np.isclose(a=table.value(StateKey("s0"), ActionKey("a0")), b=3.6)
    assert np.isclose(a=table.value(StateKey("s1"), ActionKey("a1")), b=18.4)
    assert table.value(StateKey("s2"), ActionKey("a2")) == 8.0


def test_probability_uses_distinct_successor_count() -> None:
    """
    Known quirk: (s,a) -> x twice and (s,a) -> y once gives P(x) = 2/2 = 1.0, not the classical 2/3.
    """
    memory = TransitionMemory()
    s, a, x, y = StateKey("s"), ActionKey("a"), StateKey("x"), StateKey("y")

    memory.observe(s, a, x)
    memory.observe(s, a, x)
    memory.observe(s, a, y)

    assert memory.successors(s, a) == 2
    assert memory.observations(s, a) == 3
    assert memory.probability(s, a, x) == 1.0
    assert memory.probability(s, a, y) == 0.5
    # the classical frequency is still available
    assert np.isclose(a=memory.count(s, a, x) / memory.observations(s, a), b=2 / 3)


def test_probability_is_a_true_ratio_of_counts() -> None:
    """
    Known quirk: one observation each of (s,a) -> x and (s,a) -> y gives P = 1/2 = 0.5.
    Integer division of the two counts would truncate it to 0.
    """
    memory = TransitionMemory()
    s, a, x, y = StateKey("s"), ActionKey("a"), StateKey("x"), StateKey("y")

    memory.observe(s, a, x)
    memory.observe(s, a, y)

    assert memory.probability(s, a, x) == 0.5
    assert memory.probability(s, a, y) == 0.5
    assert isinstance(memory.probability(s, a, x), float)


def test_quirk_flows_into_updated_values() -> None:
    """
    Two episodes from the same (s, a) reaching different successors.
    After both, (s,a) has 2 distinct successors; the second episode uses P(y) = 1/2.
    """
    table = PolicyTable()
    updater = QProbabilistic(gamma=1.0)
    to_x = [Link(StateKey("s", reward=4.0), ActionKey("a")), Link(StateKey("x", reward=1.0), ActionKey("stop"))]
    to_y = [Link(StateKey("s", reward=4.0), ActionKey("a")), Link(StateKey("y", reward=6.0), ActionKey("stop"))]

    updater(to_x, table)
    assert np.isclose(a=table.value(StateKey("s"), ActionKey("a")), b=4.0)  # P(x) = 1: 1 * 4 + 1.0 * (0 * 1)

    updater(to_y, table)
    # P(y) = 1/2 -> 0.5 * 4 + 1.0 * (0 * 0.5), max Q(y,.) is still empty at step 0
    assert np.isclose(a=table.value(StateKey("s"), ActionKey("a")), b=2.0)
    assert table.value(StateKey("y"), ActionKey("stop")) == 6.0


def test_empty_episode_is_a_noop() -> None:
    table = PolicyTable()
    updater = QProbabilistic(gamma=0.5)
    updater([], table)

    assert len(table) == 0
    assert len(updater.memory) == 0


def test_memory_never_shrinks() -> None:
    """
    The number of distinct (s, a, s') triplets is non-decreasing over many calls.
    """
    env = Gridworld(seed=0)
    rng = np.random.default_rng(0)
    table = PolicyTable()
    updater = QProbabilistic(gamma=0.9)

    sizes = [len(updater.memory)]
    for _ in range(30):
        episode, _ = env.run_episode(lambda s: env.actions[int(rng.integers(0, 4))], max_steps=20)
        updater(episode, table)
        sizes.append(len(updater.memory))

    assert all(a <= b for a, b in zip(sizes, sizes[1:]))
    assert sizes[-1] > 0


def test_q_value_needs_observed_transitions() -> None:
    episode = make_episode([("s0", "a0"), ("s1", "a1")], terminal_reward=1.0)
    updater = QProbabilistic(gamma=0.9)

    with pytest.raises(RuntimeError):
        updater.q_value(episode, 0, PolicyTable())
    with pytest.raises(IndexError):
        updater.q_value(episode, 2, PolicyTable())

    # terminal step never touches the memory
    state, action, q = updater.q_value(episode, 1, PolicyTable())
    assert (state, action, q) == (StateKey("s1"), ActionKey("a1"), 1.0)


def test_memory_is_owned_by_the_instance() -> None:
    episode = make_episode([("s0", "a0"), ("s1", "a1")], terminal_reward=1.0)
    first, second = QProbabilistic(gamma=0.9), QProbabilistic(gamma=0.9)

    first(episode, PolicyTable())

    assert len(first.memory) == 1
    assert len(second.memory) == 0
    assert (StateKey("s0"), ActionKey("a0"), StateKey("s1")) in first.memory
    assert list(first.memory.items()) == [((StateKey("s0"), ActionKey("a0"), StateKey("s1")), 1)]


@pytest.mark.parametrize("gamma", [-0.5, 1.5])
def test_invalid_gamma_raises(gamma: float) -> None:
    with pytest.raises(ValueError):
        QProbabilistic(gamma=gamma)
