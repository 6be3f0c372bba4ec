from __future__ import annotations

import numpy as np
import pytest

from relearn.tabular import ActionKey, PolicyTable, StateKey


def test_unseen_state_has_zero_value_and_no_best_action() -> None:
    """
    States with no recorded actions: best_value == 0 and best_action is None.
    """
    table = PolicyTable()
    s = StateKey("nowhere")

    assert table.best_value(s) == 0.0
    assert table.best_action(s) is None
    assert table.value(s, ActionKey("up")) == 0.0


@pytest.mark.parametrize("v", [0.0, -3.25, 1e-12, 42.0, float("inf")])
def test_update_then_value_returns_exact_value(v: float) -> None:
    table = PolicyTable()
    s, a = StateKey(1), ActionKey(2)

    table.update(s, a, v)
    assert table.value(s, a) == v


def test_update_overwrites_single_value_per_pair() -> None:
    table = PolicyTable()
    s, a = StateKey(1), ActionKey(2)

    table.update(s, a, 1.0)
    table.update(StateKey(1, reward=3.0), ActionKey(2), 5.0)

    assert table.actions(s) == {a: 5.0}
    assert len(table) == 1


def test_best_value_and_best_action() -> None:
    table = PolicyTable()
    s = StateKey("s")
    table.update(s, ActionKey("left"), -1.0)
    table.update(s, ActionKey("right"), 2.5)
    table.update(s, ActionKey("up"), 0.5)

    assert table.best_value(s) == 2.5
    assert table.best_action(s) == ActionKey("right")


def test_best_value_is_max_even_if_all_negative() -> None:
    """
    best_value is the max over recorded actions, not max(0, ...).
    """
    table = PolicyTable()
    s = StateKey("s")
    table.update(s, ActionKey("a"), -4.0)
    table.update(s, ActionKey("b"), -2.0)

    assert table.best_value(s) == -2.0
    assert table.best_action(s) == ActionKey("b")


def test_best_action_ties_go_to_first_recorded_action() -> None:
    table = PolicyTable()
    s = StateKey("s")
    table.update(s, ActionKey("z"), 1.0)
    table.update(s, ActionKey("a"), 1.0)
    table.update(s, ActionKey("m"), 0.0)

    for _ in range(5):
        assert table.best_action(s) == ActionKey("z")


def test_actions_returns_a_snapshot_copy() -> None:
    table = PolicyTable()
    s, a = StateKey(0), ActionKey(0)
    table.update(s, a, 1.0)

    snapshot = table.actions(s)
    snapshot[a] = 100.0
    snapshot[ActionKey(1)] = 7.0

    assert table.value(s, a) == 1.0
    assert table.actions(s) == {a: 1.0}


def test_reads_do_not_create_entries() -> None:
    """
    Repeated reads of an unseen state keep returning the empty result and never make the state appear.
    """
    table = PolicyTable()
    s = StateKey("ghost")

    for _ in range(3):
        assert table.actions(s) == {}
        assert table.value(s, ActionKey("a")) == 0.0
        assert table.best_value(s) == 0.0
        assert table.best_action(s) is None

    assert s not in table
    assert len(table) == 0
    assert table.states() == []


def test_iteration_and_states_follow_insertion_order() -> None:
    table = PolicyTable()
    table.update(StateKey("b"), ActionKey(1), 1.0)
    table.update(StateKey("a"), ActionKey(2), 2.0)
    table.update(StateKey("b"), ActionKey(0), 3.0)

    assert [s.descriptor for s in table.states()] == ["b", "a"]
    assert [(s.descriptor, a.descriptor, v) for s, a, v in table] == [
        ("b", 1, 1.0),
        ("b", 0, 3.0),
        ("a", 2, 2.0),
    ]
    assert repr(table) == "PolicyTable(states=2, pairs=3)"


def test_export_is_sorted_and_rebuilds_the_same_table() -> None:
    table = PolicyTable()
    table.update(StateKey((1, 0)), ActionKey("up"), 0.5)
    table.update(StateKey((0, 0)), ActionKey("right"), 1.5)
    table.update(StateKey((0, 0)), ActionKey("down"), -1.0)

    records = table.export()
    assert records == [
        ((0, 0), [("down", -1.0), ("right", 1.5)]),
        ((1, 0), [("up", 0.5)]),
    ]

    rebuilt = PolicyTable.from_records(records)
    assert rebuilt.export() == records
    assert rebuilt.best_action(StateKey((0, 0))) == ActionKey("right")
    assert rebuilt.best_value(StateKey((0, 0))) == 1.5


def test_from_records_warns_on_duplicate_pairs() -> None:
    records = [
        ("s", [("a", 1.0)]),
        ("s", [("a", 2.0)]),
    ]
    with pytest.warns(RuntimeWarning):
        table = PolicyTable.from_records(records)

    assert table.value(StateKey("s"), ActionKey("a")) == 2.0


def test_to_array_fills_missing_pairs_with_zero() -> None:
    table = PolicyTable()
    table.update(StateKey(1), ActionKey("b"), 2.0)
    table.update(StateKey(0), ActionKey("a"), 1.0)

    Q, states, actions = table.to_array()

    assert [s.descriptor for s in states] == [0, 1]
    assert [a.descriptor for a in actions] == ["a", "b"]
    assert Q.dtype == np.float64
    assert np.allclose(Q, np.array([[1.0, 0.0], [0.0, 2.0]]))


def test_to_array_with_explicit_axes() -> None:
    table = PolicyTable()
    table.update(StateKey(0), ActionKey("a"), 1.0)

    Q, _, _ = table.to_array(states=[StateKey(5), StateKey(0)], actions=[ActionKey("a")])
    assert np.allclose(Q, np.array([[0.0], [1.0]]))
    assert len(table) == 1
