from __future__ import annotations

import warnings
from typing import Any, Iterable, Iterator, Sequence

import numpy as np

from relearn.tabular.keys import ActionKey, StateKey

# Export shape consumed/produced by external persistence code:
#   (state descriptor, [(action descriptor, value), ...])
PolicyRecord = tuple[Any, list[tuple[Any, float]]]


class PolicyTable:
    """
    Tabular policy values Q(s,a) keyed by StateKey and ActionKey.

    The table only stores values, it has no opinion on how they are computed:
    an updater (QLearning, QProbabilistic) writes them, the caller reads them.

    Storage is a dict of dicts:
        {state: {action: value}}

    Reads never create entries. A state shows up in the table (len, `in`, states()) only after
    update() wrote at least one of its actions. Unknown pairs read as 0.0, which is the usual
    "start every Q-value at zero" convention of tabular RL.
    """

    def __init__(self) -> None:
        self._policies: dict[StateKey, dict[ActionKey, float]] = {}

    def __len__(self) -> int:
        """
        :return: Number of states with at least one recorded action.
            :rtype: int
        """
        return len(self._policies)

    def __contains__(self, state: object) -> bool:
        return state in self._policies

    def __iter__(self) -> Iterator[tuple[StateKey, ActionKey, float]]:
        """
        Iterate over recorded (state, action, value) triplets in insertion order.

        :return: Iterator of triplets.
            :rtype: Iterator[tuple[StateKey, ActionKey, float]]
        """
        for state, action_map in self._policies.items():
            for action, value in action_map.items():
                yield state, action, value

    def __repr__(self) -> str:
        n_pairs = sum(len(action_map) for action_map in self._policies.values())
        return f"{type(self).__name__}(states={len(self._policies)}, pairs={n_pairs})"

    def states(self) -> list[StateKey]:
        """
        :return: Recorded states in insertion order.
            :rtype: list[StateKey]
        """
        return list(self._policies)

    def actions(self, state: StateKey) -> dict[ActionKey, float]:
        """
        Actions experienced in a state and their values.

        The result is a copy: mutating it does not touch the table.

        :param state: State key.
            :type state: StateKey

        :return: Mapping action -> value (empty if the state was never updated).
            :rtype: dict[ActionKey, float]
        """
        return dict(self._policies.get(state, {}))

    def update(self, state: StateKey, action: ActionKey, value: float) -> None:
        """
        Insert or overwrite Q(state, action).

        :param state: State key.
            :type state: StateKey
        :param action: Action key.
            :type action: ActionKey
        :param value: New value.
            :type value: float

        :return: None
            :rtype: None
        """
        self._policies.setdefault(state, {})[action] = value

    def value(self, state: StateKey, action: ActionKey) -> float:
        """
        Read Q(state, action).

        :param state: State key.
            :type state: StateKey
        :param action: Action key.
            :type action: ActionKey

        :return: Stored value, or 0.0 if the pair was never updated.
            :rtype: float
        """
        action_map = self._policies.get(state)
        if action_map is None:
            return 0.0
        return action_map.get(action, 0.0)

    def best_value(self, state: StateKey) -> float:
        """
        max_a Q(state, a) over the recorded actions.

        :param state: State key.
            :type state: StateKey

        :return: Best value, or 0.0 if nothing is recorded for the state.
            :rtype: float
        """
        action_map = self._policies.get(state)
        if not action_map:
            return 0.0
        return max(action_map.values())

    def best_action(self, state: StateKey) -> ActionKey | None:
        """
        argmax_a Q(state, a) over the recorded actions.

        Ties go to the action recorded first: max() keeps the first maximum it meets and dicts
        iterate in insertion order. No random tie-breaking here, exploration is the caller's job.

        :param state: State key.
            :type state: StateKey

        :return: Best action, or None if nothing is recorded for the state.
            :rtype: ActionKey | None
        """
        action_map = self._policies.get(state)
        if not action_map:
            return None
        return max(action_map.items(), key=lambda item: item[1])[0]

    def export(self) -> list[PolicyRecord]:
        """
        Flatten the table into plain records for an external serializer.

        Records look like:
            (state_descriptor, [(action_descriptor, value), ...])

        States and actions are sorted with the keys' own ordering, so the same table always
        exports the same list whatever the insertion history was.
        Rewards attached to state keys are not exported (they are not part of the key identity).

        :return: List of records.
            :rtype: list[PolicyRecord]
        """
        records: list[PolicyRecord] = []
        for state in sorted(self._policies):
            action_map = self._policies[state]
            pairs = [(action.descriptor, float(action_map[action])) for action in sorted(action_map)]
            records.append((state.descriptor, pairs))
        return records

    @classmethod
    def from_records(cls, records: Iterable[PolicyRecord]) -> PolicyTable:
        """
        Rebuild a table from records produced by export() (or by any serializer using that shape).

        :param records: Iterable of (state_descriptor, [(action_descriptor, value), ...]).
            :type records: Iterable[PolicyRecord]

        :return: New table.
            :rtype: PolicyTable
        """
        table = cls()
        for state_descriptor, pairs in records:
            state = StateKey(state_descriptor)
            for action_descriptor, value in pairs:
                action = ActionKey(action_descriptor)
                if action in table._policies.get(state, {}):
                    warnings.warn(
                        message=f"Duplicate record for state={state_descriptor!r}, action={action_descriptor!r}. "
                                f"Keeping the last value.",
                        category=RuntimeWarning,
                    )
                table.update(state, action, float(value))
        return table

    def to_array(
        self,
        states: Sequence[StateKey] | None = None,
        actions: Sequence[ActionKey] | None = None,
    ) -> tuple[np.ndarray, list[StateKey], list[ActionKey]]:
        """
        Dense Q-matrix view of the table, handy for plotting or comparing with array-based agents.

        Q[i, j] = value(states[i], actions[j]), unrecorded pairs are 0.0.

        :param states: Row order. Defaults to all recorded states, sorted.
            :type states: Sequence[StateKey] | None
        :param actions: Column order. Defaults to every recorded action, sorted.
            :type actions: Sequence[ActionKey] | None

        :return: (Q, states, actions)
            :rtype: tuple[np.ndarray, list[StateKey], list[ActionKey]]
        """
        row_keys = sorted(self._policies) if states is None else list(states)
        if actions is None:
            col_keys = sorted({action for action_map in self._policies.values() for action in action_map})
        else:
            col_keys = list(actions)

        Q = np.zeros(shape=(len(row_keys), len(col_keys)), dtype=np.float64)
        for i, state in enumerate(row_keys):
            for j, action in enumerate(col_keys):
                Q[i, j] = self.value(state, action)

        return Q, row_keys, col_keys
