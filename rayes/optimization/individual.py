# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import numpy as np
import rayes.common.typing as tp


class Individual:
    """Evaluated candidate solution.
    Instances are created by the evaluation port once both the objective and the
    constraints were computed, and are never modified afterwards.

    Parameters
    ----------
    x: np.ndarray
        position of the candidate (already clipped into the bounds)
    value: float
        objective value at x
    violations: np.ndarray
        constraint values at x, each constraint being satisfied if <= 0
    index: int
        evaluation order of the candidate, used for breaking ties
    """

    __slots__ = ("_x", "_value", "_violations", "_index", "_violation")

    def __init__(self, x: tp.ArrayLike, value: float, violations: tp.ArrayLike, index: int) -> None:
        self._x = np.array(x, dtype=float, copy=True)
        self._x.flags.writeable = False
        self._value = float(value)
        self._violations = np.array(violations, dtype=float, copy=True).ravel()
        self._violations.flags.writeable = False
        self._index = int(index)
        self._violation = float(np.sum(np.maximum(0.0, self._violations)))

    @property
    def x(self) -> np.ndarray:
        return self._x

    @property
    def value(self) -> float:
        return self._value

    @property
    def violations(self) -> np.ndarray:
        return self._violations

    @property
    def index(self) -> int:
        return self._index

    @property
    def feasible(self) -> bool:
        """bool: whether all constraints are satisfied (g <= 0)"""
        return not self._violation > 0

    @property
    def violation(self) -> float:
        """float: aggregate violation, sum of the positive parts of the constraints"""
        return self._violation

    def rank_key(self) -> tp.Tuple[int, float, int]:
        """Sorting key of the feasibility-first rule: feasible candidates first, ordered
        by objective value, then infeasible ones ordered by aggregate violation.
        Ties are broken by evaluation order.
        """
        if self.feasible:
            return (0, self._value, self._index)
        return (1, self._violation, self._index)

    def dominates(self, other: tp.Optional["Individual"]) -> bool:
        """Strict feasibility-first comparison (ties never dominate)"""
        if other is None:
            return True
        return self.rank_key()[:2] < other.rank_key()[:2]

    def __repr__(self) -> str:
        status = "feasible" if self.feasible else f"violation={self._violation}"
        return f"Individual<#{self._index}, value={self._value}, {status}, x={self._x.tolist()}>"


def rank(individuals: tp.Iterable[Individual]) -> tp.List[Individual]:
    """Sorts individuals according to the feasibility-first rule
    (first-seen wins among equivalent candidates)
    """
    return sorted(individuals, key=Individual.rank_key)


def best_of(individuals: tp.Iterable[Individual]) -> tp.Optional[Individual]:
    """Returns the first best individual, or None if there is none"""
    best: tp.Optional[Individual] = None
    for ind in individuals:
        if ind.dominates(best):
            best = ind
    return best
