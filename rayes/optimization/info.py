# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

from enum import Enum
import numpy as np
import rayes.common.typing as tp
from .individual import Individual


class Criterion(Enum):
    """Reasons for which a run ends"""

    BUDGET_EXHAUSTED = "budget-exhausted"
    TARGET_HIT = "target-hit"
    STAGNATION = "stagnation"
    NUMERICAL_FAILURE = "numerical-failure"
    EARLY_STOP = "early-stop"

    @property
    def description(self) -> str:
        """str: human-readable explanation, for diagnostics"""
        return _DESCRIPTIONS[self]

    def __str__(self) -> str:
        return self.value


_DESCRIPTIONS = {
    Criterion.BUDGET_EXHAUSTED: "the evaluation budget is exhausted",
    Criterion.TARGET_HIT: "the final target was reached",
    Criterion.STAGNATION: "the best solution did not improve for too many generations",
    Criterion.NUMERICAL_FAILURE: "the step size underflowed or an evaluation was not finite",
    Criterion.EARLY_STOP: "a callback requested early stopping",
}


class GenerationRecord(tp.NamedTuple):
    """Statistics of one completed generation"""

    generation: int
    num_evaluations: int
    best_value: float
    best_violation: float
    sigma: float
    success_rate: float


class Info:
    """Read-only report of a terminated run.

    Parameters
    ----------
    criterion: Criterion
        reason for termination
    best: Individual or None
        best individual found (feasible if any feasible individual was evaluated,
        the least infeasible one otherwise). It is None only if the evaluation of
        the initial point was itself interrupted.
    num_evaluations: int
        total number of evaluations consumed by the run
    num_generations: int
        number of completed generations
    sigma: float
        step size at termination
    history: sequence of GenerationRecord
        statistics of each completed generation
    """

    __slots__ = ("_criterion", "_best", "_num_evaluations", "_num_generations", "_sigma", "_history")

    def __init__(
        self,
        criterion: Criterion,
        best: tp.Optional[Individual],
        num_evaluations: int,
        num_generations: int,
        sigma: float,
        history: tp.Sequence[GenerationRecord] = (),
    ) -> None:
        self._criterion = Criterion(criterion)
        self._best = best
        self._num_evaluations = int(num_evaluations)
        self._num_generations = int(num_generations)
        self._sigma = float(sigma)
        self._history = tuple(history)

    @property
    def criterion(self) -> Criterion:
        return self._criterion

    @property
    def best(self) -> tp.Optional[Individual]:
        return self._best

    @property
    def x(self) -> tp.Optional[np.ndarray]:
        """np.ndarray: position of the best individual"""
        return None if self._best is None else self._best.x

    @property
    def value(self) -> float:
        """float: objective value of the best individual (inf if there is none)"""
        return float("inf") if self._best is None else self._best.value

    @property
    def feasible(self) -> bool:
        return self._best is not None and self._best.feasible

    @property
    def num_evaluations(self) -> int:
        return self._num_evaluations

    @property
    def num_generations(self) -> int:
        return self._num_generations

    @property
    def sigma(self) -> float:
        return self._sigma

    @property
    def history(self) -> tp.Tuple[GenerationRecord, ...]:
        return self._history

    def _best_data(self) -> tp.Tuple[tp.Any, ...]:
        if self._best is None:
            return ()
        return (self._best.x.tobytes(), self._best.value, self._best.violation)

    def __eq__(self, other: tp.Any) -> bool:
        if not isinstance(other, Info):
            return NotImplemented
        return (
            self._criterion == other._criterion
            and self._num_evaluations == other._num_evaluations
            and self._num_generations == other._num_generations
            and self._sigma == other._sigma
            and self._best_data() == other._best_data()
            and self._history == other._history
        )

    def __hash__(self) -> int:
        return hash((self._criterion, self._num_evaluations, self._num_generations, self._best_data()))

    def __repr__(self) -> str:
        return (
            f"Info<{self._criterion} ({self._criterion.description}) after {self._num_evaluations} evaluations "
            f"and {self._num_generations} generations, best: {self._best}>"
        )
