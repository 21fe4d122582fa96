# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import numpy as np
import rayes.common.typing as tp
from rayes.common import errors
from .individual import Individual
from .info import Criterion


EvaluationResult = tp.Union[Individual, Criterion]


class Bounds:
    """Immutable box [lower, upper] of the search space.

    Parameters
    ----------
    lower: array-like
        lower bound of each variable
    upper: array-like
        upper bound of each variable (must not be lower than the lower bound)
    """

    def __init__(self, lower: tp.ArrayLike, upper: tp.ArrayLike) -> None:
        arrays = []
        for name, bound in [("lower", lower), ("upper", upper)]:
            array = np.array(bound, dtype=float, copy=True)
            if array.ndim != 1 or not array.size:
                raise errors.ConfigurationError(f"The {name} bound must be a non-empty vector (got shape {array.shape})")
            if np.any(np.isnan(array)):
                raise errors.ConfigurationError(f"The {name} bound contains NaN values: {array}")
            array.flags.writeable = False
            arrays.append(array)
        self.lower, self.upper = arrays
        if self.lower.shape != self.upper.shape:
            raise errors.ConfigurationError(
                f"Bounds have mismatching dimensions: {self.lower.size} and {self.upper.size}"
            )
        inverted = np.where(self.lower > self.upper)[0]
        if inverted.size:
            raise errors.ConfigurationError(f"Lower bounds are above upper bounds at indices {inverted.tolist()}")

    @property
    def dimension(self) -> int:
        return self.lower.size

    @property
    def widths(self) -> np.ndarray:
        return self.upper - self.lower

    def clip(self, x: tp.ArrayLike) -> np.ndarray:
        return np.clip(np.asarray(x, dtype=float), self.lower, self.upper)

    def contains(self, x: tp.ArrayLike) -> bool:
        x = np.asarray(x, dtype=float)
        return bool(np.all(self.lower <= x) and np.all(x <= self.upper))

    def ray_interval(self, origin: np.ndarray, direction: np.ndarray) -> tp.Tuple[float, float]:
        """Maximal interval [t_min, t_max] such that origin + t * direction lies in the box.
        The origin is expected to be inside the box, so that 0 belongs to the interval.
        """
        t_min, t_max = -np.inf, np.inf
        for o, d, lb, ub in zip(origin, direction, self.lower, self.upper):
            if d == 0:
                continue
            t_low, t_up = (lb - o) / d, (ub - o) / d
            if d < 0:
                t_low, t_up = t_up, t_low
            t_min = max(t_min, t_low)
            t_max = min(t_max, t_up)
        return float(min(t_min, 0.0)), float(max(t_max, 0.0))

    def exit_steps(self, origin: np.ndarray, direction: np.ndarray) -> np.ndarray:
        """Step t >= 0 at which origin + t * direction reaches the bound of each axis
        (inf on the axes the ray does not move along, 0 on fixed axes)
        """
        direction = np.asarray(direction, dtype=float)
        room = np.where(direction > 0, self.upper - origin, origin - self.lower)
        speed = np.abs(direction)
        steps = np.full(direction.shape, np.inf)
        moving = speed > 0
        steps[moving] = np.maximum(room[moving], 0.0) / speed[moving]
        return steps

    def __repr__(self) -> str:
        return f"Bounds(lower={self.lower.tolist()}, upper={self.upper.tolist()})"


class EvaluationContext:
    """Evaluation counter owned by the caller and shared with the optimizer(s) using it.
    The counter only increases, and no evaluation is granted beyond the budget (except
    the forced ones, see EvaluationPort.evaluate).

    Parameters
    ----------
    budget: int
        maximal number of evaluations
    """

    def __init__(self, budget: int) -> None:
        budget = int(budget)
        if budget < 0:
            raise errors.ConfigurationError(f"Budget must be non-negative (got {budget})")
        self.budget = budget
        self._num_evaluations = 0

    @property
    def num_evaluations(self) -> int:
        return self._num_evaluations

    @property
    def remaining(self) -> int:
        return max(0, self.budget - self._num_evaluations)

    @property
    def exhausted(self) -> bool:
        return self._num_evaluations >= self.budget

    def consume(self) -> int:
        """Records one evaluation and returns its index"""
        index = self._num_evaluations
        self._num_evaluations += 1
        return index

    def __repr__(self) -> str:
        return f"EvaluationContext(budget={self.budget}, num_evaluations={self._num_evaluations})"


class EvaluationPort:
    """Wraps objective and constraint callbacks with budget accounting.
    Evaluations return either an Individual or the Criterion which interrupts the run,
    so that budget exhaustion travels as a plain value through line searches and
    the generation loop.

    Parameters
    ----------
    objective: callable
        function taking a np.ndarray and returning a float
    constraints: callable or None
        function taking a np.ndarray and returning a vector of m floats, each of them
        being satisfied if <= 0. None means no constraint.
    bounds: Bounds
        bounds of the search space, evaluated points are clipped into them
    context: EvaluationContext
        counter and budget of evaluations
    observer: callable or None
        called with every new Individual (eg: for tracking the best one)
    """

    def __init__(
        self,
        objective: tp.ObjectiveFunction,
        constraints: tp.Optional[tp.ConstraintFunction],
        bounds: Bounds,
        context: EvaluationContext,
        observer: tp.Optional[tp.Callable[[Individual], tp.Any]] = None,
    ) -> None:
        self._objective = objective
        self._constraints = constraints
        self.bounds = bounds
        self.context = context
        self._observer = observer
        self.num_evaluations = 0  # evaluations performed through this port

    def evaluate(self, x: tp.ArrayLike, force: bool = False) -> EvaluationResult:
        """Evaluates the objective and constraints at x

        Parameters
        ----------
        x: array-like
            point to evaluate (clipped into the bounds)
        force: bool
            evaluate even though the budget is exhausted (used for the initial point)

        Returns
        -------
        Individual or Criterion
            the evaluated individual, or BUDGET_EXHAUSTED, TARGET_HIT or NUMERICAL_FAILURE
        """
        x = np.asarray(x, dtype=float)
        if x.shape != self.bounds.lower.shape:
            raise errors.ConfigurationError(f"Expected a point of shape {self.bounds.lower.shape} but got {x.shape}")
        if self.context.exhausted and not force:
            return Criterion.BUDGET_EXHAUSTED
        x = self.bounds.clip(x)
        x.flags.writeable = False  # callbacks must not modify the point
        target_hit = False
        try:
            try:
                value = self._objective(x)
            except errors.TargetHit as signal:
                if signal.value is None:
                    raise
                value, target_hit = signal.value, True
            violations = [] if self._constraints is None else self._constraints(x)
        except errors.BudgetExhausted:
            return Criterion.BUDGET_EXHAUSTED
        except errors.TargetHit:
            self._consume()
            return Criterion.TARGET_HIT
        except errors.RayEsError:
            raise
        except Exception as e:  # pylint: disable=broad-except
            raise errors.EvaluationError(f"Evaluation failed at {x.tolist()}: {e!r}") from e
        index = self._consume()
        try:
            value = float(value)
            violations = np.array(violations, dtype=float).ravel()
        except (TypeError, ValueError) as e:
            raise errors.EvaluationError(f"Evaluation at {x.tolist()} returned unsupported values: {e}") from e
        if not (np.isfinite(value) and np.all(np.isfinite(violations))):
            return Criterion.NUMERICAL_FAILURE
        individual = Individual(x, value, violations, index=index)
        if self._observer is not None:
            self._observer(individual)
        return Criterion.TARGET_HIT if target_hit else individual

    def _consume(self) -> int:
        self.num_evaluations += 1
        return self.context.consume()
