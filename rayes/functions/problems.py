# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import numpy as np
import rayes.common.typing as tp
from rayes.common import errors


class Problem:
    """Box-constrained test problem keeping track of its evaluations.

    Objective and constraint evaluations are counted separately, and the problem
    signals when the final target (optimum value + precision) is reached:
    for problems without constraints, the objective raises errors.TargetHit
    (carrying the value) as soon as it is reached.

    Parameters
    ----------
    name: str
        name of the problem
    objective: callable
        function to minimize
    lower: array-like
        lower bounds of the region of interest
    upper: array-like
        upper bounds of the region of interest
    constraints: callable or None
        function returning the constraint values (satisfied if <= 0)
    initial: array-like or None
        initial solution (defaults to the center of the bounds)
    optimum_value: float or None
        known optimal value, if any
    precision: float
        distance to the optimal value under which the final target is hit
    """

    # pylint: disable=too-many-instance-attributes
    def __init__(
        self,
        name: str,
        objective: tp.ObjectiveFunction,
        lower: tp.ArrayLike,
        upper: tp.ArrayLike,
        constraints: tp.Optional[tp.ConstraintFunction] = None,
        initial: tp.Optional[tp.ArrayLike] = None,
        optimum_value: tp.Optional[float] = None,
        precision: float = 1e-8,
    ) -> None:
        self.name = name
        self._objective = objective
        self._constraints = constraints
        self.lower = np.array(lower, dtype=float)
        self.upper = np.array(upper, dtype=float)
        if self.lower.shape != self.upper.shape or self.lower.ndim != 1:
            raise errors.ConfigurationError(f"Incompatible bounds for problem {name}")
        self.initial = (self.lower + self.upper) / 2.0 if initial is None else np.array(initial, dtype=float)
        self.optimum_value = optimum_value
        self.precision = precision
        self.evaluations = 0
        self.evaluations_constraints = 0
        self.final_target_hit = False
        self._last: tp.Optional[tp.Tuple[bytes, float]] = None

    @property
    def dimension(self) -> int:
        return self.lower.size

    @property
    def num_constraints(self) -> int:
        if self._constraints is None:
            return 0
        return int(np.asarray(self._constraints(self.initial)).size)

    @property
    def final_target(self) -> tp.Optional[float]:
        return None if self.optimum_value is None else self.optimum_value + self.precision

    @property
    def has_constraints(self) -> bool:
        return self._constraints is not None

    def evaluate_function(self, x: np.ndarray) -> float:
        self.evaluations += 1
        value = float(self._objective(np.asarray(x, dtype=float)))
        self._last = (np.asarray(x, dtype=float).tobytes(), value)
        target = self.final_target
        if target is not None and value <= target and not self.has_constraints:
            self.final_target_hit = True
            raise errors.TargetHit(f"Final target of {self.name} reached", value=value)
        return value

    def evaluate_constraints(self, x: np.ndarray) -> np.ndarray:
        assert self._constraints is not None, f"Problem {self.name} has no constraint"
        self.evaluations_constraints += 1
        values = np.asarray(self._constraints(np.asarray(x, dtype=float)), dtype=float).ravel()
        target = self.final_target
        if target is not None and self._last is not None and self._last[0] == np.asarray(x, dtype=float).tobytes():
            if self._last[1] <= target and np.all(values <= 0):
                self.final_target_hit = True
        return values

    @property
    def constraints(self) -> tp.Optional[tp.ConstraintFunction]:
        """callable: constraint function to provide to the optimizer (None if unconstrained)"""
        return self.evaluate_constraints if self.has_constraints else None

    def __call__(self, x: np.ndarray) -> float:
        return self.evaluate_function(x)

    def __repr__(self) -> str:
        return f"Problem<{self.name}, dimension={self.dimension}>"


ProblemFactory = tp.Callable[[int], Problem]
registry: tp.Dict[str, ProblemFactory] = {}


def _register(func: ProblemFactory) -> ProblemFactory:
    if func.__name__ in registry:
        raise RuntimeError(f'Encountered a name collision "{func.__name__}"')
    registry[func.__name__] = func
    return func


def _box(dimension: int, width: float = 5.0) -> tp.Tuple[np.ndarray, np.ndarray]:
    assert dimension > 0, "Dimension must be positive"
    return -width * np.ones(dimension), width * np.ones(dimension)


@_register
def sphere(dimension: int) -> Problem:
    """Translated sphere function, optimum 0 at (1, ..., 1).

    If you do not solve that one then you have a bug."""

    def func(x: np.ndarray) -> float:
        y = x - 1.0
        return float(y.dot(y))

    return Problem("sphere", func, *_box(dimension), optimum_value=0.0)


@_register
def ellipsoid(dimension: int) -> Problem:
    """Translated ill-conditioned ellipsoid, optimum 0 at (1, ..., 1)"""
    weights = 10 ** np.linspace(0, 6, dimension)

    def func(x: np.ndarray) -> float:
        y = x - 1.0
        return float(weights.dot(y ** 2))

    return Problem("ellipsoid", func, *_box(dimension), optimum_value=0.0)


@_register
def rosenbrock(dimension: int) -> Problem:
    """Rosenbrock function, optimum 0 at (1, ..., 1)"""

    def func(x: np.ndarray) -> float:
        if x.size == 1:
            return float((x[0] - 1) ** 2)
        x_m_1 = x[:-1] - 1
        x_diff = x[:-1] ** 2 - x[1:]
        return float(100 * x_diff.dot(x_diff) + x_m_1.dot(x_m_1))

    return Problem("rosenbrock", func, *_box(dimension), optimum_value=0.0)


@_register
def constrained_sphere(dimension: int) -> Problem:
    """Sphere with a linear constraint sum(x) >= sqrt(n) cutting off the unconstrained optimum.
    The optimum value is 1, at (1, ..., 1) / sqrt(n), and the initial point (0) is infeasible.
    """

    def func(x: np.ndarray) -> float:
        return float(x.dot(x))

    def cons(x: np.ndarray) -> np.ndarray:
        return np.array([np.sqrt(x.size) - np.sum(x)])

    return Problem("constrained_sphere", func, *_box(dimension), constraints=cons, optimum_value=1.0)


@_register
def disk_sphere(dimension: int) -> Problem:
    """Sphere centered at distance 2 from the origin, restricted to the unit ball.
    The optimum value is 1, on the boundary of the ball.
    """
    center = 2 * np.ones(dimension) / np.sqrt(dimension)

    def func(x: np.ndarray) -> float:
        y = x - center
        return float(y.dot(y))

    def cons(x: np.ndarray) -> np.ndarray:
        return np.array([x.dot(x) - 1.0])

    return Problem("disk_sphere", func, *_box(dimension), constraints=cons, optimum_value=1.0)
