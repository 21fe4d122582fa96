# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import pytest
import numpy as np
import rayes.common.typing as tp
from rayes.common import testing
from .individual import Individual
from .info import Criterion
from .evaluation import Bounds, EvaluationContext, EvaluationPort
from .linesearch import LineSearchVariant, StandardLineSearch, ModifiedLineSearch
from .test_evaluation import CountingFunction


def _port(
    func: tp.Callable[[np.ndarray], float],
    constraints: tp.Optional[tp.Callable[[np.ndarray], tp.Any]] = None,
    lower: tp.Any = (-10.0,),
    upper: tp.Any = (10.0,),
    budget: int = 1000,
) -> EvaluationPort:
    return EvaluationPort(func, constraints, Bounds(lower, upper), EvaluationContext(budget))


def _search(variant: str, port: EvaluationPort, origin: tp.Any, direction: tp.Any, scale: float = 1.0) -> Individual:
    line_search = LineSearchVariant(variant).create(port)
    result = line_search.search(np.array(origin, dtype=float), np.array(direction, dtype=float), scale)
    assert isinstance(result, Individual)
    return result


def test_variant_create() -> None:
    port = _port(lambda x: 0.0)
    assert isinstance(LineSearchVariant.STANDARD.create(port), StandardLineSearch)
    search = LineSearchVariant("modified").create(port, max_boundary_steps=3)
    assert isinstance(search, ModifiedLineSearch)
    assert search.max_boundary_steps == 3
    assert search.name == "ModifiedLineSearch"
    with pytest.raises(ValueError):
        LineSearchVariant("blublu")


def test_expansion_and_refinement() -> None:
    port = _port(lambda x: float((x[0] - 3) ** 2))
    result = _search("standard", port, [0], [1])
    np.testing.assert_array_equal(result.x, [3.0])
    assert result.value == 0
    assert port.num_evaluations == 6  # first sample, 2 expansions and 3 refinements


def test_contraction() -> None:
    port = _port(lambda x: float((x[0] - 0.1) ** 2))
    result = _search("standard", port, [0], [1])
    np.testing.assert_almost_equal(result.x, [0.09375])
    assert port.num_evaluations == 9  # first sample, 1 expansion, 4 contractions and 3 refinements


def test_flip() -> None:
    func = CountingFunction(lambda x: float((x[0] - 3) ** 2))
    port = _port(func)
    result = _search("standard", port, [10], [1])
    np.testing.assert_array_equal(result.x, [2.0])
    assert result.value == 1
    assert all(x[0] < 10 for x in func.points)
    assert port.num_evaluations == 8


def test_infeasible_first_sample() -> None:
    port = _port(lambda x: -float(x[0]), lambda x: [x[0] - 0.3])
    result = _search("standard", port, [0], [1])
    assert result.feasible
    np.testing.assert_array_equal(result.x, [0.25])
    assert port.num_evaluations == 6  # 2 halvings and 3 refinements


def test_all_infeasible() -> None:
    port = _port(lambda x: -float(x[0]), lambda x: [1.0])
    result = _search("standard", port, [0], [1])
    assert not result.feasible
    np.testing.assert_array_equal(result.x, [1.0])  # first of the equally infeasible samples
    assert port.num_evaluations == 4


def test_boundary_location() -> None:
    standard_port = _port(lambda x: -float(x[0]), lambda x: [x[0] - 2.3])
    standard = _search("standard", standard_port, [0], [1])
    np.testing.assert_array_equal(standard.x, [2.0])
    assert standard_port.num_evaluations == 6
    modified_port = _port(lambda x: -float(x[0]), lambda x: [x[0] - 2.3])
    modified = _search("modified", modified_port, [0], [1])
    assert modified.feasible
    assert modified.value < -2.299
    assert modified.value < standard.value
    assert modified_port.num_evaluations == 26  # the boundary location uses 20 evaluations


def test_budget_interruption() -> None:
    port = _port(lambda x: float((x[0] - 3) ** 2), budget=2)
    result = LineSearchVariant.STANDARD.create(port).search(np.array([0.0]), np.array([1.0]), 1.0)
    assert result == Criterion.BUDGET_EXHAUSTED
    assert port.num_evaluations == 2


def test_degenerate_ray() -> None:
    func = CountingFunction(lambda x: float(np.sum(x)))
    port = _port(func, lower=[0.0, 1.0], upper=[0.0, 1.0])
    result = _search("standard", port, [0, 1], [1, 0])
    np.testing.assert_array_equal(result.x, [0.0, 1.0])
    assert port.num_evaluations == 1


def test_slide_along_face() -> None:
    # origin on the upper face of x0, with the optimum on that face
    func = CountingFunction(lambda x: float((x[0] - 10) ** 2 + x[1] ** 2))
    port = _port(func, lower=[-5, -5], upper=[5, 5])
    result = _search("standard", port, [5, 2], [0.6, -0.8])
    np.testing.assert_almost_equal(result.x, [5.0, 0.0])
    np.testing.assert_almost_equal(result.value, 25.0)
    assert all(x[0] == 5 for x in func.points)  # x0 is held on its bound
    assert port.num_evaluations == 6  # first sample, 2 expansions and 3 refinements


def test_fixed_axis() -> None:
    func = CountingFunction(lambda x: float((x[1] - 3) ** 2))
    port = _port(func, lower=[0, -5], upper=[0, 5])
    result = _search("standard", port, [0, 0], [0.6, 0.8])
    np.testing.assert_almost_equal(result.x, [0.0, 3.2])
    np.testing.assert_almost_equal(result.value, 0.04)
    assert all(x[0] == 0 for x in func.points)
    assert port.num_evaluations == 7  # first sample, 3 expansions and 3 refinements


def _shifted_sphere(x: np.ndarray) -> float:
    return float(np.sum((x - 0.5) ** 2))


@testing.parametrized(
    unconstrained=(None,),
    inactive_constraints=(lambda x: [-1.0, float(np.sum(x)) - 1e6],),
)
def test_variants_are_identical_without_active_constraint(constraints: tp.Any) -> None:
    rng = np.random.RandomState(12)
    ports = [_port(_shifted_sphere, constraints, lower=[-1, -2, -3], upper=[1, 2, 3]) for _ in range(2)]
    for _ in range(20):
        origin = rng.uniform(-1, 1, size=3)
        direction = rng.normal(size=3)
        direction /= np.linalg.norm(direction)
        scale = rng.uniform(0.01, 5)
        standard = _search("standard", ports[0], origin, direction, scale)
        modified = _search("modified", ports[1], origin, direction, scale)
        np.testing.assert_array_equal(standard.x, modified.x)
        assert standard.value == modified.value
        assert ports[0].num_evaluations == ports[1].num_evaluations


@testing.parametrized(
    standard=("standard",),
    modified=("modified",),
)
def test_points_within_bounds(variant: str) -> None:
    rng = np.random.RandomState(24)
    lower, upper = np.array([-1.0, 0.0, 2.0]), np.array([2.0, 1.0, 2.5])
    func = CountingFunction(lambda x: float(np.sum((x - 5) ** 2)))
    port = _port(func, lambda x: [np.sum(x) - 4.0], lower=lower, upper=upper, budget=100000)
    for _ in range(50):
        origin = rng.uniform(lower, upper)
        direction = rng.normal(size=3)
        direction /= np.linalg.norm(direction)
        _search(variant, port, origin, direction, rng.uniform(0.1, 20))
    testing.assert_within_bounds(func.points, lower, upper)
