# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import pytest
import numpy as np
from rayes.common import errors
from rayes.common import testing
from . import problems


def test_registry() -> None:
    assert set(problems.registry) == {"sphere", "ellipsoid", "rosenbrock", "constrained_sphere", "disk_sphere"}


@testing.parametrized(**{name: (name,) for name in problems.registry})
def test_problem_factories(name: str) -> None:
    problem = problems.registry[name](4)
    assert problem.name == name
    assert problem.dimension == 4
    testing.assert_within_bounds([problem.initial], problem.lower, problem.upper)
    value = problem(problem.initial)
    assert isinstance(value, float)
    assert problem.evaluations == 1
    assert problem.final_target == pytest.approx(problem.optimum_value + 1e-8)
    if problem.has_constraints:
        assert problem.num_constraints == 1
        assert problem.constraints is not None
        assert problem.constraints(problem.initial).shape == (1,)
        assert problem.evaluations_constraints == 1
    else:
        assert problem.constraints is None


@testing.parametrized(
    sphere=("sphere", 0.0),
    ellipsoid=("ellipsoid", 0.0),
    rosenbrock=("rosenbrock", 0.0),
)
def test_unconstrained_target_hit(name: str, optimum: float) -> None:
    problem = problems.registry[name](3)
    assert not problem.final_target_hit
    with pytest.raises(errors.TargetHit) as exc_info:
        problem(np.ones(3))
    assert exc_info.value.value == optimum
    assert problem.final_target_hit


def test_constrained_target_hit() -> None:
    problem = problems.constrained_sphere(2)
    assert problem.constraints is not None
    np.testing.assert_almost_equal(problem.constraints(problem.initial), [np.sqrt(2)])  # infeasible start
    optimum = np.ones(2) / np.sqrt(2) * (1 + 1e-10)
    problem.constraints(np.zeros(2))
    assert not problem.final_target_hit
    value = problem(optimum)  # no exception for constrained problems
    assert value == pytest.approx(1.0)
    assert not problem.final_target_hit
    problem.constraints(np.zeros(2))  # different point
    assert not problem.final_target_hit
    problem(optimum)
    problem.constraints(optimum)
    assert problem.final_target_hit


def test_disk_sphere_infeasible_optimum() -> None:
    problem = problems.disk_sphere(2)
    center = 2 * np.ones(2) / np.sqrt(2)
    assert problem(center) == 0
    assert problem.constraints is not None
    assert problem.constraints(center)[0] > 0
    assert not problem.final_target_hit


def test_problem_errors() -> None:
    with pytest.raises(errors.ConfigurationError):
        problems.Problem("blublu", np.sum, [0, 0], [1])
    assert repr(problems.sphere(2)) == "Problem<sphere, dimension=2>"
