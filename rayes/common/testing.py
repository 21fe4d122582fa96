# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import inspect
import typing as tp
import pytest
import numpy as np


def assert_within_bounds(points: tp.Iterable[tp.Any], lower: tp.Any, upper: tp.Any) -> None:
    """Asserts that all points lie in the box [lower, upper] (element-wise),
    with a message listing the offending points.
    This function should only be used in tests.
    """
    lower, upper = (np.asarray(b, dtype=float) for b in (lower, upper))
    outside = [np.asarray(x) for x in points if np.any(np.asarray(x) < lower) or np.any(np.asarray(x) > upper)]
    if outside:
        text = "\n - ".join(str(x) for x in outside[:10])
        raise AssertionError(f"{len(outside)} point(s) outside of bounds:\n - {text}")


class parametrized:
    """Decorator for named parametrized tests, built on pytest.mark.parametrize.
    See test_testing for examples.

    Parameters
    ----------
    **cases:
        each keyword is the id of a test case, and its tuple holds one value per
        argument of the decorated test function (in definition order).
    """

    def __init__(self, **cases: tp.Tuple[tp.Any, ...]) -> None:
        assert cases, "At least one case is required"
        self.ids = sorted(cases)
        self.values = [cases[name] for name in self.ids]
        assert all(isinstance(v, (tuple, list)) for v in self.values), "Cases must be tuples or lists"
        self.num_args = len(self.values[0])
        assert all(len(v) == self.num_args for v in self.values), "All cases must have the same length"

    def __call__(self, func: tp.Callable[..., None]) -> tp.Any:
        names = list(inspect.signature(func).parameters)
        assert len(names) == self.num_args, f"Expected {self.num_args} arguments but got {names}"
        values = self.values if self.num_args > 1 else [v[0] for v in self.values]
        return pytest.mark.parametrize(",".join(names), values, ids=self.ids)(func)
