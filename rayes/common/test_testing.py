# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import typing as tp
import pytest
import numpy as np
from . import testing


@testing.parametrized(
    inside=([[0, 0], [1, -1]], ""),
    on_bounds=([[-1, 1], [1, 1]], ""),
    outside=([[0, 0], [2, 0]], "1 point(s) outside of bounds:"),
    both_outside=([[-3, 0], [2, 0]], "2 point(s) outside of bounds:"),
)
def test_assert_within_bounds(points: tp.List[tp.List[float]], message: str) -> None:
    try:
        testing.assert_within_bounds(points, [-1, -1], [1, 1])
    except AssertionError as error:
        if not message:
            raise AssertionError("An error has been raised while it should not.")
        np.testing.assert_equal(error.args[0].split("\n")[0], message)
    else:
        if message:
            raise AssertionError("An error should have been raised.")


@testing.parametrized(
    single=((3,),),
    other=((4,),),
)
def test_parametrized_single_argument(value: tp.Tuple[int]) -> None:
    assert value in [(3,), (4,)]


def test_parametrized_errors() -> None:
    with pytest.raises(AssertionError):
        testing.parametrized(a=(1, 2), b=(1,))
    with pytest.raises(AssertionError):
        testing.parametrized()
    with pytest.raises(AssertionError):
        testing.parametrized(a=(1, 2))(lambda x: None)


def test_parametrized_ids() -> None:
    decorator = testing.parametrized(second=(2,), first=(1,))
    assert decorator.ids == ["first", "second"]
    assert decorator.values == [(1,), (2,)]
