# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import numpy as np
from .sampler import RayDirectionSampler


def test_sample() -> None:
    sampler = RayDirectionSampler(3, 5, np.random.RandomState(12))
    directions, scales = sampler.sample(2.0)
    assert directions.shape == (5, 3)
    assert scales.shape == (5,)
    np.testing.assert_almost_equal(np.linalg.norm(directions, axis=1), np.ones(5))
    z = np.random.RandomState(12).randn(5, 3)
    np.testing.assert_almost_equal(directions * scales[:, None] / 2.0, z)


def test_one_block_per_generation() -> None:
    sampler1 = RayDirectionSampler(2, 4, np.random.RandomState(24))
    sampler2 = RayDirectionSampler(2, 4, np.random.RandomState(24))
    sampler1.sample(1.0)
    sampler2.sample(100.0)  # sigma does not change the draws
    directions1, scales1 = sampler1.sample(1.0)
    directions2, scales2 = sampler2.sample(3.0)
    np.testing.assert_array_almost_equal(directions1, directions2)
    np.testing.assert_array_almost_equal(3 * scales1, scales2)
    rng = np.random.RandomState(24)
    rng.randn(4, 2)
    rng.randn(4, 2)
    assert sampler1.random_state.randn() == rng.randn()


def test_null_draw() -> None:
    class NullState:
        @staticmethod
        def randn(*shape: int) -> np.ndarray:
            return np.zeros(shape)

    sampler = RayDirectionSampler(2, 3, NullState())  # type: ignore
    directions, scales = sampler.sample(0.5)
    np.testing.assert_array_equal(directions, [[1, 0], [1, 0], [1, 0]])
    np.testing.assert_array_equal(scales, [0.5, 0.5, 0.5])
