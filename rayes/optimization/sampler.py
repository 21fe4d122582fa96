# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import numpy as np
import rayes.common.typing as tp


class RayDirectionSampler:
    """Samples the probe directions of a generation.
    Exactly one (popsize, dimension) block of standard normal values is drawn per call,
    whatever happens to the corresponding line searches afterwards, so that the sequence
    of directions only depends on the seed and the number of generations.

    Parameters
    ----------
    dimension: int
        dimension of the search space
    popsize: int
        number of directions per generation
    random_state: np.random.RandomState
        seeded random state to pull from
    """

    def __init__(self, dimension: int, popsize: int, random_state: np.random.RandomState) -> None:
        assert dimension > 0 and popsize > 0
        self.dimension = dimension
        self.popsize = popsize
        self.random_state = random_state

    def sample(self, sigma: float) -> tp.Tuple[np.ndarray, np.ndarray]:
        """Returns unit directions (one per row) and their step scales sigma * ||z||"""
        z = self.random_state.randn(self.popsize, self.dimension)
        norms = np.linalg.norm(z, axis=1)
        degenerate = norms == 0
        if np.any(degenerate):  # a null draw has no direction, fall back to the first axis
            z[degenerate, 0] = 1.0
            norms[degenerate] = 1.0
        return z / norms[:, None], sigma * norms
