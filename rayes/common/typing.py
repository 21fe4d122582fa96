# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Type aliases shared across rayes, meant to be imported as :code:`tp`
"""
# pylint: disable=unused-import
from typing import Any as Any
from typing import Optional as Optional
from typing import Union as Union
from typing import Callable as Callable
from typing import Dict as Dict
from typing import Tuple as Tuple
from typing import List as List
from typing import Sequence as Sequence
from typing import Iterable as Iterable
from typing import NamedTuple as NamedTuple
from pathlib import Path as Path
from typing_extensions import Protocol

import numpy as _np


ArrayLike = Union[Tuple[float, ...], List[float], _np.ndarray]
PathLike = Union[str, Path]
# objective: point -> value to minimize
ObjectiveFunction = Callable[[_np.ndarray], float]
# constraints: point -> values g, satisfied if g <= 0
ConstraintFunction = Callable[[_np.ndarray], ArrayLike]


class OptimizerLike(Protocol):
    """Progress counters available to generation callbacks"""

    # pylint: disable=pointless-statement

    @property
    def num_evaluations(self) -> int:
        ...

    @property
    def num_generations(self) -> int:
        ...


class GenerationCallback(Protocol):
    # pylint: disable=pointless-statement, unused-argument

    def __call__(self, optimizer: OptimizerLike) -> None:
        ...
