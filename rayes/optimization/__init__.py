# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

from .core import RayEs
from .core import RayEsConfig
from .info import Criterion
from .info import Info
from .individual import Individual
from .evaluation import Bounds
from .evaluation import EvaluationContext
from .linesearch import LineSearchVariant
