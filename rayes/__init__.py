# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

from .common import typing as typing
from .common import errors as errors
from .optimization import RayEs as RayEs
from .optimization import RayEsConfig as RayEsConfig
from .optimization import Criterion as Criterion
from .optimization import Info as Info
from .optimization import EvaluationContext as EvaluationContext
from .optimization import LineSearchVariant as LineSearchVariant
from .optimization import callbacks as callbacks


__all__ = [
    "RayEs",
    "RayEsConfig",
    "Criterion",
    "Info",
    "EvaluationContext",
    "LineSearchVariant",
    "callbacks",
    "errors",
    "typing",
]


__version__ = "0.1.0"
