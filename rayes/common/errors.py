# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import typing as tp


# base classes


class RayEsError(Exception):
    """Base class for error raised by rayes"""


class RayEsWarning(Warning):
    pass


# control-flow signals
# these may be raised by evaluation callbacks and are converted into
# explicit termination criteria by the evaluation port


class BudgetExhausted(RayEsError):
    """Raised by an evaluation collaborator when no evaluation can be performed anymore"""


class TargetHit(RayEsError):
    """Raised by an evaluation collaborator when the final target was reached.
    When raised by the objective function, the reached value can be provided so that
    the evaluated point is still recorded.
    """

    def __init__(self, message: str = "Final target reached", value: tp.Optional[float] = None) -> None:
        super().__init__(message)
        self.value = value


# errors
# pylint: disable=too-many-ancestors


class RayEsEarlyStopping(StopIteration, RayEsError):
    """Stops the generation loop if raised from a callback"""


class ConfigurationError(ValueError, RayEsError):
    """Inconsistent bounds, initial point or settings"""


class EvaluationError(RuntimeError, RayEsError):
    """Unclassified failure of an objective or constraint callback"""


# warnings


class RayEsRuntimeWarning(RuntimeWarning, RayEsWarning):
    """Runtime warning raise by rayes"""


class InefficientSettingsWarning(RayEsRuntimeWarning):
    """Optimization settings are not optimal for the optimizer"""


class BudgetNotExhaustedWarning(RayEsRuntimeWarning):
    """A run terminated without consuming its budget"""
