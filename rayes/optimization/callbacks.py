# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import json
import time
import datetime
import logging
import warnings
from pathlib import Path
import rayes.common.typing as tp
from rayes.common import errors
from . import core

global_logger = logging.getLogger(__name__)


class OptimizationLogger:
    """Logger to register as "generation" callback in an optimizer, for logging
    the best point regularly.

    Parameters
    ----------
    logger: logging.Logger
        destination of the records (defaults to this module's logger)
    log_level: int
        level of the records
    log_interval_generations: int
        number of generations between two records
    log_interval_seconds: float
        maximal delay between two records (checked after each generation)
    """

    def __init__(
        self,
        *,
        logger: logging.Logger = global_logger,
        log_level: int = logging.INFO,
        log_interval_generations: int = 1,
        log_interval_seconds: float = 60.0,
    ) -> None:
        assert log_interval_generations > 0
        assert log_interval_seconds > 0
        self._logger = logger
        self._log_level = log_level
        self._log_interval_generations = int(log_interval_generations)
        self._log_interval_seconds = log_interval_seconds
        self._next_generation = self._log_interval_generations
        self._next_time = time.time() + log_interval_seconds

    def __call__(self, optimizer: core.RayEs) -> None:
        if time.time() >= self._next_time or optimizer.num_generations >= self._next_generation:
            self._next_time = time.time() + self._log_interval_seconds
            self._next_generation = optimizer.num_generations + self._log_interval_generations
            self._logger.log(
                self._log_level,
                "After %s generations (%s evaluations), best is %s with sigma=%s",
                optimizer.num_generations,
                optimizer.num_evaluations,
                optimizer.best,
                optimizer.state.sigma,
            )


class GenerationDumper:
    """Dumps one json line per generation into a file, with the state of the search.

    Parameters
    ----------
    filepath: str or pathlib.Path
        file receiving the json lines (parent folders are created)
    append: bool
        keep previous content of the file if True, erase it otherwise

    Example
    -------

    .. code-block:: python

        dumper = GenerationDumper(filepath)
        optimizer.register_callback("generation", dumper)
        optimizer.run()
        list_of_dict_of_data = dumper.load()

    Note
    ----
    Vectors (centroid, best position) are stored as lists, settings as strings
    """

    def __init__(self, filepath: tp.PathLike, append: bool = True) -> None:
        self._session = datetime.datetime.now().strftime("%y-%m-%d %H:%M:%S")
        self._filepath = Path(filepath)
        if self._filepath.exists() and not append:
            self._filepath.unlink()
        self._filepath.parent.mkdir(exist_ok=True, parents=True)

    def __call__(self, optimizer: core.RayEs) -> None:
        best = optimizer.best
        state = optimizer.state
        data: tp.Dict[str, tp.Any] = {
            "#session": self._session,
            "#line-search": optimizer.variant.value,
            "#generation": optimizer.num_generations,
            "#num-evaluations": optimizer.num_evaluations,
            "#sigma": state.sigma,
            "#success-rate": state.success_rate,
            "centroid": state.centroid.tolist(),
        }
        data.update({"#config#" + x: str(y) for x, y in optimizer.config.config().items()})
        if best is not None:
            data.update(
                {"#value": best.value, "#violation": best.violation, "#feasible": best.feasible, "x": best.x.tolist()}
            )
        try:  # dumping must not interrupt the run
            with self._filepath.open("a") as f:
                f.write(json.dumps(data) + "\n")
        except (OSError, TypeError, ValueError) as e:
            warnings.warn(f"Failing to json data: {e}", errors.RayEsRuntimeWarning)

    def load(self) -> tp.List[tp.Dict[str, tp.Any]]:
        """Returns the list of dumped generations (one dict per line)"""
        data: tp.List[tp.Dict[str, tp.Any]] = []
        if self._filepath.exists():
            with self._filepath.open("r") as f:
                for line in f.readlines():
                    data.append(json.loads(line))
        return data


class EarlyStopping:
    """Callback for stopping the :code:`run` method before a termination criterion is met.

    Parameters
    ----------
    stopping_criterion: func(optimizer) -> bool
        predicate on the optimizer, evaluated after each generation, which
        stops the run when it returns True

    Example
    -------
    In the following code, the :code:`run` method will be stopped after the 4th generation

    >>> early_stopping = EarlyStopping(lambda opt: opt.num_generations > 3)
    >>> optimizer.register_callback("generation", early_stopping)
    >>> optimizer.run()
    """

    def __init__(self, stopping_criterion: tp.Callable[[core.RayEs], bool]) -> None:
        self.stopping_criterion = stopping_criterion

    def __call__(self, optimizer: core.RayEs) -> None:
        if self.stopping_criterion(optimizer):
            raise errors.RayEsEarlyStopping("Early stopping criterion is reached")

    @classmethod
    def timer(cls, max_duration: float) -> "EarlyStopping":
        """Early stop when max_duration seconds has been reached (from the first generation)"""
        return cls(_DurationCriterion(max_duration))

    @classmethod
    def no_improvement_stopper(cls, tolerance_window: int) -> "EarlyStopping":
        """Early stop when the best value did not decrease during tolerance_window generations"""
        return cls(_ValueImprovementToleranceCriterion(tolerance_window))


class _DurationCriterion:
    def __init__(self, max_duration: float) -> None:
        self._start = float("inf")
        self._max_duration = max_duration

    def __call__(self, optimizer: tp.OptimizerLike) -> bool:
        if self._start == float("inf"):
            self._start = time.time()
        return time.time() > self._start + self._max_duration


class _ValueImprovementToleranceCriterion:
    def __init__(self, tolerance_window: int) -> None:
        self._tolerance_window: int = tolerance_window
        self._best_value: float = float("inf")
        self._best_violation: float = float("inf")
        self._generation_of_best: int = 0

    def __call__(self, optimizer: core.RayEs) -> bool:
        best = optimizer.best
        if best is not None and (best.violation, best.value) < (self._best_violation, self._best_value):
            self._best_value, self._best_violation = best.value, best.violation
            self._generation_of_best = optimizer.num_generations
        return optimizer.num_generations - self._generation_of_best > self._tolerance_window
