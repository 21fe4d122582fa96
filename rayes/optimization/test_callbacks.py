# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import time
import logging
from pathlib import Path
import numpy as np
import rayes.common.typing as tp
from .info import Criterion
from .core import RayEs
from . import callbacks


def _constrained_optimizer(budget: int, seed: int = 12) -> RayEs:
    return RayEs(
        lambda x: float(np.sum(x ** 2)),
        lambda x: [1.0 - x[0]],
        [-5, -5, -5],
        [5, 5, 5],
        [0, 0, 0],
        "modified",
        budget=budget,
        seed=seed,
    )


def test_generation_dumper(tmp_path: Path) -> None:
    filepath = tmp_path / "logs" / "generations.txt"
    optimizer = _constrained_optimizer(1000)
    optimizer.register_callback("generation", callbacks.GenerationDumper(filepath, append=False))
    info = optimizer.run()
    logs = callbacks.GenerationDumper(filepath).load()
    assert len(logs) == info.num_generations > 0
    last = logs[-1]
    assert last["#line-search"] == "modified"
    assert last["#generation"] == info.num_generations
    assert last["#config#popsize"] == "None"
    assert len(last["x"]) == len(last["centroid"]) == 3
    assert isinstance(last["#feasible"], bool)
    assert [log["#num-evaluations"] for log in logs] == [r.num_evaluations for r in info.history]
    # appending
    optimizer = _constrained_optimizer(300)
    optimizer.register_callback("generation", callbacks.GenerationDumper(filepath))
    info2 = optimizer.run()
    assert len(callbacks.GenerationDumper(filepath).load()) == len(logs) + info2.num_generations
    # deletion
    logger = callbacks.GenerationDumper(filepath, append=False)
    assert not logger.load()


def test_optimization_logger(caplog: tp.Any) -> None:
    logger_name = "rayes.optimization.test_callbacks"
    optimizer = _constrained_optimizer(2000)
    optimizer.register_callback(
        "generation",
        callbacks.OptimizationLogger(
            logger=logging.getLogger(logger_name), log_level=logging.INFO, log_interval_generations=2
        ),
    )
    with caplog.at_level(logging.INFO, logger=logger_name):
        info = optimizer.run()
    messages = [r.getMessage() for r in caplog.records if r.name == logger_name]
    assert len(messages) == info.num_generations // 2
    assert messages[0].startswith("After 2 generations")


def test_early_stopping_on_duration() -> None:
    optimizer = _constrained_optimizer(100000)
    optimizer.register_callback("generation", callbacks.EarlyStopping.timer(0.05))
    optimizer.register_callback("generation", lambda opt: time.sleep(0.01))
    info = optimizer.run()
    assert info.criterion == Criterion.EARLY_STOP
    assert info.num_evaluations < 100000


def test_early_stopping_without_improvement() -> None:
    optimizer = RayEs(lambda x: 12.0, None, [-1, -1], [1, 1], [0, 0], budget=100000)
    optimizer.register_callback("generation", callbacks.EarlyStopping.no_improvement_stopper(3))
    info = optimizer.run()
    assert info.criterion == Criterion.EARLY_STOP
    # the best is registered at the first generation, and 3 more generations are tolerated
    assert info.num_generations == 5
