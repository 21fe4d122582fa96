# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import time
import logging
import warnings
import numpy as np
import pandas as pd
import rayes.common.typing as tp
from rayes.common import errors
from rayes.functions.problems import Problem
from rayes.optimization.core import RayEs, RayEsConfig
from rayes.optimization.evaluation import EvaluationContext
from rayes.optimization.info import Criterion, Info
from rayes.optimization.linesearch import LineSearchVariant


logger = logging.getLogger(__name__)


class DimensionTiming(tp.NamedTuple):
    """Cumulated timing of all problems of a given dimension"""

    dimension: int
    num_problems: int
    num_evaluations: int
    seconds: float

    @property
    def seconds_per_evaluation(self) -> float:
        return self.seconds / self.num_evaluations if self.num_evaluations else float("nan")


class ExperimentReport:
    """Results of an experiment: one record per problem, and timings per dimension"""

    def __init__(self) -> None:
        self.records: tp.List[tp.Dict[str, tp.Any]] = []
        self._timings: tp.Dict[int, DimensionTiming] = {}

    def add(self, record: tp.Dict[str, tp.Any]) -> None:
        self.records.append(record)
        dim = record["dimension"]
        previous = self._timings.get(dim, DimensionTiming(dim, 0, 0, 0.0))
        self._timings[dim] = DimensionTiming(
            dim,
            previous.num_problems + 1,
            previous.num_evaluations + record["evaluations"],
            previous.seconds + record["elapsed_time"],
        )

    @property
    def timings(self) -> tp.List[DimensionTiming]:
        return [self._timings[d] for d in sorted(self._timings)]

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(self.records)

    def summary(self) -> str:
        lines = [
            f"d={t.dimension} done in {t.seconds_per_evaluation:.2e} seconds/evaluation ({t.num_problems} problems, "
            f"{t.num_evaluations} evaluations)"
            for t in self.timings
        ]
        return "\n".join(lines)


class Experiment:
    """Runs RayEs on a sequence of problems, with independent restarts.

    Each problem gets a budget of dimension * budget_multiplier evaluations, shared by
    the initial run and the restarts. Restarts start from a uniformly sampled point,
    and are skipped once the budget is consumed or the final target is hit (for problems
    without constraints).

    Parameters
    ----------
    problems: iterable of Problem
        problems to run on
    budget_multiplier: int
        budget per dimension
    restarts: int
        maximal number of independent restarts after the first run
    seed: int or None
        seed of the first run (following runs use seed + k)
    line_search: str or LineSearchVariant
        line search variant of the optimizer
    config: RayEsConfig or None
        settings of the optimizer
    """

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        problems: tp.Iterable[Problem],
        *,
        budget_multiplier: int = 100,
        restarts: int = 0,
        seed: tp.Optional[int] = None,
        line_search: tp.Union[str, LineSearchVariant] = LineSearchVariant.STANDARD,
        config: tp.Optional[RayEsConfig] = None,
    ) -> None:
        assert budget_multiplier > 0, "Budget multiplier must be positive"
        assert restarts >= 0, "Number of restarts must be non-negative"
        self.problems = list(problems)
        self.budget_multiplier = budget_multiplier
        self.restarts = restarts
        self.seed = seed
        self.line_search = LineSearchVariant(line_search)
        self.config = config

    def __repr__(self) -> str:
        return (
            f"Experiment: RayEs<{self.line_search.value}, {self.config}> on {len(self.problems)} problems "
            f"(budget_multiplier={self.budget_multiplier}, restarts={self.restarts}, seed={self.seed})"
        )

    def run(self) -> ExperimentReport:
        """Runs all problems in sequence and returns the report"""
        report = ExperimentReport()
        for k, problem in enumerate(self.problems):
            record = self.run_problem(problem)
            logger.info(
                "Problem %s/%s %s (d=%s): %s runs, best value %s after %s evaluations (%s)",
                k + 1,
                len(self.problems),
                problem.name,
                problem.dimension,
                record["runs"],
                record["value"],
                record["evaluations"],
                record["criterion"],
            )
            report.add(record)
        logger.info("Timings:\n%s", report.summary())
        return report

    def _seed(self, run: int) -> tp.Optional[int]:
        return None if self.seed is None else self.seed + run

    def run_problem(self, problem: Problem) -> tp.Dict[str, tp.Any]:
        """Runs the optimizer (and its restarts) on one problem"""
        context = EvaluationContext(problem.dimension * self.budget_multiplier)
        infos: tp.List[Info] = []
        t0 = time.time()
        with warnings.catch_warnings():
            warnings.filterwarnings("ignore", category=errors.InefficientSettingsWarning)
            for run in range(1 + self.restarts):
                done = context.num_evaluations
                if (problem.final_target_hit and not problem.has_constraints) or context.remaining <= 0:
                    break
                if run:
                    rng = np.random.RandomState(self._seed(run))
                    initial = problem.lower + rng.uniform(size=problem.dimension) * (problem.upper - problem.lower)
                else:
                    initial = problem.initial
                optimizer = RayEs(
                    problem,
                    problem.constraints,
                    problem.lower,
                    problem.upper,
                    initial,
                    self.line_search,
                    context=context,
                    config=self.config,
                    seed=self._seed(run),
                )
                infos.append(optimizer.run())
                if context.num_evaluations == done:
                    warnings.warn(
                        f"Budget has not been exhausted ({done}/{context.budget} evaluations done) on {problem}",
                        errors.BudgetNotExhaustedWarning,
                    )
                    break
                if context.num_evaluations < done:
                    raise RuntimeError("Something unexpected happened - function evaluations were decreased!")
        elapsed = time.time() - t0
        best = _best_info(infos)
        return {
            "problem": problem.name,
            "dimension": problem.dimension,
            "line_search": self.line_search.value,
            "runs": len(infos),
            "evaluations": context.num_evaluations,
            "budget": context.budget,
            "value": np.nan if best is None else best.value,
            "feasible": best is not None and best.feasible,
            "criterion": str(infos[-1].criterion) if infos else "",
            "target_hit": problem.final_target_hit or any(i.criterion == Criterion.TARGET_HIT for i in infos),
            "elapsed_time": elapsed,
            "seed": -1 if self.seed is None else self.seed,
        }


def _best_info(infos: tp.Sequence[Info]) -> tp.Optional[Info]:
    """Best run under the feasibility-first rule"""
    candidates = [info for info in infos if info.best is not None]
    if not candidates:
        return None
    return min(candidates, key=lambda i: i.best.rank_key()[:2])  # type: ignore
