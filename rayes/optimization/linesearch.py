# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

from enum import Enum
import numpy as np
import rayes.common.typing as tp
from .individual import Individual
from .info import Criterion
from .evaluation import EvaluationPort, EvaluationResult


class _Ray:
    """Evaluates points origin + t * direction and keeps track of the best one"""

    def __init__(self, port: EvaluationPort, origin: np.ndarray, direction: np.ndarray) -> None:
        self.port = port
        self.origin = origin
        self.direction = direction
        self.best: tp.Optional[Individual] = None
        self.best_t = 0.0

    def probe(self, t: float) -> EvaluationResult:
        result = self.port.evaluate(self.port.bounds.clip(self.origin + t * self.direction))
        if isinstance(result, Individual) and result.dominates(self.best):
            self.best = result
            self.best_t = t
        return result


class LineSearch:
    """Searches for the best point along a ray {origin + t * direction} within the bounds.
    The ray is first clipped to the interval of steps for which it stays inside the box,
    and no point outside of it is ever evaluated. Axes which would leave the box before the
    first sample (fixed axes, or a face the origin lies on) are held on their bound instead,
    so that the ray slides along the faces of the box.

    The search goes through 3 phases:

    - the first sample is taken at step min(scale, t_max). Infeasible samples are rejected
      by halving the step, at most max_refinements times.
    - from a feasible sample, the step is expanded geometrically while the samples keep
      improving and stay feasible (or contracted geometrically if the first expansion fails).
    - the bracket around the best step is refined by bisecting its larger side.

    Parameters
    ----------
    port: EvaluationPort
        evaluation port (providing the bounds as well)
    expansion: float
        multiplicative factor of the expansion phase
    max_expansions: int
        maximal number of expansion steps
    max_refinements: int
        maximal number of halving steps, and of refinement steps
    boundary_tolerance: float
        relative (to the scale) precision for locating the constraint boundary
    max_boundary_steps: int
        maximal number of evaluations for locating the constraint boundary

    Note
    ----
    :code:`search` returns the best Individual found along the ray under the feasibility-first
    rule, or the Criterion returned by the evaluation port if an evaluation was interrupted.
    In this case, nothing evaluated on the ray is returned.
    """

    def __init__(
        self,
        port: EvaluationPort,
        *,
        expansion: float = 2.0,
        max_expansions: int = 6,
        max_refinements: int = 3,
        boundary_tolerance: float = 1e-6,
        max_boundary_steps: int = 20,
    ) -> None:
        assert expansion > 1, "Expansion factor must be greater than 1"
        assert max_expansions >= 0 and max_refinements >= 0 and max_boundary_steps >= 0
        assert boundary_tolerance > 0
        self.port = port
        self.expansion = expansion
        self.max_expansions = max_expansions
        self.max_refinements = max_refinements
        self.boundary_tolerance = boundary_tolerance
        self.max_boundary_steps = max_boundary_steps

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def search(self, origin: tp.ArrayLike, direction: tp.ArrayLike, scale: float) -> EvaluationResult:
        """Returns the best individual found along the ray, or the interrupting criterion

        Parameters
        ----------
        origin: array-like
            origin of the ray (feasible or not, clipped into the bounds)
        direction: array-like
            unit direction of the ray
        scale: float
            initial step along the ray
        """
        bounds = self.port.bounds
        origin = bounds.clip(origin)
        direction = np.asarray(direction, dtype=float)
        t_min, t_max = bounds.ray_interval(origin, direction)
        if t_max < scale:
            # axes reaching their bound before the first sample (fixed axes, or faces the origin
            # lies on) stay pinned by the clipping of the probes, and the ray slides along them
            exits = bounds.exit_steps(origin, direction)
            moving = np.isfinite(exits)
            if np.any(moving):
                threshold = min(scale, float(np.max(exits[moving])))
                sliding = moving & (exits >= threshold)
                t_min, t_max = bounds.ray_interval(origin, np.where(sliding, direction, 0.0))
        if t_max < scale and -t_min > t_max:  # more room on the other side
            direction = -direction
            t_min, t_max = -t_max, -t_min
        ray = _Ray(self.port, origin, direction)
        if t_max <= 0 or not scale > 0:  # degenerate ray
            return ray.probe(0.0)
        return self._search(ray, float(scale), t_max)

    def _search(self, ray: _Ray, scale: float, t_max: float) -> EvaluationResult:
        # rejection of infeasible samples
        t = min(scale, t_max)
        infeasible_t: tp.Optional[float] = None
        sample = ray.probe(t)
        for _ in range(self.max_refinements):
            if not isinstance(sample, Individual) or sample.feasible:
                break
            infeasible_t = t
            t /= 2.0
            sample = ray.probe(t)
        if not isinstance(sample, Individual):
            return sample
        if not sample.feasible:
            assert ray.best is not None
            return ray.best  # least infeasible sample of the ray
        lower = 0.0
        upper: tp.Optional[float] = None
        if infeasible_t is not None:
            boundary = self._locate_boundary(ray, t, infeasible_t, scale)
            if isinstance(boundary, Criterion):
                return boundary
            upper = boundary
        else:
            # expansion
            expanded = False
            for _ in range(self.max_expansions):
                t_next = min(t * self.expansion, t_max)
                if t_next <= t:  # reached the bound
                    upper = t
                    break
                sample = ray.probe(t_next)
                if not isinstance(sample, Individual):
                    return sample
                if ray.best is sample:
                    lower, t, expanded = t, t_next, True
                    continue
                upper = t_next
                if not sample.feasible:
                    boundary = self._locate_boundary(ray, t, t_next, scale)
                    if isinstance(boundary, Criterion):
                        return boundary
                    upper = boundary
                break
            if upper is not None and not expanded:
                # contraction towards the origin, when the first step was already too long
                for _ in range(self.max_expansions):
                    t_next = t / self.expansion
                    sample = ray.probe(t_next)
                    if not isinstance(sample, Individual):
                        return sample
                    if ray.best is not sample:
                        lower = t_next
                        break
                    upper, t = t, t_next
        if upper is None:  # still improving after all expansions
            assert ray.best is not None
            return ray.best
        return self._refine(ray, lower, upper)

    def _locate_boundary(
        self, ray: _Ray, feasible_t: float, infeasible_t: float, scale: float
    ) -> tp.Union[float, Criterion]:
        """Returns the upper end of the interval to refine, given a feasible and
        an infeasible step. The standard search does not spend evaluations on it.
        """
        # pylint: disable=unused-argument
        return infeasible_t

    def _refine(self, ray: _Ray, lower: float, upper: float) -> EvaluationResult:
        for _ in range(self.max_refinements):
            best_t = ray.best_t
            left, right = best_t - lower, upper - best_t
            if max(left, right) <= 0:
                break
            t = (lower + best_t) / 2.0 if left > right else (best_t + upper) / 2.0
            if t in (lower, upper, best_t):  # no more resolution
                break
            sample = ray.probe(t)
            if not isinstance(sample, Individual):
                return sample
            if ray.best is sample:
                if t < best_t:
                    upper = best_t
                else:
                    lower = best_t
            elif t < best_t:
                lower = t
            else:
                upper = t
        assert ray.best is not None
        return ray.best


class StandardLineSearch(LineSearch):
    """Line search with step expansion, halving of infeasible steps and bracket refinement"""


class ModifiedLineSearch(LineSearch):
    """Line search which locates the constraint boundary when the ray crosses it from a feasible
    to an infeasible step (bisection on the sign of the aggregate violation), before
    refining within the feasible part of the ray.
    Without active constraint, it behaves exactly as the standard line search.
    """

    def _locate_boundary(
        self, ray: _Ray, feasible_t: float, infeasible_t: float, scale: float
    ) -> tp.Union[float, Criterion]:
        tolerance = self.boundary_tolerance * scale
        for _ in range(self.max_boundary_steps):
            if infeasible_t - feasible_t <= tolerance:
                break
            t = (feasible_t + infeasible_t) / 2.0
            sample = ray.probe(t)
            if not isinstance(sample, Individual):
                return sample
            if sample.feasible:
                feasible_t = t
            else:
                infeasible_t = t
        return infeasible_t


class LineSearchVariant(Enum):
    STANDARD = "standard"
    MODIFIED = "modified"

    def create(self, port: EvaluationPort, **kwargs: tp.Any) -> LineSearch:
        cls = StandardLineSearch if self is LineSearchVariant.STANDARD else ModifiedLineSearch
        return cls(port, **kwargs)
