# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import math
import logging
import warnings
import numpy as np
import rayes.common.typing as tp
from rayes.common import errors
from .individual import Individual, rank
from .info import Criterion, GenerationRecord, Info
from .evaluation import Bounds, EvaluationContext, EvaluationPort
from .linesearch import LineSearch, LineSearchVariant
from .sampler import RayDirectionSampler


logger = logging.getLogger(__name__)


class RayEsConfig:
    """Settings of the RayEs algorithm.
    Settings left to None are computed from the dimension of the problem (and the bounds
    for sigma0) when the optimizer is created.

    Parameters
    ----------
    popsize: int or None
        number of rays per generation (default: 4 + floor(3 ln(n)))
    mu: int or None
        number of ranked individuals used for the centroid update (default: popsize // 2)
    sigma0: float or None
        initial step size (default: 0.3 times the average width of the bounds)
    success_target: float
        target rate of generation members improving on the prior best
    success_smoothing: float
        smoothing factor of the success rate across generations
    step_adaptation: float
        learning rate of the step size towards the realized steps of the selected rays (0 disables it)
    damping: float or None
        damping of the step-size update (default: 1 + n / 2)
    min_sigma: float
        the run ends with a numerical failure when sigma falls below this value
    stagnation: int or None
        number of generations without improvement before stopping (default: 100 + 100 n^1.5 / popsize)
    expansion: float
        expansion factor of the line search
    max_expansions: int
        maximal number of expansion steps in a line search
    max_refinements: int
        maximal number of halving/refinement steps in a line search
    boundary_tolerance: float
        relative precision of the constraint boundary location (modified line search)
    max_boundary_steps: int
        maximal number of evaluations spent locating the constraint boundary (modified line search)
    """

    # pylint: disable=unused-argument,too-many-arguments,too-many-instance-attributes
    def __init__(
        self,
        *,
        popsize: tp.Optional[int] = None,
        mu: tp.Optional[int] = None,
        sigma0: tp.Optional[float] = None,
        success_target: float = 0.2,
        success_smoothing: float = 0.3,
        step_adaptation: float = 0.5,
        damping: tp.Optional[float] = None,
        min_sigma: float = 1e-300,
        stagnation: tp.Optional[int] = None,
        expansion: float = 2.0,
        max_expansions: int = 6,
        max_refinements: int = 3,
        boundary_tolerance: float = 1e-6,
        max_boundary_steps: int = 20,
    ) -> None:
        assert popsize is None or popsize >= 1, "popsize must be positive"
        assert mu is None or mu >= 1, "mu must be positive"
        assert popsize is None or mu is None or mu <= popsize, "mu cannot be larger than popsize"
        assert sigma0 is None or sigma0 > 0, "sigma0 must be positive"
        assert 0 < success_target < 1
        assert 0 < success_smoothing <= 1
        assert 0 <= step_adaptation <= 1
        assert damping is None or damping > 0
        assert min_sigma > 0
        assert stagnation is None or stagnation >= 1
        self._config = {x: y for x, y in locals().items() if x not in ("self", "__class__")}
        self.popsize = popsize
        self.mu = mu
        self.sigma0 = sigma0
        self.success_target = success_target
        self.success_smoothing = success_smoothing
        self.step_adaptation = step_adaptation
        self.damping = damping
        self.min_sigma = min_sigma
        self.stagnation = stagnation
        self.expansion = expansion
        self.max_expansions = max_expansions
        self.max_refinements = max_refinements
        self.boundary_tolerance = boundary_tolerance
        self.max_boundary_steps = max_boundary_steps
        defaults = RayEsConfig.__init__.__kwdefaults__
        params = ", ".join(f"{x}={y!r}" for x, y in sorted(self._config.items()) if y != defaults[x])
        self.name = f"{self.__class__.__name__}({params})"

    def config(self) -> tp.Dict[str, tp.Any]:
        return dict(self._config)

    def set_name(self, name: str) -> "RayEsConfig":
        """Set a new representation for the instance"""
        self.name = name
        return self

    def line_search_kwargs(self) -> tp.Dict[str, tp.Any]:
        names = ["expansion", "max_expansions", "max_refinements", "boundary_tolerance", "max_boundary_steps"]
        return {x: self._config[x] for x in names}

    def __repr__(self) -> str:
        return self.name

    def __eq__(self, other: tp.Any) -> tp.Any:
        if self.__class__ == other.__class__:
            return self._config == other._config
        return False


class SearchState:
    """Mutable state of the search, updated once per generation"""

    def __init__(self, centroid: np.ndarray, sigma: float, success_rate: float) -> None:
        self.centroid = centroid
        self.sigma = sigma
        self.success_rate = success_rate
        self.generation = 0
        self.stagnation = 0  # consecutive generations without improvement
        self.best: tp.Optional[Individual] = None

    def offer(self, individual: Individual) -> bool:
        """Updates the best individual if the new one dominates it (feasibility-first)"""
        if individual.dominates(self.best):
            self.best = individual
            return True
        return False


class RayEs:
    """Constrained evolution strategy with ray line searches.

    Each generation samples popsize directions around the centroid, runs one line search per
    direction (sequentially, in sampling order), ranks the results with the feasibility-first
    rule, moves the centroid to the rank-weighted mean of the mu best ones, and adapts the step
    size towards the steps realized by the line searches, then with a smoothed success-rate rule.

    Parameters
    ----------
    objective: callable
        function to minimize, taking a np.ndarray and returning a float
    constraints: callable or None
        function taking a np.ndarray and returning m values, satisfied if <= 0
    lower_bounds: array-like
        lower bounds of the variables
    upper_bounds: array-like
        upper bounds of the variables
    initial_point: array-like
        starting point (clipped into the bounds)
    line_search: LineSearchVariant or str
        "standard" or "modified"
    budget: int or None
        maximal number of evaluations (ignored if a context is provided)
    context: EvaluationContext or None
        shared evaluation counter and budget, owned by the caller
    config: RayEsConfig or None
        settings of the algorithm
    seed: int or None
        seed of the random state (or an existing np.random.RandomState)

    Note
    ----
    The initial point is always evaluated, even if the budget is already exhausted.
    Each instance can only run once.
    """

    # pylint: disable=too-many-instance-attributes,too-many-arguments
    def __init__(
        self,
        objective: tp.ObjectiveFunction,
        constraints: tp.Optional[tp.ConstraintFunction],
        lower_bounds: tp.ArrayLike,
        upper_bounds: tp.ArrayLike,
        initial_point: tp.ArrayLike,
        line_search: tp.Union[str, LineSearchVariant] = LineSearchVariant.STANDARD,
        *,
        budget: tp.Optional[int] = None,
        context: tp.Optional[EvaluationContext] = None,
        config: tp.Optional[RayEsConfig] = None,
        seed: tp.Optional[tp.Union[int, np.random.RandomState]] = None,
    ) -> None:
        self.bounds = Bounds(lower_bounds, upper_bounds)
        x0 = np.array(initial_point, dtype=float, copy=True)
        if x0.shape != self.bounds.lower.shape:
            raise errors.ConfigurationError(
                f"Initial point has shape {x0.shape} but bounds have dimension {self.bounds.dimension}"
            )
        if not np.all(np.isfinite(x0)):
            raise errors.ConfigurationError(f"Initial point must be finite (got {x0.tolist()})")
        self.initial_point = self.bounds.clip(x0)
        if context is None:
            if budget is None:
                raise errors.ConfigurationError("Either a budget or an evaluation context must be provided")
            context = EvaluationContext(budget)
        self.context = context
        try:
            self.variant = LineSearchVariant(line_search)
        except ValueError as e:
            raise errors.ConfigurationError(f"Unknown line search variant {line_search!r}") from e
        self.config = RayEsConfig() if config is None else config
        n = self.dimension
        # settings depending on the dimension
        self.popsize = self.config.popsize if self.config.popsize is not None else 4 + int(3 * math.log(n))
        self.mu = self.config.mu if self.config.mu is not None else max(1, self.popsize // 2)
        if self.mu > self.popsize:
            raise errors.ConfigurationError(f"mu={self.mu} cannot be larger than popsize={self.popsize}")
        weights = np.log(self.mu + 0.5) - np.log(np.arange(1, self.mu + 1))
        self.weights = weights / np.sum(weights)
        self.damping = self.config.damping if self.config.damping is not None else 1.0 + n / 2.0
        self._expected_norm = math.sqrt(n) * (1.0 - 1.0 / (4.0 * n) + 1.0 / (21.0 * n ** 2))  # E||N(0, I)||
        self.stagnation = (
            self.config.stagnation if self.config.stagnation is not None else int(100 + 100 * n ** 1.5 / self.popsize)
        )
        sigma0 = self.config.sigma0
        if sigma0 is None:
            width = float(np.mean(self.bounds.widths))
            sigma0 = 0.3 * width if width > 0 else 1.0
        self.sigma0 = sigma0
        if self.context.remaining < self.popsize:
            warnings.warn(
                f"Budget of {self.context.remaining} evaluations is lower than a single generation of "
                f"{self.popsize} line searches",
                errors.InefficientSettingsWarning,
            )
        self._rng = seed if isinstance(seed, np.random.RandomState) else np.random.RandomState(seed)
        self.state = SearchState(self.initial_point.copy(), self.sigma0, self.config.success_target)
        self.port = EvaluationPort(objective, constraints, self.bounds, self.context, observer=self.state.offer)
        self.line_search: LineSearch = self.variant.create(self.port, **self.config.line_search_kwargs())
        self.sampler = RayDirectionSampler(n, self.popsize, self._rng)
        self._history: tp.List[GenerationRecord] = []
        self._callbacks: tp.Dict[str, tp.List[tp.GenerationCallback]] = {}
        self._info: tp.Optional[Info] = None
        self._started = False

    @property
    def dimension(self) -> int:
        """int: Dimension of the optimization space."""
        return self.bounds.dimension

    @property
    def num_evaluations(self) -> int:
        """int: Number of evaluations performed by this optimizer."""
        return self.port.num_evaluations

    @property
    def num_generations(self) -> int:
        """int: Number of completed generations."""
        return self.state.generation

    @property
    def best(self) -> tp.Optional[Individual]:
        return self.state.best

    @property
    def info(self) -> tp.Optional[Info]:
        """Info: report of the run, available once it is terminated"""
        return self._info

    def __repr__(self) -> str:
        return (
            f"Instance of RayEs(dimension={self.dimension}, line_search={self.variant.value}, "
            f"budget={self.context.budget}, config={self.config})"
        )

    def register_callback(self, name: str, callback: tp.GenerationCallback) -> None:
        """Add a callback method called at the end of each generation, with the optimizer
        as only argument. This can be useful for custom logging or early stopping
        (by raising errors.RayEsEarlyStopping).

        Parameters
        ----------
        name: str
            name of the event to register the callback for (only "generation" for now)
        callback: callable
            a callable taking the optimizer as argument
        """
        assert name in ["generation"], f'Only "generation" callbacks are supported (not {name})'
        self._callbacks.setdefault(name, []).append(callback)

    def remove_all_callbacks(self) -> None:
        """Removes all registered callables"""
        self._callbacks = {}

    def run(self) -> Info:
        """Runs the optimization until a termination criterion is met

        Returns
        -------
        Info
            report on the run, including the best individual
        """
        if self._started:
            raise RuntimeError("RayEs instances can only be run once, create a new instance instead.")
        self._started = True
        first = self.port.evaluate(self.initial_point, force=True)
        if isinstance(first, Criterion):
            return self._terminate(first)
        while True:
            criterion = self._check_termination()
            if criterion is None:
                criterion = self._generation()
            if criterion is None:
                criterion = self._call_callbacks()
            if criterion is not None:
                return self._terminate(criterion)

    def _check_termination(self) -> tp.Optional[Criterion]:
        if self.context.exhausted:
            return Criterion.BUDGET_EXHAUSTED
        if self.state.stagnation >= self.stagnation:
            return Criterion.STAGNATION
        return None

    def _generation(self) -> tp.Optional[Criterion]:
        """Runs one generation: sampling, evaluating, ranking and updating.
        Returns the criterion interrupting the generation, if any (the state is then left
        untouched, except for the best individual).
        """
        state = self.state
        prior_best = state.best
        directions, scales = self.sampler.sample(state.sigma)
        offspring: tp.List[Individual] = []
        for direction, scale in zip(directions, scales):
            result = self.line_search.search(state.centroid, direction, scale)
            if isinstance(result, Criterion):
                return result
            offspring.append(result)
        # ranking
        ranked = rank(offspring)
        improved = state.best is not prior_best
        # updating
        parents = np.array([ind.x for ind in ranked[: self.mu]])
        weights = self.weights[: len(parents)]
        steps = np.linalg.norm(parents - state.centroid, axis=1)
        state.centroid = self.bounds.clip(weights @ parents)
        # step size: geometric move towards the realized steps, then success-rate rule
        realized = float(weights @ steps) / self._expected_norm
        c_s = self.config.step_adaptation
        if realized > 0 and c_s > 0:
            state.sigma = math.exp((1 - c_s) * math.log(state.sigma) + c_s * math.log(realized))
        successes = sum(ind.dominates(prior_best) for ind in offspring)
        c_p = self.config.success_smoothing
        state.success_rate = (1 - c_p) * state.success_rate + c_p * successes / len(offspring)
        target = self.config.success_target
        state.sigma *= math.exp((state.success_rate - target) / (self.damping * (1 - target)))
        state.generation += 1
        state.stagnation = 0 if improved else state.stagnation + 1
        assert state.best is not None
        record = GenerationRecord(
            generation=state.generation,
            num_evaluations=self.num_evaluations,
            best_value=state.best.value,
            best_violation=state.best.violation,
            sigma=state.sigma,
            success_rate=state.success_rate,
        )
        self._history.append(record)
        logger.debug(
            "Generation %s: %s evaluations, best value %s (violation %s), sigma=%s, success rate=%s",
            *record,
        )
        if state.sigma < self.config.min_sigma:
            state.sigma = self.config.min_sigma
            return Criterion.NUMERICAL_FAILURE
        return None

    def _call_callbacks(self) -> tp.Optional[Criterion]:
        try:
            for callback in self._callbacks.get("generation", []):
                callback(self)
        except errors.RayEsEarlyStopping:
            return Criterion.EARLY_STOP
        return None

    def _terminate(self, criterion: Criterion) -> Info:
        self._info = Info(
            criterion,
            best=self.state.best,
            num_evaluations=self.num_evaluations,
            num_generations=self.state.generation,
            sigma=self.state.sigma,
            history=self._history,
        )
        logger.info(
            "RayEs (%s line search) terminated: %s (%s)", self.variant.value, criterion, criterion.description
        )
        logger.info("%s", self._info)
        return self._info
