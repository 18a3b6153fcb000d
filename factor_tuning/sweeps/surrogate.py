"""
Gaussian-process surrogate and acquisition functions for Bayesian search.

The surrogate works on the unit hypercube: every parameter is mapped to
[0, 1] (on a log scale where requested) before it reaches the Gaussian
process, and mapped back when a proposal leaves it. Proposals are handed
to Optuna through :class:`GaussianProcessSampler`, so the study records
the same (rounded) values the surrogate is trained on.
"""

from __future__ import annotations

import logging
import math
import warnings
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence

import numpy as np
import optuna
from optuna.distributions import BaseDistribution, FloatDistribution, IntDistribution
from optuna.samplers import BaseSampler, RandomSampler
from optuna.trial import FrozenTrial, TrialState
from scipy.optimize import minimize
from scipy.stats import norm
from sklearn.exceptions import ConvergenceWarning
from sklearn.gaussian_process import GaussianProcessRegressor
from sklearn.gaussian_process.kernels import Matern

if TYPE_CHECKING:
    from .config import ParameterBounds

logger = logging.getLogger(__name__)


class Acquisition(str, Enum):
    """Rules for scoring candidate points from the surrogate's mean and spread."""

    EXPECTED_IMPROVEMENT = "expected_improvement"
    UPPER_CONFIDENCE_BOUND = "upper_confidence_bound"
    PROBABILITY_OF_IMPROVEMENT = "probability_of_improvement"

    @classmethod
    def parse(cls, value: Any) -> "Acquisition":
        """Accept the full name or the short forms ei, ucb and poi."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        aliases = {
            "ei": cls.EXPECTED_IMPROVEMENT,
            "ucb": cls.UPPER_CONFIDENCE_BOUND,
            "poi": cls.PROBABILITY_OF_IMPROVEMENT,
            "pi": cls.PROBABILITY_OF_IMPROVEMENT,
        }
        if key in aliases:
            return aliases[key]
        for member in cls:
            if member.value == key:
                return member
        choices = [m.value for m in cls] + sorted(aliases)
        raise ValueError(f"Unknown acquisition function {value!r}. Choose from {choices}")


def acquisition_values(
    kind: Acquisition,
    mean: np.ndarray,
    std: np.ndarray,
    best: float,
    kappa: float = 2.576,
    xi: float = 0.0,
) -> np.ndarray:
    """Score candidates for maximization given the surrogate's posterior."""
    mean = np.asarray(mean, dtype=float)
    std = np.asarray(std, dtype=float)

    if kind is Acquisition.UPPER_CONFIDENCE_BOUND:
        return mean + kappa * std

    improvement = mean - best - xi
    with np.errstate(divide="ignore", invalid="ignore"):
        z = np.where(std > 0, improvement / std, 0.0)

    if kind is Acquisition.EXPECTED_IMPROVEMENT:
        values = improvement * norm.cdf(z) + std * norm.pdf(z)
    else:
        values = norm.cdf(z)
    return np.where(std > 0, values, 0.0)


class GaussianProcessSurrogate:
    """Gaussian-process model of the score over the unit hypercube."""

    def __init__(
        self,
        space: Mapping[str, "ParameterBounds"],
        random_state: Optional[np.random.RandomState] = None,
        n_candidates: int = 2000,
        n_polish: int = 5,
    ):
        self.space = dict(space)
        self.names = list(self.space)
        self.random_state = random_state or np.random.RandomState()
        self.n_candidates = n_candidates
        self.n_polish = n_polish
        self._gp = GaussianProcessRegressor(
            kernel=Matern(nu=2.5),
            alpha=1e-6,
            normalize_y=True,
            n_restarts_optimizer=5,
            random_state=self.random_state,
        )
        self._fitted = False

    @property
    def dim(self) -> int:
        return len(self.names)

    def encode(self, params: Mapping[str, Any]) -> np.ndarray:
        """Map a parameter assignment to a point in the unit hypercube."""
        point = np.empty(self.dim)
        for i, name in enumerate(self.names):
            bounds = self.space[name]
            low, high, value = bounds.low, bounds.high, float(params[name])
            if bounds.log:
                low, high, value = math.log(low), math.log(high), math.log(value)
            point[i] = 0.0 if high == low else (value - low) / (high - low)
        return np.clip(point, 0.0, 1.0)

    def decode(self, point: Sequence[float]) -> Dict[str, Any]:
        """Map a unit-hypercube point back to an assignment, rounding integers."""
        params: Dict[str, Any] = {}
        for i, name in enumerate(self.names):
            bounds = self.space[name]
            u = float(np.clip(point[i], 0.0, 1.0))
            if bounds.log:
                value = math.exp(math.log(bounds.low) + u * (math.log(bounds.high) - math.log(bounds.low)))
            else:
                value = bounds.low + u * (bounds.high - bounds.low)
            if bounds.is_integer:
                params[name] = int(min(max(round(value), bounds.low), bounds.high))
            else:
                params[name] = float(min(max(value, bounds.low), bounds.high))
        return params

    def fit(self, points: np.ndarray, scores: np.ndarray) -> "GaussianProcessSurrogate":
        """Refit the Gaussian process on every observation so far."""
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", ConvergenceWarning)
            self._gp.fit(np.atleast_2d(points), np.asarray(scores, dtype=float))
        self._fitted = True
        return self

    def predict(self, points: np.ndarray):
        """Posterior mean and standard deviation at the given points."""
        if not self._fitted:
            raise RuntimeError("Surrogate must be fitted before predicting")
        mean, std = self._gp.predict(np.atleast_2d(points), return_std=True)
        return mean, std

    def propose(self, kind: Acquisition, best: float, kappa: float = 2.576, xi: float = 0.0) -> np.ndarray:
        """Return the unit-hypercube point that maximizes the acquisition function.

        A batch of uniform random candidates is scored first; the best few
        are then polished with L-BFGS-B.
        """

        def score(points: np.ndarray) -> np.ndarray:
            mean, std = self.predict(points)
            return acquisition_values(kind, mean, std, best, kappa=kappa, xi=xi)

        candidates = self.random_state.uniform(size=(self.n_candidates, self.dim))
        values = score(candidates)
        best_index = int(np.argmax(values))
        best_point, best_value = candidates[best_index], values[best_index]

        for start in candidates[np.argsort(values)[::-1][: self.n_polish]]:
            result = minimize(
                lambda x: -score(x.reshape(1, -1))[0],
                start,
                bounds=[(0.0, 1.0)] * self.dim,
                method="L-BFGS-B",
            )
            if result.success and -result.fun > best_value:
                best_point, best_value = result.x, -result.fun

        return np.clip(best_point, 0.0, 1.0)


def to_distribution(bounds: "ParameterBounds") -> BaseDistribution:
    """Convert search bounds into the matching Optuna distribution."""
    if bounds.is_integer:
        return IntDistribution(int(bounds.low), int(bounds.high), log=bounds.log)
    return FloatDistribution(bounds.low, bounds.high, log=bounds.log)


class GaussianProcessSampler(BaseSampler):
    """Optuna sampler driven by a Gaussian-process surrogate.

    The first ``n_startup_trials`` trials are drawn uniformly at random.
    After that every trial refits the surrogate on all finished trials and
    takes the acquisition maximizer. Pruned trials (failed evaluations)
    are fed to the surrogate at the worst completed score seen so far.
    """

    def __init__(
        self,
        space: Mapping[str, "ParameterBounds"],
        acquisition: Acquisition,
        n_startup_trials: int,
        kappa: float = 2.576,
        xi: float = 0.0,
        seed: Optional[int] = None,
    ):
        self._space = dict(space)
        self._acquisition = Acquisition.parse(acquisition)
        self._n_startup_trials = n_startup_trials
        self._kappa = kappa
        self._xi = xi
        self._rng = np.random.RandomState(seed)
        self._random_sampler = RandomSampler(seed=seed)

    def reseed_rng(self) -> None:
        self._rng.seed()
        self._random_sampler.reseed_rng()

    def infer_relative_search_space(
        self, study: optuna.Study, trial: FrozenTrial
    ) -> Dict[str, BaseDistribution]:
        return {name: to_distribution(bounds) for name, bounds in self._space.items()}

    def sample_relative(
        self, study: optuna.Study, trial: FrozenTrial, search_space: Dict[str, BaseDistribution]
    ) -> Dict[str, Any]:
        if not search_space or trial.number < self._n_startup_trials:
            return {}

        observations = self._observations(study)
        if observations is None:
            logger.debug("Trial %d: no completed trials yet, sampling at random", trial.number)
            return {}

        surrogate = GaussianProcessSurrogate(self._space, random_state=self._rng)
        points = np.array([surrogate.encode(params) for params, _ in observations])
        scores = np.array([score for _, score in observations])
        surrogate.fit(points, scores)

        proposal = surrogate.decode(
            surrogate.propose(self._acquisition, float(scores.max()), kappa=self._kappa, xi=self._xi)
        )
        logger.debug("Trial %d: surrogate proposed %s", trial.number, proposal)
        return proposal

    def sample_independent(
        self,
        study: optuna.Study,
        trial: FrozenTrial,
        param_name: str,
        param_distribution: BaseDistribution,
    ) -> Any:
        return self._random_sampler.sample_independent(study, trial, param_name, param_distribution)

    def _observations(self, study: optuna.Study) -> Optional[List[tuple]]:
        """Collect (params, score) pairs for the surrogate, penalizing failures."""
        trials = study.get_trials(deepcopy=False, states=(TrialState.COMPLETE, TrialState.PRUNED))
        trials = [t for t in trials if all(name in t.params for name in self._space)]

        completed = [t for t in trials if t.state == TrialState.COMPLETE]
        if not completed:
            return None

        penalty = min(t.value for t in completed)
        return [
            (t.params, t.value if t.state == TrialState.COMPLETE else penalty)
            for t in trials
        ]
