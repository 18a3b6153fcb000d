"""
Sweep execution framework for factor-model experiments.

This module provides grid search and Bayesian optimization capabilities
for systematic hyperparameter exploration.
"""

from .bayesian import BayesianSearchRunner
from .config import ConfigurationError, ParameterBounds, SweepConfig, load_sweep_config, load_sweep_configs
from .evaluator import (
    EvaluationError,
    ObjectiveEvaluator,
    SearchAbortedError,
    TrialTimeoutError,
    run_trial,
)
from .grid_search import GridSearchRunner
from .results import ResultsAnalyzer, SweepResults, Trial, TrialStatus
from .surrogate import Acquisition, GaussianProcessSampler, GaussianProcessSurrogate

__all__ = [
    "Acquisition",
    "BayesianSearchRunner",
    "ConfigurationError",
    "EvaluationError",
    "GaussianProcessSampler",
    "GaussianProcessSurrogate",
    "GridSearchRunner",
    "ObjectiveEvaluator",
    "ParameterBounds",
    "ResultsAnalyzer",
    "SearchAbortedError",
    "SweepConfig",
    "SweepResults",
    "Trial",
    "TrialStatus",
    "TrialTimeoutError",
    "load_sweep_config",
    "load_sweep_configs",
    "run_trial",
]
