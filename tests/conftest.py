"""
Shared test configuration and fixtures.

This module provides common fixtures used across the factor_tuning
test suite: small datasets, sweep configurations and stub objectives.
"""

import time

import numpy as np
import pytest

from factor_tuning.datasets import Dataset, make_factor_dataset, split_dataset
from factor_tuning.sweeps.evaluator import EvaluationError


@pytest.fixture
def random_seed():
    """Set the NumPy seed for reproducible tests."""
    np.random.seed(42)
    return 42


@pytest.fixture
def factor_dataset() -> Dataset:
    """Provide a small synthetic factor dataset split chronologically."""
    X, y, names = make_factor_dataset(n_samples=300, n_factors=5, noise=0.01, seed=7)
    return split_dataset(X, y, test_fraction=0.25, feature_names=names)


@pytest.fixture
def linear_dataset() -> Dataset:
    """Provide a noiseless linear dataset that ridge regression fits almost exactly."""
    rng = np.random.default_rng(0)
    X = rng.normal(size=(120, 3))
    y = X @ np.array([1.5, -2.0, 0.5]) + 0.3
    return split_dataset(X, y, test_fraction=0.25)


@pytest.fixture
def grid_config():
    """Standard grid search configuration for testing."""
    return {
        "sweep_type": "grid",
        "parameters": {"lr": [0.01, 0.001], "depth": [2, 4, 8]},
        "model": {"family": "ridge", "params": {}},
    }


@pytest.fixture
def bayesian_config():
    """Standard Bayesian optimization configuration for testing."""
    return {
        "sweep_type": "bayesian",
        "parameters": {
            "eta": {"type": "float", "low": 1e-3, "high": 0.5, "log": True},
            "nrounds": {"type": "int", "low": 10, "high": 200},
            "lambda": {"type": "float", "low": 0.0, "high": 1.0},
        },
        "optimization": {
            "init_points": 3,
            "n_iter": 5,
            "acquisition": "expected_improvement",
            "seed": 0,
        },
        "execution": {"max_parallel": 2, "timeout_per_trial": 60},
    }


def quadratic_objective(params):
    """Error with a single minimum at x = 5."""
    return (params["x"] - 5.0) ** 2


def sum_objective(params):
    """Error equal to the sum of all parameter values."""
    return float(sum(params.values()))


def failing_objective(params):
    """Objective that never produces an error value."""
    raise EvaluationError(f"training diverged for {params}")


def sleepy_objective(params):
    """Sleep for ``params["sleep"]`` seconds and return that duration."""
    time.sleep(params["sleep"])
    return float(params["sleep"])


def interrupted_objective(params):
    """Stand in for a user pressing Ctrl-C on the third combination."""
    if params["a"] == 2:
        raise KeyboardInterrupt
    return float(params["a"])
