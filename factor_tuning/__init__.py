"""
Factor Tuning - hyperparameter search for factor-investing models.

This package provides grid search and Gaussian-process Bayesian
optimization over scikit-learn regressors scored on held-out factor data.
"""

from . import cli, datasets, experiment, models, sweeps

__version__ = "0.1.0"

__all__ = [
    "cli",
    "datasets",
    "experiment",
    "models",
    "sweeps",
]
