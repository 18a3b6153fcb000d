"""
Experiment wiring: turn a sweep configuration into an objective and a runner.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from rich.console import Console

from factor_tuning.datasets import Dataset, dataset_from_config
from factor_tuning.models import get_model_family
from factor_tuning.sweeps.bayesian import BayesianSearchRunner
from factor_tuning.sweeps.config import ConfigurationError, SweepConfig
from factor_tuning.sweeps.evaluator import Objective, ObjectiveEvaluator
from factor_tuning.sweeps.grid_search import GridSearchRunner
from factor_tuning.sweeps.results import SweepResults


def build_objective(config: SweepConfig, dataset: Optional[Dataset] = None) -> ObjectiveEvaluator:
    """Build the held-out MSE objective described by ``config``."""
    if not config.model_family:
        raise ConfigurationError("Sweep configuration needs model.family")

    model = get_model_family(config.model_family)
    if dataset is None:
        dataset = dataset_from_config(config.data)
    return ObjectiveEvaluator(model, dataset, fixed_params=config.model_params)


def run_sweep(
    config: SweepConfig,
    objective: Optional[Objective] = None,
    output_dir: Optional[Union[str, Path]] = None,
    console: Optional[Console] = None,
) -> SweepResults:
    """Run whichever search ``config`` asks for and return its history."""
    if objective is None:
        objective = build_objective(config)

    if config.sweep_type == "grid":
        return GridSearchRunner(config, objective, output_dir=output_dir, console=console).run_sweep()

    _, results = BayesianSearchRunner(config, objective, output_dir=output_dir, console=console).run_optimization()
    return results
