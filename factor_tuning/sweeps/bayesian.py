"""
Bayesian optimization for factor-model sweeps.

The search runs on an Optuna study driven by :class:`GaussianProcessSampler`:
``init_points`` uniformly random trials followed by ``n_iter`` trials that
each refit the Gaussian-process surrogate and evaluate the acquisition
maximizer. Each runner builds its own study and sampler, so independent
searches never share surrogate state.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import optuna
from rich.console import Console
from rich.progress import Progress
from rich.table import Table

from .config import SweepConfig
from .evaluator import Objective, SearchAbortedError, run_trial
from .results import SweepResults, Trial
from .surrogate import GaussianProcessSampler

logger = logging.getLogger(__name__)


class BayesianSearchRunner:
    """Gaussian-process Bayesian optimization runner using Optuna."""

    def __init__(
        self,
        config: SweepConfig,
        objective: Objective,
        output_dir: Optional[Union[str, Path]] = None,
        console: Optional[Console] = None,
    ):
        """Initialize the Bayesian search runner."""
        if config.sweep_type != "bayesian":
            raise ValueError("BayesianSearchRunner requires a bayesian sweep configuration")

        self.config = config
        self.objective = objective
        self.search_space = config.get_bayesian_search_space()
        self.console = console or Console()

        self.timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.sweep_dir = (
            Path(output_dir) / f"bayesian_{self.timestamp}" if output_dir is not None else None
        )
        self.study_name = f"factor_tuning_{self.timestamp}"

    @property
    def n_trials(self) -> int:
        return self.config.init_points + self.config.n_iter

    def _create_sampler(self) -> GaussianProcessSampler:
        """Create a fresh surrogate-backed sampler for one search."""
        return GaussianProcessSampler(
            self.search_space,
            acquisition=self.config.acquisition,
            n_startup_trials=self.config.init_points,
            kappa=self.config.kappa,
            xi=self.config.xi,
            seed=self.config.seed,
        )

    def _suggest_parameters(self, trial: optuna.Trial) -> Dict[str, Any]:
        """Ask the trial for a value of every parameter in the search space."""
        params: Dict[str, Any] = {}
        for name, bounds in self.search_space.items():
            if bounds.is_integer:
                params[name] = trial.suggest_int(name, int(bounds.low), int(bounds.high), log=bounds.log)
            else:
                params[name] = trial.suggest_float(name, bounds.low, bounds.high, log=bounds.log)
        return params

    def _objective(self, trial: optuna.Trial, results: SweepResults) -> float:
        """Evaluate one trial and apply the failure policy."""
        params = self._suggest_parameters(trial)
        phase = "init" if trial.number < self.config.init_points else "refine"

        recorded = run_trial(
            self.objective, params, trial.number, timeout=self.config.timeout_per_trial, phase=phase
        )
        results.add_trial(recorded)

        if recorded.success:
            return recorded.score

        if self.config.failure_policy == "abort":
            raise SearchAbortedError(f"Trial {trial.number} failed: {recorded.message}", recorded)
        raise optuna.TrialPruned(recorded.message)

    def run_optimization(self) -> Tuple[Optional[Trial], SweepResults]:
        """Run the search; return the lowest-error trial and the full history."""
        results = SweepResults(self.sweep_dir)
        study = optuna.create_study(
            study_name=self.study_name,
            direction="maximize",
            sampler=self._create_sampler(),
        )

        self.console.print(
            f"[bold green]Starting Bayesian optimization with {self.config.init_points} initial "
            f"and {self.config.n_iter} refinement trials "
            f"({self.config.acquisition.value})[/bold green]"
        )
        if self.sweep_dir is not None:
            self.console.print(f"Results will be saved to: {self.sweep_dir}")

        try:
            with Progress(console=self.console) as progress:
                task = progress.add_task("[green]Running optimization...", total=self.n_trials)

                def callback(_study, frozen):
                    progress.update(task, advance=1)
                    if frozen.state == optuna.trial.TrialState.COMPLETE:
                        self.console.print(f"Trial {frozen.number}: MSE = {-frozen.value:.6f}")
                    elif frozen.state == optuna.trial.TrialState.PRUNED:
                        self.console.print(f"Trial {frozen.number}: Failed (penalized)")

                study.optimize(
                    lambda trial: self._objective(trial, results),
                    n_trials=self.n_trials,
                    callbacks=[callback],
                )
        except SearchAbortedError as e:
            self.console.print(f"[bold red]Search aborted: {e}[/bold red]")
            raise
        finally:
            results.finalize()
            self._save_study_results(study)

        self._print_summary(results)
        return results.best_trial(), results

    def _save_study_results(self, study: optuna.Study):
        """Save the Optuna study next to the trial results."""
        if self.sweep_dir is None:
            return

        completed = study.get_trials(deepcopy=False, states=(optuna.trial.TrialState.COMPLETE,))
        best = max(completed, key=lambda t: t.value) if completed else None

        study_summary = {
            "study_name": study.study_name,
            "direction": study.direction.name,
            "acquisition": self.config.acquisition.value,
            "init_points": self.config.init_points,
            "n_iter": self.config.n_iter,
            "n_trials": len(study.trials),
            "best_trial": (
                {"number": best.number, "value": best.value, "params": best.params}
                if best is not None
                else None
            ),
            "trials": [
                {
                    "number": trial.number,
                    "value": trial.value,
                    "params": trial.params,
                    "state": trial.state.name,
                }
                for trial in study.trials
            ],
        }

        with open(self.sweep_dir / "optuna_study.json", "w", encoding="utf-8") as f:
            json.dump(study_summary, f, indent=2, default=str)

    def _print_summary(self, results: SweepResults):
        """Print optimization summary."""
        best = results.best_trial()
        if best is None:
            self.console.print("[bold red]No successful trials![/bold red]")
            return

        table = Table(title="Bayesian Optimization Summary")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="magenta")

        table.add_row("Total trials", str(len(results)))
        table.add_row("Successful trials", str(len(results.successful_trials())))
        table.add_row("Best MSE", f"{best.error:.6f}")
        table.add_row("Best trial", f"{best.index} ({best.phase})")

        self.console.print(table)

        self.console.print("\n[bold green]Best parameters:[/bold green]")
        for key, value in best.parameters.items():
            self.console.print(f"  {key}: {value}")
