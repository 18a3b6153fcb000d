"""
Grid search runner for factor-model sweeps.

Every combination of the candidate lists is evaluated once, optionally in
parallel. The recorded history always follows the enumeration order of the
Cartesian product, whatever order the workers finish in.
"""

import logging
import multiprocessing as mp
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from rich.console import Console
from rich.progress import Progress, TaskID
from rich.table import Table

from .config import SweepConfig
from .evaluator import Objective, run_trial
from .results import SweepResults

logger = logging.getLogger(__name__)


class GridSearchRunner:
    """Exhaustive grid search with optional parallel evaluation and progress tracking."""

    def __init__(
        self,
        config: SweepConfig,
        objective: Objective,
        output_dir: Optional[Union[str, Path]] = None,
        console: Optional[Console] = None,
    ):
        """Initialize the grid search runner.

        When ``output_dir`` is given, results go to a timestamped
        ``grid_*`` directory inside it; otherwise they stay in memory.
        """
        if config.sweep_type != "grid":
            raise ValueError("GridSearchRunner requires a grid sweep configuration")

        self.config = config
        self.objective = objective
        self.console = console or Console()

        self.timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.sweep_dir = Path(output_dir) / f"grid_{self.timestamp}" if output_dir is not None else None

    def run_sweep(self) -> SweepResults:
        """Execute the grid search sweep and return the ordered history."""
        combinations = self.config.get_grid_combinations()
        results = SweepResults(self.sweep_dir)

        self.console.print(
            f"[bold green]Starting grid search with {len(combinations)} combinations[/bold green]"
        )
        if self.sweep_dir is not None:
            self.console.print(f"Results will be saved to: {self.sweep_dir}")

        with Progress(console=self.console) as progress:
            task = progress.add_task("[green]Evaluating combinations...", total=len(combinations))

            if self.config.max_parallel > 1:
                self._run_parallel(combinations, results, progress, task)
            else:
                self._run_sequential(combinations, results, progress, task)

        results.finalize()
        self._print_summary(results)

        return results

    def _run_sequential(
        self, combinations: List[Dict[str, Any]], results: SweepResults, progress: Progress, task: TaskID
    ):
        """Evaluate combinations one after another, saving each as it finishes."""
        for i, combo in enumerate(combinations):
            results.add_trial(run_trial(self.objective, combo, i, timeout=self.config.timeout_per_trial))
            progress.update(task, advance=1)

    def _run_parallel(
        self, combinations: List[Dict[str, Any]], results: SweepResults, progress: Progress, task: TaskID
    ):
        """Evaluate combinations concurrently, then restore enumeration order."""
        with self._create_executor() as executor:
            future_to_index = {
                executor.submit(run_trial, self.objective, combo, i, self.config.timeout_per_trial): i
                for i, combo in enumerate(combinations)
            }

            for future in as_completed(future_to_index):
                results.add_trial(future.result())
                progress.update(task, advance=1)

        results.trials.sort(key=lambda t: t.index)

    def _create_executor(self) -> Executor:
        """Create the worker pool named by the execution settings."""
        if self.config.executor == "process":
            max_workers = min(self.config.max_parallel, mp.cpu_count())
            logger.info("Running grid search on %d worker processes", max_workers)
            return ProcessPoolExecutor(max_workers=max_workers)
        logger.info("Running grid search on %d worker threads", self.config.max_parallel)
        return ThreadPoolExecutor(max_workers=self.config.max_parallel)

    def _print_summary(self, results: SweepResults):
        """Print a summary of the sweep results."""
        best = results.best_trial()

        if best is None:
            self.console.print("[bold red]No successful trials![/bold red]")
            return

        table = Table(title="Grid Search Summary")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="magenta")

        table.add_row("Total trials", str(len(results)))
        table.add_row("Successful", str(len(results.successful_trials())))
        table.add_row("Failed", str(len(results.failed_trials())))
        table.add_row("Best MSE", f"{best.error:.6f}")
        table.add_row("Best trial", str(best.index))

        self.console.print(table)

        self.console.print("\n[bold green]Best parameters:[/bold green]")
        for key, value in best.parameters.items():
            self.console.print(f"  {key}: {value}")
