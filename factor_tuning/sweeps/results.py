"""
Results management and analysis for sweep experiments.

This module handles storing, loading, and analyzing the trials recorded
by a parameter sweep. Errors are mean squared errors (lower is better);
a trial's score is the negated error.
"""

import csv
import json
import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
from rich.console import Console
from rich.table import Table

logger = logging.getLogger(__name__)


class TrialStatus(str, Enum):
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(frozen=True)
class Trial:
    """One hyperparameter assignment and the error it produced."""

    index: int
    parameters: Dict[str, Any]
    error: Optional[float]
    status: TrialStatus = TrialStatus.COMPLETE
    message: Optional[str] = None
    runtime: float = 0.0
    phase: str = "grid"
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status is TrialStatus.COMPLETE

    @property
    def score(self) -> Optional[float]:
        """Negated error, the quantity Bayesian search maximizes."""
        return None if self.error is None else -self.error

    @property
    def slug(self) -> str:
        return f"trial_{self.index:03d}"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        data["success"] = self.success
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Trial":
        return cls(
            index=int(data["index"]),
            parameters=dict(data.get("parameters", {})),
            error=data.get("error"),
            status=TrialStatus(data.get("status", TrialStatus.COMPLETE.value)),
            message=data.get("message"),
            runtime=float(data.get("runtime", 0.0)),
            phase=data.get("phase", "grid"),
            metadata=dict(data.get("metadata", {})),
        )


class SweepResults:
    """Ordered search history with persistence and analysis helpers.

    Trials are kept in the order they were recorded. When ``sweep_dir``
    is set, each trial is also written to its own JSON file as soon as it
    is added, and :meth:`finalize` writes the summary files.
    """

    def __init__(self, sweep_dir: Optional[Union[str, Path]] = None):
        """Initialize with an optional sweep directory."""
        self.sweep_dir = Path(sweep_dir) if sweep_dir is not None else None
        self.trials: List[Trial] = []

        if self.sweep_dir is not None:
            self.sweep_dir.mkdir(parents=True, exist_ok=True)

    def __len__(self) -> int:
        return len(self.trials)

    def __iter__(self):
        return iter(self.trials)

    def add_trial(self, trial: Trial):
        """Record a single trial."""
        self.trials.append(trial)

        if self.sweep_dir is not None:
            self._save_incremental(trial)

    def _save_incremental(self, trial: Trial):
        """Save a single trial so an interrupted sweep keeps its data."""
        result_file = self.sweep_dir / f"result_{trial.slug}.json"

        with open(result_file, "w", encoding="utf-8") as f:
            json.dump(trial.to_dict(), f, indent=2, default=str)

    def successful_trials(self) -> List[Trial]:
        return [t for t in self.trials if t.success]

    def failed_trials(self) -> List[Trial]:
        return [t for t in self.trials if not t.success]

    def best_trial(self) -> Optional[Trial]:
        """Successful trial with the lowest error; the earliest wins ties."""
        successful = self.successful_trials()
        if not successful:
            return None
        return min(successful, key=lambda t: (t.error, t.index))

    def errors(self) -> List[Optional[float]]:
        return [t.error for t in self.trials]

    def convergence(self) -> List[Optional[float]]:
        """Best error seen so far after each trial, in recording order."""
        best = None
        trace = []
        for trial in self.trials:
            if trial.success and (best is None or trial.error < best):
                best = trial.error
            trace.append(best)
        return trace

    def parameter_names(self) -> List[str]:
        names: Dict[str, None] = {}
        for trial in self.trials:
            for name in trial.parameters:
                names.setdefault(name, None)
        return list(names)

    def get_parameter_analysis(self) -> Dict[str, Any]:
        """Correlate each numeric parameter with the error across successful trials."""
        successful = self.successful_trials()

        if len(successful) < 2:
            return {}

        analysis: Dict[str, Any] = {
            "parameter_names": self.parameter_names(),
            "parameter_correlations": {},
        }

        for param in analysis["parameter_names"]:
            values, errors = [], []
            for trial in successful:
                value = trial.parameters.get(param)
                if isinstance(value, (int, float)) and not isinstance(value, bool):
                    values.append(value)
                    errors.append(trial.error)

            if len(values) > 1 and np.std(values) > 0 and np.std(errors) > 0:
                correlation = np.corrcoef(values, errors)[0, 1]
                if not np.isnan(correlation):
                    analysis["parameter_correlations"][param] = float(correlation)

        return analysis

    def finalize(self):
        """Write summary files for the whole sweep."""
        if self.sweep_dir is None:
            return
        self._create_csv_summary()
        self._create_json_summary()
        self._create_analysis_report()
        logger.info("Wrote sweep summary to %s", self.sweep_dir)

    def _create_csv_summary(self):
        """Create a CSV summary of all trials."""
        if not self.trials:
            return

        csv_path = self.sweep_dir / "sweep_summary.csv"
        params = self.parameter_names()

        with open(csv_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(["index", "phase", "status", *params, "error", "runtime", "message"])

            for trial in self.trials:
                row = [trial.index, trial.phase, trial.status.value]
                row.extend(trial.parameters.get(p, "") for p in params)
                row.extend(
                    [
                        "" if trial.error is None else trial.error,
                        f"{trial.runtime:.4f}",
                        trial.message or "",
                    ]
                )
                writer.writerow(row)

    def _create_json_summary(self):
        """Create a complete JSON summary."""
        json_path = self.sweep_dir / "sweep_summary.json"
        best = self.best_trial()

        summary = {
            "sweep_info": {
                "total_trials": len(self.trials),
                "successful_trials": len(self.successful_trials()),
                "sweep_directory": str(self.sweep_dir),
                "best_index": None if best is None else best.index,
            },
            "trials": [t.to_dict() for t in self.trials],
        }

        with open(json_path, "w", encoding="utf-8") as f:
            json.dump(summary, f, indent=2, default=str)

    def _create_analysis_report(self):
        """Create a text analysis report."""
        report_path = self.sweep_dir / "analysis_report.txt"
        successful = self.successful_trials()

        with open(report_path, "w", encoding="utf-8") as f:
            f.write("Sweep Analysis Report\n")
            f.write("=" * 50 + "\n\n")

            f.write(f"Total trials: {len(self.trials)}\n")
            f.write(f"Successful trials: {len(successful)}\n")
            f.write(f"Failed trials: {len(self.trials) - len(successful)}\n\n")

            if successful:
                errors = [t.error for t in successful]
                f.write("Error (MSE)\n")
                f.write(f"  Mean: {np.mean(errors):.6f}\n")
                f.write(f"  Std:  {np.std(errors):.6f}\n")
                f.write(f"  Min:  {np.min(errors):.6f}\n")
                f.write(f"  Max:  {np.max(errors):.6f}\n\n")

                best = self.best_trial()
                f.write(f"Best trial: {best.index}\n")
                for key, value in best.parameters.items():
                    f.write(f"  {key}: {value}\n")

    @classmethod
    def load(cls, sweep_dir: Union[str, Path]) -> "SweepResults":
        """Load a finished or interrupted sweep from its directory."""
        sweep_dir = Path(sweep_dir)
        if not sweep_dir.exists():
            raise FileNotFoundError(f"Sweep directory not found: {sweep_dir}")

        results = cls(sweep_dir)
        json_summary = sweep_dir / "sweep_summary.json"
        if json_summary.exists():
            with open(json_summary, "r", encoding="utf-8") as f:
                records = json.load(f).get("trials", [])
        else:
            records = []
            for result_file in sorted(sweep_dir.glob("result_*.json")):
                with open(result_file, "r", encoding="utf-8") as f:
                    records.append(json.load(f))

        if not records:
            raise ValueError(f"No result files found in {sweep_dir}")

        results.trials = sorted((Trial.from_dict(r) for r in records), key=lambda t: t.index)
        return results


class ResultsAnalyzer:
    """Rich tables over a search history."""

    def __init__(self, results: SweepResults, console: Optional[Console] = None):
        """Initialize with sweep results."""
        self.results = results
        self.console = console or Console()

    def print_summary_table(self, top: int = 10):
        """Print the lowest-error trials."""
        successful = sorted(self.results.successful_trials(), key=lambda t: (t.error, t.index))

        if not successful:
            self.console.print("[bold red]No successful results to display[/bold red]")
            return

        top_trials = successful[:top]
        params = self.results.parameter_names()

        table = Table(title=f"Top {len(top_trials)} Trials by MSE")
        table.add_column("Rank", style="cyan")
        table.add_column("Trial", style="magenta")
        table.add_column("MSE", style="green")
        for param in params:
            table.add_column(param, style="yellow")

        for rank, trial in enumerate(top_trials, start=1):
            row = [str(rank), str(trial.index), f"{trial.error:.6f}"]
            row.extend(_format_value(trial.parameters.get(p, "N/A")) for p in params)
            table.add_row(*row)

        self.console.print(table)

    def print_parameter_importance(self):
        """Print parameter correlations with the error."""
        correlations = self.results.get_parameter_analysis().get("parameter_correlations", {})

        if not correlations:
            self.console.print("[yellow]Not enough data for parameter importance analysis[/yellow]")
            return

        table = Table(title="Parameter Correlations with MSE")
        table.add_column("Parameter", style="cyan")
        table.add_column("Correlation", style="magenta")
        table.add_column("Strength", style="green")

        for param, corr in sorted(correlations.items(), key=lambda x: abs(x[1]), reverse=True):
            strength = "Strong" if abs(corr) > 0.7 else "Moderate" if abs(corr) > 0.3 else "Weak"
            table.add_row(param, f"{corr:.3f}", strength)

        self.console.print(table)

    def print_convergence(self):
        """Print each trial's error next to the best error so far."""
        table = Table(title="Convergence")
        table.add_column("Trial", style="cyan")
        table.add_column("Phase", style="magenta")
        table.add_column("MSE", style="green")
        table.add_column("Best so far", style="yellow")

        for trial, best in zip(self.results.trials, self.results.convergence()):
            error = "failed" if trial.error is None else f"{trial.error:.6f}"
            table.add_row(str(trial.index), trial.phase, error, "-" if best is None else f"{best:.6f}")

        self.console.print(table)


def _format_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.4g}"
    return str(value)
