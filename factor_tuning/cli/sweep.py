"""
Dedicated CLI for running parameter sweeps.

This module provides a command-line interface for grid search and
Bayesian optimization over factor-model hyperparameters.
"""

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import optuna
import yaml
from rich.console import Console

from ..experiment import build_objective
from ..models import available_model_families
from ..sweeps.bayesian import BayesianSearchRunner
from ..sweeps.config import SweepConfig, load_sweep_config, load_sweep_configs
from ..sweeps.evaluator import SearchAbortedError
from ..sweeps.grid_search import GridSearchRunner
from ..sweeps.surrogate import Acquisition

DEFAULT_OUTPUT_DIR = Path("results") / "sweeps"

QUICK_SEARCH_SPACES = {
    "ridge": {"lambda": {"type": "float", "low": 1e-4, "high": 10.0, "log": True}},
    "lasso": {"lambda": {"type": "float", "low": 1e-6, "high": 1e-2, "log": True}},
    "random_forest": {
        "ntree": {"type": "int", "low": 10, "high": 100},
        "nodesize": {"type": "int", "low": 5, "high": 100},
    },
    "decision_tree": {
        "maxdepth": {"type": "int", "low": 1, "high": 8},
        "cp": {"type": "float", "low": 1e-6, "high": 1e-2, "log": True},
    },
    "gradient_boosting": {
        "eta": {"type": "float", "low": 0.01, "high": 0.5, "log": True},
        "nrounds": {"type": "int", "low": 10, "high": 100},
        "lambda": {"type": "float", "low": 0.0, "high": 1.0},
    },
}


class SweepCLI:
    """Command-line interface for sweep experiments."""

    def __init__(self):
        """Initialize the CLI."""
        self.console = Console()

    def create_parser(self) -> argparse.ArgumentParser:
        """Create the argument parser for sweep commands."""
        parser = argparse.ArgumentParser(
            prog="factor-tuning-sweep",
            description="Run hyperparameter sweeps for factor models",
        )
        parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

        subparsers = parser.add_subparsers(dest="command", help="Available commands")

        # Grid search command
        grid_parser = subparsers.add_parser("grid", help="Run grid search sweep")
        grid_parser.add_argument(
            "--config",
            "-c",
            type=Path,
            required=True,
            help="Path to sweep configuration file or directory",
        )
        grid_parser.add_argument(
            "--parallel",
            "-p",
            type=int,
            default=None,
            help="Maximum number of parallel evaluations (default: from config)",
        )
        grid_parser.add_argument(
            "--timeout", type=float, default=None, help="Timeout per trial in seconds (default: none)"
        )
        grid_parser.add_argument("--seed", type=int, help="Random state passed to the model")
        grid_parser.add_argument(
            "--output-dir",
            "-o",
            type=Path,
            default=DEFAULT_OUTPUT_DIR,
            help=f"Where sweep results are written (default: {DEFAULT_OUTPUT_DIR})",
        )

        # Bayesian search command
        bayesian_parser = subparsers.add_parser("bayesian", help="Run Bayesian optimization sweep")
        bayesian_parser.add_argument(
            "--config", "-c", type=Path, required=True, help="Path to sweep configuration file"
        )
        bayesian_parser.add_argument("--init-points", type=int, help="Override optimization.init_points")
        bayesian_parser.add_argument("--n-iter", type=int, help="Override optimization.n_iter")
        bayesian_parser.add_argument(
            "--acquisition",
            choices=[a.value for a in Acquisition] + ["ei", "ucb", "poi"],
            help="Override optimization.acquisition",
        )
        bayesian_parser.add_argument(
            "--timeout", type=float, default=None, help="Timeout per trial in seconds (default: none)"
        )
        bayesian_parser.add_argument("--seed", type=int, help="Seed for the surrogate and random init points")
        bayesian_parser.add_argument(
            "--output-dir",
            "-o",
            type=Path,
            default=DEFAULT_OUTPUT_DIR,
            help=f"Where sweep results are written (default: {DEFAULT_OUTPUT_DIR})",
        )

        # Quick test command
        quick_parser = subparsers.add_parser("quick", help="Run a quick Bayesian sweep on synthetic factor data")
        quick_parser.add_argument(
            "--model",
            choices=available_model_families(),
            default="ridge",
            help="Model family to tune (default: ridge)",
        )
        quick_parser.add_argument(
            "--trials", type=int, default=10, help="Total number of trials, at least 2 (default: 10)"
        )
        quick_parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")

        return parser

    def _execution_overrides(self, args: argparse.Namespace) -> Dict[str, Any]:
        overrides: Dict[str, Any] = {}
        if getattr(args, "parallel", None) is not None:
            overrides["max_parallel"] = args.parallel
        if getattr(args, "timeout", None) is not None:
            overrides["timeout_per_trial"] = args.timeout
        return overrides

    def run_grid_search(self, args: argparse.Namespace) -> int:
        """Run a grid search sweep."""
        try:
            configs = load_sweep_configs(args.config)

            self.console.print(
                f"[bold green]Loading {len(configs)} sweep configuration(s)[/bold green]"
            )

            all_results = []
            for i, config in enumerate(configs):
                if config.sweep_type != "grid":
                    raise ValueError(f"Configuration {i + 1} is a {config.sweep_type} sweep, not grid")

                overrides = {"execution": self._execution_overrides(args)}
                if getattr(args, "seed", None) is not None:
                    overrides["model"] = {"params": {**config.model_params, "random_state": args.seed}}
                config = config.with_overrides(**overrides)

                if len(configs) > 1:
                    self.console.print(
                        f"\n[bold cyan]Running configuration {i + 1}/{len(configs)}[/bold cyan]"
                    )

                runner = GridSearchRunner(
                    config, build_objective(config), output_dir=args.output_dir, console=self.console
                )
                all_results.append(runner.run_sweep())

            self.console.print(
                f"\n[bold green]All sweeps completed! Processed {len(all_results)} configuration(s)[/bold green]"
            )
            return 0

        except FileNotFoundError as e:
            self.console.print(f"[bold red]Error: {e}[/bold red]")
            return 1
        except PermissionError as e:
            self.console.print(f"[bold red]Error: Permission denied accessing file: {e}[/bold red]")
            return 1
        except yaml.YAMLError as e:
            self.console.print(f"[bold red]Error: Invalid YAML format: {e}[/bold red]")
            return 1
        except (ValueError, RuntimeError) as e:
            self.console.print(f"[bold red]Error: {e}[/bold red]")
            return 1

    def run_bayesian_search(self, args: argparse.Namespace) -> int:
        """Run a Bayesian optimization sweep."""
        try:
            config = load_sweep_config(args.config)

            if config.sweep_type != "bayesian":
                raise ValueError("Configuration is not a bayesian sweep (set sweep_type: bayesian)")

            optimization: Dict[str, Any] = {}
            if getattr(args, "init_points", None) is not None:
                optimization["init_points"] = args.init_points
            if getattr(args, "n_iter", None) is not None:
                optimization["n_iter"] = args.n_iter
            if getattr(args, "acquisition", None):
                optimization["acquisition"] = args.acquisition
            if getattr(args, "seed", None) is not None:
                optimization["seed"] = args.seed
            config = config.with_overrides(optimization=optimization, execution=self._execution_overrides(args))

            runner = BayesianSearchRunner(
                config, build_objective(config), output_dir=args.output_dir, console=self.console
            )
            best, _ = runner.run_optimization()

            if best is None:
                self.console.print("[bold red]Error: every trial failed[/bold red]")
                return 1

            self.console.print("\n[bold green]Bayesian optimization completed![/bold green]")
            return 0

        except FileNotFoundError as e:
            self.console.print(f"[bold red]Error: {e}[/bold red]")
            return 1
        except PermissionError as e:
            self.console.print(f"[bold red]Error: Permission denied accessing file: {e}[/bold red]")
            return 1
        except yaml.YAMLError as e:
            self.console.print(f"[bold red]Error: Invalid YAML format: {e}[/bold red]")
            return 1
        except SearchAbortedError as e:
            self.console.print(f"[bold red]Error: {e}[/bold red]")
            return 1
        except (ValueError, RuntimeError) as e:
            self.console.print(f"[bold red]Error: {e}[/bold red]")
            return 1

    def run_quick_test(self, args: argparse.Namespace) -> int:
        """Run a quick Bayesian sweep on synthetic data."""
        if args.trials < 2:
            self.console.print("[bold red]Error: quick sweeps need at least 2 trials[/bold red]")
            return 1

        self.console.print(f"[bold cyan]Running quick test sweep for {args.model}...[/bold cyan]")

        init_points = max(1, args.trials // 3)
        quick_config = {
            "sweep_type": "bayesian",
            "model": {"family": args.model, "params": {}},
            "data": {"synthetic": {"n_samples": 1000, "seed": args.seed}, "test_fraction": 0.25},
            "parameters": QUICK_SEARCH_SPACES[args.model],
            "optimization": {
                "init_points": init_points,
                "n_iter": args.trials - init_points,
                "acquisition": "expected_improvement",
                "seed": args.seed,
            },
        }

        config = SweepConfig(quick_config)
        runner = BayesianSearchRunner(config, build_objective(config), console=self.console)
        best, _ = runner.run_optimization()

        return 0 if best is not None else 1

    def main(self, argv: Optional[list] = None) -> int:
        """Main entry point for the CLI."""
        parser = self.create_parser()
        args = parser.parse_args(argv)

        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.WARNING,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        optuna.logging.set_verbosity(optuna.logging.INFO if args.verbose else optuna.logging.WARNING)

        if args.command is None:
            parser.print_help()
            return 1

        if args.command == "grid":
            return self.run_grid_search(args)
        elif args.command == "bayesian":
            return self.run_bayesian_search(args)
        elif args.command == "quick":
            return self.run_quick_test(args)
        else:
            self.console.print(f"[bold red]Unknown command: {args.command}[/bold red]")
            return 1


def main():
    """Main entry point for the sweep CLI."""
    cli = SweepCLI()
    return cli.main()
