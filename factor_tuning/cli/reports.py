"""
CLI for summarizing and exporting sweep results.

This module provides Rich tables over the trials a sweep wrote to disk.
"""

import argparse
import csv
import json
from pathlib import Path
from typing import Optional

from rich.console import Console

from ..sweeps.results import ResultsAnalyzer, SweepResults

PATH_TO_SWEEP_RESULTS_DIR_HELP = "Path to sweep results directory"


class ReportsCLI:
    """Command-line interface for generating reports and analysis."""

    def __init__(self):
        """Initialize the reports CLI."""
        self.console = Console()

    def create_parser(self) -> argparse.ArgumentParser:
        """Create the argument parser for report commands."""
        parser = argparse.ArgumentParser(
            prog="factor-tuning-reports",
            description="Summarize and export factor-model sweep results",
        )

        subparsers = parser.add_subparsers(dest="command", help="Available commands")

        summary_parser = subparsers.add_parser("summary", help="Show sweep summary")
        summary_parser.add_argument("--sweep-dir", "-d", type=Path, required=True, help=PATH_TO_SWEEP_RESULTS_DIR_HELP)
        summary_parser.add_argument("--top", "-t", type=int, default=10, help="Number of top trials to show (default: 10)")

        analysis_parser = subparsers.add_parser("analysis", help="Parameter correlation analysis")
        analysis_parser.add_argument("--sweep-dir", "-d", type=Path, required=True, help=PATH_TO_SWEEP_RESULTS_DIR_HELP)

        convergence_parser = subparsers.add_parser("convergence", help="Show best error after each trial")
        convergence_parser.add_argument("--sweep-dir", "-d", type=Path, required=True, help=PATH_TO_SWEEP_RESULTS_DIR_HELP)

        export_parser = subparsers.add_parser("export", help="Export trials to CSV or JSON")
        export_parser.add_argument("--sweep-dir", "-d", type=Path, required=True, help=PATH_TO_SWEEP_RESULTS_DIR_HELP)
        export_parser.add_argument(
            "--format",
            "-f",
            choices=["csv", "json"],
            default="csv",
            help="Export format (default: csv)",
        )
        export_parser.add_argument("--output", "-o", type=Path, help="Output file path (default: auto-generated)")

        return parser

    def _load(self, sweep_dir: Path) -> Optional[SweepResults]:
        try:
            return SweepResults.load(sweep_dir)
        except (FileNotFoundError, ValueError) as e:
            self.console.print(f"[bold red]Error loading results: {e}[/bold red]")
            return None

    def show_summary(self, args: argparse.Namespace) -> int:
        """Show a summary of sweep results."""
        results = self._load(args.sweep_dir)
        if results is None:
            return 1

        analyzer = ResultsAnalyzer(results, console=self.console)

        self.console.print("[bold green]Sweep Results Summary[/bold green]")
        self.console.print(f"Directory: {args.sweep_dir}")
        self.console.print(f"Total trials: {len(results)}")
        self.console.print(f"Successful trials: {len(results.successful_trials())}")

        analyzer.print_summary_table(top=args.top)
        analyzer.print_parameter_importance()
        return 0

    def show_analysis(self, args: argparse.Namespace) -> int:
        """Show detailed parameter analysis."""
        results = self._load(args.sweep_dir)
        if results is None:
            return 1

        self.console.print("[bold green]Parameter Analysis for MSE[/bold green]")
        ResultsAnalyzer(results, console=self.console).print_parameter_importance()
        return 0

    def show_convergence(self, args: argparse.Namespace) -> int:
        """Show how the best error evolved over the sweep."""
        results = self._load(args.sweep_dir)
        if results is None:
            return 1

        ResultsAnalyzer(results, console=self.console).print_convergence()
        return 0

    def export_results(self, args: argparse.Namespace) -> int:
        """Export trials to a CSV or JSON file."""
        results = self._load(args.sweep_dir)
        if results is None:
            return 1

        output = args.output or args.sweep_dir / f"export.{args.format}"
        try:
            if args.format == "json":
                with open(output, "w", encoding="utf-8") as f:
                    json.dump([t.to_dict() for t in results], f, indent=2, default=str)
            else:
                params = results.parameter_names()
                with open(output, "w", newline="", encoding="utf-8") as f:
                    writer = csv.writer(f)
                    writer.writerow(["index", "phase", "status", *params, "error", "best_so_far"])
                    for trial, best in zip(results, results.convergence()):
                        writer.writerow(
                            [trial.index, trial.phase, trial.status.value]
                            + [trial.parameters.get(p, "") for p in params]
                            + ["" if trial.error is None else trial.error, "" if best is None else best]
                        )
        except OSError as e:
            self.console.print(f"[bold red]Error: could not write {output}: {e}[/bold red]")
            return 1

        self.console.print(f"Exported {len(results)} trials to {output}")
        return 0

    def main(self, argv: Optional[list] = None) -> int:
        """Main entry point for the reports CLI."""
        parser = self.create_parser()
        args = parser.parse_args(argv)

        if args.command is None:
            parser.print_help()
            return 1

        if args.command == "summary":
            return self.show_summary(args)
        elif args.command == "analysis":
            return self.show_analysis(args)
        elif args.command == "convergence":
            return self.show_convergence(args)
        elif args.command == "export":
            return self.export_results(args)
        else:
            self.console.print(f"[bold red]Unknown command: {args.command}[/bold red]")
            return 1


def main():
    """Main entry point for the reports CLI."""
    cli = ReportsCLI()
    return cli.main()
