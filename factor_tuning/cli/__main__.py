#!/usr/bin/env python3
"""
Main entry point for factor_tuning.cli package.

This module allows the CLI to be run as:
    python -m factor_tuning.cli sweep [args...]
    python -m factor_tuning.cli reports [args...]
"""

import sys
from typing import List, Optional

from .reports import ReportsCLI
from .sweep import SweepCLI


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI package."""
    if argv is None:
        argv = sys.argv[1:]

    if not argv:
        print("Usage: factor-tuning {sweep|reports} [args...]")
        print("Available commands:")
        print("  sweep   - Run hyperparameter sweeps")
        print("  reports - Summarize and export sweep results")
        return 1

    command = argv[0]
    args = argv[1:]

    if command == "sweep":
        return SweepCLI().main(args)
    elif command == "reports":
        return ReportsCLI().main(args)
    else:
        print(f"Unknown command: {command}")
        print("Available commands: sweep, reports")
        return 1


if __name__ == "__main__":
    sys.exit(main())
