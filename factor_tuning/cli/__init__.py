"""
CLI interfaces for factor_tuning.

This module provides command-line interfaces for running sweeps and
generating reports from their results.
"""

from typing import List

# CLI modules are run with -m or through the console script; import directly:
# from factor_tuning.cli.sweep import SweepCLI
# from factor_tuning.cli.reports import ReportsCLI

__all__: List[str] = []
