"""
Test package for factor_tuning.

This package contains test suites for the sweep framework:

- test_sweep_config.py: YAML loading and validation
- test_grid_search.py / test_bayesian.py: Search drivers
- test_surrogate.py: Gaussian-process surrogate and Optuna sampler
- test_evaluator.py / test_results.py: Trial evaluation and history
- test_models.py / test_datasets.py: Model families and data splits
- test_sweep_cli.py / test_reports_cli.py: Command-line interfaces
- conftest.py: Shared fixtures and stub objectives
"""
