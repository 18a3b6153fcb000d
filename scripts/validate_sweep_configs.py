#!/usr/bin/env python3
"""
Quick validation script for all sweep configurations.
"""

import sys
from pathlib import Path

import yaml

from factor_tuning.sweeps.config import load_sweep_config


def validate_configurations(examples_dir=Path("examples")):
    """Load every sweep configuration in ``examples_dir`` and report what it would run."""
    sweep_files = list(Path(examples_dir).glob("*sweep*.yaml"))

    print("Validating sweep configurations")
    print("=" * 40)

    results = []
    for config_file in sorted(sweep_files):
        try:
            config = load_sweep_config(config_file)

            if config.sweep_type == "grid":
                count_str = f"{len(config.get_grid_combinations())} combinations"
            else:
                count_str = f"{config.init_points + config.n_iter} trials over {len(config.parameters)} parameters"

            print(f"OK   {config_file.name}: {config.sweep_type} sweep, {count_str}")
            results.append((config_file.name, True, count_str))

        except (OSError, ValueError, yaml.YAMLError) as e:
            print(f"FAIL {config_file.name}: {e}")
            results.append((config_file.name, False, str(e)))

    print("=" * 40)

    successful = sum(1 for _, success, _ in results if success)
    print(f"Summary: {successful}/{len(results)} configurations valid")

    return results


if __name__ == "__main__":
    outcome = validate_configurations(*sys.argv[1:2])
    sys.exit(0 if all(success for _, success, _ in outcome) else 1)
