"""
Configuration parsing and validation for sweep experiments.

This module handles loading and validating YAML sweep configurations,
supporting both grid search and Bayesian optimization parameters.
Validation happens up front so that a bad configuration never starts
evaluating models.
"""

import copy
import itertools
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union, cast

import yaml

from .surrogate import Acquisition

FAILURE_POLICIES = ("penalize", "abort")
EXECUTORS = ("thread", "process")


class ConfigurationError(ValueError):
    """Raised when a sweep configuration cannot be run as written."""


@dataclass(frozen=True)
class ParameterBounds:
    """Continuous (or integer) search interval for one hyperparameter."""

    name: str
    low: float
    high: float
    kind: str = "float"
    log: bool = False

    @property
    def is_integer(self) -> bool:
        return self.kind == "int"


class SweepConfig:
    """Configuration for a parameter sweep experiment."""

    def __init__(self, config_dict: Dict[str, Any]):
        """Initialize from a configuration dictionary."""
        self.raw_config = config_dict
        self.sweep_type = config_dict.get("sweep_type", "grid")
        self.model = config_dict.get("model") or {}
        self.data = config_dict.get("data") or {}
        self.parameters = config_dict.get("parameters") or {}
        self.execution = config_dict.get("execution") or {}
        self.optimization = config_dict.get("optimization") or {}

        self._validate()

    def _validate(self):
        """Validate the configuration."""
        if self.sweep_type not in ["grid", "bayesian"]:
            raise ConfigurationError(
                f"Invalid sweep_type: {self.sweep_type}. Must be 'grid' or 'bayesian'"
            )

        if not self.parameters:
            raise ConfigurationError("Parameters section cannot be empty")

        if self.sweep_type == "grid":
            for key, value in self.parameters.items():
                if not parse_value_list(value):
                    raise ConfigurationError(f"Parameter '{key}' has no candidate values")
        else:
            # Builds and checks every interval
            self.get_bayesian_search_space()
            self._validate_budget()

        executor = self.execution.get("executor", "thread")
        if executor not in EXECUTORS:
            raise ConfigurationError(f"Unknown executor '{executor}'. Must be one of {EXECUTORS}")
        if self.max_parallel < 1:
            raise ConfigurationError(f"max_parallel must be at least 1, got {self.max_parallel}")
        timeout = self.timeout_per_trial
        if timeout is not None and timeout <= 0:
            raise ConfigurationError(f"timeout_per_trial must be positive, got {timeout}")

    def _validate_budget(self):
        """Check the Bayesian budget and acquisition settings."""
        for key in ("init_points", "n_iter"):
            if key not in self.optimization:
                raise ConfigurationError(f"Bayesian sweeps require optimization.{key}")
            value = self.optimization[key]
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigurationError(f"optimization.{key} must be a positive integer, got {value!r}")

        if "acquisition" not in self.optimization:
            raise ConfigurationError("Bayesian sweeps require optimization.acquisition")
        try:
            Acquisition.parse(self.optimization["acquisition"])
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        if self.failure_policy not in FAILURE_POLICIES:
            raise ConfigurationError(
                f"Unknown on_failure policy '{self.failure_policy}'. Must be one of {FAILURE_POLICIES}"
            )

    def with_overrides(self, **sections: Dict[str, Any]) -> "SweepConfig":
        """Return a re-validated copy with keys of the named sections replaced."""
        raw = copy.deepcopy(self.raw_config)
        for section, values in sections.items():
            raw[section] = {**(raw.get(section) or {}), **values}
        return SweepConfig(raw)

    def get_grid_combinations(self) -> List[Dict[str, Any]]:
        """Generate all parameter combinations for grid search.

        Combinations are produced row-major over the declared parameter
        order: the last declared parameter varies fastest, exactly like a
        set of nested loops.
        """
        if self.sweep_type != "grid":
            raise ValueError("Grid combinations only available for grid sweep type")

        param_lists = {key: parse_value_list(value) for key, value in self.parameters.items()}

        keys = list(param_lists.keys())
        return [dict(zip(keys, combination)) for combination in itertools.product(*param_lists.values())]

    def get_bayesian_search_space(self) -> Dict[str, ParameterBounds]:
        """Get the parameter search space for Bayesian optimization."""
        if self.sweep_type != "bayesian":
            raise ValueError("Bayesian search space only available for bayesian sweep type")

        return {name: parse_bounds(name, spec) for name, spec in self.parameters.items()}

    @property
    def model_family(self) -> Optional[str]:
        """Name of the model family the objective trains."""
        return self.model.get("family")

    @property
    def model_params(self) -> Dict[str, Any]:
        """Fixed hyperparameters merged into every trial."""
        return dict(self.model.get("params") or {})

    @property
    def max_parallel(self) -> int:
        """Maximum number of parallel evaluations."""
        return int(self.execution.get("max_parallel", 1))

    @property
    def timeout_per_trial(self) -> Optional[float]:
        """Timeout per trial in seconds, or None for no deadline."""
        timeout = self.execution.get("timeout_per_trial")
        return None if timeout is None else float(timeout)

    @property
    def executor(self) -> str:
        """Pool type used for parallel grid evaluation."""
        return cast(str, self.execution.get("executor", "thread"))

    @property
    def init_points(self) -> int:
        return int(self.optimization["init_points"])

    @property
    def n_iter(self) -> int:
        return int(self.optimization["n_iter"])

    @property
    def acquisition(self) -> Acquisition:
        return Acquisition.parse(self.optimization["acquisition"])

    @property
    def kappa(self) -> float:
        """Exploration weight for upper confidence bound."""
        return float(self.optimization.get("kappa", 2.576))

    @property
    def xi(self) -> float:
        """Improvement margin for expected improvement and probability of improvement."""
        return float(self.optimization.get("xi", 0.0))

    @property
    def seed(self) -> Optional[int]:
        seed = self.optimization.get("seed")
        return None if seed is None else int(seed)

    @property
    def failure_policy(self) -> str:
        """What the Bayesian driver does when a trial fails."""
        return cast(str, self.optimization.get("on_failure", "penalize"))


def parse_value_list(value: Any) -> List[Any]:
    """Parse a parameter value into a list of possible values."""
    if isinstance(value, list):
        return value
    elif isinstance(value, str):
        # Handle comma-separated values
        if "," in value:
            return [item.strip() for item in value.split(",")]
        else:
            return [value]
    else:
        return [value]


def parse_bounds(name: str, spec: Any) -> ParameterBounds:
    """Turn a Bayesian parameter definition into validated bounds."""
    if isinstance(spec, (list, tuple)) and len(spec) == 2:
        spec = {"type": "float", "low": spec[0], "high": spec[1]}
    if not isinstance(spec, dict):
        raise ConfigurationError(
            f"Parameter '{name}' must be a mapping with type, low and high, got {spec!r}"
        )

    kind = spec.get("type", "float")
    if kind not in ("float", "int"):
        raise ConfigurationError(f"Unknown parameter type {kind!r} for '{name}'. Use 'float' or 'int'")

    if "low" not in spec or "high" not in spec:
        raise ConfigurationError(f"Parameter '{name}' needs both low and high")
    try:
        low = float(spec["low"])
        high = float(spec["high"])
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Parameter '{name}' has non-numeric bounds") from e

    if not (math.isfinite(low) and math.isfinite(high)):
        raise ConfigurationError(f"Parameter '{name}' has non-finite bounds")
    if low > high:
        raise ConfigurationError(f"Parameter '{name}' has inverted bounds [{low}, {high}]")

    log = bool(spec.get("log", False))
    if log and low <= 0:
        raise ConfigurationError(f"Parameter '{name}' uses log scale but low={low} is not positive")

    if kind == "int":
        low, high = math.ceil(low), math.floor(high)
        if low > high:
            raise ConfigurationError(f"Parameter '{name}' has no integer inside its bounds")

    return ParameterBounds(name=name, low=low, high=high, kind=kind, log=log)


def load_sweep_config(config_path: Union[str, Path]) -> SweepConfig:
    """Load a sweep configuration from a YAML file."""
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Sweep config file not found: {config_path}")

    if config_path.suffix.lower() not in [".yml", ".yaml"]:
        raise ValueError(f"Sweep config file must have .yml or .yaml extension: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config_dict = yaml.safe_load(f)

    if not isinstance(config_dict, dict):
        raise ConfigurationError(f"Sweep config must be a mapping: {config_path}")

    return SweepConfig(config_dict)


def load_sweep_configs(config_path: Union[str, Path]) -> List[SweepConfig]:
    """Load sweep configuration(s) from a file or directory."""
    config_path = Path(config_path)
    configs = []

    if config_path.is_file():
        configs.append(load_sweep_config(config_path))
    elif config_path.is_dir():
        yaml_files = list(config_path.glob("*.yml")) + list(config_path.glob("*.yaml"))
        if not yaml_files:
            raise ValueError(f"No YAML files found in directory: {config_path}")
        for yaml_file in sorted(yaml_files):
            configs.append(load_sweep_config(yaml_file))
    else:
        raise ValueError(f"Sweep config path does not exist: {config_path}")

    return configs
