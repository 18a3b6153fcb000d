"""
Dataset preparation for factor-model sweeps.

This module provides the fixed train/held-out split every trial of a sweep
is scored on, loaded from CSV files or generated synthetically.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
from sklearn.model_selection import train_test_split

from factor_tuning.sweeps.config import ConfigurationError

FACTOR_NAMES = ("Div_Yld", "Eps", "Mkt_Cap_12M_Usd", "Mom_11M_Usd", "Ocf", "Pb", "Vol1Y_Usd")
TARGET_NAME = "R1M_Usd"


@dataclass(frozen=True)
class Dataset:
    """Training and held-out features and targets."""

    train_features: np.ndarray
    train_target: np.ndarray
    test_features: np.ndarray
    test_target: np.ndarray
    feature_names: Tuple[str, ...] = ()

    def __post_init__(self):
        for name in ("train_features", "train_target", "test_features", "test_target"):
            object.__setattr__(self, name, np.asarray(getattr(self, name), dtype=float))
        object.__setattr__(self, "feature_names", tuple(self.feature_names))

        if self.train_features.ndim != 2 or self.test_features.ndim != 2:
            raise ValueError("Feature matrices must be two-dimensional")
        if self.train_target.ndim != 1 or self.test_target.ndim != 1:
            raise ValueError("Targets must be one-dimensional")
        if len(self.train_features) == 0 or len(self.test_features) == 0:
            raise ValueError("Training and held-out sets must both be non-empty")
        if len(self.train_features) != len(self.train_target):
            raise ValueError(
                f"train_features has {len(self.train_features)} rows but train_target has {len(self.train_target)}"
            )
        if len(self.test_features) != len(self.test_target):
            raise ValueError(
                f"test_features has {len(self.test_features)} rows but test_target has {len(self.test_target)}"
            )
        if self.train_features.shape[1] != self.test_features.shape[1]:
            raise ValueError("Training and held-out sets must have the same number of features")
        if self.feature_names and len(self.feature_names) != self.n_features:
            raise ValueError(f"Expected {self.n_features} feature names, got {len(self.feature_names)}")

    @property
    def n_features(self) -> int:
        return self.train_features.shape[1]


def split_dataset(
    features: np.ndarray,
    target: np.ndarray,
    test_fraction: float = 0.2,
    seed: Optional[int] = None,
    shuffle: bool = False,
    feature_names: Sequence[str] = (),
) -> Dataset:
    """Split arrays into a :class:`Dataset`.

    Without shuffling the last ``test_fraction`` of rows is held out, so
    time-ordered data is split chronologically.
    """
    if not 0.0 < test_fraction < 1.0:
        raise ValueError(f"test_fraction must be between 0 and 1, got {test_fraction}")

    X_train, X_test, y_train, y_test = train_test_split(
        np.asarray(features, dtype=float),
        np.asarray(target, dtype=float),
        test_size=test_fraction,
        random_state=seed if shuffle else None,
        shuffle=shuffle,
    )
    return Dataset(X_train, y_train, X_test, y_test, feature_names=tuple(feature_names))


def load_csv_dataset(
    path: Union[str, Path],
    target: str,
    features: Optional[Sequence[str]] = None,
    test_fraction: float = 0.2,
    seed: Optional[int] = None,
    shuffle: bool = False,
) -> Dataset:
    """Load a CSV file with a header row and split it.

    Rows with a missing value in any selected column are dropped. When
    ``features`` is omitted every numeric column except ``target`` is used.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    table = np.genfromtxt(
        path, delimiter=",", names=True, dtype=float, encoding="utf-8", deletechars="", replace_space=" "
    )
    columns = list(table.dtype.names or ())

    if target not in columns:
        raise ValueError(f"Target column {target!r} not found in {path}. Columns: {columns}")

    if features is None:
        features = [c for c in columns if c != target and not np.all(np.isnan(table[c]))]
    missing = [c for c in features if c not in columns]
    if missing:
        raise ValueError(f"Feature columns {missing} not found in {path}")
    if not features:
        raise ValueError(f"No feature columns available in {path}")

    X = np.column_stack([table[c] for c in features])
    y = np.asarray(table[target], dtype=float)
    keep = ~(np.isnan(X).any(axis=1) | np.isnan(y))

    return split_dataset(X[keep], y[keep], test_fraction, seed=seed, shuffle=shuffle, feature_names=features)


def make_factor_dataset(
    n_samples: int = 2000,
    n_factors: int = 7,
    noise: float = 0.05,
    seed: int = 42,
) -> Tuple[np.ndarray, np.ndarray, Tuple[str, ...]]:
    """Generate uniform factor exposures and a nonlinear forward return.

    Exposures are drawn on [0, 1] like cross-sectionally normalized
    characteristics. The return mixes a momentum trend, a size/value
    interaction and a volatility penalty, plus Gaussian noise.
    """
    if not isinstance(n_samples, int) or n_samples < 10:
        raise ValueError(f"n_samples must be an integer >= 10, got {n_samples}")
    if not isinstance(n_factors, int) or n_factors < 3:
        raise ValueError(f"n_factors must be an integer >= 3, got {n_factors}")
    if not isinstance(noise, (int, float)) or noise < 0:
        raise ValueError(f"noise must be a non-negative number, got {noise}")

    rng = np.random.default_rng(seed)
    X = rng.uniform(0.0, 1.0, size=(n_samples, n_factors))

    y = (
        0.04 * np.tanh(4.0 * (X[:, 0] - 0.5))
        + 0.03 * (X[:, 1] - 0.5) * (X[:, 2] - 0.5) * 4.0
        - 0.02 * (X[:, n_factors - 1] - 0.5) ** 2
        + rng.normal(0.0, noise, n_samples)
    )

    names = tuple(FACTOR_NAMES[i] if i < len(FACTOR_NAMES) else f"Factor_{i}" for i in range(n_factors))
    return X, y, names


def dataset_from_config(data: Mapping[str, Any]) -> Dataset:
    """Build a dataset from the ``data`` section of a sweep configuration."""
    if not data:
        raise ConfigurationError("Sweep configuration needs a data section")

    test_fraction = float(data.get("test_fraction", 0.2))
    seed = data.get("seed")
    shuffle = bool(data.get("shuffle", False))

    if "synthetic" in data:
        X, y, names = make_factor_dataset(**(data["synthetic"] or {}))
        return split_dataset(X, y, test_fraction, seed=seed, shuffle=shuffle, feature_names=names)

    if "path" not in data or "target" not in data:
        raise ConfigurationError("Data section needs either 'synthetic' or both 'path' and 'target'")

    return load_csv_dataset(
        data["path"],
        data["target"],
        features=data.get("features"),
        test_fraction=test_fraction,
        seed=seed,
        shuffle=shuffle,
    )
