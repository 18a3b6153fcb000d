"""
Model families that sweeps can train.

A model family turns a hyperparameter assignment into a fitted model and
makes predictions with it. The scikit-learn families below also accept the
short names used in factor-investing notebooks (``eta``, ``nrounds``,
``lambda``, ``mtry``, ``cp`` and so on) and translate them to the
estimator's keyword arguments.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type

import numpy as np
from sklearn.base import RegressorMixin
from sklearn.ensemble import HistGradientBoostingRegressor, RandomForestRegressor
from sklearn.linear_model import Lasso, Ridge
from sklearn.tree import DecisionTreeRegressor

from factor_tuning.sweeps.config import ConfigurationError

logger = logging.getLogger(__name__)


class ModelFamily(ABC):
    """Train/predict capability consumed by the objective evaluator."""

    name: str = "model"

    @abstractmethod
    def train(self, features: np.ndarray, target: np.ndarray, hyperparameters: Mapping[str, Any]) -> Any:
        """Fit a new model and return it."""

    @abstractmethod
    def predict(self, model: Any, features: np.ndarray) -> np.ndarray:
        """Predict targets for ``features`` with a model returned by :meth:`train`."""


class SklearnModelFamily(ModelFamily):
    """A scikit-learn regressor with notebook-style parameter aliases."""

    def __init__(
        self,
        name: str,
        estimator_cls: Type[RegressorMixin],
        aliases: Optional[Mapping[str, str]] = None,
        integer_params: Iterable[str] = (),
        defaults: Optional[Mapping[str, Any]] = None,
    ):
        self.name = name
        self.estimator_cls = estimator_cls
        self.aliases = dict(aliases or {})
        self.integer_params = frozenset(integer_params)
        self.defaults = dict(defaults or {})

    def translate(self, hyperparameters: Mapping[str, Any]) -> Dict[str, Any]:
        """Map aliases to estimator keywords and coerce integer-valued ones."""
        kwargs = dict(self.defaults)
        for key, value in hyperparameters.items():
            target = self.aliases.get(key, key)
            if target in self.integer_params and value is not None:
                value = int(round(float(value)))
            kwargs[target] = value
        return kwargs

    def build_estimator(self, hyperparameters: Mapping[str, Any]) -> RegressorMixin:
        return self.estimator_cls(**self.translate(hyperparameters))

    def train(self, features, target, hyperparameters):
        estimator = self.build_estimator(hyperparameters)
        estimator.fit(features, target)
        return estimator

    def predict(self, model, features):
        return model.predict(features)

    def __repr__(self) -> str:
        return f"SklearnModelFamily({self.name!r}, {self.estimator_cls.__name__})"


_MODEL_FAMILIES: Dict[str, SklearnModelFamily] = {
    "ridge": SklearnModelFamily("ridge", Ridge, aliases={"lambda": "alpha"}),
    "lasso": SklearnModelFamily(
        "lasso",
        Lasso,
        aliases={"lambda": "alpha"},
        integer_params={"max_iter"},
        defaults={"max_iter": 10000},
    ),
    "random_forest": SklearnModelFamily(
        "random_forest",
        RandomForestRegressor,
        aliases={
            "ntree": "n_estimators",
            "mtry": "max_features",
            "nodesize": "min_samples_leaf",
            "maxdepth": "max_depth",
            "sampsize": "max_samples",
        },
        integer_params={"n_estimators", "min_samples_leaf", "max_depth"},
        defaults={"random_state": 0},
    ),
    "decision_tree": SklearnModelFamily(
        "decision_tree",
        DecisionTreeRegressor,
        aliases={
            "maxdepth": "max_depth",
            "cp": "ccp_alpha",
            "minbucket": "min_samples_leaf",
            "minsplit": "min_samples_split",
        },
        integer_params={"max_depth", "min_samples_leaf", "min_samples_split"},
        defaults={"random_state": 0},
    ),
    "gradient_boosting": SklearnModelFamily(
        "gradient_boosting",
        HistGradientBoostingRegressor,
        aliases={
            "eta": "learning_rate",
            "nrounds": "max_iter",
            "lambda": "l2_regularization",
            "maxdepth": "max_depth",
        },
        integer_params={"max_iter", "max_depth", "max_leaf_nodes", "min_samples_leaf"},
        defaults={"random_state": 0},
    ),
}


def available_model_families() -> List[str]:
    return sorted(_MODEL_FAMILIES)


def get_model_family(name: str) -> SklearnModelFamily:
    """Look up a registered model family by name."""
    try:
        return _MODEL_FAMILIES[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown model family {name!r}. Available: {available_model_families()}"
        ) from None
