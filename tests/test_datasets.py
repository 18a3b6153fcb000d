"""
Test suite for dataset preparation.

This module covers synthetic factor data, chronological and shuffled
splits, CSV loading and the ``data`` configuration section.

Test Classes:
    TestMakeFactorDataset: Synthetic factor data generation
    TestSplitDataset: Train/held-out splitting and Dataset validation
    TestLoadCsvDataset: CSV loading with missing values
    TestDatasetFromConfig: Building datasets from sweep configurations
"""

# pylint: disable=redefined-outer-name

import numpy as np
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from factor_tuning.datasets import (
    FACTOR_NAMES,
    Dataset,
    dataset_from_config,
    load_csv_dataset,
    make_factor_dataset,
    split_dataset,
)
from factor_tuning.sweeps.config import ConfigurationError


@pytest.fixture
def factor_csv(tmp_path):
    """Write a small factor CSV with one incomplete row."""
    path = tmp_path / "factors.csv"
    lines = ["Div_Yld,Pb,Vol1Y_Usd,R1M_Usd"]
    for i in range(20):
        lines.append(f"{i / 20:.2f},{1 - i / 20:.2f},{(i % 5) / 5:.2f},{0.01 * i:.3f}")
    lines.append("0.5,,0.3,0.02")
    path.write_text("\n".join(lines) + "\n")
    return path


class TestMakeFactorDataset:
    """Tests for make_factor_dataset."""

    def test_shapes_and_names(self):
        X, y, names = make_factor_dataset(n_samples=100)

        assert X.shape == (100, 7)
        assert y.shape == (100,)
        assert names == FACTOR_NAMES

    def test_extra_factors_get_generic_names(self):
        _, _, names = make_factor_dataset(n_samples=50, n_factors=9)
        assert names[-2:] == ("Factor_7", "Factor_8")

    def test_exposures_are_unit_interval(self):
        X, _, _ = make_factor_dataset(n_samples=500)
        assert X.min() >= 0.0
        assert X.max() <= 1.0

    def test_reproducible_with_seed(self):
        X1, y1, _ = make_factor_dataset(n_samples=50, seed=3)
        X2, y2, _ = make_factor_dataset(n_samples=50, seed=3)
        X3, _, _ = make_factor_dataset(n_samples=50, seed=4)

        np.testing.assert_array_equal(X1, X2)
        np.testing.assert_array_equal(y1, y2)
        assert not np.array_equal(X1, X3)

    def test_target_depends_on_momentum(self):
        X, y, _ = make_factor_dataset(n_samples=2000, noise=0.0)
        assert np.corrcoef(X[:, 0], y)[0, 1] > 0.5

    @pytest.mark.parametrize(
        "kwargs,message",
        [
            ({"n_samples": 5}, "n_samples"),
            ({"n_factors": 2}, "n_factors"),
            ({"noise": -0.1}, "noise"),
        ],
    )
    def test_invalid_arguments(self, kwargs, message):
        with pytest.raises(ValueError, match=message):
            make_factor_dataset(**kwargs)


class TestSplitDataset:
    """Tests for split_dataset and Dataset validation."""

    def test_chronological_split_holds_out_last_rows(self):
        X = np.arange(20, dtype=float).reshape(10, 2)
        y = np.arange(10, dtype=float)
        data = split_dataset(X, y, test_fraction=0.3)

        np.testing.assert_array_equal(data.train_target, np.arange(7))
        np.testing.assert_array_equal(data.test_target, [7, 8, 9])
        assert data.n_features == 2

    def test_shuffled_split_is_reproducible(self):
        X, y, _ = make_factor_dataset(n_samples=100)
        first = split_dataset(X, y, shuffle=True, seed=1)
        second = split_dataset(X, y, shuffle=True, seed=1)

        np.testing.assert_array_equal(first.test_target, second.test_target)
        assert not np.array_equal(first.test_target, y[-20:])

    @settings(max_examples=25, deadline=None)
    @given(st.integers(min_value=10, max_value=200), st.floats(min_value=0.05, max_value=0.8))
    def test_split_keeps_every_row(self, n_samples, test_fraction):
        X, y, _ = make_factor_dataset(n_samples=n_samples)
        data = split_dataset(X, y, test_fraction=test_fraction)

        assert len(data.train_target) + len(data.test_target) == n_samples
        assert len(data.train_target) > 0 and len(data.test_target) > 0

    @pytest.mark.parametrize("fraction", [0.0, 1.0, -0.2, 1.5])
    def test_invalid_test_fraction(self, fraction):
        X, y, _ = make_factor_dataset(n_samples=20)
        with pytest.raises(ValueError, match="test_fraction"):
            split_dataset(X, y, test_fraction=fraction)

    def test_dataset_rejects_mismatched_rows(self):
        with pytest.raises(ValueError, match="but train_target has 2"):
            Dataset(np.zeros((3, 2)), np.zeros(2), np.zeros((1, 2)), np.zeros(1))

    def test_dataset_rejects_mismatched_features(self):
        with pytest.raises(ValueError, match="same number of features"):
            Dataset(np.zeros((3, 2)), np.zeros(3), np.zeros((1, 3)), np.zeros(1))

    def test_dataset_rejects_empty_held_out_set(self):
        with pytest.raises(ValueError, match="non-empty"):
            Dataset(np.zeros((3, 2)), np.zeros(3), np.zeros((0, 2)), np.zeros(0))

    def test_dataset_checks_feature_names(self):
        with pytest.raises(ValueError, match="Expected 2 feature names"):
            Dataset(np.zeros((3, 2)), np.zeros(3), np.zeros((1, 2)), np.zeros(1), feature_names=("a",))


class TestLoadCsvDataset:
    """Tests for load_csv_dataset."""

    def test_loads_and_drops_incomplete_rows(self, factor_csv):
        data = load_csv_dataset(factor_csv, "R1M_Usd", test_fraction=0.25)

        assert data.feature_names == ("Div_Yld", "Pb", "Vol1Y_Usd")
        assert len(data.train_target) + len(data.test_target) == 20
        assert data.test_target[-1] == pytest.approx(0.19)

    def test_selected_features(self, factor_csv):
        data = load_csv_dataset(factor_csv, "R1M_Usd", features=["Pb"])

        assert data.n_features == 1
        assert data.feature_names == ("Pb",)

    def test_missing_target(self, factor_csv):
        with pytest.raises(ValueError, match="Target column 'Eps' not found"):
            load_csv_dataset(factor_csv, "Eps")

    def test_missing_feature(self, factor_csv):
        with pytest.raises(ValueError, match="not found"):
            load_csv_dataset(factor_csv, "R1M_Usd", features=["Mom_11M_Usd"])

    def test_header_names_are_kept_verbatim(self, tmp_path):
        path = tmp_path / "export.csv"
        lines = ["Div-Yld,Book to Price,R1M-Usd"]
        for i in range(12):
            lines.append(f"{i / 12:.3f},{1 - i / 12:.3f},{0.01 * i:.3f}")
        path.write_text("\n".join(lines) + "\n")

        data = load_csv_dataset(path, "R1M-Usd", test_fraction=0.25)

        assert data.feature_names == ("Div-Yld", "Book to Price")
        assert len(data.train_target) + len(data.test_target) == 12

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_csv_dataset(tmp_path / "missing.csv", "R1M_Usd")


class TestDatasetFromConfig:
    """Tests for dataset_from_config."""

    def test_synthetic(self):
        data = dataset_from_config({"synthetic": {"n_samples": 200, "n_factors": 4}, "test_fraction": 0.5})

        assert data.n_features == 4
        assert len(data.test_target) == 100

    def test_csv(self, factor_csv):
        data = dataset_from_config({"path": str(factor_csv), "target": "R1M_Usd", "features": ["Div_Yld", "Pb"]})
        assert data.feature_names == ("Div_Yld", "Pb")

    @pytest.mark.parametrize("section", [{}, {"path": "data.csv"}, {"target": "R1M_Usd"}])
    def test_incomplete_section(self, section):
        with pytest.raises(ConfigurationError):
            dataset_from_config(section)
