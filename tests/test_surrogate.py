"""
Tests for the Gaussian-process surrogate, acquisition functions and sampler.
"""

# pylint: disable=redefined-outer-name
# pylint: disable=protected-access

import numpy as np
import optuna
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from optuna.distributions import FloatDistribution, IntDistribution
from optuna.trial import TrialState, create_trial

from factor_tuning.sweeps.config import ParameterBounds
from factor_tuning.sweeps.surrogate import (
    Acquisition,
    GaussianProcessSampler,
    GaussianProcessSurrogate,
    acquisition_values,
    to_distribution,
)


@pytest.fixture
def mixed_space():
    return {
        "eta": ParameterBounds("eta", 1e-3, 1e-1, log=True),
        "nrounds": ParameterBounds("nrounds", 10, 200, kind="int"),
        "lambda": ParameterBounds("lambda", 0.0, 1.0),
    }


@pytest.fixture
def line_space():
    return {"x": ParameterBounds("x", 0.0, 10.0)}


class TestAcquisition:
    """Tests for acquisition parsing and scoring."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("ei", Acquisition.EXPECTED_IMPROVEMENT),
            ("EI", Acquisition.EXPECTED_IMPROVEMENT),
            ("expected_improvement", Acquisition.EXPECTED_IMPROVEMENT),
            ("ucb", Acquisition.UPPER_CONFIDENCE_BOUND),
            ("poi", Acquisition.PROBABILITY_OF_IMPROVEMENT),
            ("pi", Acquisition.PROBABILITY_OF_IMPROVEMENT),
            (Acquisition.UPPER_CONFIDENCE_BOUND, Acquisition.UPPER_CONFIDENCE_BOUND),
        ],
    )
    def test_parse(self, value, expected):
        assert Acquisition.parse(value) is expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError, match="Unknown acquisition function"):
            Acquisition.parse("thompson")

    def test_ucb_is_mean_plus_scaled_std(self):
        values = acquisition_values(
            Acquisition.UPPER_CONFIDENCE_BOUND, np.array([1.0, 2.0]), np.array([0.5, 0.0]), best=0.0, kappa=2.0
        )
        np.testing.assert_allclose(values, [2.0, 2.0])

    def test_zero_std_has_no_improvement(self):
        for kind in (Acquisition.EXPECTED_IMPROVEMENT, Acquisition.PROBABILITY_OF_IMPROVEMENT):
            values = acquisition_values(kind, np.array([5.0]), np.array([0.0]), best=1.0)
            assert values[0] == 0.0

    def test_probability_of_improvement_at_incumbent(self):
        values = acquisition_values(Acquisition.PROBABILITY_OF_IMPROVEMENT, np.array([1.0]), np.array([1.0]), best=1.0)
        assert values[0] == pytest.approx(0.5)

    def test_expected_improvement_prefers_higher_mean(self):
        values = acquisition_values(
            Acquisition.EXPECTED_IMPROVEMENT, np.array([0.0, 1.0, 2.0]), np.array([1.0, 1.0, 1.0]), best=1.0
        )
        assert values[0] < values[1] < values[2]
        assert np.all(values >= 0)

    def test_xi_lowers_expected_improvement(self):
        mean, std = np.array([1.5]), np.array([0.5])
        plain = acquisition_values(Acquisition.EXPECTED_IMPROVEMENT, mean, std, best=1.0)
        margin = acquisition_values(Acquisition.EXPECTED_IMPROVEMENT, mean, std, best=1.0, xi=0.3)
        assert margin[0] < plain[0]


class TestGaussianProcessSurrogate:
    """Tests for the unit-hypercube surrogate."""

    def test_encode_uses_log_scale(self, mixed_space):
        surrogate = GaussianProcessSurrogate(mixed_space)
        point = surrogate.encode({"eta": 1e-2, "nrounds": 105, "lambda": 0.25})
        np.testing.assert_allclose(point, [0.5, 0.5, 0.25])

    def test_decode_rounds_integers_and_clips(self, mixed_space):
        surrogate = GaussianProcessSurrogate(mixed_space)
        params = surrogate.decode([1.2, 0.5013, -0.4])

        assert params["eta"] == pytest.approx(1e-1)
        assert isinstance(params["nrounds"], int)
        assert params["nrounds"] == 105
        assert params["lambda"] == 0.0

    @settings(max_examples=50, deadline=None)
    @given(st.lists(st.floats(min_value=-1.0, max_value=2.0), min_size=3, max_size=3))
    def test_decode_always_within_bounds(self, point):
        space = {
            "eta": ParameterBounds("eta", 1e-3, 1e-1, log=True),
            "nrounds": ParameterBounds("nrounds", 10, 200, kind="int"),
            "lambda": ParameterBounds("lambda", 0.0, 1.0),
        }
        params = GaussianProcessSurrogate(space).decode(point)

        for name, bounds in space.items():
            assert bounds.low <= params[name] <= bounds.high
        assert isinstance(params["nrounds"], int)

    def test_predict_requires_fit(self, line_space):
        with pytest.raises(RuntimeError, match="must be fitted"):
            GaussianProcessSurrogate(line_space).predict(np.array([[0.5]]))

    def test_fit_interpolates_observations(self, line_space):
        surrogate = GaussianProcessSurrogate(line_space, random_state=np.random.RandomState(0))
        points = np.array([[0.0], [0.25], [0.5], [0.75], [1.0]])
        scores = -((points[:, 0] * 10 - 5.0) ** 2)
        surrogate.fit(points, scores)

        mean, std = surrogate.predict(points)
        np.testing.assert_allclose(mean, scores, atol=5e-2)
        assert np.all(std < 0.1)

    def test_propose_stays_in_unit_cube(self, mixed_space):
        rng = np.random.RandomState(1)
        surrogate = GaussianProcessSurrogate(mixed_space, random_state=rng, n_candidates=200)
        points = rng.uniform(size=(6, 3))
        scores = -np.sum((points - 0.3) ** 2, axis=1)
        surrogate.fit(points, scores)

        for kind in Acquisition:
            proposal = surrogate.propose(kind, float(scores.max()))
            assert proposal.shape == (3,)
            assert np.all((proposal >= 0.0) & (proposal <= 1.0))

    def test_to_distribution(self, mixed_space):
        assert isinstance(to_distribution(mixed_space["nrounds"]), IntDistribution)
        eta = to_distribution(mixed_space["eta"])
        assert isinstance(eta, FloatDistribution)
        assert eta.log


class TestGaussianProcessSampler:
    """Tests for the Optuna sampler wrapper."""

    def _add(self, study, x, value=None, state=TrialState.COMPLETE):
        study.add_trial(
            create_trial(
                params={"x": x},
                distributions={"x": FloatDistribution(0.0, 10.0)},
                value=value,
                state=state,
            )
        )

    def test_failed_trials_get_worst_completed_score(self, line_space):
        sampler = GaussianProcessSampler(line_space, Acquisition.EXPECTED_IMPROVEMENT, n_startup_trials=1, seed=0)
        study = optuna.create_study(direction="maximize", sampler=sampler)
        self._add(study, 2.0, value=-9.0)
        self._add(study, 4.0, value=-1.0)
        self._add(study, 9.0, state=TrialState.PRUNED)

        observations = sampler._observations(study)

        assert [params["x"] for params, _ in observations] == [2.0, 4.0, 9.0]
        assert [score for _, score in observations] == [-9.0, -1.0, -9.0]

    def test_no_completed_trials_means_no_observations(self, line_space):
        sampler = GaussianProcessSampler(line_space, "ei", n_startup_trials=1, seed=0)
        study = optuna.create_study(direction="maximize", sampler=sampler)
        self._add(study, 3.0, state=TrialState.PRUNED)

        assert sampler._observations(study) is None

    def test_drives_optuna_study(self, line_space):
        sampler = GaussianProcessSampler(line_space, "ucb", n_startup_trials=2, seed=0)
        study = optuna.create_study(direction="maximize", sampler=sampler)

        study.optimize(lambda t: -((t.suggest_float("x", 0.0, 10.0) - 5.0) ** 2), n_trials=6)

        assert len(study.trials) == 6
        assert all(0.0 <= t.params["x"] <= 10.0 for t in study.trials)
        assert study.best_value <= 0.0
