"""Tests for the random forest trainer."""

import math
from dataclasses import replace

import numpy as np
import pytest

from leadscoring.config import EnsembleParams, FeatureSubsetStrategy
from leadscoring.errors import TrainingCancelled, TrainingError
from leadscoring.features import DEFAULT_FEATURE_INDEX, LabeledVector, reconstruct_sessions
from leadscoring.training import CancellationToken, prepare_training_data, resolve_feature_fraction, train_ensemble

from conftest import make_events


@pytest.fixture
def training_data():
    sessions = reconstruct_sessions(make_events())
    categorical_map, vectors = prepare_training_data(sessions, DEFAULT_FEATURE_INDEX)
    return vectors, categorical_map.arity(DEFAULT_FEATURE_INDEX)


def all_features(vectors):
    return np.vstack([v.features for v in vectors])


def split_nodes(node):
    if "split_index" not in node:
        return []
    return [node] + split_nodes(node["left_child"]) + split_nodes(node["right_child"])


def test_same_seed_gives_identical_predictions(training_data, params):
    vectors, arity = training_data

    first = train_ensemble(vectors, arity, params)
    second = train_ensemble(vectors, arity, params)

    np.testing.assert_array_equal(
        first.predict(all_features(vectors)), second.predict(all_features(vectors))
    )
    assert first.seed == second.seed == 12345


def test_generated_seed_is_recorded_and_reproducible(training_data, params):
    vectors, arity = training_data
    unseeded = EnsembleParams(
        num_trees=params.num_trees,
        feature_subset_strategy=params.feature_subset_strategy,
        impurity=params.impurity,
        max_depth=params.max_depth,
        max_bins=params.max_bins,
    )

    ensemble = train_ensemble(vectors, arity, unseeded)
    replay = train_ensemble(vectors, arity, replace(unseeded, seed=ensemble.seed))

    assert isinstance(ensemble.seed, int)
    np.testing.assert_array_equal(
        ensemble.predict(all_features(vectors)), replay.predict(all_features(vectors))
    )


def test_grows_requested_number_of_trees(training_data, params):
    vectors, arity = training_data

    assert train_ensemble(vectors, arity, params).num_trees == params.num_trees


def test_categorical_features_split_on_category_sets(training_data, params):
    vectors, arity = training_data
    all_params = replace(params, feature_subset_strategy="all")

    ensemble = train_ensemble(vectors, arity, all_params)
    trees = ensemble.booster.dump_model()["tree_info"]
    nodes = [node for tree in trees for node in split_nodes(tree["tree_structure"])]

    assert nodes
    assert all(node["decision_type"] == "==" for node in nodes)


def test_learns_converting_landing_page(artifact):
    encode = artifact.categorical_map.encode
    google = encode("referrer", "google")
    chrome = encode("browser", "Chrome")
    rows = np.array([
        [encode("landingPage", "pricing"), google, chrome],
        [encode("landingPage", "blog"), google, chrome],
    ])

    scores = artifact.ensemble.predict(rows)

    assert scores[0] > scores[1]


def test_predict_accepts_single_vector(artifact):
    scores = artifact.ensemble.predict(np.zeros(3))

    assert scores.shape == (1,)
    assert math.isfinite(scores[0])


def test_predict_rejects_wrong_width(artifact):
    with pytest.raises(ValueError):
        artifact.ensemble.predict(np.zeros(4))


def test_empty_training_set_raises(params):
    with pytest.raises(TrainingError):
        train_ensemble([], {0: 2}, params)


def test_zero_arity_raises(training_data, params):
    vectors, arity = training_data

    with pytest.raises(TrainingError):
        train_ensemble(vectors, {**arity, 1: 0}, params)


def test_codes_outside_arity_raise(params):
    vectors = [
        LabeledVector(label=0.0, features=np.array([0.0])),
        LabeledVector(label=1.0, features=np.array([3.0])),
    ]

    with pytest.raises(TrainingError):
        train_ensemble(vectors, {0: 2}, params)


def test_cancelled_token_stops_training(training_data, params):
    vectors, arity = training_data
    token = CancellationToken()
    token.cancel()

    with pytest.raises(TrainingCancelled):
        train_ensemble(vectors, arity, params, cancel_token=token)


def test_expired_token_stops_training(training_data, params):
    vectors, arity = training_data

    with pytest.raises(TrainingCancelled):
        train_ensemble(vectors, arity, params, cancel_token=CancellationToken(timeout=0))


def test_live_token_does_not_interfere(training_data, params):
    vectors, arity = training_data

    ensemble = train_ensemble(vectors, arity, params, cancel_token=CancellationToken(timeout=600))

    assert ensemble.num_trees == params.num_trees


@pytest.mark.parametrize(
    "strategy,num_features,num_trees,expected",
    [
        (FeatureSubsetStrategy.ALL, 3, 10, 1.0),
        (FeatureSubsetStrategy.AUTO, 3, 1, 1.0),
        (FeatureSubsetStrategy.AUTO, 3, 10, 1 / 3),
        (FeatureSubsetStrategy.ONETHIRD, 9, 10, 3 / 9),
        (FeatureSubsetStrategy.SQRT, 10, 10, 4 / 10),
        (FeatureSubsetStrategy.LOG2, 10, 10, 4 / 10),
        (FeatureSubsetStrategy.LOG2, 1, 10, 1.0),
    ],
)
def test_resolve_feature_fraction(strategy, num_features, num_trees, expected):
    assert resolve_feature_fraction(strategy, num_features, num_trees) == pytest.approx(expected)


class CountingToken(CancellationToken):
    """Records checks and cancels itself once ``cancel_at`` checks have happened."""

    def __init__(self, cancel_at=None):
        super().__init__()
        self.checks = 0
        self.cancel_at = cancel_at

    def check(self):
        self.checks += 1
        if self.cancel_at is not None and self.checks >= self.cancel_at:
            self.cancel()
        super().check()


def test_token_is_checked_before_each_tree_only(training_data, params):
    vectors, arity = training_data
    token = CountingToken()

    train_ensemble(vectors, arity, params, cancel_token=token)

    # One check before the Dataset is built, then one before every tree
    assert token.checks == params.num_trees + 1


def test_cancel_between_trees_stops_training(training_data, params):
    vectors, arity = training_data

    with pytest.raises(TrainingCancelled):
        train_ensemble(vectors, arity, params, cancel_token=CountingToken(cancel_at=3))
