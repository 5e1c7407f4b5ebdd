"""Tests for scoring, model swapping and result combination."""

import math
import threading

import numpy as np
import pytest

from leadscoring.entity import PredictedResult, Query
from leadscoring.features import vectorize
from leadscoring.inference import (
    CombineStrategy,
    FirstResult,
    MeanResult,
    ModelHandle,
    combine,
    get_strategy,
    predict,
    score_query,
)


def test_unseen_landing_page_scores_finite(artifact):
    result = predict(artifact, Query("unseen_page", "", "Firefox"))

    assert isinstance(result, PredictedResult)
    assert math.isfinite(result.score)


def test_unseen_query_scores_like_default_codes(artifact):
    unseen = predict(artifact, Query("unseen_page", "nowhere", "Lynx"))
    default = predict(artifact, Query("", "", ""))

    assert unseen == default


def test_predict_uses_artifact_encodings(artifact):
    query = Query("pricing", "google", "Chrome")
    features = vectorize(query, artifact.categorical_map, artifact.feature_index)

    assert predict(artifact, query).score == pytest.approx(artifact.ensemble.predict(features)[0])


def test_predict_does_not_extend_the_map(artifact):
    before = dict(artifact.categorical_map["landingPage"])

    predict(artifact, Query("brand_new", "x", "y"))

    assert dict(artifact.categorical_map["landingPage"]) == before


def test_predict_is_safe_from_many_threads(artifact):
    query = Query("pricing", "google", "Chrome")
    expected = predict(artifact, query)
    results = []

    def worker():
        for _ in range(20):
            results.append(predict(artifact, query))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == 80
    assert all(result == expected for result in results)


def test_combine_defaults_to_first():
    assert combine([PredictedResult(0.3), PredictedResult(0.9)]) == PredictedResult(0.3)


def test_mean_strategy():
    result = combine([PredictedResult(0.3), PredictedResult(0.9)], MeanResult())

    assert result.score == pytest.approx(0.6)


def test_combine_empty_raises():
    with pytest.raises(ValueError):
        combine([])


def test_custom_strategy_plugs_in():
    class MaxResult(CombineStrategy):
        name = "max"

        def combine(self, results):
            return max(results, key=lambda r: r.score)

    assert combine([PredictedResult(0.3), PredictedResult(0.9)], MaxResult()).score == 0.9


def test_get_strategy():
    assert isinstance(get_strategy("first"), FirstResult)
    assert isinstance(get_strategy("mean"), MeanResult)
    with pytest.raises(ValueError):
        get_strategy("vote")


def test_score_query_combines_all_artifacts(artifact):
    query = Query("home", "twitter", "Safari")
    single = predict(artifact, query)

    assert score_query([artifact, artifact], query) == single
    assert score_query([artifact, artifact], query, MeanResult()).score == pytest.approx(single.score)


def test_model_handle_swap_replaces_whole_tuple(artifact):
    handle = ModelHandle()
    assert not handle.loaded

    previous = handle.swap([artifact])

    assert previous == ()
    assert handle.current() == (artifact,)
    snapshot = handle.current()
    handle.swap([artifact, artifact])
    assert snapshot == (artifact,)
    assert len(handle.current()) == 2


def test_model_handle_rejects_empty_swap(artifact):
    handle = ModelHandle([artifact])

    with pytest.raises(ValueError):
        handle.swap([])
    assert handle.current() == (artifact,)
