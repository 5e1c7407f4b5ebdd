"""Tests for the Flask scoring API."""

import math

import pytest

from leadscoring.api import create_app
from leadscoring.inference import MeanResult, ModelHandle
from leadscoring.training import save_model


@pytest.fixture
def client(artifact):
    app = create_app(ModelHandle([artifact]))
    app.testing = True
    return app.test_client()


def test_query_returns_score(client):
    response = client.post(
        "/queries.json",
        json={"landingPageId": "unseen_page", "referrerId": "", "browser": "Firefox"},
    )

    assert response.status_code == 200
    assert math.isfinite(response.get_json()["score"])


@pytest.mark.parametrize(
    "body",
    [
        {"referrerId": "", "browser": "Chrome"},
        {"landingPageId": 3, "referrerId": "", "browser": "Chrome"},
        ["not", "an", "object"],
    ],
)
def test_bad_query_is_rejected(client, body):
    response = client.post("/queries.json", json=body)

    assert response.status_code == 400
    assert "error" in response.get_json()


def test_non_json_body_is_rejected(client):
    response = client.post("/queries.json", data="landingPageId=home")

    assert response.status_code == 400


def test_no_model_loaded():
    client = create_app(ModelHandle()).test_client()

    response = client.post(
        "/queries.json",
        json={"landingPageId": "home", "referrerId": "", "browser": ""},
    )

    assert response.status_code == 503


def test_health(artifact):
    client = create_app(ModelHandle([artifact]), MeanResult()).test_client()

    assert client.get("/health").get_json() == {
        "status": "healthy",
        "models_loaded": 1,
        "combiner": "mean",
    }


def test_reload_swaps_model(tmp_path, artifact):
    path = tmp_path / "model.pkl"
    save_model([artifact, artifact], path)
    handle = ModelHandle([artifact])
    client = create_app(handle, model_path=path).test_client()

    response = client.post("/reload")

    assert response.status_code == 200
    assert response.get_json()["models_loaded"] == 2
    assert len(handle.current()) == 2


def test_reload_without_path(client):
    assert client.post("/reload").status_code == 409


def test_reload_missing_file_keeps_model(tmp_path, artifact):
    handle = ModelHandle([artifact])
    client = create_app(handle, model_path=tmp_path / "missing.pkl").test_client()

    assert client.post("/reload").status_code == 500
    assert handle.current() == (artifact,)


@pytest.mark.parametrize("content", [b"", b"\x80\x05\x95"])
def test_reload_corrupt_file_returns_json_error(tmp_path, artifact, content):
    path = tmp_path / "model.pkl"
    path.write_bytes(content)
    handle = ModelHandle([artifact])
    client = create_app(handle, model_path=path).test_client()

    response = client.post("/reload")

    assert response.status_code == 500
    assert "error" in response.get_json()
    assert handle.current() == (artifact,)
