"""Flask API for lead scoring queries."""

import logging
import pickle
from pathlib import Path
from typing import Optional

from flask import Flask, current_app, jsonify, request

from ..entity.session import Query
from ..inference import CombineStrategy, FirstResult, ModelHandle, score_query
from ..training.model_training import load_model

logger = logging.getLogger(__name__)

QUERY_FIELDS = {
    "landingPageId": "landing_page_id",
    "referrerId": "referrer_id",
    "browser": "browser",
}


def parse_query(data: dict) -> Query:
    """Build a Query from the JSON body, raising ValueError on bad fields."""
    values = {}
    for key, attr in QUERY_FIELDS.items():
        if key not in data:
            raise ValueError(f"{key} is required")
        if not isinstance(data[key], str):
            raise ValueError(f"{key} must be a string")
        values[attr] = data[key]
    return Query(**values)


def create_app(
    handle: ModelHandle,
    strategy: Optional[CombineStrategy] = None,
    model_path: Optional[Path] = None
) -> Flask:
    """
    Create the scoring app.

    Args:
        handle: Holder of the artifacts to serve
        strategy: How per-algorithm results are merged
        model_path: File re-read by ``POST /reload``

    Returns:
        Flask application
    """
    app = Flask(__name__)
    app.config["MODEL_HANDLE"] = handle
    app.config["COMBINE_STRATEGY"] = strategy or FirstResult()
    app.config["MODEL_PATH"] = model_path

    app.add_url_rule("/health", view_func=health_check, methods=["GET"])
    app.add_url_rule("/queries.json", view_func=query, methods=["POST"])
    app.add_url_rule("/reload", view_func=reload_model, methods=["POST"])

    return app


def health_check():
    """Health check endpoint."""
    handle: ModelHandle = current_app.config["MODEL_HANDLE"]
    return jsonify({
        "status": "healthy",
        "models_loaded": len(handle.current()),
        "combiner": current_app.config["COMBINE_STRATEGY"].name,
    })


def query():
    """
    Score a lead.

    Request body:
    {
        "landingPageId": str,
        "referrerId": str,
        "browser": str
    }

    Response:
    {
        "score": float
    }
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "No JSON object provided"}), 400

    try:
        lead = parse_query(data)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    # Snapshot; a concurrent reload does not affect this request
    artifacts = current_app.config["MODEL_HANDLE"].current()
    if not artifacts:
        return jsonify({"error": "No model loaded"}), 503

    result = score_query(artifacts, lead, current_app.config["COMBINE_STRATEGY"])

    return jsonify({"score": result.score})


def reload_model():
    """Re-read the model file and swap it in."""
    model_path = current_app.config["MODEL_PATH"]
    if model_path is None:
        return jsonify({"error": "No model path configured"}), 409

    try:
        artifacts = load_model(model_path)
    except (OSError, EOFError, TypeError, AttributeError, ImportError, pickle.UnpicklingError) as e:
        logger.warning(f"Reload from {model_path} failed: {e}")
        return jsonify({"error": str(e)}), 500

    current_app.config["MODEL_HANDLE"].swap(artifacts)
    logger.info(f"Reloaded {len(artifacts)} artifact(s) from {model_path}")

    return jsonify({"status": "reloaded", "models_loaded": len(artifacts)})
