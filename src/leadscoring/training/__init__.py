"""Model training module."""

from .ensemble import (
    CancellationToken,
    Ensemble,
    train_ensemble,
    resolve_feature_fraction,
)
from .model_training import (
    prepare_training_data,
    train_on_sessions,
    train_model,
    train_engine,
    evaluate_model,
    save_model,
    load_model,
)

__all__ = [
    "CancellationToken",
    "Ensemble",
    "train_ensemble",
    "resolve_feature_fraction",
    "prepare_training_data",
    "train_on_sessions",
    "train_model",
    "train_engine",
    "evaluate_model",
    "save_model",
    "load_model",
]
