"""Model training pipeline: events -> sessions -> vectors -> forest."""

import logging
import math
import pickle
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
from sklearn.metrics import mean_squared_error, roc_auc_score
from sklearn.model_selection import train_test_split

from ..config import EngineConfig, EnsembleParams
from ..entity.artifact import ModelArtifact
from ..entity.session import Event, Session
from ..errors import TrainingError
from ..features.encoding import DEFAULT_SESSIONS, CategoricalMap, add_default_sessions, fit_categorical_map
from ..features.schema import DEFAULT_FEATURE_INDEX, FeatureIndex
from ..features.sessions import reconstruct_sessions
from ..features.vectorizer import (
    LabeledVector,
    create_labeled_vectors,
    create_training_dataframe,
    label,
    vectorize,
)
from .ensemble import CancellationToken, train_ensemble

logger = logging.getLogger(__name__)


def prepare_training_data(
    sessions: Iterable[Session],
    feature_index: FeatureIndex,
    logger: Optional[logging.Logger] = None
) -> Tuple[CategoricalMap, List[LabeledVector]]:
    """
    Fit the categorical map and build labeled vectors.

    Args:
        sessions: Reconstructed sessions
        feature_index: Features to encode

    Returns:
        Tuple of (categorical_map, labeled_vectors); both include the default sessions
    """
    log = logger or logging.getLogger(__name__)

    augmented = add_default_sessions(sessions)
    categorical_map = fit_categorical_map(augmented, feature_index)
    vectors = create_labeled_vectors(augmented, categorical_map, feature_index)

    df = create_training_dataframe(vectors, feature_index)
    log.info(f"Training data prepared:")
    log.info(f"  - Rows: {len(df):,} (including {len(DEFAULT_SESSIONS)} default rows)")
    log.info(f"  - Positive ratio: {df['label'].mean() * 100:.2f}%")
    for name in feature_index:
        log.info(f"  - {name}: {categorical_map[name].cardinality:,} categories")

    return categorical_map, vectors


def train_on_sessions(
    sessions: Sequence[Session],
    params: EnsembleParams,
    feature_index: FeatureIndex = DEFAULT_FEATURE_INDEX,
    num_threads: int = 1,
    cancel_token: Optional[CancellationToken] = None,
    logger: Optional[logging.Logger] = None
) -> ModelArtifact:
    """Train one artifact from already reconstructed sessions."""
    if not sessions:
        raise TrainingError("no sessions could be reconstructed from the events")

    categorical_map, vectors = prepare_training_data(sessions, feature_index, logger=logger)
    ensemble = train_ensemble(
        vectors,
        categorical_map.arity(feature_index),
        params,
        feature_names=list(feature_index.names),
        num_threads=num_threads,
        cancel_token=cancel_token,
        logger=logger,
    )

    return ModelArtifact(ensemble=ensemble, feature_index=feature_index, categorical_map=categorical_map)


def train_model(
    events: Iterable[Event],
    params: EnsembleParams,
    feature_index: FeatureIndex = DEFAULT_FEATURE_INDEX,
    num_partitions: int = 1,
    num_threads: int = 1,
    cancel_token: Optional[CancellationToken] = None,
    logger: Optional[logging.Logger] = None
) -> ModelArtifact:
    """
    Train a model artifact from raw lead events.

    Args:
        events: View/buy events in arrival order
        params: Forest hyperparameters
        feature_index: Features to encode
        num_partitions: Session reconstruction partitions
        num_threads: Threads for partition reduction and tree fitting
        cancel_token: Checked between trees
        logger: Logger for progress messages

    Returns:
        ModelArtifact
    """
    sessions = reconstruct_sessions(
        events, num_partitions=num_partitions, max_workers=num_threads, logger=logger
    )
    return train_on_sessions(
        sessions, params, feature_index,
        num_threads=num_threads, cancel_token=cancel_token, logger=logger,
    )


def train_engine(
    events: Iterable[Event],
    engine_config: EngineConfig,
    feature_index: FeatureIndex = DEFAULT_FEATURE_INDEX,
    num_partitions: int = 1,
    num_threads: int = 1,
    cancel_token: Optional[CancellationToken] = None,
    logger: Optional[logging.Logger] = None
) -> List[ModelArtifact]:
    """
    Train one artifact per configured algorithm, sharing a single session reconstruction.

    Returns:
        Artifacts in the order of ``engine_config.algorithms``
    """
    log = logger or logging.getLogger(__name__)

    sessions = reconstruct_sessions(
        events, num_partitions=num_partitions, max_workers=num_threads, logger=log
    )

    artifacts = []
    for position, params in enumerate(engine_config.algorithms):
        log.info(f"\nAlgorithm #{position}: {params.to_dict()}")
        artifacts.append(train_on_sessions(
            sessions, params, feature_index,
            num_threads=num_threads, cancel_token=cancel_token, logger=log,
        ))

    return artifacts


def evaluate_model(
    events: Iterable[Event],
    params: EnsembleParams,
    feature_index: FeatureIndex = DEFAULT_FEATURE_INDEX,
    test_size: float = 0.2,
    random_state: int = 42,
    logger: Optional[logging.Logger] = None
) -> Dict[str, float]:
    """
    Hold out a share of sessions, train on the rest, and score the hold-out.

    Args:
        events: View/buy events
        params: Forest hyperparameters
        feature_index: Features to encode
        test_size: Hold-out ratio
        random_state: Split seed

    Returns:
        Dictionary with ``auc`` (NaN when the hold-out has one class), ``rmse``
        and the split sizes
    """
    log = logger or logging.getLogger(__name__)

    sessions = reconstruct_sessions(events, logger=log)
    if len(sessions) < 2:
        raise TrainingError(f"need at least 2 sessions to evaluate, got {len(sessions)}")

    labels = [label(session) for session in sessions]
    # Stratify only when every class can appear on both sides
    stratify = labels if min(labels.count(0.0), labels.count(1.0)) >= 2 else None
    train_sessions, test_sessions = train_test_split(
        sessions, test_size=test_size, random_state=random_state, stratify=stratify
    )

    artifact = train_on_sessions(train_sessions, params, feature_index, logger=log)

    features = np.vstack([
        vectorize(session, artifact.categorical_map, artifact.feature_index)
        for session in test_sessions
    ])
    y_true = np.array([label(session) for session in test_sessions])
    y_pred = artifact.ensemble.predict(features)

    auc = roc_auc_score(y_true, y_pred) if len(set(y_true)) == 2 else math.nan
    rmse = math.sqrt(mean_squared_error(y_true, y_pred))

    log.info(f"{'='*70}")
    log.info(f"Evaluation on {len(test_sessions):,} held-out sessions")
    log.info(f"{'='*70}")
    log.info(f"  - AUC: {auc:.4f}")
    log.info(f"  - RMSE: {rmse:.4f}")

    return {
        "auc": float(auc),
        "rmse": float(rmse),
        "train_sessions": len(train_sessions),
        "test_sessions": len(test_sessions),
    }


def save_model(artifacts: List[ModelArtifact], output_path: Path) -> None:
    """
    Save trained artifacts.

    Args:
        artifacts: Trained model artifacts, one per algorithm
        output_path: Path to save the model file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "wb") as f:
        pickle.dump(list(artifacts), f, protocol=pickle.HIGHEST_PROTOCOL)

    logger.info(f"Model saved to: {output_path}")
    logger.info(f"  - Artifacts: {len(artifacts)}")
    logger.info(f"  - File size: {output_path.stat().st_size / 1024:.2f} KB")


def load_model(model_path: Path) -> List[ModelArtifact]:
    """
    Load artifacts written by ``save_model``.

    Args:
        model_path: Path to the model file

    Returns:
        List of ModelArtifact
    """
    with open(model_path, "rb") as f:
        artifacts = pickle.load(f)

    if not isinstance(artifacts, list) or not all(isinstance(a, ModelArtifact) for a in artifacts):
        raise TypeError(f"{model_path} does not contain model artifacts")
    if not artifacts:
        raise TypeError(f"{model_path} contains no model artifacts")

    logger.info(f"Loaded {len(artifacts)} model artifact(s) from {model_path}")

    return artifacts
