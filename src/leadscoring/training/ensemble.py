"""
Random forest regression with LightGBM.

Trees are grown independently on bagged row samples with the L2 (variance)
objective and their outputs are averaged (``boosting_type="rf"``). Encoded
categorical features are handed to LightGBM as categorical, so splits
partition the set of categories instead of thresholding the codes.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

import lightgbm as lgb
import numpy as np

from ..config import EnsembleParams, FeatureSubsetStrategy
from ..errors import TrainingCancelled, TrainingError
from ..features.vectorizer import LabeledVector

logger = logging.getLogger(__name__)

# Expected share of distinct rows in a bootstrap sample
BAGGING_FRACTION = 0.632
MAX_SEED = 2**31 - 1
# LightGBM caps num_leaves at 2**17
MAX_LEAVES_DEPTH = 17


class CancellationToken:
    """Cooperative cancel/timeout flag checked between tree iterations."""

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def check(self) -> None:
        if self.cancelled:
            raise TrainingCancelled("training cancelled")
        if self.expired:
            raise TrainingCancelled("training timed out")


@dataclass(frozen=True)
class Ensemble:
    """Trained forest plus the seed and parameters that reproduce it."""
    booster: lgb.Booster
    seed: int
    params: EnsembleParams
    num_features: int
    categorical_arity: Mapping[int, int] = field(default_factory=dict)

    def predict(self, features: np.ndarray) -> np.ndarray:
        """
        Average the member trees' outputs.

        Args:
            features: One vector or a 2-D batch of vectors

        Returns:
            1-D array of scores
        """
        features = np.asarray(features, dtype=np.float64)
        if features.ndim == 1:
            features = features.reshape(1, -1)
        if features.shape[1] != self.num_features:
            raise ValueError(f"expected {self.num_features} features, got {features.shape[1]}")
        return self.booster.predict(features)

    @property
    def num_trees(self) -> int:
        return self.booster.num_trees()


def resolve_feature_fraction(strategy: FeatureSubsetStrategy, num_features: int, num_trees: int) -> float:
    """Share of features sampled at each node for the given strategy."""
    if strategy == FeatureSubsetStrategy.AUTO:
        strategy = FeatureSubsetStrategy.ALL if num_trees == 1 else FeatureSubsetStrategy.ONETHIRD

    if strategy == FeatureSubsetStrategy.ALL:
        count = num_features
    elif strategy == FeatureSubsetStrategy.SQRT:
        count = math.ceil(math.sqrt(num_features))
    elif strategy == FeatureSubsetStrategy.LOG2:
        count = max(1, math.ceil(math.log2(num_features)))
    else:
        count = math.ceil(num_features / 3.0)

    return min(count, num_features) / num_features


def resolve_seed(seed: Optional[int]) -> int:
    """Use the given seed or draw one that can be recorded."""
    if seed is not None:
        return seed
    return int(np.random.SeedSequence().generate_state(1)[0]) % MAX_SEED


def build_lgb_params(params: EnsembleParams, num_features: int, seed: int, num_threads: int) -> Dict[str, Any]:
    """Translate EnsembleParams into LightGBM random forest parameters."""
    return {
        "objective": "regression",
        "boosting_type": "rf",
        "bagging_fraction": BAGGING_FRACTION,
        "bagging_freq": 1,
        "feature_fraction_bynode": resolve_feature_fraction(
            params.feature_subset_strategy, num_features, params.num_trees
        ),
        "max_depth": params.max_depth,
        "num_leaves": 2 ** min(params.max_depth, MAX_LEAVES_DEPTH),
        "max_bin": params.max_bins,
        "max_cat_threshold": max(1, params.max_bins // 2),
        "min_data_in_leaf": 1,
        "min_data_in_bin": 1,
        "min_data_per_group": 1,
        "seed": seed,
        "deterministic": True,
        "force_row_wise": True,
        "num_threads": num_threads,
        "verbose": -1,
    }


def _check_inputs(vectors: Sequence[LabeledVector], categorical_arity: Mapping[int, int]) -> np.ndarray:
    if not vectors:
        raise TrainingError("cannot train on an empty training set")

    features = np.vstack([v.features for v in vectors]).astype(np.float64)
    num_features = features.shape[1]

    for position, arity in categorical_arity.items():
        if not 0 <= position < num_features:
            raise TrainingError(f"categorical feature {position} is outside the {num_features}-feature vector")
        if arity <= 0:
            raise TrainingError(f"categorical feature {position} declares arity {arity}")
        column = features[:, position]
        if column.min() < 0 or column.max() >= arity:
            raise TrainingError(f"categorical feature {position} has codes outside [0, {arity})")

    return features


def _cancellation_callback(token: CancellationToken):
    def _callback(env: lgb.callback.CallbackEnv) -> None:
        token.check()
    # Checked before each tree is grown, never after the last one
    _callback.before_iteration = True
    _callback.order = 0
    return _callback


def train_ensemble(
    vectors: Sequence[LabeledVector],
    categorical_arity: Mapping[int, int],
    params: EnsembleParams,
    feature_names: Optional[List[str]] = None,
    num_threads: int = 1,
    cancel_token: Optional[CancellationToken] = None,
    logger: Optional[logging.Logger] = None
) -> Ensemble:
    """
    Train a random forest on labeled vectors.

    Args:
        vectors: Training rows
        categorical_arity: Vector position -> number of categories
        params: Forest hyperparameters
        feature_names: Column names, by position
        num_threads: LightGBM worker threads
        cancel_token: Checked between trees
        logger: Logger for progress messages

    Returns:
        Trained Ensemble
    """
    log = logger or logging.getLogger(__name__)

    features = _check_inputs(vectors, categorical_arity)
    labels = np.array([v.label for v in vectors], dtype=np.float64)
    num_features = features.shape[1]

    seed = resolve_seed(params.seed)
    if params.seed is None:
        log.info(f"No seed configured; generated seed {seed}")

    lgb_params = build_lgb_params(params, num_features, seed, num_threads)
    categorical = sorted(categorical_arity)
    names = feature_names or [f"f{i}" for i in range(num_features)]

    log.info(f"{'='*70}")
    log.info(f"Training random forest")
    log.info(f"{'='*70}")
    log.info(f"  - Samples: {len(labels):,}")
    log.info(f"  - Positive ratio: {labels.mean() * 100:.2f}%")
    log.info(f"  - Categorical arity: {dict(categorical_arity)}")
    for key, value in lgb_params.items():
        log.debug(f"  - {key}: {value}")

    if cancel_token is not None:
        cancel_token.check()

    train_data = lgb.Dataset(
        features,
        label=labels,
        feature_name=names,
        categorical_feature=categorical,
        params=lgb_params,
        free_raw_data=False,
    )

    callbacks = [_cancellation_callback(cancel_token)] if cancel_token is not None else []
    booster = lgb.train(
        lgb_params,
        train_data,
        num_boost_round=params.num_trees,
        callbacks=callbacks,
    )

    log.info(f"Training completed: {booster.num_trees()} trees, seed {seed}")

    return Ensemble(
        booster=booster,
        seed=seed,
        params=params,
        num_features=num_features,
        categorical_arity=dict(categorical_arity),
    )
