"""Score queries against trained artifacts."""

import threading
from typing import Optional, Sequence, Tuple

from ..entity.artifact import ModelArtifact
from ..entity.session import PredictedResult, Query
from ..features.vectorizer import vectorize
from .combiner import CombineStrategy, combine


def predict(artifact: ModelArtifact, query: Query) -> PredictedResult:
    """
    Score one query with the encodings stored in the artifact.

    Unseen categorical values fall back to the default code.
    """
    features = vectorize(query, artifact.categorical_map, artifact.feature_index)
    score = artifact.ensemble.predict(features)[0]
    return PredictedResult(score=float(score))


def score_query(
    artifacts: Sequence[ModelArtifact],
    query: Query,
    strategy: Optional[CombineStrategy] = None
) -> PredictedResult:
    """Predict with every artifact and merge the results."""
    return combine([predict(artifact, query) for artifact in artifacts], strategy)


class ModelHandle:
    """
    Holder of the artifacts currently being served.

    Readers take a snapshot with ``current()``; ``swap()`` replaces the whole
    tuple in one assignment, so a reader never sees a half-updated model.
    """

    def __init__(self, artifacts: Sequence[ModelArtifact] = ()):
        self._artifacts: Tuple[ModelArtifact, ...] = tuple(artifacts)
        # Serialises writers only
        self._swap_lock = threading.Lock()

    def current(self) -> Tuple[ModelArtifact, ...]:
        return self._artifacts

    def swap(self, artifacts: Sequence[ModelArtifact]) -> Tuple[ModelArtifact, ...]:
        """Install new artifacts and return the ones they replaced."""
        replacement = tuple(artifacts)
        if not replacement:
            raise ValueError("cannot serve an empty set of artifacts")
        with self._swap_lock:
            previous, self._artifacts = self._artifacts, replacement
        return previous

    @property
    def loaded(self) -> bool:
        return bool(self._artifacts)
