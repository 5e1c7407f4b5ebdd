"""Turn sessions and queries into fixed-order numeric feature vectors."""

from dataclasses import dataclass
from typing import Iterable, List

import numpy as np
import pandas as pd

from ..entity.session import Session
from .encoding import CategoricalMap
from .schema import FeatureIndex, Record

LABEL_COLUMN = "label"


@dataclass(frozen=True)
class LabeledVector:
    """One training row."""
    # 1.0 for converted sessions, 0.0 otherwise
    label: float
    # Encoded features ordered by the FeatureIndex
    features: np.ndarray


def vectorize(
    record: Record,
    categorical_map: CategoricalMap,
    feature_index: FeatureIndex
) -> np.ndarray:
    """
    Encode a Session or Query.

    Args:
        record: Session or Query
        categorical_map: Fitted codes
        feature_index: Feature positions

    Returns:
        float64 vector of length ``len(feature_index)``
    """
    features = np.zeros(len(feature_index), dtype=np.float64)
    for name, position in feature_index.items():
        features[position] = categorical_map.encode(name, feature_index.extract(record, name))
    return features


def label(session: Session) -> float:
    return 1.0 if session.converted else 0.0


def create_labeled_vectors(
    sessions: Iterable[Session],
    categorical_map: CategoricalMap,
    feature_index: FeatureIndex
) -> List[LabeledVector]:
    return [
        LabeledVector(label=label(session), features=vectorize(session, categorical_map, feature_index))
        for session in sessions
    ]


def create_training_dataframe(vectors: List[LabeledVector], feature_index: FeatureIndex) -> pd.DataFrame:
    """
    Lay labeled vectors out as a DataFrame.

    Args:
        vectors: Labeled vectors
        feature_index: Column names and order

    Returns:
        DataFrame with a ``label`` column followed by one column per feature
    """
    columns = list(feature_index.names)
    matrix = np.vstack([v.features for v in vectors]) if vectors else np.empty((0, len(columns)))

    df = pd.DataFrame(matrix, columns=columns)
    df.insert(0, LABEL_COLUMN, [v.label for v in vectors])

    return df
