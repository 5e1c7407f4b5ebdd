"""Feature generation module."""

from .schema import DEFAULT_FEATURE_INDEX, FeatureIndex
from .sessions import reconstruct_sessions, split_events, reconstruct_partition
from .encoding import (
    DEFAULT_VALUE,
    DEFAULT_SESSIONS,
    CategoryCodes,
    CategoricalMap,
    fit,
    lookup,
    fit_categorical_map,
    add_default_sessions,
)
from .vectorizer import (
    LabeledVector,
    vectorize,
    label,
    create_labeled_vectors,
    create_training_dataframe,
)

__all__ = [
    "DEFAULT_FEATURE_INDEX",
    "FeatureIndex",
    "reconstruct_sessions",
    "split_events",
    "reconstruct_partition",
    "DEFAULT_VALUE",
    "DEFAULT_SESSIONS",
    "CategoryCodes",
    "CategoricalMap",
    "fit",
    "lookup",
    "fit_categorical_map",
    "add_default_sessions",
    "LabeledVector",
    "vectorize",
    "label",
    "create_labeled_vectors",
    "create_training_dataframe",
]
