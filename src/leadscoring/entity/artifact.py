"""Trained model artifact handed from training to serving."""

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..features.encoding import CategoricalMap
    from ..features.schema import FeatureIndex
    from ..training.ensemble import Ensemble


@dataclass(frozen=True)
class ModelArtifact:
    """Everything inference needs: the ensemble plus the exact encodings it was trained on."""
    ensemble: "Ensemble"
    feature_index: "FeatureIndex"
    categorical_map: "CategoricalMap"
