"""Inference module: scoring and result combination."""

from .combiner import (
    CombineStrategy,
    FirstResult,
    MeanResult,
    STRATEGIES,
    get_strategy,
    combine,
)
from .scorer import ModelHandle, predict, score_query

__all__ = [
    "CombineStrategy",
    "FirstResult",
    "MeanResult",
    "STRATEGIES",
    "get_strategy",
    "combine",
    "ModelHandle",
    "predict",
    "score_query",
]
