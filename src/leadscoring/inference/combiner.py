"""Strategies merging per-algorithm predictions into one answer."""

from abc import ABC, abstractmethod
from typing import Dict, Optional, Sequence, Type

from ..entity.session import PredictedResult


class CombineStrategy(ABC):
    """Merges a non-empty sequence of results."""

    name: str = ""

    @abstractmethod
    def combine(self, results: Sequence[PredictedResult]) -> PredictedResult:
        ...


class FirstResult(CombineStrategy):
    """Single-model deployments: return the first result."""

    name = "first"

    def combine(self, results: Sequence[PredictedResult]) -> PredictedResult:
        return results[0]


class MeanResult(CombineStrategy):
    """Average the scores of all results."""

    name = "mean"

    def combine(self, results: Sequence[PredictedResult]) -> PredictedResult:
        return PredictedResult(score=sum(r.score for r in results) / len(results))


STRATEGIES: Dict[str, Type[CombineStrategy]] = {
    FirstResult.name: FirstResult,
    MeanResult.name: MeanResult,
}


def get_strategy(name: str) -> CombineStrategy:
    try:
        return STRATEGIES[name]()
    except KeyError:
        raise ValueError(f"unknown combiner '{name}', expected one of {sorted(STRATEGIES)}") from None


def combine(results: Sequence[PredictedResult], strategy: Optional[CombineStrategy] = None) -> PredictedResult:
    """
    Merge results with ``strategy`` (FirstResult by default).

    Args:
        results: Non-empty sequence of predictions

    Returns:
        PredictedResult
    """
    if not results:
        raise ValueError("cannot combine an empty sequence of results")
    return (strategy or FirstResult()).combine(results)
