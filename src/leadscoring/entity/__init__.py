"""Domain entities."""

from .session import Event, Session, Query, PredictedResult
from .artifact import ModelArtifact

__all__ = [
    "Event",
    "Session",
    "Query",
    "PredictedResult",
    "ModelArtifact",
]
