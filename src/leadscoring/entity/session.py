"""Event, Session and query models."""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class Event:
    """Event model."""
    # Type of the acting entity (always "user" for lead events)
    entity_type: str
    # Id of the acting entity
    entity_id: str
    # Name of the event (e.g., view, buy)
    event: str
    # Type of the target entity (page for views, item for buys)
    target_entity_type: Optional[str]
    # Id of the target entity
    target_entity_id: Optional[str]
    # Free-form event properties; view and buy events carry sessionId
    properties: Mapping[str, Any] = field(default_factory=dict)
    # Timestamp of the Event
    event_time: Any = None


@dataclass(frozen=True)
class Session:
    """Session model."""
    # Unique Session Id
    session_id: str
    # Target page of the earliest view event
    landing_page_id: str
    # Referrer recorded on the landing view
    referrer_id: str
    # Browser recorded on the landing view
    browser: str
    # Whether a buy happened after landing
    converted: bool


@dataclass(frozen=True)
class Query:
    """Scoring query, the categorical part of a Session."""
    landing_page_id: str
    referrer_id: str
    browser: str


@dataclass(frozen=True)
class PredictedResult:
    """Conversion score for one query; not clamped to [0, 1]."""
    score: float
