"""Event loading module."""

from .events import (
    parse_event,
    is_lead_event,
    load_events_from_file,
    read_lead_events,
)

__all__ = [
    "parse_event",
    "is_lead_event",
    "load_events_from_file",
    "read_lead_events",
]
