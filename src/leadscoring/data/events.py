"""Read events exported from the event store as JSON lines."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import pandas as pd

from ..entity.session import Event
from ..errors import MissingFieldError

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("event", "entityType", "entityId", "eventTime")

# event name -> expected target entity type
LEAD_EVENT_TARGETS = {
    "view": "page",
    "buy": "item",
}


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def parse_event(record: Dict[str, Any], context: str = "") -> Event:
    """
    Convert one decoded event-server record to an Event.

    Args:
        record: Decoded JSON object
        context: Location of the record, used in error messages

    Returns:
        Event with ``event_time`` as a UTC pandas Timestamp
    """
    for key in REQUIRED_KEYS:
        if key not in record:
            raise MissingFieldError(key, context)

    return Event(
        entity_type=record["entityType"],
        entity_id=str(record["entityId"]),
        event=record["event"],
        target_entity_type=record.get("targetEntityType"),
        target_entity_id=_optional_str(record.get("targetEntityId")),
        properties=record.get("properties") or {},
        event_time=pd.to_datetime(record["eventTime"], utc=True),
    )


def is_lead_event(event: Event) -> bool:
    """User views of pages and user buys of items; everything else is ignored."""
    if event.entity_type != "user":
        return False
    target = LEAD_EVENT_TARGETS.get(event.event)
    return target is not None and event.target_entity_type == target


def load_events_from_file(
    file_path: Path,
    chunk_size: int = 5000,
    max_lines: Optional[int] = None
) -> Iterator[List[Event]]:
    """
    Load events from a JSON-lines file in chunks.

    Args:
        file_path: Path to the events file
        chunk_size: Number of events per yielded chunk
        max_lines: Maximum lines to read (None reads everything)

    Yields:
        Lists of Event objects
    """
    chunk: List[Event] = []

    with open(file_path, "r", encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            if max_lines is not None and line_number > max_lines:
                break
            line = line.strip()
            if not line:
                continue

            record = json.loads(line)
            chunk.append(parse_event(record, context=f"{file_path}:{line_number}"))

            if len(chunk) >= chunk_size:
                yield chunk
                chunk = []

    if chunk:
        yield chunk


def read_lead_events(file_path: Path, max_lines: Optional[int] = None) -> List[Event]:
    """
    Read all view/buy lead events from a file.

    Args:
        file_path: Path to the events file
        max_lines: Maximum lines to read

    Returns:
        Filtered list of events in file order
    """
    events = []
    total = 0
    for chunk in load_events_from_file(file_path, max_lines=max_lines):
        total += len(chunk)
        events.extend(event for event in chunk if is_lead_event(event))

    logger.info(f"Loaded {len(events):,} lead events ({total:,} read) from {file_path}")

    return events
