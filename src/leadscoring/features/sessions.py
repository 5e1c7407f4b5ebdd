"""
Session reconstruction.

View and buy events are keyed by ``sessionId`` and hash-partitioned; each
partition is reduced to one Session per session id that has at least one
view. The landing view is the earliest one, with ties going to the event
seen first in the input. A session converts when any of its buys happened
strictly after the landing view.
"""

import logging
import zlib
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional, Tuple

import pandas as pd

from ..entity.session import Event, Session
from ..errors import MissingFieldError

logger = logging.getLogger(__name__)

SESSION_ID_KEY = "sessionId"
REFERRER_KEY = "referrerId"
BROWSER_KEY = "browser"

VIEW_COLUMNS = ["session_id", "seq", "event_time", "page_id", "referrer_id", "browser"]
BUY_COLUMNS = ["session_id", "seq", "event_time"]
# Ids stay strings; never let pandas infer numeric dtypes for them
ID_COLUMNS_DTYPE = {"session_id": object, "page_id": object, "referrer_id": object, "browser": object}


def get_session_id(event: Event, seq: int) -> str:
    """Return the event's sessionId, raising MissingFieldError when absent."""
    session_id = event.properties.get(SESSION_ID_KEY)
    if session_id is None:
        raise MissingFieldError(
            SESSION_ID_KEY,
            f"{event.event} event #{seq} of {event.entity_type} {event.entity_id}",
        )
    return str(session_id)


def get_landing_page_id(event: Event, seq: int) -> str:
    """Return the viewed page id; a view without a target is malformed."""
    if event.target_entity_id is None:
        raise MissingFieldError(
            "targetEntityId",
            f"view event #{seq} of {event.entity_type} {event.entity_id}",
        )
    return str(event.target_entity_id)


def _property_str(event: Event, key: str) -> str:
    value = event.properties.get(key)
    return "" if value is None else str(value)


def partition_of(session_id: str, num_partitions: int) -> int:
    """Stable hash partition; unlike hash(), identical across processes."""
    return zlib.crc32(session_id.encode("utf-8")) % num_partitions


def split_events(events: Iterable[Event]) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Split events into view and buy frames tagged with their arrival order.

    Args:
        events: Lead events in arrival order

    Returns:
        Tuple of (views_df, buys_df)
    """
    views = []
    buys = []

    for seq, event in enumerate(events):
        if event.event == "view":
            views.append((
                get_session_id(event, seq),
                seq,
                event.event_time,
                get_landing_page_id(event, seq),
                _property_str(event, REFERRER_KEY),
                _property_str(event, BROWSER_KEY),
            ))
        elif event.event == "buy":
            buys.append((get_session_id(event, seq), seq, event.event_time))

    return (
        pd.DataFrame(views, columns=VIEW_COLUMNS).astype(ID_COLUMNS_DTYPE),
        pd.DataFrame(buys, columns=BUY_COLUMNS).astype({"session_id": object}),
    )


def reconstruct_partition(views: pd.DataFrame, buys: pd.DataFrame) -> List[Session]:
    """
    Reduce the views and buys of one partition to Sessions.

    Args:
        views: View rows, all session ids of the partition
        buys: Buy rows of the same partition

    Returns:
        One Session per session id present in ``views``
    """
    if views.empty:
        return []

    landing = (
        views.sort_values(["session_id", "event_time", "seq"], kind="mergesort")
        .drop_duplicates("session_id", keep="first")
    )
    last_buy = buys.groupby("session_id")["event_time"].max() if not buys.empty else pd.Series(dtype=object)

    sessions = []
    for row in landing.itertuples(index=False):
        bought_at = last_buy.get(row.session_id)
        sessions.append(Session(
            session_id=row.session_id,
            landing_page_id=row.page_id,
            referrer_id=row.referrer_id,
            browser=row.browser,
            converted=bool(bought_at is not None and bought_at > row.event_time),
        ))

    return sessions


def reconstruct_sessions(
    events: Iterable[Event],
    num_partitions: int = 1,
    max_workers: Optional[int] = None,
    logger: Optional[logging.Logger] = None
) -> List[Session]:
    """
    Join view and buy events into one Session per viewed sessionId.

    Args:
        events: Lead events (view/buy) in arrival order
        num_partitions: Number of sessionId hash partitions
        max_workers: Threads reducing partitions (None runs them inline)
        logger: Logger for progress messages

    Returns:
        Sessions sorted by session id
    """
    log = logger or logging.getLogger(__name__)
    if num_partitions < 1:
        raise ValueError(f"num_partitions must be >= 1, got {num_partitions}")

    log.info(f"{'='*70}")
    log.info(f"Reconstructing sessions ({num_partitions} partition(s))")
    log.info(f"{'='*70}")

    views, buys = split_events(events)

    views["partition"] = [partition_of(s, num_partitions) for s in views["session_id"]]
    buys["partition"] = [partition_of(s, num_partitions) for s in buys["session_id"]]
    view_parts = dict(tuple(views.groupby("partition")))
    buy_parts = dict(tuple(buys.groupby("partition")))
    empty_buys = buys.iloc[0:0]

    # Only partitions that hold views can produce sessions
    tasks = [(view_parts[p], buy_parts.get(p, empty_buys)) for p in sorted(view_parts)]

    if max_workers and len(tasks) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            partials = list(pool.map(lambda task: reconstruct_partition(*task), tasks))
    else:
        partials = [reconstruct_partition(*task) for task in tasks]

    sessions = sorted(
        (session for partial in partials for session in partial),
        key=lambda session: session.session_id,
    )

    converted = sum(session.converted for session in sessions)
    orphan_buys = len(set(buys["session_id"]) - set(views["session_id"]))

    log.info(f"Sessions reconstructed:")
    log.info(f"  - View events: {len(views):,}")
    log.info(f"  - Buy events: {len(buys):,}")
    log.info(f"  - Sessions: {len(sessions):,} ({converted:,} converted)")
    log.info(f"  - Buy-only session ids discarded: {orphan_buys:,}")

    return sessions
