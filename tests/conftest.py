"""Shared fixtures and event builders."""

import pytest

from leadscoring.config import EnsembleParams
from leadscoring.entity import Event
from leadscoring.training import train_model


def view(session_id, page, t, referrer=None, browser=None, user="u1"):
    properties = {"sessionId": session_id}
    if referrer is not None:
        properties["referrerId"] = referrer
    if browser is not None:
        properties["browser"] = browser
    return Event(
        entity_type="user",
        entity_id=user,
        event="view",
        target_entity_type="page",
        target_entity_id=page,
        properties=properties,
        event_time=t,
    )


def buy(session_id, item, t, user="u1"):
    return Event(
        entity_type="user",
        entity_id=user,
        event="buy",
        target_entity_type="item",
        target_entity_id=item,
        properties={"sessionId": session_id},
        event_time=t,
    )


def make_events(num_sessions=60):
    """Sessions landing on 'pricing' convert, all others do not."""
    pages = ["pricing", "home", "blog", "docs"]
    referrers = ["google", "twitter", ""]
    browsers = ["Chrome", "Firefox", "Safari"]

    events = []
    for i in range(num_sessions):
        session_id = f"s{i:03d}"
        page = pages[i % len(pages)]
        events.append(view(
            session_id, page, t=10 * i,
            referrer=referrers[i % len(referrers)],
            browser=browsers[(i // 2) % len(browsers)],
            user=f"u{i}",
        ))
        events.append(view(session_id, "home", t=10 * i + 3, user=f"u{i}"))
        if page == "pricing":
            events.append(buy(session_id, "plan", t=10 * i + 5, user=f"u{i}"))
    return events


@pytest.fixture
def params():
    return EnsembleParams(
        num_trees=5,
        feature_subset_strategy="auto",
        impurity="variance",
        max_depth=4,
        max_bins=32,
        seed=12345,
    )


@pytest.fixture
def events():
    return make_events()


@pytest.fixture(scope="session")
def artifact():
    params = EnsembleParams(
        num_trees=5,
        feature_subset_strategy="all",
        impurity="variance",
        max_depth=4,
        max_bins=32,
        seed=7,
    )
    return train_model(make_events(), params)
