"""Feature names, their vector positions, and the record attribute each one reads."""

from typing import Iterable, Iterator, Tuple, Union

from ..entity.session import Query, Session

Record = Union[Session, Query]


class FeatureIndex:
    """
    Fixed mapping from feature name to vector position.

    Every entry is a ``(name, attribute)`` pair: ``attribute`` is the Session
    and Query field the feature's raw string is read from. The index is
    self-contained, so a pickled model needs nothing registered at import
    time to encode queries.

    Positions follow insertion order. Extending an index appends new
    features after the existing ones, which keep their positions.
    """

    def __init__(self, features: Iterable[Tuple[str, str]]):
        self._features = tuple((name, attribute) for name, attribute in features)
        names = [name for name, _ in self._features]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate feature names in {names}")
        self._positions = {name: i for i, name in enumerate(names)}
        self._attributes = dict(self._features)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self._features)

    def position(self, name: str) -> int:
        return self._positions[name]

    def attribute(self, name: str) -> str:
        return self._attributes[name]

    def extended(self, name: str, attribute: str) -> "FeatureIndex":
        """Return a new index with feature ``name`` (read from ``attribute``) appended."""
        return FeatureIndex(self._features + ((name, attribute),))

    def extract(self, record: Record, name: str) -> str:
        """Raw string value of feature ``name`` for a Session or Query."""
        return getattr(record, self._attributes[name])

    def items(self) -> Iterator[Tuple[str, int]]:
        return iter(self._positions.items())

    def __iter__(self) -> Iterator[str]:
        return iter(self._positions)

    def __len__(self) -> int:
        return len(self._features)

    def __contains__(self, name: object) -> bool:
        return name in self._positions

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FeatureIndex) and self._features == other._features

    def __hash__(self) -> int:
        return hash(self._features)

    def __repr__(self) -> str:
        return f"FeatureIndex({list(self._features)})"

    def __reduce__(self):
        return (FeatureIndex, (self._features,))


DEFAULT_FEATURE_INDEX = FeatureIndex((
    ("landingPage", "landing_page_id"),
    ("referrer", "referrer_id"),
    ("browser", "browser"),
))
