"""
Categorical encoding.

Each feature gets its own ``CategoryCodes``: the distinct observed strings
plus the default value, sorted lexicographically and numbered densely from
zero. Codes are fitted once at training time and shipped inside the model
artifact; inference only ever looks values up.
"""

from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping

from ..entity.session import Session
from ..errors import EncodingError
from .schema import FeatureIndex, Record

DEFAULT_VALUE = ""

# Always part of the training set, so the default code and both labels are learnable
DEFAULT_SESSIONS = (
    Session(session_id="", landing_page_id="", referrer_id="", browser="", converted=False),
    Session(session_id="", landing_page_id="", referrer_id="", browser="", converted=True),
)


class CategoryCodes(Mapping[str, int]):
    """Read-only value -> code map of a single feature."""

    def __init__(self, codes: Mapping[str, int], default_value: str = DEFAULT_VALUE):
        self._codes = MappingProxyType(dict(codes))
        self.default_value = default_value

    def __getitem__(self, value: str) -> int:
        return self._codes[value]

    def __iter__(self) -> Iterator[str]:
        return iter(self._codes)

    def __len__(self) -> int:
        return len(self._codes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CategoryCodes):
            return NotImplemented
        return dict(self._codes) == dict(other._codes) and self.default_value == other.default_value

    def __hash__(self) -> int:
        return hash((tuple(sorted(self._codes.items())), self.default_value))

    def __repr__(self) -> str:
        return f"CategoryCodes({dict(self._codes)!r})"

    def __reduce__(self):
        # mappingproxy does not pickle
        return (CategoryCodes, (dict(self._codes), self.default_value))

    @property
    def cardinality(self) -> int:
        return len(self._codes)


def fit(values: Iterable[str], default_value: str = DEFAULT_VALUE) -> CategoryCodes:
    """
    Assign dense codes to the distinct values, always including the default.

    Args:
        values: Observed values of one feature
        default_value: Value unseen inputs fall back to

    Returns:
        CategoryCodes numbered in lexicographic order
    """
    distinct = set(values)
    distinct.add(default_value)
    return CategoryCodes(
        {value: code for code, value in enumerate(sorted(distinct))},
        default_value=default_value,
    )


def lookup(codes: Mapping[str, int], value: str, default_value: str = DEFAULT_VALUE) -> int:
    """Code of ``value``, or of ``default_value`` when ``value`` was never seen."""
    if value in codes:
        return codes[value]
    if default_value in codes:
        return codes[default_value]
    raise EncodingError(f"default value {default_value!r} has no code in {codes!r}")


class CategoricalMap(Mapping[str, CategoryCodes]):
    """Read-only feature name -> CategoryCodes map, persisted with the model."""

    def __init__(self, features: Mapping[str, CategoryCodes]):
        self._features = MappingProxyType(dict(features))

    def __getitem__(self, name: str) -> CategoryCodes:
        return self._features[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._features)

    def __len__(self) -> int:
        return len(self._features)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CategoricalMap):
            return NotImplemented
        return dict(self._features) == dict(other._features)

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._features.items())))

    def __repr__(self) -> str:
        return f"CategoricalMap({dict(self._features)!r})"

    def __reduce__(self):
        return (CategoricalMap, (dict(self._features),))

    def encode(self, name: str, value: str) -> int:
        codes = self._features[name]
        return lookup(codes, value, codes.default_value)

    def arity(self, feature_index: FeatureIndex) -> Dict[int, int]:
        """Vector position -> cardinality for every categorical feature in the index."""
        return {
            feature_index.position(name): self._features[name].cardinality
            for name in feature_index
            if name in self._features
        }


def fit_categorical_map(
    records: Iterable[Record],
    feature_index: FeatureIndex,
    default_value: str = DEFAULT_VALUE
) -> CategoricalMap:
    """
    Fit one CategoryCodes per feature of the index.

    Args:
        records: Sessions (already including the default sessions)
        feature_index: Features to encode
        default_value: Fallback value of every feature

    Returns:
        CategoricalMap
    """
    records = list(records)
    return CategoricalMap({
        name: fit((feature_index.extract(record, name) for record in records), default_value)
        for name in feature_index
    })


def add_default_sessions(sessions: Iterable[Session]) -> List[Session]:
    """Append the two all-default sessions (one per label) to the training sessions."""
    return list(sessions) + list(DEFAULT_SESSIONS)
