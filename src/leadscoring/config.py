"""
Engine configuration.

Hyperparameters live in an ``engine.json`` laid out like an event-server
engine variant::

    {
      "datasource": {"params": {"eventsPath": "data/events.jsonl"}},
      "algorithms": [{"name": "randomforest", "params": {...}}],
      "serving": {"combiner": "first"}
    }

Nothing here is process-wide: the loaded ``EngineConfig`` is passed into
each entry point explicitly.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import ConfigError
from .inference.combiner import STRATEGIES


class FeatureSubsetStrategy(str, Enum):
    """Number of features considered at each tree node."""
    ALL = "all"
    SQRT = "sqrt"
    LOG2 = "log2"
    ONETHIRD = "onethird"
    AUTO = "auto"


class Impurity(str, Enum):
    """Split criterion; regression trees only support variance."""
    VARIANCE = "variance"


@dataclass(frozen=True)
class EnsembleParams:
    """Random forest hyperparameters. Every field but ``seed`` is required."""
    num_trees: int
    feature_subset_strategy: FeatureSubsetStrategy
    impurity: Impurity
    max_depth: int
    max_bins: int
    seed: Optional[int] = None

    def __post_init__(self):
        _require_int("numTrees", self.num_trees, minimum=1)
        _require_int("maxDepth", self.max_depth, minimum=1)
        _require_int("maxBins", self.max_bins, minimum=2)
        if self.seed is not None:
            _require_int("seed", self.seed, minimum=0)
        # Accept raw strings and normalise them to the enums
        object.__setattr__(
            self, "feature_subset_strategy",
            _to_enum(FeatureSubsetStrategy, "featureSubsetStrategy", self.feature_subset_strategy),
        )
        object.__setattr__(self, "impurity", _to_enum(Impurity, "impurity", self.impurity))

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> "EnsembleParams":
        """Build from the camelCase ``params`` block of an algorithm entry."""
        return cls(
            num_trees=_get_required(params, "numTrees"),
            feature_subset_strategy=_get_required(params, "featureSubsetStrategy"),
            impurity=_get_required(params, "impurity"),
            max_depth=_get_required(params, "maxDepth"),
            max_bins=_get_required(params, "maxBins"),
            seed=params.get("seed"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "numTrees": self.num_trees,
            "featureSubsetStrategy": self.feature_subset_strategy.value,
            "impurity": self.impurity.value,
            "maxDepth": self.max_depth,
            "maxBins": self.max_bins,
            "seed": self.seed,
        }


@dataclass(frozen=True)
class EngineConfig:
    """Data source location, one parameter set per algorithm, and the serving combiner."""
    events_path: Path
    algorithms: List[EnsembleParams] = field(default_factory=list)
    combiner: str = "first"


def _get_required(params: Dict[str, Any], key: str) -> Any:
    if key not in params:
        raise ConfigError(f"missing required parameter '{key}'")
    return params[key]


def _require_int(key: str, value: Any, minimum: int) -> None:
    # bool is an int subclass but never a valid count
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"'{key}' must be an integer, got {value!r}")
    if value < minimum:
        raise ConfigError(f"'{key}' must be >= {minimum}, got {value}")


def _to_enum(enum_cls, key: str, value: Any):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise ConfigError(f"'{key}' must be one of {{{choices}}}, got {value!r}") from None


def parse_engine_config(raw: Dict[str, Any], base_dir: Optional[Path] = None) -> EngineConfig:
    """
    Validate a decoded engine.json document.

    Args:
        raw: Decoded JSON document
        base_dir: Directory relative event paths are resolved against

    Returns:
        EngineConfig
    """
    if not isinstance(raw, dict):
        raise ConfigError("engine config must be a JSON object")

    datasource = raw.get("datasource", {}).get("params", {})
    events_path = Path(_get_required(datasource, "eventsPath"))
    if base_dir is not None and not events_path.is_absolute():
        events_path = base_dir / events_path

    algorithms = raw.get("algorithms")
    if not algorithms:
        raise ConfigError("at least one entry under 'algorithms' is required")

    params = []
    for position, algorithm in enumerate(algorithms):
        if "params" not in algorithm:
            raise ConfigError(f"algorithm #{position} has no 'params' block")
        params.append(EnsembleParams.from_dict(algorithm["params"]))

    combiner = raw.get("serving", {}).get("combiner", "first")
    if combiner not in STRATEGIES:
        raise ConfigError(f"'combiner' must be one of {sorted(STRATEGIES)}, got {combiner!r}")

    return EngineConfig(events_path=events_path, algorithms=params, combiner=combiner)


def load_engine_config(config_path: Path) -> EngineConfig:
    """
    Load engine.json from disk.

    Args:
        config_path: Path to the engine config file

    Returns:
        EngineConfig with event paths resolved relative to the file
    """
    config_path = Path(config_path)
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"{config_path} is not valid JSON: {e}") from e

    return parse_engine_config(raw, base_dir=config_path.parent)
