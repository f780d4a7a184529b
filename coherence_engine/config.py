"""
Engine Configuration

Single configuration object shared by the engine and the window controller.
Invalid values are rejected at construction with ConfigurationError;
nothing is silently clamped.
"""

from __future__ import annotations
from dataclasses import dataclass, fields
from datetime import timedelta
from typing import Any, Dict, Mapping, Optional
import os

from .contracts.base import ConfigurationError


_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

# Fields whose default is None need an explicit coercion type
_OPTIONAL_TYPES = {
    "trial_time_budget_secs": float,
    "max_workers": int,
    "coherence_threshold": float,
}


@dataclass
class CoherenceConfig:
    """Configuration for coherence computation and streaming windows."""
    # Graph accumulation
    min_edge_weight: float = 0.01

    # Windowing (seconds)
    window_size_secs: float = 86400.0 * 7  # 1 week
    window_step_secs: float = 86400.0      # 1 day
    replay_overlap: bool = False

    # Minimum cut estimation
    approximate: bool = True
    epsilon: float = 0.1
    parallel: bool = True
    exact_node_threshold: int = 32
    max_trials: int = 2000
    trial_time_budget_secs: Optional[float] = None
    max_workers: Optional[int] = None
    random_seed: int = 42

    # Signal synthesis
    max_cut_nodes: int = 10

    # Event detection
    coherence_threshold: Optional[float] = None
    anomaly_sigma: float = 3.0
    anomaly_window: int = 10
    anomaly_min_samples: int = 3

    # Boundary tracking
    track_boundaries: bool = True
    boundary_match_threshold: float = 0.8
    boundary_stability_window: int = 5
    boundary_stability_tolerance: float = 0.01

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Raise ConfigurationError on the first invalid option."""
        if self.window_size_secs <= 0:
            raise ConfigurationError("window_size_secs must be positive", value=self.window_size_secs)
        if self.window_step_secs <= 0:
            raise ConfigurationError("window_step_secs must be positive", value=self.window_step_secs)
        if self.epsilon < 0:
            raise ConfigurationError("epsilon must be non-negative", value=self.epsilon)
        if self.min_edge_weight < 0:
            raise ConfigurationError("min_edge_weight must be non-negative", value=self.min_edge_weight)
        if self.exact_node_threshold < 0:
            raise ConfigurationError("exact_node_threshold must be non-negative")
        if self.max_trials <= 0:
            raise ConfigurationError("max_trials must be positive", value=self.max_trials)
        if self.trial_time_budget_secs is not None and self.trial_time_budget_secs <= 0:
            raise ConfigurationError("trial_time_budget_secs must be positive when set")
        if self.max_workers is not None and self.max_workers <= 0:
            raise ConfigurationError("max_workers must be positive when set")
        if self.max_cut_nodes < 0:
            raise ConfigurationError("max_cut_nodes must be non-negative")
        if self.anomaly_sigma <= 0:
            raise ConfigurationError("anomaly_sigma must be positive")
        if self.anomaly_window <= 0 or self.anomaly_min_samples <= 0:
            raise ConfigurationError("anomaly_window and anomaly_min_samples must be positive")
        if not 0.0 < self.boundary_match_threshold <= 1.0:
            raise ConfigurationError("boundary_match_threshold must be in (0, 1]")
        if self.boundary_stability_window <= 0:
            raise ConfigurationError("boundary_stability_window must be positive")
        if self.boundary_stability_tolerance < 0:
            raise ConfigurationError("boundary_stability_tolerance must be non-negative")

    @property
    def window_size(self) -> timedelta:
        return timedelta(seconds=self.window_size_secs)

    @property
    def window_step(self) -> timedelta:
        return timedelta(seconds=self.window_step_secs)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> CoherenceConfig:
        """Build from plain values. Unknown keys are rejected."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**dict(values))

    @classmethod
    def from_env(
        cls,
        prefix: str = "COHERENCE_",
        environ: Optional[Mapping[str, str]] = None
    ) -> CoherenceConfig:
        """
        Read options from environment variables, e.g. COHERENCE_EPSILON=0.05.
        Values are coerced to the type of the field default.
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        for f in fields(cls):
            raw = environ.get(prefix + f.name.upper())
            if raw is None:
                continue
            default = f.default
            try:
                values[f.name] = _coerce(f.name, raw, default)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid value for {prefix}{f.name.upper()}: {raw!r}"
                ) from e

        return cls.from_mapping(values)


def _coerce(name: str, raw: str, default: Any) -> Any:
    text = raw.strip()
    if isinstance(default, bool):
        lowered = text.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValueError(f"not a boolean: {raw}")
    if default is None:
        if text.lower() in ("", "none", "null"):
            return None
        return _OPTIONAL_TYPES[name](text)
    if isinstance(default, int):
        return int(text)
    return float(text)
