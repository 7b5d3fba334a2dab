"""
Configuration for numerical tolerances and limits.

Settings can be loaded from a JSON document whose keys match the fields of
NURBSConfig, e.g.:

    {
        "max_degree": 10,
        "knot_tolerance": 4.44e-16,
        "maxima_max_iterations": 200,
        "maxima_tolerance": 1e-14
    }

Missing keys keep their defaults, unknown keys are rejected.
"""

import json
import logging
import sys
from dataclasses import dataclass, fields, asdict
from typing import Dict, Any

from ..errors import NURBSConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class NURBSConfig:
    """
    Numerical settings shared by knot vector and patch algorithms.

    Attributes:
        max_degree: Largest polynomial degree supported by basis evaluation
        knot_tolerance: Two knots closer than this are considered equal
        maxima_max_iterations: Iteration cap of the basis maximum bisection
        maxima_tolerance: Parametric width at which the bisection stops
    """
    max_degree: int = 10
    knot_tolerance: float = 2.0 * sys.float_info.epsilon
    maxima_max_iterations: int = 200
    maxima_tolerance: float = 1e-14

    def __post_init__(self):
        if self.max_degree < 0:
            raise NURBSConfigurationError(
                f"max_degree must be non-negative, got {self.max_degree}"
            )
        if self.maxima_max_iterations <= 0:
            raise NURBSConfigurationError(
                f"maxima_max_iterations must be positive, got {self.maxima_max_iterations}"
            )
        if self.knot_tolerance < 0 or self.maxima_tolerance < 0:
            raise NURBSConfigurationError("Tolerances must be non-negative")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_DEFAULT_CONFIG = NURBSConfig()


def default_config() -> NURBSConfig:
    """Return the module-wide default configuration."""
    return _DEFAULT_CONFIG


def config_from_dict(data: Dict[str, Any]) -> NURBSConfig:
    """
    Build a configuration from a mapping.

    Raises:
        NURBSConfigurationError: If the mapping holds unknown keys
    """
    known = {f.name for f in fields(NURBSConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise NURBSConfigurationError(f"Unknown configuration keys: {unknown}")
    return NURBSConfig(**data)


def load_config(filename: str) -> NURBSConfig:
    """
    Load a configuration from a JSON file.

    Parameters:
        filename: Path to the JSON document

    Returns:
        NURBSConfig with the file's values applied over the defaults
    """
    with open(filename, "r") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise NURBSConfigurationError(
            f"Configuration file {filename} must hold a JSON object"
        )
    config = config_from_dict(data)
    logger.debug("Loaded configuration from %s: %s", filename, config)
    return config
