"""Hyperparameter names and typed parameter resolution.

Models receive a plain mapping of hyperparameters. Each model resolves the
names it understands through :class:`Params`, falling back to documented
defaults for anything missing.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from latentrec.core.exceptions import ConfigurationError

# Configure module logger
logger = logging.getLogger(__name__)

# Parameter names
USE_BIAS = "use_bias"
N_FACTORS = "n_factors"
N_EPOCHS = "n_epochs"
LR = "lr"
REG = "reg"
INIT_MEAN = "init_mean"
INIT_STD_DEV = "init_std_dev"
INIT_LOW = "init_low"
INIT_HIGH = "init_high"
TARGET = "target"
N_JOBS = "n_jobs"
ALPHA = "alpha"
RANDOM_STATE = "random_state"

KNOWN_PARAMS = frozenset(
    {
        USE_BIAS,
        N_FACTORS,
        N_EPOCHS,
        LR,
        REG,
        INIT_MEAN,
        INIT_STD_DEV,
        INIT_LOW,
        INIT_HIGH,
        TARGET,
        N_JOBS,
        ALPHA,
        RANDOM_STATE,
    }
)


class Target(str, Enum):
    """Training objective of the SVD model."""

    REGRESSION = "regression"
    BPR = "bpr"


class Params(dict):
    """Hyperparameter mapping with typed lookups.

    Every getter returns the default when the name is absent. A present value
    is coerced to the requested type; values that cannot be coerced raise
    :class:`ConfigurationError`.

    Example:
        >>> params = Params({"n_factors": "8", "lr": 0.01})
        >>> params.get_int(N_FACTORS, 100)
        8
        >>> params.get_float(REG, 0.02)
        0.02
    """

    def __init__(self, values: Optional[Mapping[str, Any]] = None):
        super().__init__(values or {})
        unknown = sorted(set(self) - KNOWN_PARAMS)
        if unknown:
            logger.warning(f"Ignoring unknown parameters: {unknown}")

    def get_int(self, name: str, default: int) -> int:
        if name not in self:
            return default
        value = self[name]
        if isinstance(value, bool):
            raise ConfigurationError(name, value, "int")
        try:
            as_float = float(value)
        except (TypeError, ValueError):
            raise ConfigurationError(name, value, "int") from None
        if not as_float.is_integer():
            raise ConfigurationError(name, value, "int")
        return int(as_float)

    def get_float(self, name: str, default: float) -> float:
        if name not in self:
            return default
        value = self[name]
        if isinstance(value, bool):
            raise ConfigurationError(name, value, "float")
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ConfigurationError(name, value, "float") from None

    def get_bool(self, name: str, default: bool) -> bool:
        if name not in self:
            return default
        value = self[name]
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower() == "true"
        raise ConfigurationError(name, value, "bool")

    def get_str(self, name: str, default: str) -> str:
        if name not in self:
            return default
        value = self[name]
        if isinstance(value, Enum):
            return str(value.value)
        if not isinstance(value, str):
            raise ConfigurationError(name, value, "str")
        return value


@dataclass
class FitOptions:
    """Fit-time overrides.

    Attributes:
        n_jobs: Worker count for the parallel sections. ``None`` keeps the
            ``n_jobs`` hyperparameter.
        verbose: Log per-epoch progress at DEBUG level.
    """

    n_jobs: Optional[int] = None
    verbose: bool = True
