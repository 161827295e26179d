"""Base class shared by the latent factor models.

Every model exposes the same three operations: ``set_params`` resolves
hyperparameters, ``fit`` trains on a :class:`DataSet` in place, and
``predict`` scores an (external user ID, external item ID) pair.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Hashable, Mapping, Optional

from latentrec.core.dataset import DataSet, IdSet
from latentrec.core.exceptions import ConfigurationError
from latentrec.core.params import N_JOBS, RANDOM_STATE, FitOptions, Params
from latentrec.core.random import RandomGenerator

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_N_JOBS = 1
DEFAULT_RANDOM_STATE = 0


class BaseModel(ABC):
    """Abstract base class for all latent factor models.

    Args:
        params: Hyperparameters, resolved through :meth:`set_params`.
        rng: Explicit random generator. When omitted, a fresh generator
            seeded from the ``random_state`` parameter is created on every
            fit, so repeated fits with the same parameters are identical.
    """

    def __init__(
        self,
        params: Optional[Mapping[str, Any]] = None,
        rng: Optional[RandomGenerator] = None,
    ):
        self._injected_rng = rng
        self.rng: Optional[RandomGenerator] = rng
        self.n_jobs = DEFAULT_N_JOBS
        self.verbose = True
        self._reset()
        self.set_params(params or {})

    def set_params(self, params: Mapping[str, Any]) -> None:
        """Resolve hyperparameters shared by every model.

        Subclasses extend this to read their own hyperparameters.
        """
        self.params = Params(params)
        self.random_state = self.params.get_int(RANDOM_STATE, DEFAULT_RANDOM_STATE)
        self.default_n_jobs = self.params.get_int(N_JOBS, DEFAULT_N_JOBS)

    def fit(self, dataset: DataSet, options: Optional[FitOptions] = None) -> None:
        """Train the model on a dataset.

        Args:
            dataset: Training interactions. Not modified.
            options: Fit-time overrides.

        Raises:
            LatentRecError: If training fails. The model is reset to its
                unfitted state before the error propagates.
        """
        options = options or FitOptions()
        self._init_fit(dataset, options)

        model_name = type(self).__name__
        start_time = time.time()
        logger.info(
            f"Training {model_name}",
            extra={
                "model": model_name,
                "num_users": dataset.user_count(),
                "num_items": dataset.item_count(),
                "num_interactions": len(dataset),
                "n_jobs": self.n_jobs,
            },
        )

        try:
            self._fit(dataset)
        except Exception as e:
            logger.error(
                f"Training {model_name} failed: {e}",
                exc_info=True,
                extra={"model": model_name},
            )
            self._reset()
            raise

        logger.info(
            f"Training {model_name} completed",
            extra={
                "model": model_name,
                "train_time_ms": round((time.time() - start_time) * 1000, 2),
            },
        )

    def predict(self, user_id: Hashable, item_id: Hashable) -> float:
        """Predict the score of a user for an item.

        Never raises: unknown users or items fall back to the model's
        documented default.
        """
        return self._predict(
            self.user_ids.to_dense_id(user_id), self.item_ids.to_dense_id(item_id)
        )

    def _init_fit(self, dataset: DataSet, options: FitOptions) -> None:
        if self._injected_rng is not None:
            self.rng = self._injected_rng
        else:
            self.rng = RandomGenerator(self.random_state)
        self.n_jobs = self.default_n_jobs if options.n_jobs is None else options.n_jobs
        if self.n_jobs < 1:
            raise ConfigurationError(N_JOBS, self.n_jobs, "positive int")
        self.verbose = options.verbose
        self.user_ids = dataset.user_ids
        self.item_ids = dataset.item_ids

    def _log_epoch(self, epoch: int, n_epochs: int) -> None:
        if self.verbose:
            logger.debug(f"{type(self).__name__} epoch {epoch + 1}/{n_epochs}")

    def _reset(self) -> None:
        """Drop learned state so every ID is unknown again."""
        self.user_ids = IdSet()
        self.item_ids = IdSet()
        self.global_mean = 0.0

    @abstractmethod
    def _fit(self, dataset: DataSet) -> None:
        """Run the training epochs"""

    @abstractmethod
    def _predict(self, user: int, item: int) -> float:
        """Score a dense (user, item) pair; either may be NOT_ID"""
