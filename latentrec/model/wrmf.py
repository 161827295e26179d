"""Weighted regularized matrix factorization for implicit feedback.

WRMF learns user factors P and item factors Q by alternating least squares.
Holding Q fixed, every user factor has the closed form::

    p_u = (Q^T Q + reg I + sum_{i in I_u} c_ui q_i q_i^T)^-1 sum_{i in I_u} (c_ui + 1) q_i

where c_ui is the confidence derived from the observed value. Item factors
are then solved symmetrically with the new P. The prediction is
``p_u . q_i``, or 0 when the user or item is unknown.
"""

import logging
from typing import Any, Callable, List, Mapping, Optional

import numpy as np
from joblib import Parallel, delayed
from scipy import linalg

from latentrec.core.dataset import NOT_ID, DataSet, SparseRow
from latentrec.core.exceptions import SingularMatrixError
from latentrec.core.params import ALPHA, INIT_MEAN, INIT_STD_DEV, N_EPOCHS, N_FACTORS, REG
from latentrec.core.random import RandomGenerator
from latentrec.core.utils import partition_ranges
from latentrec.model.base import BaseModel

# Configure module logger
logger = logging.getLogger(__name__)

# Default hyperparameters
DEFAULT_N_FACTORS = 15
DEFAULT_N_EPOCHS = 50
DEFAULT_INIT_MEAN = 0.0
DEFAULT_INIT_STD_DEV = 0.1
DEFAULT_REG = 0.06
DEFAULT_ALPHA = 1.0

Confidence = Callable[[np.ndarray], np.ndarray]


def linear_confidence(alpha: float) -> Confidence:
    """Confidence ``alpha * value``; alpha=1 uses the stored values as-is."""

    def confidence(values: np.ndarray) -> np.ndarray:
        return alpha * values

    return confidence


def solve_row(
    row: SparseRow,
    fixed: np.ndarray,
    base: np.ndarray,
    confidence: Confidence,
) -> np.ndarray:
    """Solve the least squares system of one user (or item).

    Args:
        row: Observed (index, value) pairs of the entity.
        fixed: Factor matrix of the other side, held fixed.
        base: ``fixed^T fixed + reg I``, shared by every row.
        confidence: Transform from observed values to confidence weights.

    Returns:
        The new factor vector.

    Raises:
        scipy.linalg.LinAlgError: If the system is singular.
    """
    factors = fixed[row.indices]
    weights = confidence(row.values)
    # A = base + sum c q q^T
    a = base + (factors.T * weights) @ factors
    # b = sum (c + 1) q
    b = (weights + 1) @ factors
    return linalg.solve(a, b, assume_a="sym")


class WRMF(BaseModel):
    """WRMF model for implicit feedback.

    Hyperparameters:
        n_factors: The number of latent factors. Default is 15.
        n_epochs: The number of ALS epochs. Default is 50.
        init_mean: The mean of initial latent factors. Default is 0.
        init_std_dev: The standard deviation of initial latent factors.
            Default is 0.1.
        reg: The regularization strength. Default is 0.06.
        alpha: Slope of the default linear confidence. Default is 1.
        n_jobs: Threads solving blocks of rows. Default is 1.

    Args:
        params: Hyperparameters.
        rng: Explicit random generator.
        confidence: Replaces the default ``alpha * value`` confidence.
    """

    def __init__(
        self,
        params: Optional[Mapping[str, Any]] = None,
        rng: Optional[RandomGenerator] = None,
        confidence: Optional[Confidence] = None,
    ):
        self._custom_confidence = confidence
        super().__init__(params, rng)

    def set_params(self, params: Mapping[str, Any]) -> None:
        super().set_params(params)
        self.n_factors = self.params.get_int(N_FACTORS, DEFAULT_N_FACTORS)
        self.n_epochs = self.params.get_int(N_EPOCHS, DEFAULT_N_EPOCHS)
        self.init_mean = self.params.get_float(INIT_MEAN, DEFAULT_INIT_MEAN)
        self.init_std_dev = self.params.get_float(INIT_STD_DEV, DEFAULT_INIT_STD_DEV)
        self.reg = self.params.get_float(REG, DEFAULT_REG)
        self.alpha = self.params.get_float(ALPHA, DEFAULT_ALPHA)
        self.confidence = self._custom_confidence or linear_confidence(self.alpha)

    def _reset(self) -> None:
        super()._reset()
        self.user_factor: Optional[np.ndarray] = None  # p_u
        self.item_factor: Optional[np.ndarray] = None  # q_i

    def _predict(self, user: int, item: int) -> float:
        if user == NOT_ID or item == NOT_ID:
            return 0.0
        return float(np.dot(self.user_factor[user], self.item_factor[item]))

    def _fit(self, dataset: DataSet) -> None:
        self.user_factor = self.rng.normal_matrix(
            dataset.user_count(), self.n_factors, self.init_mean, self.init_std_dev
        )
        self.item_factor = self.rng.normal_matrix(
            dataset.item_count(), self.n_factors, self.init_mean, self.init_std_dev
        )
        reg_eye = self.reg * np.eye(self.n_factors)

        with Parallel(n_jobs=self.n_jobs, backend="threading") as parallel:
            for epoch in range(self.n_epochs):
                # p_u = (Q^T C^u Q + reg I)^-1 Q^T C^u p(u)
                self._solve_side(
                    "user", dataset.user_ratings, self.item_factor,
                    self.user_factor, reg_eye, parallel,
                )
                # q_i = (P^T C^i P + reg I)^-1 P^T C^i p(i)
                self._solve_side(
                    "item", dataset.item_ratings, self.user_factor,
                    self.item_factor, reg_eye, parallel,
                )
                self._log_epoch(epoch, self.n_epochs)

    def _solve_side(
        self,
        side: str,
        rows: List[SparseRow],
        fixed: np.ndarray,
        out: np.ndarray,
        reg_eye: np.ndarray,
        parallel: Parallel,
    ) -> None:
        base = fixed.T @ fixed + reg_eye
        parallel(
            delayed(self._solve_block)(side, rows, low, high, fixed, base, out)
            for low, high in partition_ranges(len(rows), self.n_jobs)
        )

    def _solve_block(
        self,
        side: str,
        rows: List[SparseRow],
        low: int,
        high: int,
        fixed: np.ndarray,
        base: np.ndarray,
        out: np.ndarray,
    ) -> None:
        for k in range(low, high):
            try:
                out[k] = solve_row(rows[k], fixed, base, self.confidence)
            except linalg.LinAlgError as e:
                raise SingularMatrixError(side, k, e) from e
