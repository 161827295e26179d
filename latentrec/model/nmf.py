"""Non-negative matrix factorization with multiplicative updates.

The prediction is ``p_u . q_i`` for known users and items, and the global
mean otherwise. Factors start uniformly in ``[init_low, init_high)`` and every
epoch rescales them elementwise::

    p_uf <- p_uf * sum_{i in I_u} q_if r_ui
                 / (sum_{i in I_u} q_if r_hat_ui + reg |I_u| p_uf)

and symmetrically for q_if, so non-negative factors stay non-negative.
"""

import logging
from typing import Any, Mapping, Optional

import numpy as np
from scipy.sparse import csr_matrix

from latentrec.core.dataset import NOT_ID, DataSet
from latentrec.core.exceptions import DegenerateUpdateError
from latentrec.core.params import INIT_HIGH, INIT_LOW, N_EPOCHS, N_FACTORS, REG
from latentrec.core.random import RandomGenerator
from latentrec.model.base import BaseModel

# Configure module logger
logger = logging.getLogger(__name__)

# Default hyperparameters
DEFAULT_N_FACTORS = 15
DEFAULT_N_EPOCHS = 50
DEFAULT_INIT_LOW = 0.0
DEFAULT_INIT_HIGH = 1.0
DEFAULT_REG = 0.06


class NMF(BaseModel):
    """Non-negative matrix factorization.

    Hyperparameters:
        n_factors: The number of latent factors. Default is 15.
        n_epochs: The number of update epochs. Default is 50.
        init_low: The lower bound of initial random latent factors. Default is 0.
        init_high: The upper bound of initial random latent factors. Default is 1.
        reg: The regularization strength. Default is 0.06.
    """

    def __init__(
        self,
        params: Optional[Mapping[str, Any]] = None,
        rng: Optional[RandomGenerator] = None,
    ):
        super().__init__(params, rng)

    def set_params(self, params: Mapping[str, Any]) -> None:
        super().set_params(params)
        self.n_factors = self.params.get_int(N_FACTORS, DEFAULT_N_FACTORS)
        self.n_epochs = self.params.get_int(N_EPOCHS, DEFAULT_N_EPOCHS)
        self.init_low = self.params.get_float(INIT_LOW, DEFAULT_INIT_LOW)
        self.init_high = self.params.get_float(INIT_HIGH, DEFAULT_INIT_HIGH)
        self.reg = self.params.get_float(REG, DEFAULT_REG)

    def _reset(self) -> None:
        super()._reset()
        self.user_factor: Optional[np.ndarray] = None  # p_u
        self.item_factor: Optional[np.ndarray] = None  # q_i

    def _predict(self, user: int, item: int) -> float:
        if user != NOT_ID and item != NOT_ID:
            return float(np.dot(self.user_factor[user], self.item_factor[item]))
        return self.global_mean

    def _fit(self, dataset: DataSet) -> None:
        self.global_mean = dataset.global_mean
        self.user_factor = self.rng.uniform_matrix(
            dataset.user_count(), self.n_factors, self.init_low, self.init_high
        )
        self.item_factor = self.rng.uniform_matrix(
            dataset.item_count(), self.n_factors, self.init_low, self.init_high
        )

        ratings = dataset.user_matrix
        users, items = dataset.users, dataset.items
        user_counts = dataset.user_interaction_counts()[:, np.newaxis]
        item_counts = dataset.item_interaction_counts()[:, np.newaxis]

        for epoch in range(self.n_epochs):
            user_factor = self.user_factor
            item_factor = self.item_factor
            # r_hat for every observed pair, from the pre-epoch factors
            predictions = np.einsum(
                "ij,ij->i", user_factor[users], item_factor[items]
            )
            predicted = csr_matrix((predictions, (users, items)), shape=ratings.shape)

            # sum q_i r_ui and sum q_i r_hat_ui + reg |I_u| p_u
            user_num = ratings @ item_factor
            user_den = predicted @ item_factor + self.reg * user_counts * user_factor
            # sum p_u r_ui and sum p_u r_hat_ui + reg |U_i| q_i
            item_num = ratings.T @ user_factor
            item_den = predicted.T @ user_factor + self.reg * item_counts * item_factor

            self.user_factor = user_factor * _safe_ratio(user_num, user_den, "user", epoch)
            self.item_factor = item_factor * _safe_ratio(item_num, item_den, "item", epoch)
            self._log_epoch(epoch, self.n_epochs)


def _safe_ratio(
    numerator: np.ndarray, denominator: np.ndarray, side: str, epoch: int
) -> np.ndarray:
    zero_rows = np.flatnonzero((denominator == 0).any(axis=1))
    if len(zero_rows) > 0:
        raise DegenerateUpdateError(side, zero_rows.tolist(), epoch)
    return numerator / denominator
