"""SVD++: biased matrix factorization with implicit feedback factors.

The prediction is set as::

    r_hat(u, i) = mu + b_u + b_i + q_i . (p_u + |I_u|^-1/2 sum_{j in I_u} y_j)

where the y_j are a second set of item factors capturing implicit feedback:
the fact that user u interacted with item j, regardless of the value. If user
u is unknown, then b_u, p_u and the implicit term are assumed to be zero. The
same applies for item i with b_i and q_i.
"""

import logging
from typing import Any, List, Mapping, Optional

import numpy as np
from joblib import Parallel, delayed

from latentrec.core.dataset import NOT_ID, DataSet, SparseRow
from latentrec.core.params import (
    INIT_MEAN,
    INIT_STD_DEV,
    LR,
    N_EPOCHS,
    N_FACTORS,
    REG,
)
from latentrec.core.random import RandomGenerator
from latentrec.core.utils import partition_ranges
from latentrec.model.base import BaseModel

# Configure module logger
logger = logging.getLogger(__name__)

# Default hyperparameters
DEFAULT_N_FACTORS = 20
DEFAULT_N_EPOCHS = 20
DEFAULT_LR = 0.007
DEFAULT_REG = 0.02
DEFAULT_INIT_MEAN = 0.0
DEFAULT_INIT_STD_DEV = 0.1


class SVDpp(BaseModel):
    """SVD++ model.

    Hyperparameters:
        n_factors: The number of latent factors. Default is 20.
        n_epochs: The number of SGD epochs. Default is 20.
        lr: The learning rate of SGD. Default is 0.007.
        reg: The regularization strength. Default is 0.02.
        init_mean: The mean of initial random latent factors. Default is 0.
        init_std_dev: The standard deviation of initial random latent
            factors. Default is 0.1.
        n_jobs: Threads sharing each user's implicit factor update.
            Default is 1. ``FitOptions.n_jobs`` overrides it for one fit.
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
        self.lr = self.params.get_float(LR, DEFAULT_LR)
        self.reg = self.params.get_float(REG, DEFAULT_REG)
        self.init_mean = self.params.get_float(INIT_MEAN, DEFAULT_INIT_MEAN)
        self.init_std_dev = self.params.get_float(INIT_STD_DEV, DEFAULT_INIT_STD_DEV)

    def _reset(self) -> None:
        super()._reset()
        self.user_ratings: List[SparseRow] = []  # I_u
        self.user_factor: Optional[np.ndarray] = None  # p_u
        self.item_factor: Optional[np.ndarray] = None  # q_i
        self.impl_factor: Optional[np.ndarray] = None  # y_j
        self.user_bias: Optional[np.ndarray] = None  # b_u
        self.item_bias: Optional[np.ndarray] = None  # b_i

    def implicit_sum(self, user: int) -> np.ndarray:
        """Scaled implicit term ``|I_u|^-1/2 sum_{j in I_u} y_j`` of a dense user."""
        indices = self.user_ratings[user].indices
        return self.impl_factor[indices].sum(axis=0) * len(indices) ** -0.5

    def _predict(
        self, user: int, item: int, sum_factor: Optional[np.ndarray] = None
    ) -> float:
        ret = self.global_mean
        # + b_u
        if user != NOT_ID:
            ret += self.user_bias[user]
        # + b_i
        if item != NOT_ID:
            ret += self.item_bias[item]
        # + q_i . (p_u + |I_u|^-1/2 sum y_j)
        if user != NOT_ID and item != NOT_ID:
            if sum_factor is None:
                sum_factor = self.implicit_sum(user)
            ret += np.dot(self.user_factor[user] + sum_factor, self.item_factor[item])
        return float(ret)

    def _fit(self, dataset: DataSet) -> None:
        # Initialize parameters
        self.global_mean = dataset.global_mean
        self.user_bias = np.zeros(dataset.user_count())
        self.item_bias = np.zeros(dataset.item_count())
        self.user_factor = self.rng.normal_matrix(
            dataset.user_count(), self.n_factors, self.init_mean, self.init_std_dev
        )
        self.item_factor = self.rng.normal_matrix(
            dataset.item_count(), self.n_factors, self.init_mean, self.init_std_dev
        )
        self.impl_factor = self.rng.normal_matrix(
            dataset.item_count(), self.n_factors, self.init_mean, self.init_std_dev
        )
        self.user_ratings = dataset.user_ratings

        for epoch in range(self.n_epochs):
            with Parallel(n_jobs=self.n_jobs, backend="threading") as parallel:
                for user in range(dataset.user_count()):
                    self._fit_user(user, parallel)
            self._log_epoch(epoch, self.n_epochs)

    def _fit_user(self, user: int, parallel: Parallel) -> None:
        row = self.user_ratings[user]
        size = len(row)
        scale = size ** -0.5
        sum_factor = self.implicit_sum(user)
        step = np.zeros(self.n_factors)

        for _, item, rating in row:
            user_bias = self.user_bias[user]
            item_bias = self.item_bias[item]
            user_factor = self.user_factor[user].copy()
            item_factor = self.item_factor[item].copy()
            # e_ui = r - r_hat
            error = rating - self._predict(user, item, sum_factor)
            # b_u <- b_u + lr (e_ui - reg b_u)
            self.user_bias[user] += self.lr * (error - self.reg * user_bias)
            # b_i <- b_i + lr (e_ui - reg b_i)
            self.item_bias[item] += self.lr * (error - self.reg * item_bias)
            self.user_factor[user] += self.lr * (
                error * item_factor - self.reg * user_factor
            )
            self.item_factor[item] += self.lr * (
                error * (user_factor + sum_factor) - self.reg * item_factor
            )
            # e_ui q_i |I_u|^-1/2
            step += error * item_factor * scale

        # Workers own disjoint slices of the user's items
        parallel(
            delayed(self._update_implicit)(row.indices[low:high], step, size)
            for low, high in partition_ranges(size, self.n_jobs)
        )

    def _update_implicit(self, items: np.ndarray, step: np.ndarray, size: int) -> None:
        impl_factor = self.impl_factor[items]
        # y_j <- y_j + lr (step / |I_u| - reg y_j)
        self.impl_factor[items] = impl_factor + self.lr * (
            step / size - self.reg * impl_factor
        )
