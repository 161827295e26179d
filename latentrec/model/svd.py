"""Biased matrix factorization trained by stochastic gradient descent.

SVD, as popularized by Simon Funk during the Netflix Prize. The prediction
is set as::

    r_hat(u, i) = mu + b_u + b_i + q_i . p_u

If user u is unknown, then the bias b_u and the factors p_u are assumed to be
zero. The same applies for item i with b_i and q_i.

Two objectives are supported: squared error regression on the observed
values, and BPR (Bayesian Personalized Ranking) on sampled
(user, positive item, negative item) triples.
"""

import logging
from typing import Any, List, Mapping, Optional, Set

import numpy as np
from scipy.special import expit

from latentrec.core.dataset import NOT_ID, DataSet
from latentrec.core.exceptions import ConfigurationError, NegativeSamplingError
from latentrec.core.params import (
    INIT_MEAN,
    INIT_STD_DEV,
    LR,
    N_EPOCHS,
    N_FACTORS,
    REG,
    TARGET,
    USE_BIAS,
    Target,
)
from latentrec.core.random import RandomGenerator
from latentrec.model.base import BaseModel

# Configure module logger
logger = logging.getLogger(__name__)

# Default hyperparameters
DEFAULT_USE_BIAS = True
DEFAULT_N_FACTORS = 100
DEFAULT_N_EPOCHS = 20
DEFAULT_LR = 0.005
DEFAULT_REG = 0.02
DEFAULT_INIT_MEAN = 0.0
DEFAULT_INIT_STD_DEV = 0.1
DEFAULT_TARGET = Target.REGRESSION.value

# Rejection draws before falling back to the explicit complement
MAX_NEGATIVE_TRIES = 100


def bpr_gradient_weight(diff: float) -> float:
    """Logistic weight ``exp(-diff) / (1 + exp(-diff))`` of a BPR step.

    Args:
        diff: Predicted score of the positive item minus that of the
            negative item.

    Returns:
        Weight in (0, 1); at most 0.5 when ``diff >= 0``.
    """
    return float(expit(-diff))


class SVD(BaseModel):
    """Biased matrix factorization.

    Hyperparameters:
        use_bias: Add user and item biases. Default is True.
        n_factors: The number of latent factors. Default is 100.
        n_epochs: The number of SGD epochs. Default is 20.
        lr: The learning rate of SGD. Default is 0.005.
        reg: The regularization strength. Default is 0.02.
        init_mean: The mean of initial random latent factors. Default is 0.
        init_std_dev: The standard deviation of initial random latent
            factors. Default is 0.1.
        target: "regression" or "bpr". Default is "regression". An unknown
            value raises ConfigurationError when ``fit`` is called.

    Example:
        >>> model = SVD({"n_factors": 10, "n_epochs": 30})
        >>> model.fit(dataset)
        >>> model.predict("alice", "item-42")
    """

    def __init__(
        self,
        params: Optional[Mapping[str, Any]] = None,
        rng: Optional[RandomGenerator] = None,
    ):
        super().__init__(params, rng)

    def set_params(self, params: Mapping[str, Any]) -> None:
        super().set_params(params)
        self.use_bias = self.params.get_bool(USE_BIAS, DEFAULT_USE_BIAS)
        self.n_factors = self.params.get_int(N_FACTORS, DEFAULT_N_FACTORS)
        self.n_epochs = self.params.get_int(N_EPOCHS, DEFAULT_N_EPOCHS)
        self.lr = self.params.get_float(LR, DEFAULT_LR)
        self.reg = self.params.get_float(REG, DEFAULT_REG)
        self.init_mean = self.params.get_float(INIT_MEAN, DEFAULT_INIT_MEAN)
        self.init_std_dev = self.params.get_float(INIT_STD_DEV, DEFAULT_INIT_STD_DEV)
        self.target = self.params.get_str(TARGET, DEFAULT_TARGET)

    def _reset(self) -> None:
        super()._reset()
        self.user_factor: Optional[np.ndarray] = None  # p_u
        self.item_factor: Optional[np.ndarray] = None  # q_i
        self.user_bias: Optional[np.ndarray] = None  # b_u
        self.item_bias: Optional[np.ndarray] = None  # b_i

    def _predict(self, user: int, item: int) -> float:
        ret = self.global_mean
        if self.use_bias:
            # + b_u
            if user != NOT_ID:
                ret += self.user_bias[user]
            # + b_i
            if item != NOT_ID:
                ret += self.item_bias[item]
        # + q_i . p_u
        if user != NOT_ID and item != NOT_ID:
            ret += np.dot(self.user_factor[user], self.item_factor[item])
        return float(ret)

    def _fit(self, dataset: DataSet) -> None:
        try:
            target = Target(self.target)
        except ValueError:
            raise ConfigurationError(
                TARGET, self.target, " or ".join(repr(t.value) for t in Target)
            ) from None

        # Initialize parameters
        self.global_mean = 0.0
        self.user_bias = np.zeros(dataset.user_count())
        self.item_bias = np.zeros(dataset.item_count())
        self.user_factor = self.rng.normal_matrix(
            dataset.user_count(), self.n_factors, self.init_mean, self.init_std_dev
        )
        self.item_factor = self.rng.normal_matrix(
            dataset.item_count(), self.n_factors, self.init_mean, self.init_std_dev
        )

        if target is Target.REGRESSION:
            self._fit_regression(dataset)
        else:
            self._fit_bpr(dataset)

    def _fit_regression(self, dataset: DataSet) -> None:
        self.global_mean = dataset.global_mean
        for epoch in range(self.n_epochs):
            for i in self.rng.permutation(len(dataset)):
                user, item, rating = dataset.get_dense(i)
                # e_ui = r - r_hat
                error = rating - self._predict(user, item)
                if self.use_bias:
                    user_bias = self.user_bias[user]
                    item_bias = self.item_bias[item]
                    # b_u <- b_u + lr (e_ui - reg b_u)
                    self.user_bias[user] += self.lr * (error - self.reg * user_bias)
                    # b_i <- b_i + lr (e_ui - reg b_i)
                    self.item_bias[item] += self.lr * (error - self.reg * item_bias)
                user_factor = self.user_factor[user].copy()
                item_factor = self.item_factor[item].copy()
                self.user_factor[user] += self.lr * (
                    error * item_factor - self.reg * user_factor
                )
                self.item_factor[item] += self.lr * (
                    error * user_factor - self.reg * item_factor
                )
            self._log_epoch(epoch, self.n_epochs)

    def _fit_bpr(self, dataset: DataSet) -> None:
        positive_sets = [set(row.indices.tolist()) for row in dataset.user_ratings]
        for epoch in range(self.n_epochs):
            for _ in range(len(dataset)):
                user = self.rng.randint(dataset.user_count())
                positive = self.rng.choice(dataset.user_ratings[user].indices)
                negative = self._sample_negative(
                    user, positive_sets[user], dataset.item_count()
                )
                diff = self._predict(user, positive) - self._predict(user, negative)
                grad = bpr_gradient_weight(diff)

                user_factor = self.user_factor[user].copy()
                positive_factor = self.item_factor[positive].copy()
                negative_factor = self.item_factor[negative].copy()
                # +p_u
                self.item_factor[positive] += self.lr * (
                    grad * user_factor - self.reg * positive_factor
                )
                # -p_u
                self.item_factor[negative] += self.lr * (
                    -grad * user_factor - self.reg * negative_factor
                )
                # q_pos - q_neg
                self.user_factor[user] += self.lr * (
                    grad * (positive_factor - negative_factor) - self.reg * user_factor
                )
            self._log_epoch(epoch, self.n_epochs)

    def _sample_negative(self, user: int, positives: Set[int], n_items: int) -> int:
        """Draw an item the user has not interacted with.

        Raises:
            NegativeSamplingError: If the user has interacted with every item.
        """
        if len(positives) >= n_items:
            raise NegativeSamplingError(user, n_items)
        for _ in range(MAX_NEGATIVE_TRIES):
            candidate = self.rng.randint(n_items)
            if candidate not in positives:
                return candidate
        complement: List[int] = [i for i in range(n_items) if i not in positives]
        return self.rng.choice(np.asarray(complement))
