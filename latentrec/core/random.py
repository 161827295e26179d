"""Random number generation for factor initialization and sampling."""

from typing import Optional, Union

import numpy as np
from sklearn.utils import check_random_state

SeedLike = Optional[Union[int, np.random.RandomState]]


class RandomGenerator:
    """Source of random scalars, vectors and matrices for the trainers.

    Wraps a numpy ``RandomState`` resolved through scikit-learn's
    ``check_random_state``, so an int seed, an existing ``RandomState`` or
    ``None`` are all accepted.

    Args:
        seed: Seed or random state. Fixed seeds give reproducible fits.
    """

    def __init__(self, seed: SeedLike = None):
        self._state = check_random_state(seed)

    def normal_matrix(
        self, rows: int, cols: int, mean: float, std_dev: float
    ) -> np.ndarray:
        return self._state.normal(mean, std_dev, size=(rows, cols))

    def uniform_matrix(
        self, rows: int, cols: int, low: float, high: float
    ) -> np.ndarray:
        return self._state.uniform(low, high, size=(rows, cols))

    def permutation(self, n: int) -> np.ndarray:
        """Random permutation of ``0..n-1``."""
        return self._state.permutation(n)

    def randint(self, n: int) -> int:
        """Uniform random integer in ``[0, n)``."""
        return int(self._state.randint(n))

    def choice(self, candidates: np.ndarray) -> int:
        """Uniform random element of a non-empty integer array."""
        return int(candidates[self._state.randint(len(candidates))])
