"""Tests for the NMF model."""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from latentrec.core.dataset import DataSet
from latentrec.core.exceptions import DegenerateUpdateError
from latentrec.model.nmf import NMF


@pytest.fixture
def ratings() -> DataSet:
    """Four users x three items, every entity rated at least once."""
    return DataSet.from_triples(
        [
            ("u0", "i0", 5.0),
            ("u0", "i1", 3.0),
            ("u1", "i0", 4.0),
            ("u1", "i2", 1.0),
            ("u2", "i1", 2.0),
            ("u3", "i2", 5.0),
            ("u3", "i0", 3.0),
        ]
    )


def test_default_params() -> None:
    """Test the documented defaults."""
    model = NMF()

    assert model.n_factors == 15
    assert model.n_epochs == 50
    assert model.init_low == 0.0
    assert model.init_high == 1.0
    assert model.reg == 0.06


def test_unknown_entities_return_global_mean(ratings: DataSet) -> None:
    """Test that any unknown side falls back to the global mean."""
    model = NMF({"n_factors": 3, "n_epochs": 2})
    model.fit(ratings)

    assert model.predict("nobody", "nothing") == ratings.global_mean
    assert model.predict("u0", "nothing") == ratings.global_mean
    assert model.predict("nobody", "i0") == ratings.global_mean
    assert model.predict("u0", "i0") == pytest.approx(
        np.dot(model.user_factor[0], model.item_factor[0])
    )


@pytest.mark.parametrize("n_epochs", [1, 2, 5, 20])
def test_factors_stay_non_negative(ratings: DataSet, n_epochs: int) -> None:
    """Test that multiplicative updates keep every factor entry non-negative."""
    model = NMF({"n_factors": 4, "n_epochs": n_epochs, "random_state": 5})
    model.fit(ratings)

    assert np.all(model.user_factor >= 0)
    assert np.all(model.item_factor >= 0)
    assert np.all(np.isfinite(model.user_factor))
    assert np.all(np.isfinite(model.item_factor))


def test_one_epoch_matches_explicit_accumulation(ratings: DataSet) -> None:
    """Test one epoch against a loop over interactions."""
    params = {"n_factors": 3, "reg": 0.1, "random_state": 9}
    initial = NMF({**params, "n_epochs": 0})
    initial.fit(ratings)
    trained = NMF({**params, "n_epochs": 1})
    trained.fit(ratings)

    p, q = initial.user_factor, initial.item_factor
    user_num = np.zeros_like(p)
    user_den = np.zeros_like(p)
    item_num = np.zeros_like(q)
    item_den = np.zeros_like(q)
    for k in range(len(ratings)):
        u, i, r = ratings.get_dense(k)
        r_hat = np.dot(p[u], q[i])
        user_num[u] += q[i] * r
        user_den[u] += q[i] * r_hat + 0.1 * p[u]
        item_num[i] += p[u] * r
        item_den[i] += p[u] * r_hat + 0.1 * q[i]

    np.testing.assert_allclose(trained.user_factor, p * user_num / user_den)
    np.testing.assert_allclose(trained.item_factor, q * item_num / item_den)


def test_zero_denominator_raises(ratings: DataSet) -> None:
    """Test that all-zero factors are reported instead of producing NaN."""
    model = NMF({"n_factors": 2, "n_epochs": 3, "init_low": 0.0, "init_high": 0.0})

    with pytest.raises(DegenerateUpdateError, match="Zero denominator") as exc_info:
        model.fit(ratings)

    assert exc_info.value.details["epoch"] == 0
    assert exc_info.value.details["side"] == "user"
    assert model.user_factor is None
    assert model.predict("u0", "i0") == 0.0
