"""Latent factor models.

Each model implements ``set_params``, ``fit`` and ``predict``:

    SVD: biased matrix factorization trained for regression or BPR ranking
    NMF: non-negative matrix factorization with multiplicative updates
    SVDpp: SVD++ with implicit feedback factors
    WRMF: weighted matrix factorization by alternating least squares
"""

from latentrec.model.base import BaseModel
from latentrec.model.nmf import NMF
from latentrec.model.svd import SVD
from latentrec.model.svdpp import SVDpp
from latentrec.model.wrmf import WRMF

__all__ = ["BaseModel", "NMF", "SVD", "SVDpp", "WRMF"]
