"""latentrec: latent factor models for collaborative filtering.

This package trains compact user and item factor representations from sparse
ratings or implicit feedback, and predicts user-item affinity scores.

Modules:
    core: dataset, identity index, parameters, random generation, errors
    model: SVD, NMF, SVD++ and WRMF
    evaluate: accuracy metrics over a dataset
"""

from latentrec.core.dataset import NOT_ID, DataSet, IdSet, SparseRow, load_csv
from latentrec.core.params import FitOptions, Params, Target
from latentrec.core.random import RandomGenerator
from latentrec.model import NMF, SVD, WRMF, BaseModel, SVDpp

__version__ = "0.1.0"

__all__ = [
    "NOT_ID",
    "BaseModel",
    "DataSet",
    "FitOptions",
    "IdSet",
    "NMF",
    "Params",
    "RandomGenerator",
    "SVD",
    "SVDpp",
    "SparseRow",
    "Target",
    "WRMF",
    "load_csv",
]
