"""Accuracy metrics for trained models.

Scores a model's predictions on every interaction of a dataset, going through
the public ``predict`` so that IDs unknown to the model use its fallback.
"""

import logging

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error

from latentrec.core.dataset import DataSet
from latentrec.model.base import BaseModel

# Configure module logger
logger = logging.getLogger(__name__)


def predict_dataset(model: BaseModel, dataset: DataSet) -> np.ndarray:
    """Predict every interaction of a dataset, in dataset order."""
    predictions = np.empty(len(dataset))
    for i in range(len(dataset)):
        user_id, item_id, _ = dataset.get(i)
        predictions[i] = model.predict(user_id, item_id)
    return predictions


def rmse(model: BaseModel, dataset: DataSet) -> float:
    """Root mean squared error of a model on a dataset.

    Example:
        >>> model.fit(train_set)
        >>> print(f"Test RMSE: {rmse(model, test_set):.4f}")
    """
    predictions = predict_dataset(model, dataset)
    score = float(np.sqrt(mean_squared_error(dataset.values, predictions)))
    logger.info(f"{type(model).__name__} RMSE: {score:.4f}")
    return score


def mae(model: BaseModel, dataset: DataSet) -> float:
    """Mean absolute error of a model on a dataset."""
    predictions = predict_dataset(model, dataset)
    score = float(mean_absolute_error(dataset.values, predictions))
    logger.info(f"{type(model).__name__} MAE: {score:.4f}")
    return score
