"""Shared building blocks for latentrec models.

This module contains the sparse interaction dataset, the dense identity index,
hyperparameter resolution, random generation, the error taxonomy and the
logging setup used by every model.
"""
