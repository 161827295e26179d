"""Custom exceptions for latentrec.

Defines the error taxonomy raised by model training. Unknown users or items at
prediction time are not errors and never raise.
"""

from typing import Any, Dict, Optional


class LatentRecError(Exception):
    """Base exception for latentrec errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception.

        Args:
            message: Human-readable error message
            details: Additional error details for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(LatentRecError):
    """Raised when a hyperparameter cannot be resolved."""

    def __init__(self, name: str, value: Any, expected: str):
        message = f"Invalid value {value!r} for parameter '{name}': expected {expected}"
        super().__init__(
            message=message,
            details={"param": name, "value": value, "expected": expected},
        )


class SingularMatrixError(LatentRecError):
    """Raised when an alternating least squares system cannot be solved."""

    def __init__(self, side: str, row: int, error: Exception):
        message = f"Singular system while solving {side} factor {row}: {str(error)}"
        super().__init__(
            message=message,
            details={
                "side": side,
                "row": row,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )


class DegenerateUpdateError(LatentRecError):
    """Raised when a multiplicative update would divide by zero."""

    def __init__(self, side: str, rows: list, epoch: int):
        message = (
            f"Zero denominator in {side} factor update at epoch {epoch} "
            f"for rows {rows[:10]}"
        )
        super().__init__(
            message=message,
            details={"side": side, "rows": rows, "epoch": epoch},
        )


class NegativeSamplingError(LatentRecError):
    """Raised when a user has no item left to draw as a negative sample."""

    def __init__(self, user: int, n_items: int):
        message = (
            f"User {user} has interacted with all {n_items} items. "
            "Cannot draw a negative sample."
        )
        super().__init__(
            message=message,
            details={"user": user, "n_items": n_items},
        )
