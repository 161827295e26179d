"""Helpers shared by the model trainers."""

from typing import List, Tuple


def partition_ranges(size: int, n_parts: int) -> List[Tuple[int, int]]:
    """Split ``0..size-1`` into contiguous, disjoint ``[low, high)`` ranges.

    Part ``k`` covers ``size*k//n_parts`` up to ``size*(k+1)//n_parts``.
    Empty ranges are dropped, so fewer than ``n_parts`` ranges are returned
    when ``size < n_parts``.

    Args:
        size: Number of elements to split.
        n_parts: Number of workers sharing the elements. Must be positive.

    Returns:
        List of (low, high) tuples in increasing order.

    Raises:
        ValueError: If n_parts is not positive or size is negative.

    Example:
        >>> partition_ranges(5, 2)
        [(0, 2), (2, 5)]
    """
    if n_parts < 1:
        raise ValueError(f"n_parts must be positive, got {n_parts}")
    if size < 0:
        raise ValueError(f"size must be non-negative, got {size}")

    ranges = []
    for part in range(n_parts):
        low = size * part // n_parts
        high = size * (part + 1) // n_parts
        if high > low:
            ranges.append((low, high))
    return ranges
