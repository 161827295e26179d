"""Sparse interaction dataset shared by all trainers.

This module provides the dense identity index mapping external user/item IDs
to contiguous row numbers, the sparse per-entity rating rows, and the
:class:`DataSet` consumed read-only by every model's ``fit``.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Hashable, Iterable, Iterator, List, Optional, Tuple

import numpy as np
import pandas as pd
from scipy.sparse import coo_matrix, csc_matrix, csr_matrix

# Configure module logger
logger = logging.getLogger(__name__)

# Dense ID returned for entities never seen while building a dataset
NOT_ID = -1

DEFAULT_USER_COL = "user_id"
DEFAULT_ITEM_COL = "item_id"
DEFAULT_VALUE_COL = "rating"


class IdSet:
    """Bidirectional map between external IDs and dense indices.

    IDs get increasing dense indices ``0..N-1`` in order of first sight.
    Once frozen (which :class:`DataSet` does on construction) no new IDs
    can be added.
    """

    def __init__(self, ids: Iterable[Hashable] = ()):
        self._to_dense: Dict[Hashable, int] = {}
        self._to_sparse: List[Hashable] = []
        self._frozen = False
        for external_id in ids:
            self.add(external_id)

    def add(self, external_id: Hashable) -> int:
        """Register an ID and return its dense index.

        Raises:
            RuntimeError: If the set has been frozen.
        """
        if external_id in self._to_dense:
            return self._to_dense[external_id]
        if self._frozen:
            raise RuntimeError(f"Cannot add ID {external_id!r} to a frozen IdSet")
        dense_id = len(self._to_sparse)
        self._to_dense[external_id] = dense_id
        self._to_sparse.append(external_id)
        return dense_id

    def freeze(self) -> None:
        self._frozen = True

    def to_dense_id(self, external_id: Hashable) -> int:
        """Dense index of an ID, or ``NOT_ID`` when it was never seen."""
        try:
            return self._to_dense.get(external_id, NOT_ID)
        except TypeError:
            # Unhashable IDs can't have been registered
            return NOT_ID

    def to_sparse_id(self, dense_id: int) -> Hashable:
        return self._to_sparse[dense_id]

    def __len__(self) -> int:
        return len(self._to_sparse)

    def __contains__(self, external_id: Hashable) -> bool:
        return self.to_dense_id(external_id) != NOT_ID

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._to_sparse)


class SparseRow:
    """Observed (dense index, value) pairs of one user or one item.

    Iterating yields ``(position, index, value)`` triples in ascending index
    order. Each iteration starts over from the first entry.
    """

    def __init__(self, indices: np.ndarray, values: np.ndarray):
        if len(indices) != len(values):
            raise ValueError(
                f"indices ({len(indices)}) and values ({len(values)}) differ in length"
            )
        self.indices = np.asarray(indices, dtype=np.int64)
        self.values = np.asarray(values, dtype=np.float64)

    def __len__(self) -> int:
        return len(self.indices)

    def __iter__(self) -> Iterator[Tuple[int, int, float]]:
        for position, (index, value) in enumerate(
            zip(self.indices.tolist(), self.values.tolist())
        ):
            yield position, index, value

    def __repr__(self) -> str:
        return f"SparseRow(len={len(self)})"


class DataSet:
    """Read-only interaction dataset indexed by dense user and item IDs.

    The interactions are kept in their original order for :meth:`get_dense`
    and additionally as a user-major CSR matrix and an item-major CSC matrix,
    from which the per-user and per-item :class:`SparseRow` views are built.

    Args:
        users: Dense user index of every interaction.
        items: Dense item index of every interaction.
        values: Observed value of every interaction.
        user_ids: Index of external user IDs; frozen by the constructor.
        item_ids: Index of external item IDs; frozen by the constructor.

    Raises:
        ValueError: If the arrays are empty, differ in length, reference
            indices outside the ID sets, repeat a (user, item) pair, or
            leave a registered user or item without interactions.
    """

    def __init__(
        self,
        users: np.ndarray,
        items: np.ndarray,
        values: np.ndarray,
        user_ids: IdSet,
        item_ids: IdSet,
    ):
        users = np.array(users, dtype=np.int64)
        items = np.array(items, dtype=np.int64)
        values = np.array(values, dtype=np.float64)

        if not (len(users) == len(items) == len(values)):
            raise ValueError("users, items and values must have the same length")
        if len(values) == 0:
            raise ValueError("Cannot build dataset from empty interactions")
        if users.min() < 0 or users.max() >= len(user_ids):
            raise ValueError("User index out of range of user_ids")
        if items.min() < 0 or items.max() >= len(item_ids):
            raise ValueError("Item index out of range of item_ids")

        user_ids.freeze()
        item_ids.freeze()
        self.user_ids = user_ids
        self.item_ids = item_ids

        self.global_mean = float(values.mean())

        shape = (len(user_ids), len(item_ids))
        interactions = coo_matrix((values, (users, items)), shape=shape)
        self.user_matrix: csr_matrix = interactions.tocsr()
        self.user_matrix.sort_indices()
        self.item_matrix: csc_matrix = interactions.tocsc()
        self.item_matrix.sort_indices()

        if self.user_matrix.nnz != len(values):
            raise ValueError("Duplicate (user, item) pairs in interactions")
        # Every registered ID needs at least one interaction
        for side, matrix in (("user", self.user_matrix), ("item", self.item_matrix)):
            idle = np.flatnonzero(np.diff(matrix.indptr) == 0)
            if len(idle) > 0:
                raise ValueError(
                    f"{len(idle)} {side} IDs have no interactions "
                    f"(dense indices {idle[:10].tolist()})"
                )

        for array in (users, items, values):
            array.flags.writeable = False
        self.users = users
        self.items = items
        self.values = values

        self.user_ratings = _split_rows(self.user_matrix)
        self.item_ratings = _split_rows(self.item_matrix)

        logger.info(
            "Dataset built",
            extra={
                "num_users": shape[0],
                "num_items": shape[1],
                "num_interactions": len(values),
                "density": round(len(values) / (shape[0] * shape[1]), 6),
            },
        )

    def user_count(self) -> int:
        return len(self.user_ids)

    def item_count(self) -> int:
        return len(self.item_ids)

    def __len__(self) -> int:
        return len(self.values)

    def get_dense(self, i: int) -> Tuple[int, int, float]:
        """Return ``(dense_user, dense_item, value)`` of the i-th interaction."""
        return int(self.users[i]), int(self.items[i]), float(self.values[i])

    def get(self, i: int) -> Tuple[Hashable, Hashable, float]:
        """Return ``(user_id, item_id, value)`` of the i-th interaction."""
        user, item, value = self.get_dense(i)
        return self.user_ids.to_sparse_id(user), self.item_ids.to_sparse_id(item), value

    def user_interaction_counts(self) -> np.ndarray:
        return np.diff(self.user_matrix.indptr)

    def item_interaction_counts(self) -> np.ndarray:
        return np.diff(self.item_matrix.indptr)

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        user_col: str = DEFAULT_USER_COL,
        item_col: str = DEFAULT_ITEM_COL,
        value_col: Optional[str] = DEFAULT_VALUE_COL,
    ) -> "DataSet":
        """Build a dataset from a DataFrame of interactions.

        IDs get dense indices in order of first appearance. If a (user, item)
        pair occurs more than once, its last value wins.

        Args:
            df: Interactions, one row each.
            user_col: Name of the column containing user identifiers.
            item_col: Name of the column containing item identifiers.
            value_col: Name of the column containing interaction values.
                If None, every interaction gets value 1 (implicit feedback).

        Returns:
            The built DataSet.

        Raises:
            ValueError: If required columns are missing, the frame is empty,
                or IDs/values are missing.
        """
        required_columns = {user_col, item_col}
        if value_col is not None:
            required_columns.add(value_col)

        if not required_columns.issubset(df.columns):
            missing = required_columns - set(df.columns)
            raise ValueError(f"DataFrame missing required columns: {missing}")

        if df.empty:
            raise ValueError("Cannot build dataset from empty interactions")

        user_codes, user_uniques = pd.factorize(df[user_col])
        item_codes, item_uniques = pd.factorize(df[item_col])
        if (user_codes < 0).any() or (item_codes < 0).any():
            raise ValueError("Interactions contain missing user or item IDs")

        if value_col is None:
            values = np.ones(len(df), dtype=np.float64)
        else:
            values = df[value_col].to_numpy(dtype=np.float64)
            if np.isnan(values).any():
                raise ValueError(f"Column '{value_col}' contains missing values")

        frame = pd.DataFrame({"user": user_codes, "item": item_codes, "value": values})
        deduplicated = frame.drop_duplicates(["user", "item"], keep="last")
        if len(deduplicated) < len(frame):
            logger.warning(
                f"Dropped {len(frame) - len(deduplicated)} duplicate interactions"
            )

        return cls(
            deduplicated["user"].to_numpy(),
            deduplicated["item"].to_numpy(),
            deduplicated["value"].to_numpy(),
            IdSet(user_uniques.tolist()),
            IdSet(item_uniques.tolist()),
        )

    @classmethod
    def from_triples(
        cls, triples: Iterable[Tuple[Hashable, Hashable, float]]
    ) -> "DataSet":
        """Build a dataset from ``(user_id, item_id, value)`` triples.

        Example:
            >>> data = DataSet.from_triples([("u0", "i0", 5.0), ("u1", "i0", 3.0)])
            >>> data.user_count(), data.item_count(), data.global_mean
            (2, 1, 4.0)
        """
        df = pd.DataFrame(
            list(triples), columns=[DEFAULT_USER_COL, DEFAULT_ITEM_COL, DEFAULT_VALUE_COL]
        )
        return cls.from_dataframe(df)


def load_csv(
    csv_path: str,
    user_col: str = DEFAULT_USER_COL,
    item_col: str = DEFAULT_ITEM_COL,
    value_col: Optional[str] = DEFAULT_VALUE_COL,
    **read_csv_kwargs: Any,
) -> DataSet:
    """Load interactions from a CSV file.

    Args:
        csv_path: Path to CSV file containing interaction data.
        user_col: Name of the column containing user identifiers.
        item_col: Name of the column containing item identifiers.
        value_col: Name of the column containing interaction values, or None
            for implicit feedback.
        **read_csv_kwargs: Passed through to ``pandas.read_csv``.

    Returns:
        The built DataSet.

    Raises:
        FileNotFoundError: If CSV file does not exist.
        ValueError: If CSV is missing required columns or is empty.

    Example:
        >>> data = load_csv("data/ratings.csv", value_col="rating")
        >>> print(f"{data.user_count()} users, {data.item_count()} items")
    """
    csv_file = Path(csv_path)
    if not csv_file.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    logger.info(f"Loading CSV from {csv_path}")
    df = pd.read_csv(csv_file, **read_csv_kwargs)
    logger.info(f"Loaded {len(df)} interaction records")

    return DataSet.from_dataframe(
        df, user_col=user_col, item_col=item_col, value_col=value_col
    )


def _split_rows(matrix: Any) -> List[SparseRow]:
    # Works for CSR (rows) and CSC (columns) alike
    return [
        SparseRow(
            matrix.indices[matrix.indptr[k] : matrix.indptr[k + 1]],
            matrix.data[matrix.indptr[k] : matrix.indptr[k + 1]],
        )
        for k in range(len(matrix.indptr) - 1)
    ]
