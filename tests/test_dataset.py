"""Tests for the sparse interaction dataset.

This module contains unit tests for the dense identity index, sparse rows,
dataset construction and CSV loading.
"""

import sys
import tempfile
from pathlib import Path
from typing import Generator

import numpy as np
import pandas as pd
import pytest

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from latentrec.core.dataset import NOT_ID, DataSet, IdSet, SparseRow, load_csv


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def small_dataset() -> DataSet:
    """3 users x 2 items with four ratings."""
    return DataSet.from_triples(
        [("u0", "i0", 5.0), ("u0", "i1", 3.0), ("u1", "i0", 4.0), ("u2", "i1", 2.0)]
    )


def test_id_set_assigns_dense_ids_in_order_of_first_sight() -> None:
    """Test that IDs get contiguous dense indices without collisions."""
    ids = IdSet()
    external = [42, "a", 7, "a", 42, (1, 2)]
    dense = [ids.add(x) for x in external]

    assert dense == [0, 1, 2, 1, 0, 3]
    assert len(ids) == 4
    assert sorted({ids.to_dense_id(x) for x in external}) == list(range(len(ids)))
    for x in set(external):
        assert ids.to_sparse_id(ids.to_dense_id(x)) == x


def test_id_set_unknown_id_returns_not_id() -> None:
    """Test that IDs never added map to NOT_ID."""
    ids = IdSet(["a", "b"])

    assert ids.to_dense_id("c") == NOT_ID
    assert ids.to_dense_id(["unhashable"]) == NOT_ID
    assert "a" in ids
    assert "c" not in ids


def test_id_set_frozen_rejects_new_ids() -> None:
    """Test that a frozen IdSet can't grow but still resolves known IDs."""
    ids = IdSet(["a"])
    ids.freeze()

    assert ids.add("a") == 0
    with pytest.raises(RuntimeError, match="frozen"):
        ids.add("b")


def test_sparse_row_iteration_is_restartable() -> None:
    """Test that iterating a row yields every entry once, every time."""
    row = SparseRow(np.array([0, 3, 5]), np.array([1.0, 2.0, 3.0]))

    first = list(row)
    second = list(row)

    assert len(row) == 3
    assert first == [(0, 0, 1.0), (1, 3, 2.0), (2, 5, 3.0)]
    assert first == second


def test_sparse_row_length_mismatch() -> None:
    """Test that indices and values must line up."""
    with pytest.raises(ValueError, match="differ in length"):
        SparseRow(np.array([0, 1]), np.array([1.0]))


def test_dataset_statistics(small_dataset: DataSet) -> None:
    """Test counts and global mean.

    Args:
        small_dataset: 3 users x 2 items fixture.
    """
    assert small_dataset.user_count() == 3
    assert small_dataset.item_count() == 2
    assert len(small_dataset) == 4
    assert small_dataset.global_mean == pytest.approx(3.5)


def test_dataset_get_dense_and_get(small_dataset: DataSet) -> None:
    """Test random access to interactions by position."""
    assert small_dataset.get_dense(0) == (0, 0, 5.0)
    assert small_dataset.get_dense(3) == (2, 1, 2.0)
    assert small_dataset.get(1) == ("u0", "i1", 3.0)


def test_dataset_sparse_rows(small_dataset: DataSet) -> None:
    """Test per-user and per-item rows."""
    user_rows = small_dataset.user_ratings
    item_rows = small_dataset.item_ratings

    assert [len(row) for row in user_rows] == [2, 1, 1]
    assert [len(row) for row in item_rows] == [2, 2]
    assert list(user_rows[0]) == [(0, 0, 5.0), (1, 1, 3.0)]
    assert list(item_rows[1]) == [(0, 0, 3.0), (1, 2, 2.0)]
    np.testing.assert_array_equal(small_dataset.user_interaction_counts(), [2, 1, 1])
    np.testing.assert_array_equal(small_dataset.item_interaction_counts(), [2, 2])


def test_dataset_is_read_only(small_dataset: DataSet) -> None:
    """Test that interaction arrays and ID sets can't be modified."""
    with pytest.raises(ValueError):
        small_dataset.values[0] = 1.0
    with pytest.raises(RuntimeError):
        small_dataset.user_ids.add("new-user")


def test_dataset_duplicates_keep_last_value() -> None:
    """Test that a repeated (user, item) pair keeps its last value."""
    data = DataSet.from_triples([("u", "i", 1.0), ("v", "i", 2.0), ("u", "i", 4.0)])

    assert len(data) == 2
    assert data.user_ids.to_dense_id("u") == 0
    assert list(data.user_ratings[0]) == [(0, 0, 4.0)]
    assert data.global_mean == pytest.approx(3.0)


def test_dataset_rejects_duplicates_in_dense_constructor() -> None:
    """Test that the low-level constructor refuses repeated pairs."""
    with pytest.raises(ValueError, match="Duplicate"):
        DataSet(
            np.array([0, 0]),
            np.array([0, 0]),
            np.array([1.0, 2.0]),
            IdSet(["u"]),
            IdSet(["i"]),
        )


@pytest.mark.parametrize(
    "user_ids,item_ids,side",
    [
        (["a", "b"], ["x", "y"], "user"),
        (["a"], ["x", "y", "z"], "item"),
    ],
)
def test_dataset_rejects_ids_without_interactions(
    user_ids: list, item_ids: list, side: str
) -> None:
    """Test that every registered user and item must have an interaction."""
    with pytest.raises(ValueError, match=f"1 {side} IDs have no interactions"):
        DataSet(
            np.array([0, 0]),
            np.array([0, 1]),
            np.array([4.0, 2.0]),
            IdSet(user_ids),
            IdSet(item_ids),
        )


def test_dataset_empty_raises() -> None:
    """Test that an empty interaction list is rejected."""
    with pytest.raises(ValueError, match="empty"):
        DataSet.from_triples([])


def test_from_dataframe_implicit_feedback() -> None:
    """Test that value_col=None gives every interaction value 1."""
    df = pd.DataFrame({"user_id": [10, 11, 10], "item_id": [1, 1, 2]})

    data = DataSet.from_dataframe(df, value_col=None)

    np.testing.assert_array_equal(data.values, [1.0, 1.0, 1.0])
    assert data.global_mean == 1.0
    assert data.user_ids.to_dense_id(11) == 1


def test_load_csv(temp_dir: Path) -> None:
    """Test loading interactions from a CSV file.

    Args:
        temp_dir: Temporary directory for test files.
    """
    csv_path = temp_dir / "ratings.csv"
    csv_path.write_text("user,movie,stars\n1,100,4\n2,100,3\n1,200,5\n")

    data = load_csv(str(csv_path), user_col="user", item_col="movie", value_col="stars")

    assert data.user_count() == 2
    assert data.item_count() == 2
    assert data.global_mean == pytest.approx(4.0)
    assert data.item_ids.to_dense_id(200) == 1


def test_load_csv_missing_file(temp_dir: Path) -> None:
    """Test that a missing CSV raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        load_csv(str(temp_dir / "nonexistent.csv"))


def test_load_csv_missing_columns(temp_dir: Path) -> None:
    """Test that a CSV without the required columns is rejected."""
    bad_csv = temp_dir / "bad.csv"
    bad_csv.write_text("id,name\n1,test\n")

    with pytest.raises(ValueError, match="missing required columns"):
        load_csv(str(bad_csv))
