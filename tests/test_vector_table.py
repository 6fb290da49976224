"""
Tests for the dense vector table and the exact top-k search.
"""

import numpy as np
import pytest

from vecindex.vector import search
from vecindex.vector.table import VectorTable, unit_vector
from vecindex.vector.vocabulary import Vocabulary


def _vocab(*keys):
    vocab = Vocabulary()
    for key in keys:
        vocab.insert(key)
    return vocab


class TestVectorTable:
    """Tests for VectorTable."""

    def test_table_starts_with_zero_rows(self):
        table = VectorTable(3, 4)

        assert table.rows == 3
        assert len(table) == 3
        assert table.matrix.dtype == np.float32
        assert not table.matrix.any()

    def test_invalid_dimension(self):
        with pytest.raises(ValueError):
            VectorTable(1, 0)

    def test_put_and_row(self):
        """Test that rows are stored and returned as copies."""
        table = VectorTable(2, 3)
        table.put(1, [1.0, 2.0, 3.0])

        row = table.row(1)
        np.testing.assert_array_equal(row, [1.0, 2.0, 3.0])

        row[0] = 99.0
        assert table.matrix[1, 0] == 1.0
        assert table.row(2) is None

    def test_put_checks_bounds_and_dimension(self):
        table = VectorTable(2, 3)

        with pytest.raises(IndexError):
            table.put(2, [1.0, 0.0, 0.0])

        with pytest.raises(ValueError, match="does not match expected dimension"):
            table.put(0, [1.0, 0.0])

    def test_normalize_rows_keeps_zero_rows(self):
        """Test that normalization scales rows to unit length and leaves zero rows alone."""
        table = VectorTable(2, 2)
        table.put(0, [3.0, 4.0])
        table.normalize_rows()

        np.testing.assert_allclose(table.row(0), [0.6, 0.8], rtol=1e-6)
        np.testing.assert_array_equal(table.row(1), [0.0, 0.0])
        assert not np.isnan(table.matrix).any()

    def test_from_matrix(self):
        table = VectorTable.from_matrix(np.array([[2.0, 0.0], [0.0, 1.0]]))

        assert table.rows == 2
        assert table.dimension == 2
        # not renormalized
        assert table.matrix[0, 0] == 2.0

        with pytest.raises(ValueError):
            VectorTable.from_matrix(np.array([1.0, 2.0]))


def test_unit_vector():
    np.testing.assert_allclose(unit_vector([0.0, 3.0, 4.0]), [0.0, 0.6, 0.8], rtol=1e-6)
    np.testing.assert_array_equal(unit_vector([0.0, 0.0]), [0.0, 0.0])


class TestTopK:
    """Tests for the heap-based top-k selection."""

    def test_descending_order(self):
        ranked = search.top_k(np.array([0.1, 0.9, 0.5, 0.7]), 3)

        assert [index for _, index in ranked] == [1, 3, 2]
        assert [score for score, _ in ranked] == pytest.approx([0.9, 0.7, 0.5])

    def test_ties_prefer_lower_index(self):
        """Test that equal scores are ordered by ascending index."""
        ranked = search.top_k(np.array([0.5, 0.9, 0.5, 0.5]), 3)

        assert [index for _, index in ranked] == [1, 0, 2]

    def test_k_larger_than_rows(self):
        ranked = search.top_k(np.array([0.2, 0.4]), 10)
        assert [index for _, index in ranked] == [1, 0]

    def test_invalid_k(self):
        with pytest.raises(ValueError):
            search.top_k(np.array([0.2]), 0)


class TestFind:
    """Tests for search.find over a table."""

    def test_find_on_empty_table(self):
        assert search.find(Vocabulary(), VectorTable(0, 2), np.array([1.0, 0.0]), 3) == []

    def test_find_drops_zero_similarity(self):
        """Test that orthogonal and all-zero rows never appear in results."""
        table = VectorTable.from_matrix(np.array([[1.0, 0.0], [0.0, 1.0], [0.0, 0.0]]))
        results = search.find(_vocab("x", "y", "z"), table, np.array([1.0, 0.0]), 3)

        assert [entry.key for entry in results] == ["x"]
        assert results[0].similarity == pytest.approx(1.0)

    def test_find_keeps_negative_similarity(self):
        table = VectorTable.from_matrix(np.array([[1.0, 0.0], [-1.0, 0.0]]))
        results = search.find(_vocab("x", "y"), table, np.array([-1.0, 0.0]), 2)

        assert [entry.key for entry in results] == ["y", "x"]
        assert results[1].similarity == pytest.approx(-1.0)

    def test_query_is_normalized(self):
        table = VectorTable.from_matrix(np.array([[1.0, 0.0]]))
        results = search.find(_vocab("x"), table, np.array([5.0, 0.0]), 1)

        assert results[0].similarity == pytest.approx(1.0)

    def test_nan_query_returns_nothing(self):
        table = VectorTable.from_matrix(np.array([[1.0, 0.0]]))
        assert search.find(_vocab("x"), table, np.array([np.nan, 0.0]), 1) == []

    def test_dimension_mismatch(self):
        table = VectorTable.from_matrix(np.array([[1.0, 0.0]]))
        with pytest.raises(ValueError):
            search.find(_vocab("x"), table, np.array([1.0, 0.0, 0.0]), 1)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
