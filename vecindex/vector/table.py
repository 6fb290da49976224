"""
Dense vector table: one float32 row per vocabulary index.
"""

from typing import Optional, Sequence, Union

import numpy as np

ArrayLike = Union[np.ndarray, Sequence[float]]


class VectorTable:
    """An ``N x K`` matrix whose row ``i`` holds the vector of vocabulary index ``i``."""

    dtype = np.float32

    def __init__(self, rows: int, dimension: int):
        if dimension < 1:
            raise ValueError(f"Vector dimension must be >= 1, got {dimension}")
        self.dimension = dimension
        self._matrix = np.zeros((rows, dimension), dtype=self.dtype)

    @classmethod
    def from_matrix(cls, matrix: np.ndarray) -> "VectorTable":
        """Wrap an existing ``(N, K)`` matrix without renormalizing it."""
        matrix = np.asarray(matrix, dtype=cls.dtype)
        if matrix.ndim != 2:
            raise ValueError(f"Expected a 2-dimensional matrix, got shape {matrix.shape}")
        table = cls(0, matrix.shape[1])
        table._matrix = np.ascontiguousarray(matrix)
        return table

    @property
    def matrix(self) -> np.ndarray:
        return self._matrix

    @property
    def rows(self) -> int:
        return self._matrix.shape[0]

    def __len__(self) -> int:
        return self.rows

    def check_vector(self, vector: ArrayLike) -> np.ndarray:
        """Convert to a flat float32 array and check its dimension."""
        array = np.asarray(vector, dtype=self.dtype).reshape(-1)
        if array.shape[0] != self.dimension:
            raise ValueError(f"Vector dimension {array.shape[0]} does not match expected dimension {self.dimension}")
        return array.copy()

    def put(self, index: int, vector: ArrayLike) -> None:
        if not 0 <= index < self.rows:
            raise IndexError(f"Row {index} out of range for table with {self.rows} rows")
        self._matrix[index] = self.check_vector(vector)

    def row(self, index: int) -> Optional[np.ndarray]:
        """Return a copy of a row, or None if out of range."""
        if not 0 <= index < self.rows:
            return None
        return self._matrix[index].copy()

    def normalize_rows(self) -> None:
        """Scale every row to unit L2 norm; all-zero rows stay zero."""
        norms = np.linalg.norm(self._matrix, axis=1, keepdims=True)
        np.divide(self._matrix, norms, out=self._matrix, where=norms > 0)

    def similarity(self, unit_query: np.ndarray) -> np.ndarray:
        """Dot product of every row with an already normalized query."""
        return self._matrix @ unit_query


def unit_vector(vector: ArrayLike, dtype=np.float32) -> np.ndarray:
    """Return the vector scaled to unit length (zero vectors are returned as-is)."""
    array = np.asarray(vector, dtype=dtype).reshape(-1)
    norm = np.linalg.norm(array)
    if norm == 0 or not np.isfinite(norm):
        return array.copy()
    return array / norm
