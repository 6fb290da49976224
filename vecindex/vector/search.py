"""
Exact top-k cosine search over a vector table.

Every query scores all N rows (O(N*K)) and keeps the best k in a bounded
min-heap (O(N log k)). There is no approximate search here.
"""

import heapq
from typing import List, Tuple

import numpy as np

from .table import VectorTable, unit_vector
from .types import IndexEntry
from .vocabulary import Vocabulary


def similarity(table: VectorTable, query: np.ndarray) -> np.ndarray:
    """Cosine similarity of every row with the query; NaN scores become 0."""
    query = table.check_vector(query)
    scores = table.similarity(unit_vector(query, dtype=table.dtype))
    return np.nan_to_num(scores, nan=0.0, posinf=0.0, neginf=0.0)


def top_k(scores: np.ndarray, k: int) -> List[Tuple[float, int]]:
    """Select the k highest ``(score, index)`` pairs, best first.

    A full heap only replaces its minimum with a strictly larger score, so
    among equal scores the earlier index is kept.
    """
    if k < 1:
        raise ValueError(f"k must be >= 1, got {k}")
    heap: List[Tuple[float, int]] = []
    for index, score in enumerate(scores.tolist()):
        if len(heap) < k:
            heapq.heappush(heap, (score, -index))
        elif score > heap[0][0]:
            heapq.heapreplace(heap, (score, -index))
    ranked = []
    while heap:
        score, neg_index = heapq.heappop(heap)
        ranked.append((score, -neg_index))
    ranked.reverse()
    return ranked


def find(vocabulary: Vocabulary, table: VectorTable, query: np.ndarray, k: int) -> List[IndexEntry]:
    """Return up to k nearest keys by descending similarity.

    Matches with a similarity of exactly 0.0 are dropped, which also removes
    all-zero rows and NaN results.
    """
    if k < 1:
        raise ValueError(f"k must be >= 1, got {k}")
    if table.rows == 0:
        return []
    scores = similarity(table, query)
    results = []
    for score, index in top_k(scores, k):
        if score == 0.0:
            continue
        results.append(IndexEntry(index=index, key=vocabulary.key(index), similarity=float(score)))
    return results
