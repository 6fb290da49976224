"""
Value types shared by the vocabulary, the search and the index.
"""

from dataclasses import dataclass
from enum import Enum


@dataclass
class VocabEntry:
    """A key in the vocabulary."""

    key: str
    """Normalized key"""

    index: int
    """Row of the key in the vector table, assigned on first insertion"""

    frequency: float = 1.0
    """Number of times the key was inserted"""


@dataclass
class IndexEntry:
    """Represents a nearest-neighbour result."""

    index: int
    """Vocabulary index of the match"""

    key: str
    """Key of the match"""

    similarity: float
    """Cosine similarity to the query (-1..1)"""

    def __str__(self) -> str:
        return f"{self.key} ({self.similarity:.2f})"


class IndexState(Enum):
    """Build phase of an index."""

    EMPTY = "empty"
    KEYS_BUILT = "keys_built"
    AVAILABLE = "available"
