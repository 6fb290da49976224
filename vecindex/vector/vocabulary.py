"""
Key vocabulary: a bijection between normalized keys and dense row indices,
with per-key frequency counters.
"""

from numbers import Integral
from typing import Dict, Iterable, List, Optional, Union

from .normalizers import KeyNormalizer, identity
from .types import VocabEntry


class Vocabulary:
    """Maps normalized keys to stable integer indices.

    Indices are assigned in insertion order starting at 0 and are never
    reused. There is no removal except ``clear()``.
    """

    def __init__(self, normalizer: Optional[KeyNormalizer] = None):
        self.normalizer = normalizer or identity
        self._entries: List[VocabEntry] = []
        self._by_key: Dict[str, VocabEntry] = {}
        self.total_occurrences = 0

    @classmethod
    def from_entries(cls, entries: Iterable[VocabEntry], total_occurrences: int,
                     normalizer: Optional[KeyNormalizer] = None) -> "Vocabulary":
        """Restore a vocabulary with exact indices and frequencies.

        Entries must arrive in index order; keys are taken as already normalized.
        """
        vocab = cls(normalizer)
        for entry in entries:
            if entry.index != len(vocab._entries):
                raise ValueError(f"Entry '{entry.key}' has index {entry.index}, expected {len(vocab._entries)}")
            if entry.key in vocab._by_key:
                raise ValueError(f"Duplicate key '{entry.key}'")
            vocab._entries.append(entry)
            vocab._by_key[entry.key] = entry
        vocab.total_occurrences = int(total_occurrences)
        return vocab

    def insert(self, key: str, normalize: bool = True) -> int:
        """Insert a key occurrence and return its index."""
        if normalize:
            key = self.normalizer(key)
        self.total_occurrences += 1
        entry = self._by_key.get(key)
        if entry is None:
            entry = VocabEntry(key=key, index=len(self._entries), frequency=1.0)
            self._entries.append(entry)
            self._by_key[key] = entry
        else:
            entry.frequency += 1.0
        return entry.index

    def contains(self, key: str, normalize: bool = True) -> bool:
        return (self.normalizer(key) if normalize else key) in self._by_key

    def index(self, key: Optional[str], normalize: bool = True) -> Optional[int]:
        """Return the index of a key, or None if it is unknown."""
        if key is None:
            return None
        entry = self._by_key.get(self.normalizer(key) if normalize else key)
        return entry.index if entry is not None else None

    def key(self, index: int) -> Optional[str]:
        """Return the key at an index, or None if out of range."""
        if 0 <= index < len(self._entries):
            return self._entries[index].key
        return None

    def entry(self, index: int) -> Optional[VocabEntry]:
        if 0 <= index < len(self._entries):
            return self._entries[index]
        return None

    def keys(self) -> List[str]:
        return [entry.key for entry in self._entries]

    def entries(self) -> List[VocabEntry]:
        return list(self._entries)

    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.contains(key)

    def frequency(self, key_or_index: Union[str, int]) -> float:
        """Return how often a key was inserted (0.0 if unknown)."""
        if isinstance(key_or_index, Integral):
            entry = self.entry(key_or_index)
        else:
            entry = self._by_key.get(self.normalizer(key_or_index))
        return entry.frequency if entry is not None else 0.0

    def probability(self, key_or_index: Union[str, int]) -> float:
        """Return frequency divided by all inserted occurrences."""
        if self.total_occurrences <= 0:
            return 0.0
        return self.frequency(key_or_index) / self.total_occurrences

    def clear(self) -> None:
        self._entries = []
        self._by_key = {}
        self.total_occurrences = 0
