"""
In-memory vector index: a key vocabulary, one normalized vector per key and
exact k-nearest-neighbour queries by cosine similarity.

Indexes are built in two phases. ``build_keys`` fills the vocabulary, then
``build_vectors`` or ``encode_and_build`` fills the vector table and makes the
index available. Once available an index is read-only and may be shared by
any number of readers; ``clear()`` and rebuilds need external synchronization.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from math import sqrt
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..core import config
from ..util.logging import logger
from . import codec, search
from .embeddings import IEmbeddingProvider
from .errors import IndexStateError
from .normalizers import KeyNormalizer, identity
from .table import ArrayLike, VectorTable, unit_vector
from .types import IndexEntry, IndexState
from .vocabulary import Vocabulary

Examples = Union[Mapping, Iterable[Tuple[str, str]]]


class IVectorIndex(ABC):
    """Abstract interface for key -> vector indexes with nearest-neighbour search."""

    @abstractmethod
    def lookup(self, key: str) -> Optional[np.ndarray]:
        """Return the dense vector of a key, or None if the key is unknown."""
        pass

    @abstractmethod
    def index(self, key: str) -> Optional[int]:
        """Return the index of a key, or None if the key is unknown."""
        pass

    @abstractmethod
    def key(self, index: int) -> Optional[str]:
        """Return the key at an index, or None if out of range."""
        pass

    @abstractmethod
    def size(self) -> int:
        """Return the number of keys N."""
        pass

    @abstractmethod
    def find(self, vector: ArrayLike, k: int) -> List[IndexEntry]:
        """Return the k nearest keys for a dense query vector."""
        pass

    def find_one(self, vector: ArrayLike) -> Optional[IndexEntry]:
        """Return the nearest key, or None if nothing matches."""
        results = self.find(vector, 1)
        return results[0] if results else None

    def find_key(self, vector: ArrayLike) -> Optional[str]:
        entry = self.find_one(vector)
        return entry.key if entry is not None else None

    def find_index(self, vector: ArrayLike) -> Optional[int]:
        entry = self.find_one(vector)
        return entry.index if entry is not None else None

    def find_keys(self, vector: ArrayLike, k: int) -> List[str]:
        return [entry.key for entry in self.find(vector, k)]

    def lookup_index(self, index: int) -> Optional[np.ndarray]:
        key = self.key(index)
        return self.lookup(key) if key is not None else None

    def __len__(self) -> int:
        return self.size()


class InMemoryIndex(IVectorIndex, IEmbeddingProvider):
    """Vector index held entirely in memory.

    The index is an embedding provider itself, so one index can serve as the
    encoder of another (see ``encode_and_build(use_lookup=True)``).
    """

    def __init__(self, encoder: Optional[IEmbeddingProvider] = None,
                 normalizer: Optional[KeyNormalizer] = None,
                 dimension: Optional[int] = None,
                 index_id: str = "KNN"):
        """
        Initialize an empty index.

        Args:
            encoder: Embedding provider used for text entries and queries
            normalizer: Key normalizer applied on insert and lookup (default: identity)
            dimension: Vector size K, defaults to the encoder's dimension
            index_id: Short name used in log messages
        """
        if dimension is None:
            if encoder is None:
                raise ValueError("Either an encoder or a vector dimension is required")
            dimension = encoder.get_dimension()
        self.id = index_id
        self.encoder = encoder
        self.normalizer = normalizer or identity
        self.dimension = int(dimension)
        self._vocabulary = Vocabulary(self.normalizer)
        self._table = VectorTable(0, self.dimension)
        self.state = IndexState.EMPTY

    # --- construction from persisted data --------------------------------------------------

    @classmethod
    def from_binary(cls, stream: BinaryIO, encoder: Optional[IEmbeddingProvider] = None,
                    normalizer: Optional[KeyNormalizer] = None, index_id: str = "KNN") -> "InMemoryIndex":
        """Read an index from a binary stream.

        The stream is fully parsed before the index is created, so a truncated
        or corrupt stream raises IndexFormatError and never yields an index.
        """
        vocabulary, table = codec.read_binary(stream, normalizer)
        if encoder is not None and encoder.get_dimension() != table.dimension:
            raise ValueError(f"Encoder dimension {encoder.get_dimension()} does not match stored vector size {table.dimension}")
        index = cls(encoder, normalizer, dimension=table.dimension, index_id=index_id)
        index._vocabulary = vocabulary
        index._table = table
        index.state = IndexState.AVAILABLE if vocabulary.size() > 0 else IndexState.EMPTY
        return index

    @classmethod
    def load(cls, model_file, encoder: Optional[IEmbeddingProvider] = None,
             normalizer: Optional[KeyNormalizer] = None, index_id: str = "KNN") -> "InMemoryIndex":
        """Load an index from a ``.bin`` file."""
        with open(model_file, "rb") as stream:
            index = cls.from_binary(stream, encoder, normalizer, index_id)
        logger.log_vector_operation("load", index.id, {"path": str(model_file), "keys": index.size()})
        return index

    def save(self, path, name: str) -> Path:
        """Write the index to ``<path>/<name>.bin`` and return the file path."""
        self.require_vectors()
        directory = Path(path)
        directory.mkdir(parents=True, exist_ok=True)
        model_file = directory / f"{name}{config.BINARY_SUFFIX}"
        with open(model_file, "wb") as stream:
            self.write_binary(stream)
        logger.log_vector_operation("save", self.id, {"path": str(model_file), "keys": self.size()})
        return model_file

    def write_binary(self, stream: BinaryIO) -> int:
        self.require_vectors()
        return codec.write_binary(self._vocabulary, self._table, stream)

    def write_vectors(self, path, name: str, meta_mapping: Optional[Dict[str, str]] = None) -> Dict[str, Path]:
        """Export vectors and metadata as TSV and GloVe text files."""
        self.require_vectors()
        return codec.write_vectors(self._vocabulary, self._table, path, name, meta_mapping)

    # --- build protocol ------------------------------------------------------------------

    def build_keys(self, keys: Iterable[str], normalize: bool = True) -> None:
        """Insert keys into the vocabulary. Must complete before vectors are built."""
        if self.encoder is not None:
            self._check_encoder()
        logger.log_vector_operation("build_keys", self.id, status="started")
        interval = config.get_progress_interval()
        num = 0
        for key in keys:
            self._vocabulary.insert(key, normalize)
            num += 1
            if num % interval == 0:
                logger.log_build_progress(self.id, "keys", num)
        if self._vocabulary.size() > 0:
            self.state = IndexState.KEYS_BUILT
        logger.log_vector_operation("build_keys", self.id, {
            "keys": self._vocabulary.size(),
            "occurrences": self._vocabulary.total_occurrences
        })

    def build_vectors(self, entries: Mapping) -> None:
        """
        Build the vector table from a mapping key -> vector or key -> text.

        Text values are encoded with the configured encoder. All rows are
        normalized to unit length once at the end. Raises IndexStateError if
        no keys were built and KeyError if a key is not in the vocabulary.
        """
        logger.log_vector_operation("build_vectors", self.id, {"entries": len(entries)}, status="started")
        self._require_keys()
        if self.encoder is not None:
            self._check_encoder()

        table = VectorTable(self.size(), self.dimension)
        text_rows: List[int] = []
        texts: List[str] = []
        for key, value in entries.items():
            row = self._resolve(key, normalize=True)
            if isinstance(value, str):
                text_rows.append(row)
                texts.append(value)
            else:
                table.put(row, value)

        if texts:
            self._check_encoder()
            batch_size = config.get_batch_size()
            for start in range(0, len(texts), batch_size):
                vectors = self._embed(texts[start:start + batch_size], use_lookup=False)
                for row, vector in zip(text_rows[start:start + batch_size], vectors):
                    table.put(row, vector)

        self._install(table, len(entries))

    def encode_and_build(self, examples: Examples, use_lookup: bool = False,
                         batch_size: Optional[int] = None) -> None:
        """
        Build the vector table from several example spans per key.

        Each key's vector is the mean of its span encodings. Spans are encoded
        in batches; with use_lookup and an index as encoder, spans are looked
        up in that index first and only encoded if unknown there.

        Args:
            examples: Mapping key -> list of spans, or (key, span) pairs.
                Keys must already be normalized.
            use_lookup: Look spans up in the encoder index instead of encoding them
            batch_size: Spans per encoder call (default: ENCODE_BATCH_SIZE)
        """
        grouped = self._group_examples(examples)
        logger.log_vector_operation("encode_and_build", self.id, {"entries": len(grouped)}, status="started")
        self._require_keys()
        self._check_encoder()
        if batch_size is None:
            batch_size = config.get_batch_size()
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        rows = {key: self._resolve(key, normalize=False) for key in grouped}
        pairs = [(key, span) for key, spans in grouped.items() for span in spans]

        # first encode the examples in batches and sum them up per key
        sums: Dict[str, np.ndarray] = {}
        interval = config.get_progress_interval()
        num = 0
        for start in range(0, len(pairs), batch_size):
            batch = pairs[start:start + batch_size]
            vectors = self._embed([span for _, span in batch], use_lookup)
            for (key, _), vector in zip(batch, vectors):
                if key in sums:
                    sums[key] += vector
                else:
                    sums[key] = np.array(vector, dtype=VectorTable.dtype)
                num += 1
                if num % interval == 0:
                    logger.log_build_progress(self.id, "encode", num, len(pairs))

        # then put averages into the table
        table = VectorTable(self.size(), self.dimension)
        for key, spans in grouped.items():
            if key not in sums:
                continue
            count = len(spans)
            table.put(rows[key], sums[key] / count if count > 1 else sums[key])

        self._install(table, len(sums))

    def clear(self) -> None:
        """Reset the index to empty. Not safe while other threads read it."""
        self._vocabulary = Vocabulary(self.normalizer)
        self._table = VectorTable(0, self.dimension)
        self.state = IndexState.EMPTY
        logger.log_vector_operation("clear", self.id)

    # --- encoding (implements IEmbeddingProvider) ------------------------------------------

    def encode(self, text: str) -> np.ndarray:
        """Encode text with the configured encoder into a unit-length vector."""
        self._check_encoder()
        return unit_vector(self._check_dimension(self.encoder.embed_text(text)))

    def encode_batch(self, texts: Sequence[str]) -> np.ndarray:
        """Encode several texts into unit-length rows."""
        self._check_encoder()
        matrix = self._embed(list(texts), use_lookup=False)
        result = VectorTable.from_matrix(matrix)
        result.normalize_rows()
        return result.matrix

    def embed_text(self, text: str) -> list[float]:
        return self.encode(text).tolist()

    def embed_texts(self, texts: Sequence[str]) -> np.ndarray:
        if not texts:
            return np.zeros((0, self.dimension), dtype=np.float32)
        return self.encode_batch(texts)

    def get_dimension(self) -> int:
        return self.dimension

    # --- key/value access (implements IVectorIndex) ----------------------------------------

    def lookup(self, key: Optional[str]) -> Optional[np.ndarray]:
        """Return a copy of the unit vector stored for a key, or None.

        Never calls the encoder.
        """
        if key is None:
            return None
        self.require_vectors()
        row = self._vocabulary.index(key)
        return self._table.row(row) if row is not None else None

    def index(self, key: Optional[str]) -> Optional[int]:
        return self._vocabulary.index(key)

    def key(self, index: int) -> Optional[str]:
        return self._vocabulary.key(index)

    def keys(self) -> List[str]:
        return self._vocabulary.keys()

    def size(self) -> int:
        return self._vocabulary.size()

    def __contains__(self, key: str) -> bool:
        return self._vocabulary.contains(key)

    @property
    def vocabulary(self) -> Vocabulary:
        return self._vocabulary

    @property
    def vectors(self) -> np.ndarray:
        """Read-only view of the ``(N, K)`` vector matrix."""
        self.require_vectors()
        view = self._table.matrix.view()
        view.flags.writeable = False
        return view

    @property
    def is_available(self) -> bool:
        return self.state is IndexState.AVAILABLE

    def require_vectors(self) -> None:
        """Raise IndexStateError if keys were built but their vectors were not."""
        if self.state is IndexState.KEYS_BUILT:
            raise IndexStateError(f"Index '{self.id}' has keys but no vectors. Please build vectors first.")

    def total_occurrences(self) -> int:
        return self._vocabulary.total_occurrences

    def frequency(self, key_or_index: Union[str, int]) -> float:
        """Return how often a key was seen while building the index."""
        return self._vocabulary.frequency(key_or_index)

    def probability(self, key_or_index: Union[str, int]) -> float:
        """Return the probability of a key among all inserted occurrences."""
        return self._vocabulary.probability(key_or_index)

    def weight_factor(self, key_or_index: Union[str, int], alpha: Optional[float] = None) -> float:
        """
        Subsampling weight of a key: ``min(1, alpha / sqrt(p))``.

        Rare keys get 1, the most frequent ones get close to alpha. Keys that
        were never seen have probability 0 and weight 1.
        """
        if alpha is None:
            alpha = config.get_subsampling_alpha()
        p = self.probability(key_or_index)
        if p <= 0:
            return 1.0
        return min(1.0, alpha / sqrt(p))

    # --- nearest-neighbour retrieval ---------------------------------------------------------

    def decode(self, key: str) -> np.ndarray:
        """
        Return a one-hot vector of length N for a key.

        Unknown keys are encoded and mapped to their nearest neighbour; this
        fallback is logged as a degraded match.
        """
        self.require_vectors()
        row = self.index(key)
        if row is None:
            return self.decode_nearest(key, self.encode(key))
        return self.decode_index(row)

    def decode_index(self, index: int) -> np.ndarray:
        """Return a one-hot vector of length N for an index."""
        if not 0 <= index < self.size():
            raise ValueError(f"index {index} out of bounds for index of size {self.size()}")
        result = np.zeros(self.size(), dtype=np.float32)
        result[index] = 1.0
        return result

    def decode_nearest(self, key: str, vector: ArrayLike) -> np.ndarray:
        """One-hot vector at the nearest neighbour of vector, logged as degraded match for key."""
        result = np.zeros(self.size(), dtype=np.float32)
        entry = self.find_one(vector)
        if entry is not None:
            result[entry.index] = 1.0
        logger.log_degraded_match(self.id, key, entry.key if entry is not None else None)
        return result

    def similarity(self, vector: ArrayLike) -> np.ndarray:
        """Cosine similarity of all N keys with a dense query vector."""
        self.require_vectors()
        return search.similarity(self._table, np.asarray(vector))

    def find(self, vector: ArrayLike, k: int = 1) -> List[IndexEntry]:
        """Return up to k nearest keys ordered by descending similarity."""
        self.require_vectors()
        return search.find(self._vocabulary, self._table, np.asarray(vector), k)

    # --- internals -------------------------------------------------------------------------

    def _require_keys(self) -> None:
        if self.size() <= 0:
            raise IndexStateError("Cannot insert vectors into empty index. Please insert keys first.")

    def _check_encoder(self) -> None:
        if self.encoder is None:
            raise IndexStateError(f"Index '{self.id}' has no encoder configured")
        encoder_dim = self.encoder.get_dimension()
        if encoder_dim != self.dimension:
            raise ValueError(f"Encoder dimension {encoder_dim} does not match index dimension {self.dimension}")

    def _check_dimension(self, vector: ArrayLike) -> np.ndarray:
        array = np.asarray(vector, dtype=VectorTable.dtype).reshape(-1)
        if array.shape[0] != self.dimension:
            raise ValueError(f"Vector dimension {array.shape[0]} does not match expected dimension {self.dimension}")
        return array

    def _resolve(self, key: str, normalize: bool) -> int:
        row = self._vocabulary.index(key, normalize)
        if row is None:
            raise KeyError(f"Key '{key}' is not contained in index '{self.id}'")
        return row

    def _embed(self, texts: List[str], use_lookup: bool) -> np.ndarray:
        """Encode a batch of texts, optionally looking them up in an encoder index first."""
        if use_lookup and isinstance(self.encoder, IVectorIndex):
            matrix = np.zeros((len(texts), self.dimension), dtype=VectorTable.dtype)
            missing = []
            for i, text in enumerate(texts):
                vector = self.encoder.lookup(text)
                if vector is None:
                    missing.append(i)
                else:
                    matrix[i] = self._check_dimension(vector)
            if missing:
                logger.debug(f"Fallback encoding {len(missing)} spans not found in '{getattr(self.encoder, 'id', 'encoder')}'")
                encoded = self.encoder.embed_texts([texts[i] for i in missing])
                for i, vector in zip(missing, encoded):
                    matrix[i] = self._check_dimension(vector)
            return matrix

        matrix = np.asarray(self.encoder.embed_texts(texts), dtype=VectorTable.dtype)
        if matrix.shape != (len(texts), self.dimension):
            raise ValueError(f"Encoder returned shape {matrix.shape}, expected {(len(texts), self.dimension)}")
        return matrix

    @staticmethod
    def _group_examples(examples: Examples) -> Dict[str, List[str]]:
        if isinstance(examples, Mapping):
            grouped = {}
            for key, spans in examples.items():
                grouped[key] = [spans] if isinstance(spans, str) else list(spans)
            return grouped
        grouped: Dict[str, List[str]] = {}
        for key, span in examples:
            grouped.setdefault(key, []).append(span)
        return grouped

    def _install(self, table: VectorTable, written: int) -> None:
        # apply normalization once over the whole table
        table.normalize_rows()
        self._table = table
        self.state = IndexState.AVAILABLE
        logger.log_vector_operation("build_vectors", self.id, {
            "written": written,
            "keys": self.size(),
            "vector_size": self.dimension
        })
