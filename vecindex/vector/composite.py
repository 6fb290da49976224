"""
Composite-key indexes.

A composite key holds several logical keys joined by a separator, e.g. the
entity ids ``"Diabetes_mellitus;Insulin"`` or the section heading
``"Signs and Symptoms | Diagnosis"``. A ``CompositeKeyIndex`` splits such keys
with a ``KeySplitter`` and resolves every part against one ``InMemoryIndex``;
the storage and the search stay in the wrapped index.
"""

import re
from collections.abc import Mapping
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np

from ..util.logging import logger
from .embeddings import IEmbeddingProvider
from .index import IVectorIndex, InMemoryIndex
from .normalizers import aspect_heading, wikipedia_url
from .table import ArrayLike, VectorTable
from .types import IndexEntry

# separator used for multi-label entity ids
ENTITY_SEPARATOR = ";"

# separators used in section headings, e.g. "Causes | Prevention", "Signs and Symptoms"
HEADING_SEPARATOR = r" \| | and |&|/"


class KeySplitter:
    """Splits a composite key into its parts.

    Args:
        separator: Literal separator, or a regular expression if regex is set
        regex: Treat separator as a regular expression
        strip: Strip whitespace around every part
    """

    def __init__(self, separator: str, regex: bool = False, strip: bool = False):
        if not separator:
            raise ValueError("separator must not be empty")
        self.separator = separator
        self.regex = regex
        self.strip = strip
        self._pattern = re.compile(separator) if regex else None

    def split(self, key: str) -> List[str]:
        """Return the non-empty parts of a key."""
        parts = self._pattern.split(key) if self._pattern is not None else key.split(self.separator)
        if self.strip:
            parts = [part.strip() for part in parts]
        return [part for part in parts if part]

    def __repr__(self) -> str:
        return f"KeySplitter({self.separator!r}, regex={self.regex}, strip={self.strip})"


def underscores_to_spaces(text: str) -> str:
    return text.replace("_", " ")


class CompositeKeyIndex(IVectorIndex, IEmbeddingProvider):
    """Resolves composite keys part by part against a wrapped index.

    ``lookup`` and ``encode`` average the part vectors. ``decode`` returns a
    multi-hot vector and falls back to the nearest neighbour of the encoded
    key if no part is known.
    """

    def __init__(self, base: InMemoryIndex, splitter: KeySplitter,
                 aliases: Optional[Mapping] = None,
                 text_transform: Optional[Callable[[str], str]] = None):
        """
        Args:
            base: Index holding one vector per part key
            splitter: Strategy to split composite keys
            aliases: Whole-key replacements applied before splitting, e.g. {"Abstract": "Description"}
            text_transform: Applied to a part before it is given to the encoder
        """
        self.base = base
        self.splitter = splitter
        self.aliases = dict(aliases) if aliases else {}
        self.text_transform = text_transform

    @property
    def id(self) -> str:
        return self.base.id

    def parts(self, key: str) -> List[str]:
        """Split a composite key after applying aliases."""
        return self.splitter.split(self.aliases.get(key, key))

    def _text(self, text: str) -> str:
        return self.text_transform(text) if self.text_transform is not None else text

    # --- composite operations --------------------------------------------------------------

    def lookup(self, key: Optional[str], encode_missing: bool = False) -> Optional[np.ndarray]:
        """
        Average vector over all parts of a composite key.

        Unknown parts are skipped, or encoded if encode_missing is set.
        Returns None if no part could be resolved.
        """
        if key is None:
            return None
        total = np.zeros(self.base.dimension, dtype=VectorTable.dtype)
        count = 0
        for part in self.parts(key):
            vector = self.base.lookup(part)
            if vector is None and encode_missing:
                vector = self.base.encode(self._text(part))
            if vector is not None:
                total += vector
                count += 1
        if count == 0:
            return None
        return total / count if count > 1 else total

    def encode(self, text: str) -> np.ndarray:
        """Average of the unit encodings of all parts of text."""
        parts = self.parts(text) or [text]
        total = np.zeros(self.base.dimension, dtype=VectorTable.dtype)
        for part in parts:
            total += self.base.encode(self._text(part))
        return total / len(parts) if len(parts) > 1 else total

    def decode(self, key: str) -> np.ndarray:
        """
        Multi-hot vector of length N with 1.0 at every resolved part.

        If no part resolves, the whole key is encoded and its nearest
        neighbour is used instead (logged as degraded match).
        """
        self.base.require_vectors()
        result = np.zeros(self.base.size(), dtype=np.float32)
        for part in self.parts(key):
            row = self.base.index(part)
            if row is not None:
                result[row] = 1.0
        if result.sum() == 0.0:
            return self.base.decode_nearest(key, self.base.encode(self._text(key)))
        return result

    # --- delegated index operations --------------------------------------------------------

    def index(self, key: Optional[str]) -> Optional[int]:
        return self.base.index(key)

    def key(self, index: int) -> Optional[str]:
        return self.base.key(index)

    def keys(self) -> List[str]:
        return self.base.keys()

    def size(self) -> int:
        return self.base.size()

    def find(self, vector: ArrayLike, k: int = 1) -> List[IndexEntry]:
        return self.base.find(vector, k)

    def similarity(self, vector: ArrayLike) -> np.ndarray:
        return self.base.similarity(vector)

    def frequency(self, key_or_index) -> float:
        return self.base.frequency(key_or_index)

    def probability(self, key_or_index) -> float:
        return self.base.probability(key_or_index)

    def weight_factor(self, key_or_index, alpha: Optional[float] = None) -> float:
        return self.base.weight_factor(key_or_index, alpha)

    def save(self, path, name: str):
        return self.base.save(path, name)

    def write_vectors(self, path, name: str, meta_mapping: Optional[Dict[str, str]] = None):
        return self.base.write_vectors(path, name, meta_mapping)

    def clear(self) -> None:
        self.base.clear()

    def embed_text(self, text: str) -> list[float]:
        return self.encode(text).tolist()

    def get_dimension(self) -> int:
        return self.base.dimension

    # --- index building --------------------------------------------------------------------

    def build_from_labels(self, labels: Iterable[str]) -> None:
        """
        Build the index from labels only: every part of a label becomes a key
        whose vector is the encoding of the part itself.
        """
        keys: List[str] = []
        examples: Dict[str, List[str]] = {}
        for label in labels:
            for part in self.parts(label):
                key = self.base.normalizer(part)
                keys.append(key)
                if key not in examples:
                    # every distinct key is encoded only once
                    examples[key] = [self._text(part)]
        self.base.build_keys(keys, normalize=False)
        self.base.encode_and_build(examples)

    def build_from_sentences(self, pairs: Iterable[Tuple[str, str]]) -> None:
        """
        Build the index from ``(label, sentence)`` pairs: every part of a label
        gets the average encoding of all sentences labeled with it.
        """
        examples: Dict[str, List[str]] = {}
        for label, sentence in pairs:
            for part in self.parts(label):
                examples.setdefault(self.base.normalizer(part), []).append(sentence)
        logger.info(f"Reading {sum(len(v) for v in examples.values())} examples for {len(examples)} keys...")
        keys = [key for key, sentences in examples.items() for _ in sentences]
        self.base.build_keys(keys, normalize=False)
        self.base.encode_and_build(examples)

    def build_from_pairs(self, pairs: Iterable[Tuple[Optional[str], str]],
                         source: Optional[IVectorIndex] = None) -> None:
        """
        Build the index from ``(composite id, text)`` pairs.

        Every id part is looked up in the source index if given; otherwise,
        or if the source does not know it, the text is encoded.
        """
        keys: List[str] = []
        vectors: Dict[str, object] = {}
        for key, text in pairs:
            if not key:
                logger.warning(f"Found entry without id for '{text}' - skipping")
                continue
            for part in self.parts(key):
                keys.append(part)
                if part in vectors:
                    continue
                vector = source.lookup(part) if source is not None else None
                if vector is None:
                    if source is not None:
                        logger.info(f"Fallback encoding {part} '{text}'")
                    vector = self._text(text)
                vectors[part] = vector
        self.base.build_keys(keys, normalize=True)
        self.base.build_vectors(vectors)


def entity_index(encoder: Optional[IEmbeddingProvider], base: Optional[InMemoryIndex] = None) -> CompositeKeyIndex:
    """
    Index over entity ids such as ``Diabetes_mellitus_type_1``.

    Ids are cleaned as Wikipedia page titles, split at ``;`` and encoded with
    underscores replaced by spaces. Pass a loaded index as base to wrap it.
    """
    if base is None:
        base = InMemoryIndex(encoder, normalizer=wikipedia_url, index_id="ENT")
    return CompositeKeyIndex(base, KeySplitter(ENTITY_SEPARATOR), text_transform=underscores_to_spaces)


def aspect_index(encoder: Optional[IEmbeddingProvider], aliases: Optional[Mapping] = None,
                 base: Optional[InMemoryIndex] = None) -> CompositeKeyIndex:
    """
    Index over section headings / aspects such as ``signs_and_symptoms``.

    Headings are split at ``|``, ``and``, ``&`` and ``/``, trimmed and
    normalized to lowercase underscore form. Aliases replace whole headings
    before splitting.
    """
    if base is None:
        base = InMemoryIndex(encoder, normalizer=aspect_heading, index_id="ASP")
    return CompositeKeyIndex(base, KeySplitter(HEADING_SEPARATOR, regex=True, strip=True), aliases=aliases)


def build_canonical_aspect_index(encoder: IEmbeddingProvider, assignments: Mapping,
                                 aliases: Optional[Mapping] = None) -> CompositeKeyIndex:
    """
    Build an aspect index over a fixed set of canonical aspects.

    Args:
        encoder: Embedding provider
        assignments: Canonical aspect key -> representative heading to encode
        aliases: Optional heading aliases for the returned index
    """
    aspects = aspect_index(encoder, aliases)
    aspects.base.build_keys(list(assignments.keys()), normalize=False)
    aspects.base.encode_and_build({key: [heading] for key, heading in assignments.items()})
    return aspects
