"""
Embedding vector index: key vocabulary, normalized vector table, exact
cosine top-k search and binary persistence.
"""

# Package initialization for vector module
from .index import IVectorIndex, InMemoryIndex
from .composite import (
    CompositeKeyIndex,
    KeySplitter,
    aspect_index,
    build_canonical_aspect_index,
    entity_index,
)
from .vocabulary import Vocabulary
from .table import VectorTable
from .types import IndexEntry, IndexState, VocabEntry
from .errors import VectorIndexError, IndexStateError, IndexFormatError
from .embeddings import IEmbeddingProvider, DeterministicHashEmbedding, SentenceTransformerEmbedding

__all__ = [
    'IVectorIndex',
    'InMemoryIndex',
    'CompositeKeyIndex',
    'KeySplitter',
    'aspect_index',
    'build_canonical_aspect_index',
    'entity_index',
    'Vocabulary',
    'VectorTable',
    'IndexEntry',
    'IndexState',
    'VocabEntry',
    'VectorIndexError',
    'IndexStateError',
    'IndexFormatError',
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'SentenceTransformerEmbedding'
]
