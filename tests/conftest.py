"""
Shared fixtures for the vector index tests.
"""

import re

import pytest

from vecindex.vector import InMemoryIndex
from vecindex.vector.embeddings import IEmbeddingProvider


class KeywordEmbedding(IEmbeddingProvider):
    """Maps every known keyword onto one axis, so similarities are predictable.

    Texts without any known keyword map to the zero vector.
    """

    AXES = {
        "heart": 0, "cardiac": 0,
        "lung": 1, "breathing": 1,
        "skin": 2, "rash": 2,
        "bone": 3, "fracture": 3,
    }

    def __init__(self, dimension: int = 4):
        self.dimension = dimension
        self.batches = []

    def embed_text(self, text: str) -> list[float]:
        vector = [0.0] * self.dimension
        for word in re.split(r"[\W_]+", text.lower()):
            if word in self.AXES:
                vector[self.AXES[word]] += 1.0
        return vector

    def embed_texts(self, texts):
        self.batches.append(list(texts))
        return super().embed_texts(texts)

    def get_dimension(self) -> int:
        return self.dimension


@pytest.fixture
def encoder():
    """Keyword encoder with four axes: heart, lung, skin, bone."""
    return KeywordEmbedding()


@pytest.fixture
def organ_index(encoder):
    """Available index with one unit axis per organ key."""
    index = InMemoryIndex(encoder, index_id="TEST")
    index.build_keys(["heart", "lung", "skin", "bone"])
    index.build_vectors({"heart": "heart", "lung": "lung", "skin": "skin", "bone": "bone"})
    return index
