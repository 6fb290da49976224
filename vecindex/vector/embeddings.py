"""
Embedding providers: the encoders that turn text into dense vectors.
The index treats them as black boxes with a fixed output dimension.
"""

from abc import ABC, abstractmethod
import hashlib
from typing import Sequence

import numpy as np

class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass

    def embed_texts(self, texts: Sequence[str]) -> np.ndarray:
        """
        Embed multiple texts into vectors.

        Args:
            texts: List of text strings to embed

        Returns:
            Numpy array of shape (len(texts), embedding_dim)
        """
        if not texts:
            return np.zeros((0, self.get_dimension()), dtype=np.float32)
        return np.array([self.embed_text(text) for text in texts], dtype=np.float32)

class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider.

    Seeds a random generator with the MD5 digest of the text, so the same
    text always maps to the same vector without any model download. Useful
    for tests and offline index builds.
    """

    def __init__(self, dimension: int = 384):
        self.dimension = dimension

    def embed_text(self, text: str) -> list[float]:
        """Generate deterministic embedding vector using hash function."""
        digest = hashlib.md5(text.encode("utf-8")).digest()
        rng = np.random.default_rng(int.from_bytes(digest, "big"))
        # Standard normal components give uniformly distributed directions
        return rng.standard_normal(self.dimension).tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension

class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models.

    Uses the all-mpnet-base-v2 model by default. The model is loaded on first use.
    """

    def __init__(self, model_name: str = "all-mpnet-base-v2", batch_size: int = 32):
        self.model_name = model_name
        self.batch_size = batch_size
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector using sentence transformers."""
        embedding = self.model.encode(text, convert_to_tensor=False)
        return embedding.tolist()

    def embed_texts(self, texts: Sequence[str]) -> np.ndarray:
        """Encode a batch of texts in a single model call."""
        if not texts:
            return np.zeros((0, self.get_dimension()), dtype=np.float32)
        embeddings = self.model.encode(list(texts), batch_size=self.batch_size, convert_to_numpy=True)
        return np.asarray(embeddings, dtype=np.float32)

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
            if self._dimension is None:
                # Get dimension by encoding a dummy string
                self._dimension = len(self.model.encode("test", convert_to_tensor=False))
        return self._dimension
