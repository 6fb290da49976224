"""
Exceptions raised by the vector index.
Not-found results are never exceptions; lookups return None instead.
"""


class VectorIndexError(Exception):
    """Base exception for vector index failures."""
    pass


class IndexStateError(VectorIndexError):
    """Raised when an operation is called in the wrong build phase."""
    pass


class IndexFormatError(VectorIndexError):
    """Raised when a binary index stream is corrupt or truncated."""
    pass
