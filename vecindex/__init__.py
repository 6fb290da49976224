"""
vecindex - in-memory embedding vector index with exact cosine search.
"""

__version__ = "1.0.0"
