"""
Index configuration.
All settings come from environment variables; scripts load a .env file first.
"""

import os

# Embedding provider configuration
EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "hash")  # hash|sentence-transformers
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME", "all-mpnet-base-v2")
EMBED_DIM = int(os.getenv("EMBED_DIM", "384"))

# Build configuration
ENCODE_BATCH_SIZE = int(os.getenv("ENCODE_BATCH_SIZE", "128"))
PROGRESS_LOG_INTERVAL = int(os.getenv("PROGRESS_LOG_INTERVAL", "100000"))

# Subsampling weight
SUBSAMPLING_ALPHA = float(os.getenv("SUBSAMPLING_ALPHA", "0.03"))

DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# File extension of the binary index format
BINARY_SUFFIX = ".bin"

VALID_EMBED_PROVIDERS = ["hash", "sentence-transformers"]


def get_embedding_provider():
    """Get configured embedding provider implementation."""
    provider = os.getenv("EMBED_PROVIDER", EMBED_PROVIDER)

    if provider == "sentence-transformers":
        from vecindex.vector.embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(os.getenv("EMBED_MODEL_NAME", EMBED_MODEL_NAME))
    else:
        from vecindex.vector.embeddings import DeterministicHashEmbedding
        return DeterministicHashEmbedding(int(os.getenv("EMBED_DIM", str(EMBED_DIM))))


def get_batch_size():
    """Get the number of spans encoded per encoder call."""
    return int(os.getenv("ENCODE_BATCH_SIZE", str(ENCODE_BATCH_SIZE)))


def get_subsampling_alpha():
    """Get the default alpha of the subsampling weight."""
    return float(os.getenv("SUBSAMPLING_ALPHA", str(SUBSAMPLING_ALPHA)))


def get_progress_interval():
    """Get the number of rows between two progress log lines."""
    return int(os.getenv("PROGRESS_LOG_INTERVAL", str(PROGRESS_LOG_INTERVAL)))


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def validate_config():
    """Validate index configuration and return any issues."""
    issues = []

    provider = os.getenv("EMBED_PROVIDER", EMBED_PROVIDER)
    if provider not in VALID_EMBED_PROVIDERS:
        issues.append(f"Invalid EMBED_PROVIDER: {provider}")

    try:
        if get_batch_size() < 1:
            issues.append("ENCODE_BATCH_SIZE must be >= 1")
    except ValueError:
        issues.append("ENCODE_BATCH_SIZE must be an integer")

    try:
        alpha = get_subsampling_alpha()
        if not 0 < alpha <= 1:
            issues.append("SUBSAMPLING_ALPHA must be in (0, 1]")
    except ValueError:
        issues.append("SUBSAMPLING_ALPHA must be a number")

    try:
        if int(os.getenv("EMBED_DIM", str(EMBED_DIM))) < 1:
            issues.append("EMBED_DIM must be >= 1")
    except ValueError:
        issues.append("EMBED_DIM must be an integer")

    try:
        if get_progress_interval() < 1:
            issues.append("PROGRESS_LOG_INTERVAL must be >= 1")
    except ValueError:
        issues.append("PROGRESS_LOG_INTERVAL must be an integer")

    return issues
