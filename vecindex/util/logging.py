"""
Structured logging for index builds, queries and persistence.
Every message carries an operation name, a status and an optional details dict.
"""

import logging
from typing import Any, Dict

class StructuredLogger:
    """Structured logger for vector index operations."""

    def __init__(self, name: str = "vecindex", level: int = logging.INFO):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_vector_operation(self, operation: str, index_id: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log a vector index operation."""
        log_details = {"index_id": index_id}
        if details:
            log_details.update(details)

        self.log_operation(f"vector.{operation}", status, log_details)

    def log_build_progress(self, index_id: str, phase: str, count: int, total: int = None):
        """Log progress of a long-running build phase."""
        log_details = {"index_id": index_id, "count": count}
        if total is not None:
            log_details["total"] = total

        self.log_operation(f"build.{phase}", "progress", log_details)

    def log_degraded_match(self, index_id: str, key: str, neighbour: str = None):
        """Log a decode that had to fall back to the nearest neighbour."""
        log_details = {
            "index_id": index_id,
            "key": key[:50] + "..." if len(key) > 50 else key,
            "neighbour": neighbour
        }
        self.log_operation("vector.decode", "degraded", log_details, level=logging.WARNING)

    def log_codec_operation(self, operation: str, entries: int, vector_size: int, status: str = "success", details: Dict[str, Any] = None):
        """Log binary serialization or export."""
        log_details = {"entries": entries, "vector_size": vector_size}
        if details:
            log_details.update(details)

        self.log_operation(f"codec.{operation}", status, log_details)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)

    def set_debug(self, enabled: bool) -> None:
        """Switch between DEBUG and INFO level."""
        self.logger.setLevel(logging.DEBUG if enabled else logging.INFO)

# Global logger instance
logger = StructuredLogger()
