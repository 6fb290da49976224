"""
Binary persistence and plain-text export of a vocabulary plus vector table.

Binary layout (big-endian, forward-only):

    int64   number of keys N
    int64   total key occurrences
    int64   vector size K
    N x     uint16 byte length, UTF-8 key bytes, float64 frequency
    N x     K float32 values

Keys are written in index order so that loading reassigns the same index to
the same key. Vectors are stored as written and are not renormalized on load.
"""

import io
import re
import struct
from pathlib import Path
from typing import BinaryIO, Dict, Optional, Tuple

import numpy as np

from ..util.logging import logger
from .errors import IndexFormatError
from .normalizers import KeyNormalizer
from .table import VectorTable
from .types import VocabEntry
from .vocabulary import Vocabulary

_HEADER = struct.Struct(">qqq")
_KEY_LENGTH = struct.Struct(">H")
_FREQUENCY = struct.Struct(">d")
_VECTOR_DTYPE = np.dtype(">f4")
MAX_KEY_BYTES = 0xFFFF
_WHITESPACE = re.compile(r"\s+")


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if data is None or len(data) < size:
        raise IndexFormatError("binary file truncated")
    return data


def _remaining_bytes(stream: BinaryIO) -> Optional[int]:
    """Bytes left after the current position, or None if the stream cannot seek."""
    try:
        if not stream.seekable():
            return None
        position = stream.tell()
        end = stream.seek(0, io.SEEK_END)
        stream.seek(position)
    except (AttributeError, OSError):
        return None
    return end - position


def write_binary(vocabulary: Vocabulary, table: VectorTable, stream: BinaryIO) -> int:
    """Write vocabulary and vectors to a binary stream and return the number of keys."""
    num_keys = vocabulary.size()
    if table.rows != num_keys:
        raise ValueError(f"Vector table has {table.rows} rows but vocabulary has {num_keys} keys")

    stream.write(_HEADER.pack(num_keys, int(vocabulary.total_occurrences), table.dimension))

    for entry in vocabulary.entries():
        encoded = entry.key.encode("utf-8")
        if len(encoded) > MAX_KEY_BYTES:
            raise ValueError(f"Key '{entry.key[:50]}...' exceeds {MAX_KEY_BYTES} bytes")
        stream.write(_KEY_LENGTH.pack(len(encoded)))
        stream.write(encoded)
        stream.write(_FREQUENCY.pack(entry.frequency))

    for i in range(num_keys):
        stream.write(table.matrix[i].astype(_VECTOR_DTYPE).tobytes())

    logger.log_codec_operation("write", num_keys, table.dimension)
    return num_keys


def read_binary(stream: BinaryIO, normalizer: Optional[KeyNormalizer] = None) -> Tuple[Vocabulary, VectorTable]:
    """Read a vocabulary and vector table from a binary stream.

    Raises IndexFormatError if the stream ends before all declared entries
    were read.
    """
    num_keys, total_occurrences, vector_size = _HEADER.unpack(_read_exact(stream, _HEADER.size))
    if num_keys < 0 or vector_size < 1 or total_occurrences < 0:
        raise IndexFormatError(f"invalid header (keys={num_keys}, total={total_occurrences}, size={vector_size})")

    # every key record takes at least its length and frequency fields
    remaining = _remaining_bytes(stream)
    if remaining is not None and remaining < num_keys * (_KEY_LENGTH.size + _FREQUENCY.size):
        raise IndexFormatError("binary file truncated")

    entries = []
    for i in range(num_keys):
        (length,) = _KEY_LENGTH.unpack(_read_exact(stream, _KEY_LENGTH.size))
        try:
            key = _read_exact(stream, length).decode("utf-8")
        except UnicodeDecodeError as e:
            raise IndexFormatError(f"invalid key at index {i}: {e}") from e
        (frequency,) = _FREQUENCY.unpack(_read_exact(stream, _FREQUENCY.size))
        entries.append(VocabEntry(key=key, index=i, frequency=frequency))

    row_bytes = vector_size * _VECTOR_DTYPE.itemsize
    remaining = _remaining_bytes(stream)
    if remaining is not None and remaining < num_keys * row_bytes:
        raise IndexFormatError("binary file truncated")

    rows = [np.frombuffer(_read_exact(stream, row_bytes), dtype=_VECTOR_DTYPE) for _ in range(num_keys)]
    if rows:
        matrix = np.vstack(rows).astype(VectorTable.dtype)
    else:
        matrix = np.zeros((0, vector_size), dtype=VectorTable.dtype)

    try:
        vocabulary = Vocabulary.from_entries(entries, total_occurrences, normalizer)
    except ValueError as e:
        raise IndexFormatError(str(e)) from e
    table = VectorTable.from_matrix(matrix)

    logger.log_codec_operation("read", num_keys, vector_size)
    return vocabulary, table


def _format_value(value: float) -> str:
    return f"{value:.8f}"


def write_vectors(vocabulary: Vocabulary, table: VectorTable, path, name: str,
                  meta_mapping: Optional[Dict[str, str]] = None) -> Dict[str, Path]:
    """
    Write vectors and metadata for the Embedding Projector and GloVe tools.

    Produces ``<name>.vectors.tsv`` (tab-separated values), ``<name>.meta.tsv``
    (``Key\\tFreq`` header, keys optionally renamed through meta_mapping) and
    ``<name>.glove.txt`` (``key v1 ... vK`` with whitespace in keys replaced
    by underscores). This format is write-only.
    """
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    files = {
        "vectors": directory / f"{name}.vectors.tsv",
        "meta": directory / f"{name}.meta.tsv",
        "glove": directory / f"{name}.glove.txt",
    }

    with open(files["vectors"], "w", encoding="utf-8") as vec_file, \
         open(files["meta"], "w", encoding="utf-8") as meta_file, \
         open(files["glove"], "w", encoding="utf-8") as glove_file:

        meta_file.write("Key\tFreq\n")

        for entry in vocabulary.entries():
            values = [_format_value(v) for v in table.matrix[entry.index].tolist()]
            mapped_key = meta_mapping.get(entry.key, entry.key) if meta_mapping else entry.key
            vec_file.write("\t".join(values) + "\n")
            meta_file.write(f"{mapped_key}\t{int(entry.frequency)}\n")
            glove_file.write(_WHITESPACE.sub("_", entry.key) + " " + " ".join(values) + "\n")

    logger.log_codec_operation("export", vocabulary.size(), table.dimension, details={"name": name})
    return files
