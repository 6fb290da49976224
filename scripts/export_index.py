#!/usr/bin/env python3
"""
Index Export Utility
Writes the vectors of a binary index as TSV files for the Embedding Projector
and as a GloVe text file.
"""

import argparse
import sys
from pathlib import Path

import dotenv

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from vecindex.core import config
from vecindex.util.logging import logger
from vecindex.vector import InMemoryIndex, IndexFormatError


def read_meta_mapping(path):
    """Read ``key<TAB>display name`` lines used to rename keys in the metadata file."""
    mapping = {}
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            key, sep, name = line.rstrip("\n").partition("\t")
            if sep:
                mapping[key] = name
    return mapping


def main(argv=None):
    dotenv.load_dotenv()

    parser = argparse.ArgumentParser(description="Export a binary vector index to TSV and GloVe files")
    parser.add_argument("model_file", help="Binary index file (.bin)")
    parser.add_argument("--output-dir", help="Output directory (default: next to the model file)")
    parser.add_argument("--name", help="Base name of the export files (default: model file name)")
    parser.add_argument("--meta-mapping", help="Optional TSV mapping keys to display names")

    args = parser.parse_args(argv)
    logger.set_debug(config.debug_enabled())

    model_file = Path(args.model_file)
    if not model_file.exists():
        print(f"ERROR: Model file not found: {model_file}")
        return 1

    try:
        index = InMemoryIndex.load(model_file)
    except IndexFormatError as e:
        print(f"ERROR: Could not read {model_file}: {e}")
        return 1

    meta_mapping = read_meta_mapping(args.meta_mapping) if args.meta_mapping else None
    output_dir = args.output_dir or model_file.parent
    name = args.name or model_file.stem

    files = index.write_vectors(output_dir, name, meta_mapping)
    print(f"✓ Exported {index.size()} vectors of size {index.dimension}")
    for kind, path in files.items():
        print(f"  {kind}: {path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
