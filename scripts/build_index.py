#!/usr/bin/env python3
"""
Index Build Utility
Builds an entity or aspect index from a labeled sentence file and saves it in
the binary index format.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Tuple

import dotenv

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from vecindex.core import config
from vecindex.util.logging import logger
from vecindex.vector import aspect_index, build_canonical_aspect_index, entity_index
from vecindex.vector.aspects import DEFAULT_HEADING_ALIASES, get_aspect_assignments


def read_labeled_sentences(path) -> List[Tuple[str, str]]:
    """Read ``label<TAB>sentence`` lines, skipping blank and malformed ones."""
    pairs = []
    with open(path, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.rstrip("\n")
            if not line.strip():
                continue
            label, sep, sentence = line.partition("\t")
            if not sep or not label.strip():
                logger.warning(f"Skipping malformed line {line_no} in {path}")
                continue
            pairs.append((label, sentence))
    return pairs


def main(argv=None):
    dotenv.load_dotenv()

    parser = argparse.ArgumentParser(
        description="Build a vector index from labeled sentences",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --kind aspect --input headings.tsv --name aspects
  %(prog)s --kind aspect --mode sentences --input sections.tsv --name aspects
  %(prog)s --kind entity --mode sentences --input entities.tsv --name entities
  %(prog)s --kind aspect --canonical MedQuAD --name medquad_aspects

Input files contain one "label<TAB>sentence" pair per line. In labels mode
every label part encodes itself; in sentences mode every label part gets the
average encoding of its sentences.

Environment variables:
- EMBED_PROVIDER=hash|sentence-transformers (default hash)
- EMBED_MODEL_NAME=... (default all-mpnet-base-v2)
- ENCODE_BATCH_SIZE=128
        """
    )
    parser.add_argument("--kind", choices=["entity", "aspect"], default="aspect",
                        help="Key policy of the index (default: aspect)")
    parser.add_argument("--mode", choices=["labels", "sentences"], default="labels",
                        help="Build vectors from labels or from sentences (default: labels)")
    parser.add_argument("--input", help="Labeled sentence TSV file")
    parser.add_argument("--canonical", choices=["MedQuAD", "WikiSection", "HealthQA"],
                        help="Build a canonical aspect index for a dataset instead of reading input")
    parser.add_argument("--output-dir", default="./models", help="Output directory (default: ./models)")
    parser.add_argument("--name", required=True, help="Name of the index file (without extension)")
    parser.add_argument("--export", action="store_true", help="Also write TSV and GloVe export files")

    args = parser.parse_args(argv)

    issues = config.validate_config()
    if issues:
        for issue in issues:
            print(f"ERROR: {issue}")
        return 1

    logger.set_debug(config.debug_enabled())
    encoder = config.get_embedding_provider()

    if args.canonical:
        if args.kind != "aspect":
            print("ERROR: --canonical requires --kind aspect")
            return 1
        index = build_canonical_aspect_index(encoder, get_aspect_assignments(args.canonical), DEFAULT_HEADING_ALIASES)
    else:
        if not args.input:
            print("ERROR: --input is required unless --canonical is given")
            return 1
        pairs = read_labeled_sentences(args.input)
        if not pairs:
            print(f"ERROR: No labeled sentences found in {args.input}")
            return 1
        print(f"Read {len(pairs)} labeled sentences from {args.input}")

        if args.kind == "entity":
            index = entity_index(encoder)
        else:
            index = aspect_index(encoder, DEFAULT_HEADING_ALIASES)

        if args.mode == "labels":
            index.build_from_labels(label for label, _ in pairs)
        else:
            index.build_from_sentences(pairs)

    model_file = index.save(args.output_dir, args.name)
    print(f"✓ Saved index with {index.size()} keys to {model_file}")

    if args.export:
        files = index.write_vectors(args.output_dir, args.name)
        print(f"✓ Exported vectors to {', '.join(str(f) for f in files.values())}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
