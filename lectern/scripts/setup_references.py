#!/usr/bin/env python3
"""
Setup script to build the local verse cache.

Reads a scripture source (local file or URL), normalizes it to canonical
JSONL records and replaces the cache.

Usage:
    lectern-cache
    lectern-cache --source ./kjv.json
    lectern-cache --source https://example.org/kjv.jsonl --format jsonl
    lectern-cache --status

Examples:
    # Download the default public KJV source
    lectern-cache

    # Ingest a local nested {book: {chapter: [text, ...]}} file
    lectern-cache --source ./bible.json --format nested

    # Show where the cache lives and how many verses it holds
    lectern-cache --status
"""

import argparse
import logging
import sys

from lectern.core import config
from lectern.services.references import (
    CacheCorrupt,
    DEFAULT_SOURCE,
    DuplicateRecord,
    IngestError,
    ReferenceService,
    ReferenceStorage,
    RetrievalFailure,
)


def print_status(service: ReferenceService) -> int:
    try:
        status = service.status()
    except CacheCorrupt as e:
        print(f"Cache root: {service.storage.base_path}")
        print(f"KJV: unreadable ({e})")
        return 1

    print(f"Cache root: {status['root']}")
    if status["ready"]:
        print(f"KJV: ready ({status['verse_count']:,} verses, {status['book_count']} books)")
        print(f"File: {status['verses_path']}")
    else:
        print("KJV: missing. Run `lectern-cache` to preload.")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Build the local verse cache for Lectern",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  lectern-cache                                 # Preload the default source
  lectern-cache --source ./kjv.json             # Preload a local file
  lectern-cache --source ./kjv.json --format flat
  lectern-cache --status                        # Show cache status
        """
    )
    parser.add_argument(
        "--source",
        default=None,
        metavar="SOURCE",
        help=f"File path or http(s) URL (default: {DEFAULT_SOURCE})"
    )
    parser.add_argument(
        "--format",
        choices=["flat", "nested", "jsonl"],
        default=None,
        help="Skip auto-detection and read the source in this shape"
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        metavar="DIR",
        help="Cache root (default: $LECTERN_DATA_DIR or ~/.bible-cli)"
    )
    parser.add_argument(
        "--status",
        action="store_true",
        help="Show current cache status and exit"
    )
    parser.add_argument(
        "--show-skipped",
        action="store_true",
        help="List every skipped source entry"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.LOG_LEVEL,
        format=config.LOG_FORMAT,
        datefmt=config.LOG_DATEFMT,
    )

    service = ReferenceService(storage=ReferenceStorage(args.data_dir))

    if args.status:
        return print_status(service)

    source = args.source or DEFAULT_SOURCE
    print(f"Reading {source}")

    try:
        result = service.preload(source, hint=args.format)
    except RetrievalFailure as e:
        print(f"Error: {e}")
        return 1
    except DuplicateRecord as e:
        print(f"Error: {e}")
        print("Cache left unchanged.")
        return 1
    except IngestError as e:
        print(f"Error: {e}")
        return 1

    print(f"KJV cached: {result.verse_count:,} verses ({result.shape.value} source)")
    if result.skipped_count:
        print(f"Skipped: {result.skipped_count} entries")
        if args.show_skipped:
            for skipped in result.skipped:
                print(f"  - {skipped}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
