# lectern/services/references/__init__.py
"""
Scripture reference services for Lectern.

This package provides:
- BookCatalog: Canonical book names and their aliases
- parse / parse_reference: Free-form reference parsing into ReferenceQuery
- normalize: Source ingestion into canonical verse records
- VerseStore: In-memory indexed verse collection
- ReferenceStorage: Verse cache directory management
- read_source: Raw source retrieval (file or HTTP)
- ReferenceService: Unified interface over all of the above
"""

from .books import (
    Book,
    BookCatalog,
    BOOK_TABLE,
    ReferenceParseError,
    UnknownBook,
    default_catalog,
)
from .reference_parser import (
    ReferenceQuery,
    MalformedReference,
    parse,
    parse_reference,
    is_valid_reference,
)
from .records import Verse, CacheCorrupt
from .normalizer import (
    SourceShape,
    IngestResult,
    RecordSkipped,
    IngestError,
    UnsupportedSourceShape,
    EmptySource,
    DuplicateRecord,
    detect_shape,
    normalize,
)
from .verse_store import (
    VerseStore,
    StoreError,
    CacheMissing,
    VerseNotFound,
)
from .source_manager import RetrievalFailure, read_source, DEFAULT_SOURCE
from .storage import ReferenceStorage
from .moods import Mood, all_moods, find_mood
from .reference_service import ReferenceService, Passage, UnknownMood

__all__ = [
    # Unified Service (primary interface)
    "ReferenceService",
    "Passage",
    "UnknownMood",
    # Catalog
    "Book",
    "BookCatalog",
    "BOOK_TABLE",
    "default_catalog",
    # Reference parsing
    "ReferenceQuery",
    "ReferenceParseError",
    "UnknownBook",
    "MalformedReference",
    "parse",
    "parse_reference",
    "is_valid_reference",
    # Records and ingestion
    "Verse",
    "SourceShape",
    "IngestResult",
    "RecordSkipped",
    "IngestError",
    "UnsupportedSourceShape",
    "EmptySource",
    "DuplicateRecord",
    "detect_shape",
    "normalize",
    # Store
    "VerseStore",
    "StoreError",
    "CacheMissing",
    "CacheCorrupt",
    "VerseNotFound",
    # Retrieval and storage
    "RetrievalFailure",
    "read_source",
    "DEFAULT_SOURCE",
    "ReferenceStorage",
    # Moods
    "Mood",
    "all_moods",
    "find_mood",
]
