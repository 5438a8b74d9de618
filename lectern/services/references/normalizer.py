# lectern/services/references/normalizer.py
"""
Source normalizer: external scripture dumps -> canonical verse records.

Three source shapes are recognized:

1. FLAT_RECORDS - a JSON array of verse objects:
       [{"book": "John", "chapter": 3, "verse": 16, "text": "..."}, ...]
   (also wrapped as {"verses": [...]} or {"data": [...]})

2. NESTED_BOOKS - books -> chapters -> ordered verse texts, where the
   verse number is the 1-based position in its chapter:
       [{"name": "John", "chapters": [["...", "..."], ...]}, ...]
       {"books": [...]}
       {"John": {"3": ["...", "..."]}}
       {"John": [["...", "..."], ...]}

3. LINE_RECORDS - already-canonical JSONL, one record per line.

The shape is decided once by detect_shape() (or forced by a hint), then
a single shape-specific pass converts entries. Bad entries are skipped
and counted; duplicate (book, chapter, verse) identities are collected
and raised together as DuplicateRecord when the pass is done.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from .books import BookCatalog, default_catalog
from .records import Verse, dump_jsonl

logger = logging.getLogger(__name__)

# Field names seen in common public dumps
BOOK_KEYS = ("book", "book_name", "bookName", "bookname")
CHAPTER_KEYS = ("chapter", "chapter_id", "chapterId")
VERSE_KEYS = ("verse", "verse_id", "verseId", "verse_num")
TEXT_KEYS = ("text", "content", "verse_text", "text_verse")

NESTED_BOOK_KEYS = ("name", "book", "bookName", "book_name")
NESTED_TEXT_KEYS = ("text", "content", "verse")


class SourceShape(Enum):
    FLAT_RECORDS = "flat"
    NESTED_BOOKS = "nested"
    LINE_RECORDS = "jsonl"

    @classmethod
    def from_hint(cls, hint) -> Optional["SourceShape"]:
        """
        Resolve a user-supplied format hint.

        Accepts a SourceShape, its value ("flat", "nested", "jsonl"), its
        name, or "lines"/"ndjson" for line-delimited input.
        """
        if hint is None or isinstance(hint, cls):
            return hint

        key = str(hint).strip().lower()
        for shape in cls:
            if key in (shape.value, shape.name.lower()):
                return shape
        if key in ("lines", "ndjson"):
            return cls.LINE_RECORDS
        raise ValueError(f"Unknown source format: {hint}")


class IngestError(Exception):
    """Base exception for source ingestion."""
    pass


class UnsupportedSourceShape(IngestError):
    """Raised when the source matches none of the recognized shapes."""
    pass


class EmptySource(UnsupportedSourceShape):
    """Raised when a recognized source yields no usable verse at all."""
    pass


@dataclass(frozen=True)
class RecordSkipped:
    """A non-fatal, per-entry ingestion problem."""
    location: str
    reason: str

    def __str__(self) -> str:
        return f"{self.location}: {self.reason}"


@dataclass
class IngestResult:
    """
    Output of one ingestion.

    Attributes:
        shape: Detected (or hinted) source shape
        records: Canonical verses, sorted by book order, chapter, verse
        skipped: Entries that were dropped, with reasons
    """
    shape: SourceShape
    records: list = field(default_factory=list)
    skipped: list = field(default_factory=list)

    @property
    def verse_count(self) -> int:
        return len(self.records)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    def to_jsonl(self) -> str:
        return dump_jsonl(self.records)


class DuplicateRecord(IngestError):
    """
    Raised when the same (book, chapter, verse) appears more than once.

    Attributes:
        duplicates: The repeated identities, in the order encountered
        result: The partial result (first occurrence of each identity kept)
    """

    def __init__(self, duplicates: list, result: IngestResult = None):
        self.duplicates = duplicates
        self.result = result
        shown = ", ".join(f"{b} {c}:{v}" for b, c, v in duplicates[:5])
        more = f" (+{len(duplicates) - 5} more)" if len(duplicates) > 5 else ""
        super().__init__(f"{len(duplicates)} duplicate record(s): {shown}{more}")


# =============================================================================
# Field extraction
# =============================================================================

def _to_int(value) -> Optional[int]:
    """Positive integer from a JSON number or digit string, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str):
        value = value.strip()
        # Only ASCII digits; str.isdigit() also accepts superscripts
        if not (value.isascii() and value.isdigit()):
            return None
        number = int(value)
        return number if number > 0 else None
    return None


def _first_string(obj: dict, keys) -> Optional[str]:
    for key in keys:
        value = obj.get(key)
        if isinstance(value, str):
            return value
    return None


def _first_int(obj: dict, keys) -> Optional[int]:
    for key in keys:
        number = _to_int(obj.get(key))
        if number is not None:
            return number
    return None


def _extract_verse(item, catalog: BookCatalog) -> Verse:
    """
    Build a Verse from a self-contained record object.

    Raises:
        ValueError: With the reason the entry must be skipped
    """
    if not isinstance(item, dict):
        raise ValueError("entry is not an object")

    book_name = _first_string(item, BOOK_KEYS)
    if not book_name:
        raise ValueError("missing book")

    chapter = _first_int(item, CHAPTER_KEYS)
    if chapter is None:
        raise ValueError("missing or invalid chapter")

    verse = _first_int(item, VERSE_KEYS)
    if verse is None:
        raise ValueError("missing or invalid verse")

    text = _first_string(item, TEXT_KEYS)
    if text is None and isinstance(item.get("verse"), str):
        # Some dumps put the text under "verse" and the number under verse_id
        text = item["verse"]
    if not text or not text.strip():
        raise ValueError("missing text")

    book = catalog.normalize(book_name)
    if book is None:
        raise ValueError(f"unknown book {book_name!r}")

    return Verse(book=book.name, chapter=chapter, verse=verse, text=text.strip())


def _looks_like_verse(item) -> bool:
    return (
        isinstance(item, dict)
        and any(k in item for k in BOOK_KEYS)
        and any(k in item for k in CHAPTER_KEYS)
        and any(k in item for k in VERSE_KEYS)
    )


def _is_chapter_grouping(value) -> bool:
    """True for {"1": [...], ...} or [[...], ...]."""
    if isinstance(value, dict):
        return all(isinstance(v, list) for v in value.values())
    if isinstance(value, list):
        return all(isinstance(v, list) for v in value)
    return False


# =============================================================================
# Shape detection
# =============================================================================

def _decode(raw: Union[bytes, str]) -> str:
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise UnsupportedSourceShape(f"Source is not UTF-8 text: {e}") from e
    return raw.lstrip("\ufeff")


def _has_record_lines(text: str) -> bool:
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            if isinstance(json.loads(line), dict):
                return True
        except json.JSONDecodeError:
            continue
    return False


def _load_document(text: str):
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise UnsupportedSourceShape(f"Source is not a JSON document: {e}") from e


def _flat_payload(value) -> Optional[list]:
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        for key in ("verses", "data"):
            if isinstance(value.get(key), list):
                return value[key]
    return None


def _nested_payload(value):
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        books = value.get("books")
        if isinstance(books, list):
            return books
        if isinstance(books, dict) and books and all(_is_chapter_grouping(v) for v in books.values()):
            return books
        if value and all(_is_chapter_grouping(v) for v in value.values()):
            return value
    return None


def _classify_document(value, text: str) -> tuple:
    if isinstance(value, list):
        if any(_looks_like_verse(item) for item in value):
            return SourceShape.FLAT_RECORDS, value
        if any(isinstance(item, dict) and "chapters" in item for item in value):
            return SourceShape.NESTED_BOOKS, value
        raise UnsupportedSourceShape("JSON array holds neither verse records nor book groupings")

    if isinstance(value, dict):
        if "books" in value:
            payload = _nested_payload(value)
            if payload is not None:
                return SourceShape.NESTED_BOOKS, payload
        for key in ("verses", "data"):
            if isinstance(value.get(key), list):
                return SourceShape.FLAT_RECORDS, value[key]
        if _looks_like_verse(value):
            # A one-line canonical file parses as a single object
            return SourceShape.LINE_RECORDS, text
        payload = _nested_payload(value)
        if payload is not None:
            return SourceShape.NESTED_BOOKS, payload

    raise UnsupportedSourceShape("Unsupported JSON structure for scripture source")


def detect_shape(raw: Union[bytes, str]) -> tuple:
    """
    Decide which shape a source has.

    Args:
        raw: Source bytes (UTF-8, optional BOM) or text

    Returns:
        (SourceShape, payload) where payload is the parsed list/mapping
        for FLAT_RECORDS and NESTED_BOOKS, or the decoded text for
        LINE_RECORDS

    Raises:
        UnsupportedSourceShape: If no shape matches
    """
    text = _decode(raw)
    stripped = text.strip()
    if not stripped:
        raise UnsupportedSourceShape("Source is empty")

    if stripped[0] in "[{":
        try:
            value = json.loads(stripped)
        except json.JSONDecodeError:
            # Multi-line JSONL fails as a single document
            value = None
        else:
            return _classify_document(value, text)

    if _has_record_lines(stripped):
        return SourceShape.LINE_RECORDS, text

    raise UnsupportedSourceShape(
        "Source is neither a JSON document nor line-delimited JSON records"
    )


def _payload_for(shape: SourceShape, raw: Union[bytes, str]):
    """Payload for a hinted shape, without auto-detection."""
    text = _decode(raw)

    if shape is SourceShape.LINE_RECORDS:
        if not _has_record_lines(text):
            raise UnsupportedSourceShape("No JSON records found in line-delimited source")
        return text

    value = _load_document(text.strip())
    if shape is SourceShape.FLAT_RECORDS:
        payload = _flat_payload(value)
    else:
        payload = _nested_payload(value)

    if payload is None:
        raise UnsupportedSourceShape(f"Source does not have the {shape.value} shape")
    return payload


# =============================================================================
# Normalization
# =============================================================================

class _Collector:
    """Accumulates verses, skipped entries and duplicate identities."""

    def __init__(self, catalog: BookCatalog):
        self.catalog = catalog
        self.verses = {}
        self.skipped = []
        self.duplicates = []

    def skip(self, location: str, reason: str):
        logger.debug(f"Skipping {location}: {reason}")
        self.skipped.append(RecordSkipped(location, reason))

    def add(self, verse: Verse):
        if verse.key in self.verses:
            logger.warning(f"Duplicate record {verse.reference}")
            self.duplicates.append(verse.key)
            return
        self.verses[verse.key] = verse

    def sorted_verses(self) -> list[Verse]:
        return sorted(
            self.verses.values(),
            key=lambda v: (self.catalog.position(v.book), v.chapter, v.verse),
        )


def _normalize_flat(entries: list, collector: _Collector):
    for idx, item in enumerate(entries, start=1):
        try:
            verse = _extract_verse(item, collector.catalog)
        except ValueError as e:
            collector.skip(f"entry {idx}", str(e))
            continue
        collector.add(verse)


def _normalize_lines(text: str, collector: _Collector):
    for line_no, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            item = json.loads(line)
            verse = _extract_verse(item, collector.catalog)
        except ValueError as e:
            # json.JSONDecodeError is a ValueError too
            collector.skip(f"line {line_no}", str(e))
            continue
        collector.add(verse)


def _iter_chapters(chapters, book_name: str, collector: _Collector):
    """Yield (chapter number, verse entries) for one book grouping."""
    if isinstance(chapters, list):
        numbered = enumerate(chapters, start=1)
    elif isinstance(chapters, dict):
        numbered = []
        for key, entries in chapters.items():
            number = _to_int(key)
            if number is None:
                collector.skip(f"{book_name} chapter {key!r}", "invalid chapter number")
                continue
            numbered.append((number, entries))
        numbered.sort(key=lambda pair: pair[0])
    else:
        collector.skip(book_name, "missing chapters")
        return

    for number, entries in numbered:
        if not isinstance(entries, list):
            collector.skip(f"{book_name} {number}", "chapter is not a list of verses")
            continue
        yield number, entries


def _normalize_nested(payload, collector: _Collector):
    if isinstance(payload, dict):
        groups = list(payload.items())
    else:
        groups = []
        for idx, book_obj in enumerate(payload, start=1):
            if not isinstance(book_obj, dict):
                collector.skip(f"book {idx}", "book entry is not an object")
                continue
            name = _first_string(book_obj, NESTED_BOOK_KEYS)
            if not name:
                collector.skip(f"book {idx}", "missing book name")
                continue
            groups.append((name, book_obj.get("chapters")))

    for name, chapters in groups:
        book = collector.catalog.normalize(name)
        if book is None:
            collector.skip(f"book {name!r}", "unknown book")
            continue

        for chapter, entries in _iter_chapters(chapters, book.name, collector):
            if not entries:
                logger.debug(f"{book.name} {chapter} has no verses")
                continue

            # Verse number is the position, even when an entry is skipped
            for position, entry in enumerate(entries, start=1):
                if isinstance(entry, str):
                    text = entry
                elif isinstance(entry, dict):
                    text = _first_string(entry, NESTED_TEXT_KEYS)
                else:
                    text = None

                if not text or not text.strip():
                    collector.skip(f"{book.name} {chapter}:{position}", "missing text")
                    continue

                collector.add(Verse(
                    book=book.name,
                    chapter=chapter,
                    verse=position,
                    text=text.strip(),
                ))


def normalize(
    raw: Union[bytes, str],
    hint=None,
    catalog: BookCatalog = None,
) -> IngestResult:
    """
    Convert a scripture source into canonical verse records.

    Args:
        raw: Source bytes or text
        hint: Optional SourceShape (or "flat"/"nested"/"jsonl") that skips
            auto-detection
        catalog: Book catalog for canonical names (shared default if None)

    Returns:
        IngestResult with sorted records and skipped entries

    Raises:
        UnsupportedSourceShape: Source matches no shape (or not the hinted one)
        EmptySource: Shape recognized but no verse survived
        DuplicateRecord: Some (book, chapter, verse) appeared twice
    """
    catalog = catalog or default_catalog()
    shape = SourceShape.from_hint(hint)

    if shape is None:
        shape, payload = detect_shape(raw)
    else:
        payload = _payload_for(shape, raw)

    logger.debug(f"Normalizing source as {shape.value}")

    collector = _Collector(catalog)
    if shape is SourceShape.FLAT_RECORDS:
        _normalize_flat(payload, collector)
    elif shape is SourceShape.NESTED_BOOKS:
        _normalize_nested(payload, collector)
    else:
        _normalize_lines(payload, collector)

    result = IngestResult(
        shape=shape,
        records=collector.sorted_verses(),
        skipped=collector.skipped,
    )

    if not result.records:
        raise EmptySource(f"No verses found in {shape.value} source")

    logger.info(
        f"Normalized {result.verse_count} verses from {shape.value} source "
        f"({result.skipped_count} skipped)"
    )

    if collector.duplicates:
        raise DuplicateRecord(collector.duplicates, result)

    return result
