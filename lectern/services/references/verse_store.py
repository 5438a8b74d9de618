# lectern/services/references/verse_store.py
"""
In-memory verse collection indexed by (book, chapter, verse).

Loaded from the canonical JSONL cache on every run; read-only after load.
"""

import logging
import random
from datetime import date
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .books import BookCatalog, default_catalog
from .normalizer import DuplicateRecord
from .records import CacheCorrupt, Verse, read_jsonl
from .reference_parser import ReferenceQuery

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base exception for verse store operations."""
    pass


class CacheMissing(StoreError):
    """Raised when no verse cache has been written yet."""
    pass


class VerseNotFound(StoreError, LookupError):
    """Raised when a specific (book, chapter, verse) is not in the store."""

    def __init__(self, book: str, chapter: int, verse: int):
        self.book = book
        self.chapter = chapter
        self.verse = verse
        super().__init__(f"Verse not found: {book} {chapter}:{verse}")


class VerseStore:
    """
    Indexed, ordered verse collection.

    Usage:
        store = VerseStore.from_file(storage.verses_path)

        store.lookup("John", 3, 16)     # [Verse(John 3:16)]
        store.lookup("John", 3)         # whole chapter, by verse
        store.lookup("John")            # whole book, by chapter and verse
        store.lookup("John", 3, 999)    # raises VerseNotFound
        store.lookup("John", 999)       # [] (no such chapter)
    """

    def __init__(self, catalog: BookCatalog = None):
        self.catalog = catalog or default_catalog()
        self._verses = {}
        # book -> chapter -> verses ordered by verse number
        self._chapters = {}

    @classmethod
    def load(cls, records: Iterable[Verse], catalog: BookCatalog = None) -> "VerseStore":
        """
        Build a store from canonical records.

        Raises:
            DuplicateRecord: If an identity appears more than once
        """
        store = cls(catalog)
        duplicates = []

        for verse in records:
            if verse.key in store._verses:
                duplicates.append(verse.key)
                continue
            store._verses[verse.key] = verse
            store._chapters.setdefault(verse.book, {}).setdefault(verse.chapter, []).append(verse)

        if duplicates:
            raise DuplicateRecord(duplicates)

        for chapters in store._chapters.values():
            for verses in chapters.values():
                verses.sort(key=lambda v: v.verse)

        return store

    @classmethod
    def from_file(cls, path: Path, catalog: BookCatalog = None) -> "VerseStore":
        """
        Load the store from a canonical JSONL cache file.

        Raises:
            CacheMissing: If the file does not exist
            CacheCorrupt: If the file is empty or has a malformed line
        """
        path = Path(path)
        if not path.exists():
            raise CacheMissing(f"Verse cache not found at {path}")

        verses = read_jsonl(path)
        if not verses:
            raise CacheCorrupt(f"Verse cache is empty at {path}")

        store = cls.load(verses, catalog)
        logger.info(f"Loaded {len(store)} verses from {path}")
        return store

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def get(self, book: str, chapter: int, verse: int) -> Optional[Verse]:
        return self._verses.get((book, chapter, verse))

    def lookup(self, book: str, chapter: int = None, verse: int = None) -> list[Verse]:
        """
        Look up verses.

        Args:
            book: Canonical book name
            chapter: Chapter number, or None for the whole book
            verse: Verse number, or None for the whole chapter

        Returns:
            Ordered verses. Empty if the book or chapter is absent.

        Raises:
            VerseNotFound: If all three are given and that verse is absent
            ValueError: If verse is given without chapter
        """
        if verse is not None:
            if chapter is None:
                raise ValueError("verse requires a chapter")
            found = self.get(book, chapter, verse)
            if found is None:
                raise VerseNotFound(book, chapter, verse)
            return [found]

        chapters = self._chapters.get(book, {})
        if chapter is not None:
            return list(chapters.get(chapter, []))

        result = []
        for number in sorted(chapters):
            result.extend(chapters[number])
        return result

    def lookup_query(self, query: ReferenceQuery) -> list[Verse]:
        """Look up a parsed reference."""
        return self.lookup(query.book, query.chapter, query.verse)

    def books(self) -> list[str]:
        """Books present in the store, in canonical order."""
        known = [b.name for b in self.catalog if b.name in self._chapters]
        # Names the catalog does not know (hand-edited cache) go last
        extra = sorted(set(self._chapters) - set(known))
        return known + extra

    def max_chapter(self, book: str) -> Optional[int]:
        chapters = self._chapters.get(book)
        if not chapters:
            return None
        return max(chapters)

    def context(self, book: str, chapter: int, verse: int, window: int = 2) -> tuple:
        """
        A verse with up to `window` neighbours on each side, same chapter.

        Returns:
            (verses, index) where verses[index] is the requested verse

        Raises:
            VerseNotFound: If the centre verse is absent
        """
        verses = self._chapters.get(book, {}).get(chapter, [])
        for position, candidate in enumerate(verses):
            if candidate.verse == verse:
                start = max(position - window, 0)
                end = min(position + window, len(verses) - 1)
                return verses[start:end + 1], position - start
        raise VerseNotFound(book, chapter, verse)

    def search(self, needle: str, book: str = None, limit: int = 5) -> list[Verse]:
        """
        Case-insensitive substring search over verse text.

        Args:
            needle: Text to find
            book: Restrict to one canonical book (optional)
            limit: Stop after this many matches
        """
        if limit < 1:
            return []
        needle = needle.lower()
        matches = []
        for verse in self:
            if book is not None and verse.book != book:
                continue
            if needle in verse.text.lower():
                matches.append(verse)
                if len(matches) >= limit:
                    break
        return matches

    def verse_for_day(self, day: date = None) -> Verse:
        """Deterministic verse for a calendar day."""
        day = day or date.today()
        ordered = list(self)
        return ordered[day.toordinal() % len(ordered)]

    def random_verse(self, rng: random.Random = None) -> Verse:
        rng = rng or random.Random()
        return rng.choice(list(self))

    # -------------------------------------------------------------------------
    # Container protocol
    # -------------------------------------------------------------------------

    def __iter__(self) -> Iterator[Verse]:
        for book in self.books():
            chapters = self._chapters[book]
            for number in sorted(chapters):
                yield from chapters[number]

    def __len__(self) -> int:
        return len(self._verses)

    def __contains__(self, key) -> bool:
        return key in self._verses
