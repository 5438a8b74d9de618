# lectern/services/references/reference_service.py
"""
Unified reference service.

Ties together retrieval, normalization, the persisted cache and the
in-memory VerseStore behind one interface for the HTTP routes and the
command line.
"""

import logging
import random
from dataclasses import dataclass
from datetime import date
from typing import Optional

from .books import BookCatalog, default_catalog
from .moods import daily_prompt, find_mood
from .normalizer import IngestResult, SourceShape, normalize
from .records import Verse
from .reference_parser import MalformedReference, ReferenceQuery, parse
from .source_manager import DEFAULT_SOURCE, read_source
from .storage import ReferenceStorage
from .verse_store import VerseStore

logger = logging.getLogger(__name__)


class UnknownMood(LookupError):
    """Raised when a mood name is not configured."""
    pass


@dataclass
class Passage:
    """
    Result of a read: the parsed query and its verses.

    For a book-only query `verses` is the whole book; `chapter_count`
    is filled in so callers can show an overview instead.
    """
    query: ReferenceQuery
    verses: list
    chapter_count: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "ref": self.query.normalized,
            "query": self.query.to_dict(),
            "chapter_count": self.chapter_count,
            "verses": [v.to_dict() for v in self.verses],
        }


class ReferenceService:
    """
    Service for scripture lookup backed by the local verse cache.

    Usage:
        service = ReferenceService()

        # Populate the cache (default public KJV source)
        result = service.preload()
        print(f"{result.verse_count} verses, {result.skipped_count} skipped")

        # Read by free-form reference
        passage = service.read("jn 3 16")
        print(passage.verses[0].text)

        # Search
        for verse in service.search("living water", book="John"):
            print(verse.reference, verse.text)
    """

    def __init__(self, storage: ReferenceStorage = None, catalog: BookCatalog = None):
        self.storage = storage or ReferenceStorage()
        self.catalog = catalog or default_catalog()
        self._store = None

    # -------------------------------------------------------------------------
    # Cache
    # -------------------------------------------------------------------------

    def preload(self, source: str = None, hint=None) -> IngestResult:
        """
        Download/read a source, normalize it and replace the cache.

        The cache is only written once normalization fully succeeds, so a
        shape or duplicate error leaves the previous cache untouched.

        Raises:
            RetrievalFailure: Source could not be read
            UnsupportedSourceShape: Source shape not recognized
            DuplicateRecord: Source repeats a (book, chapter, verse)
            ValueError: Unknown format hint
        """
        shape = SourceShape.from_hint(hint)
        source = source or DEFAULT_SOURCE
        raw = read_source(source)
        result = normalize(raw, hint=shape, catalog=self.catalog)

        self.storage.write_verses(result.records)
        self._store = None

        for skipped in result.skipped[:10]:
            logger.info(f"Skipped {skipped}")
        if result.skipped_count > 10:
            logger.info(f"... and {result.skipped_count - 10} more skipped entries")

        logger.info(f"Cached {result.verse_count} verses from {source}")
        return result

    def status(self) -> dict:
        status = self.storage.cache_status()
        if status["ready"]:
            store = self.store
            status["verse_count"] = len(store)
            status["book_count"] = len(store.books())
        return status

    @property
    def store(self) -> VerseStore:
        """
        The loaded VerseStore (loaded on first use).

        Raises:
            CacheMissing: If preload() has never been run
        """
        if self._store is None:
            self._store = VerseStore.from_file(self.storage.verses_path, self.catalog)
        return self._store

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def parse(self, reference) -> ReferenceQuery:
        """Parse a reference string or token list against this catalog."""
        return parse(reference, self.catalog)

    def read(self, reference) -> Passage:
        """
        Resolve a reference to its verses.

        Raises:
            UnknownBook, MalformedReference: Bad reference
            VerseNotFound: Specific verse absent
        """
        query = self.parse(reference)
        verses = self.store.lookup_query(query)
        chapter_count = None
        if query.chapter is None:
            chapter_count = self.store.max_chapter(query.book)
        return Passage(query=query, verses=verses, chapter_count=chapter_count)

    def search(self, needle: str, book: str = None, limit: int = 5) -> list[Verse]:
        """
        Search verse text; `book` may be any accepted spelling.

        Raises:
            UnknownBook: If the book filter is not recognized
        """
        book_name = self.catalog.resolve(book).name if book else None
        return self.store.search(needle, book=book_name, limit=limit)

    def today(self, day: date = None) -> tuple:
        """Verse of the day and its reflection prompt."""
        day = day or date.today()
        verse = self.store.verse_for_day(day)
        return verse, daily_prompt(day.toordinal())

    def random_verse(self, rng: random.Random = None) -> Verse:
        return self.store.random_verse(rng)

    def echo(self, reference, window: int = 2) -> tuple:
        """
        A verse with its neighbours.

        Returns:
            (verses, index of the requested verse)

        Raises:
            MalformedReference: If the reference lacks chapter or verse
        """
        query = self.parse(reference)
        if query.chapter is None or query.verse is None:
            raise MalformedReference("Chapter and verse are required")
        return self.store.context(query.book, query.chapter, query.verse, window)

    def mood(self, name: str) -> tuple:
        """
        Verses for a configured mood; references missing from the cache
        are left out.

        Returns:
            (Mood, list of verses)
        """
        mood = find_mood(name)
        if mood is None:
            raise UnknownMood(f"Unknown mood: {name}")

        verses = []
        for query in mood.queries(self.catalog):
            verse = self.store.get(query.book, query.chapter, query.verse)
            if verse is not None:
                verses.append(verse)
        return mood, verses
