# lectern/services/references/books.py
"""
Canonical book catalog.

Maps every accepted spelling of a book (full name, abbreviation,
numeral-joined, Roman numeral or ordinal form) to exactly one canonical
book. The catalog is built once from BOOK_TABLE and never mutated.

Matching is case-insensitive, ignores punctuation ("Gen." == "gen") and
ignores internal whitespace, so "1 Corinthians", "1corinthians" and
"1  corinthians" all resolve to the same book.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, Optional


@dataclass(frozen=True)
class Book:
    """
    A canonical book.

    Attributes:
        name: Canonical name (e.g., "Genesis", "1 Corinthians")
        aliases: Accepted alternate spellings, lowercase
        position: Canonical order, 0-based (Genesis is 0)
    """
    name: str
    aliases: frozenset
    position: int

    def __str__(self) -> str:
        return self.name


class ReferenceParseError(Exception):
    """Base class for reference parsing failures."""
    pass


class UnknownBook(ReferenceParseError):
    """Raised when text does not name any book in the catalog."""

    def __init__(self, text: str):
        self.text = text
        super().__init__(f"Unknown book: {text}")


# Canonical name -> aliases, in canonical order.
BOOK_TABLE = (
    # Torah/Pentateuch
    ("Genesis", ("gen", "ge", "gn")),
    ("Exodus", ("ex", "exo", "exod")),
    ("Leviticus", ("lev", "le", "lv")),
    ("Numbers", ("num", "nu", "nm", "nb")),
    ("Deuteronomy", ("deut", "deu", "dt")),

    # Historical Books
    ("Joshua", ("josh", "jos", "js")),
    ("Judges", ("judg", "jdg", "jg")),
    ("Ruth", ("ru", "rth")),
    ("1 Samuel", ("1 sam", "1sa", "i samuel", "i sam", "first samuel", "first sam")),
    ("2 Samuel", ("2 sam", "2sa", "ii samuel", "ii sam", "second samuel", "second sam")),
    ("1 Kings", ("1 kgs", "1ki", "i kings", "i kgs", "first kings", "first kgs")),
    ("2 Kings", ("2 kgs", "2ki", "ii kings", "ii kgs", "second kings", "second kgs")),
    ("1 Chronicles", ("1 chron", "1 chr", "1ch", "i chronicles", "first chronicles")),
    ("2 Chronicles", ("2 chron", "2 chr", "2ch", "ii chronicles", "second chronicles")),
    ("Ezra", ("ezr",)),
    ("Nehemiah", ("neh", "ne")),
    ("Esther", ("esth", "est", "es")),

    # Wisdom/Poetry
    ("Job", ("jb",)),
    ("Psalms", ("psalm", "ps", "psa", "pss")),
    ("Proverbs", ("prov", "pr", "prv")),
    ("Ecclesiastes", ("eccl", "ecc", "qoh", "qoheleth")),
    ("Song of Solomon", ("song of songs", "song", "sos", "canticles")),

    # Major Prophets
    ("Isaiah", ("isa", "is")),
    ("Jeremiah", ("jer", "je", "jr")),
    ("Lamentations", ("lam", "la")),
    ("Ezekiel", ("ezek", "eze", "ezk")),
    ("Daniel", ("dan", "da", "dn")),

    # Minor Prophets
    ("Hosea", ("hos", "ho")),
    ("Joel", ("jl",)),
    ("Amos", ("am",)),
    ("Obadiah", ("obad", "ob")),
    ("Jonah", ("jon", "jnh")),
    ("Micah", ("mic", "mc")),
    ("Nahum", ("nah", "na")),
    ("Habakkuk", ("hab", "hb")),
    ("Zephaniah", ("zeph", "zep", "zp")),
    ("Haggai", ("hag", "hg")),
    ("Zechariah", ("zech", "zec", "zc")),
    ("Malachi", ("mal", "ml")),

    # Gospels and Acts
    ("Matthew", ("matt", "mat", "mt")),
    ("Mark", ("mrk", "mk")),
    ("Luke", ("luk", "lk")),
    ("John", ("joh", "jn")),
    ("Acts", ("act", "ac")),

    # Pauline Epistles
    ("Romans", ("rom", "ro", "rm")),
    ("1 Corinthians", ("1 cor", "1co", "i corinthians", "i cor", "first corinthians")),
    ("2 Corinthians", ("2 cor", "2co", "ii corinthians", "ii cor", "second corinthians")),
    ("Galatians", ("gal", "ga")),
    ("Ephesians", ("eph", "ep")),
    ("Philippians", ("phil", "php", "phl")),
    ("Colossians", ("col", "co")),
    ("1 Thessalonians", ("1 thess", "1th", "i thessalonians", "i thess", "first thessalonians")),
    ("2 Thessalonians", ("2 thess", "2th", "ii thessalonians", "ii thess", "second thessalonians")),
    ("1 Timothy", ("1 tim", "1ti", "i timothy", "i tim", "first timothy")),
    ("2 Timothy", ("2 tim", "2ti", "ii timothy", "ii tim", "second timothy")),
    ("Titus", ("tit", "ti")),
    ("Philemon", ("philem", "phm", "phile", "pm")),

    # General Epistles
    ("Hebrews", ("heb", "he")),
    ("James", ("jas", "jm")),
    ("1 Peter", ("1 pet", "1pe", "i peter", "i pet", "first peter")),
    ("2 Peter", ("2 pet", "2pe", "ii peter", "ii pet", "second peter")),
    ("1 John", ("1 jn", "1jo", "i john", "i jn", "first john")),
    ("2 John", ("2 jn", "2jo", "ii john", "ii jn", "second john")),
    ("3 John", ("3 jn", "3jo", "iii john", "iii jn", "third john")),
    ("Jude", ("jud", "jd")),

    # Revelation
    ("Revelation", ("rev", "re", "rv", "apocalypse")),
)


_PUNCTUATION = re.compile(r"[^0-9a-z\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_key(text: str) -> str:
    """
    Reduce a book spelling to its lookup key.

    Lowercases, drops punctuation and removes all whitespace so the
    numeral-space and numeral-joined forms share one key.
    """
    key = _PUNCTUATION.sub("", text.lower())
    return _WHITESPACE.sub("", key)


class BookCatalog:
    """
    Immutable lookup from any accepted spelling to its canonical Book.

    Usage:
        catalog = BookCatalog()
        catalog.normalize("jn").name        # "John"
        catalog.normalize("1corinthians")   # Book("1 Corinthians", ...)
        catalog.normalize("zzyx")           # None
        catalog.resolve("zzyx")             # raises UnknownBook
    """

    def __init__(self, table=BOOK_TABLE):
        books = []
        index = {}

        for position, (name, aliases) in enumerate(table):
            book = Book(
                name=name,
                aliases=frozenset(a.lower() for a in aliases),
                position=position,
            )
            books.append(book)

            # Canonical name first, then aliases
            for spelling in (name, *aliases):
                key = normalize_key(spelling)
                if not key:
                    raise ValueError(f"Empty alias for {name}")
                existing = index.get(key)
                if existing is not None and existing.name != name:
                    raise ValueError(
                        f"Alias {spelling!r} maps to both {existing.name} and {name}"
                    )
                index[key] = book

        self._books = tuple(books)
        self._by_name = {book.name: book for book in books}
        self._index = index

    @property
    def books(self) -> tuple:
        """All books in canonical order."""
        return self._books

    @property
    def names(self) -> list[str]:
        """Canonical names in canonical order."""
        return [book.name for book in self._books]

    def normalize(self, text: str) -> Optional[Book]:
        """
        Resolve any accepted spelling to its Book.

        Args:
            text: Book name, abbreviation or alias in any case

        Returns:
            The matching Book, or None if nothing matches. There is no
            prefix or fuzzy matching.
        """
        if not text:
            return None
        key = normalize_key(text)
        if not key:
            return None
        return self._index.get(key)

    def resolve(self, text: str) -> Book:
        """Like normalize(), but raises UnknownBook instead of returning None."""
        book = self.normalize(text)
        if book is None:
            raise UnknownBook(text)
        return book

    def get(self, name: str) -> Book:
        """Get a book by its exact canonical name."""
        try:
            return self._by_name[name]
        except KeyError:
            raise UnknownBook(name) from None

    def position(self, name: str) -> int:
        """Canonical order of a book, by canonical name."""
        return self.get(name).position

    def __contains__(self, text) -> bool:
        return isinstance(text, str) and self.normalize(text) is not None

    def __iter__(self) -> Iterator[Book]:
        return iter(self._books)

    def __len__(self) -> int:
        return len(self._books)


@lru_cache(maxsize=1)
def default_catalog() -> BookCatalog:
    """Return the shared catalog built from BOOK_TABLE."""
    return BookCatalog()
