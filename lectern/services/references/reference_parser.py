# lectern/services/references/reference_parser.py
"""
Scripture reference parser.

Turns free-form reference tokens into a ReferenceQuery:
- Book only: "Jude", "song of solomon"
- Book and chapter: "1 Corinthians 13", "ps 23"
- Book, chapter and verse: "John 3 16", "John 3:16", "jn 3:16"

Book names can span several tokens and can start with a numeral, so the
boundary between the book portion and the numeric portion is found by
searching split points from the longest book prefix down to the
shortest. The first prefix that names a book AND leaves a valid
chapter/verse tail wins.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from .books import BookCatalog, ReferenceParseError, UnknownBook, default_catalog, normalize_key


class MalformedReference(ReferenceParseError):
    """The chapter/verse portion of the reference is invalid."""
    pass


@dataclass(frozen=True)
class ReferenceQuery:
    """
    A parsed reference.

    Attributes:
        book: Canonical book name
        chapter: Chapter number, or None for the whole book
        verse: Verse number, or None for the whole chapter
    """
    book: str
    chapter: Optional[int] = None
    verse: Optional[int] = None

    def __post_init__(self):
        if self.verse is not None and self.chapter is None:
            raise ValueError("verse requires a chapter")
        for name, value in (("chapter", self.chapter), ("verse", self.verse)):
            if value is not None and value < 1:
                raise ValueError(f"{name} must be a positive integer")

    @property
    def normalized(self) -> str:
        """Return normalized reference string."""
        if self.chapter is None:
            return self.book
        if self.verse is None:
            return f"{self.book} {self.chapter}"
        return f"{self.book} {self.chapter}:{self.verse}"

    def to_dict(self) -> dict:
        return {"book": self.book, "chapter": self.chapter, "verse": self.verse}

    def __str__(self) -> str:
        return self.normalized


_NUMBER = re.compile(r"^[0-9]+$")
_CHAPTER_VERSE = re.compile(r"^([0-9]+):([0-9]+)$")


def _positive(token: str, what: str) -> int:
    if not _NUMBER.match(token):
        raise MalformedReference(f"Invalid {what}: {token}")
    value = int(token)
    if value < 1:
        raise MalformedReference(f"Invalid {what}: {token} (numbering starts at 1)")
    return value


def _parse_tail(tail: list[str]) -> tuple:
    """
    Parse the tokens after the book name into (chapter, verse).

    Accepts [], [chapter], [chapter, verse] or [chapter:verse].
    """
    if not tail:
        return None, None

    if len(tail) == 1:
        match = _CHAPTER_VERSE.match(tail[0])
        if match:
            return (
                _positive(match.group(1), "chapter"),
                _positive(match.group(2), "verse"),
            )
        return _positive(tail[0], "chapter"), None

    if len(tail) == 2:
        return _positive(tail[0], "chapter"), _positive(tail[1], "verse")

    raise MalformedReference(f"Unexpected trailing text: {' '.join(tail[2:])}")


def _tokenize(tokens: Union[str, Iterable[str]]) -> list[str]:
    if isinstance(tokens, str):
        tokens = [tokens]
    words = []
    for token in tokens:
        words.extend(str(token).split())
    return words


def parse(tokens: Union[str, Iterable[str]], catalog: BookCatalog = None) -> ReferenceQuery:
    """
    Parse reference tokens into a ReferenceQuery.

    Args:
        tokens: Reference words, e.g. ["1", "Corinthians", "13"]. Tokens
            containing spaces are split further.
        catalog: Book catalog to resolve names against (shared default
            if None)

    Returns:
        ReferenceQuery

    Raises:
        MalformedReference: Empty input, a misplaced colon, or a book was
            recognized but the chapter/verse part is invalid
        UnknownBook: No prefix of the input names a book
    """
    catalog = catalog or default_catalog()
    words = _tokenize(tokens)

    if not words:
        raise MalformedReference("Reference is required")

    # A colon may only ever separate chapter and verse
    for word in words:
        if ":" in word and not _CHAPTER_VERSE.match(word):
            raise MalformedReference(f"Invalid chapter:verse: {word}")

    tail_error = None

    for split in range(len(words), 0, -1):
        # Words that fold to nothing (fullwidth digits, stray symbols) are never part of a book name
        if not all(normalize_key(word) for word in words[:split]):
            continue
        book = catalog.normalize(" ".join(words[:split]))
        if book is None:
            continue
        try:
            chapter, verse = _parse_tail(words[split:])
        except MalformedReference as e:
            # Keep the error from the longest book match
            if tail_error is None:
                tail_error = e
            continue
        return ReferenceQuery(book=book.name, chapter=chapter, verse=verse)

    if tail_error is not None:
        raise tail_error

    # Report the book portion only: drop trailing chapter/verse numbers
    end = len(words)
    while end > 1 and (_NUMBER.match(words[end - 1]) or _CHAPTER_VERSE.match(words[end - 1])):
        end -= 1
    raise UnknownBook(" ".join(words[:end]))


def parse_reference(ref_string: str, catalog: BookCatalog = None) -> ReferenceQuery:
    """
    Parse a single reference string such as "John 3:16".

    Same rules and errors as parse().
    """
    return parse(ref_string or "", catalog)


def is_valid_reference(ref_string: str, catalog: BookCatalog = None) -> bool:
    """Check if a string is a valid scripture reference."""
    try:
        parse_reference(ref_string, catalog)
    except ReferenceParseError:
        return False
    return True
