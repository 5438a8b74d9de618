# lectern/services/references/records.py
"""
Canonical verse records and their line-delimited JSON form.

One verse per line, exactly four fields:
    {"book": "John", "chapter": 3, "verse": 16, "text": "For God so loved..."}
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)

RECORD_FIELDS = ("book", "chapter", "verse", "text")


class CacheCorrupt(Exception):
    """Raised when the persisted verse cache cannot be read back."""
    pass


@dataclass(frozen=True)
class Verse:
    """
    A single verse. Identity is (book, chapter, verse).

    Attributes:
        book: Canonical book name
        chapter: Chapter number (1-based)
        verse: Verse number (1-based)
        text: Verse text
    """
    book: str
    chapter: int
    verse: int
    text: str

    @property
    def key(self) -> tuple:
        return (self.book, self.chapter, self.verse)

    @property
    def reference(self) -> str:
        """Human-readable reference, e.g. "John 3:16"."""
        return f"{self.book} {self.chapter}:{self.verse}"

    def to_dict(self) -> dict:
        return {
            "book": self.book,
            "chapter": self.chapter,
            "verse": self.verse,
            "text": self.text,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: dict) -> "Verse":
        """
        Build a Verse from a canonical record dict.

        Raises:
            ValueError: If a field is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise ValueError("record is not an object")

        missing = [f for f in RECORD_FIELDS if f not in data]
        if missing:
            raise ValueError(f"missing field(s): {', '.join(missing)}")

        book, chapter, verse, text = (data[f] for f in RECORD_FIELDS)
        if not isinstance(book, str) or not book:
            raise ValueError("book must be a non-empty string")
        for name, value in (("chapter", chapter), ("verse", verse)):
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer")
        if not isinstance(text, str) or not text.strip():
            raise ValueError("text must be a non-empty string")

        return cls(book=book, chapter=chapter, verse=verse, text=text)


def dump_jsonl(verses: Iterable[Verse]) -> str:
    """Serialize verses to canonical JSONL text (trailing newline included)."""
    return "".join(v.to_json() + "\n" for v in verses)


def write_jsonl(path: Path, verses: Iterable[Verse]) -> int:
    """
    Write verses to a JSONL file.

    Returns:
        Number of verses written
    """
    count = 0
    with open(path, "w", encoding="utf-8") as f:
        for verse in verses:
            f.write(verse.to_json() + "\n")
            count += 1
    return count


def read_jsonl(path: Path) -> list[Verse]:
    """
    Read verses back from a canonical JSONL file.

    Blank lines are ignored. Anything else that is not a canonical
    record is a hard error: the cache is written by us.

    Raises:
        CacheCorrupt: On the first malformed line (1-based line number)
    """
    verses = []
    with open(path, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                verses.append(Verse.from_dict(json.loads(line)))
            except (json.JSONDecodeError, ValueError) as e:
                raise CacheCorrupt(f"Invalid record on line {line_no} of {path}: {e}") from e

    logger.debug(f"Read {len(verses)} verses from {path}")
    return verses
