# lectern/services/references/storage.py
"""
Reference storage management for the verse cache.

Provides the cache directory layout. The base path can be configured via
environment variable (LECTERN_DATA_DIR) or passed explicitly. The JSONL
verse file is the only thing persisted; there is no manifest or config
file next to it.
"""

import logging
import os
from pathlib import Path
from typing import Iterable

from lectern.core import config

from .records import Verse, write_jsonl

logger = logging.getLogger(__name__)

DEFAULT_DIRNAME = ".bible-cli"
TRANSLATION = "kjv"


def default_base_path() -> Path:
    """LECTERN_DATA_DIR, else ~/.bible-cli, else the working directory."""
    if config.DATA_DIR:
        return Path(config.DATA_DIR).expanduser()
    home = os.getenv("HOME") or os.getenv("USERPROFILE")
    if home:
        return Path(home) / DEFAULT_DIRNAME
    return Path.cwd()


class ReferenceStorage:
    """
    Manages the verse cache directory structure.

    Directory structure:
        {LECTERN_DATA_DIR}/
        └── translations/
            └── kjv/
                └── verses.jsonl
    """

    def __init__(self, base_path: Path = None):
        self.base_path = Path(base_path) if base_path else default_base_path()

    def _ensure_structure(self):
        """Create directory structure if it doesn't exist."""
        self.translation_path.mkdir(parents=True, exist_ok=True)

    @property
    def translation_path(self) -> Path:
        """Path to the translation directory."""
        return self.base_path / "translations" / TRANSLATION

    @property
    def verses_path(self) -> Path:
        """Path to the canonical JSONL verse cache."""
        return self.translation_path / "verses.jsonl"

    def has_cache(self) -> bool:
        return self.verses_path.exists()

    def write_verses(self, verses: Iterable[Verse]) -> int:
        """
        Replace the verse cache.

        Writes to a temporary sibling first and swaps it in, so a failed
        write never leaves a half-written cache behind.

        Returns:
            Number of verses written
        """
        self._ensure_structure()
        tmp_path = self.verses_path.with_suffix(".jsonl.tmp")
        try:
            count = write_jsonl(tmp_path, verses)
            os.replace(tmp_path, self.verses_path)
        finally:
            tmp_path.unlink(missing_ok=True)

        logger.info(f"Wrote {count} verses to {self.verses_path}")
        return count

    def cache_status(self) -> dict:
        """Describe the cache location and whether it exists."""
        status = {
            "root": str(self.base_path),
            "verses_path": str(self.verses_path),
            "ready": self.has_cache(),
        }
        if status["ready"]:
            status["size_bytes"] = self.verses_path.stat().st_size
        return status
