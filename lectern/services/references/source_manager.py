# lectern/services/references/source_manager.py
"""
Retrieval of raw scripture sources.

A source is a file:// URI, a local path, or an http(s) URL. This is the
only blocking step of ingestion; everything after it works on bytes.
"""

import logging
from pathlib import Path

from lectern.core import config
from lectern.utils.http_retry import HTTPRetryError, get_with_retry

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = config.DEFAULT_SOURCE_URL


class RetrievalFailure(Exception):
    """Raised when a source cannot be read or downloaded."""

    def __init__(self, source: str, detail: str):
        self.source = source
        self.detail = detail
        super().__init__(f"Failed reading {source}: {detail}")


def _read_file(path: Path, source: str) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise RetrievalFailure(source, str(e)) from e


def read_source(source: str = None, timeout: int = None) -> bytes:
    """
    Fetch the raw bytes of a scripture source.

    Args:
        source: file:// URI, local path or http(s) URL (DEFAULT_SOURCE if None)
        timeout: HTTP timeout in seconds (config default if None)

    Returns:
        Raw source bytes

    Raises:
        RetrievalFailure: Missing file, network/HTTP error, or an
            unsupported source string
    """
    source = (source or DEFAULT_SOURCE).strip()

    if source.startswith("file://"):
        path = Path(source[len("file://"):])
        logger.debug(f"Reading source file {path}")
        return _read_file(path, source)

    if source.startswith(("http://", "https://")):
        logger.info(f"Downloading source from {source}")
        try:
            response = get_with_retry(
                source,
                timeout=timeout or config.HTTP_TIMEOUT,
                max_retries=config.HTTP_RETRIES,
            )
        except HTTPRetryError as e:
            raise RetrievalFailure(source, str(e)) from e
        logger.debug(f"Downloaded {len(response.content)} bytes from {source}")
        return response.content

    path = Path(source).expanduser()
    if path.exists():
        logger.debug(f"Reading source file {path}")
        return _read_file(path, source)

    raise RetrievalFailure(source, "not an existing file or an http(s) URL")
