# tests/test_storage_and_sources.py
"""
Tests for storage.py, source_manager.py and http_retry.py.
"""

import json
import os
import sys
import tempfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import requests

# Add repo root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lectern.services.references.records import Verse, read_jsonl
from lectern.services.references.source_manager import RetrievalFailure, read_source
from lectern.services.references.storage import ReferenceStorage
from lectern.utils.http_retry import HTTPRetryError, get_with_retry


VERSES = [
    Verse("Genesis", 1, 1, "In the beginning God created the heaven and the earth."),
    Verse("John", 3, 16, "For God so loved the world"),
]


def _response(status: int, content: bytes = b"", headers: dict = None):
    response = MagicMock()
    response.status_code = status
    response.content = content
    response.headers = headers or {}
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(
            f"{status} Error", response=response
        )
    return response


def test_storage_layout_and_atomic_write():
    print("\n=== Testing ReferenceStorage ===")

    with tempfile.TemporaryDirectory() as tmpdir:
        storage = ReferenceStorage(tmpdir)
        assert storage.verses_path == Path(tmpdir) / "translations" / "kjv" / "verses.jsonl"
        assert not storage.has_cache()

        status = storage.cache_status()
        assert status["ready"] is False
        assert "size_bytes" not in status
        print("✓ Empty storage reports not ready")

        count = storage.write_verses(VERSES)
        assert count == 2
        assert storage.has_cache()
        assert read_jsonl(storage.verses_path) == VERSES
        assert not storage.verses_path.with_suffix(".jsonl.tmp").exists()
        print("✓ write_verses writes canonical JSONL and leaves no temp file")

        lines = storage.verses_path.read_text(encoding="utf-8").splitlines()
        assert json.loads(lines[1]) == {
            "book": "John", "chapter": 3, "verse": 16, "text": "For God so loved the world",
        }

        storage.write_verses(VERSES[:1])
        assert len(read_jsonl(storage.verses_path)) == 1
        status = storage.cache_status()
        assert status["ready"] is True
        assert status["size_bytes"] > 0
        print("✓ Rewrite replaces the cache")


def test_failed_write_keeps_previous_cache():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = ReferenceStorage(tmpdir)
        storage.write_verses(VERSES)

        def broken():
            yield VERSES[0]
            raise RuntimeError("source exhausted")

        try:
            storage.write_verses(broken())
            assert False, "Should have raised RuntimeError"
        except RuntimeError:
            pass

        assert read_jsonl(storage.verses_path) == VERSES
        assert not storage.verses_path.with_suffix(".jsonl.tmp").exists()
        print("✓ Failed write leaves the old cache intact")


def test_read_local_sources():
    print("\n=== Testing local sources ===")

    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "kjv.json"
        path.write_bytes(b'[{"book": "John"}]')

        assert read_source(str(path)) == b'[{"book": "John"}]'
        print("✓ Plain path")

        assert read_source(f"file://{path}") == b'[{"book": "John"}]'
        print("✓ file:// URI")

        try:
            read_source(str(Path(tmpdir) / "missing.json"))
            assert False, "Should have raised RetrievalFailure"
        except RetrievalFailure as e:
            assert "missing.json" in str(e)
            print("✓ Missing path -> RetrievalFailure")

        try:
            read_source(f"file://{tmpdir}/missing.json")
            assert False, "Should have raised RetrievalFailure"
        except RetrievalFailure:
            print("✓ Missing file:// target -> RetrievalFailure")

        try:
            read_source("ftp://example.org/kjv.json")
            assert False, "Should have raised RetrievalFailure"
        except RetrievalFailure:
            print("✓ Unsupported scheme -> RetrievalFailure")


def test_read_http_source():
    print("\n=== Testing HTTP sources ===")

    with patch("lectern.utils.http_retry.requests.get") as get:
        get.return_value = _response(200, b"[]")
        assert read_source("https://example.org/kjv.json") == b"[]"
        assert get.call_args[0][0] == "https://example.org/kjv.json"
        print("✓ Downloads over HTTP")

    with patch("lectern.utils.http_retry.requests.get") as get:
        get.return_value = _response(404)
        try:
            read_source("https://example.org/missing.json")
            assert False, "Should have raised RetrievalFailure"
        except RetrievalFailure as e:
            assert e.source == "https://example.org/missing.json"
            assert get.call_count == 1
            print("✓ 404 -> RetrievalFailure without retry")

    with patch("lectern.utils.http_retry.requests.get") as get, \
            patch("lectern.utils.http_retry.time.sleep"):
        get.side_effect = requests.ConnectionError("refused")
        try:
            read_source("https://example.org/kjv.json")
            assert False, "Should have raised RetrievalFailure"
        except RetrievalFailure:
            print("✓ Connection errors -> RetrievalFailure")


def test_get_with_retry():
    print("\n=== Testing get_with_retry ===")

    session = MagicMock()
    session.get.side_effect = [_response(503), _response(429, headers={"retry-after": "1"}), _response(200, b"ok")]
    with patch("lectern.utils.http_retry.time.sleep") as sleep:
        response = get_with_retry("https://example.org", max_retries=3, session=session)
    assert response.content == b"ok"
    assert session.get.call_count == 3
    assert sleep.call_args_list[1][0][0] == 1
    print("✓ Retries 5xx and 429, honours Retry-After")

    session = MagicMock()
    session.get.return_value = _response(500)
    with patch("lectern.utils.http_retry.time.sleep"):
        try:
            get_with_retry("https://example.org", max_retries=2, session=session)
            assert False, "Should have raised HTTPRetryError"
        except HTTPRetryError as e:
            assert e.status == 500
            assert session.get.call_count == 2
            print("✓ Gives up after max_retries")

    session = MagicMock()
    session.get.side_effect = requests.Timeout("slow")
    try:
        get_with_retry("https://example.org", timeout=5, session=session)
        assert False, "Should have raised HTTPRetryError"
    except HTTPRetryError as e:
        assert "timed out" in str(e)
        assert session.get.call_count == 1
        print("✓ Timeout is not retried")


def main():
    """Run all tests."""
    print("=" * 60)
    print("Storage and Source Test Suite")
    print("=" * 60)

    test_storage_layout_and_atomic_write()
    test_failed_write_keeps_previous_cache()
    test_read_local_sources()
    test_read_http_source()
    test_get_with_retry()

    print("\n" + "=" * 60)
    print("ALL TESTS PASSED!")
    print("=" * 60)


if __name__ == "__main__":
    main()
