# tests/test_references_api.py
"""
Tests for the /api/references blueprint using Flask's test client.
"""

import json
import os
import sys
import tempfile
from pathlib import Path

# Add repo root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lectern.server import create_app
from lectern.services.references import ReferenceService, ReferenceStorage


SOURCE_RECORDS = [
    {"book": "Genesis", "chapter": 1, "verse": 1, "text": "In the beginning God created the heaven and the earth."},
    {"book": "Psalms", "chapter": 23, "verse": 1, "text": "The LORD is my shepherd; I shall not want."},
    {"book": "John", "chapter": 3, "verse": 16, "text": "For God so loved the world, that he gave his only begotten Son"},
    {"book": "John", "chapter": 3, "verse": 17, "text": "For God sent not his Son into the world to condemn the world"},
    {"book": "John", "chapter": 14, "verse": 27, "text": "Peace I leave with you, my peace I give unto you"},
]


def make_client(tmpdir: str, preload: bool = True):
    source = Path(tmpdir) / "source.json"
    source.write_text(json.dumps(SOURCE_RECORDS), encoding="utf-8")

    service = ReferenceService(storage=ReferenceStorage(Path(tmpdir) / "cache"))
    if preload:
        service.preload(str(source))

    app = create_app(service)
    app.config["TESTING"] = True
    return app.test_client(), str(source)


def test_lookup():
    print("\n=== Testing /lookup ===")

    with tempfile.TemporaryDirectory() as tmpdir:
        client, _ = make_client(tmpdir)

        resp = client.get("/api/references/lookup", query_string={"ref": "jn 3:16"})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["ref"] == "John 3:16"
        assert data["verses"][0]["text"].startswith("For God so loved")
        assert set(data["verses"][0]) == {"book", "chapter", "verse", "text"}
        print("✓ 200 with canonical verse")

        resp = client.get("/api/references/lookup", query_string={"ref": "John"})
        assert resp.get_json()["chapter_count"] == 14
        print("✓ Whole book carries chapter_count")

        resp = client.get("/api/references/lookup")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "ref_required"
        print("✓ Missing ref -> 400")

        resp = client.get("/api/references/lookup", query_string={"ref": "Zzyx 1 1"})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "unknown_book"
        print("✓ Unknown book -> 400 unknown_book")

        resp = client.get("/api/references/lookup", query_string={"ref": "John 0 1"})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "malformed_reference"
        print("✓ Bad chapter -> 400 malformed_reference")

        resp = client.get("/api/references/lookup", query_string={"ref": "John 3:999"})
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "verse_not_found"
        print("✓ Missing verse -> 404 verse_not_found")


def test_cache_missing():
    with tempfile.TemporaryDirectory() as tmpdir:
        client, _ = make_client(tmpdir, preload=False)

        resp = client.get("/api/references/lookup", query_string={"ref": "John 3:16"})
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "cache_missing"

        resp = client.get("/api/references/status")
        assert resp.status_code == 200
        assert resp.get_json()["ready"] is False
        print("✓ No cache -> 409 cache_missing, status not ready")


def test_search_today_random_echo():
    print("\n=== Testing search/today/random/echo ===")

    with tempfile.TemporaryDirectory() as tmpdir:
        client, _ = make_client(tmpdir)

        resp = client.get("/api/references/search", query_string={"q": "world", "book": "John"})
        data = resp.get_json()
        assert resp.status_code == 200
        assert [r["verse"] for r in data["results"]] == [16, 17]
        print("✓ Search")

        resp = client.get("/api/references/search", query_string={"q": "world", "limit": "abc"})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "invalid_limit"

        resp = client.get("/api/references/search", query_string={"q": "world", "limit": "0"})
        assert resp.status_code == 400

        resp = client.get("/api/references/search")
        assert resp.get_json()["error"] == "q_required"
        print("✓ Search validation")

        resp = client.get("/api/references/today")
        data = resp.get_json()
        assert resp.status_code == 200
        assert data["verse"]["book"] in {"Genesis", "Psalms", "John"}
        assert data["prompt"]
        print("✓ Today")

        resp = client.get("/api/references/random")
        assert resp.status_code == 200
        assert "text" in resp.get_json()["verse"]
        print("✓ Random")

        resp = client.get("/api/references/echo", query_string={"ref": "John 3:16", "window": "1"})
        data = resp.get_json()
        assert [v["verse"] for v in data["verses"]] == [16, 17]
        assert data["index"] == 0
        print("✓ Echo")

        resp = client.get("/api/references/echo", query_string={"ref": "John 3"})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "malformed_reference"
        print("✓ Echo without verse -> 400")


def test_moods():
    print("\n=== Testing moods ===")

    with tempfile.TemporaryDirectory() as tmpdir:
        client, _ = make_client(tmpdir)

        resp = client.get("/api/references/moods")
        names = [m["name"] for m in resp.get_json()["moods"]]
        assert "peace" in names
        print("✓ List moods")

        resp = client.get("/api/references/moods/peace")
        data = resp.get_json()
        assert data["mood"] == "peace"
        assert [(v["book"], v["chapter"], v["verse"]) for v in data["verses"]] == [
            ("John", 14, 27), ("Psalms", 23, 1),
        ]
        print("✓ Mood verses")

        resp = client.get("/api/references/moods/grumpy")
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "mood_not_found"
        print("✓ Unknown mood -> 404")


def test_preload_endpoint():
    print("\n=== Testing /preload ===")

    with tempfile.TemporaryDirectory() as tmpdir:
        client, source = make_client(tmpdir, preload=False)

        resp = client.post("/api/references/preload", json={"source": source})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["shape"] == "flat"
        assert data["verse_count"] == 5
        assert data["skipped_count"] == 0
        print("✓ Preload from a local file")

        resp = client.get("/api/references/status")
        data = resp.get_json()
        assert data["ready"] is True
        assert data["verse_count"] == 5
        print("✓ Status after preload")

        resp = client.post("/api/references/preload", json={"source": source, "format": "xml"})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "invalid_format"
        print("✓ Unknown format -> 400")

        resp = client.post("/api/references/preload", json={"source": str(Path(tmpdir) / "nope.json")})
        assert resp.status_code == 502
        assert resp.get_json()["error"] == "retrieval_failure"
        print("✓ Missing source -> 502")

        notes = Path(tmpdir) / "notes.txt"
        notes.write_text("not scripture", encoding="utf-8")
        resp = client.post("/api/references/preload", json={"source": str(notes)})
        assert resp.status_code == 422
        assert resp.get_json()["error"] == "unsupported_source_shape"
        print("✓ Unsupported source -> 422")

        dup = Path(tmpdir) / "dup.json"
        dup.write_text(json.dumps(SOURCE_RECORDS + SOURCE_RECORDS[2:3]), encoding="utf-8")
        resp = client.post("/api/references/preload", json={"source": str(dup)})
        assert resp.status_code == 422
        data = resp.get_json()
        assert data["error"] == "duplicate_record"
        assert data["duplicates"] == [{"book": "John", "chapter": 3, "verse": 16}]
        print("✓ Duplicate source -> 422 with duplicates")

        odd = Path(tmpdir) / "odd.json"
        odd.write_text(json.dumps({"John": {"3": ["For God so loved the world"], "\u00b2": ["Bad key"]}}), encoding="utf-8")
        resp = client.post("/api/references/preload", json={"source": str(odd)})
        data = resp.get_json()
        assert resp.status_code == 200, data
        assert data["verse_count"] == 1
        assert data["skipped_count"] == 1
        assert data["skipped"] == ["John chapter '\u00b2': invalid chapter number"]
        print("✓ Bad chapter key is a skipped entry, not a format error")

        resp = client.post("/api/references/preload", json={"source": source})
        assert resp.status_code == 200

        # Cache from the first preload survives the failures
        resp = client.get("/api/references/lookup", query_string={"ref": "John 3:16"})
        assert resp.status_code == 200
        print("✓ Cache intact after failed preloads")


def main():
    """Run all tests."""
    print("=" * 60)
    print("References API Test Suite")
    print("=" * 60)

    test_lookup()
    test_cache_missing()
    test_search_today_random_echo()
    test_moods()
    test_preload_endpoint()

    print("\n" + "=" * 60)
    print("ALL TESTS PASSED!")
    print("=" * 60)


if __name__ == "__main__":
    main()
