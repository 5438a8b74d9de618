# lectern/routes/references_api.py
"""
API endpoints for scripture lookup and cache management.

Provides access to:
- Passage lookup by free-form reference
- Text search, verse of the day, random verse, verse in context
- Mood verse lists
- Cache status and preload from a source
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from lectern.services.references import (
    CacheCorrupt,
    CacheMissing,
    DuplicateRecord,
    MalformedReference,
    ReferenceService,
    RetrievalFailure,
    SourceShape,
    UnknownBook,
    UnknownMood,
    UnsupportedSourceShape,
    VerseNotFound,
    all_moods,
)
from lectern.utils.errors import (
    cache_missing,
    duplicate_records,
    invalid_field,
    missing_field,
    not_found,
    server_error,
    unsupported_source,
    upstream_error,
    validation_error,
)

logger = logging.getLogger(__name__)

references_bp = Blueprint("references_api", __name__, url_prefix="/api/references")


def get_service() -> ReferenceService:
    """Get or create the app's ReferenceService instance."""
    service = current_app.config.get("REFERENCE_SERVICE")
    if service is None:
        service = ReferenceService()
        current_app.config["REFERENCE_SERVICE"] = service
    return service


def _int_arg(name: str, default: int, minimum: int = 0):
    """Read an integer query param; returns (value, error_response)."""
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default, None
    try:
        value = int(raw)
    except ValueError:
        return None, invalid_field(name, f"{name} must be an integer")
    if value < minimum:
        return None, invalid_field(name, f"{name} must be at least {minimum}")
    return value, None


# =============================================================================
# Error Mapping
# =============================================================================

@references_bp.errorhandler(UnknownBook)
def handle_unknown_book(e):
    return validation_error("unknown_book", str(e))


@references_bp.errorhandler(MalformedReference)
def handle_malformed_reference(e):
    return validation_error("malformed_reference", str(e))


@references_bp.errorhandler(VerseNotFound)
def handle_verse_not_found(e):
    return not_found("verse", str(e))


@references_bp.errorhandler(CacheMissing)
def handle_cache_missing(e):
    return cache_missing(str(e))


@references_bp.errorhandler(CacheCorrupt)
def handle_cache_corrupt(e):
    logger.error(f"Verse cache unreadable: {e}")
    return server_error("cache_corrupt", str(e))


@references_bp.errorhandler(DuplicateRecord)
def handle_duplicate_record(e):
    return duplicate_records(e.duplicates, str(e))


@references_bp.errorhandler(UnsupportedSourceShape)
def handle_unsupported_source(e):
    return unsupported_source(str(e))


@references_bp.errorhandler(RetrievalFailure)
def handle_retrieval_failure(e):
    return upstream_error("retrieval_failure", str(e))


# =============================================================================
# Lookup Endpoints
# =============================================================================

@references_bp.get("/lookup")
def lookup_reference():
    """
    Look up a passage.

    Query params:
        ref: Reference string (required) e.g., "John 3:16", "ps 23", "Jude"

    Returns:
        {
            "ref": "John 3:16",
            "query": {"book": "John", "chapter": 3, "verse": 16},
            "chapter_count": null,
            "verses": [{"book": "John", "chapter": 3, "verse": 16, "text": "..."}]
        }
    """
    ref = request.args.get("ref")
    if not ref:
        return missing_field("ref")

    passage = get_service().read(ref)
    return jsonify(passage.to_dict())


@references_bp.get("/search")
def search_verses():
    """
    Search verse text.

    Query params:
        q: Text to find (required)
        book: Restrict to a book, any accepted spelling (optional)
        limit: Maximum results (optional, default 5)
    """
    query = request.args.get("q")
    if not query:
        return missing_field("q")

    limit, error = _int_arg("limit", 5, minimum=1)
    if error:
        return error

    verses = get_service().search(query, book=request.args.get("book"), limit=limit)
    return jsonify({
        "query": query,
        "results": [v.to_dict() for v in verses],
    })


@references_bp.get("/today")
def verse_of_the_day():
    """Deterministic verse of the day with a reflection prompt."""
    verse, prompt = get_service().today()
    return jsonify({"verse": verse.to_dict(), "prompt": prompt})


@references_bp.get("/random")
def random_verse():
    verse = get_service().random_verse()
    return jsonify({"verse": verse.to_dict()})


@references_bp.get("/echo")
def verse_in_context():
    """
    A verse with its neighbours in the chapter.

    Query params:
        ref: Reference with chapter and verse (required)
        window: Neighbours on each side (optional, default 2)
    """
    ref = request.args.get("ref")
    if not ref:
        return missing_field("ref")

    window, error = _int_arg("window", 2)
    if error:
        return error

    verses, index = get_service().echo(ref, window=window)
    return jsonify({
        "ref": ref,
        "index": index,
        "verses": [v.to_dict() for v in verses],
    })


# =============================================================================
# Mood Endpoints
# =============================================================================

@references_bp.get("/moods")
def list_moods():
    return jsonify({
        "moods": [{"name": m.name, "description": m.description} for m in all_moods()]
    })


@references_bp.get("/moods/<name>")
def mood_verses(name):
    try:
        mood, verses = get_service().mood(name)
    except UnknownMood as e:
        return not_found("mood", str(e))
    return jsonify({
        "mood": mood.name,
        "description": mood.description,
        "verses": [v.to_dict() for v in verses],
    })


# =============================================================================
# Cache Endpoints
# =============================================================================

@references_bp.get("/status")
def cache_status():
    return jsonify(get_service().status())


@references_bp.post("/preload")
def preload_cache():
    """
    Fetch a source, normalize it and replace the verse cache.

    Body (JSON, optional):
        source: file path or http(s) URL (default public KJV source)
        format: "flat", "nested" or "jsonl" to skip auto-detection

    Returns:
        {"shape": "nested", "verse_count": 31102, "skipped_count": 0, "skipped": [...]}
    """
    data = request.get_json(silent=True) or {}

    try:
        shape = SourceShape.from_hint(data.get("format"))
    except ValueError as e:
        return invalid_field("format", str(e))

    result = get_service().preload(data.get("source"), hint=shape)

    return jsonify({
        "shape": result.shape.value,
        "verse_count": result.verse_count,
        "skipped_count": result.skipped_count,
        "skipped": [str(s) for s in result.skipped[:50]],
    })
