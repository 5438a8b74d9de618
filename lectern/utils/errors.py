# lectern/utils/errors.py
"""
JSON error bodies for the Lectern HTTP API.

Every error response is {"error": "<snake_case code>", "detail": "..."}
plus any extra fields the caller passes (e.g. the duplicate identities
of a rejected source).
"""

from typing import Optional

from flask import jsonify


# -----------------------------------------------------------------------------
# Standard HTTP Error Responses
# -----------------------------------------------------------------------------

def error_response(
    code: str,
    status: int = 400,
    detail: Optional[str] = None,
    **extra
):
    """
    Build an error response.

    Args:
        code: Machine-readable error code (snake_case)
        status: HTTP status code
        detail: Human-readable explanation (optional)
        **extra: Additional fields to include in response

    Returns:
        Tuple of (jsonify response, status code)
    """
    payload = {"error": code}
    if detail:
        payload["detail"] = detail
    payload.update(extra)
    return jsonify(payload), status


# 400
def validation_error(code: str, detail: str = None):
    return error_response(code, 400, detail)


def missing_field(field: str):
    """Required query/body field is missing."""
    return error_response(f"{field}_required", 400, f"Missing required field: {field}")


def invalid_field(field: str, detail: str = None):
    return error_response(f"invalid_{field}", 400, detail)


# 404
def not_found(resource: str, detail: str = None):
    """Error code is "<resource>_not_found", e.g. verse_not_found."""
    return error_response(f"{resource}_not_found", 404, detail or f"{resource} not found")


# 500
def server_error(code: str = "internal_error", detail: str = None):
    return error_response(code, 500, detail)


# 502
def upstream_error(code: str, detail: str = None):
    """A scripture source could not be downloaded or read."""
    return error_response(code, 502, detail)


# -----------------------------------------------------------------------------
# Cache and Ingestion Errors
# -----------------------------------------------------------------------------

def cache_missing(detail: str):
    """The verse cache has not been built yet (409)."""
    return error_response("cache_missing", 409, f"{detail}. Run a preload first.")


def unsupported_source(detail: str):
    """The source was read but matches no known shape."""
    return error_response("unsupported_source_shape", 422, detail)


def duplicate_records(duplicates, detail: str):
    """
    The source repeats one or more (book, chapter, verse) identities.

    Args:
        duplicates: Iterable of (book, chapter, verse) tuples
        detail: Human-readable summary
    """
    return error_response(
        "duplicate_record",
        422,
        detail,
        duplicates=[
            {"book": book, "chapter": chapter, "verse": verse}
            for book, chapter, verse in duplicates
        ],
    )
