"""Request helpers shared by the resource blueprints."""
from __future__ import annotations
from typing import Any, Optional

from flask import Response, abort, request


def parse_entity_id(raw_id: str) -> Optional[int]:
    """Integer id from a path segment, or None when it is not an integer."""
    try:
        return int(raw_id)
    except ValueError:
        return None


def empty_not_found() -> Response:
    """404 with no body."""
    return Response(status=404)


def read_json_object() -> dict[str, Any]:
    """Request body as a JSON object; 400 for anything else."""
    payload = request.get_json(silent=False, force=True)
    if not isinstance(payload, dict):
        abort(400, description="Request body must be a JSON object")
    return payload
