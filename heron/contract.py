"""
Response contract shared by runtime dispatch and documentation.

``response_entries`` is the one place that decides which status codes a
route can answer with. The route compiler reads its success status from it
and the documentation generator renders its response map from it, so the
two views cannot disagree.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from .controller.metadata import HTTPVerb


INTERNAL_ERROR_MESSAGE = "Internal server error"

SUCCESS = "success"
ERROR = "error"


@dataclass(frozen=True)
class ResponseEntry:
    """
    One possible response of a route.

    Attributes:
        status: HTTP status code
        description: Human description (documentation)
        kind: ``"success"`` or ``"error"``
    """
    status: int
    description: str
    kind: str = ERROR

    @property
    def is_success(self) -> bool:
        return self.kind == SUCCESS

    @property
    def has_body(self) -> bool:
        return self.status != 204


_DEFAULT_STATUS = {
    HTTPVerb.POST: 201,
    HTTPVerb.DELETE: 204,
}


def default_status(verb: Union[str, HTTPVerb]) -> int:
    """POST 201, DELETE 204, everything else 200. Not overridable."""
    return _DEFAULT_STATUS.get(HTTPVerb.parse(verb), 200)


def response_entries(
    verb: Union[str, HTTPVerb],
    *,
    has_body: bool = False,
    has_query: bool = False,
    has_middleware: bool = False,
    has_path_params: bool = False,
) -> Dict[int, ResponseEntry]:
    """
    Derive the response map of a route from which contracts are present.

    - 500 always
    - 400 when a body or query shape is declared
    - 401 when any middleware is attached
    - 404 when the path has at least one placeholder
    - the verb's default status as the success entry

    Entries are returned in that order.
    """
    entries: Dict[int, ResponseEntry] = {
        500: ResponseEntry(500, "Internal Server Error"),
    }
    if has_body or has_query:
        entries[400] = ResponseEntry(400, "Bad Request")
    if has_middleware:
        entries[401] = ResponseEntry(401, "Unauthorized")
    if has_path_params:
        entries[404] = ResponseEntry(404, "Not Found")

    status = default_status(verb)
    entries[status] = ResponseEntry(status, "Success", SUCCESS)
    return entries


def success_entry(entries: Dict[int, ResponseEntry]) -> ResponseEntry:
    """The single success entry of a response map."""
    return next(entry for entry in entries.values() if entry.is_success)


# ─── Wire envelopes ──────────────────────────────────────────────────────────

def success_envelope(data: Any) -> Dict[str, Any]:
    return {"success": True, "data": data}


def error_envelope(message: str, details: Optional[Any] = None) -> Dict[str, Any]:
    return {"success": False, "error": message, "details": details}


__all__ = [
    "INTERNAL_ERROR_MESSAGE",
    "ResponseEntry",
    "default_status",
    "response_entries",
    "success_entry",
    "success_envelope",
    "error_envelope",
]
