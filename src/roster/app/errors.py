"""RFC 7807 Problem Details for the fallback application.

Requests for hosts Roster does not serve end up in the fallback Flask
app; its errors are rendered as ``application/problem+json``.

Usage::

    return Problem(UNKNOWN_HOST, "No site is configured for this host", 404).to_response()
"""

from __future__ import annotations

import logging
from typing import Any

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException, NotFound

log = logging.getLogger(__name__)

_P = "urn:roster:error:"

UNKNOWN_HOST = _P + "unknownHost"
SERVER_INTERNAL = _P + "serverInternal"

PROBLEM_CONTENT_TYPE = "application/problem+json"


class Problem:
    """An RFC 7807 *problem details* object.

    Parameters
    ----------
    error_type:
        A URN string (one of the constants above) or ``"about:blank"``.
    detail:
        Human-readable explanation of the problem.
    status:
        HTTP status code (default 400).
    title:
        Short summary.

    """

    def __init__(
        self,
        error_type: str,
        detail: str,
        status: int = 400,
        *,
        title: str | None = None,
    ) -> None:
        self.error_type = error_type
        self.detail = detail
        self.status = status
        self.title = title

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the RFC 7807 JSON structure."""
        body: dict[str, Any] = {
            "type": self.error_type,
            "detail": self.detail,
            "status": self.status,
        }
        if self.title is not None:
            body["title"] = self.title
        return body

    def to_response(self):
        """Build a Flask :class:`~flask.Response`."""
        resp = jsonify(self.to_dict())
        resp.status_code = self.status
        resp.headers["Content-Type"] = PROBLEM_CONTENT_TYPE
        resp.headers["Cache-Control"] = "no-store"
        return resp


def register_error_handlers(app: Flask) -> None:
    """Attach handlers that produce RFC 7807 responses for all errors."""

    @app.errorhandler(NotFound)
    def _handle_not_found(exc: NotFound):
        problem = Problem(
            UNKNOWN_HOST,
            f"No site is served at {request.host or 'this host'}",
            404,
            title="Not Found",
        )
        return problem.to_response()

    @app.errorhandler(HTTPException)
    def _handle_http_exception(exc: HTTPException):
        problem = Problem(
            "about:blank",
            exc.description or "An error occurred",
            exc.code or 500,
            title=exc.name,
        )
        return problem.to_response()

    @app.errorhandler(Exception)
    def _handle_unhandled(exc: Exception):
        log.exception("Unhandled exception during request")
        problem = Problem(
            SERVER_INTERNAL,
            "An unexpected internal error occurred",
            500,
        )
        return problem.to_response()
