# Overview: Service error taxonomy and the Flask handlers that render it as JSON.

"""
Every failure a service can report is one of the classes below. Each class
carries the HTTP status it maps to, so routes never inspect message text to
pick a status code. Responses always have the shape {"message": "..."}.
"""

from __future__ import annotations

from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException


class ServiceError(Exception):
    """Base class for errors that are safe to show to API clients."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class InvalidInput(ServiceError):
    """Missing or malformed request fields."""
    status_code = 400


class Unauthenticated(ServiceError):
    """Missing, malformed, expired or foreign credential."""
    status_code = 401


class AccountInactive(Unauthenticated):
    """Credential is valid but the account has been deactivated."""


class Forbidden(ServiceError):
    """Caller's role lacks the capability."""
    status_code = 403


class NotFound(ServiceError):
    status_code = 404


class Conflict(ServiceError):
    """
    Duplicate unique value or referential conflict.

    Reported as 400 to stay compatible with existing clients of the API.
    """
    status_code = 400


class DuplicateKey(ServiceError):
    """Generated unique key collided; the operation may be retried."""
    status_code = 409


class Internal(ServiceError):
    """Unexpected failure, e.g. the database is unavailable."""
    status_code = 500


def register_error_handlers(app) -> None:
    """Render ServiceError, HTTPException and unexpected errors as {message}."""

    @app.errorhandler(ServiceError)
    def handle_service_error(error: ServiceError):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        return jsonify({"message": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error: Exception):
        current_app.logger.exception("Unhandled error on request")
        return handle_service_error(Internal("Server error"))
