# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with structured HAL problem responses.
Provides centralized error handling and formatting for Flask applications.
"""

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from typing import Any, Dict, Tuple
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from pydantic import ValidationError
import logging

from domain.errors import CaseEngineError, ValidationException
from services.hal import HalFormatter

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

PROBLEM_JSON = "application/problem+json"

HTTP_ERROR_TYPES = {
    400: "bad-request",
    403: "insufficient-permissions",
    404: "resource-not-found",
    405: "method-not-allowed",
    409: "conflicting-state",
    415: "unsupported-media-type",
    422: "validation-error",
    500: "internal-server-error",
    503: "service-unavailable",
}


def _problem(body: Dict[str, Any], status: int):
    response = jsonify(body)
    response.status_code = status
    response.mimetype = PROBLEM_JSON
    return response


class ErrorHandlerMiddleware:
    """Centralized error handling middleware with HAL response formatting."""

    def __init__(self, app: Flask, hal_formatter: HalFormatter):
        self.app = app
        self.hal_formatter = hal_formatter
        self.register_error_handlers()

    def register_error_handlers(self):
        """Register error handlers with Flask application."""

        @self.app.errorhandler(CaseEngineError)
        def handle_case_engine_error(error: CaseEngineError):
            return self.handle_case_error(error)

        @self.app.errorhandler(ValidationError)
        def handle_pydantic_error(error: ValidationError):
            return self.handle_case_error(ValidationException.from_pydantic("Invalid request payload", error))

        @self.app.errorhandler(HTTPException)
        def handle_http_exception(error: HTTPException):
            return self.handle_http_error(error)

        @self.app.errorhandler(Exception)
        def handle_generic_exception(error: Exception):
            return self.handle_unexpected_error(error)

    def handle_case_error(self, error: CaseEngineError):
        """
        Render a case engine exception as an RFC 7807 problem.

        Client errors are logged at WARNING, server errors at ERROR.
        """
        span = trace.get_current_span()
        span.set_attributes({
            "error.type": error.error_type,
            "error.status": error.status_code
        })

        log_fields = {
            "extra_fields": {
                "error_type": error.error_type,
                "status_code": error.status_code,
                "detail": error.message,
                "path": request.path,
                "method": request.method
            }
        }
        if error.status_code >= 500:
            span.set_status(Status(StatusCode.ERROR, error.message))
            logger.error(f"Server error: {error.error_type}", extra=log_fields)
        else:
            logger.warning(f"Client error: {error.error_type}", extra=log_fields)

        body = self.hal_formatter.format_error(
            error.error_type,
            error.status_code,
            error.message,
            request.path,
            getattr(error, "validation_errors", None)
        )
        return _problem(body, error.status_code)

    def handle_http_error(self, error: HTTPException):
        """Handle routing and protocol errors raised by Flask/Werkzeug."""
        status = error.code or 500
        error_type = HTTP_ERROR_TYPES.get(status, "http-error")
        detail = str(error.description) if error.description else error.name

        log_fields = {
            "extra_fields": {
                "error_type": error_type,
                "status_code": status,
                "detail": detail,
                "path": request.path,
                "method": request.method
            }
        }
        if status >= 500:
            logger.error(f"Server error: {error.name}", extra=log_fields)
        else:
            logger.warning(f"Client error: {error.name}", extra=log_fields)

        body = self.hal_formatter.format_error(error_type, status, detail, request.path)
        return _problem(body, status)

    def handle_unexpected_error(self, error: Exception) -> Tuple[Any, int]:
        """
        Handle unexpected exceptions not caught by specific handlers.

        Args:
            error: Unexpected exception

        Returns:
            Problem response with status 500
        """
        span = trace.get_current_span()
        span.record_exception(error)
        span.set_status(Status(StatusCode.ERROR, str(error)))

        logger.error(
            f"Unexpected error: {error.__class__.__name__}",
            extra={
                "extra_fields": {
                    "error_type": "unexpected-error",
                    "error_class": error.__class__.__name__,
                    "error_message": str(error),
                    "path": request.path,
                    "method": request.method
                }
            },
            exc_info=True
        )

        # Don't expose internal error details
        detail = "An unexpected error occurred"
        if self.app.config.get('ENVIRONMENT') != 'production':
            detail = f"{error.__class__.__name__}: {str(error)}"

        body = self.hal_formatter.format_server_error(detail, request.path)
        return _problem(body, 500)
