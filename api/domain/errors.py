# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error taxonomy for case engine operations.

Each exception carries the HTTP status and problem type the API layer
renders it with, so domain code never imports Flask.
"""

from typing import Any, Dict, List, Optional


class CaseEngineError(Exception):
    """Base class for case engine exceptions."""

    def __init__(self, message: str, status_code: int = 500, error_type: str = "application-error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type


class ValidationException(CaseEngineError):
    """Missing or invalid input for the requested kind or status."""

    def __init__(self, message: str, validation_errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, 400, "validation-error")
        self.validation_errors = validation_errors or []

    @classmethod
    def from_pydantic(cls, message: str, error) -> "ValidationException":
        """Wrap a pydantic ValidationError."""
        details = [
            {
                "field": ".".join(str(part) for part in item.get("loc", ())),
                "message": item.get("msg"),
                "type": item.get("type")
            }
            for item in error.errors()
        ]
        return cls(message, details)


class ForbiddenException(CaseEngineError):
    """Actor or role not permitted for this case or command."""

    def __init__(self, message: str):
        super().__init__(message, 403, "insufficient-permissions")


class NotFoundException(CaseEngineError):
    """Case does not exist (or is not visible to the caller)."""

    def __init__(self, message: str):
        super().__init__(message, 404, "resource-not-found")


class ConflictingStateException(CaseEngineError):
    """Command is not valid for the case's current status."""

    def __init__(self, message: str, current_status: Optional[str] = None):
        super().__init__(message, 409, "conflicting-state")
        self.current_status = current_status


class StoreUnavailableException(CaseEngineError):
    """Backing store unreachable or timed out; safe to retry with backoff."""

    def __init__(self, message: str):
        super().__init__(message, 503, "service-unavailable")


class ReferenceCollisionException(CaseEngineError):
    """Issued case reference already exists in the case collection."""

    def __init__(self, message: str, case_ref: Optional[str] = None):
        super().__init__(message, 503, "reference-collision")
        self.case_ref = case_ref
