# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""
Error classes for the validation workflow.

Services raise these; the validation queue converts them into a boolean
result plus an error string, and the Flask error handlers turn them into
JSON bodies using ``status_code``.
"""

from typing import Any, Dict, List, Optional


class ValidationWorkflowError(Exception):
    """Base exception for all validation workflow errors."""

    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization."""
        return {
            "error": self.message,
            "error_type": self.__class__.__name__,
            "details": self.details,
        }


class InputValidationError(ValidationWorkflowError):
    """Submitted fields failed validation."""

    status_code = 400

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors), {"errors": self.errors})


class RecordNotFoundError(ValidationWorkflowError):
    status_code = 404


class AccessDeniedError(ValidationWorkflowError):
    status_code = 403

    def __init__(self, message: str = "Access denied", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class PreconditionError(ValidationWorkflowError):
    """
    The record or request is not in a state that allows the operation.

    Covers wrong status, an expired validation window, an unverified
    organization and requests that were already processed.
    """

    status_code = 409


class StoreError(ValidationWorkflowError):
    """A database operation failed."""

    status_code = 500

    def __init__(self, action: str, original_error: Optional[Exception] = None):
        self.action = action
        self.original_error = original_error
        cause = str(original_error).strip() if original_error is not None else ""
        message = f"{action}: {cause}" if cause else action
        details = {"action": action}
        if original_error is not None:
            details["cause_type"] = type(original_error).__name__
        super().__init__(message, details)
