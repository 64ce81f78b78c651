"""Error taxonomy shared by every planning operation.

Each error carries a human-readable ``message`` that callers may show
verbatim, an optional machine-readable ``code`` and ``details`` mapping, the
HTTP status the API layer should answer with, and whether retrying the same
request can succeed.

Kinds:
    NotFound: a meal, participant, plan item, recipe, dish or photo is missing.
    PermissionDenied: a role, RSVP or ownership rule failed.
    InvalidState: the transition is illegal for the current state.
    ValidationError: required input is missing or malformed.
    ConflictError: a concurrent writer changed the row first (retryable).
    StoreError: the database call failed for infrastructure reasons (retryable).
"""

from typing import Any, Mapping, Optional


class MealPlanError(Exception):
    """Base class for all classified planning errors."""

    http_status = 400
    retryable = False
    default_message = "Request failed"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
        code: Optional[str] = None,
    ):
        self.message = message or self.default_message
        super().__init__(self.message)
        self.details = details
        self.code = code

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {
            "error": self.kind,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.code:
            payload["code"] = self.code
        if self.details:
            payload["details"] = dict(self.details)
        return payload

    def __str__(self) -> str:
        return self.message


class NotFound(MealPlanError):
    http_status = 404
    default_message = "Not found"


class PermissionDenied(MealPlanError):
    http_status = 403
    default_message = "Permission denied"


class InvalidState(MealPlanError):
    http_status = 409
    default_message = "Operation not allowed in the current state"


class ValidationError(MealPlanError):
    http_status = 422
    default_message = "Invalid input"


class ConflictError(MealPlanError):
    """Lost a race against another writer; the caller may retry."""

    http_status = 409
    retryable = True
    default_message = "Someone else changed this first. Please try again."


class StoreError(MealPlanError):
    """The store failed for infrastructure reasons; the caller may retry."""

    http_status = 503
    retryable = True
    default_message = "The store is unavailable. Please try again."
