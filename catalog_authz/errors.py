"""
Error taxonomy for the authorization engine.

- EntityNotFound: the resource a context points at does not exist. This is not
  a denial; callers decide whether to surface it as 404 or as a generic 403.
- AuthorizationDenied: a DENY verdict reached a caller that asked to fail fast.
- MalformedContext: a context was built inconsistently (caller bug).
- PolicyEvaluationError: evaluation itself broke (e.g. attribute lookup failed).
- PolicyConfigError: a policy document could not be turned into a model.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from catalog_authz import messages

if TYPE_CHECKING:
    from catalog_authz.engine.evaluator import Verdict


class AuthzError(Exception):
    """Base class for every error raised by this package."""


class EntityNotFound(AuthzError):
    def __init__(self, entity_type: str, identity: object) -> None:
        self.entity_type = entity_type
        self.identity = identity
        super().__init__(messages.entity_not_found(entity_type, identity))


class AuthorizationDenied(AuthzError):
    """Raised only at the boundary that asked for fail-fast semantics."""

    def __init__(self, verdict: Verdict, message: str | None = None) -> None:
        self.verdict = verdict
        super().__init__(message or verdict.describe())


class MalformedContext(AuthzError, ValueError):
    pass


class PolicyEvaluationError(AuthzError):
    pass


class PolicyConfigError(AuthzError, ValueError):
    """Raised when a policy document is invalid."""
