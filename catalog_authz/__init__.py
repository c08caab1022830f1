"""
Authorization decision engine for a metadata catalog.

Typical use:

    store = PolicySnapshotStore(load_policy_model(path))
    engine = AuthorizationEngine(store)
    verdict = engine.authorize(subject, operation_context, resource_context, throw_on_deny=False)
    DecisionGatedRedactor().apply(verdict, pipeline)

The HTTP layer (``catalog_authz.main``) is a thin caller of this package.
"""

from .errors import (
    AuthorizationDenied,
    AuthzError,
    EntityNotFound,
    MalformedContext,
    PolicyConfigError,
    PolicyEvaluationError,
)
from .context.entity_link import EntityLink
from .context.operation import OperationContext
from .context.resource import EntityAttributeLoader, EntityAttributes, ResourceContext
from .context.subject import Subject
from .policy.model import Effect, Policy, PolicyModel, Role, Rule
from .policy.operations import MetadataOperation
from .policy.loader import load_policy_model
from .policy.store import PolicySnapshotStore
from .engine.evaluator import RuleEvaluator, Verdict
from .engine.authorizer import AuthorizationEngine
from .redaction import DecisionGatedRedactor

__all__ = [
    "AuthorizationDenied",
    "AuthorizationEngine",
    "AuthzError",
    "DecisionGatedRedactor",
    "Effect",
    "EntityAttributeLoader",
    "EntityAttributes",
    "EntityLink",
    "EntityNotFound",
    "MalformedContext",
    "MetadataOperation",
    "OperationContext",
    "Policy",
    "PolicyConfigError",
    "PolicyEvaluationError",
    "PolicyModel",
    "PolicySnapshotStore",
    "ResourceContext",
    "Role",
    "Rule",
    "RuleEvaluator",
    "Subject",
    "Verdict",
    "load_policy_model",
]
