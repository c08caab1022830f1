"""
Authorization facade used by callers.

Usage:
    store = PolicySnapshotStore(load_policy_model(Path("config/policies.yaml")))
    engine = AuthorizationEngine(store)
    engine.authorize(subject, OperationContext("table", MetadataOperation.EDIT_TESTS),
                     ResourceContext.by_entity_link(link, loader), throw_on_deny=True)

Callers whose resource is a field of another resource substitute the
operation context first (see ``catalog_authz.context.substitution``).
"""

from __future__ import annotations

import logging

from catalog_authz import messages
from catalog_authz.context.operation import OperationContext
from catalog_authz.context.resource import ResourceContext
from catalog_authz.context.subject import Subject
from catalog_authz.engine.evaluator import DecisionReason, RuleEvaluator, Verdict, admin_verdict
from catalog_authz.errors import AuthorizationDenied, AuthzError, PolicyEvaluationError
from catalog_authz.policy.store import PolicySnapshotStore

logger = logging.getLogger(__name__)


class AuthorizationEngine:
    def __init__(
        self,
        store: PolicySnapshotStore,
        *,
        owner_bypass: bool = False,
        evaluator: RuleEvaluator | None = None,
    ) -> None:
        self._store = store
        self._owner_bypass = owner_bypass
        self._evaluator = evaluator or RuleEvaluator()

    @property
    def store(self) -> PolicySnapshotStore:
        return self._store

    def authorize(
        self,
        subject: Subject,
        operation_context: OperationContext,
        resource_context: ResourceContext,
        throw_on_deny: bool,
    ) -> Verdict:
        """
        Decide whether ``subject`` may perform every operation in the context.

        Returns the verdict. With ``throw_on_deny`` a denial raises
        AuthorizationDenied carrying the verdict instead.
        """

        # One snapshot for the whole decision.
        model = self._store.snapshot()

        verdict = self._shortcut(subject, operation_context, resource_context)
        if verdict is None:
            verdict = self._evaluator.evaluate(subject, operation_context, resource_context, model)
        return self._finish(verdict, operation_context, resource_context, throw_on_deny)

    def authorize_any(
        self,
        subject: Subject,
        operation_context: OperationContext,
        resource_context: ResourceContext,
        throw_on_deny: bool,
    ) -> Verdict:
        """Like ``authorize`` but one allowed operation is enough."""
        model = self._store.snapshot()

        verdict = self._shortcut(subject, operation_context, resource_context)
        if verdict is None:
            verdict = self._evaluator.evaluate_any(subject, operation_context, resource_context, model)
        return self._finish(verdict, operation_context, resource_context, throw_on_deny)

    def authorize_admin(self, subject: Subject, throw_on_deny: bool) -> Verdict:
        """Admin-only operations, regardless of resource-scoped policy."""
        return self._check_principal(subject, DecisionReason.ADMIN if subject.is_admin else None, throw_on_deny)

    def authorize_admin_or_bot(self, subject: Subject, throw_on_deny: bool) -> Verdict:
        if subject.is_admin:
            reason = DecisionReason.ADMIN
        elif subject.is_bot:
            reason = DecisionReason.BOT
        else:
            reason = None
        return self._check_principal(subject, reason, throw_on_deny)

    def _shortcut(
        self,
        subject: Subject,
        operation_context: OperationContext,
        resource_context: ResourceContext,
    ) -> Verdict | None:
        """Admin, then owner bypass when enabled. None means the rules decide."""

        if subject.is_admin:
            return admin_verdict(subject, operation_context.operations)
        if not self._owner_bypass:
            return None

        try:
            owner = resource_context.resolve().owner
        except AuthzError:
            raise
        except Exception as exc:
            raise PolicyEvaluationError(
                messages.failed_to_evaluate(f"owner of {resource_context.describe()}: {exc}")
            ) from exc

        if not subject.owns(owner):
            return None
        return Verdict(
            allowed=True,
            subject_name=subject.name,
            operations=operation_context.operations,
            reason=DecisionReason.OWNER,
        )

    def _check_principal(self, subject: Subject, reason: DecisionReason | None, throw_on_deny: bool) -> Verdict:
        verdict = Verdict(
            allowed=reason is not None,
            subject_name=subject.name,
            operations=frozenset(),
            reason=reason or DecisionReason.NOT_ADMIN,
        )
        if verdict.denied:
            logger.info("Authz denied: %s", verdict.describe())
            if throw_on_deny:
                raise AuthorizationDenied(verdict)
        return verdict

    def _finish(
        self,
        verdict: Verdict,
        operation_context: OperationContext,
        resource_context: ResourceContext,
        throw_on_deny: bool,
    ) -> Verdict:
        if verdict.allowed:
            logger.debug(
                "Authz allowed subject=%s ops=%s type=%s resource=%s reason=%s",
                verdict.subject_name,
                sorted(str(op) for op in operation_context.operations),
                operation_context.resource_type,
                resource_context.describe(),
                verdict.reason.value,
            )
            return verdict

        logger.info(
            "Authz denied type=%s resource=%s: %s",
            operation_context.resource_type,
            resource_context.describe(),
            verdict.describe(),
        )
        if throw_on_deny:
            raise AuthorizationDenied(verdict)
        return verdict
