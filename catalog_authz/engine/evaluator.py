"""
Rule evaluation.

Decision algorithm for one operation (first match wins):

1. Admin subjects are allowed without looking at any rule or resource.
2. For each role the subject holds (membership order), each policy in the
   role (declared order), each rule in the policy (declared order):
   a. skip the rule unless it names the operation (or ``All``) and covers
      the context's resource type;
   b. evaluate its condition, resolving the resource only if the condition
      looks at resource attributes;
   c. if the condition holds, the rule's effect is the answer, ALLOW or DENY.
3. Nothing matched: DENY.

Multi-operation requests are "all must allow": each operation is decided on
its own and the first denial is the verdict. ``evaluate_any`` is the explicit
"one suffices" variant.

Evaluation returns values and never raises on a denial. Errors while
evaluating a condition surface as PolicyEvaluationError, and a missing
resource surfaces as EntityNotFound; neither is turned into a DENY.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
import logging

from catalog_authz import messages
from catalog_authz.context.operation import OperationContext
from catalog_authz.context.resource import ResourceContext
from catalog_authz.context.subject import Subject
from catalog_authz.errors import AuthzError, PolicyEvaluationError
from catalog_authz.policy.model import Effect, PolicyModel, Rule
from catalog_authz.policy.operations import MetadataOperation, operation_names

logger = logging.getLogger(__name__)


class DecisionReason(str, Enum):
    ADMIN = "admin"
    BOT = "bot"
    OWNER = "owner"
    RULE = "rule"
    DEFAULT_DENY = "default_deny"
    NOT_ADMIN = "not_admin"


@dataclass(frozen=True)
class Verdict:
    """Outcome of one authorization check, with enough identity to explain it."""

    allowed: bool
    subject_name: str
    operations: frozenset[MetadataOperation]
    reason: DecisionReason
    operation: MetadataOperation | None = None
    """The operation this verdict was decided on (the denied one on a DENY)."""

    matched_role: str | None = None
    matched_policy: str | None = None
    matched_rule: str | None = None

    @property
    def denied(self) -> bool:
        return not self.allowed

    @property
    def matched_rule_id(self) -> str | None:
        if self.matched_rule is None:
            return None
        return f"{self.matched_policy}/{self.matched_rule}"

    def describe(self) -> str:
        if self.allowed:
            via = self.matched_rule_id or self.reason.value
            return f"{self.subject_name} allowed {operation_names(self.operations)} via {via}"
        if self.reason is DecisionReason.NOT_ADMIN:
            return messages.not_admin(self.subject_name)
        if self.matched_rule is not None:
            return messages.permission_denied(
                self.subject_name,
                self.operation,
                self.matched_role,
                self.matched_policy,
                self.matched_rule,
            )
        return messages.permission_not_allowed(self.subject_name, self.operations)

    def to_dict(self) -> dict[str, object]:
        return {
            "allowed": self.allowed,
            "subject": self.subject_name,
            "operations": operation_names(self.operations),
            "operation": str(self.operation) if self.operation else None,
            "reason": self.reason.value,
            "role": self.matched_role,
            "policy": self.matched_policy,
            "rule": self.matched_rule,
        }


def admin_verdict(subject: Subject, operations: frozenset[MetadataOperation]) -> Verdict:
    return Verdict(allowed=True, subject_name=subject.name, operations=operations, reason=DecisionReason.ADMIN)


class RuleEvaluator:
    """Stateless; the policy snapshot is passed in on every call."""

    def evaluate(
        self,
        subject: Subject,
        operation_context: OperationContext,
        resource_context: ResourceContext,
        model: PolicyModel,
    ) -> Verdict:
        """Allowed only if every requested operation is allowed."""

        if subject.is_admin:
            return admin_verdict(subject, operation_context.operations)

        verdict: Verdict | None = None
        for operation in operation_context.sorted_operations():
            verdict = self._decide(subject, operation, operation_context, resource_context, model)
            if not verdict.allowed:
                return verdict

        assert verdict is not None
        return verdict

    def evaluate_any(
        self,
        subject: Subject,
        operation_context: OperationContext,
        resource_context: ResourceContext,
        model: PolicyModel,
    ) -> Verdict:
        """Allowed if at least one requested operation is allowed."""

        if subject.is_admin:
            return admin_verdict(subject, operation_context.operations)

        first_denial: Verdict | None = None
        for operation in operation_context.sorted_operations():
            verdict = self._decide(subject, operation, operation_context, resource_context, model)
            if verdict.allowed:
                return verdict
            if first_denial is None:
                first_denial = verdict

        assert first_denial is not None
        return first_denial

    # ---- Single-operation decision --------------------------------------------------

    def _decide(
        self,
        subject: Subject,
        operation: MetadataOperation,
        operation_context: OperationContext,
        resource_context: ResourceContext,
        model: PolicyModel,
    ) -> Verdict:
        resource_type = operation_context.resource_type
        base = Verdict(
            allowed=False,
            subject_name=subject.name,
            operations=operation_context.operations,
            reason=DecisionReason.DEFAULT_DENY,
            operation=operation,
        )

        for role_name in subject.roles:
            role = model.role(role_name)
            if role is None:
                logger.debug("Authz: subject=%s holds unknown role=%s; skipped", subject.name, role_name)
                continue
            for policy in role.policies:
                for rule in policy.rules:
                    if not rule.matches_operation(operation) or not rule.covers(resource_type):
                        continue
                    if not self._condition_holds(rule, subject, resource_context):
                        continue

                    verdict = replace(
                        base,
                        allowed=rule.effect is Effect.ALLOW,
                        reason=DecisionReason.RULE,
                        matched_role=role.name,
                        matched_policy=policy.name,
                        matched_rule=rule.name,
                    )
                    logger.debug(
                        "Authz: subject=%s op=%s resource=%s matched %s/%s effect=%s",
                        subject.name,
                        operation,
                        resource_context.describe(),
                        policy.name,
                        rule.name,
                        rule.effect.value,
                    )
                    return verdict

        logger.debug(
            "Authz: subject=%s op=%s resource=%s no matching rule",
            subject.name,
            operation,
            resource_context.describe(),
        )
        return base

    def _condition_holds(self, rule: Rule, subject: Subject, resource_context: ResourceContext) -> bool:
        try:
            return bool(rule.condition.evaluate(subject, resource_context))
        except AuthzError:
            # EntityNotFound, MalformedContext and friends keep their identity.
            raise
        except Exception as exc:
            raise PolicyEvaluationError(
                messages.failed_to_evaluate(f"rule {rule.name!r} condition {rule.condition}: {exc}")
            ) from exc
