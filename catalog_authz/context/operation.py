from __future__ import annotations

from dataclasses import dataclass

from catalog_authz.errors import MalformedContext
from catalog_authz.policy.operations import MetadataOperation, operation_names


@dataclass(frozen=True, init=False)
class OperationContext:
    """
    What is being attempted: a resource type and the requested operations.

    A request naming several operations is satisfied only when every one of
    them is allowed (see ``RuleEvaluator.evaluate``). Callers wanting "any one
    suffices" must use ``RuleEvaluator.evaluate_any`` or issue separate checks.
    """

    resource_type: str
    operations: frozenset[MetadataOperation]

    def __init__(self, resource_type: str, *operations: MetadataOperation | str) -> None:
        if not resource_type or not str(resource_type).strip():
            raise MalformedContext("operation context requires a resource type")
        if not operations:
            raise MalformedContext(f"operation context for {resource_type!r} requires at least one operation")
        ops = frozenset(MetadataOperation.parse(op) for op in operations)
        if MetadataOperation.ALL in ops:
            raise MalformedContext("'All' can only be granted by a rule, not requested")
        object.__setattr__(self, "resource_type", str(resource_type).strip())
        object.__setattr__(self, "operations", ops)

    def with_substitution(self, resource_type: str, *operations: MetadataOperation | str) -> OperationContext:
        """Return a new context for another type; this one is left as is."""
        return OperationContext(resource_type, *(operations or tuple(self.operations)))

    def sorted_operations(self) -> list[MetadataOperation]:
        return sorted(self.operations, key=lambda op: op.value)

    def __repr__(self) -> str:
        return f"OperationContext({self.resource_type!r}, {operation_names(self.operations)})"
