"""
Operation substitution for resources that are fields of another resource.

A test case is not authorized as a ``testCase``: it is a field of the table
it checks, so "view a test case" becomes ``ViewTests`` on ``table`` and any
change to it becomes ``EditTests`` on ``table``.

This table belongs to the caller layer. The engine never looks at it.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass

from catalog_authz.context.operation import OperationContext
from catalog_authz.policy.operations import MetadataOperation

TABLE = "table"
TEST_CASE = "testCase"
INGESTION_PIPELINE = "ingestionPipeline"


@dataclass(frozen=True)
class Substitution:
    parent_type: str
    remap: Callable[[MetadataOperation], MetadataOperation]


def _tests_remap(op: MetadataOperation) -> MetadataOperation:
    if op.is_view:
        return MetadataOperation.VIEW_TESTS
    return MetadataOperation.EDIT_TESTS


SUBSTITUTIONS: Mapping[str, Substitution] = {
    TEST_CASE: Substitution(parent_type=TABLE, remap=_tests_remap),
}


def substitute(
    context: OperationContext,
    table: Mapping[str, Substitution] = SUBSTITUTIONS,
) -> OperationContext:
    """Rewrite a child-resource context into the parent one, or return it unchanged."""
    entry = table.get(context.resource_type)
    if entry is None:
        return context
    return context.with_substitution(entry.parent_type, *(entry.remap(op) for op in context.operations))


def parent_type_of(resource_type: str, table: Mapping[str, Substitution] = SUBSTITUTIONS) -> str:
    entry = table.get(resource_type)
    return entry.parent_type if entry else resource_type
