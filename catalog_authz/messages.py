"""User-facing error message formats shared by the engine and the API layer."""

from __future__ import annotations

from collections.abc import Iterable

from catalog_authz.policy.operations import MetadataOperation, operation_names


def _principal(name: str) -> str:
    return f"Principal: CatalogPrincipal{{name='{name}'}}"


def entity_not_found(entity_type: str, identity: object) -> str:
    return f"{entity_type} instance for {identity} not found"


def not_admin(name: str) -> str:
    return f"{_principal(name)} is not admin"


def permission_denied(
    user: str,
    operation: MetadataOperation | None,
    role_name: str | None,
    policy_name: str | None,
    rule_name: str | None,
) -> str:
    if role_name is not None:
        return (
            f"{_principal(user)} operation {operation} denied by role {role_name}, "
            f"policy {policy_name}, rule {rule_name}"
        )
    return f"{_principal(user)} operation {operation} denied policy {policy_name}, rule {rule_name}"


def permission_not_allowed(user: str, operations: Iterable[MetadataOperation]) -> str:
    ops = ", ".join(operation_names(operations))
    return f"{_principal(user)} operations [{ops}] not allowed"


def failed_to_parse(message: str) -> str:
    return f"Failed to parse - {message}"


def failed_to_evaluate(message: str) -> str:
    return f"Failed to evaluate - {message}"
