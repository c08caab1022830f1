"""
Load a policy model from YAML.

Expected shape:

    policies:
      TableStewardPolicy:
        description: Stewards manage tests on tables they own
        rules:
          - name: StewardEditTests
            effect: allow
            operations: [EditTests, ViewTests]
            resources: [table]
            condition: isOwner()

    roles:
      DataSteward:
        display_name: Data Steward
        policies: [TableStewardPolicy]

Declaration order is preserved: it is the evaluation order.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator
import yaml

from catalog_authz.errors import PolicyConfigError
from catalog_authz.policy.conditions import parse_condition
from catalog_authz.policy.model import ALL_RESOURCES, Effect, Policy, PolicyModel, Role, Rule
from catalog_authz.policy.operations import MetadataOperation


class RuleDocument(BaseModel):
    name: str
    effect: Effect
    operations: list[str] = Field(min_length=1)
    resources: list[str] = Field(default_factory=lambda: [ALL_RESOURCES])
    condition: str | None = None
    description: str | None = None

    @field_validator("effect", mode="before")
    @classmethod
    def _lower_effect(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value


class PolicyDocument(BaseModel):
    description: str | None = None
    rules: list[RuleDocument] = Field(default_factory=list)


class RoleDocument(BaseModel):
    display_name: str | None = None
    description: str | None = None
    policies: list[str] = Field(default_factory=list)


class PolicyModelDocument(BaseModel):
    version: str | None = None
    policies: dict[str, PolicyDocument] = Field(default_factory=dict)
    roles: dict[str, RoleDocument] = Field(default_factory=dict)


def _build_rule(policy_name: str, doc: RuleDocument) -> Rule:
    try:
        operations = frozenset(MetadataOperation.parse(op) for op in doc.operations)
    except ValueError as exc:
        raise PolicyConfigError(f"policy {policy_name!r} rule {doc.name!r}: {exc}") from exc

    resources = frozenset(r.strip() for r in doc.resources if r.strip())
    if not resources:
        raise PolicyConfigError(f"policy {policy_name!r} rule {doc.name!r} must name at least one resource")

    try:
        condition = parse_condition(doc.condition)
    except PolicyConfigError as exc:
        raise PolicyConfigError(f"policy {policy_name!r} rule {doc.name!r}: {exc}") from exc

    return Rule(
        name=doc.name,
        effect=doc.effect,
        operations=operations,
        resources=resources,
        condition=condition,
        description=doc.description,
    )


def build_policy_model(document: PolicyModelDocument) -> PolicyModel:
    policies: dict[str, Policy] = {}
    for policy_name, policy_doc in document.policies.items():
        seen: set[str] = set()
        rules: list[Rule] = []
        for rule_doc in policy_doc.rules:
            if rule_doc.name in seen:
                raise PolicyConfigError(f"policy {policy_name!r} has duplicate rule {rule_doc.name!r}")
            seen.add(rule_doc.name)
            rules.append(_build_rule(policy_name, rule_doc))
        policies[policy_name] = Policy(name=policy_name, rules=tuple(rules), description=policy_doc.description)

    roles: dict[str, Role] = {}
    for role_name, role_doc in document.roles.items():
        unknown = [p for p in role_doc.policies if p not in policies]
        if unknown:
            raise PolicyConfigError(f"role {role_name!r} references unknown policies: {sorted(unknown)}")
        roles[role_name] = Role(
            name=role_name,
            policies=tuple(policies[p] for p in role_doc.policies),
            display_name=role_doc.display_name,
            description=role_doc.description,
        )

    return PolicyModel(roles=roles, version=document.version)


def parse_policy_model(raw: dict[str, Any]) -> PolicyModel:
    try:
        document = PolicyModelDocument.model_validate(raw)
    except ValidationError as exc:
        raise PolicyConfigError(f"invalid policy document: {exc}") from exc
    return build_policy_model(document)


def load_policy_model(path: Path) -> PolicyModel:
    """Load and validate a policy YAML file from disk."""

    raw_text = path.read_text(encoding="utf-8")
    raw = yaml.safe_load(raw_text) or {}
    if not isinstance(raw, dict):
        raise PolicyConfigError(f"policy document must be a mapping: {path}")
    return parse_policy_model(raw)
