"""
In-memory policy model: roles → policies → rules.

A model is an immutable snapshot. It is built by ``load_policy_model`` (or
directly in code), handed to the engine via ``PolicySnapshotStore``, and never
mutated while a decision is in flight.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from catalog_authz.policy.conditions import ALWAYS, Condition
from catalog_authz.policy.operations import MetadataOperation

ALL_RESOURCES = "all"


class Effect(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True)
class Rule:
    """One rule: an effect on some operations, for some resource types, under a condition."""

    name: str
    effect: Effect
    operations: frozenset[MetadataOperation]
    resources: frozenset[str] = frozenset({ALL_RESOURCES})
    condition: Condition = ALWAYS
    description: str | None = None

    def matches_operation(self, operation: MetadataOperation) -> bool:
        return operation in self.operations or MetadataOperation.ALL in self.operations

    def covers(self, resource_type: str) -> bool:
        return ALL_RESOURCES in self.resources or resource_type in self.resources


@dataclass(frozen=True)
class Policy:
    name: str
    rules: tuple[Rule, ...]
    description: str | None = None


@dataclass(frozen=True)
class Role:
    name: str
    policies: tuple[Policy, ...]
    display_name: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class PolicyModel:
    """Fully-loaded access-control state."""

    roles: Mapping[str, Role] = field(default_factory=dict)
    version: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "roles", MappingProxyType(dict(self.roles)))

    def role(self, name: str) -> Role | None:
        return self.roles.get(name)

    @classmethod
    def empty(cls) -> PolicyModel:
        return cls(roles={})
