"""
Resource contexts: the target of an operation, resolved lazily.

A context is built from whatever identity the caller has at hand (an id, a
fully-qualified name, an entity link, or only a type). The entity's attributes
(owner, domain, tags) are fetched through an injected loader the first time a
rule actually needs them, then cached for the lifetime of the context.

Contexts are per request and are not shared across threads.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Protocol, runtime_checkable
from uuid import UUID

from catalog_authz.context.entity_link import EntityLink
from catalog_authz.errors import EntityNotFound, MalformedContext

logger = logging.getLogger(__name__)


# ---- Attribute bundle and loader contract --------------------------------------------


@dataclass(frozen=True)
class EntityAttributes:
    """The attributes rules may look at."""

    entity_type: str
    id: UUID | None = None
    name: str | None = None
    owner: str | None = None
    domain: str | None = None
    tags: frozenset[str] = field(default_factory=frozenset)


@runtime_checkable
class EntityAttributeLoader(Protocol):
    def load_attributes(
        self,
        entity_type: str,
        *,
        id: UUID | None = None,
        name: str | None = None,
    ) -> EntityAttributes:
        """Return the entity's attributes or raise EntityNotFound."""
        ...


@runtime_checkable
class LinkedEntityLoader(EntityAttributeLoader, Protocol):
    def load_entity_link(
        self,
        entity_type: str,
        *,
        id: UUID | None = None,
        name: str | None = None,
    ) -> EntityLink:
        """Return the link of an entity that lives on another one (e.g. a test case)."""
        ...


# ---- Context -------------------------------------------------------------------------


class ResourceKind(str, Enum):
    BY_ID = "id"
    BY_NAME = "name"
    BY_ENTITY_LINK = "entity_link"
    BY_LINKED_CHILD = "linked_child"
    TYPE = "type"


class ResolutionState(str, Enum):
    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    NOT_FOUND = "not_found"


class ResourceContext:
    """
    Identity of the resource being checked, plus memoized attributes.

    Build with one of the class methods:

        ResourceContext.by_id("table", table_id, loader)
        ResourceContext.by_name("table", "svc.db.schema.orders", loader)
        ResourceContext.by_entity_link(EntityLink.parse(link), loader)
        ResourceContext.by_linked_child("testCase", loader, id=test_case_id)
        ResourceContext.for_type("table")

    Link-scoped contexts describe the *parent* entity: ``resource_type`` is the
    linked entity's type and resolution loads the linked entity.
    """

    def __init__(
        self,
        resource_type: str,
        kind: ResourceKind,
        *,
        loader: EntityAttributeLoader | None = None,
        id: UUID | None = None,
        name: str | None = None,
        entity_link: EntityLink | None = None,
        child_type: str | None = None,
    ) -> None:
        if not resource_type:
            raise MalformedContext("resource context requires a resource type")
        if kind is ResourceKind.BY_ID and id is None:
            raise MalformedContext(f"{resource_type} context by id requires an id")
        if kind is ResourceKind.BY_NAME and not name:
            raise MalformedContext(f"{resource_type} context by name requires a name")
        if kind is ResourceKind.BY_ENTITY_LINK and entity_link is None:
            raise MalformedContext(f"{resource_type} link-scoped context requires a parsed entity link")
        if kind is ResourceKind.BY_LINKED_CHILD and (child_type is None or (id is None and not name)):
            raise MalformedContext(f"{resource_type} context requires the child type and its id or name")
        if kind is not ResourceKind.TYPE and loader is None:
            raise MalformedContext(f"{resource_type} context by {kind.value} requires an attribute loader")

        self._resource_type = resource_type
        self._kind = kind
        self._loader = loader
        self._id = id
        self._name = name
        self._entity_link = entity_link
        self._child_type = child_type

        self._state = ResolutionState.UNRESOLVED
        self._attributes: EntityAttributes | None = None
        self._failure: EntityNotFound | None = None

    # ---- Constructors ---------------------------------------------------------------

    @classmethod
    def by_id(cls, resource_type: str, id: UUID | str, loader: EntityAttributeLoader) -> ResourceContext:
        return cls(resource_type, ResourceKind.BY_ID, loader=loader, id=_as_uuid(id))

    @classmethod
    def by_name(cls, resource_type: str, name: str, loader: EntityAttributeLoader) -> ResourceContext:
        return cls(resource_type, ResourceKind.BY_NAME, loader=loader, name=name)

    @classmethod
    def by_entity_link(cls, entity_link: EntityLink | None, loader: EntityAttributeLoader) -> ResourceContext:
        if entity_link is None:
            raise MalformedContext("link-scoped context requires a parsed entity link")
        return cls(entity_link.entity_type, ResourceKind.BY_ENTITY_LINK, loader=loader, entity_link=entity_link)

    @classmethod
    def by_linked_child(
        cls,
        child_type: str,
        loader: LinkedEntityLoader,
        *,
        parent_type: str,
        id: UUID | str | None = None,
        name: str | None = None,
    ) -> ResourceContext:
        """
        Context for an entity that is authorized as a field of its parent.

        Only the child's identity is known up front; its link (and so the
        parent) is looked up on first resolution.
        """
        return cls(
            parent_type,
            ResourceKind.BY_LINKED_CHILD,
            loader=loader,
            id=_as_uuid(id) if id is not None else None,
            name=name,
            child_type=child_type,
        )

    @classmethod
    def for_type(cls, resource_type: str) -> ResourceContext:
        """Type-level context (list, create): there is no instance to resolve."""
        return cls(resource_type, ResourceKind.TYPE)

    # ---- Identity -------------------------------------------------------------------

    @property
    def resource_type(self) -> str:
        return self._resource_type

    @property
    def kind(self) -> ResourceKind:
        return self._kind

    @property
    def id(self) -> UUID | None:
        return self._id

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def entity_link(self) -> EntityLink | None:
        return self._entity_link

    @property
    def is_link_scoped(self) -> bool:
        return self._kind in (ResourceKind.BY_ENTITY_LINK, ResourceKind.BY_LINKED_CHILD)

    @property
    def parent_type(self) -> str | None:
        if not self.is_link_scoped:
            return None
        return self._resource_type

    @property
    def parent_fqn(self) -> str | None:
        if self._entity_link is not None:
            return self._entity_link.entity_fqn
        return None

    def describe(self) -> str:
        if self._kind is ResourceKind.BY_ID:
            return f"{self._resource_type}:{self._id}"
        if self._kind is ResourceKind.BY_NAME:
            return f"{self._resource_type}:{self._name}"
        if self._kind is ResourceKind.BY_ENTITY_LINK:
            return str(self._entity_link)
        if self._kind is ResourceKind.BY_LINKED_CHILD:
            return f"{self._child_type}:{self._id or self._name}"
        return self._resource_type

    # ---- Lazy resolution ------------------------------------------------------------

    @property
    def resolution_state(self) -> ResolutionState:
        return self._state

    @property
    def is_resolved(self) -> bool:
        return self._state is ResolutionState.RESOLVED

    def resolve(self) -> EntityAttributes:
        """
        Return the attribute bundle, loading it on first call only.

        Raises EntityNotFound when the entity does not exist; the failure is
        remembered and re-raised without another lookup. Other loader errors
        propagate unchanged and leave the context unresolved.
        """

        if self._state is ResolutionState.RESOLVED:
            assert self._attributes is not None
            return self._attributes
        if self._state is ResolutionState.NOT_FOUND:
            assert self._failure is not None
            raise self._failure

        try:
            attributes = self._load()
        except EntityNotFound as exc:
            self._state = ResolutionState.NOT_FOUND
            self._failure = exc
            logger.debug("Resource not found context=%s", self.describe())
            raise

        self._attributes = attributes
        self._state = ResolutionState.RESOLVED
        logger.debug("Resolved resource context=%s owner=%s", self.describe(), attributes.owner)
        return attributes

    def _load(self) -> EntityAttributes:
        if self._kind is ResourceKind.TYPE:
            return EntityAttributes(entity_type=self._resource_type)

        loader = self._loader
        assert loader is not None

        if self._kind is ResourceKind.BY_ID:
            return loader.load_attributes(self._resource_type, id=self._id)
        if self._kind is ResourceKind.BY_NAME:
            return loader.load_attributes(self._resource_type, name=self._name)

        if self._kind is ResourceKind.BY_LINKED_CHILD:
            if not isinstance(loader, LinkedEntityLoader):
                raise MalformedContext(f"loader {type(loader).__name__} cannot resolve entity links")
            assert self._child_type is not None
            self._entity_link = loader.load_entity_link(self._child_type, id=self._id, name=self._name)
            if self._entity_link.entity_type != self._resource_type:
                raise MalformedContext(
                    f"{self._child_type} links to {self._entity_link.entity_type}, expected {self._resource_type}"
                )

        assert self._entity_link is not None
        return loader.load_attributes(self._entity_link.entity_type, name=self._entity_link.entity_fqn)

    # Convenience accessors; each may trigger resolution.

    @property
    def owner(self) -> str | None:
        return self.resolve().owner

    @property
    def domain(self) -> str | None:
        return self.resolve().domain

    @property
    def tags(self) -> frozenset[str]:
        return self.resolve().tags

    def __repr__(self) -> str:
        return f"ResourceContext({self.describe()!r}, state={self._state.value})"


def _as_uuid(value: UUID | str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise MalformedContext(f"invalid id {value!r}") from exc


# ---- In-memory loader ----------------------------------------------------------------


class InMemoryEntityAttributeLoader:
    """
    Dict-backed loader, keyed by (entity_type, id) and (entity_type, fqn).

    Used for bootstrapping and tests; the SQL-backed loader lives in
    ``catalog_authz.db.loader``.
    """

    def __init__(
        self,
        entities: Iterable[EntityAttributes] = (),
        links: Mapping[tuple[str, str], EntityLink] | None = None,
    ) -> None:
        self._by_id: dict[tuple[str, UUID], EntityAttributes] = {}
        self._by_name: dict[tuple[str, str], EntityAttributes] = {}
        self._links: dict[tuple[str, str], EntityLink] = dict(links or {})
        for entity in entities:
            self.add(entity)

    def add(self, entity: EntityAttributes, entity_link: EntityLink | None = None) -> None:
        if entity.id is not None:
            self._by_id[(entity.entity_type, entity.id)] = entity
        if entity.name:
            self._by_name[(entity.entity_type, entity.name)] = entity
        if entity_link is not None:
            for key in (entity.id, entity.name):
                if key is not None:
                    self._links[(entity.entity_type, str(key))] = entity_link

    def load_attributes(
        self,
        entity_type: str,
        *,
        id: UUID | None = None,
        name: str | None = None,
    ) -> EntityAttributes:
        found = self._by_id.get((entity_type, id)) if id is not None else self._by_name.get((entity_type, name or ""))
        if found is None:
            raise EntityNotFound(entity_type, id if id is not None else name)
        return found

    def load_entity_link(
        self,
        entity_type: str,
        *,
        id: UUID | None = None,
        name: str | None = None,
    ) -> EntityLink:
        key = str(id) if id is not None else (name or "")
        link = self._links.get((entity_type, key))
        if link is None:
            raise EntityNotFound(entity_type, key)
        return link
