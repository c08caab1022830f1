"""Attribute loader backed by the catalog database."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from catalog_authz.context.entity_link import EntityLink
from catalog_authz.context.resource import EntityAttributes
from catalog_authz.context.substitution import INGESTION_PIPELINE, TEST_CASE
from catalog_authz.db.models import CatalogEntity, IngestionPipeline, TestCase
from catalog_authz.errors import EntityNotFound, MalformedContext

logger = logging.getLogger(__name__)


class SqlEntityAttributeLoader:
    """
    Loads owner/domain/tags for a resource context.

    Pipelines live in their own table; every other entity type is a row in
    ``catalog_entities``. Test cases are never loaded for their own
    attributes: only their entity link is, to reach the table they test.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def load_attributes(
        self,
        entity_type: str,
        *,
        id: UUID | None = None,
        name: str | None = None,
    ) -> EntityAttributes:
        if id is None and not name:
            raise MalformedContext(f"{entity_type} lookup requires an id or a name")

        if entity_type == INGESTION_PIPELINE:
            stmt = select(IngestionPipeline)
            model = IngestionPipeline
        else:
            stmt = select(CatalogEntity).where(CatalogEntity.entity_type == entity_type)
            model = CatalogEntity

        stmt = stmt.where(model.id == id) if id is not None else stmt.where(model.fqn == name)
        row = self._db.scalars(stmt).first()
        if row is None:
            logger.debug("Attribute lookup miss type=%s id=%s name=%s", entity_type, id, name)
            raise EntityNotFound(entity_type, id if id is not None else name)

        return EntityAttributes(
            entity_type=entity_type,
            id=row.id,
            name=row.fqn,
            owner=row.owner,
            domain=row.domain,
            tags=frozenset(row.tags or ()),
        )

    def load_entity_link(
        self,
        entity_type: str,
        *,
        id: UUID | None = None,
        name: str | None = None,
    ) -> EntityLink:
        if entity_type != TEST_CASE:
            raise MalformedContext(f"{entity_type} entities do not carry an entity link")

        stmt = select(TestCase.entity_link)
        stmt = stmt.where(TestCase.id == id) if id is not None else stmt.where(TestCase.fqn == name)
        link = self._db.scalars(stmt).first()
        if link is None:
            raise EntityNotFound(entity_type, id if id is not None else name)
        return EntityLink.parse(link)
