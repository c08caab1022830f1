from __future__ import annotations

from datetime import datetime, timezone
import uuid

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog_authz.db.base import Base


class CatalogAttributesMixin:
    """Columns the attribute loader reads: identity, owner, domain, tags."""

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    fqn: Mapped[str] = mapped_column(String(512), nullable=False, index=True)
    owner: Mapped[str | None] = mapped_column(String(100), nullable=True)
    domain: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)


class CatalogEntity(CatalogAttributesMixin, Base):
    """Generic catalog entity (table, dashboard, topic, ...)."""

    __tablename__ = "catalog_entities"
    __table_args__ = (UniqueConstraint("entity_type", "fqn"),)

    entity_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class IngestionPipeline(CatalogAttributesMixin, Base):
    __tablename__ = "ingestion_pipelines"
    __table_args__ = (UniqueConstraint("fqn"),)

    name: Mapped[str] = mapped_column(String(256), nullable=False)
    pipeline_type: Mapped[str] = mapped_column(String(50), nullable=False, default="metadata")
    service_fqn: Mapped[str] = mapped_column(String(256), nullable=False)

    # Connection details; secret values are stored encrypted by the secrets manager.
    source_config: Mapped[dict | None] = mapped_column(JSON, nullable=True)


class TestCase(Base):
    __test__ = False
    __tablename__ = "test_cases"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    fqn: Mapped[str] = mapped_column(String(768), unique=True, nullable=False)
    entity_link: Mapped[str] = mapped_column(String(768), nullable=False)
    entity_fqn: Mapped[str] = mapped_column(String(512), nullable=False, index=True)
    test_definition: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    parameter_values: Mapped[list[dict]] = mapped_column(JSON, default=list, nullable=False)
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    results: Mapped[list["TestCaseResult"]] = relationship(
        back_populates="test_case",
        cascade="all, delete-orphan",
    )


class TestCaseResult(Base):
    __test__ = False
    __tablename__ = "test_case_results"
    __table_args__ = (UniqueConstraint("test_case_id", "timestamp"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    test_case_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("test_cases.id"), nullable=False, index=True)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    result: Mapped[str | None] = mapped_column(Text, nullable=True)

    test_case: Mapped[TestCase] = relationship(back_populates="results")


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_bot: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Role names in membership order; the order is the evaluation order.
    roles: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    teams: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    domains: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
