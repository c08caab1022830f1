from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class TestCaseOut(BaseModel):
    __test__ = False
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    fqn: str
    entity_link: str
    entity_fqn: str
    test_definition: str
    description: str | None
    parameter_values: list[dict[str, Any]]
    created_by: str | None
    created_at: datetime


class CreateTestCase(BaseModel):
    name: str = Field(min_length=1, max_length=256)
    entity_link: str
    test_definition: str
    description: str | None = None
    parameter_values: list[dict[str, Any]] = Field(default_factory=list)


class TestCaseResultIn(BaseModel):
    __test__ = False

    timestamp: int
    status: str = Field(pattern="^(Success|Failed|Aborted|Queued)$")
    result: str | None = None


class TestCaseResultOut(BaseModel):
    __test__ = False
    model_config = ConfigDict(from_attributes=True)

    timestamp: int
    status: str
    result: str | None


class SourceConfigOut(BaseModel):
    """Wrapper so the sensitive part can be cleared while the rest stays."""

    config: dict[str, Any] | None


class IngestionPipelineOut(BaseModel):
    id: UUID
    name: str
    fqn: str
    pipeline_type: str
    service_fqn: str
    owner: str | None
    domain: str | None
    source_config: SourceConfigOut

    @classmethod
    def from_row(cls, row: Any) -> IngestionPipelineOut:
        return cls(
            id=row.id,
            name=row.name,
            fqn=row.fqn,
            pipeline_type=row.pipeline_type,
            service_fqn=row.service_fqn,
            owner=row.owner,
            domain=row.domain,
            source_config=SourceConfigOut(config=dict(row.source_config) if row.source_config is not None else None),
        )
