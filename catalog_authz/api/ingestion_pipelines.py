"""
Ingestion pipeline endpoints.

Listing and reading pipelines needs no fine-grained permission, but the
connection config inside (credentials) is only returned, decrypted, to
subjects allowed to ``ViewAll`` the pipeline. Everyone else gets it nulled.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from catalog_authz.api.dependencies import get_current_subject, get_engine, get_loader, get_redactor, get_secrets_manager
from catalog_authz.context.operation import OperationContext
from catalog_authz.context.resource import EntityAttributeLoader, ResourceContext
from catalog_authz.context.subject import Subject
from catalog_authz.context.substitution import INGESTION_PIPELINE
from catalog_authz.db.models import IngestionPipeline
from catalog_authz.db.session import get_db
from catalog_authz.engine.authorizer import AuthorizationEngine
from catalog_authz.engine.evaluator import DecisionReason, Verdict
from catalog_authz.errors import AuthorizationDenied, EntityNotFound
from catalog_authz.policy.operations import MetadataOperation
from catalog_authz.redaction import DecisionGatedRedactor
from catalog_authz.schemas.catalog import IngestionPipelineOut
from catalog_authz.secrets import SecretsManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ingestionPipelines", tags=["ingestionPipelines"])

VIEW_ALL = OperationContext(INGESTION_PIPELINE, MetadataOperation.VIEW_ALL)


def decrypt_or_nullify(
    engine: AuthorizationEngine,
    redactor: DecisionGatedRedactor,
    secrets: SecretsManager,
    subject: Subject,
    pipeline: IngestionPipelineOut,
    loader: EntityAttributeLoader,
) -> IngestionPipelineOut:
    """
    Gate the pipeline's connection config on a single ``ViewAll`` decision.

    With a local secrets manager a denial is raised and caught here, otherwise
    the verdict is inspected directly; either way the config is cleared, not
    the response.
    """

    resource = ResourceContext.by_id(INGESTION_PIPELINE, pipeline.id, loader)
    try:
        verdict = engine.authorize(subject, VIEW_ALL, resource, throw_on_deny=secrets.is_local)
    except AuthorizationDenied as exc:
        verdict = exc.verdict
    except EntityNotFound:
        verdict = Verdict(
            allowed=False,
            subject_name=subject.name,
            operations=VIEW_ALL.operations,
            reason=DecisionReason.DEFAULT_DENY,
        )

    redactor.apply(verdict, pipeline)
    if verdict.allowed and pipeline.source_config.config is not None:
        pipeline.source_config.config = secrets.decrypt_config(pipeline.source_config.config)
    return pipeline


@router.get("", response_model=list[IngestionPipelineOut])
def list_ingestion_pipelines(
    service: str | None = None,
    db: Session = Depends(get_db),
    subject: Subject = Depends(get_current_subject),
    engine: AuthorizationEngine = Depends(get_engine),
    loader: EntityAttributeLoader = Depends(get_loader),
    redactor: DecisionGatedRedactor = Depends(get_redactor),
    secrets: SecretsManager = Depends(get_secrets_manager),
) -> list[IngestionPipelineOut]:
    stmt = select(IngestionPipeline).order_by(IngestionPipeline.fqn)
    if service is not None:
        stmt = stmt.where(IngestionPipeline.service_fqn == service)

    return [
        decrypt_or_nullify(engine, redactor, secrets, subject, IngestionPipelineOut.from_row(row), loader)
        for row in db.scalars(stmt).all()
    ]


@router.get("/name/{fqn}", response_model=IngestionPipelineOut)
def get_ingestion_pipeline_by_name(
    fqn: str,
    db: Session = Depends(get_db),
    subject: Subject = Depends(get_current_subject),
    engine: AuthorizationEngine = Depends(get_engine),
    loader: EntityAttributeLoader = Depends(get_loader),
    redactor: DecisionGatedRedactor = Depends(get_redactor),
    secrets: SecretsManager = Depends(get_secrets_manager),
) -> IngestionPipelineOut:
    row = db.scalars(select(IngestionPipeline).where(IngestionPipeline.fqn == fqn)).first()
    if row is None:
        raise EntityNotFound(INGESTION_PIPELINE, fqn)
    return decrypt_or_nullify(engine, redactor, secrets, subject, IngestionPipelineOut.from_row(row), loader)


@router.get("/{id}", response_model=IngestionPipelineOut)
def get_ingestion_pipeline(
    id: UUID,
    db: Session = Depends(get_db),
    subject: Subject = Depends(get_current_subject),
    engine: AuthorizationEngine = Depends(get_engine),
    loader: EntityAttributeLoader = Depends(get_loader),
    redactor: DecisionGatedRedactor = Depends(get_redactor),
    secrets: SecretsManager = Depends(get_secrets_manager),
) -> IngestionPipelineOut:
    row = db.get(IngestionPipeline, id)
    if row is None:
        raise EntityNotFound(INGESTION_PIPELINE, id)
    return decrypt_or_nullify(engine, redactor, secrets, subject, IngestionPipelineOut.from_row(row), loader)
