from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from catalog_authz.db.base import Base
from catalog_authz.db.models import CatalogEntity, IngestionPipeline, TestCase, User
from catalog_authz.db.session import SessionLocal, engine
from catalog_authz.secrets import NoopSecretsManager, SecretsManager


def init_db(secrets: SecretsManager | None = None) -> None:
    """
    Create tables + seed a small demo catalog.

    Deterministic so the authorization behavior can be tried without setup.
    """

    Base.metadata.create_all(bind=engine)

    with SessionLocal() as db:
        if _has_seed_data(db):
            return
        seed(db, secrets or NoopSecretsManager())


def _has_seed_data(db: Session) -> bool:
    return db.execute(select(User.id).limit(1)).first() is not None


def seed(db: Session, secrets: SecretsManager) -> None:
    # Users (role order is evaluation order)
    db.add_all(
        [
            User(name="admin", is_admin=True),
            User(name="ingestion-bot", is_bot=True),
            User(name="alice"),
            User(name="bob", roles=["DataSteward", "DataConsumer"], teams=["data-platform"], domains=["Sales"]),
            User(name="carol", roles=["DataConsumer"], domains=["Marketing"]),
        ]
    )

    # Tables
    orders = CatalogEntity(
        entity_type="table",
        fqn="mysql_prod.shop.public.orders",
        owner="bob",
        domain="Sales",
        tags=["Tier.Tier1"],
    )
    customers = CatalogEntity(
        entity_type="table",
        fqn="mysql_prod.shop.public.customers",
        owner="carol",
        domain="Marketing",
        tags=["PII.Sensitive"],
    )
    db.add_all([orders, customers])
    db.flush()

    # Test cases, each linked to the table (or column) it checks
    db.add_all(
        [
            TestCase(
                name="orders_row_count",
                fqn="mysql_prod.shop.public.orders.orders_row_count",
                entity_link="<#E::table::mysql_prod.shop.public.orders>",
                entity_fqn=orders.fqn,
                test_definition="tableRowCountToBeBetween",
                parameter_values=[{"name": "minValue", "value": "1"}],
                created_by="bob",
            ),
            TestCase(
                name="customers_email_not_null",
                fqn="mysql_prod.shop.public.customers.email.customers_email_not_null",
                entity_link="<#E::table::mysql_prod.shop.public.customers::columns::email>",
                entity_fqn=f"{customers.fqn}.email",
                test_definition="columnValuesToBeNotNull",
                created_by="carol",
            ),
        ]
    )

    # Pipelines with connection secrets
    db.add_all(
        [
            IngestionPipeline(
                name="mysql_prod_metadata",
                fqn="mysql_prod.mysql_prod_metadata",
                service_fqn="mysql_prod",
                pipeline_type="metadata",
                owner="bob",
                domain="Sales",
                source_config=secrets.encrypt_config(
                    {
                        "type": "DatabaseMetadata",
                        "connection": {"username": "svc_ingest", "password": "s3cr3t", "hostPort": "mysql:3306"},
                    }
                ),
            ),
            IngestionPipeline(
                name="mysql_prod_dbt",
                fqn="mysql_prod.mysql_prod_dbt",
                service_fqn="mysql_prod",
                pipeline_type="dbt",
                owner="carol",
                domain="Marketing",
                source_config=secrets.encrypt_config(
                    {"type": "DBT", "dbtConfigSource": {"dbtCloudAccountId": "42", "token": "dbt-token"}}
                ),
            ),
        ]
    )

    db.commit()
