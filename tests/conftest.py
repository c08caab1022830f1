"""
Pytest fixtures for the test suite.

Data-layer and API tests use an in-memory SQLite engine and a session that
rolls back after each test, so tests do not affect each other. Engine tests
use the in-memory attribute loader and policy models built in code.
"""
from __future__ import annotations

import uuid

import pytest
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from catalog_authz.context.entity_link import EntityLink
from catalog_authz.context.resource import EntityAttributes, InMemoryEntityAttributeLoader
from catalog_authz.context.subject import Subject
from catalog_authz.db.session import build_engine
from catalog_authz.policy.conditions import ALWAYS, IsOwner
from catalog_authz.policy.model import Effect, Policy, PolicyModel, Role, Rule
from catalog_authz.policy.operations import MetadataOperation
from catalog_authz.policy.store import PolicySnapshotStore


TEST_DB_URL = "sqlite:///:memory:"

ORDERS_ID = uuid.UUID("00000000-0000-0000-0000-000000000042")
ORDERS_FQN = "mysql_prod.shop.public.orders"
ORDERS_LINK = f"<#E::table::{ORDERS_FQN}>"


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite engine for each test."""
    return build_engine(TEST_DB_URL, poolclass=StaticPool)


@pytest.fixture
def tables(engine):
    """Create all ORM tables on the test engine."""
    from catalog_authz.db.base import Base
    import catalog_authz.db.models  # noqa: F401  (register models)

    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(tables):
    """
    Provide a Session bound to the test DB; roll back after each test.

    The transaction is rolled back so the next test gets a clean state, even
    when the code under test commits.
    """
    connection = tables.connect()
    transaction = connection.begin()
    TestSession = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        class_=Session,
    )
    session = TestSession()
    yield session
    session.close()
    transaction.rollback()
    connection.close()


# ---- Engine fixtures -----------------------------------------------------------------


def make_table(owner: str | None, *, tags=(), domain: str | None = None) -> EntityAttributes:
    return EntityAttributes(
        entity_type="table",
        id=ORDERS_ID,
        name=ORDERS_FQN,
        owner=owner,
        domain=domain,
        tags=frozenset(tags),
    )


@pytest.fixture
def orders_link() -> EntityLink:
    return EntityLink.parse(ORDERS_LINK)


@pytest.fixture
def loader_for():
    """Build an in-memory loader holding the orders table with the given owner."""

    def _build(owner: str | None, **kwargs) -> InMemoryEntityAttributeLoader:
        return InMemoryEntityAttributeLoader([make_table(owner, **kwargs)])

    return _build


@pytest.fixture
def steward_model() -> PolicyModel:
    """Role Steward → TableStewardPolicy → allow EditTests when the subject owns the table."""
    rule = Rule(
        name="StewardEditTests",
        effect=Effect.ALLOW,
        operations=frozenset({MetadataOperation.EDIT_TESTS}),
        resources=frozenset({"table"}),
        condition=IsOwner(),
    )
    policy = Policy(name="TableStewardPolicy", rules=(rule,))
    return PolicyModel(roles={"Steward": Role(name="Steward", policies=(policy,))})


@pytest.fixture
def steward_store(steward_model) -> PolicySnapshotStore:
    return PolicySnapshotStore(steward_model)


@pytest.fixture
def bob() -> Subject:
    return Subject(name="bob", roles=("Steward",))


@pytest.fixture
def admin() -> Subject:
    return Subject(name="admin", is_admin=True)


def always_rule(name: str, effect: Effect, *ops: MetadataOperation, resources=("all",)) -> Rule:
    return Rule(
        name=name,
        effect=effect,
        operations=frozenset(ops),
        resources=frozenset(resources),
        condition=ALWAYS,
    )


def single_policy_model(*rules: Rule, role: str = "R", policy: str = "P") -> PolicyModel:
    return PolicyModel(roles={role: Role(name=role, policies=(Policy(name=policy, rules=tuple(rules)),))})
