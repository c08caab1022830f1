"""Tests for secrets handling and the decrypt-or-nullify gate."""

import uuid

import pytest

from catalog_authz.api.ingestion_pipelines import decrypt_or_nullify
from catalog_authz.context.resource import EntityAttributes, InMemoryEntityAttributeLoader
from catalog_authz.context.subject import Subject
from catalog_authz.engine.authorizer import AuthorizationEngine
from catalog_authz.policy.conditions import IsOwner
from catalog_authz.policy.model import Effect, Rule
from catalog_authz.policy.operations import MetadataOperation
from catalog_authz.policy.store import PolicySnapshotStore
from catalog_authz.redaction import DecisionGatedRedactor
from catalog_authz.schemas.catalog import IngestionPipelineOut, SourceConfigOut
from catalog_authz.secrets import FernetSecretsManager, NoopSecretsManager, build_secrets_manager

from conftest import single_policy_model

PIPELINE_ID = uuid.UUID("00000000-0000-0000-0000-0000000000aa")


@pytest.fixture
def fernet() -> FernetSecretsManager:
    return FernetSecretsManager(FernetSecretsManager.generate_key())


@pytest.fixture
def engine() -> AuthorizationEngine:
    rule = Rule(
        name="OwnerViewPipeline",
        effect=Effect.ALLOW,
        operations=frozenset({MetadataOperation.VIEW_ALL}),
        resources=frozenset({"ingestionPipeline"}),
        condition=IsOwner(),
    )
    return AuthorizationEngine(PolicySnapshotStore(single_policy_model(rule, role="DataSteward")))


@pytest.fixture
def loader() -> InMemoryEntityAttributeLoader:
    return InMemoryEntityAttributeLoader(
        [EntityAttributes(entity_type="ingestionPipeline", id=PIPELINE_ID, name="svc.p", owner="bob")]
    )


def _pipeline(config) -> IngestionPipelineOut:
    return IngestionPipelineOut(
        id=PIPELINE_ID,
        name="p",
        fqn="svc.p",
        pipeline_type="metadata",
        service_fqn="svc",
        owner="bob",
        domain=None,
        source_config=SourceConfigOut(config=config),
    )


def test_fernet_encrypts_only_secret_fields(fernet):
    config = {"connection": {"username": "svc", "password": "s3cr3t"}, "hosts": [{"token": "abc"}]}

    encrypted = fernet.encrypt_config(config)

    assert encrypted["connection"]["username"] == "svc"
    assert encrypted["connection"]["password"].startswith("fernet:")
    assert encrypted["hosts"][0]["token"].startswith("fernet:")
    assert fernet.decrypt_config(encrypted) == config
    assert fernet.encrypt_config(encrypted) == encrypted


def test_fernet_wrong_key_fails_loudly(fernet):
    encrypted = fernet.encrypt_config({"password": "x"})
    other = FernetSecretsManager(FernetSecretsManager.generate_key())

    with pytest.raises(ValueError, match="could not be decrypted"):
        other.decrypt_config(encrypted)


def test_build_secrets_manager():
    assert isinstance(build_secrets_manager(None), NoopSecretsManager)
    assert isinstance(build_secrets_manager(FernetSecretsManager.generate_key()), FernetSecretsManager)


def test_owner_gets_decrypted_config(engine, loader, fernet):
    pipeline = _pipeline(fernet.encrypt_config({"password": "s3cr3t"}))
    bob = Subject(name="bob", roles=("DataSteward",))

    result = decrypt_or_nullify(engine, DecisionGatedRedactor(), fernet, bob, pipeline, loader)

    assert result.source_config.config == {"password": "s3cr3t"}


@pytest.mark.parametrize("secrets_factory", [NoopSecretsManager, lambda: FernetSecretsManager(FernetSecretsManager.generate_key())])
def test_non_owner_gets_config_nulled_without_error(engine, loader, secrets_factory):
    pipeline = _pipeline({"password": "s3cr3t"})
    carol = Subject(name="carol", roles=("DataSteward",))

    result = decrypt_or_nullify(engine, DecisionGatedRedactor(), secrets_factory(), carol, pipeline, loader)

    assert result.source_config.config is None
    assert result.owner == "bob"


def test_unknown_pipeline_is_nulled(engine, fernet):
    pipeline = _pipeline({"password": "x"})
    empty = InMemoryEntityAttributeLoader()

    result = decrypt_or_nullify(engine, DecisionGatedRedactor(), fernet, Subject(name="bob", roles=("DataSteward",)), pipeline, empty)

    assert result.source_config.config is None
