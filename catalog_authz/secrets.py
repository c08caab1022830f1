"""
Secrets handling for sensitive connection configuration.

Pipeline configs are stored with their secret values encrypted. A subject that
may view the pipeline gets them decrypted; one that may not gets the whole
config nulled by the redactor. The decision is the same verdict in both cases.
"""

from __future__ import annotations

from collections.abc import Iterable
import logging
from typing import Any, Protocol

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

ENCRYPTED_PREFIX = "fernet:"

DEFAULT_SECRET_FIELDS = frozenset(
    {"password", "token", "secretKey", "apiKey", "privateKey", "clientSecret", "awsSecretAccessKey"}
)


class SecretsManager(Protocol):
    @property
    def is_local(self) -> bool:
        """True when secrets are kept in the config itself (no external store)."""
        ...

    def encrypt_config(self, config: dict[str, Any] | None) -> dict[str, Any] | None: ...

    def decrypt_config(self, config: dict[str, Any] | None) -> dict[str, Any] | None: ...


class NoopSecretsManager:
    """Configs are stored in clear; nothing to do."""

    is_local = True

    def encrypt_config(self, config: dict[str, Any] | None) -> dict[str, Any] | None:
        return config

    def decrypt_config(self, config: dict[str, Any] | None) -> dict[str, Any] | None:
        return config


class FernetSecretsManager:
    """
    Encrypts string values of well-known secret keys, at any nesting depth.

    Encrypted values carry the ``fernet:`` prefix so decrypting is idempotent
    and clear values written by older clients pass through.
    """

    is_local = False

    def __init__(self, key: str | bytes, secret_fields: Iterable[str] = DEFAULT_SECRET_FIELDS) -> None:
        self._fernet = Fernet(key)
        self._secret_fields = frozenset(secret_fields)

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode()

    def encrypt_config(self, config: dict[str, Any] | None) -> dict[str, Any] | None:
        if config is None:
            return None
        return self._walk(config, self._encrypt_value)

    def decrypt_config(self, config: dict[str, Any] | None) -> dict[str, Any] | None:
        if config is None:
            return None
        return self._walk(config, self._decrypt_value)

    def _walk(self, value: Any, transform) -> Any:
        if isinstance(value, dict):
            out: dict[str, Any] = {}
            for key, item in value.items():
                if key in self._secret_fields and isinstance(item, str):
                    out[key] = transform(item)
                else:
                    out[key] = self._walk(item, transform)
            return out
        if isinstance(value, list):
            return [self._walk(item, transform) for item in value]
        return value

    def _encrypt_value(self, value: str) -> str:
        if value.startswith(ENCRYPTED_PREFIX):
            return value
        return ENCRYPTED_PREFIX + self._fernet.encrypt(value.encode()).decode()

    def _decrypt_value(self, value: str) -> str:
        if not value.startswith(ENCRYPTED_PREFIX):
            return value
        try:
            return self._fernet.decrypt(value[len(ENCRYPTED_PREFIX) :].encode()).decode()
        except InvalidToken as exc:
            logger.warning("Secret could not be decrypted (wrong key?)")
            raise ValueError("Secret could not be decrypted") from exc


def build_secrets_manager(key: str | None) -> SecretsManager:
    if key:
        return FernetSecretsManager(key)
    return NoopSecretsManager()
