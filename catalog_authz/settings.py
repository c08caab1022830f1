from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Service settings, overridable with ``AUTHZ_*`` environment variables.

    Notes:
    - Defaults point at a local SQLite catalog and the bundled policy file.
    - ``secrets_key`` is a Fernet key; without one, pipeline configs are kept in clear.
    - ``owner_bypass`` lets resource owners through before any rule is evaluated.
    """

    model_config = SettingsConfigDict(env_prefix="AUTHZ_", extra="ignore")

    db_url: str | None = None
    policy_path: str | None = None
    log_level: str = "INFO"
    owner_bypass: bool = False
    secrets_key: str | None = None
    sensitive_field: str = "source_config.config"

    def resolved_db_url(self) -> str:
        if self.db_url:
            return self.db_url

        repo_root = Path(__file__).resolve().parents[1]
        db_path = repo_root / "catalog.db"
        return f"sqlite:///{db_path}"

    def resolved_policy_path(self) -> Path:
        if self.policy_path:
            return Path(self.policy_path)

        repo_root = Path(__file__).resolve().parents[1]
        return repo_root / "config" / "policies.yaml"


@lru_cache
def get_settings() -> Settings:
    return Settings()
