from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from catalog_authz.context.subject import Subject
from catalog_authz.db.loader import SqlEntityAttributeLoader
from catalog_authz.db.models import User
from catalog_authz.db.session import get_db
from catalog_authz.engine.authorizer import AuthorizationEngine
from catalog_authz.redaction import DecisionGatedRedactor
from catalog_authz.secrets import SecretsManager

logger = logging.getLogger(__name__)

AUTHORIZATION_HEADER = "Authorization"
BEARER_PREFIX = "Bearer"


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(f"{name} not configured. Did app startup run?")
    return value


def get_engine(request: Request) -> AuthorizationEngine:
    return _state(request, "authz_engine")


def get_redactor(request: Request) -> DecisionGatedRedactor:
    return _state(request, "redactor")


def get_secrets_manager(request: Request) -> SecretsManager:
    return _state(request, "secrets_manager")


def get_loader(db: Session = Depends(get_db)) -> SqlEntityAttributeLoader:
    return SqlEntityAttributeLoader(db)


def extract_user_name(request: Request) -> str:
    """
    Demo subject provider: ``Authorization: Bearer <user name>``.

    Token validation belongs to the authentication layer in front of this
    service; here the bearer value is taken as the principal name.
    """

    raw = request.headers.get(AUTHORIZATION_HEADER)
    if not raw:
        logger.info("Missing Authorization header path=%s method=%s", request.url.path, request.method)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    prefix = f"{BEARER_PREFIX} "
    if not raw.startswith(prefix):
        logger.warning("Invalid Authorization header format path=%s method=%s", request.url.path, request.method)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {AUTHORIZATION_HEADER}. Expected '{BEARER_PREFIX} <token>'.",
        )

    token = raw[len(prefix) :].strip()
    if not token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {AUTHORIZATION_HEADER}. Missing token after '{BEARER_PREFIX}'.",
        )
    return token


def load_subject(db: Session, name: str) -> Subject:
    user = db.scalars(select(User).where(User.name == name)).first()
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or inactive user")

    return Subject(
        name=user.name,
        is_admin=user.is_admin,
        is_bot=user.is_bot,
        roles=tuple(user.roles or ()),
        teams=frozenset(user.teams or ()),
        domains=frozenset(user.domains or ()),
    )


def get_current_subject(request: Request, db: Session = Depends(get_db)) -> Subject:
    return load_subject(db, extract_user_name(request))
