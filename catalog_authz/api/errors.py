"""Map engine errors onto HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from catalog_authz.errors import AuthorizationDenied, EntityNotFound, MalformedContext, PolicyEvaluationError

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthorizationDenied)
    async def _denied(request: Request, exc: AuthorizationDenied) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": str(exc)})

    @app.exception_handler(EntityNotFound)
    async def _not_found(request: Request, exc: EntityNotFound) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(MalformedContext)
    async def _malformed(request: Request, exc: MalformedContext) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(PolicyEvaluationError)
    async def _evaluation_failed(request: Request, exc: PolicyEvaluationError) -> JSONResponse:
        logger.error("Policy evaluation failed path=%s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Authorization could not be evaluated"},
        )
