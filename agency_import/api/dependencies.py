"""FastAPI dependencies: configuration, per-request repository, operator auth."""

import hashlib
from collections.abc import Iterator
from typing import Annotated

from fastapi import Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from agency_import.api.errors import FORBIDDEN, UNAUTHORIZED, ApiError
from agency_import.db.connection import open_cursor
from agency_import.db.repository import AgencyRepository
from agency_import.models.config_models import ImportConfig
from agency_import.models.reference import Operator

bearer_scheme = HTTPBearer(auto_error=False)


def get_config(request: Request) -> ImportConfig:
    return request.app.state.config


def get_repository(
    config: Annotated[ImportConfig, Depends(get_config)],
) -> Iterator[AgencyRepository]:
    """One connection per request, closed when the response is done."""
    with open_cursor(config.database) as cursor:
        yield AgencyRepository(cursor)


Repository = Annotated[AgencyRepository, Depends(get_repository)]


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def get_current_operator(
    repository: Repository,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Operator:
    if credentials is None or not credentials.credentials:
        raise ApiError(
            status.HTTP_401_UNAUTHORIZED, UNAUTHORIZED, "You must be logged in to access this endpoint"
        )
    operator = repository.resolve_operator(hash_token(credentials.credentials))
    if operator is None:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, UNAUTHORIZED, "Invalid or expired token")
    return operator


CurrentOperator = Annotated[Operator, Depends(get_current_operator)]


def require_admin(operator: CurrentOperator) -> Operator:
    if not operator.is_admin:
        raise ApiError(status.HTTP_403_FORBIDDEN, FORBIDDEN, "Forbidden: Admin access required")
    return operator


CurrentAdmin = Annotated[Operator, Depends(require_admin)]
