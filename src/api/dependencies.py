"""FastAPI dependencies for authentication, quota and shared clients."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from src.config import get_settings
from src.database import get_db
from src.services.auth import decode_access_token
from src.services.errors import Unauthorized
from src.services.extraction import ExtractionAdapter
from src.services.llm import LLMService
from src.services.opik_spans import OpikSpansClient
from src.services.tracing import Tracer
from src.services.usage_limiter import check_usage_limit

security = HTTPBearer(auto_error=False)


def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str:
    """Get the current user id (the token subject) from the bearer token."""
    if credentials is None:
        raise Unauthorized()

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise Unauthorized("Invalid authentication credentials")

    user_id = payload.get("sub")
    if not user_id:
        raise Unauthorized("Invalid authentication credentials")

    request.state.user_id = str(user_id)
    return str(user_id)


CurrentUser = Annotated[str, Depends(get_current_user)]
DbSession = Annotated[Session, Depends(get_db)]


def require_admin(user_id: CurrentUser) -> str:
    """Allow only ids listed in ADMIN_USER_IDS."""
    if not get_settings().is_admin(user_id):
        raise Unauthorized("Admin access required")
    return user_id


def require_llm_quota(user_id: CurrentUser, db: DbSession) -> str:
    """Reject the request before any LLM work if today's quota is used up."""
    check_usage_limit(db, user_id)
    return user_id


def get_llm_service(request: Request) -> LLMService:
    return request.app.state.llm_service


def get_tracer(request: Request) -> Tracer:
    return request.app.state.tracer


def get_opik_spans_client(request: Request) -> OpikSpansClient:
    return request.app.state.opik_spans


def get_extraction_adapter(
    llm_service: Annotated[LLMService, Depends(get_llm_service)],
) -> ExtractionAdapter:
    """Get extraction adapter over the shared LLM client."""
    return ExtractionAdapter(llm_service)
