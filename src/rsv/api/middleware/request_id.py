from __future__ import annotations

from contextvars import ContextVar
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

REQUEST_ID_HEADER = "X-Request-Id"
ACTOR_HEADER = "X-Actor"
DEFAULT_ACTOR = "system"

request_id_context: ContextVar[str | None] = ContextVar("request_id", default=None)
actor_context: ContextVar[str] = ContextVar("actor", default=DEFAULT_ACTOR)


def get_request_id() -> str | None:
    return request_id_context.get()


def get_actor() -> str:
    return actor_context.get()


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and the acting staff member or customer."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        actor = (request.headers.get(ACTOR_HEADER) or DEFAULT_ACTOR).strip()[:100]
        request_token = request_id_context.set(request_id)
        actor_token = actor_context.set(actor or DEFAULT_ACTOR)
        request.state.request_id = request_id
        try:
            response = await call_next(request)
        finally:
            actor_context.reset(actor_token)
            request_id_context.reset(request_token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
