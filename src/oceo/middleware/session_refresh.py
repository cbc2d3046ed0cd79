"""Sliding session expiry: successful GETs re-issue the session cookie."""

import jwt
import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from oceo.auth.jwt import create_session_token, verify_session_token
from oceo.auth.router import set_session_cookie
from oceo.config import get_settings

logger = structlog.get_logger()


class SessionRefreshMiddleware(BaseHTTPMiddleware):
    """Extend a valid cookie session by a full lifetime on each successful GET."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        if request.method != "GET" or response.status_code >= 400:
            return response

        cookie_name = get_settings().session_cookie_name
        token = request.cookies.get(cookie_name)
        if not token or cookie_name in response.headers.get("set-cookie", ""):
            return response

        try:
            payload = verify_session_token(token)
        except jwt.InvalidTokenError:
            return response

        user = payload["user"]
        fresh, expires = create_session_token(user["id"], user.get("role", "member"))
        set_session_cookie(response, fresh, expires)
        return response
