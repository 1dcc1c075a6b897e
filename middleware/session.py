"""
Session middleware driving a SessionHandler.

For every request the middleware runs the handler lifecycle the way a
server-side session framework does:

1. open the handler
2. take the session ID from the cookie and reject IDs the store does not
   know (strict mode); unknown or missing IDs get a freshly generated one
3. read the session and expose its contents as a dict on
   ``request.state.session``
4. after the endpoint runs, write the session if it changed, otherwise
   ask the handler to update its timestamp
5. close the handler and set the session cookie

Session contents are serialized as JSON. An empty session serializes to
"", which the handler treats as a request to delete a stored session.
"""

import json
import logging
import secrets
from typing import Any, Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from session.handler import SessionHandler, SessionRead

logger = logging.getLogger(__name__)

SESSION_ID_BYTES = 32


def generate_session_id() -> str:
    """Create a new random, URL-safe session ID."""
    return secrets.token_urlsafe(SESSION_ID_BYTES)


def encode_session_data(session: dict[str, Any]) -> str:
    """Serialize session contents; an empty session becomes ""."""
    if not session:
        return ""
    return json.dumps(session, sort_keys=True, separators=(",", ":"))


def decode_session_data(data: str) -> dict[str, Any]:
    """
    Deserialize session contents.

    Payloads that are not a JSON object are dropped with a warning so a
    malformed session starts over empty instead of failing the request.
    """
    if not data:
        return {}
    try:
        value = json.loads(data)
    except ValueError:
        logger.warning("Discarding session payload that is not valid JSON")
        return {}
    if not isinstance(value, dict):
        logger.warning("Discarding session payload that is not a JSON object")
        return {}
    return value


class SessionMiddleware(BaseHTTPMiddleware):
    """
    Middleware that loads and saves the request's session.

    Endpoints read and mutate ``request.state.session`` (a dict) and can
    find the current ID in ``request.state.session_id``.
    """

    def __init__(
        self,
        app: ASGIApp,
        handler: SessionHandler,
        cookie_name: str = "PHPSESSID",
        cookie_secure: bool = False,
        cookie_max_age: Optional[int] = None,
        save_path: str = "",
        exempt_paths: tuple[str, ...] = ("/health",)
    ):
        """
        Initialize the middleware.

        Args:
            app: The ASGI application to wrap
            handler: Session handler persisting the sessions
            cookie_name: Name of the session cookie
            cookie_secure: Whether the cookie is sent over HTTPS only
            cookie_max_age: Cookie lifetime in seconds, None for a browser-session cookie
            save_path: Storage hint passed to handler.open()
            exempt_paths: Path prefixes served without a session
        """
        super().__init__(app)
        self.handler = handler
        self.cookie_name = cookie_name
        self.cookie_secure = cookie_secure
        self.cookie_max_age = cookie_max_age
        self.save_path = save_path
        self.exempt_paths = exempt_paths

    async def _start(self, request: Request) -> SessionRead:
        await self.handler.open(self.save_path, self.cookie_name)

        session_id = request.cookies.get(self.cookie_name)
        if session_id and await self.handler.validate_id(session_id):
            return await self.handler.read(session_id)

        return SessionRead.miss(generate_session_id())

    async def _finish(self, previous: SessionRead, session: dict[str, Any]) -> None:
        data = encode_session_data(session)
        if previous.found and data == previous.data:
            saved = await self.handler.update_timestamp(previous.session_id, data, previous)
        else:
            saved = await self.handler.write(previous.session_id, data, previous)

        if not saved:
            logger.warning("Session changes were not saved")

        await self.handler.close()

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        if request.url.path.startswith(self.exempt_paths):
            return await call_next(request)

        previous = await self._start(request)
        session = decode_session_data(previous.data)

        request.state.session_id = previous.session_id
        request.state.session = session

        response = await call_next(request)

        await self._finish(previous, session)

        response.set_cookie(
            self.cookie_name,
            previous.session_id,
            max_age=self.cookie_max_age,
            path="/",
            secure=self.cookie_secure,
            httponly=True,
            samesite="lax",
        )
        return response
