"""
HTTP Basic authentication middleware for FastAPI.

This middleware checks the Authorization header against a single
"user:password" credential string and stores the username in request.state.
"""

import base64
import binascii
import logging
import secrets
from typing import Iterable, Optional, Tuple

from fastapi import Request, HTTPException, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)


def parse_credentials(credentials: str) -> Optional[Tuple[str, str]]:
    """Split "user:password"; None when the user part is empty."""
    username, sep, password = credentials.partition(":")
    if not sep or not username:
        return None
    return username, password


class BasicAuthMiddleware(BaseHTTPMiddleware):
    """
    Middleware for validating HTTP Basic credentials.

    This middleware:
    1. Extracts the Basic credentials from the Authorization header
    2. Compares user and password in constant time
    3. Stores the username in request.state for downstream use

    When no valid credential string is configured every request is rejected.
    """

    def __init__(
        self,
        app,
        credentials: str,
        realm: str = "restricted",
        public_paths: Optional[Iterable[str]] = None,
    ):
        """
        Initialize basic auth middleware.

        Args:
            app: ASGI application
            credentials: Expected "user:password"
            realm: Realm reported in WWW-Authenticate
            public_paths: Paths served without authentication
        """
        super().__init__(app)
        self.expected = parse_credentials(credentials or "")
        self.realm = realm
        self.public_paths = set(public_paths or ())

        if self.expected is None:
            logger.warning("Basic auth credentials are not configured - all requests will be rejected")

    async def dispatch(self, request: Request, call_next):
        """
        Process each request and validate credentials.

        Args:
            request: FastAPI request
            call_next: Next middleware/endpoint in chain

        Returns:
            Response from next handler, or 401
        """
        if request.url.path in self.public_paths:
            return await call_next(request)

        try:
            username = self._authenticate(request)
        except HTTPException as e:
            # Convert HTTPException to JSONResponse for middleware
            return JSONResponse(
                status_code=e.status_code,
                content={"detail": e.detail},
                headers=e.headers,
            )

        request.state.username = username
        logger.debug(f"Authenticated user: {username}")
        return await call_next(request)

    def _unauthorized(self, detail: str) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": f'Basic realm="{self.realm}"'},
        )

    def _authenticate(self, request: Request) -> str:
        """
        Validate the Authorization header.

        Returns:
            Authenticated username

        Raises:
            HTTPException: 401 if credentials are missing or wrong
        """
        auth_header = request.headers.get("Authorization")
        if not auth_header:
            raise self._unauthorized("Missing authorization header")

        # Parse "Basic <base64>" format
        parts = auth_header.split()
        if len(parts) != 2 or parts[0].lower() != "basic":
            raise self._unauthorized("Invalid authorization header")

        try:
            decoded = base64.b64decode(parts[1], validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            raise self._unauthorized("Invalid authorization header")

        supplied = parse_credentials(decoded)
        if self.expected is None or supplied is None:
            raise self._unauthorized("Invalid credentials")

        user_ok = secrets.compare_digest(supplied[0].encode(), self.expected[0].encode())
        password_ok = secrets.compare_digest(supplied[1].encode(), self.expected[1].encode())
        if not (user_ok and password_ok):
            logger.warning(f"Rejected credentials for user: {supplied[0]}")
            raise self._unauthorized("Invalid credentials")

        return supplied[0]


def get_current_username(request: Request) -> str:
    """
    Get the authenticated username from request state.

    Usable as a FastAPI dependency:

    @app.get("/keys")
    async def list_keys(username: str = Depends(get_current_username)):
        ...

    Raises:
        HTTPException: If the request is not authenticated
    """
    username = getattr(request.state, "username", None)
    if not username:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return username
