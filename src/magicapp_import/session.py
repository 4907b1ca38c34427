"""
MAGICapp Session Authentication

Cookie/CSRF session handshake:
- OPTIONS pre-flight to collect the XSRF cookie
- Credential POST echoing the token in X-XSRF-TOKEN
- Explicit session state (unauthenticated → authenticating → authenticated → expired)
"""

from typing import List, Optional, Tuple, Union
from enum import Enum

import httpx
import structlog
from pydantic import SecretStr

from magicapp_import.config import DEFAULT_AUTH_URL, DEFAULT_BASE_URL, MagicAppSettings
from magicapp_import.exceptions import (
    AuthRejectedError,
    AuthTransportError,
    ConfigurationError,
    MissingCsrfTokenError,
)

logger = structlog.get_logger(__name__)

XSRF_HEADER = "X-XSRF-TOKEN"


# =============================================================================
# Session
# =============================================================================

class SessionState(str, Enum):
    """Authentication state of a session."""
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"


class Session:
    """
    Credentials, endpoints and the cookie jar of one MAGICapp login.

    The jar belongs to this session alone. Every request runs on a
    short-lived client seeded with a copy of the jar, and the resulting
    cookies replace the jar only once the response is in.
    """

    def __init__(
        self,
        username: str,
        password: Union[str, SecretStr],
        base_url: str = DEFAULT_BASE_URL,
        auth_url: str = DEFAULT_AUTH_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.username = username
        self.password = password if isinstance(password, SecretStr) else SecretStr(password)
        self.base_url = base_url
        self.auth_url = auth_url
        self.timeout = timeout
        self.state = SessionState.UNAUTHENTICATED

        self._cookies = httpx.Cookies()
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: MagicAppSettings,
        username: Optional[str] = None,
        password: Optional[Union[str, SecretStr]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "Session":
        """Build a session, filling missing credentials from settings."""
        username = username or settings.username
        password = password or settings.password
        if not username or not password:
            raise ConfigurationError(
                "MAGICapp credentials missing: pass username/password or set "
                "MAGICAPP_USERNAME and MAGICAPP_PASSWORD"
            )

        return cls(
            username=username,
            password=password,
            base_url=settings.base_url,
            auth_url=settings.auth_url,
            timeout=settings.timeout_seconds,
            transport=transport,
        )

    @property
    def is_authenticated(self) -> bool:
        return self.state == SessionState.AUTHENTICATED

    def mark_expired(self):
        """Record that the platform no longer accepts this session."""
        if self.state == SessionState.AUTHENTICATED:
            logger.info("Session expired", base_url=self.base_url)
            self.state = SessionState.EXPIRED

    def cookies_for(self, url: str) -> List[Tuple[str, str]]:
        """
        Cookies the jar would send to `url`, as (name, value) pairs.

        Domain, path, secure flag and expiry are matched the way the
        transport matches them on a real request.
        """
        probe = httpx.Request("GET", url)
        self._cookies.set_cookie_header(probe)
        header = probe.headers.get("Cookie")
        if not header:
            return []

        pairs = []
        for part in header.split(";"):
            name, _, value = part.strip().partition("=")
            if name and not name.startswith("$"):
                # Quoted cookie values carry the token without the quotes
                if len(value) >= 2 and value[0] == value[-1] == '"':
                    value = value[1:-1]
                pairs.append((name, value))
        return pairs

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send one request with a snapshot of the jar, then commit the cookies."""
        snapshot = httpx.Cookies(self._cookies)

        async with httpx.AsyncClient(
            cookies=snapshot,
            transport=self._transport,
            timeout=self.timeout,
        ) as client:
            response = await client.request(method, url, **kwargs)
            received = httpx.Cookies(client.cookies)

        self._cookies = received
        return response


# =============================================================================
# Authenticator
# =============================================================================

class SessionAuthenticator:
    """
    Runs the two-step CSRF-then-credentials handshake for a session.

    Each call to `authenticate` repeats the full handshake; nothing from a
    previous login is reused.
    """

    def __init__(self, session: Session, csrf_cookie_name: str = "XSRF-TOKEN"):
        self.session = session
        self.csrf_cookie_name = csrf_cookie_name

    async def fetch_csrf_token(self):
        """Pre-flight the authentication URL so the XSRF cookie lands in the jar."""
        url = self.session.auth_url

        try:
            response = await self.session.request("OPTIONS", url)
        except httpx.HTTPError as e:
            raise AuthTransportError(f"CSRF pre-flight to {url} failed: {e}") from e

        if not response.is_success:
            raise AuthTransportError(
                f"CSRF pre-flight to {url} returned HTTP {response.status_code}"
            )

        logger.debug("CSRF pre-flight complete", auth_url=url)

    async def authenticate(self):
        """
        Log in and leave a session cookie in the jar.

        Raises:
            AuthTransportError: network failure during the handshake
            MissingCsrfTokenError: pre-flight set no cookie for the API
            AuthRejectedError: the platform refused the credentials
        """
        session = self.session
        session.state = SessionState.AUTHENTICATING
        succeeded = False

        try:
            await self.fetch_csrf_token()

            cookies = session.cookies_for(session.base_url)
            if not cookies:
                raise MissingCsrfTokenError(session.base_url)

            token = self._select_csrf_token(cookies)

            try:
                response = await session.request(
                    "POST",
                    session.auth_url,
                    headers={XSRF_HEADER: token},
                    data={
                        "username": session.username,
                        "password": session.password.get_secret_value(),
                    },
                )
            except httpx.HTTPError as e:
                raise AuthTransportError(
                    f"Login request to {session.auth_url} failed: {e}"
                ) from e

            if not response.is_success:
                logger.warning(
                    "Authentication rejected",
                    username=session.username,
                    status_code=response.status_code,
                )
                raise AuthRejectedError(response.status_code, session.auth_url)

            succeeded = True
        finally:
            session.state = (
                SessionState.AUTHENTICATED if succeeded else SessionState.UNAUTHENTICATED
            )

        logger.info("Authenticated with MAGICapp", username=session.username)

    def _select_csrf_token(self, cookies: List[Tuple[str, str]]) -> str:
        """Pick the XSRF cookie by name, falling back to the first cookie."""
        wanted = self.csrf_cookie_name.lower()
        for name, value in cookies:
            if name.lower() == wanted:
                return value

        # Unverified against the live API: relies on jar ordering
        name, value = cookies[0]
        logger.warning(
            "XSRF cookie not found by name, using first cookie",
            expected=self.csrf_cookie_name,
            used=name,
        )
        return value
