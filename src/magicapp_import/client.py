"""
MAGICapp Resource Client

Authenticated JSON reads against paths relative to the API base URL.
"""

from typing import Any
from urllib.parse import urljoin

import httpx
import structlog

from magicapp_import.exceptions import (
    AuthExpiredError,
    ResourceNotFoundError,
    TransportError,
)
from magicapp_import.session import Session, SessionState

logger = structlog.get_logger(__name__)


def resolve_url(base_url: str, path: str) -> str:
    """
    Resolve a resource path against the base URL.

    Relative paths (query strings included) append to the base; absolute
    paths and full URLs replace it.

        >>> resolve_url("https://host/api/v1/", "guidelines?mine=1")
        'https://host/api/v1/guidelines?mine=1'
    """
    return urljoin(base_url, path)


class ResourceClient:
    """
    Reads MAGICapp resources with the session's cookies.

    Does not retry and does not re-authenticate; an expired session is
    reported to the caller.
    """

    def __init__(self, session: Session):
        self.session = session

    async def get(self, path: str) -> Any:
        """
        GET a resource and decode its JSON body.

        Raises:
            ResourceNotFoundError: the platform answered 404
            AuthExpiredError: the session is not (or no longer) authenticated
            TransportError: any other network or protocol failure
        """
        session = self.session
        url = resolve_url(session.base_url, path)

        if session.state != SessionState.AUTHENTICATED:
            raise AuthExpiredError(
                f"Session is {session.state.value}; authenticate before reading {path}",
                path=path,
                url=url,
            )

        logger.debug("Reading resource", path=path)

        try:
            response = await session.request(
                "GET", url, headers={"Accept": "application/json"}
            )
        except httpx.HTTPError as e:
            raise TransportError(f"GET {url} failed: {e}", path=path, url=url) from e

        if response.status_code == 404:
            raise ResourceNotFoundError(path, url=url)

        if response.status_code in (401, 403):
            session.mark_expired()
            raise AuthExpiredError(
                f"GET {url} rejected as unauthenticated (HTTP {response.status_code})",
                path=path,
                url=url,
            )

        if not response.is_success:
            raise TransportError(
                f"GET {url} returned HTTP {response.status_code}", path=path, url=url
            )

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                f"GET {url} returned a body that is not JSON", path=path, url=url
            ) from e
