"""
Guideline Aggregation

Assembles a published guideline with its PICOs and each PICO's codes:
- authenticate (every call, no session reuse)
- guideline by shortname
- PICOs of the guideline
- codes of each PICO, one after another

The document is built locally and returned only when every read succeeded.
"""

from typing import Any, List, Optional, Type, TypeVar, Union
from urllib.parse import quote

import httpx
import structlog
from pydantic import BaseModel, SecretStr, ValidationError

from magicapp_import.client import ResourceClient, resolve_url
from magicapp_import.config import MagicAppSettings, get_settings
from magicapp_import.exceptions import (
    GuidelineNotFoundError,
    ResourceNotFoundError,
    TransportError,
)
from magicapp_import.models import Code, Guideline, Pico
from magicapp_import.session import Session, SessionAuthenticator

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

AGGREGATED_LEVELS = {Guideline: "picos", Pico: "codes"}


class AggregationFetcher:
    """
    Fetches guideline documents from MAGICapp.

    Usage:
        session = Session("user", "secret")
        fetcher = AggregationFetcher(session)
        guideline = await fetcher.fetch_guideline_with_details("abc")
    """

    def __init__(self, session: Session, csrf_cookie_name: str = "XSRF-TOKEN"):
        self.session = session
        self.authenticator = SessionAuthenticator(session, csrf_cookie_name=csrf_cookie_name)
        self.client = ResourceClient(session)

    # =========================================================================
    # Aggregation
    # =========================================================================

    async def fetch_guideline_with_details(self, shortname: str) -> Guideline:
        """
        Authenticate and fetch a guideline with its PICOs and their codes.

        Any failure aborts the whole fetch and propagates; no partially
        populated guideline is ever returned.
        """
        log = logger.bind(shortname=shortname)

        # Stage 1: fresh login
        await self.authenticator.authenticate()

        # Stage 2: guideline
        guideline = await self.get_guideline_by_shortname(shortname)

        # Stage 3: picos
        picos = await self.get_picos_by_guideline_id(guideline.guideline_id)

        # Stage 4: codes, sequentially in listing order
        assembled: List[Pico] = []
        for pico in picos:
            codes = await self.get_codes_by_pico_id(pico.pico_id)
            assembled.append(pico.model_copy(update={"codes": codes}))

        log.info(
            "Fetched guideline with details",
            guideline_id=guideline.guideline_id,
            picos=len(assembled),
            codes=sum(len(p.codes) for p in assembled),
        )
        return guideline.model_copy(update={"picos": assembled})

    # =========================================================================
    # Single-level reads (session must already be authenticated)
    # =========================================================================

    async def list_my_guidelines(self) -> List[Guideline]:
        """Guidelines owned by the logged-in user."""
        return await self._get_list("guidelines?mine=1", Guideline)

    async def get_guideline_by_shortname(self, shortname: str) -> Guideline:
        """Latest published version of a guideline."""
        path = f"guidelines/published/{quote(str(shortname), safe='')}"

        try:
            payload = await self.client.get(path)
        except ResourceNotFoundError as e:
            raise GuidelineNotFoundError(shortname, path=e.path, url=e.url) from e

        return self._parse(Guideline, payload, path)

    async def get_picos_by_guideline_id(self, guideline_id: Union[int, str]) -> List[Pico]:
        return await self._get_list(f"guidelines/{guideline_id}/picos", Pico)

    async def get_codes_by_pico_id(self, pico_id: Union[int, str]) -> List[Code]:
        return await self._get_list(f"picos/{pico_id}/codes", Code)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_list(self, path: str, model: Type[ModelT]) -> List[ModelT]:
        payload = await self.client.get(path)
        if not isinstance(payload, list):
            raise TransportError(
                f"Expected a JSON array from {path}, got {type(payload).__name__}",
                path=path,
                url=resolve_url(self.session.base_url, path),
            )
        return [self._parse(model, item, path) for item in payload]

    def _parse(self, model: Type[ModelT], payload: Any, path: str) -> ModelT:
        # Nested levels come only from their own endpoints
        level = AGGREGATED_LEVELS.get(model)
        if level and isinstance(payload, dict) and level in payload:
            payload = {k: v for k, v in payload.items() if k != level}

        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise TransportError(
                f"Unexpected {model.__name__} payload from {path}: {e}",
                path=path,
                url=resolve_url(self.session.base_url, path),
            ) from e


async def fetch_guideline_with_details(
    shortname: str,
    username: Optional[str] = None,
    password: Optional[Union[str, SecretStr]] = None,
    settings: Optional[MagicAppSettings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Guideline:
    """
    One-shot import of a guideline document.

    Builds a fresh session per call. Credentials default to
    MAGICAPP_USERNAME / MAGICAPP_PASSWORD.
    """
    settings = settings or get_settings()
    session = Session.from_settings(
        settings, username=username, password=password, transport=transport
    )
    fetcher = AggregationFetcher(session, csrf_cookie_name=settings.csrf_cookie_name)
    return await fetcher.fetch_guideline_with_details(shortname)
