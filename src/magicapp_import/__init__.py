"""
MagicApp Import: Clinical Guideline Importer

Pulls guidelines, their PICO questions and the codes attached to each PICO
from the MAGICapp authoring platform and assembles them into one nested
document per guideline.
"""

from magicapp_import.config import MagicAppSettings, get_settings
from magicapp_import.exceptions import (
    MagicAppError,
    ConfigurationError,
    AuthenticationError,
    AuthTransportError,
    MissingCsrfTokenError,
    AuthRejectedError,
    ResourceError,
    ResourceNotFoundError,
    GuidelineNotFoundError,
    AuthExpiredError,
    TransportError,
)
from magicapp_import.models import Guideline, Pico, Code
from magicapp_import.session import Session, SessionState, SessionAuthenticator
from magicapp_import.client import ResourceClient, resolve_url
from magicapp_import.fetcher import AggregationFetcher, fetch_guideline_with_details

__version__ = "0.1.0"
__author__ = "MagicApp Import Team"

__all__ = [
    # Config
    "MagicAppSettings",
    "get_settings",
    # Errors
    "MagicAppError",
    "ConfigurationError",
    "AuthenticationError",
    "AuthTransportError",
    "MissingCsrfTokenError",
    "AuthRejectedError",
    "ResourceError",
    "ResourceNotFoundError",
    "GuidelineNotFoundError",
    "AuthExpiredError",
    "TransportError",
    # Models
    "Guideline",
    "Pico",
    "Code",
    # Session
    "Session",
    "SessionState",
    "SessionAuthenticator",
    # Reads
    "ResourceClient",
    "resolve_url",
    "AggregationFetcher",
    "fetch_guideline_with_details",
]
