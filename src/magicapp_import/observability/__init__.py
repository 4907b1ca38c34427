"""
MagicApp Import Observability

Structured logging setup (structlog).
"""

from magicapp_import.observability.logging import configure_logging

__all__ = [
    "configure_logging",
]
