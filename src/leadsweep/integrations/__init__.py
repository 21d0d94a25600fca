"""LeadSweep Integration Clients.

This module provides the collaborator contracts and the concrete extractor
and mailer adapters used by the pipeline.

Adapter imports are lazy so the core can run (and be tested) without the
Google Maps or SendGrid SDKs being imported.
"""

from typing import TYPE_CHECKING

from .base import (
    AreaSpec,
    DeliveryResult,
    Extractor,
    LocationArea,
    Mailer,
    RawRecord,
    ZoneArea,
)

# Lazy imports to allow partial functionality when dependencies missing
_GoogleMapsExtractor = None
_SendGridMailer = None


def _get_googlemaps_extractor():
    """Lazy load GoogleMapsExtractor."""
    global _GoogleMapsExtractor
    if _GoogleMapsExtractor is None:
        from .google_maps import GoogleMapsExtractor as _GME
        _GoogleMapsExtractor = _GME
    return _GoogleMapsExtractor


def _get_sendgrid_mailer():
    """Lazy load SendGridMailer."""
    global _SendGridMailer
    if _SendGridMailer is None:
        from .sendgrid import SendGridMailer as _SGM
        _SendGridMailer = _SGM
    return _SendGridMailer


# For type checking, use actual imports
if TYPE_CHECKING:
    from .google_maps import GoogleMapsExtractor
    from .sendgrid import SendGridMailer


def __getattr__(name: str):
    """Module-level __getattr__ for lazy imports."""
    if name == "GoogleMapsExtractor":
        return _get_googlemaps_extractor()
    elif name == "SendGridMailer":
        return _get_sendgrid_mailer()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "AreaSpec",
    "DeliveryResult",
    "Extractor",
    "LocationArea",
    "Mailer",
    "RawRecord",
    "ZoneArea",
    "GoogleMapsExtractor",
    "SendGridMailer",
]
