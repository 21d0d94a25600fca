"""Exception taxonomy for the LeadSweep service."""

from typing import Optional


class LeadSweepError(Exception):
    """Base exception for all LeadSweep errors."""

    pass


class ConfigurationError(LeadSweepError):
    """Raised when grid, bounds or service configuration is invalid.

    Fatal at startup: callers should fail fast rather than retry.
    """

    pass


class PersistenceError(LeadSweepError):
    """Raised when the backing store is unavailable.

    Not retried internally; the transport layer above decides.
    """

    pass


class ExtractionError(LeadSweepError):
    """Raised when the business extractor fails hard for an area."""

    def __init__(self, message: str, area: Optional[str] = None):
        super().__init__(message)
        self.area = area


class DeliveryError(LeadSweepError):
    """Raised by mailer internals when a single message cannot be delivered."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidTemplateKind(LeadSweepError):
    """Raised when an outreach message kind has no template."""

    def __init__(self, kind: object):
        super().__init__(f"Unknown outreach message kind: {kind!r}")
        self.kind = kind


class LeadNotFoundError(LeadSweepError, LookupError):
    """Raised when a lifecycle operation names a lead that does not exist."""

    def __init__(self, lead_id: int):
        super().__init__(f"Lead {lead_id} not found")
        self.lead_id = lead_id
