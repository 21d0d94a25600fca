"""Lead qualification: filtering, normalization, scoring and insertion."""

from .lead_qualifier import BatchResult, LeadQualifier, QualificationOutcome, RejectReason

__all__ = ["BatchResult", "LeadQualifier", "QualificationOutcome", "RejectReason"]
