"""LeadSweep Backend Service.

This module provides a zone-partitioned discovery and outreach system that
finds local businesses without a website, qualifies them into scored leads,
and runs a quota-bounded cold email campaign with a fixed follow-up cadence.
"""

__version__ = "0.1.0"
