"""Raw discovery records to deduplicated, scored leads.

Each record passes through the same pipeline, strictly in order:

1. Chain filter: franchise and national chains are not independent leads
2. Completeness filter: name and address are required
3. Website filter: only businesses without a website qualify
4. Normalize: collapse whitespace in the name, strip phone punctuation
5. Score: additive priority score (see ``utils.lead_scoring``)
6. Insert: at most once per (name, address); a duplicate is a no-op
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from ..metrics_ledger import MetricsLedger
from ..models import Database, Lead, LeadStatus, insert_ignore
from ..integrations.base import RawRecord
from ..utils.dates import Clock, utcnow
from ..utils.lead_scoring import calculate_priority_score
from ..utils.validators import (
    CHAIN_KEYWORDS,
    is_blank,
    is_chain_business,
    is_valid_email,
    normalize_phone,
    sanitize_business_name,
)

logger = logging.getLogger(__name__)


class RejectReason(str, Enum):
    """Why a raw record did not qualify."""

    CHAIN = "chain"
    INCOMPLETE = "incomplete"
    HAS_WEBSITE = "has_website"


@dataclass
class QualificationOutcome:
    """Result of running one record through the pipeline.

    Attributes:
        record: Normalized record (or the raw one when rejected).
        rejected: Filter that rejected the record, if any.
        priority_score: Score of an accepted record.
        lead_id: Id of the new lead when one was inserted.
        duplicate: True if the record passed but its key already existed.
    """

    record: RawRecord
    rejected: Optional[RejectReason] = None
    priority_score: Optional[int] = None
    lead_id: Optional[int] = None
    duplicate: bool = False

    @property
    def inserted(self) -> bool:
        return self.lead_id is not None


@dataclass
class BatchResult:
    """Counts for one processed batch.

    ``processed`` counts every record seen; ``qualified`` counts only leads
    that were newly inserted.
    """

    processed: int = 0
    qualified: int = 0
    duplicates: int = 0
    rejected: Dict[str, int] = field(default_factory=dict)
    lead_ids: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "processed": self.processed,
            "qualified": self.qualified,
            "duplicates": self.duplicates,
            "rejected": dict(self.rejected),
        }


class LeadQualifier:
    """Filters, scores and stores raw business records.

    Args:
        database: Database client.
        metrics: Ledger receiving per-batch counts.
        chain_keywords: Lowercase chain keywords; defaults to the built-in list.
        clock: Source of ``created_at`` timestamps.
    """

    def __init__(
        self,
        database: Database,
        metrics: MetricsLedger,
        chain_keywords: Iterable[str] = CHAIN_KEYWORDS,
        clock: Clock = utcnow,
    ) -> None:
        self.database = database
        self.metrics = metrics
        self.chain_keywords = tuple(keyword.lower() for keyword in chain_keywords)
        self.clock = clock

    def screen(self, record: RawRecord) -> Optional[RejectReason]:
        """Apply the filters in order and return the first rejection."""
        if is_chain_business(record.name, self.chain_keywords):
            return RejectReason.CHAIN
        if is_blank(record.name) or is_blank(record.address):
            return RejectReason.INCOMPLETE
        if record.has_website:
            return RejectReason.HAS_WEBSITE
        return None

    @staticmethod
    def normalize(record: RawRecord) -> RawRecord:
        """Return a copy with a clean name, address and phone.

        Emails that fail the syntax check are stored as None.
        """
        return replace(
            record,
            name=sanitize_business_name(record.name),
            address=record.address.strip() if record.address else record.address,
            phone=normalize_phone(record.phone),
            email=record.email.strip() if is_valid_email(record.email) else None,
            review_count=record.review_count or 0,
        )

    async def qualify(self, record: RawRecord) -> QualificationOutcome:
        """Run one record through the pipeline and insert it if it qualifies.

        Does not touch metrics; ``process_batch`` reports them per batch.
        """
        reason = self.screen(record)
        if reason is not None:
            logger.debug("Rejected %r: %s", record.name, reason.value)
            return QualificationOutcome(record=record, rejected=reason)

        normalized = self.normalize(record)
        score = calculate_priority_score(normalized)
        now = self.clock()

        async with self.database.session() as session:
            lead_id = await insert_ignore(
                session,
                Lead,
                {
                    "name": normalized.name,
                    "category": normalized.category,
                    "address": normalized.address,
                    "phone": normalized.phone,
                    "email": normalized.email,
                    "has_website": False,
                    "rating": normalized.rating,
                    "review_count": normalized.review_count,
                    "priority_score": score,
                    "status": LeadStatus.NEW,
                    "latitude": normalized.latitude,
                    "longitude": normalized.longitude,
                    "created_at": now,
                    "updated_at": now,
                },
                conflict_columns=["name", "address"],
            )

        if lead_id is None:
            logger.debug("Duplicate lead skipped: %s", normalized.name)
            return QualificationOutcome(
                record=normalized, priority_score=score, duplicate=True
            )

        logger.info("Qualified lead: %s (score: %d)", normalized.name, score)
        return QualificationOutcome(record=normalized, priority_score=score, lead_id=lead_id)

    async def process_batch(self, records: Iterable[RawRecord]) -> BatchResult:
        """Qualify every record and report the batch counts once.

        The day's ``businesses_scraped`` and ``leads_qualified`` counters are
        updated with a single upsert after the loop. Store failures propagate
        and the batch's counts are then not recorded.
        """
        result = BatchResult()
        for record in records:
            outcome = await self.qualify(record)
            result.processed += 1
            if outcome.rejected is not None:
                key = outcome.rejected.value
                result.rejected[key] = result.rejected.get(key, 0) + 1
            elif outcome.duplicate:
                result.duplicates += 1
            else:
                result.qualified += 1
                result.lead_ids.append(outcome.lead_id)

        await self.metrics.increment(
            businesses_scraped=result.processed,
            leads_qualified=result.qualified,
        )

        logger.info(
            "Processed %d businesses, %d qualified leads",
            result.processed,
            result.qualified,
        )
        return result
