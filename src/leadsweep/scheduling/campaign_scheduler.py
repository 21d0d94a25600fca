"""Outreach scheduling under a daily quota and a fixed follow-up cadence.

Leads move ``new -> contacted -> converted``. The daily campaign contacts
new leads in priority order; the follow-up campaign re-touches contacted
leads once the cadence allows (first follow-up after 3 days, second after
7). Both share one daily quota counted in attempts, so failed sends consume
quota too. Unsubscribed leads are never selected.

Sends happen outside any database transaction; each outcome is then
recorded in its own transaction.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from sqlalchemy import and_, func, select, update

from ..errors import LeadNotFoundError
from ..integrations.base import DeliveryResult, Mailer
from ..logging_utils import ContextAdapter, LogContext
from ..metrics_ledger import MetricsLedger
from ..models import (
    Database,
    Lead,
    LeadStatus,
    OutreachEvent,
    OutreachKind,
    Unsubscribe,
    insert_ignore,
)
from ..utils.dates import Clock, utcnow
from ..utils.templates import MessageRenderer, parse_kind
from ..utils.validators import is_valid_email

logger = ContextAdapter(logging.getLogger(__name__), {})

# Rows fetched per query while skipping leads with unusable emails.
SELECTION_PAGE_SIZE = 100


@dataclass
class CampaignSettings:
    """Quota and cadence settings.

    Attributes:
        max_daily_emails: Send attempts allowed per UTC day.
        followup1_after_days: Days after the last contact before follow-up 1.
        followup2_after_days: Days after the last contact before follow-up 2.
        send_delay_seconds: Pause between consecutive sends.
    """

    max_daily_emails: int = 50
    followup1_after_days: int = 3
    followup2_after_days: int = 7
    send_delay_seconds: float = 5.0

    def cadence_days(self, kind: OutreachKind) -> int:
        if kind is OutreachKind.FOLLOWUP1:
            return self.followup1_after_days
        if kind is OutreachKind.FOLLOWUP2:
            return self.followup2_after_days
        return 0


class ContactMethod(str, Enum):
    """Channel a lead can be reached on."""

    EMAIL = "email"
    PHONE = "phone"
    NONE = "none"


@dataclass(frozen=True)
class Contact:
    """Resolved contact channel for a lead."""

    method: ContactMethod
    address: Optional[str] = None

    @property
    def mailer_capable(self) -> bool:
        return self.method is ContactMethod.EMAIL


def resolve_contact(lead: Any) -> Contact:
    """Pick the contact channel for a lead.

    A syntactically valid email wins; otherwise the phone number; otherwise
    no channel. Only email contacts are handed to the mailer.
    """
    if is_valid_email(lead.email):
        return Contact(ContactMethod.EMAIL, lead.email.strip())
    if lead.phone:
        return Contact(ContactMethod.PHONE, lead.phone)
    return Contact(ContactMethod.NONE)


@dataclass
class SendOutcome:
    """Result of one attempted (or skipped) send."""

    lead_id: int
    kind: OutreachKind
    success: bool
    destination: Optional[str] = None
    reference: Optional[str] = None
    error: Optional[str] = None
    skipped: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lead_id": self.lead_id,
            "kind": self.kind.value,
            "success": self.success,
            "destination": self.destination,
            "reference": self.reference,
            "error": self.error,
            "skipped": self.skipped,
        }


@dataclass
class CampaignRunResult:
    """Summary of one campaign run.

    Attributes:
        quota_before: Remaining quota when the run started.
        attempted: Sends handed to the mailer (quota consumed).
        sent: Successful sends.
        failed: Failed sends.
        skipped: Selected leads without a mailer-capable contact.
        outcomes: Per-lead outcomes in send order.
    """

    quota_before: int = 0
    attempted: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    outcomes: List[SendOutcome] = field(default_factory=list)

    def add(self, outcome: SendOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.skipped:
            self.skipped += 1
            return
        self.attempted += 1
        if outcome.success:
            self.sent += 1
        else:
            self.failed += 1

    def merge(self, other: "CampaignRunResult") -> None:
        for outcome in other.outcomes:
            self.add(outcome)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "quota_before": self.quota_before,
            "attempted": self.attempted,
            "sent": self.sent,
            "failed": self.failed,
            "skipped": self.skipped,
        }


@dataclass
class CombinedCampaignResult:
    """Daily campaign followed by the follow-up campaign."""

    initial: CampaignRunResult
    follow_up: CampaignRunResult

    @property
    def initial_sent(self) -> int:
        return self.initial.sent

    @property
    def follow_up_sent(self) -> int:
        return self.follow_up.sent

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "initial_sent": self.initial_sent,
            "follow_up_sent": self.follow_up_sent,
            "initial": self.initial.to_dict(),
            "follow_up": self.follow_up.to_dict(),
        }


@dataclass
class LeadStats:
    """Lead counts for dashboards and health checks."""

    total: int = 0
    without_website: int = 0
    new: int = 0
    contacted: int = 0
    converted: int = 0
    unsubscribed: int = 0
    emails_sent_today: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "without_website": self.without_website,
            "new": self.new,
            "contacted": self.contacted,
            "converted": self.converted,
            "unsubscribed": self.unsubscribed,
            "emails_sent_today": self.emails_sent_today,
        }


def _not_unsubscribed():
    return ~select(Unsubscribe.id).where(Unsubscribe.lead_id == Lead.id).exists()


def _has_email():
    return and_(Lead.email.is_not(None), Lead.email != "")


class CampaignScheduler:
    """Selects leads for outreach, sends through the mailer and records results.

    Args:
        database: Database client.
        mailer: Mailer collaborator.
        metrics: Ledger for quota accounting and send counters.
        renderer: Message renderer.
        settings: Quota and cadence settings.
        clock: Source of contact timestamps and "today".
    """

    def __init__(
        self,
        database: Database,
        mailer: Mailer,
        metrics: MetricsLedger,
        renderer: MessageRenderer,
        settings: Optional[CampaignSettings] = None,
        clock: Clock = utcnow,
    ) -> None:
        self.database = database
        self.mailer = mailer
        self.metrics = metrics
        self.renderer = renderer
        self.settings = settings or CampaignSettings()
        self.clock = clock

    async def remaining_quota(self) -> int:
        """Send attempts left today (never negative)."""
        snapshot = await self.metrics.for_day()
        return max(0, self.settings.max_daily_emails - snapshot.email_attempts)

    async def eligible_initial(self, limit: int) -> List[Lead]:
        """New, reachable, not-unsubscribed leads by priority then age.

        Leads whose stored email fails the syntax check are passed over until
        ``limit`` reachable leads are found or the candidates run out.
        """
        if limit <= 0:
            return []
        query = (
            select(Lead)
            .where(
                Lead.has_website.is_(False),
                Lead.status == LeadStatus.NEW,
                _not_unsubscribed(),
                _has_email(),
            )
            .order_by(Lead.priority_score.desc(), Lead.created_at.asc(), Lead.id.asc())
        )
        page_size = max(limit, SELECTION_PAGE_SIZE)
        reachable: List[Lead] = []
        offset = 0
        async with self.database.session() as session:
            while len(reachable) < limit:
                page = list(await session.scalars(query.offset(offset).limit(page_size)))
                reachable.extend(lead for lead in page if is_valid_email(lead.email))
                if len(page) < page_size:
                    break
                offset += page_size
        return reachable[:limit]

    async def eligible_followups(
        self, kind: Union[OutreachKind, str], limit: Optional[int] = None
    ) -> List[Lead]:
        """Contacted leads due for the given follow-up kind.

        A lead qualifies when its cadence delay has elapsed since the last
        contact, it has exactly the number of events that precede this kind,
        and the preceding kind is among them.
        """
        kind = parse_kind(kind)
        if kind is OutreachKind.INITIAL:
            raise ValueError("eligible_followups requires a follow-up kind")
        if limit is not None and limit <= 0:
            return []

        cutoff = self.clock() - timedelta(days=self.settings.cadence_days(kind))
        event_count = (
            select(func.count(OutreachEvent.id))
            .where(OutreachEvent.lead_id == Lead.id)
            .scalar_subquery()
        )
        has_previous = (
            select(OutreachEvent.id)
            .where(OutreachEvent.lead_id == Lead.id, OutreachEvent.kind == kind.previous)
            .exists()
        )
        query = (
            select(Lead)
            .where(
                Lead.status == LeadStatus.CONTACTED,
                Lead.has_website.is_(False),
                _not_unsubscribed(),
                _has_email(),
                Lead.last_contacted_at.is_not(None),
                Lead.last_contacted_at <= cutoff,
                event_count == kind.sequence - 1,
                has_previous,
            )
            .order_by(Lead.priority_score.desc(), Lead.last_contacted_at.asc(), Lead.id.asc())
        )
        async with self.database.session() as session:
            due = [lead for lead in await session.scalars(query) if is_valid_email(lead.email)]
        return due if limit is None else due[:limit]

    async def _record_outcome(
        self, lead: Lead, kind: OutreachKind, subject: str, delivery: DeliveryResult
    ) -> None:
        now = self.clock()
        async with self.database.session() as session:
            if delivery.success:
                values: Dict[str, Any] = {"last_contacted_at": now, "updated_at": now}
                if kind is OutreachKind.INITIAL:
                    values["status"] = LeadStatus.CONTACTED
                await session.execute(
                    update(Lead)
                    .where(Lead.id == lead.id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                await insert_ignore(
                    session,
                    OutreachEvent,
                    {
                        "lead_id": lead.id,
                        "kind": kind,
                        "subject": subject[:500],
                        "reference": delivery.reference,
                        "sent_at": now,
                    },
                    conflict_columns=["lead_id", "kind"],
                )
                await self.metrics.increment(session=session, emails_sent=1)
            else:
                await session.execute(
                    update(Lead)
                    .where(Lead.id == lead.id)
                    .values(
                        last_delivery_error=(delivery.error or "unknown error")[:2000],
                        last_delivery_attempt_at=now,
                        updated_at=now,
                    )
                    .execution_options(synchronize_session=False)
                )
                await self.metrics.increment(session=session, emails_failed=1)

    async def _send_one(self, lead: Lead, kind: OutreachKind) -> SendOutcome:
        contact = resolve_contact(lead)
        if not contact.mailer_capable:
            logger.warning("Skipping lead: no email contact (method=%s)", contact.method.value)
            return SendOutcome(lead_id=lead.id, kind=kind, success=False, skipped=True,
                               error=f"No mailer-capable contact ({contact.method.value})")

        message = self.renderer.render(kind, lead)
        try:
            delivery = await self.mailer.send(contact.address, message.subject, message.body)
        except Exception as e:
            logger.exception("Mailer raised while sending to %s", contact.address)
            delivery = DeliveryResult(success=False, error=str(e))

        await self._record_outcome(lead, kind, message.subject, delivery)

        if delivery.success:
            logger.info("Sent %s email to %s", kind.value, contact.address)
        else:
            logger.warning("Failed %s email to %s: %s", kind.value, contact.address, delivery.error)

        return SendOutcome(
            lead_id=lead.id,
            kind=kind,
            success=delivery.success,
            destination=contact.address,
            reference=delivery.reference,
            error=delivery.error,
        )

    async def _dispatch(
        self, kind: Union[OutreachKind, str], leads: Sequence[Lead]
    ) -> CampaignRunResult:
        """Send one message of ``kind`` to each lead, in order.

        Raises:
            InvalidTemplateKind: Before any send if ``kind`` is unknown.
        """
        kind = parse_kind(kind)
        result = CampaignRunResult()
        for index, lead in enumerate(leads):
            if index and self.settings.send_delay_seconds > 0:
                await asyncio.sleep(self.settings.send_delay_seconds)
            with LogContext(lead_id=lead.id, kind=kind.value):
                result.add(await self._send_one(lead, kind))
        return result

    async def run_daily_campaign(self) -> CampaignRunResult:
        """Send initial messages to the best new leads within today's quota."""
        remaining = await self.remaining_quota()
        if remaining <= 0:
            logger.info("Daily email limit reached. Skipping campaign.")
            return CampaignRunResult(quota_before=remaining)

        leads = await self.eligible_initial(remaining)
        if not leads:
            logger.info("No qualified leads available for outreach")
            return CampaignRunResult(quota_before=remaining)

        logger.info("Starting daily campaign: %d leads, %d quota remaining", len(leads), remaining)
        result = await self._dispatch(OutreachKind.INITIAL, leads)
        result.quota_before = remaining
        logger.info("Daily campaign completed: %d sent, %d failed", result.sent, result.failed)
        return result

    async def run_follow_up_campaign(self) -> CampaignRunResult:
        """Send due follow-ups; follow-up 1 candidates claim the quota first."""
        remaining = await self.remaining_quota()
        combined = CampaignRunResult(quota_before=remaining)
        if remaining <= 0:
            logger.info("Daily email limit reached. Skipping follow-up.")
            return combined

        for kind in (OutreachKind.FOLLOWUP1, OutreachKind.FOLLOWUP2):
            budget = remaining - combined.attempted
            if budget <= 0:
                break
            leads = await self.eligible_followups(kind, limit=budget)
            logger.info("Follow-up candidates (%s): %d", kind.value, len(leads))
            if leads:
                combined.merge(await self._dispatch(kind, leads))

        logger.info(
            "Follow-up campaign completed: %d sent, %d failed", combined.sent, combined.failed
        )
        return combined

    async def run_combined_campaign(self) -> CombinedCampaignResult:
        """Run the daily campaign, then the follow-up campaign."""
        initial = await self.run_daily_campaign()
        follow_up = await self.run_follow_up_campaign()
        return CombinedCampaignResult(initial=initial, follow_up=follow_up)

    async def _require_lead(self, session, lead_id: int) -> Lead:
        lead = await session.get(Lead, lead_id)
        if lead is None:
            raise LeadNotFoundError(lead_id)
        return lead

    async def unsubscribe(self, lead_id: int, email: Optional[str] = None) -> bool:
        """Permanently suppress a lead.

        Returns:
            True if a new marker was written, False if already unsubscribed.

        Raises:
            LeadNotFoundError: If the lead does not exist.
        """
        async with self.database.session() as session:
            lead = await self._require_lead(session, lead_id)
            marker_id = await insert_ignore(
                session,
                Unsubscribe,
                {
                    "lead_id": lead_id,
                    "email": email or lead.email,
                    "unsubscribed_at": self.clock(),
                },
                conflict_columns=["lead_id"],
            )
        created = marker_id is not None
        logger.info("Lead %s unsubscribed (new marker: %s)", lead_id, created)
        return created

    async def mark_converted(self, lead_id: int) -> bool:
        """Move a contacted lead to converted and count the conversion.

        Returns:
            True if the lead was contacted and is now converted.

        Raises:
            LeadNotFoundError: If the lead does not exist.
        """
        async with self.database.session() as session:
            await self._require_lead(session, lead_id)
            result = await session.execute(
                update(Lead)
                .where(Lead.id == lead_id, Lead.status == LeadStatus.CONTACTED)
                .values(status=LeadStatus.CONVERTED, updated_at=self.clock())
                .execution_options(synchronize_session=False)
            )
            converted = result.rowcount == 1
            if converted:
                await self.metrics.increment(session=session, conversions=1)

        if converted:
            logger.info("Lead %s converted", lead_id)
        else:
            logger.warning("Lead %s not converted: not in contacted status", lead_id)
        return converted

    async def record_response(self, lead_id: int) -> None:
        """Count a reply from a lead.

        Raises:
            LeadNotFoundError: If the lead does not exist.
        """
        async with self.database.session() as session:
            await self._require_lead(session, lead_id)
            await self.metrics.increment(session=session, responses_received=1)
        logger.info("Response recorded for lead %s", lead_id)

    async def lead_stats(self) -> LeadStats:
        """Count leads per status, suppressions and today's sent messages."""
        now = self.clock()
        day_start = datetime(now.year, now.month, now.day)
        day_end = day_start + timedelta(days=1)

        async with self.database.session() as session:
            row = (
                await session.execute(
                    select(
                        func.count(Lead.id),
                        func.count(Lead.id).filter(Lead.has_website.is_(False)),
                        func.count(Lead.id).filter(Lead.status == LeadStatus.NEW),
                        func.count(Lead.id).filter(Lead.status == LeadStatus.CONTACTED),
                        func.count(Lead.id).filter(Lead.status == LeadStatus.CONVERTED),
                    )
                )
            ).one()
            unsubscribed = await session.scalar(select(func.count(Unsubscribe.id)))
            sent_today = await session.scalar(
                select(func.count(OutreachEvent.id)).where(
                    OutreachEvent.sent_at >= day_start, OutreachEvent.sent_at < day_end
                )
            )

        return LeadStats(
            total=row[0],
            without_website=row[1],
            new=row[2],
            contacted=row[3],
            converted=row[4],
            unsubscribed=unsubscribed or 0,
            emails_sent_today=sent_today or 0,
        )
