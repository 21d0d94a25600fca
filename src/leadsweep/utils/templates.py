"""Plain-text outreach templates with personalization tokens.

Initial messages are chosen by business category; follow-ups use fixed
templates. Templates carry ``{{token}}`` placeholders that are filled from
the renderer's offer settings and the lead being contacted.

Usage:
    >>> renderer = MessageRenderer(sender_name="Priya", location="Austin, Texas")
    >>> message = renderer.render(OutreachKind.INITIAL, lead)
    >>> print(message.subject)
    Help More Diners Find Blue Door Cafe Online
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from ..errors import InvalidTemplateKind
from ..models.outreach import OutreachKind


@dataclass(frozen=True)
class MessageTemplate:
    """Subject and body with ``{{token}}`` placeholders."""

    subject: str
    body: str


@dataclass
class RenderedMessage:
    """Message ready to hand to a mailer."""

    kind: OutreachKind
    subject: str
    body: str

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "subject": self.subject, "body": self.body}


RESTAURANT_TEMPLATE = MessageTemplate(
    subject="Help More Diners Find {{business_name}} Online",
    body="""Dear {{business_name}} Team,

I noticed your restaurant while searching for local businesses in {{location}}, and I see you don't currently have a website.

Most diners search online before visiting a restaurant. Without a website, you might be missing out on potential customers.

I'd like to offer you a complete website solution for just {{currency}} {{price}}:

- Professional, mobile-responsive website
- Menu showcase with photos
- Contact & location information
- Online inquiry form
- Domain & hosting setup
- 6 months FREE maintenance & support

Would you be interested in a quick 10-minute call to discuss how we can help {{business_name}} reach more customers?

Best regards,
{{sender_name}}
{{phone}}

P.S. Limited slots available this month. Reply with "INTERESTED" to learn more.

---
If you'd like to unsubscribe, reply to: {{unsubscribe_link}}
""",
)

RETAIL_TEMPLATE = MessageTemplate(
    subject="Expand {{business_name}}'s Customer Reach with a Professional Website",
    body="""Dear {{business_name}} Team,

I came across your store in {{location}} and noticed you don't have a website yet.

Most shoppers research online before buying locally. A website can significantly increase your store's visibility and customer base.

What you get ({{currency}} {{price}} one-time):
- Custom-designed professional website
- Product/service showcase
- Mobile-friendly design
- Contact forms & Google Maps integration
- Basic SEO setup
- 6 months of support included

Can we schedule a brief call to discuss how a website can help {{business_name}} grow?

Best regards,
{{sender_name}}
{{phone}}

Reply "YES" to get started or ask any questions.

---
Unsubscribe: {{unsubscribe_link}}
""",
)

SERVICES_TEMPLATE = MessageTemplate(
    subject="Build Trust & Credibility for {{business_name}} with a Professional Website",
    body="""Dear {{business_name}},

I discovered your business while researching service providers in {{location}}. I noticed you're not online yet, which could be limiting your growth.

Most customers check a business's website before contacting them. Without one, potential clients may choose competitors instead.

Complete package ({{currency}} {{price}}):
- Professional website with service descriptions
- Contact forms & online inquiry system
- Testimonials & portfolio section
- Mobile-optimized design
- SEO basics to appear in local searches
- 6 months maintenance included

Would you be open to a quick 10-minute discussion about taking {{business_name}} online?

Best regards,
{{sender_name}}
{{phone}}

---
To unsubscribe: {{unsubscribe_link}}
""",
)

DEFAULT_TEMPLATE = MessageTemplate(
    subject="Professional Website for {{business_name}} - {{currency}} {{price}} All-Inclusive",
    body="""Dear {{business_name}} Team,

I noticed your business in {{location}} and wanted to reach out with an opportunity.

Having a professional website is essential for business growth. I help local businesses like yours establish their online presence affordably.

Complete website package ({{currency}} {{price}}):
- Custom-designed professional website
- Mobile-responsive & fast-loading
- Contact forms & business information
- Domain setup & deployment
- Basic SEO optimization
- 6 months of support & maintenance

This is a one-time investment with no recurring fees. You own everything.

Can we schedule a brief 10-minute call to discuss how a website can benefit {{business_name}}?

Best regards,
{{sender_name}}
{{phone}}

Reply "YES" to learn more or ask any questions.

---
Unsubscribe from future emails: {{unsubscribe_link}}
""",
)

FOLLOWUP1_TEMPLATE = MessageTemplate(
    subject="Following up: Website for {{business_name}}",
    body="""Hi {{business_name}} Team,

I sent you an email a few days ago about creating a professional website for your business.

I understand you're busy running your business. That's exactly why having a website helps: it works for you 24/7, bringing in new customers even when you're focused on other things.

Quick recap of what you get for {{currency}} {{price}}:
- Complete website development
- Mobile-friendly design
- 6 months free support
- One-time payment, no hidden fees

Would you have 10 minutes this week for a quick call?

Best regards,
{{sender_name}}
{{phone}}

---
Unsubscribe: {{unsubscribe_link}}
""",
)

FOLLOWUP2_TEMPLATE = MessageTemplate(
    subject="Last call: Website opportunity for {{business_name}}",
    body="""Hi {{business_name}},

This is my final follow-up regarding a website for your business.

I wanted to give you one last opportunity to take advantage of our {{currency}} {{price}} all-inclusive website package before we close this month's slots.

If you're not interested, no problem. I won't contact you again.

If you'd like to discuss how a website can help your business grow, simply reply "INTERESTED" and I'll get back to you right away.

Best regards,
{{sender_name}}
{{phone}}

---
Unsubscribe: {{unsubscribe_link}}
""",
)

# (category keywords, template), first match wins
CATEGORY_TEMPLATES = (
    (("restaurant", "cafe", "food"), RESTAURANT_TEMPLATE),
    (("retail", "shop", "store"), RETAIL_TEMPLATE),
    (("service", "repair", "consulting"), SERVICES_TEMPLATE),
)

FOLLOWUP_TEMPLATES = {
    OutreachKind.FOLLOWUP1: FOLLOWUP1_TEMPLATE,
    OutreachKind.FOLLOWUP2: FOLLOWUP2_TEMPLATE,
}


def parse_kind(kind: Union[OutreachKind, str]) -> OutreachKind:
    """Convert a kind name to OutreachKind.

    Raises:
        InvalidTemplateKind: If the kind is not a known outreach kind.
    """
    if isinstance(kind, OutreachKind):
        return kind
    try:
        return OutreachKind(kind)
    except ValueError:
        raise InvalidTemplateKind(kind) from None


def template_for_category(category: Optional[str]) -> MessageTemplate:
    """Get the initial-message template matching a business category."""
    category_lower = (category or "").lower()
    for keywords, template in CATEGORY_TEMPLATES:
        if any(keyword in category_lower for keyword in keywords):
            return template
    return DEFAULT_TEMPLATE


def get_template(kind: Union[OutreachKind, str], category: Optional[str] = None) -> MessageTemplate:
    """Get the template for an outreach kind.

    Raises:
        InvalidTemplateKind: If the kind is not a known outreach kind.
    """
    kind = parse_kind(kind)
    if kind is OutreachKind.INITIAL:
        return template_for_category(category)
    return FOLLOWUP_TEMPLATES[kind]


def _replace_tokens(text: str, tokens: Dict[str, str]) -> str:
    result = text
    for token_name, token_value in tokens.items():
        result = result.replace("{{" + token_name + "}}", token_value)
    return result


class MessageRenderer:
    """Render outreach messages for leads.

    Args:
        sender_name: Signature name.
        location: Search location mentioned in initial messages.
        price: Offer price.
        currency: Currency code printed before the price.
        phone: Sender phone number for the signature.
        unsubscribe_email: Address recipients reply to in order to opt out.
    """

    def __init__(
        self,
        sender_name: str = "Web Development Services",
        location: str = "",
        price: int = 15000,
        currency: str = "INR",
        phone: str = "",
        unsubscribe_email: str = "",
    ) -> None:
        self.sender_name = sender_name
        self.location = location
        self.price = price
        self.currency = currency
        self.phone = phone
        self.unsubscribe_email = unsubscribe_email

    def unsubscribe_link(self, lead: Any) -> str:
        if not self.unsubscribe_email:
            return ""
        return f"mailto:{self.unsubscribe_email}?subject=Unsubscribe%20{lead.id}"

    def tokens(self, lead: Any) -> Dict[str, str]:
        return {
            "business_name": lead.name,
            "location": self.location or "your area",
            "price": f"{self.price:,}",
            "currency": self.currency,
            "sender_name": self.sender_name,
            "phone": self.phone or "",
            "unsubscribe_link": self.unsubscribe_link(lead),
        }

    def render(self, kind: Union[OutreachKind, str], lead: Any) -> RenderedMessage:
        """Render the subject and body of one message.

        Args:
            kind: Outreach kind (initial, followup1, followup2).
            lead: Lead exposing id, name and category.

        Raises:
            InvalidTemplateKind: If the kind has no template.
        """
        kind = parse_kind(kind)
        template = get_template(kind, lead.category)
        tokens = self.tokens(lead)
        return RenderedMessage(
            kind=kind,
            subject=_replace_tokens(template.subject, tokens),
            body=_replace_tokens(template.body, tokens),
        )
