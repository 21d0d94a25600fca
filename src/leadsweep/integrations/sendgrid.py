"""SendGrid mailer for outreach messages.

The mailer sends one plain-text message per call and reports the outcome in
a ``DeliveryResult``. It never raises: invalid addresses, non-2xx responses
and transport errors all come back as failed results.

Usage:
    >>> mailer = SendGridMailer(from_email="hello@studio.example")
    >>> result = await mailer.send("owner@cafe.example", "Hello", "Body")
    >>> print(result.success, result.reference)
"""

import asyncio
import logging
import os
from typing import Any, Optional

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Content, Email, Mail, To

from ..errors import DeliveryError
from ..utils.validators import is_valid_email
from .base import DeliveryResult

logger = logging.getLogger(__name__)

SUCCESS_STATUS_CODES = (200, 201, 202)


class SendGridMailer:
    """Mailer backed by the SendGrid v3 Mail Send API.

    Attributes:
        api_key: SendGrid API key.
        from_email: Sender address.
        from_name: Sender display name.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        client: Optional[SendGridAPIClient] = None,
    ) -> None:
        """Initialize SendGrid mailer.

        Args:
            api_key: SendGrid API key. Defaults to SENDGRID_API_KEY env var.
            from_email: Sender email. Defaults to SENDGRID_FROM_EMAIL env var.
            from_name: Sender name. Defaults to SENDGRID_FROM_NAME env var.
            client: Pre-built API client, mainly for tests.

        Raises:
            ValueError: If API key is not provided.
        """
        self.api_key = api_key or os.environ.get("SENDGRID_API_KEY")
        if client is None and not self.api_key:
            raise ValueError(
                "SendGrid API key required. Set SENDGRID_API_KEY environment "
                "variable or pass api_key parameter."
            )

        self.from_email = from_email or os.environ.get("SENDGRID_FROM_EMAIL", "")
        self.from_name = from_name or os.environ.get("SENDGRID_FROM_NAME")
        self._client = client or SendGridAPIClient(api_key=self.api_key)
        logger.info(
            "SendGridMailer initialized (from_email=%s)",
            self.from_email or "not set",
        )

    def _build_mail(self, destination: str, subject: str, body: str) -> Mail:
        return Mail(
            from_email=Email(self.from_email, self.from_name),
            to_emails=To(destination),
            subject=subject,
            plain_text_content=Content("text/plain", body),
        )

    def _deliver(self, mail: Mail) -> Any:
        """Send synchronously and raise DeliveryError on a non-2xx status."""
        response = self._client.send(mail)
        if response.status_code not in SUCCESS_STATUS_CODES:
            raise DeliveryError(
                f"SendGrid returned status code {response.status_code}",
                status_code=response.status_code,
            )
        return response

    async def send(self, destination: str, subject: str, body: str) -> DeliveryResult:
        """Send one plain-text message.

        Args:
            destination: Recipient email address.
            subject: Subject line.
            body: Plain-text body.

        Returns:
            DeliveryResult with the X-Message-Id as reference on success.
        """
        if not is_valid_email(destination):
            logger.warning("Skipping send: invalid email address %r", destination)
            return DeliveryResult(success=False, error=f"Invalid email address: {destination}")

        try:
            mail = self._build_mail(destination.strip(), subject, body)
            response = await asyncio.get_running_loop().run_in_executor(None, self._deliver, mail)
        except DeliveryError as e:
            logger.error("SendGrid rejected message to %s: %s", destination, e)
            return DeliveryResult(success=False, error=str(e))
        except Exception as e:
            # python_http_client raises HTTPError subclasses for 4xx/5xx
            logger.error("Failed to send email to %s: %s", destination, e)
            return DeliveryResult(success=False, error=str(e))

        message_id = None
        if hasattr(response, "headers") and response.headers:
            message_id = response.headers.get("X-Message-Id")

        logger.info("Email sent: to=%s, message_id=%s", destination, message_id)
        return DeliveryResult(success=True, reference=message_id)
