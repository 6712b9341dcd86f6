"""
Transactional email delivery over an HTTP mail API.

The API is expected to accept a JSON body ``{from, to, subject, html}`` with a
bearer token and answer 2xx on acceptance.
"""

import logging
from html import escape
from typing import Optional

import httpx

from loancrm.core.config import Settings
from loancrm.core.errors import NotificationError
from loancrm.schemas.customer_schema import CustomerRecord

logger = logging.getLogger(__name__)

LOGIN_URL = "https://mvassociates.org/login"
WEBSITE_URL = "https://www.mvassociates.org"
CONTACT_EMAIL = "mvassociates.org@gmail.com"
CONTACT_PHONE = "+91 8247675651"


def _mask_email(email: str) -> str:
    name, _, domain = email.partition("@")
    return f"{name[:2]}***@{domain}" if domain else "***"


class NotificationService:
    """Service for sending transactional emails."""

    def __init__(self, settings: Settings, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_url = settings.MAIL_API_URL
        self.api_token = settings.MAIL_API_TOKEN
        self.sender = settings.MAIL_SENDER
        self.timeout = timeout
        self._transport = transport

        if self.api_url and self.api_token:
            logger.info("Mail service initialized successfully")
        else:
            logger.warning(
                "Mail credentials not configured. Set MAIL_API_URL "
                "and MAIL_API_TOKEN environment variables"
            )

    @property
    def configured(self) -> bool:
        return bool(self.api_url and self.api_token)

    async def send_email(self, to: str, subject: str, html: str) -> dict:
        """
        Send an email through the mail API.

        Raises:
            NotificationError: if the service is not configured, the request
                fails, or the API rejects the message
        """
        if not self.configured:
            raise NotificationError("Mail service not configured. Please set MAIL_API_URL and MAIL_API_TOKEN")

        headers = {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        payload = {
            "from": self.sender,
            "to": to,
            "subject": subject,
            "html": html,
        }

        logger.info("Sending email to %s: %s", _mask_email(to), subject)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.api_url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.error("HTTP error sending email: %s", e)
            raise NotificationError("Failed to send email", error=str(e)) from e

        if response.is_success:
            logger.info("Email sent to %s", _mask_email(to))
            try:
                return response.json()
            except ValueError:
                return {"status": response.status_code}

        logger.error("Mail API error: HTTP %s - %s", response.status_code, response.text[:200])
        raise NotificationError("Mail API rejected the message", error=f"HTTP {response.status_code}")

    async def send_registration_confirmation(self, customer: CustomerRecord) -> dict:
        full_name = escape(" ".join(p for p in (customer.firstname, customer.lastname) if p))
        html = f"""
      <td style="font-family: Arial, sans-serif; padding: 15px; background-color: #f9f9f9; border: 1px solid #dddddd;">
      <p style="font-size: 16px; color: #333333;">Dear <strong>{full_name}</strong>,</p>
      <p style="font-size: 16px; color: #333333;">Thank you for registering at MV Associates. We have received your details and will process your loan application shortly.</p>
      <p style="font-size: 16px; color: #333333;">Email: <strong>{escape(customer.email)}</strong></p>
      <p style="font-size: 16px; color: #333333;">Phone: <strong>{escape(customer.phone)}</strong></p>
      <a style="font-size: 16px; color: #1976d2;" href="{LOGIN_URL}">Login Here</a>
      <p style="font-size: 16px; color: #333333;">
      If you have any questions or concerns, feel free to reach out to us using the contact information below.
      </p>
      <hr style="border: none; border-top: 1px solid #eeeeee; margin: 20px 0;">
      <p style="font-size: 14px; color: #555555;">
      Website: <a href="{WEBSITE_URL}" style="color: #1976d2;">www.mvassociates.org</a><br>
      Email: <a href="mailto:{CONTACT_EMAIL}" style="color: #1976d2;">{CONTACT_EMAIL}</a><br>
      Phone: {CONTACT_PHONE}
      </p>
      <p style="font-size: 14px; color: #555555;">Thank you for choosing <strong>MV Associates</strong>. We appreciate your trust in our services.</p>
      </td>"""
        return await self.send_email(
            customer.email,
            "Welcome to MV Associates - Registration Successful",
            html,
        )

    async def send_password_reset_otp(self, email: str, otp: str, ttl_minutes: int) -> dict:
        html = (
            f"<p>Your OTP is: <b>{escape(otp)}</b></p>"
            f"<p>It expires in {ttl_minutes} minutes.</p>"
        )
        return await self.send_email(email, "Your OTP for password reset", html)
