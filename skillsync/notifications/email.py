"""Hire confirmation email via the Resend HTTP API.

Renders templates/hire_notification.html with Jinja2 and posts it with
httpx. Email delivery is an external collaborator: a missing API key
disables the sender, and a failed send is logged and reported as False.

Environment variables:
  RESEND_API_KEY  — API key (disables email when empty)
"""

import logging
from pathlib import Path
from typing import Optional

import httpx
from jinja2 import Environment, FileSystemLoader

from ..config import EmailConfig

logger = logging.getLogger(__name__)

# Template directory
TEMPLATE_DIR = Path(__file__).parent / "templates"


class HireEmailSender:
    """Sends the 'you hired X' confirmation to the client."""

    channel_name = "email"

    def __init__(
        self,
        config: EmailConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self._transport = transport
        self._jinja = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=True,
        )

    @property
    def is_enabled(self) -> bool:
        return self.config.enabled and bool(self.config.api_key)

    def render(
        self,
        client_name: str,
        freelancer_name: str,
        project_title: str,
        bid_amount: Optional[float],
        delivery_days: Optional[int],
    ) -> str:
        template = self._jinja.get_template("hire_notification.html")
        return template.render(
            client_name=client_name,
            freelancer_name=freelancer_name,
            project_title=project_title,
            bid_amount=bid_amount,
            delivery_days=delivery_days,
        )

    async def send_hire_confirmation(
        self,
        client_email: str,
        client_name: str,
        freelancer_name: str,
        project_title: str,
        bid_amount: Optional[float] = None,
        delivery_days: Optional[int] = None,
    ) -> bool:
        """Send the hire confirmation. Returns True on success."""
        if not self.is_enabled:
            logger.info("Email disabled (no API key) — skipping hire confirmation")
            return False

        try:
            html = self.render(
                client_name, freelancer_name, project_title, bid_amount, delivery_days
            )
            subject = (
                f"Great news! {freelancer_name} has been hired for {project_title}"
            )
            async with httpx.AsyncClient(transport=self._transport, timeout=10.0) as client:
                resp = await client.post(
                    self.config.api_url,
                    headers={"Authorization": f"Bearer {self.config.api_key}"},
                    json={
                        "from": self.config.sender,
                        "to": [client_email],
                        "subject": subject,
                        "html": html,
                    },
                )
                resp.raise_for_status()
            logger.info(f"Hire confirmation sent to {client_email}")
            return True
        except Exception as e:
            logger.error(f"Error sending hire notification email: {e}")
            return False
