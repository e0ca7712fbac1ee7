# app/utils/email_service.py

import asyncio
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any, Dict

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from jinja2 import Environment, FileSystemLoader

from app.core.config import settings
from app.utils.logger import get_logger

logger = get_logger(__name__)


class DeliveryError(Exception):
    """Raised when an email could not be handed to the mail provider."""


class EmailService:
    """
    A centralized service for sending emails via Amazon SES,
    with support for Jinja2 templating.
    """
    def __init__(self):
        self.sender = settings.aws_ses_sender_email
        self._ses_client = None

        # Initialize Jinja2 environment for email templates
        template_path = Path(__file__).parent.parent / "templates" / "emails"
        self.jinja_env = Environment(loader=FileSystemLoader(template_path), autoescape=True)

    @property
    def ses_client(self):
        if self._ses_client is None:
            self._ses_client = boto3.client(
                "ses",
                aws_access_key_id=settings.aws_access_key_id,
                aws_secret_access_key=settings.aws_secret_access_key,
                region_name=settings.aws_region,
            )
        return self._ses_client

    def render_template(self, template_name: str, context: Dict[str, Any]) -> str:
        """Render an HTML email template using Jinja2."""
        try:
            template = self.jinja_env.get_template(template_name)
            return template.render(context)
        except Exception as e:
            logger.error("Error rendering email template", template=template_name, error_message=str(e))
            raise

    async def send_email(self, to_email: str, subject: str, html_body: str) -> None:
        """
        Sends one HTML email. The synchronous boto3 call runs in a worker
        thread so concurrent sends do not block the event loop.

        Raises:
            DeliveryError: If sending is not configured or SES rejects the message
        """
        if not self.sender:
            raise DeliveryError("Email sending is disabled: AWS_SES_SENDER_EMAIL is not configured")

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to_email
        msg.attach(MIMEText(html_body, "html"))

        kwargs = {
            "Source": self.sender,
            "Destinations": [to_email],
            "RawMessage": {"Data": msg.as_string()},
        }
        if settings.aws_ses_configuration_set:
            kwargs["ConfigurationSetName"] = settings.aws_ses_configuration_set

        try:
            await asyncio.to_thread(self.ses_client.send_raw_email, **kwargs)
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to send email", subject=subject, to=to_email, error_message=str(e))
            raise DeliveryError(str(e)) from e
        logger.info("Email sent successfully", subject=subject, to=to_email)

    async def send_templated_email(
        self,
        *,
        to_email: str,
        subject: str,
        template_name: str,
        context: Dict[str, Any],
    ) -> None:
        """
        Renders an email from a template and sends it.

        Args:
            to_email (str): Recipient email address.
            subject (str): Subject of the email.
            template_name (str): Name of the Jinja2 template file.
            context (Dict[str, Any]): Context variables for rendering the template.
        """
        html_body = self.render_template(template_name, context)
        await self.send_email(to_email, subject, html_body)


# Create a single, reusable instance of the service
email_service = EmailService()


def get_email_service() -> EmailService:
    """Dependency returning the shared email service"""
    return email_service
