"""
Email Service for GDGoC Certificates
====================================
Sends the "your certificate is ready" notification over SMTP.

One instance is built at startup and injected where needed; nothing here
raises to the caller for delivery problems - send methods report success as
a bool and log the reason for a failure.
"""

import html
import re
from dataclasses import dataclass, asdict
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Dict, Optional
from urllib.parse import quote

import aiosmtplib
from fastapi import Request

from gdgoc_certs.core.config import Settings
from gdgoc_certs.core.logging_config import logger

_placeholder_re = re.compile(r"\{\{\s*([a-z_]+)\s*\}\}")


@dataclass
class CertificateEmail:
    """Values available to email templates as {{name}} placeholders"""
    recipient_name: str
    event_name: str
    event_type: str
    unique_id: str
    validation_url: str
    issuer_name: str
    org_name: str
    issue_date: str
    pdf_url: str = ""


def render_template(template_html: str, variables: Dict[str, str]) -> str:
    """Replace known {{placeholders}} with HTML-escaped values; leave others untouched"""

    def substitute(match: re.Match) -> str:
        key = match.group(1)
        if key not in variables:
            return match.group(0)
        return html.escape(variables[key] or "", quote=True)

    return _placeholder_re.sub(substitute, template_html)


class EmailService:
    """Async email service using SMTP"""

    def __init__(self, settings: Settings):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.start_tls = settings.SMTP_START_TLS
        self.from_email = settings.EMAIL_FROM
        self.from_name = settings.EMAIL_FROM_NAME
        self.public_hostname = settings.PUBLIC_HOSTNAME
        self.timeout = settings.EMAIL_SEND_TIMEOUT_SECONDS

    @property
    def is_configured(self) -> bool:
        """Check if email service is properly configured"""
        return bool(self.smtp_user and self.smtp_password)

    def validation_url(self, unique_id: str) -> str:
        return f"https://{self.public_hostname}/?cert={quote(unique_id, safe='')}"

    async def verify_connection(self) -> bool:
        """Log in to the SMTP server once; used at startup, never fatal"""
        if not self.is_configured:
            logger.warning("[Email] Email service not configured (SMTP credentials missing)")
            return False
        try:
            smtp = aiosmtplib.SMTP(
                hostname=self.smtp_host,
                port=self.smtp_port,
                start_tls=self.start_tls,
                timeout=self.timeout,
            )
            await smtp.connect()
            await smtp.login(self.smtp_user, self.smtp_password)
            await smtp.quit()
            logger.info("[Email] Email service is ready")
            return True
        except Exception as e:
            logger.error(f"[Email] Email service verification failed: {e}")
            return False

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """
        Send an email asynchronously.

        Returns True if successful, False otherwise.
        """
        if not self.is_configured:
            logger.warning("[Email] Email service not configured, skipping email send")
            return False

        try:
            message = MIMEMultipart("alternative")
            message["From"] = f"{self.from_name} <{self.from_email}>"
            message["To"] = to_email
            message["Subject"] = subject

            # Plain text first so clients prefer the HTML part
            if text_content:
                message.attach(MIMEText(text_content, "plain"))
            message.attach(MIMEText(html_content, "html"))

            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                start_tls=self.start_tls,
                timeout=self.timeout,
            )

            logger.info(f"[Email/SMTP] Successfully sent email to {to_email}: {subject}")
            return True

        except Exception as e:
            logger.error(f"[Email/SMTP] Failed to send email to {to_email}: {e}")
            return False

    async def send_certificate_email(
        self,
        to_email: str,
        variables: CertificateEmail,
        template_html: str
    ) -> bool:
        """Render the certificate notification and send it"""
        html_content = render_template(template_html, asdict(variables))
        text_content = (
            f"Congratulations {variables.recipient_name}! "
            f"Your certificate for {variables.event_name} has been generated. "
            f"Certificate ID: {variables.unique_id}. "
            f"Validate at: {variables.validation_url}"
        )
        return await self.send_email(
            to_email=to_email,
            subject=f"Your Certificate for {variables.event_name}",
            html_content=html_content,
            text_content=text_content,
        )


def get_email_service(request: Request) -> EmailService:
    return request.app.state.email_service
