"""
Email Service

Sends notification emails over SMTP with aiosmtplib. Bodies are rendered
from Jinja2 templates in ``edulog/templates/email`` (``<name>.html`` plus an
optional ``<name>.txt``).
"""

import os
import re
import logging
from typing import Optional, Dict, Any, List
import aiosmtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.mime.base import MIMEBase
from email.utils import make_msgid
from email import encoders
from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"


class EmailServiceConfig:
    """Configuration for email service from environment variables."""

    def __init__(self):
        self.smtp_host = os.getenv('SMTP_HOST', '')
        self.smtp_port = int(os.getenv('SMTP_PORT', '587'))
        self.smtp_username = os.getenv('SMTP_USERNAME', '')
        self.smtp_password = os.getenv('SMTP_PASSWORD', '')
        self.smtp_use_tls = os.getenv('SMTP_USE_TLS', 'true').lower() == 'true'
        self.smtp_use_ssl = os.getenv('SMTP_USE_SSL', 'false').lower() == 'true'
        self.from_email = os.getenv('FROM_EMAIL', 'noreply@aiedulog.com')
        self.from_name = os.getenv('FROM_NAME', 'AIedulog')
        self.reply_to_email = os.getenv('REPLY_TO_EMAIL', 'support@aiedulog.com')
        self.template_dir = os.getenv('EMAIL_TEMPLATE_DIR', str(DEFAULT_TEMPLATE_DIR))

    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_port and self.from_email)

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []
        if not self.smtp_host:
            errors.append("SMTP_HOST is required")
        if not self.smtp_port or self.smtp_port <= 0:
            errors.append("SMTP_PORT must be a positive integer")
        if not self.from_email:
            errors.append("FROM_EMAIL is required")
        if self.smtp_use_ssl and self.smtp_use_tls:
            errors.append("Cannot use both SSL and TLS simultaneously")
        return errors


class EmailService:
    """Service for sending emails via SMTP."""

    def __init__(self, config: Optional[EmailServiceConfig] = None):
        self.config = config or EmailServiceConfig()
        template_path = Path(self.config.template_dir)
        if not template_path.exists():
            logger.warning("Email template directory not found: %s", template_path)
        self.template_env = Environment(
            loader=FileSystemLoader(str(template_path)),
            autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
        )

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
        reply_to: Optional[str] = None,
        attachments: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """
        Send an email via SMTP.

        Attachments are dicts with ``filename``, ``content`` (str or bytes) and
        an optional ``content_type`` (``text/calendar`` for .ics files).

        Returns:
            Dict with 'success', and 'message_id' or 'error'
        """
        if not self.config.is_configured():
            return {
                'success': False,
                'error': 'Email service not configured'
            }

        message = MIMEMultipart('mixed' if attachments else 'alternative')
        message['From'] = f"{self.config.from_name} <{self.config.from_email}>"
        message['To'] = to_email
        message['Subject'] = subject
        message['Message-ID'] = make_msgid(domain=self.config.from_email.split('@')[-1])
        if reply_to or self.config.reply_to_email:
            message['Reply-To'] = reply_to or self.config.reply_to_email

        body = MIMEMultipart('alternative') if attachments else message
        if text_content:
            body.attach(MIMEText(text_content, 'plain', 'utf-8'))
        body.attach(MIMEText(html_content, 'html', 'utf-8'))
        if attachments:
            message.attach(body)
            for attachment in attachments:
                self._add_attachment(message, attachment)

        try:
            result = await self._send_via_smtp(message)
        except (aiosmtplib.SMTPException, OSError) as e:
            error_msg = f"Failed to send email to {to_email}: {e}"
            logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg
            }
        logger.info("Email sent to %s: %s", to_email, subject)
        return result

    async def _send_via_smtp(self, message: MIMEMultipart) -> Dict[str, Any]:
        smtp_kwargs = {
            'hostname': self.config.smtp_host,
            'port': self.config.smtp_port,
            'start_tls': self.config.smtp_use_tls,
        }
        if self.config.smtp_use_ssl:
            smtp_kwargs['start_tls'] = False
            smtp_kwargs['use_tls'] = True

        async with aiosmtplib.SMTP(**smtp_kwargs) as smtp:
            if self.config.smtp_username and self.config.smtp_password:
                await smtp.login(self.config.smtp_username, self.config.smtp_password)
            await smtp.send_message(message)

        return {
            'success': True,
            'message_id': message.get('Message-ID', ''),
        }

    def _add_attachment(self, message: MIMEMultipart, attachment: Dict[str, Any]):
        maintype, _, subtype = attachment.get('content_type', 'application/octet-stream').partition('/')
        content = attachment['content']
        if isinstance(content, str):
            content = content.encode('utf-8')
        part = MIMEBase(maintype, subtype or 'octet-stream')
        part.set_payload(content)
        encoders.encode_base64(part)
        part.add_header('Content-Disposition', 'attachment', filename=attachment['filename'])
        message.attach(part)

    def render_template(self, template_name: str, context: Dict[str, Any]) -> tuple[str, str]:
        """
        Render email template with context.

        Returns:
            Tuple of (html_content, text_content)
        """
        html_content = self.template_env.get_template(f"{template_name}.html").render(**context)
        try:
            text_content = self.template_env.get_template(f"{template_name}.txt").render(**context)
        except TemplateNotFound:
            text_content = self._html_to_text(html_content)
        return html_content, text_content

    def _html_to_text(self, html_content: str) -> str:
        """Convert HTML to basic text content."""
        text = re.sub(r'<(script|style)[^>]*>.*?</\1>', '', html_content, flags=re.S | re.I)
        text = re.sub(r'<br\s*/?>|</p>|</h\d>|</li>', '\n', text, flags=re.I)
        text = re.sub(r'<[^>]+>', '', text)
        text = text.replace('&amp;', '&').replace('&lt;', '<').replace('&gt;', '>')
        text = text.replace('&quot;', '"').replace('&#39;', "'")
        lines = [re.sub(r'[ \t]+', ' ', line).strip() for line in text.splitlines()]
        return '\n'.join(line for line in lines if line)


_email_service = None


def get_email_service() -> EmailService:
    """Get singleton email service instance."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service


def reset_email_service_for_tests() -> None:
    global _email_service
    _email_service = None
