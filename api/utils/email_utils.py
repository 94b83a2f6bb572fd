"""
Email rendering (Jinja2) and SMTP delivery
"""
import asyncio
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from config.settings import get_settings
from core.exceptions import DeliveryError
from utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "services" / "send_mail" / "templates"


@lru_cache(maxsize=4)
def _template_env(templates_dir: str) -> Environment:
    return Environment(
        loader=FileSystemLoader(templates_dir),
        autoescape=select_autoescape(["html", "j2"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_template(template_name: str, context: Dict[str, Any], templates_dir: Optional[str] = None) -> str:
    settings = get_settings()
    directory = templates_dir or settings.EMAIL_TEMPLATES_DIR or str(DEFAULT_TEMPLATES_DIR)
    env = _template_env(directory)
    template = env.get_template(template_name)
    return template.render(app_name=settings.APP_NAME, **context)


def build_message(recipient_email: str, subject: str, html_body: str) -> EmailMessage:
    settings = get_settings()
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = formataddr((settings.EMAIL_FROM_NAME, settings.EMAIL_FROM))
    message["To"] = recipient_email
    message.set_content("This message requires an HTML capable email client.")
    message.add_alternative(html_body, subtype="html")
    return message


def _send_smtp(message: EmailMessage) -> None:
    settings = get_settings()
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT) as smtp:
        if settings.SMTP_TLS:
            smtp.starttls()
        if settings.SMTP_USER and settings.SMTP_PASS:
            smtp.login(settings.SMTP_USER, settings.SMTP_PASS)
        smtp.send_message(message)


async def send_mail_async(
    template_name: str,
    recipient_email: str,
    subject: str,
    context: Dict[str, Any],
) -> None:
    """Render template and deliver it over SMTP; DeliveryError on any failure"""
    try:
        html_body = render_template(template_name, context)
    except TemplateNotFound as e:
        logger.error(f"Email template not found: {template_name}")
        raise DeliveryError(f"Email template {template_name} not found") from e

    message = build_message(recipient_email, subject, html_body)
    try:
        await asyncio.to_thread(_send_smtp, message)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"SMTP delivery failed ({template_name}): {e}")
        raise DeliveryError("Email delivery failed") from e

    logger.info(f"Email sent: template={template_name}")
