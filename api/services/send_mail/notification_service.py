from abc import ABC, abstractmethod
from typing import Any, Dict, Tuple, Union

from common.types import EmailTemplate
from config.settings import Settings, get_settings
from core.exceptions import DeliveryError
from utils.email_utils import render_template, send_mail_async
from utils.logging import get_logger

logger = get_logger(__name__)

TEMPLATES: Dict[EmailTemplate, Tuple[str, str]] = {
    EmailTemplate.ACTIVATION: ("activation.html.j2", "Account activation link"),
    EmailTemplate.RESET: ("reset.html.j2", "Password reset link"),
}


def _resolve(template: Union[EmailTemplate, str]) -> Tuple[EmailTemplate, str, str]:
    try:
        kind = template if isinstance(template, EmailTemplate) else EmailTemplate(template)
    except ValueError as e:
        raise DeliveryError(f"Unknown email template: {template}") from e
    file_name, subject = TEMPLATES[kind]
    return kind, file_name, subject


class NotificationSender(ABC):
    """Delivers a templated email; raises DeliveryError when delivery fails"""

    @abstractmethod
    async def send(
        self,
        template: Union[EmailTemplate, str],
        recipient_email: str,
        variables: Dict[str, Any],
    ) -> None:
        ...


class SmtpNotificationSender(NotificationSender):

    async def send(self, template, recipient_email, variables):
        kind, file_name, subject = _resolve(template)
        await send_mail_async(
            template_name=file_name,
            recipient_email=recipient_email,
            subject=subject,
            context=variables,
        )
        logger.info(f"Notification delivered: {kind.value}")


class ConsoleNotificationSender(NotificationSender):
    """Development sender: renders the email and logs it instead of sending"""

    async def send(self, template, recipient_email, variables):
        kind, file_name, subject = _resolve(template)
        body = render_template(file_name, variables)
        logger.info(
            f"[console email] to={recipient_email} subject={subject!r} "
            f"action_url={variables.get('action_url')}"
        )
        logger.debug(body)


def build_notification_sender(settings: Settings = None) -> NotificationSender:
    settings = settings or get_settings()
    if settings.EMAIL_BACKEND == "console":
        return ConsoleNotificationSender()
    return SmtpNotificationSender()
