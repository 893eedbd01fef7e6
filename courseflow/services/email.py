import logging
import os
from datetime import datetime

from jinja2 import Environment, FileSystemLoader, select_autoescape
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail, To

from courseflow.core.config import settings
from courseflow.services.otp import OTP_REQUESTED_EVENT
from courseflow.utils.events import event_bus
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)


class EmailService:
    _template_env = None

    @classmethod
    def _get_template_env(cls):
        if cls._template_env is None:
            template_dir = os.path.join(
                os.path.dirname(os.path.abspath(__file__)),
                '..',
                'templates'
            )
            cls._template_env = Environment(
                loader=FileSystemLoader(template_dir),
                autoescape=select_autoescape(['html']),
            )
        return cls._template_env

    @classmethod
    def render_template(cls, template_name: str, context: dict) -> str:
        default_context = {
            'company_name': settings.PROJECT_NAME,
            'current_year': datetime.now().year,
            **context
        }
        return cls._get_template_env().get_template(template_name).render(**default_context)

    @classmethod
    def is_configured(cls) -> bool:
        return bool(settings.SENDGRID_API_KEY)

    @classmethod
    def send_via_sendgrid(cls, to_email: str, subject: str, template_name: str, template_context: dict):
        html_content = cls.render_template(template_name, template_context)
        message = Mail(
            from_email=f"{settings.EMAILS_FROM_NAME} <{settings.EMAILS_FROM_EMAIL}>",
            to_emails=To(to_email),
            subject=subject,
            html_content=html_content
        )
        response = SendGridAPIClient(settings.SENDGRID_API_KEY).send(message)
        if response.status_code not in (200, 201, 202):
            raise RuntimeError(f"SendGrid API error: {response.status_code}")
        logger.info(f"Email '{subject}' sent to {to_email}")


async def handle_password_reset_otp(data: dict):
    if not EmailService.is_configured():
        logger.warning(f"No email transport configured; reset code for {data['email']} was not delivered")
        return
    await run_in_threadpool(
        EmailService.send_via_sendgrid,
        data["email"],
        "Your password reset code",
        "password_reset_otp.html",
        {"code": data["code"], "expires_in_minutes": data["expires_in_minutes"]},
    )


def register_email_handlers():
    event_bus.subscribe(OTP_REQUESTED_EVENT, handle_password_reset_otp)
