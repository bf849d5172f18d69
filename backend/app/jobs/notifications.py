"""Welcome email for new users."""

import logging
from email.message import EmailMessage

import aiosmtplib

from app.config import Settings
from app.db.session import Database
from app.errors import TerminalJobError
from app.files.ids import parse_id
from app.jobs.models import WelcomeJob
from app.users.service import get_user_by_id

log = logging.getLogger(__name__)

WELCOME_SUBJECT = "Welcome to Files Manager"


def build_welcome_message(to_email: str, from_email: str) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = from_email
    msg["To"] = to_email
    msg["Subject"] = WELCOME_SUBJECT
    msg.set_content(f"""Hello {to_email},

Welcome to Files Manager. Your account is ready: log in with this address and
start uploading files, folders and images.

Best regards,
Files Manager
""")
    return msg


async def process_welcome_job(job: WelcomeJob, db: Database, settings: Settings) -> None:
    """Send the welcome email. Unknown users are terminal; SMTP failures fail the attempt."""
    if job.user_id is None:
        raise TerminalJobError("Missing userId")
    user_id = parse_id(job.user_id)
    if user_id is None:
        raise TerminalJobError("User not found")
    async with db.session() as session:
        user = await get_user_by_id(session, user_id)
    if user is None:
        raise TerminalJobError("User not found")

    if not settings.smtp_host or not settings.smtp_from:
        log.info("SMTP not configured; welcome email for %s not sent", user.email)
        return
    log.info("Sending welcome email to %s", user.email)
    await aiosmtplib.send(
        build_welcome_message(user.email, settings.smtp_from),
        hostname=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_user or None,
        password=settings.smtp_password or None,
        use_tls=settings.smtp_port == 465,
    )
