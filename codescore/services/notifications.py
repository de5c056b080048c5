"""
Email notifications for the approval workflow (SMTP).
All sends are best-effort: failures are logged and never raised to the caller,
so a lost email never blocks or reverses the state change that triggered it.
"""
import logging
import smtplib
from datetime import datetime
from email.message import EmailMessage
from email.utils import make_msgid
from urllib.parse import urlencode

from codescore.config import Settings, get_settings
from codescore.models.approval_request import ApprovalAction

logger = logging.getLogger(__name__)

DECISION_PATH = "/api/approvals/decide"


def decision_url(base_url: str, token: str, action: ApprovalAction) -> str:
    query = urlencode({"token": token, "action": action.value})
    return f"{base_url.rstrip('/')}{DECISION_PATH}?{query}"


class NotificationDispatcher:
    """Builds and sends workflow emails. With no smtp_host configured, messages are only logged."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def notify_admin_of_request(self, email: str, reason: str, token: str) -> bool:
        approve_url = decision_url(self.settings.public_base_url, token, ApprovalAction.APPROVE)
        deny_url = decision_url(self.settings.public_base_url, token, ApprovalAction.DENY)
        body = f"""Hello,

A new user has requested access to CodeScore:

Email: {email}
Reason: {reason}
Requested: {datetime.utcnow().strftime("%Y-%m-%d %H:%M")} UTC

APPROVE ACCESS: {approve_url}

DENY ACCESS: {deny_url}

Approving creates the account with the password the user chose and adds
them to the approved users list. Each link works once.

CodeScore"""
        return self._send(
            to=self.settings.admin_email,
            subject="CodeScore Access Request - Approval Needed",
            body=body,
        )

    def notify_requester_of_decision(self, email: str, action: ApprovalAction) -> bool:
        if action == ApprovalAction.APPROVE:
            subject = "CodeScore Access Approved"
            body = f"""Hello!

Your access to CodeScore has been approved.
Sign in with your email and the password you chose: {self.settings.frontend_url}

The CodeScore Team"""
        else:
            subject = "CodeScore Access Request"
            body = """Hello,

Your request for access to CodeScore was not approved.

The CodeScore Team"""
        return self._send(to=email, subject=subject, body=body)

    def _send(self, to: str, subject: str, body: str) -> bool:
        if not self.settings.smtp_host:
            logger.info("SMTP not configured; email to %s not sent. Subject: %s\n%s", to, subject, body)
            return False
        try:
            msg = EmailMessage()
            msg["Subject"] = subject
            msg["From"] = self.settings.mail_from
            msg["To"] = to
            msg["Message-ID"] = make_msgid(domain=self.settings.smtp_host)
            msg.set_content(body)
            with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, timeout=10) as smtp:
                if self.settings.smtp_use_tls:
                    smtp.starttls()
                if self.settings.smtp_username and self.settings.smtp_password:
                    smtp.login(self.settings.smtp_username, self.settings.smtp_password)
                smtp.send_message(msg)
            logger.info("Email sent to %s: %s", to, subject)
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("Failed to send email to %s (%s): %s", to, subject, e)
            return False


def get_dispatcher() -> NotificationDispatcher:
    """FastAPI dependency; overridden in tests."""
    return NotificationDispatcher()
