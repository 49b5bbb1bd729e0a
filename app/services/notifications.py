"""Best-effort email notifications for the access-request workflow.

Delivery goes through a transport: a JSON webhook (httpx) when NOTIFY_WEBHOOK_URL
is set, otherwise the message is only written to the log. Dispatch never
raises; a failed notification is logged and reported as False.
"""

import logging
from dataclasses import dataclass
from html import escape
from typing import TYPE_CHECKING, Protocol

import httpx

from app.models import AccessRequest, UserRole

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

ROLE_LABELS = {
    UserRole.ADMIN.value: "Administrator",
    UserRole.SECRETARY.value: "Secretary",
}


@dataclass(frozen=True)
class EmailMessage:
    to: list[str]
    subject: str
    body: str
    kind: str = "notification"


class EmailTransport(Protocol):
    def send(self, message: EmailMessage) -> None: ...


class LogTransport:
    """Writes the message to the log instead of delivering it."""

    def send(self, message: EmailMessage) -> None:
        logger.info(
            "Email not delivered (no transport configured)",
            extra={"to": message.to, "subject": message.subject, "kind": message.kind},
        )


class WebhookTransport:
    """POSTs the message as JSON to a mail relay endpoint."""

    def __init__(
        self,
        url: str,
        sender: str,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.url = url
        self.sender = sender
        self.timeout = timeout
        self._client = client

    def send(self, message: EmailMessage) -> None:
        payload = {
            "from": self.sender,
            "to": message.to,
            "subject": message.subject,
            "html": message.body,
            "kind": message.kind,
        }
        if self._client is not None:
            resp = self._client.post(self.url, json=payload, timeout=self.timeout)
        else:
            with httpx.Client() as client:
                resp = client.post(self.url, json=payload, timeout=self.timeout)
        resp.raise_for_status()


def _role_label(role: object) -> str:
    value = getattr(role, "value", role)
    return ROLE_LABELS.get(str(value), str(value))


class Notifier:
    """Composes workflow emails and hands them to a transport."""

    def __init__(
        self,
        transport: EmailTransport,
        admin_emails: list[str] | None = None,
        frontend_url: str = "http://localhost:5173",
        enabled: bool = True,
    ) -> None:
        self.transport = transport
        self.admin_emails = list(admin_emails or [])
        self.frontend_url = frontend_url.rstrip("/")
        self.enabled = enabled

    @classmethod
    def from_settings(cls, settings: "Settings") -> "Notifier":
        transport: EmailTransport
        if settings.NOTIFY_WEBHOOK_URL:
            transport = WebhookTransport(
                settings.NOTIFY_WEBHOOK_URL,
                sender=settings.NOTIFY_FROM,
                timeout=settings.NOTIFY_TIMEOUT_SEC,
            )
        else:
            transport = LogTransport()
        return cls(
            transport,
            admin_emails=settings.admin_notification_emails,
            frontend_url=settings.FRONTEND_URL,
            enabled=settings.NOTIFY_ENABLED,
        )

    def _dispatch(self, message: EmailMessage) -> bool:
        if not self.enabled or not message.to:
            return False
        try:
            self.transport.send(message)
        except Exception as e:
            logger.warning(
                "Notification failed; continuing without it",
                extra={"kind": message.kind, "to": message.to, "error": str(e)[:500]},
            )
            return False
        logger.info("Notification sent", extra={"kind": message.kind, "to": message.to})
        return True

    def new_request(self, request: AccessRequest) -> bool:
        """Tell administrators that a request is waiting for review."""
        body = (
            "<h2>New access request</h2>"
            f"<p><strong>Name:</strong> {escape(request.name)}<br>"
            f"<strong>Email:</strong> {escape(request.email)}<br>"
            f"<strong>Requested role:</strong> {_role_label(request.role)}</p>"
            f'<p><a href="{self.frontend_url}/admin/access-requests">Review requests</a></p>'
        )
        return self._dispatch(
            EmailMessage(
                to=self.admin_emails,
                subject="New access request",
                body=body,
                kind="new_request",
            )
        )

    def approved(self, request: AccessRequest) -> bool:
        """Welcome the applicant whose request was approved."""
        body = (
            "<h2>Your access request was approved</h2>"
            f"<p>Hello {escape(request.name)},</p>"
            "<p>Your account is ready. You can now sign in with the credentials "
            "you provided.</p>"
            f"<p><strong>Email:</strong> {escape(request.email)}<br>"
            f"<strong>Role:</strong> {_role_label(request.role)}</p>"
            f'<p><a href="{self.frontend_url}/login">Sign in</a></p>'
        )
        return self._dispatch(
            EmailMessage(
                to=[request.email],
                subject="Access request approved",
                body=body,
                kind="approval",
            )
        )

    def rejected(self, request: AccessRequest) -> bool:
        body = (
            "<h2>About your access request</h2>"
            f"<p>Hello {escape(request.name)},</p>"
            "<p>Your access request was not approved.</p>"
            f"<p><strong>Reason:</strong> {escape(request.rejection_reason or '')}</p>"
            "<p>If you think this is a mistake, please contact the office administrator.</p>"
        )
        return self._dispatch(
            EmailMessage(
                to=[request.email],
                subject="Access request update",
                body=body,
                kind="rejection",
            )
        )
