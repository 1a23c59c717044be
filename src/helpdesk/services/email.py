"""SMTP notifications sent to ticket submitters."""
from __future__ import annotations

import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from html import escape

import aiosmtplib

from helpdesk.core.settings import Settings, settings
from helpdesk.models.ticket import Ticket, TicketUpdate

logger = logging.getLogger(__name__)

_FOOTER = "This is an automated message, please do not reply directly to this email."


def _category_label(category: str) -> str:
    return category.replace("_", " ").title()


def _wrap_html(title: str, body: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;'
        ' padding: 20px; border: 1px solid #e0e0e0; border-radius: 5px;">'
        f'<h2 style="color: #2196f3; border-bottom: 1px solid #eee;'
        f' padding-bottom: 10px;">{escape(title)}</h2>'
        f"{body}"
        '<div style="margin-top: 30px; padding-top: 15px; border-top: 1px solid #eee;'
        f' font-size: 12px; color: #777;"><p>{_FOOTER}</p></div>'
        "</div>"
    )


class EmailService:
    """Send multipart (HTML + text) mail through the configured SMTP relay.

    Every public method returns ``True`` on success and ``False`` otherwise;
    none of them raise. Callers run them as background tasks after the
    response has been produced, so a mail outage never fails a request.
    """

    def __init__(self, config: Settings | None = None) -> None:
        self.config = config or settings

    @property
    def enabled(self) -> bool:
        return self.config.email_configured

    def build_message(self, to: str, subject: str, body_html: str, body_text: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = formataddr(
            (self.config.sender_name, self.config.effective_sender_email or "")
        )
        msg["To"] = to
        msg.attach(MIMEText(body_text, "plain", "utf-8"))
        msg.attach(MIMEText(body_html, "html", "utf-8"))
        return msg

    async def send_email(self, to: str, subject: str, body_html: str, body_text: str) -> bool:
        """Deliver one message, logging and swallowing any failure."""
        if not self.enabled:
            logger.info("email_skipped", extra={"to": to, "subject": subject})
            return False

        msg = self.build_message(to, subject, body_html, body_text)
        # Port 465 speaks implicit TLS; anything else upgrades with STARTTLS.
        implicit_tls = self.config.smtp_port == 465
        try:
            await aiosmtplib.send(
                msg,
                hostname=self.config.smtp_host,
                port=self.config.smtp_port,
                username=self.config.smtp_user,
                password=self.config.smtp_password,
                use_tls=implicit_tls,
                start_tls=self.config.smtp_use_tls and not implicit_tls,
                timeout=self.config.smtp_timeout_seconds,
            )
        except Exception:
            logger.exception("email_send_failed", extra={"to": to, "subject": subject})
            return False

        logger.info("email_sent", extra={"to": to, "subject": subject})
        return True

    async def send_ticket_confirmation(self, ticket: Ticket) -> bool:
        """Acknowledge a new ticket and hand the submitter its tracking id."""
        label = _category_label(ticket.category)
        subject = f"Ticket {ticket.tracking_id} Received - {label}"
        body_html = _wrap_html(
            "Ticket Confirmation",
            f"<p>Dear {escape(ticket.name)},</p>"
            "<p>Your ticket has been received and is being processed. Here are the details:</p>"
            '<div style="background-color: #f5f5f5; padding: 15px; border-radius: 5px;">'
            f"<p><strong>Tracking ID:</strong> {escape(ticket.tracking_id or '')}</p>"
            f"<p><strong>Category:</strong> {escape(label)}</p>"
            f"<p><strong>Priority:</strong> {escape(ticket.priority)}</p>"
            f"<p><strong>Status:</strong> {escape(ticket.status)}</p>"
            f"<p><strong>Created:</strong> {ticket.created_at:%Y-%m-%d %H:%M} UTC</p>"
            "</div>"
            "<p>Keep the tracking ID; you will need it together with this email address"
            " to check on your request.</p>",
        )
        body_text = (
            f"Dear {ticket.name},\n\n"
            f"Your {label} ticket has been received.\n"
            f"Tracking ID: {ticket.tracking_id}\n"
            f"Status: {ticket.status}\n\n"
            f"{_FOOTER}\n"
        )
        return await self.send_email(ticket.email, subject, body_html, body_text)

    async def send_status_update(self, ticket: Ticket, update: TicketUpdate) -> bool:
        """Tell the submitter their ticket moved to a new status."""
        subject = f"Ticket {ticket.tracking_id} Status Updated - {update.new_status}"
        comment_html = (
            f"<p><strong>Comment:</strong> {escape(update.comment)}</p>" if update.comment else ""
        )
        body_html = _wrap_html(
            "Ticket Status Update",
            f"<p>Dear {escape(ticket.name)},</p>"
            "<p>The status of your ticket has changed.</p>"
            '<div style="background-color: #f5f5f5; padding: 15px; border-radius: 5px;">'
            f"<p><strong>Tracking ID:</strong> {escape(ticket.tracking_id or '')}</p>"
            f"<p><strong>Previous Status:</strong> {escape(update.previous_status)}</p>"
            f"<p><strong>New Status:</strong> {escape(update.new_status)}</p>"
            f"{comment_html}"
            "</div>",
        )
        body_text = (
            f"Dear {ticket.name},\n\n"
            f"Ticket {ticket.tracking_id} changed from {update.previous_status}"
            f" to {update.new_status}.\n"
            + (f"Comment: {update.comment}\n" if update.comment else "")
            + f"\n{_FOOTER}\n"
        )
        return await self.send_email(ticket.email, subject, body_html, body_text)

    async def send_test_email(self, recipient: str) -> bool:
        """Send a short message confirming the SMTP settings work."""
        body_html = _wrap_html(
            "Email Configuration Test",
            f"<p>This message confirms that {escape(self.config.app_name)}"
            " can deliver email with the current SMTP settings.</p>"
            f"<p><strong>SMTP Server:</strong> {escape(self.config.smtp_host)}"
            f":{self.config.smtp_port}</p>",
        )
        body_text = (
            f"This message confirms that {self.config.app_name} can deliver email.\n"
            f"SMTP Server: {self.config.smtp_host}:{self.config.smtp_port}\n"
        )
        return await self.send_email(recipient, "Email Configuration Test", body_html, body_text)


email_service = EmailService()


def get_email_service() -> EmailService:
    """Return the process-wide email service."""
    return email_service
