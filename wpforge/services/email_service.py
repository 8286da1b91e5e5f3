"""
Email service for site notifications.

Sends templated HTML email over SMTP (STARTTLS). Used by the reminder
mailer; call sites pass a Jinja template path and a context dict.

Usage:
    from wpforge.services.email_service import send_email_sync

    send_email_sync(
        to="owner@example.com",
        subject="Your site is ready",
        template="emails/site_reminder.html",
        context={"domain": "demo.sites.example.com"},
    )
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from flask import current_app, render_template

logger = logging.getLogger(__name__)


class EmailNotConfiguredError(RuntimeError):
    """MAIL_USERNAME / MAIL_PASSWORD missing."""


def _build_message(app, to, subject, template, context, reply_to):
    from_name = app.config.get("MAIL_FROM_NAME", "WP Forge")
    from_email = app.config.get("MAIL_FROM_ADDRESS") or app.config.get("MAIL_USERNAME", "")

    html_body = render_template(template, **(context or {}))

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{from_name} <{from_email}>"
    msg["To"] = to if isinstance(to, str) else ", ".join(to)
    if reply_to:
        msg["Reply-To"] = reply_to

    msg.attach(MIMEText(html_body, "html"))
    return msg


def send_email_sync(to, subject, template, context=None, reply_to=None):
    """
    Render and send an email, blocking until the SMTP server accepts it.

    Raises EmailNotConfiguredError when SMTP credentials are missing and
    lets smtplib errors propagate so callers can roll back.
    """
    app = current_app._get_current_object()
    username = app.config.get("MAIL_USERNAME")
    password = app.config.get("MAIL_PASSWORD")
    if not username or not password:
        raise EmailNotConfiguredError(
            "Email not sent — MAIL_USERNAME or MAIL_PASSWORD not configured."
        )

    msg = _build_message(app, to, subject, template, context, reply_to)

    host = app.config.get("MAIL_SMTP_HOST", "smtp.gmail.com")
    port = app.config.get("MAIL_SMTP_PORT", 587)
    with smtplib.SMTP(host, port, timeout=30) as server:
        server.ehlo()
        server.starttls()
        server.ehlo()
        server.login(username, password)
        server.send_message(msg)
    logger.info(f"Email sent to {msg['To']} — {msg['Subject']}")
