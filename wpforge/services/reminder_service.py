"""Reminder service — follow-up emails for sites created with a reminder.

When an operator ticks "reminder" while creating a site, the notification
address gets one email once the site is SITE_REMINDER_DAYS old, pointing
at the live URL. reminder_sent_at marks it as done.

Designed to be called from a Flask CLI command (`flask send-reminders`)
on a daily cron schedule.
"""

import logging
from datetime import datetime, timedelta, timezone

import click
from flask import current_app

from wpforge.extensions import db
from wpforge.models.site import Site
from wpforge.services.email_service import send_email_sync

logger = logging.getLogger(__name__)

REMINDER_SUBJECT = "Reminder: your WordPress site {domain}"


def due_sites(now=None, days=None):
    """Sites with a pending reminder that are at least `days` old."""
    now = now or datetime.now(timezone.utc)
    if days is None:
        days = current_app.config.get("SITE_REMINDER_DAYS", 7)
    cutoff = now - timedelta(days=days)

    return (
        Site.query
        .filter(Site.reminder.is_(True))
        .filter(Site.email.isnot(None))
        .filter(Site.email != "")
        .filter(Site.reminder_sent_at.is_(None))
        .filter(Site.created_at <= cutoff)
        .order_by(Site.created_at.asc())
        .all()
    )


def process_reminders(dry_run=False, days=None):
    """Send due reminders.

    Args:
        dry_run: If True, list what would be sent but don't send.
        days: Minimum site age in days (defaults to SITE_REMINDER_DAYS).

    Returns:
        int: Number of reminders sent (or would-be-sent in dry-run mode).
    """
    now = datetime.now(timezone.utc)
    sent_count = 0

    if dry_run:
        click.echo("[DRY RUN] No emails will actually be sent.\n")

    sites = due_sites(now=now, days=days)
    click.echo(f"Found {len(sites)} site(s) with a pending reminder.")

    for site in sites:
        subject = REMINDER_SUBJECT.format(domain=site.domain)

        if dry_run:
            click.echo(f"   WOULD SEND → {site.email} ({site.domain})")
            sent_count += 1
            continue

        click.echo(f"   SENDING → {site.email} ({site.domain})")
        try:
            send_email_sync(
                to=site.email,
                subject=subject,
                template="emails/site_reminder.html",
                context={
                    "domain": site.domain,
                    "site_url": site.url,
                    "created_at": site.created_at,
                },
            )
            site.reminder_sent_at = now
            db.session.commit()
            sent_count += 1
            click.echo("      ✓ Sent.")
        except Exception as e:
            db.session.rollback()
            logger.error(f"Reminder for site {site.id} failed: {e}")
            click.echo(f"      ✗ FAILED: {e}")

    click.echo(f"{'[DRY RUN] ' if dry_run else ''}Done: {sent_count} reminder(s) {'would be ' if dry_run else ''}sent.")
    return sent_count
