"""Deprovisioning service — tear a site down and delete its record.

Remote cleanup is best-effort: each step (application, database, DNS
record) is tried independently and a failure only adds a warning. The
local Site row is deleted no matter what happened remotely.
"""

import logging
from dataclasses import dataclass, field

from wpforge.extensions import db
from wpforge.models.audit import AuditEvent
from wpforge.models.site import Site
from wpforge.services.cloudflare_service import CloudflareClient
from wpforge.services.serveravatar_service import ServerAvatarClient

logger = logging.getLogger(__name__)

FULL_SUCCESS = "full_success"
PARTIAL_SUCCESS = "partial_success"


class SiteNotFoundError(Exception):
    """No site with the given public identifier."""


@dataclass
class DeprovisioningResult:
    status: str
    domain: str
    steps_run: int = 0
    warnings: list = field(default_factory=list)

    @property
    def message(self):
        if self.status == PARTIAL_SUCCESS:
            return (
                "Site deleted from our database, but with issues: "
                + " ".join(self.warnings)
            )
        if self.steps_run == 0:
            return "Site deleted successfully."
        return (
            "Site deleted successfully from our database, the server, "
            "database, and DNS records."
        )


def _run_step(label, what, call):
    """Run one remote cleanup call. Returns a warning string or None."""
    try:
        response = call()
    except Exception as e:
        logger.error(f"Exception while deleting {label}: {e}")
        return f"There was an error removing the {what}: {e}"

    if not response.get("success"):
        message = response.get("message") or "Unknown error"
        logger.warning(f"Failed to delete {label}: {message}")
        return f"There was an issue removing the {what}: {message}"

    logger.info(f"Deleted {label}")
    return None


def deprovision_site(site_uuid, actor_user_id=None, hosting=None, dns=None):
    """Remove a site's remote resources, then delete the Site row.

    Raises SiteNotFoundError (before any remote call) if the uuid is unknown.
    Returns a DeprovisioningResult: full_success when every applicable
    remote step succeeded (including when none applied; steps_run is 0
    then), partial_success when at least one step left a warning.
    """
    site = Site.query.filter_by(uuid=site_uuid).first()
    if site is None:
        raise SiteNotFoundError(site_uuid)

    hosting = hosting or ServerAvatarClient.from_app()
    dns = dns or CloudflareClient.from_app()

    steps = []
    if site.application_id and site.server_id:
        steps.append((
            f"application {site.application_id} on server {site.server_id}",
            "site from the server",
            lambda: hosting.delete_application(site.server_id, site.application_id),
        ))
    if site.database_id and site.server_id:
        steps.append((
            f"database {site.database_id} ({site.database_name}) on server {site.server_id}",
            "database from the server",
            lambda: hosting.delete_database(
                site.server_id, site.database_id, site.application_id
            ),
        ))
    if site.has_dns_record and site.cloudflare_record_id:
        steps.append((
            f"DNS record {site.cloudflare_record_id} for {site.domain}",
            "DNS record from Cloudflare",
            lambda: dns.delete_dns_record(site.cloudflare_record_id),
        ))

    warnings = []
    for label, what, call in steps:
        warning = _run_step(label, what, call)
        if warning:
            warnings.append(warning)

    domain = site.domain
    db.session.delete(site)
    db.session.add(AuditEvent(
        actor_user_id=actor_user_id,
        action="site.deleted",
        metadata_={
            "domain": domain,
            "remote_steps": len(steps),
            "warnings": warnings,
        },
    ))
    db.session.commit()

    status = PARTIAL_SUCCESS if warnings else FULL_SUCCESS

    logger.info(f"Site {domain} deleted ({status}, {len(warnings)} warning(s))")
    return DeprovisioningResult(
        status=status, domain=domain, steps_run=len(steps), warnings=warnings
    )
