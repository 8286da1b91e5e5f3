"""Provisioning service — create a WordPress site end to end.

Flow (strictly sequential, later steps need ids from earlier ones):

    validate input → compose domain → local uniqueness check
    → pick a server (shuffled, with failover) → create WP app
    → fetch database info → install SSL (custom, then automatic)
    → persist Site → create DNS A record → backfill DB credentials

Fatal problems come back as ProvisioningResult(ok=False, kind=...) before
anything is persisted. SSL, DNS and the credential backfill are
best-effort: their failures are logged and recorded on the site, never
returned as errors.

Server failover treats each attempt as SUCCESS / TERMINAL / RETRYABLE.
A duplicate-domain answer is TERMINAL (another server won't help); any
other failure is RETRYABLE and demotes the server to "maintenance".
"""

import enum
import logging
import random
import re
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.exc import IntegrityError

from wpforge.extensions import db
from wpforge.models.audit import AuditEvent
from wpforge.models.server import Server
from wpforge.models.site import (
    DnsRecordAudit,
    Site,
    SiteAuditRecord,
    generate_site_uuid,
)
from wpforge.services import settings_service
from wpforge.services.cloudflare_service import CloudflareClient
from wpforge.services.serveravatar_service import (
    ServerAvatarClient,
    is_duplicate_domain_message,
)

logger = logging.getLogger(__name__)

SUBDOMAIN_RE = re.compile(r"^[a-z0-9-]+$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
SUBDOMAIN_MAX_LENGTH = 63
DOMAIN_MAX_LENGTH = 255

SUBDOMAIN_TAKEN = "This subdomain is already taken. Please choose another one."


class FailureKind:
    VALIDATION = "validation"
    CONFLICT = "conflict"
    CONFIGURATION = "configuration"
    AVAILABILITY = "availability"
    ALL_SERVERS_FAILED = "all_servers_failed"
    REMOTE_ERROR = "remote_error"


class Attempt(enum.Enum):
    SUCCESS = "success"
    TERMINAL = "terminal"
    RETRYABLE = "retryable"


@dataclass
class AttemptResult:
    outcome: Attempt
    server: Server
    response: dict


@dataclass
class SslOutcome:
    installed: bool = False
    type: Optional[str] = None  # custom | automatic | None


@dataclass
class StepOutcome:
    """Result of a best-effort step (DNS, credential backfill)."""

    ok: bool
    message: str = ""
    skipped: bool = False


@dataclass
class ProvisioningResult:
    ok: bool
    site: Optional[Site] = None
    kind: Optional[str] = None
    message: str = ""
    errors: dict = field(default_factory=dict)  # field name -> message
    ssl: Optional[SslOutcome] = None
    dns_created: bool = False
    warnings: list = field(default_factory=list)

    @classmethod
    def failure(cls, kind, message, errors=None):
        return cls(ok=False, kind=kind, message=message, errors=errors or {})


# ──────────────────────────────────────────────
# Validation
# ──────────────────────────────────────────────

def validate_request(subdomain, reminder=False, email=None):
    """Return a dict of field → error message (empty when valid)."""
    errors = {}

    if not subdomain:
        errors["subdomain"] = "Subdomain is required."
    elif len(subdomain) > SUBDOMAIN_MAX_LENGTH:
        errors["subdomain"] = f"The subdomain may not be longer than {SUBDOMAIN_MAX_LENGTH} characters."
    elif not SUBDOMAIN_RE.match(subdomain):
        errors["subdomain"] = (
            "The subdomain may only contain lowercase letters, numbers, and hyphens."
        )

    if reminder and not email:
        errors["email"] = "The email field is required when reminder is enabled."
    elif email and not EMAIL_RE.match(email):
        errors["email"] = "Please enter a valid email address."

    return errors


# ──────────────────────────────────────────────
# Server selection with failover
# ──────────────────────────────────────────────

def classify_attempt(response):
    """Map a create_wordpress_site response to an Attempt outcome."""
    if response.get("success"):
        return Attempt.SUCCESS
    if response.get("error_code") == "duplicate_domain":
        return Attempt.TERMINAL
    if is_duplicate_domain_message(response.get("message")):
        return Attempt.TERMINAL
    return Attempt.RETRYABLE


def mark_server_maintenance(server, reason=None):
    """Demote a server after a failed create. Best-effort load-shedding signal.

    Single-row UPDATE; no lock is held across candidate selection, so
    concurrent requests may still pick this server in the meantime.
    """
    Server.query.filter_by(id=server.id).update(
        {"connection_status": "maintenance"}
    )
    db.session.add(AuditEvent(
        actor_user_id=None,
        action="server.status_changed",
        metadata_={
            "server_id": server.server_id,
            "new_status": "maintenance",
            "reason": reason,
        },
    ))
    db.session.commit()
    logger.warning(f"Server {server.server_id} marked as maintenance")


def _application_id(response):
    return ((response.get("data") or {}).get("application") or {}).get("id")


def _attach_database_info(hosting, server, response):
    """Fetch DB info for a freshly created app and merge it into the response."""
    application_id = _application_id(response)
    try:
        db_response = hosting.get_database_information(server.server_id, application_id)
    except Exception as e:
        logger.error(f"Exception fetching database info for application {application_id}: {e}")
        return

    if not db_response.get("success"):
        logger.warning(f"Failed to retrieve database information: {db_response.get('message')}")
        return

    database = db_response.get("data") or {}
    if not database.get("database_id"):
        logger.warning(f"No database id returned for application {application_id}")
    response["data"]["database"] = database


def try_servers(hosting, servers, domain):
    """Try each server in order until one creates the site or a terminal error.

    Returns the deciding AttemptResult, or None if every server failed
    with a retryable error.
    """
    for server in servers:
        logger.debug(f"Attempting to create WordPress site {domain} on server {server.server_id}")
        try:
            response = hosting.create_wordpress_site(server.server_id, domain)
        except Exception as e:
            logger.error(f"Exception creating {domain} on server {server.server_id}: {e}")
            response = {"success": False, "message": str(e), "error_code": "exception"}

        if response.get("success") and _application_id(response):
            _attach_database_info(hosting, server, response)

        outcome = classify_attempt(response)
        if outcome is not Attempt.RETRYABLE:
            return AttemptResult(outcome, server, response)

        mark_server_maintenance(server, reason=response.get("message"))
        logger.warning(
            f"Server {server.server_id} failed to create WordPress site, trying next server: "
            f"{response.get('message') or 'Unknown error'}"
        )

    return None


# ──────────────────────────────────────────────
# SSL
# ──────────────────────────────────────────────

def install_ssl(hosting, server_id, application_id):
    """Try custom SSL, then automatic. Never raises."""
    for use_custom, ssl_type in ((True, "custom"), (False, "automatic")):
        try:
            response = hosting.install_ssl(
                server_id, application_id, use_custom=use_custom, force_https=True
            )
        except Exception as e:
            logger.error(f"Exception during {ssl_type} SSL installation: {e}")
            continue

        if response.get("success"):
            logger.info(f"Installed {ssl_type} SSL certificate for application {application_id}")
            return SslOutcome(installed=True, type=ssl_type)
        logger.warning(f"Failed to install {ssl_type} SSL certificate: {response.get('message')}")

    logger.error(f"Failed to install both custom and automatic SSL for application {application_id}")
    return SslOutcome(installed=False, type=None)


# ──────────────────────────────────────────────
# Post-persist steps (best-effort)
# ──────────────────────────────────────────────

def create_dns_record(dns, site, server, subdomain):
    """Point subdomain at the server IP. Updates the site on success."""
    if not dns.is_configured() or not server.ip_address:
        logger.info(
            f"Skipping DNS record for {site.domain} - "
            f"cloudflare_configured={dns.is_configured()} server_ip={server.ip_address or 'missing'}"
        )
        return StepOutcome(ok=False, skipped=True, message="DNS not configured or server IP missing.")

    try:
        response = dns.create_a_record(subdomain, server.ip_address, proxied=True)
    except Exception as e:
        logger.error(f"Exception during DNS record creation for {site.domain}: {e}")
        return StepOutcome(ok=False, message=f"DNS record creation failed: {e}")

    if not response.get("success"):
        logger.warning(f"Failed to create DNS A record for {site.domain}: {response.get('message')}")
        return StepOutcome(ok=False, message=f"DNS record creation failed: {response.get('message')}")

    # Without an id the record can never be deleted on deprovision.
    record_id = response.get("record_id")
    if not record_id:
        logger.warning(f"Cloudflare reported success for {site.domain} but returned no record id")
        return StepOutcome(ok=False, message="DNS record creation failed: no record id returned")

    record = site.audit_record
    record.dns_record = DnsRecordAudit(
        record_id=record_id,
        name=site.domain,
        ip_address=server.ip_address,
    )
    site.cloudflare_record_id = record_id
    site.has_dns_record = True
    site.audit_record = record
    db.session.commit()

    logger.info(f"Created DNS A record {record_id} for {site.domain}")
    return StepOutcome(ok=True)


def backfill_database_credentials(hosting, site):
    """Fetch DB user credentials and fill in any that are missing on the site."""
    if not site.database_id or not site.server_id:
        logger.warning(
            f"Could not fetch database credentials for site {site.id} - "
            f"has_database_id={bool(site.database_id)} has_server_id={bool(site.server_id)}"
        )
        return StepOutcome(ok=False, skipped=True, message="No database id or server id.")

    try:
        response = hosting.get_database_users(site.server_id, site.database_id)
    except Exception as e:
        logger.error(f"Exception while fetching database users for site {site.id}: {e}")
        return StepOutcome(ok=False, message=f"Database credential lookup failed: {e}")

    if not response.get("success"):
        logger.warning(f"Failed to get database users: {response.get('message') or 'Unknown error'}")
        return StepOutcome(ok=False, message=f"Database credential lookup failed: {response.get('message')}")

    data = response.get("data") or {}
    updates = {
        key: data.get(key)
        for key in ("database_username", "database_password")
        if data.get(key)
    }
    if not updates:
        logger.warning(f"Database user credentials were empty for site {site.id}")
        return StepOutcome(ok=True, message="No credentials returned.")

    record = site.audit_record
    for key, value in updates.items():
        setattr(site, key, value)
        setattr(record, key, value)
    site.audit_record = record
    db.session.commit()

    logger.info(f"Updated site {site.id} with database credentials: {sorted(updates)}")
    return StepOutcome(ok=True)


# ──────────────────────────────────────────────
# Persistence
# ──────────────────────────────────────────────

def _build_site(subdomain, domain, server, response, ssl, reminder, email, default_php):
    data = response.get("data") or {}
    application = data.get("application") or {}
    credentials = data.get("credentials") or {}
    database = data.get("database") or {}
    database_host = database.get("database_host") or "localhost"

    record = SiteAuditRecord(
        application_id=application.get("id"),
        wp_username=credentials.get("wp_username"),
        wp_password=credentials.get("wp_password"),
        system_username=credentials.get("system_username"),
        system_password=credentials.get("system_password"),
        database_name=credentials.get("database_name"),
        database_id=database.get("database_id"),
        database_username=database.get("database_username"),
        database_password=database.get("database_password"),
        database_host=database_host,
        ssl_installed=ssl.installed,
        ssl_type=ssl.type,
        ssl_installation_attempted=True,
    )

    site = Site(
        uuid=generate_site_uuid(),
        name=subdomain,
        domain=domain,
        server_ref_id=server.id,
        server_id=server.server_id,
        status="active",
        php_version=application.get("php_version") or default_php,
        reminder=bool(reminder),
        email=email if reminder else None,
        application_id=application.get("id"),
        system_username=credentials.get("system_username"),
        wp_username=credentials.get("wp_username"),
        database_name=credentials.get("database_name"),
        database_id=database.get("database_id"),
        database_username=database.get("database_username"),
        database_password=database.get("database_password"),
        database_host=database_host,
    )
    site.audit_record = record
    return site


def _default_php_version(hosting):
    return getattr(hosting, "default_php_version", None) or "8.2"


# ──────────────────────────────────────────────
# Public API
# ──────────────────────────────────────────────

def provision_site(subdomain, reminder=False, email=None, actor_user_id=None,
                   hosting=None, dns=None):
    """Create a WordPress site for `subdomain` under the base domain.

    Args:
        subdomain: Operator-chosen label (lowercase letters, digits, hyphens).
        reminder: Whether to send the operator a reminder email later.
        email: Reminder address; required when reminder is on.
        actor_user_id: User performing the action (for the audit log).
        hosting: ServerAvatarClient (built from config when None).
        dns: CloudflareClient (built from config when None).

    Returns a ProvisioningResult. On failure no Site row exists for the domain.
    """
    subdomain = (subdomain or "").strip()
    email = (email or "").strip() or None

    errors = validate_request(subdomain, reminder, email)
    if errors:
        return ProvisioningResult.failure(
            FailureKind.VALIDATION, "Please fix the validation errors below.", errors
        )

    try:
        domain = f"{subdomain}.{settings_service.get_domain()}"
    except RuntimeError as e:
        return ProvisioningResult.failure(FailureKind.CONFIGURATION, str(e))

    # sites.domain is String(255)
    if len(domain) > DOMAIN_MAX_LENGTH:
        return ProvisioningResult.failure(
            FailureKind.VALIDATION, "Please fix the validation errors below.",
            {"subdomain": (
                f"The full domain name ({len(domain)} characters) may not be longer "
                f"than {DOMAIN_MAX_LENGTH} characters. Please choose a shorter subdomain."
            )},
        )

    if Site.query.filter_by(domain=domain).first() is not None:
        return ProvisioningResult.failure(
            FailureKind.CONFLICT, "This subdomain is already taken.",
            {"subdomain": SUBDOMAIN_TAKEN},
        )

    hosting = hosting or ServerAvatarClient.from_app()
    dns = dns or CloudflareClient.from_app()

    if not hosting.is_configured():
        return ProvisioningResult.failure(
            FailureKind.CONFIGURATION,
            "ServerAvatar API is not properly configured. Please check API settings.",
        )

    servers = Server.query.filter_by(connection_status="connected").all()
    if not servers:
        return ProvisioningResult.failure(
            FailureKind.AVAILABILITY,
            "No connected server available to create site. Please add a connected server first.",
        )

    random.shuffle(servers)
    attempt = try_servers(hosting, servers, domain)

    if attempt is None:
        logger.error(f"All servers failed to create {domain}")
        return ProvisioningResult.failure(
            FailureKind.ALL_SERVERS_FAILED,
            "All available servers failed to create the WordPress site. Please try again later.",
        )

    if attempt.outcome is Attempt.TERMINAL:
        logger.error(f"Failed to create WordPress site {domain}: {attempt.response.get('message')}")
        return ProvisioningResult.failure(
            FailureKind.CONFLICT,
            "This domain name is already in use. Please choose a different subdomain.",
            {"subdomain": SUBDOMAIN_TAKEN},
        )

    server = attempt.server
    response = attempt.response
    application_id = _application_id(response)
    if not application_id:
        logger.error(f"Missing application data in API response for {domain}")
        return ProvisioningResult.failure(
            FailureKind.REMOTE_ERROR, "Missing application data in API response"
        )

    ssl = install_ssl(hosting, server.server_id, application_id)

    site = _build_site(
        subdomain, domain, server, response, ssl, reminder, email,
        _default_php_version(hosting),
    )
    db.session.add(site)
    db.session.add(AuditEvent(
        actor_user_id=actor_user_id,
        action="site.created",
        metadata_={
            "domain": domain,
            "server_id": server.server_id,
            "application_id": application_id,
            "ssl_type": ssl.type,
        },
    ))
    try:
        db.session.commit()
    except IntegrityError:
        # Another request persisted the same domain after our pre-check.
        db.session.rollback()
        logger.warning(
            f"Domain {domain} was taken concurrently; not persisting "
            f"(application {application_id} left on server {server.server_id})"
        )
        return ProvisioningResult.failure(
            FailureKind.CONFLICT, "This subdomain is already taken.",
            {"subdomain": SUBDOMAIN_TAKEN},
        )

    logger.info(f"Site {domain} created on server {server.server_id} (uuid={site.uuid})")

    result = ProvisioningResult(ok=True, site=site, ssl=ssl, message="WordPress site created successfully!")
    if not ssl.installed:
        result.warnings.append("SSL certificate could not be installed.")

    dns_outcome = create_dns_record(dns, site, server, subdomain)
    result.dns_created = dns_outcome.ok
    if not dns_outcome.ok and not dns_outcome.skipped:
        result.warnings.append(dns_outcome.message)

    backfill = backfill_database_credentials(hosting, site)
    if not backfill.ok and not backfill.skipped:
        result.warnings.append(backfill.message)

    return result
