"""Site model.

Represents a WordPress install provisioned on one of our servers.

The normalized columns (credentials, remote ids) are the source of truth.
site_data is a derived audit trail written once at creation and amended
when DNS or database credentials are attached later. Its shape is the
versioned SiteAuditRecord below, never an open dict.
"""

import uuid
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from typing import Optional

from wpforge.extensions import db

AUDIT_RECORD_VERSION = 1


def _now_str():
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


@dataclass
class DnsRecordAudit:
    record_id: str
    name: str
    ip_address: str
    type: str = "A"
    created_at: str = field(default_factory=_now_str)


@dataclass
class SiteAuditRecord:
    """Installation-time details stored in Site.site_data."""

    version: int = AUDIT_RECORD_VERSION
    application_id: Optional[str] = None
    wp_username: Optional[str] = None
    wp_password: Optional[str] = None
    system_username: Optional[str] = None
    system_password: Optional[str] = None
    database_name: Optional[str] = None
    database_id: Optional[str] = None
    database_username: Optional[str] = None
    database_password: Optional[str] = None
    database_host: Optional[str] = None
    created_at: str = field(default_factory=_now_str)
    ssl_installed: bool = False
    ssl_type: Optional[str] = None  # custom | automatic | None
    ssl_installation_attempted: bool = False
    dns_record: Optional[DnsRecordAudit] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "SiteAuditRecord":
        """Build a record from stored JSON, ignoring unknown keys."""
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        dns = data.pop("dns_record", None)
        record = cls(**{k: v for k, v in data.items() if k in known})
        if dns:
            dns_known = {f.name for f in fields(DnsRecordAudit)}
            record.dns_record = DnsRecordAudit(
                **{k: v for k, v in dns.items() if k in dns_known}
            )
        return record


def generate_site_uuid():
    """Random 32-character public identifier (hex)."""
    return uuid.uuid4().hex


class Site(db.Model):
    __tablename__ = "sites"

    STATUSES = ["active", "suspended", "failed"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    # Public lookup key used in URLs. Never expose `id`.
    uuid = db.Column(
        db.String(32), unique=True, nullable=False, default=generate_site_uuid
    )
    name = db.Column(db.String(255), nullable=False)  # the chosen subdomain
    domain = db.Column(db.String(255), unique=True, nullable=False)
    server_ref_id = db.Column(
        db.String(36), db.ForeignKey("servers.id"), nullable=True
    )
    server_id = db.Column(
        db.String(100), nullable=True
    )  # remote server id, copied at creation
    status = db.Column(
        db.String(50), default="active", nullable=False
    )  # active | suspended | failed
    php_version = db.Column(db.String(10), nullable=True)

    # --- Remote application / credentials ---
    application_id = db.Column(db.String(100), nullable=True)
    system_username = db.Column(db.String(100), nullable=True)
    wp_username = db.Column(db.String(100), nullable=True)
    database_name = db.Column(db.String(100), nullable=True)
    database_id = db.Column(db.String(100), nullable=True)
    database_username = db.Column(db.String(100), nullable=True)
    database_password = db.Column(db.String(255), nullable=True)
    database_host = db.Column(db.String(255), nullable=True)

    site_data = db.Column(db.JSON, default=dict)  # SiteAuditRecord.to_dict()

    # --- Reminder ---
    reminder = db.Column(db.Boolean, default=False, nullable=False)
    email = db.Column(db.String(255), nullable=True)
    reminder_sent_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # --- DNS ---
    cloudflare_record_id = db.Column(db.String(100), nullable=True)
    has_dns_record = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __table_args__ = (
        # reminder sweep: pending reminders, oldest first
        db.Index(
            "ix_sites_reminder_pending", "reminder", "reminder_sent_at", "created_at"
        ),
    )

    # --- Relationships ---
    server = db.relationship("Server", back_populates="sites")

    @property
    def audit_record(self):
        return SiteAuditRecord.from_dict(self.site_data)

    @audit_record.setter
    def audit_record(self, record):
        # Assign a fresh dict so the JSON column is flagged dirty.
        self.site_data = record.to_dict()

    @property
    def subdomain(self):
        """First label of the domain, or '' for a bare domain."""
        parts = (self.domain or "").split(".")
        if len(parts) > 2:
            return parts[0]
        return ""

    @property
    def url(self):
        scheme = "https" if self.audit_record.ssl_installed else "http"
        return f"{scheme}://{self.domain}"

    def __repr__(self):
        return f"<Site {self.domain} ({self.status})>"
