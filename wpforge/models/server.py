"""Server model.

A remote host registered with the hosting panel that can run WordPress
sites. Only servers with connection_status "connected" are picked for
new sites; provisioning demotes a server to "maintenance" when site
creation fails on it.
"""

import uuid

from wpforge.extensions import db


class Server(db.Model):
    __tablename__ = "servers"

    STATUSES = ["connected", "maintenance", "disconnected"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    server_id = db.Column(
        db.String(100), unique=True, nullable=False
    )  # id on the hosting panel (opaque)
    name = db.Column(db.String(255), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # v4 or v6
    connection_status = db.Column(
        db.String(30), default="connected", nullable=False, index=True,
    )  # connected | maintenance | disconnected
    phpmyadmin_url = db.Column(db.String(500), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    sites = db.relationship("Site", back_populates="server", lazy="dynamic")

    @property
    def is_connected(self):
        return self.connection_status == "connected"

    def __repr__(self):
        return f"<Server {self.server_id} ({self.connection_status})>"
