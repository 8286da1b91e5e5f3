"""User model.

Operators who log in to the admin panel. Accounts are created with
`flask seed-admin`; only is_admin users can reach /admin.
"""

import uuid

from flask_login import UserMixin

from wpforge.extensions import db


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(255))
    is_admin = db.Column(db.Boolean, default=False)
    is_active = db.Column(db.Boolean, default=True)
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    # Sites created/deleted and servers demoted or reconnected by this operator.
    audit_events = db.relationship(
        "AuditEvent", back_populates="actor", lazy="dynamic"
    )

    @property
    def display_name(self):
        return self.full_name or self.email

    def __repr__(self):
        return f"<User {self.email} admin={self.is_admin}>"
