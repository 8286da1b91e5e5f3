"""Shared test fixtures for the WP Forge test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite, CSRF off)
- client: Flask test client
- db_session: clean database per test (tables created/dropped)
- seed_data: admin user + three connected servers
- hosting / dns: in-memory stand-ins for the ServerAvatar and Cloudflare clients
- fake_clients: patches the real clients' from_app() to return the fakes
- make_site: factory for already-provisioned Site rows
"""

import copy
from unittest.mock import patch

import pytest
from werkzeug.security import generate_password_hash

from wpforge import create_app
from wpforge.extensions import db as _db
from wpforge.models.server import Server
from wpforge.models.site import Site, SiteAuditRecord, generate_site_uuid
from wpforge.models.user import User
from wpforge.services.cloudflare_service import CloudflareClient
from wpforge.services.serveravatar_service import ServerAvatarClient


def sa_success(data=None, message="OK"):
    return {"success": True, "message": message, "error_code": None, "data": data or {}}


def sa_failure(message, error_code="api_error"):
    return {"success": False, "message": message, "error_code": error_code, "data": {}}


class FakeHosting:
    """Records calls; answers from per-server / per-step response tables.

    A response may be an Exception instance, which is raised instead.
    """

    default_php_version = "8.2"

    def __init__(self):
        self.configured = True
        self.create_responses = {}  # server_id -> response
        self.ssl_responses = {"custom": sa_success(message="SSL installed.")}
        self.database_info_response = sa_success({
            "database_id": "db-100",
            "database_name": "demo_ab12",
            "database_host": "localhost",
        })
        self.database_users_response = sa_success({
            "database_username": "demo_user",
            "database_password": "db-s3cret",
        })
        self.delete_application_response = sa_success(message="Application deleted.")
        self.delete_database_response = sa_success(message="Database deleted.")
        self.calls = []

    def is_configured(self):
        return self.configured

    def _answer(self, response):
        if isinstance(response, Exception):
            raise response
        return copy.deepcopy(response)

    def create_wordpress_site(self, server_id, domain, php_version=None):
        self.calls.append(("create", server_id, domain))
        default = sa_success({
            "application": {"id": f"app-{server_id}", "php_version": "8.2"},
            "credentials": {
                "system_username": "demo1a2b",
                "system_password": "sys-pass",
                "wp_username": "admin1a2b",
                "wp_password": "wp-pass",
                "database_name": "demo_1a2b",
            },
        })
        return self._answer(self.create_responses.get(server_id, default))

    def get_database_information(self, server_id, application_id):
        self.calls.append(("database_info", server_id, application_id))
        return self._answer(self.database_info_response)

    def get_database_users(self, server_id, database_id):
        self.calls.append(("database_users", server_id, database_id))
        return self._answer(self.database_users_response)

    def install_ssl(self, server_id, application_id, use_custom=True, force_https=True):
        ssl_type = "custom" if use_custom else "automatic"
        self.calls.append(("ssl", ssl_type, application_id))
        return self._answer(
            self.ssl_responses.get(ssl_type, sa_failure(f"{ssl_type} SSL failed"))
        )

    def delete_application(self, server_id, application_id):
        self.calls.append(("delete_application", server_id, application_id))
        return self._answer(self.delete_application_response)

    def delete_database(self, server_id, database_id, application_id=None):
        self.calls.append(("delete_database", server_id, database_id, application_id))
        return self._answer(self.delete_database_response)

    def calls_named(self, name):
        return [c for c in self.calls if c[0] == name]


class FakeDns:
    def __init__(self):
        self.configured = True
        self.create_response = {
            "success": True, "record_id": "cf-rec-1", "message": "DNS record created."
        }
        self.delete_response = {"success": True, "message": "DNS record deleted."}
        self.calls = []

    def is_configured(self):
        return self.configured

    def create_a_record(self, name, ip_address, proxied=True, ttl=300):
        self.calls.append(("create", name, ip_address, proxied))
        if isinstance(self.create_response, Exception):
            raise self.create_response
        return dict(self.create_response)

    def delete_dns_record(self, record_id):
        self.calls.append(("delete", record_id))
        if isinstance(self.delete_response, Exception):
            raise self.delete_response
        return dict(self.delete_response)


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def seed_data(db_session):
    """Seed the database with an admin user and three connected servers.

    Returns a dict with the created objects and their plain ids.
    """
    admin = User(
        email="admin@wpforge.local",
        password_hash=generate_password_hash("admin123"),
        full_name="Admin User",
        is_admin=True,
    )
    _db.session.add(admin)

    servers = []
    for n in (1, 2, 3):
        server = Server(
            server_id=f"srv-{n}",
            name=f"web-{n}",
            ip_address=f"203.0.113.{n}",
            connection_status="connected",
        )
        _db.session.add(server)
        servers.append(server)

    _db.session.commit()

    return {
        "admin": admin,
        "admin_id": admin.id,
        "servers": servers,
        "server_ids": [s.id for s in servers],
    }


@pytest.fixture
def hosting():
    return FakeHosting()


@pytest.fixture
def dns():
    return FakeDns()


@pytest.fixture
def fake_clients(hosting, dns):
    """Route every from_app() client lookup to the fakes."""
    with patch.object(ServerAvatarClient, "from_app", return_value=hosting), \
            patch.object(CloudflareClient, "from_app", return_value=dns):
        yield hosting, dns


@pytest.fixture
def in_server_order():
    """Replace the random server shuffle with a sort by server_id."""
    with patch(
        "wpforge.services.provisioning_service.random.shuffle",
        side_effect=lambda servers: servers.sort(key=lambda s: s.server_id),
    ) as shuffle:
        yield shuffle


@pytest.fixture
def make_site(db_session, seed_data):
    """Create a provisioned-looking Site row on srv-1."""

    def _make(name="blog", **overrides):
        server = seed_data["servers"][0]
        fields = dict(
            uuid=generate_site_uuid(),
            name=name,
            domain=f"{name}.sites.test",
            server_ref_id=server.id,
            server_id=server.server_id,
            status="active",
            php_version="8.2",
            application_id="app-77",
            database_id="db-77",
            database_name=f"{name}_db",
            database_host="localhost",
            has_dns_record=True,
            cloudflare_record_id="cf-rec-77",
        )
        fields.update(overrides)
        site = Site(**fields)
        site.audit_record = SiteAuditRecord(
            application_id=fields["application_id"],
            database_id=fields["database_id"],
            ssl_installed=True,
            ssl_type="custom",
            ssl_installation_attempted=True,
        )
        _db.session.add(site)
        _db.session.commit()
        return site

    return _make
