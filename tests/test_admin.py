"""Tests for the admin blueprint.

Covers:
- Auth guards (anonymous redirected, non-admin rejected)
- Site list and detail pages
- Site creation over AJAX (JSON + status codes) and plain form posts
- Site deletion (flash category, 404 for unknown ids)
- Server list and reconnect
"""

from werkzeug.security import generate_password_hash

from wpforge.extensions import db
from wpforge.models.audit import AuditEvent
from wpforge.models.server import Server
from wpforge.models.site import Site
from wpforge.models.user import User

from conftest import sa_failure

AJAX = {"X-Requested-With": "XMLHttpRequest", "Accept": "application/json"}


def login_admin(client):
    """Helper to log in as the admin user."""
    return client.post(
        "/auth/login",
        data={"email": "admin@wpforge.local", "password": "admin123"},
        follow_redirects=True,
    )


def login_operator(client):
    """Helper to create and log in as a non-admin user."""
    user = User.query.filter_by(email="viewer@example.com").first()
    if not user:
        user = User(
            email="viewer@example.com",
            password_hash=generate_password_hash("viewer123"),
            full_name="Viewer",
            is_admin=False,
        )
        db.session.add(user)
        db.session.commit()
    return client.post(
        "/auth/login",
        data={"email": "viewer@example.com", "password": "viewer123"},
        follow_redirects=True,
    )


# ══════════════════════════════════════════════
#  AUTH GUARDS
# ══════════════════════════════════════════════

class TestAdminAuthGuards:

    def test_unauthenticated_redirects_to_login(self, client, seed_data):
        resp = client.get("/admin/sites")
        assert resp.status_code == 302
        assert "/auth/login" in resp.headers["Location"]

    def test_unauthenticated_cannot_create(self, client, seed_data, fake_clients):
        hosting, _ = fake_clients
        resp = client.post("/admin/sites", data={"subdomain": "blog"})
        assert resp.status_code == 302
        assert hosting.calls == []

    def test_non_admin_gets_403(self, client, seed_data):
        login_operator(client)
        assert client.get("/admin/sites").status_code == 403
        assert client.get("/admin/servers").status_code == 403

    def test_expired_session_ajax_gets_401_json(self, client, seed_data, fake_clients):
        hosting, _ = fake_clients
        resp = client.post("/admin/sites", data={"subdomain": "blog"}, headers=AJAX)

        assert resp.status_code == 401
        assert resp.get_json() == {
            "success": False,
            "message": "Your session has expired. Please log in again.",
        }
        assert hosting.calls == []

    def test_non_admin_ajax_gets_403_json(self, client, seed_data, fake_clients):
        hosting, _ = fake_clients
        login_operator(client)

        resp = client.post("/admin/sites", data={"subdomain": "blog"}, headers=AJAX)

        assert resp.status_code == 403
        assert resp.get_json()["message"] == "Admin access required."
        assert hosting.calls == []

    def test_root_redirects_admin_to_sites(self, client, seed_data):
        login_admin(client)
        resp = client.get("/")
        assert resp.status_code == 302
        assert "/admin/sites" in resp.headers["Location"]

    def test_dashboard_redirects_to_sites(self, client, seed_data):
        login_admin(client)
        resp = client.get("/admin/")
        assert resp.status_code == 302
        assert "/admin/sites" in resp.headers["Location"]


# ══════════════════════════════════════════════
#  SITE LIST / DETAIL
# ══════════════════════════════════════════════

class TestSitePages:

    def test_list_shows_sites(self, client, make_site):
        make_site("blog")
        login_admin(client)

        resp = client.get("/admin/sites")

        assert resp.status_code == 200
        assert b"blog.sites.test" in resp.data
        assert b"sites.test" in resp.data

    def test_detail_by_uuid(self, client, make_site):
        site = make_site("blog", wp_username="admin9z")
        login_admin(client)

        resp = client.get(f"/admin/sites/{site.uuid}")

        assert resp.status_code == 200
        assert b"blog.sites.test" in resp.data
        assert b"admin9z" in resp.data

    def test_detail_unknown_uuid_is_404(self, client, seed_data):
        login_admin(client)
        assert client.get("/admin/sites/" + "f" * 32).status_code == 404

    def test_detail_by_row_id_is_404(self, client, make_site):
        site = make_site("blog")
        login_admin(client)
        assert client.get(f"/admin/sites/{site.id}").status_code == 404


# ══════════════════════════════════════════════
#  SITE CREATION
# ══════════════════════════════════════════════

class TestSiteCreateAjax:

    def test_success_returns_redirect(self, client, seed_data, fake_clients):
        login_admin(client)

        resp = client.post("/admin/sites", data={"subdomain": "blog"}, headers=AJAX)

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["success"] is True
        assert data["message"] == "WordPress site created successfully!"
        site = Site.query.filter_by(domain="blog.sites.test").one()
        assert data["redirect"].endswith(f"/admin/sites/{site.uuid}")

    def test_actor_recorded(self, client, seed_data, fake_clients):
        login_admin(client)
        client.post("/admin/sites", data={"subdomain": "blog"}, headers=AJAX)

        event = AuditEvent.query.filter_by(action="site.created").one()
        assert event.actor_user_id == seed_data["admin_id"]

    def test_validation_error_is_422(self, client, seed_data, fake_clients):
        login_admin(client)

        resp = client.post(
            "/admin/sites",
            data={"subdomain": "Bad Name", "reminder": "on", "email": ""},
            headers=AJAX,
        )

        assert resp.status_code == 422
        data = resp.get_json()
        assert data["success"] is False
        assert data["errors"]["subdomain"] == [
            "The subdomain may only contain lowercase letters, numbers, and hyphens."
        ]
        assert data["errors"]["email"] == [
            "The email field is required when reminder is enabled."
        ]

    def test_taken_subdomain_is_422(self, client, make_site, fake_clients):
        make_site("blog")
        login_admin(client)

        resp = client.post("/admin/sites", data={"subdomain": "blog"}, headers=AJAX)

        assert resp.status_code == 422
        assert "subdomain" in resp.get_json()["errors"]

    def test_all_servers_failed_is_500(self, client, seed_data, fake_clients):
        hosting, _ = fake_clients
        for server_id in ("srv-1", "srv-2", "srv-3"):
            hosting.create_responses[server_id] = sa_failure("Boom", "server_error")
        login_admin(client)

        resp = client.post("/admin/sites", data={"subdomain": "blog"}, headers=AJAX)

        assert resp.status_code == 500
        data = resp.get_json()
        assert data["success"] is False
        assert "errors" not in data


class TestSiteCreateForm:

    def test_success_redirects_to_detail(self, client, seed_data, fake_clients):
        login_admin(client)

        resp = client.post("/admin/sites", data={"subdomain": "blog"})

        assert resp.status_code == 302
        site = Site.query.one()
        assert f"/admin/sites/{site.uuid}" in resp.headers["Location"]

    def test_warnings_flashed(self, client, seed_data, fake_clients):
        hosting, _ = fake_clients
        hosting.ssl_responses = {}
        login_admin(client)

        resp = client.post("/admin/sites", data={"subdomain": "blog"}, follow_redirects=True)

        assert resp.status_code == 200
        assert b"WordPress site created successfully!" in resp.data
        assert b"SSL certificate could not be installed." in resp.data

    def test_failure_rerenders_with_errors(self, client, seed_data, fake_clients):
        login_admin(client)

        resp = client.post("/admin/sites", data={"subdomain": "", "email": "x@y"})

        assert resp.status_code == 422
        assert b"Subdomain is required." in resp.data
        assert b"Please fix the validation errors below." in resp.data
        assert Site.query.count() == 0

    def test_remote_failure_rerenders_with_500(self, client, seed_data, fake_clients):
        hosting, _ = fake_clients
        for server_id in ("srv-1", "srv-2", "srv-3"):
            hosting.create_responses[server_id] = sa_failure("Boom", "server_error")
        login_admin(client)

        resp = client.post("/admin/sites", data={"subdomain": "blog"})

        assert resp.status_code == 500
        assert b"All available servers failed to create the WordPress site." in resp.data
        assert b'value="blog"' in resp.data
        assert Site.query.count() == 0


# ══════════════════════════════════════════════
#  SITE DELETION
# ══════════════════════════════════════════════

class TestSiteDelete:

    def test_delete_success(self, client, make_site, fake_clients):
        site_uuid = make_site("blog").uuid
        login_admin(client)

        resp = client.post(f"/admin/sites/{site_uuid}/delete", follow_redirects=True)

        assert resp.status_code == 200
        assert b"Site deleted successfully from our database" in resp.data
        assert Site.query.count() == 0

    def test_delete_partial_shows_warning(self, client, make_site, fake_clients):
        _, dns = fake_clients
        dns.delete_response = {"success": False, "message": "Record not found"}
        site_uuid = make_site("blog").uuid
        login_admin(client)

        resp = client.post(f"/admin/sites/{site_uuid}/delete", follow_redirects=True)

        assert b"flash-warning" in resp.data
        assert b"Record not found" in resp.data
        assert Site.query.count() == 0

    def test_delete_unknown_is_404(self, client, seed_data, fake_clients):
        hosting, dns = fake_clients
        login_admin(client)

        resp = client.post("/admin/sites/" + "a" * 32 + "/delete")

        assert resp.status_code == 404
        assert hosting.calls == []
        assert dns.calls == []

    def test_get_not_allowed(self, client, make_site):
        site_uuid = make_site("blog").uuid
        login_admin(client)
        assert client.get(f"/admin/sites/{site_uuid}/delete").status_code == 405


# ══════════════════════════════════════════════
#  SERVERS
# ══════════════════════════════════════════════

class TestServers:

    def test_list(self, client, seed_data):
        login_admin(client)

        resp = client.get("/admin/servers")

        assert resp.status_code == 200
        assert b"srv-1" in resp.data
        assert b"203.0.113.2" in resp.data

    def test_reconnect(self, client, seed_data):
        server = seed_data["servers"][0]
        server.connection_status = "maintenance"
        db.session.commit()
        login_admin(client)

        resp = client.post(f"/admin/servers/{server.id}/reconnect", follow_redirects=True)

        assert resp.status_code == 200
        assert b"back in rotation" in resp.data
        assert db.session.get(Server, server.id).connection_status == "connected"
        event = AuditEvent.query.filter_by(action="server.reconnected").one()
        assert event.metadata_["old_status"] == "maintenance"

    def test_reconnect_already_connected(self, client, seed_data):
        server_id = seed_data["server_ids"][0]
        login_admin(client)

        resp = client.post(f"/admin/servers/{server_id}/reconnect", follow_redirects=True)

        assert b"already connected" in resp.data
        assert AuditEvent.query.count() == 0

    def test_reconnect_unknown(self, client, seed_data):
        login_admin(client)
        resp = client.post("/admin/servers/nope/reconnect", follow_redirects=True)
        assert b"Server not found." in resp.data
