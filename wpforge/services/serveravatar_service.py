"""ServerAvatar service — hosting automation API client.

Creates and removes WordPress applications, installs SSL certificates and
reads database metadata on servers connected to our ServerAvatar
organization.

Every public method returns a plain dict:

    {"success": bool, "message": str, "error_code": str|None, "data": dict}

and never raises for HTTP or transport problems. error_code is one of:
    duplicate_domain  — the panel already has an app on this domain
    server_error      — the panel (or the server behind it) returned 5xx
    connection_error  — timeout / DNS / refused connection
    api_error         — any other 4xx
"""

import logging
import re
import secrets
import string

import requests
from flask import current_app

logger = logging.getLogger(__name__)

DUPLICATE_DOMAIN_MARKERS = ("duplicate domain", "domain name found")


def is_duplicate_domain_message(message):
    """True if an API message says the domain is already in use."""
    text = (message or "").lower()
    return any(marker in text for marker in DUPLICATE_DOMAIN_MARKERS)


def _random_password(length=20):
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def _slug_for(domain, max_len):
    """Lowercase alphanumeric prefix from the first label of a domain."""
    label = domain.split(".", 1)[0]
    cleaned = re.sub(r"[^a-z0-9]", "", label.lower()) or "wp"
    if cleaned[0].isdigit():
        cleaned = f"wp{cleaned}"
    return cleaned[:max_len]


def generate_credentials(domain):
    """Fresh system user / WordPress admin / database credentials for a site."""
    suffix = secrets.token_hex(2)
    base = _slug_for(domain, 10)
    return {
        "system_username": f"{base}{suffix}",
        "system_password": _random_password(),
        "wp_username": f"admin{suffix}",
        "wp_password": _random_password(),
        "database_name": f"{base}_{suffix}",
    }


def _failure(message, error_code, data=None):
    return {
        "success": False,
        "message": message,
        "error_code": error_code,
        "data": data or {},
    }


def _success(message, data=None):
    return {
        "success": True,
        "message": message,
        "error_code": None,
        "data": data or {},
    }


def _error_message(body, fallback):
    """Pull a readable message out of a ServerAvatar error body."""
    if not isinstance(body, dict):
        return fallback
    parts = []
    if body.get("message"):
        parts.append(str(body["message"]))
    errors = body.get("errors")
    if isinstance(errors, dict):
        for messages in errors.values():
            if isinstance(messages, list):
                parts.extend(str(m) for m in messages)
            else:
                parts.append(str(messages))
    return " ".join(parts) or fallback


class ServerAvatarClient:
    """Thin wrapper over the ServerAvatar REST API for one organization."""

    def __init__(self, api_token, organization_id, base_url, timeout=60,
                 default_php_version="8.2"):
        self.api_token = api_token
        self.organization_id = organization_id
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout
        self.default_php_version = default_php_version

    @classmethod
    def from_app(cls, app=None):
        """Build a client from the current app config."""
        config = (app or current_app).config
        return cls(
            api_token=config.get("SERVERAVATAR_API_TOKEN"),
            organization_id=config.get("SERVERAVATAR_ORGANIZATION_ID"),
            base_url=config.get("SERVERAVATAR_API_URL"),
            timeout=config.get("SERVERAVATAR_TIMEOUT", 60),
            default_php_version=config.get("DEFAULT_PHP_VERSION", "8.2"),
        )

    def is_configured(self):
        return bool(self.api_token and self.organization_id and self.base_url)

    # ──────────────────────────────────────────────
    # HTTP plumbing
    # ──────────────────────────────────────────────

    def _url(self, server_id, path=""):
        url = (
            f"{self.base_url}/organizations/{self.organization_id}"
            f"/servers/{server_id}"
        )
        return f"{url}/{path}" if path else url

    def _request(self, method, url, **kwargs):
        """Send a request. Returns (response_body, error_dict_or_None)."""
        headers = {
            "Authorization": self.api_token,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        try:
            resp = requests.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.exceptions.Timeout:
            logger.warning(f"ServerAvatar timeout: {method} {url}")
            return None, _failure(
                "ServerAvatar did not respond in time.", "connection_error"
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"ServerAvatar request failed: {method} {url}: {e}")
            return None, _failure(
                f"Could not reach ServerAvatar: {e}", "connection_error"
            )

        try:
            body = resp.json() if resp.content else {}
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if resp.status_code >= 500:
            message = _error_message(body, f"ServerAvatar returned {resp.status_code}")
            logger.warning(f"ServerAvatar {resp.status_code}: {method} {url}: {message}")
            return body, _failure(message, "server_error")

        if resp.status_code >= 400:
            message = _error_message(body, f"ServerAvatar returned {resp.status_code}")
            code = "duplicate_domain" if is_duplicate_domain_message(message) else "api_error"
            logger.warning(f"ServerAvatar {resp.status_code}: {method} {url}: {message}")
            return body, _failure(message, code)

        return body, None

    # ──────────────────────────────────────────────
    # Applications
    # ──────────────────────────────────────────────

    def create_wordpress_site(self, server_id, domain, php_version=None):
        """Create a one-click WordPress application on `server_id`.

        On success data carries:
            application: {id, php_version}
            credentials: {system_username, system_password, wp_username,
                          wp_password, database_name}
        """
        credentials = generate_credentials(domain)
        php_version = php_version or self.default_php_version
        payload = {
            "name": _slug_for(domain, 30),
            "method": "one_click",
            "framework": "wordpress",
            "temp_domain": 0,
            "hostname": domain,
            "systemUser": "new",
            "systemUserInfo": {
                "username": credentials["system_username"],
                "password": credentials["system_password"],
            },
            "php_version": php_version,
            "webroot": "",
            "www": False,
            "title": domain,
            "username": credentials["wp_username"],
            "password": credentials["wp_password"],
            "email": f"{credentials['wp_username']}@{domain}",
            "database_name": credentials["database_name"],
        }

        body, error = self._request(
            "POST", self._url(server_id, "applications"), json=payload
        )
        if error:
            return error

        application = body.get("application")
        if not isinstance(application, dict):
            application = {}
        app_id = application.get("id")
        data = {
            "application": {
                "id": str(app_id) if app_id is not None else None,
                "php_version": application.get("php_version", php_version),
            },
            "credentials": credentials,
        }
        logger.info(f"ServerAvatar created application {app_id} for {domain} on server {server_id}")
        return _success(body.get("message") or "Application created.", data)

    def delete_application(self, server_id, application_id):
        _, error = self._request(
            "DELETE", self._url(server_id, f"applications/{application_id}")
        )
        if error:
            return error
        return _success("Application deleted.")

    def install_ssl(self, server_id, application_id, use_custom=True, force_https=True):
        """Install an SSL certificate on an application.

        use_custom=True asks for the custom (uploaded/wildcard) certificate,
        False for an automatic Let's Encrypt one.
        """
        payload = {
            "ssl_type": "custom" if use_custom else "automatic",
            "force_https": bool(force_https),
        }
        body, error = self._request(
            "POST", self._url(server_id, f"applications/{application_id}/ssl"), json=payload
        )
        if error:
            return error
        return _success(body.get("message") or "SSL installed.")

    # ──────────────────────────────────────────────
    # Databases
    # ──────────────────────────────────────────────

    def get_database_information(self, server_id, application_id):
        """Find the database attached to an application.

        data: {database_id, database_name, database_host}
        """
        body, error = self._request("GET", self._url(server_id, "databases"))
        if error:
            return error

        databases = body.get("databases") or []
        if isinstance(databases, dict):  # paginated shape
            databases = databases.get("data") or []

        for database in databases:
            if str(database.get("application_id")) == str(application_id):
                return _success(
                    "Database found.",
                    {
                        "database_id": str(database.get("id")),
                        "database_name": database.get("name"),
                        "database_host": database.get("host") or "localhost",
                    },
                )
        return _failure(
            f"No database attached to application {application_id}.", "api_error"
        )

    def get_database_users(self, server_id, database_id):
        """Read the first user of a database.

        data: {database_username, database_password}
        """
        body, error = self._request(
            "GET", self._url(server_id, f"databases/{database_id}/database-users")
        )
        if error:
            return error

        users = body.get("databaseUsers") or body.get("users") or []
        if not users:
            return _success("Database has no users.", {
                "database_username": None,
                "database_password": None,
            })
        first = users[0]
        return _success("Database users retrieved.", {
            "database_username": first.get("username"),
            "database_password": first.get("password"),
        })

    def delete_database(self, server_id, database_id, application_id=None):
        """Delete a database.

        When application_id is given the panel detaches the database from
        that application first (it refuses to drop attached databases).
        """
        params = {"application_id": application_id} if application_id else None
        _, error = self._request(
            "DELETE", self._url(server_id, f"databases/{database_id}"), params=params
        )
        if error:
            return error
        return _success("Database deleted.")
