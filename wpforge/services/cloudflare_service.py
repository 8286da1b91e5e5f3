"""Cloudflare service — DNS records for site subdomains.

Creates one proxied A record per site (subdomain → server IP) inside the
zone of our base domain, and removes it when the site is deleted.

Talks to the Cloudflare v4 REST API directly with requests. Methods
return plain dicts and never raise for HTTP or transport problems:

    create_a_record   -> {"success", "record_id", "message"}
    delete_dns_record -> {"success", "message"}
"""

import logging

import requests
from flask import current_app

logger = logging.getLogger(__name__)


def _cf_error_message(body, fallback):
    """Join Cloudflare's errors[] messages, if any."""
    if not isinstance(body, dict):
        return fallback
    errors = body.get("errors") or []
    messages = [e.get("message", "") for e in errors if isinstance(e, dict)]
    messages = [m for m in messages if m]
    return "; ".join(messages) or fallback


class CloudflareClient:
    """DNS record management for a single Cloudflare zone."""

    def __init__(self, api_token, zone_id, base_url, timeout=30):
        self.api_token = api_token
        self.zone_id = zone_id
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_app(cls, app=None):
        """Build a client from the current app config."""
        config = (app or current_app).config
        return cls(
            api_token=config.get("CLOUDFLARE_API_TOKEN"),
            zone_id=config.get("CLOUDFLARE_ZONE_ID"),
            base_url=config.get("CLOUDFLARE_API_URL"),
            timeout=config.get("CLOUDFLARE_TIMEOUT", 30),
        )

    def is_configured(self):
        return bool(self.api_token and self.zone_id and self.base_url)

    def _records_url(self, record_id=None):
        url = f"{self.base_url}/zones/{self.zone_id}/dns_records"
        return f"{url}/{record_id}" if record_id else url

    def _request(self, method, url, **kwargs):
        """Send a request. Returns (body, error_message_or_None)."""
        headers = {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
        }
        try:
            resp = requests.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.exceptions.Timeout:
            logger.warning(f"Cloudflare timeout: {method} {url}")
            return None, "Cloudflare did not respond in time."
        except requests.exceptions.RequestException as e:
            logger.warning(f"Cloudflare request failed: {method} {url}: {e}")
            return None, f"Could not reach Cloudflare: {e}"

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if resp.status_code >= 400 or not body.get("success", False):
            message = _cf_error_message(body, f"Cloudflare returned {resp.status_code}")
            logger.warning(f"Cloudflare {resp.status_code}: {method} {url}: {message}")
            return body, message

        return body, None

    def create_a_record(self, name, ip_address, proxied=True, ttl=300):
        """Create an A record `name` → `ip_address`.

        `name` may be just the subdomain label; Cloudflare appends the zone.
        Proxied records always use TTL 1 ("automatic").
        """
        payload = {
            "type": "A",
            "name": name,
            "content": ip_address,
            "proxied": bool(proxied),
            "ttl": 1 if proxied else ttl,
        }
        body, error = self._request("POST", self._records_url(), json=payload)
        if error:
            return {"success": False, "record_id": None, "message": error}

        result = body.get("result")
        record_id = result.get("id") if isinstance(result, dict) else None
        logger.info(f"Created A record: {name} -> {ip_address} (id={record_id})")
        return {"success": True, "record_id": record_id, "message": "DNS record created."}

    def delete_dns_record(self, record_id):
        """Delete a DNS record by ID."""
        _, error = self._request("DELETE", self._records_url(record_id))
        if error:
            return {"success": False, "message": error}

        logger.info(f"Deleted DNS record: {record_id}")
        return {"success": True, "message": "DNS record deleted."}
