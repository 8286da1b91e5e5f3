"""Admin blueprint — /admin/*

Site provisioning and the server pool. All routes protected by
@admin_required. Site routes use the public `uuid`, never the row id.

Route Map:
  GET  /admin/                              — Redirect to site list
  GET  /admin/sites                         — Site list + create form
  POST /admin/sites                         — Create site (form or AJAX)
  GET  /admin/sites/<uuid>                  — Site detail + credentials
  POST /admin/sites/<uuid>/delete           — Deprovision and delete site
  GET  /admin/servers                       — Server pool
  POST /admin/servers/<id>/reconnect        — Put a server back in rotation
"""

import logging

from flask import (
    Blueprint,
    abort,
    flash,
    jsonify,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_login import current_user

from wpforge.decorators import admin_required, wants_json
from wpforge.extensions import db
from wpforge.models.audit import AuditEvent
from wpforge.models.server import Server
from wpforge.models.site import Site
from wpforge.services import settings_service
from wpforge.services.deprovisioning_service import (
    PARTIAL_SUCCESS,
    SiteNotFoundError,
    deprovision_site,
)
from wpforge.services.provisioning_service import FailureKind, provision_site

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")

# Failures caused by operator input get 422; everything else is ours / remote.
CLIENT_ERROR_KINDS = (FailureKind.VALIDATION, FailureKind.CONFLICT)


def _render_site_list(form_data=None, errors=None, open_create_modal=False):
    sites = Site.query.order_by(Site.created_at.desc()).all()
    servers = Server.query.order_by(Server.name.asc()).all()
    try:
        domain = settings_service.get_domain()
    except RuntimeError:
        domain = None
    return render_template(
        "admin/sites.html",
        sites=sites,
        servers=servers,
        domain=domain,
        form_data=form_data or {},
        errors=errors or {},
        open_create_modal=open_create_modal,
    )


@admin_bp.route("/")
@admin_required
def dashboard():
    return redirect(url_for("admin.site_list"))


# ══════════════════════════════════════════════
#  SITES
# ══════════════════════════════════════════════

@admin_bp.route("/sites", methods=["GET"])
@admin_required
def site_list():
    """All sites, newest first, with the create form."""
    return _render_site_list()


@admin_bp.route("/sites", methods=["POST"])
@admin_required
def site_create():
    """Provision a new WordPress site.

    Failures answer 422 for input problems and 500 otherwise. AJAX callers
    get JSON; form posts get the site list re-rendered with a flash message
    and the form errors. Success redirects to the site detail page.
    """
    subdomain = request.form.get("subdomain", "").strip()
    reminder = request.form.get("reminder") == "on"
    email = request.form.get("email", "").strip() or None

    logger.debug(f"Site creation request: subdomain={subdomain!r} reminder={reminder}")

    result = provision_site(
        subdomain,
        reminder=reminder,
        email=email,
        actor_user_id=current_user.id,
    )

    if not result.ok:
        status = 422 if result.kind in CLIENT_ERROR_KINDS else 500
        if wants_json():
            payload = {"success": False, "message": result.message}
            if result.errors:
                payload["errors"] = {k: [v] for k, v in result.errors.items()}
            return jsonify(payload), status

        flash(result.message, "error")
        return _render_site_list(
            form_data=request.form,
            errors=result.errors,
            open_create_modal=True,
        ), status

    detail_url = url_for("admin.site_detail", site_uuid=result.site.uuid)
    if wants_json():
        return jsonify({
            "success": True,
            "message": result.message,
            "redirect": detail_url,
            "warnings": result.warnings,
        })

    flash(result.message, "success")
    for warning in result.warnings:
        flash(warning, "warning")
    return redirect(detail_url)


@admin_bp.route("/sites/<site_uuid>")
@admin_required
def site_detail(site_uuid):
    """Site detail: domain, server, credentials, SSL/DNS state."""
    site = Site.query.filter_by(uuid=site_uuid).first()
    if site is None:
        abort(404)
    return render_template(
        "admin/site_detail.html", site=site, audit=site.audit_record
    )


@admin_bp.route("/sites/<site_uuid>/delete", methods=["POST"])
@admin_required
def site_delete(site_uuid):
    """Remove the site from the server, its database and DNS, then locally."""
    try:
        result = deprovision_site(site_uuid, actor_user_id=current_user.id)
    except SiteNotFoundError:
        abort(404)

    category = "warning" if result.status == PARTIAL_SUCCESS else "success"
    flash(result.message, category)
    return redirect(url_for("admin.site_list"))


# ══════════════════════════════════════════════
#  SERVERS
# ══════════════════════════════════════════════

@admin_bp.route("/servers")
@admin_required
def server_list():
    """Server pool with connection status and site counts."""
    servers = Server.query.order_by(Server.name.asc()).all()
    return render_template("admin/servers.html", servers=servers)


@admin_bp.route("/servers/<server_id>/reconnect", methods=["POST"])
@admin_required
def server_reconnect(server_id):
    """Mark a server as connected again (e.g. after maintenance)."""
    server = db.session.get(Server, server_id)
    if server is None:
        flash("Server not found.", "error")
        return redirect(url_for("admin.server_list"))

    if server.connection_status == "connected":
        flash(f"Server '{server.name or server.server_id}' is already connected.", "info")
        return redirect(url_for("admin.server_list"))

    old_status = server.connection_status
    server.connection_status = "connected"
    db.session.add(AuditEvent(
        actor_user_id=current_user.id,
        action="server.reconnected",
        metadata_={
            "server_id": server.server_id,
            "old_status": old_status,
        },
    ))
    db.session.commit()

    flash(f"Server '{server.name or server.server_id}' is back in rotation.", "success")
    return redirect(url_for("admin.server_list"))
