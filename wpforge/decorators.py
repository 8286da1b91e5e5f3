"""
Access control for the admin panel.

Browser requests keep the usual flow (login redirect, 403 page). AJAX calls
from the site-create form get a JSON body instead, so the page script can
show the message rather than swallowing a redirect to the login form.
"""

from functools import wraps

from flask import abort, current_app, jsonify, request
from flask_login import current_user


def wants_json():
    """True for XHR requests or when the client prefers JSON."""
    if request.headers.get("X-Requested-With") == "XMLHttpRequest":
        return True
    return request.accept_mimetypes.best == "application/json"


def admin_required(f):
    """Require a logged-in operator with is_admin set."""

    @wraps(f)
    def decorated(*args, **kwargs):
        if not current_user.is_authenticated:
            if wants_json():
                return jsonify({
                    "success": False,
                    "message": "Your session has expired. Please log in again.",
                }), 401
            return current_app.login_manager.unauthorized()

        if not current_user.is_admin:
            if wants_json():
                return jsonify({
                    "success": False,
                    "message": "Admin access required.",
                }), 403
            abort(403)

        return f(*args, **kwargs)

    return decorated
