"""Auth blueprint — /auth/*

Operator login and logout. There is no self-registration; operator
accounts are created with `flask seed-admin`. Successful logins are
written to the audit log and stamp `User.last_login_at`.
"""

import logging
from datetime import datetime, timezone

from flask import (
    Blueprint,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_login import current_user, login_user, logout_user
from werkzeug.security import check_password_hash

from wpforge.extensions import db, limiter
from wpforge.models.audit import AuditEvent
from wpforge.models.user import User

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _safe_next(target):
    """Relative paths only; anything else falls back to the site list."""
    if not target or not target.startswith("/") or target.startswith("//"):
        return url_for("admin.site_list")
    return target


def _login_error(message, email):
    flash(message, "error")
    return render_template(
        "auth/login.html",
        email=email,
        next_url=request.form.get("next", ""),
    )


# ══════════════════════════════════════════════
#  LOGIN
# ══════════════════════════════════════════════

@auth_bp.route("/login", methods=["GET", "POST"])
@limiter.limit(lambda: current_app.config["LOGIN_RATE_LIMIT"], methods=["POST"])
def login():
    if current_user.is_authenticated:
        return redirect(_safe_next(request.args.get("next")))

    if request.method == "GET":
        return render_template(
            "auth/login.html",
            next_url=request.args.get("next", ""),
        )

    email = request.form.get("email", "").lower().strip()
    password = request.form.get("password", "")

    if not email or not password:
        return _login_error("Email and password are required.", email)

    user = User.query.filter_by(email=email).first()
    if user is None or not check_password_hash(user.password_hash, password):
        logger.warning(f"Failed login for {email} from {request.remote_addr}")
        return _login_error("Invalid email or password.", email)

    if not user.is_active:
        logger.warning(f"Login refused for deactivated operator {email}")
        return _login_error("Your account has been deactivated.", email)

    login_user(user, remember=bool(request.form.get("remember")))
    user.last_login_at = datetime.now(timezone.utc)
    db.session.add(AuditEvent(
        actor_user_id=user.id,
        action="user.logged_in",
        metadata_={"ip": request.remote_addr},
    ))
    db.session.commit()
    logger.info(f"Operator {email} logged in")

    flash("Logged in successfully.", "success")
    return redirect(_safe_next(request.form.get("next") or request.args.get("next")))


# ══════════════════════════════════════════════
#  LOGOUT
# ══════════════════════════════════════════════

@auth_bp.route("/logout")
def logout():
    if current_user.is_authenticated:
        logger.info(f"Operator {current_user.email} logged out")
    logout_user()
    flash("You have been logged out.", "info")
    return redirect(url_for("auth.login"))
