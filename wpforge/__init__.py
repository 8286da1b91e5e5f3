import os
import logging

import click
from flask import Flask, abort, redirect, render_template, url_for
from flask_login import current_user
from werkzeug.security import generate_password_hash

from wpforge.config import config_by_name
from wpforge.extensions import db, migrate, login_manager, csrf, limiter


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from wpforge import models  # noqa: F401

    # --- Register blueprints ---
    from wpforge.blueprints.auth import auth_bp
    from wpforge.blueprints.admin import admin_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)

    # --- Root route ---
    @app.route("/")
    def index():
        """Admins land on the site list; anonymous visitors on the login page."""
        if not current_user.is_authenticated:
            return redirect(url_for("auth.login"))
        if not current_user.is_admin:
            abort(403)
        return redirect(url_for("admin.site_list"))

    # --- Error handlers ---
    @app.errorhandler(403)
    def forbidden(e):
        return render_template("errors/403.html"), 403

    @app.errorhandler(404)
    def not_found(e):
        return render_template("errors/404.html"), 404

    @app.errorhandler(500)
    def server_error(e):
        return render_template("errors/500.html"), 500

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers ---
    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response."""
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Permissions-Policy"] = (
            "camera=(), microphone=(), geolocation=(), payment=()"
        )
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self' 'unsafe-inline'; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data:; "
            "connect-src 'self'; "
            "base-uri 'self'; "
            "form-action 'self'; "
            "frame-ancestors 'none';"
        )
        # Strict Transport Security (only in production)
        if not app.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("seed-admin")
    @click.option("--email", default="admin@wpforge.local", help="Admin email")
    @click.option("--password", default="admin123", help="Admin password")
    def seed_admin(email, password):
        """Create the admin user.

        Usage:
            flask seed-admin
            flask seed-admin --email admin@example.com --password s3cret
        """
        from wpforge.models.user import User

        existing = User.query.filter_by(email=email).first()
        if existing:
            click.echo(f"Admin user already exists: {email}")
            return

        admin = User(
            email=email,
            password_hash=generate_password_hash(password),
            full_name="Admin",
            is_admin=True,
        )
        db.session.add(admin)
        db.session.commit()
        click.echo(f"Created admin user: {email}")

    @app.cli.command("add-server")
    @click.option("--server-id", required=True, help="ServerAvatar server id")
    @click.option("--name", default=None, help="Display name")
    @click.option("--ip", "ip_address", default=None, help="Public IPv4 address")
    @click.option("--phpmyadmin-url", default=None, help="phpMyAdmin URL for this server")
    @click.option(
        "--status",
        type=click.Choice(["connected", "maintenance", "disconnected"]),
        default="connected",
        show_default=True,
    )
    def add_server(server_id, name, ip_address, phpmyadmin_url, status):
        """Register a ServerAvatar server in the pool (or update it).

        Usage:
            flask add-server --server-id 1234 --name web-1 --ip 203.0.113.10
        """
        from wpforge.models.server import Server

        server = Server.query.filter_by(server_id=server_id).first()
        created = server is None
        if created:
            server = Server(server_id=server_id)
            db.session.add(server)

        if name is not None:
            server.name = name
        if ip_address is not None:
            server.ip_address = ip_address
        if phpmyadmin_url is not None:
            server.phpmyadmin_url = phpmyadmin_url
        server.connection_status = status
        db.session.commit()

        verb = "Added" if created else "Updated"
        click.echo(f"{verb} server {server_id} ({server.name or 'unnamed'}): {status}")

    @app.cli.command("set-domain")
    @click.argument("domain")
    def set_domain(domain):
        """Set the base domain new sites are created under.

        Usage:
            flask set-domain sites.example.com
        """
        from wpforge.services.settings_service import DOMAIN_KEY, set_setting

        domain = domain.strip().lower()
        if not domain:
            raise click.BadParameter("Domain cannot be empty.")
        set_setting(DOMAIN_KEY, domain)
        click.echo(f"Base domain set to: {domain}")

    @app.cli.command("send-reminders")
    @click.option("--dry-run", is_flag=True, help="Show what would be sent without actually sending.")
    @click.option("--days", type=int, default=None, help="Override SITE_REMINDER_DAYS.")
    def send_reminders(dry_run, days):
        """Email site owners who asked for a reminder about their new site.

        Usage:
            flask send-reminders
            flask send-reminders --dry-run --days 3
        """
        from wpforge.services.reminder_service import process_reminders
        process_reminders(dry_run=dry_run, days=days)
