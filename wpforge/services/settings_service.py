"""Settings service — runtime key/value settings stored in system_settings.

The base domain for new sites lives here so operators can change it
without a redeploy. BASE_DOMAIN in app config is the fallback.
"""

import logging

from flask import current_app

from wpforge.extensions import db
from wpforge.models.setting import SystemSetting

logger = logging.getLogger(__name__)

DOMAIN_KEY = "domain"


def get_setting(key, default=None):
    """Return the stored value for `key`, or `default` if unset/blank."""
    setting = SystemSetting.query.filter_by(key=key).first()
    if setting is None or setting.value in (None, ""):
        return default
    return setting.value


def set_setting(key, value):
    """Create or update a setting. Commits."""
    setting = SystemSetting.query.filter_by(key=key).first()
    if setting is None:
        setting = SystemSetting(key=key, value=value)
        db.session.add(setting)
    else:
        setting.value = value
    db.session.commit()
    logger.info(f"System setting '{key}' updated")
    return setting


def get_domain():
    """Base domain new sites are created under (e.g. "sites.example.com").

    Raises RuntimeError if neither the setting nor BASE_DOMAIN is set.
    """
    domain = get_setting(DOMAIN_KEY) or current_app.config.get("BASE_DOMAIN")
    if not domain:
        raise RuntimeError(
            "No base domain configured. Set it with `flask set-domain` "
            "or the BASE_DOMAIN environment variable."
        )
    return domain.strip().lower().strip(".")
