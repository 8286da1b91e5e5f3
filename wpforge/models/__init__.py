# Models package: import all models here so Alembic can discover them.

from wpforge.models.user import User  # noqa: F401
from wpforge.models.server import Server  # noqa: F401
from wpforge.models.site import Site  # noqa: F401
from wpforge.models.setting import SystemSetting  # noqa: F401
from wpforge.models.audit import AuditEvent  # noqa: F401
