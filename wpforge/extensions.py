"""
Extension singletons, bound to the app in create_app().

The rate limiter reads RATELIMIT_STORAGE_URI from config, so production
can share counters across workers while tests and dev stay in memory.
"""

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_wtf.csrf import CSRFProtect
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
csrf = CSRFProtect()
limiter = Limiter(key_func=get_remote_address)

login_manager.login_view = "auth.login"
login_manager.login_message = "Please log in to manage sites and servers."
login_manager.login_message_category = "info"


@login_manager.user_loader
def load_user(user_id):
    from wpforge.models.user import User

    user = db.session.get(User, user_id)
    # Deactivated operators lose their session on the next request.
    if user is None or not user.is_active:
        return None
    return user
