"""
Flask Extensions Module

Extensions are created here and attached to the app in the factory.
"""

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_wtf.csrf import CSRFProtect


db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
limiter = Limiter(key_func=get_remote_address)
csrf = CSRFProtect()

login_manager.login_view = 'auth.login'
login_manager.login_message = 'Please sign in to access the dashboard.'
login_manager.login_message_category = 'info'
login_manager.session_protection = 'strong'
