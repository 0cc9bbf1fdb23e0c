# handover_pkg/__init__.py

import logging

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from dotenv import load_dotenv

# Load environment variables from .env file.
load_dotenv()

from .config import DevelopmentConfig, ProductionConfig, TestingConfig, get_config

# Extensions are created unbound and attached to an app inside create_app,
# which keeps models importable without an application.
db = SQLAlchemy()
migrate = Migrate()


def create_app(config_name=None):
    """
    Application factory function.

    The handover engine is a library; the app only provides the database
    binding, the configuration and the logger the services run under.
    Without a ``config_name`` the configuration follows FLASK_ENV.
    """
    app = Flask(__name__)

    if config_name is None:
        app.config.from_object(get_config())
    elif config_name == 'production':
        app.config.from_object(ProductionConfig)
    elif config_name == 'testing':
        app.config.from_object(TestingConfig)
    else: # Default to development
        app.config.from_object(DevelopmentConfig)

    app.logger.setLevel(getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO))

    db.init_app(app)

    # Models must be imported before migrate sees the metadata.
    from . import models  # noqa: F401
    migrate.init_app(app, db)

    from .audit.listeners import register_audit_listeners
    register_audit_listeners()

    return app
