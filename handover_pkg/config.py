# handover_pkg/config.py
import os


class Config:
    """Base configuration settings."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you_REALLY_should_set_a_secret_key_in_env'

    # Database
    # Default to SQLite if DATABASE_URL is not set in the environment
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///handover_default.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Handover listing
    HANDOVER_PAGE_LIMIT = int(os.environ.get('HANDOVER_PAGE_LIMIT', 20))
    HANDOVER_MAX_PAGE_LIMIT = int(os.environ.get('HANDOVER_MAX_PAGE_LIMIT', 100))

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    """Development-specific configuration."""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('DEV_DATABASE_URL') or os.environ.get('DATABASE_URL') or 'sqlite:///handover_dev.db'
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class TestingConfig(Config):
    """Testing-specific configuration."""
    TESTING = True
    DEBUG = True
    # In-memory SQLite unless a dedicated test database is configured
    SQLALCHEMY_DATABASE_URI = os.environ.get('TEST_DATABASE_URL') or 'sqlite://'


class ProductionConfig(Config):
    """Production-specific configuration."""
    DEBUG = False
    TESTING = False

    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///prod_fallback.db'  # Fallback for local testing
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'WARNING')

    if Config.SECRET_KEY == 'you_REALLY_should_set_a_secret_key_in_env' and os.environ.get('FLASK_ENV', '').lower() == 'production':
        raise ValueError("SECRET_KEY not set via environment variable for production")


def get_config():
    """Helper function to get the correct config class based on FLASK_ENV."""
    env = os.environ.get('FLASK_ENV', 'development').lower()
    if env == 'production':
        return ProductionConfig
    elif env == 'testing':
        return TestingConfig
    return DevelopmentConfig
