import os
import logging.config

from dotenv import load_dotenv

load_dotenv()


def _env(name, default=None, *aliases):
    for key in (name,) + aliases:
        value = os.getenv(key)
        if value not in (None, ''):
            return value
    return default


def _env_bool(name, default=False, *aliases):
    value = _env(name, None, *aliases)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_int(name, default, *aliases):
    try:
        return int(_env(name, default, *aliases))
    except (TypeError, ValueError):
        return default


class Config:
    """Settings read from the environment (and .env) at import time."""

    SECRET_KEY = _env('SECRET_KEY', 'dev-secret-key-change-me')
    SQLALCHEMY_DATABASE_URI = _env('DATABASE_URL', 'sqlite:///first_timers.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    JWT_SECRET = _env('JWT_SECRET', SECRET_KEY)
    JWT_ALGORITHM = 'HS256'
    JWT_EXPIRATION_HOURS = _env_int('JWT_EXPIRATION_HOURS', 24)

    FRONTEND_URL = _env('FRONTEND_URL', 'http://localhost:3000')

    # Flask-Mail; the EMAIL_* names are what older deployments used
    MAIL_SERVER = _env('MAIL_SERVER', 'localhost', 'EMAIL_HOST')
    MAIL_PORT = _env_int('MAIL_PORT', 587, 'EMAIL_PORT')
    MAIL_USE_TLS = _env_bool('MAIL_USE_TLS', True)
    MAIL_USE_SSL = _env_bool('MAIL_USE_SSL', False, 'EMAIL_SECURE')
    MAIL_USERNAME = _env('MAIL_USERNAME', None, 'EMAIL_USER')
    MAIL_PASSWORD = _env('MAIL_PASSWORD', None, 'EMAIL_PASS')
    MAIL_DEFAULT_SENDER = _env('MAIL_DEFAULT_SENDER', 'no-reply@localhost', 'EMAIL_FROM')
    MAIL_SUPPRESS_SEND = _env_bool('MAIL_SUPPRESS_SEND', False)
    ADMIN_EMAIL = _env('ADMIN_EMAIL', '')

    PORT = _env_int('PORT', 5000)
    FOLLOW_UP_DUE_DAYS = _env_int('FOLLOW_UP_DUE_DAYS', 7)
    ITEMS_PER_PAGE = _env_int('ITEMS_PER_PAGE', 10)
    LOG_LEVEL = _env('LOG_LEVEL', 'INFO')


def configure_logging(level='INFO'):
    logging.config.dictConfig({
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'default': {
                'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'default',
            },
        },
        'root': {
            'handlers': ['console'],
            'level': str(level).upper(),
        },
        'loggers': {
            'werkzeug': {'level': 'WARNING'},
            'sqlalchemy.engine': {'level': 'WARNING'},
        },
    })
