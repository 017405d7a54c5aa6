"""
Django settings for the rslist project.

Deployment-specific values come from config.env (RSLIST_* environment
variables or a .env file); everything else is fixed here.
"""

from pathlib import Path

from config.env import get_env

BASE_DIR = Path(__file__).resolve().parent.parent

env = get_env()

SECRET_KEY = env.secret_key
DEBUG = env.debug
ALLOWED_HOSTS = env.allowed_hosts

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "ranking",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": env.db_engine,
        "NAME": env.db_name,
        "USER": env.db_user,
        "PASSWORD": env.db_password,
        "HOST": env.db_host,
        "PORT": env.db_port,
    }
}

if env.db_engine.endswith("sqlite3"):
    # SQLite ignores select_for_update(). BEGIN IMMEDIATE takes the write lock
    # up front so concurrent writers queue on the timeout instead of failing
    # with "database is locked". The test database is file-backed because the
    # shared-cache in-memory one does not honour the busy timeout across threads.
    DATABASES["default"].update({
        "NAME": str(BASE_DIR / env.db_name),
        "OPTIONS": {
            "transaction_mode": "IMMEDIATE",
            "timeout": env.db_timeout,
        },
        "TEST": {
            "NAME": str(BASE_DIR / f"test_{Path(env.db_name).name}"),
        },
    })

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = False
USE_TZ = True

# Authentication is out of scope; the API is open and JSON-only.
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "DEFAULT_PARSER_CLASSES": ["rest_framework.parsers.JSONParser"],
    "UNAUTHENTICATED_USER": None,
    "TEST_REQUEST_DEFAULT_FORMAT": "json",
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s | %(levelname)-8s | %(name)s - %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "ranking": {
            "handlers": ["console"],
            "level": env.log_level,
            "propagate": False,
        },
    },
}
