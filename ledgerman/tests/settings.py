"""
Django settings for Ledgerman tests.

Uses a file-backed SQLite database so threaded tests get real separate
connections. IMMEDIATE transactions take the write lock at BEGIN, which
serializes concurrent writers the way row locks do on other backends.
"""

import os
import tempfile

SECRET_KEY = "test-secret-key-for-ledgerman-tests"

DEBUG = True

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.admin",
    "ledgerman",
    "ledgerman.contrib.rewards",
]

MIDDLEWARE = [
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

_DB_PATH = os.path.join(tempfile.gettempdir(), "ledgerman_tests.sqlite3")

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": _DB_PATH,
        "OPTIONS": {
            "transaction_mode": "IMMEDIATE",
            "timeout": 20,
        },
        "TEST": {
            "NAME": _DB_PATH,
        },
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True
TIME_ZONE = "UTC"

LEDGERMAN = {
    "AUDIT_SINK": "ledgerman.adapters.audit.ModelAuditSink",
}
