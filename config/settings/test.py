# config/settings/test.py
from .base import *  # noqa

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# Small windows so pagination paths are exercised by ordinary fixtures.
BROADCAST_FETCH_PAGE_SIZE = 2
BROADCAST_ID_CHUNK_SIZE = 2
BROADCAST_PUSH_BATCH_SIZE = 2

LINE_CHANNEL_ACCESS_TOKEN = "test-channel-token"
