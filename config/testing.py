import os

from config.base import *  # noqa: F401,F403

SECRET_KEY = "test-secret"

DEBUG = False
TESTING = True

ESCALATION_CONTACTS = {}
DISPATCH_RETRY_DELAY_SECONDS = 0.0
ASYNC_DISPATCH = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
