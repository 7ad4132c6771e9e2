"""Environment-driven configuration."""

import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

ENV = os.getenv("ENV")
ENV_IS_PROD = ENV == "prod"
COMMIT_HASH = os.getenv("COMMIT_HASH")

APP_ADDR = os.getenv("HOST", "0.0.0.0")
APP_PORT = int(os.getenv("PORT", "8000"))

# Which table set the messaging core talks to: "general" or "admin"
MESSAGING_BACKEND = os.getenv("MESSAGING_BACKEND", "general")

MESSAGE_PAGE_SIZE = int(os.getenv("MESSAGE_PAGE_SIZE", "30"))
DEFAULT_ORG_ID = os.getenv("DEFAULT_ORG_ID", "00000000-0000-0000-0000-000000000001")

# Local key/value file holding the org-scope fallback preference
PREFERENCES_PATH = os.getenv("PREFERENCES_PATH", ".club_messaging/preferences.json")

# PostgreSQL NOTIFY channel fed by the change triggers
CHANGE_FEED_CHANNEL = os.getenv("CHANGE_FEED_CHANNEL", "messaging_changes")
CHANGE_FEED_ENABLED = os.getenv("CHANGE_FEED_ENABLED", "true").lower() == "true"

MEMBER_DIRECTORY_CACHE_SIZE = int(os.getenv("MEMBER_DIRECTORY_CACHE_SIZE", "64"))

DATABASE_URL = os.getenv("DATABASE_URL")
SQL_DEBUG = os.getenv("SQL_DEBUG", "false").lower() == "true"
