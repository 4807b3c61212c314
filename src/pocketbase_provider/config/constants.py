"""Default paths, environment variable names, and constants."""

from __future__ import annotations

import platformdirs

APP_NAME = "pocketbase-provider"
APP_AUTHOR = "pocketbase-provider"

CONFIG_DIR = platformdirs.user_config_path(APP_NAME, APP_AUTHOR)
CONFIG_FILE = CONFIG_DIR / "config.toml"

# Environment variable names
ENV_SERVER_URL = "POCKETBASE_URL"
ENV_TOKEN = "POCKETBASE_TOKEN"
ENV_IDENTITY = "POCKETBASE_IDENTITY"
ENV_PASSWORD = "POCKETBASE_PASSWORD"
ENV_PROFILE = "POCKETBASE_PROFILE"

# API defaults
DEFAULT_API_BASE = "/api"
ADMIN_AUTH_PATH = "/admins/auth-with-password"
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_PAGE_SIZE = 200
