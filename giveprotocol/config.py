# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

import os
from typing import Optional
from dotenv import load_dotenv
from sqlalchemy.engine import URL

# Load environment variables from .env file
load_dotenv()

MYSQL_CONNECTION_INFO = {
    "host": os.getenv("MYSQL_HOST", "127.0.0.1"),
    "user": os.getenv("MYSQL_USER", None),
    "port": int(os.getenv("MYSQL_PORT", 3306)),
    "password": os.getenv("MYSQL_PASSWORD", None),
    "database": os.getenv("MYSQL_DATABASE", None)
}

def build_database_uri() -> str:
    """Build the SQLAlchemy URL for the MySQL Connector/Python driver."""
    override = os.getenv("DATABASE_URL")
    if override:
        return override

    return URL.create(
        "mysql+mysqlconnector",
        username=MYSQL_CONNECTION_INFO["user"],
        password=MYSQL_CONNECTION_INFO["password"],
        host=MYSQL_CONNECTION_INFO["host"],
        port=MYSQL_CONNECTION_INFO["port"],
        database=MYSQL_CONNECTION_INFO["database"],
        query={"charset": "utf8mb4"},
    ).render_as_string(hide_password=False)

class Config:
    """Application configuration."""

    # Flask Configuration
    DEBUG: bool = os.getenv("FLASK_DEBUG", "false").lower() == "true" or os.getenv("FLASK_ENV") == "development"
    TESTING: bool = False
    SECRET_KEY: str = os.getenv("SECRET_KEY", "your-secret-key-here")

    # Logging Configuration
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "DEBUG" if os.getenv("DEBUG_LOGGING") else "INFO")

    # Database Configuration
    SQLALCHEMY_DATABASE_URI: str = build_database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_size": int(os.getenv("DB_POOL_SIZE", "10")),
        "pool_pre_ping": True,   # replaces the periodic ping(reconnect=True)
        "pool_recycle": int(os.getenv("DB_POOL_RECYCLE", "3600")),
        "connect_args": {"connect_timeout": 30, "use_unicode": True},
    }

    # Discord Configuration
    DISCORD_WEBHOOK_URL: Optional[str] = os.getenv("DISCORD_WEBHOOK_URL")
    DISCORD_NOTIFICATIONS_ENABLED: bool = os.getenv("DISCORD_NOTIFICATIONS_ENABLED", "true").lower() == "true"

    # CORS
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")

    # Validation queue
    VALIDATION_BATCH_LIMIT: int = int(os.getenv("VALIDATION_BATCH_LIMIT", "100"))

class TestingConfig(Config):
    """Configuration used by the unit tests: in-memory SQLite, no Discord."""

    TESTING = True
    DEBUG = False
    SECRET_KEY = "testing"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    DISCORD_WEBHOOK_URL = None
    DISCORD_NOTIFICATIONS_ENABLED = False
    VALIDATION_BATCH_LIMIT = 10
