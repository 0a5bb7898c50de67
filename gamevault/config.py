"""Configuration management for the GameVault backend."""
import os
from enum import Enum
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

# Load .env file into os.environ at startup
# Priority: config/.env (Docker volume) > ./.env (local dev fallback)
_config_env = Path(os.environ.get("CONFIG_DIR", "./config")) / ".env"
if _config_env.exists():
    load_dotenv(_config_env, override=False)
else:
    load_dotenv(override=False)

_env_file = str(_config_env) if _config_env.exists() else ".env"


class DatabaseSystem(str, Enum):
    POSTGRESQL = "POSTGRESQL"
    SQLITE = "SQLITE"


class Settings(BaseSettings):
    """Application settings"""
    model_config = SettingsConfigDict(env_file=_env_file, extra="ignore")

    # API Server
    host: str = "127.0.0.1"
    port: int = 8080
    log_level: str = "INFO"

    # Database
    db_system: str = DatabaseSystem.POSTGRESQL.value  # DB_SYSTEM env var
    db_host: str = "localhost"
    db_port: int = 5432
    db_username: str = "gamevault"
    db_password: str = ""
    db_database: str = "gamevault"
    database_echo: bool = False  # Log SQL statements
    db_command_timeout: int = 3600  # seconds, for pg_dump/pg_restore etc.

    # Volumes / paths
    volumes_sqlitedb: str = "./sqlite"  # Directory holding database.sqlite
    volumes_images: str = "./images"
    temp_dir: str = "/tmp"  # Backup artifacts and restore staging files

    # Server
    server_admin_username: str = ""
    server_admin_password: str = ""
    server_account_activation_disabled: bool = False

    # Auth
    auth_secret: str = "change-me-in-production"
    auth_token_expires_hours: int = 720
    password_hash_rounds: int = 10

    # Testing switches
    testing_in_memory_db: bool = False
    testing_authentication_disabled: bool = False

    @property
    def sqlite_database_path(self) -> Path:
        """Location of the live SQLite database file."""
        return Path(self.volumes_sqlitedb) / "database.sqlite"

    @property
    def effective_database_url(self) -> str:
        """SQLAlchemy async URL for the configured database system."""
        if self.testing_in_memory_db:
            return "sqlite+aiosqlite:///:memory:"
        system = self.db_system.upper()
        if system == DatabaseSystem.SQLITE.value:
            return f"sqlite+aiosqlite:///{self.sqlite_database_path}"
        return URL.create(
            "postgresql+asyncpg",
            username=self.db_username,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_database,
        ).render_as_string(hide_password=False)


@lru_cache()
def get_settings() -> Settings:
    return Settings()


# Module-level settings instance for convenience
settings = get_settings()
