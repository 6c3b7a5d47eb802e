"""Configuration schema using Pydantic.

Policy configuration is loaded once at startup and never mutated afterwards;
changing it requires a restart.
"""

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from sqlapigate import __version__


class SqlConfig(BaseModel):
    """SQL Server tool configuration."""
    # SQLAlchemy URL (mssql+pyodbc://...) or a raw ODBC connection string.
    # Keep it in the environment (SQLAPIGATE_SQL__CONNECTION_STRING) rather than on disk.
    connection_string: str = ""
    block_ddl_operations: bool = True
    max_rows_returned: int = 10000  # 0 means unlimited
    query_timeout_seconds: int = 30  # 0 means no timeout


class HttpToolConfig(BaseModel):
    """Outbound HTTP tool configuration."""
    allowed_hosts: list[str] = Field(default_factory=list)  # exact hostnames, e.g. "api.github.com"
    default_timeout_seconds: int = 30
    max_timeout_seconds: int = 120
    # Development only: skips the allowlist entirely.
    allow_all_hosts: bool = False
    user_agent: str = f"sqlapigate/{__version__}"


class GatewayConfig(BaseModel):
    """HTTP transport bind address."""
    host: str = "127.0.0.1"
    port: int = 18800


class LoggingConfig(BaseModel):
    """Diagnostic logging (always stderr, optionally a rotating file)."""
    level: str = "INFO"
    file_enabled: bool = True


class Config(BaseSettings):
    """Root configuration for sqlapigate."""
    sql: SqlConfig = Field(default_factory=SqlConfig)
    http_tool: HttpToolConfig = Field(default_factory=HttpToolConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="SQLAPIGATE_",
        env_nested_delimiter="__",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Environment wins over the config file, matching appsettings + env layering.
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @property
    def logs_dir(self) -> Path:
        return Path.home() / ".sqlapigate" / "logs"


def validate_startup_config(config: Config) -> list[str]:
    """Return human-readable problems that must block startup."""
    problems: list[str] = []
    if not config.sql.connection_string.strip():
        problems.append(
            "SQL connection string is not configured. "
            "Set sql.connectionString in the config file or SQLAPIGATE_SQL__CONNECTION_STRING."
        )
    if config.sql.max_rows_returned < 0:
        problems.append("sql.maxRowsReturned must be >= 0")
    if config.sql.query_timeout_seconds < 0:
        problems.append("sql.queryTimeoutSeconds must be >= 0")
    if config.http_tool.default_timeout_seconds > config.http_tool.max_timeout_seconds:
        problems.append("httpTool.defaultTimeoutSeconds must not exceed httpTool.maxTimeoutSeconds")
    return problems
