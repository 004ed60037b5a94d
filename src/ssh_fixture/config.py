"""Configuration management for SSH Fixture."""

from importlib import resources
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ssh_fixture.exceptions import ValidationError
from ssh_fixture.utils.validation import Validator

HOSTKEY = "hostkey.pem"
FINGERPRINT = "17:f4:e0:32:9c:ba:b1:cd:a2:12:a6:24:13:2f:0b:c7"
RESOURCE_PACKAGE = "ssh_fixture.resources"


class ServerSettings(BaseSettings):
    """Server engine settings."""

    host: str = Field(default="127.0.0.1", description="Bind address")
    port: int = Field(
        default=0, ge=0, le=65535, description="Bind port, 0 to allocate one"
    )
    backlog: int = Field(default=100, ge=1)
    accept_timeout: float = Field(default=1.0, gt=0)
    negotiation_timeout: float = Field(default=15.0, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="SSH_FIXTURE_SERVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


class ClientConfig(BaseSettings):
    """Client connection settings."""

    connect_timeout: float = Field(default=10.0, gt=0)
    banner_timeout: float = Field(default=15.0, gt=0)
    auth_timeout: float = Field(default=15.0, gt=0)
    keepalive_interval: int = Field(default=0, ge=0)
    compress: bool = Field(default=False)

    model_config = SettingsConfigDict(
        env_prefix="SSH_FIXTURE_CLIENT_",
        env_file=".env",
        env_file_encoding="utf-8",
    )


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    level: str = Field(default="INFO")
    json_output: bool = Field(default=False)

    model_config = SettingsConfigDict(
        env_prefix="SSH_FIXTURE_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: object) -> str:
        """Upper-case the level name."""
        return str(v).strip().upper()


class FixtureConfig(BaseSettings):
    """Main configuration container."""

    auto_start: bool = Field(default=True)
    hostkey: str = Field(default=HOSTKEY, description="Host key resource name")
    fingerprint: str = Field(default=FINGERPRINT)
    server: ServerSettings = Field(default_factory=ServerSettings)
    client: ClientConfig = Field(default_factory=ClientConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="SSH_FIXTURE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def from_env(cls) -> "FixtureConfig":
        """Create configuration from environment variables."""
        return cls(
            server=ServerSettings(),
            client=ClientConfig(),
            logging=LoggingConfig(),
        )

    def validate_config(self) -> List[str]:
        """Validate configuration and return list of issues."""
        issues: List[str] = []

        if not resources.files(RESOURCE_PACKAGE).joinpath(self.hostkey).is_file():
            issues.append(f"Host key resource not found: {self.hostkey}")

        try:
            Validator.validate_fingerprint(self.fingerprint)
        except ValidationError as e:
            issues.append(str(e))

        if 0 < self.server.port < 1024:
            issues.append(f"Port {self.server.port} requires root privileges")

        return issues
