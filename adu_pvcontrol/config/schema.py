"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from adu_pvcontrol.config.defaults import (
    ADU_LOG_FOLDER,
    ADU_SHELL_PATH,
    DOWNLOAD_RETRY_TIMEOUT_DEFAULT,
)


class LoggingConfig(BaseModel):
    """Handler log sinks."""

    model_config = ConfigDict(extra="ignore")

    folder: str = ADU_LOG_FOLDER
    file_enabled: bool = True
    console: bool = False
    rotation: str = "10 MB"
    retention: int = Field(default=3, ge=1)

    @property
    def folder_path(self) -> Path:
        return Path(self.folder).expanduser()


class ShellConfig(BaseModel):
    """How the handler reaches the privileged adu-shell helper."""

    model_config = ConfigDict(extra="ignore")

    path: str = ADU_SHELL_PATH
    timeout_seconds: float | None = Field(default=None, gt=0)


class DownloadConfig(BaseModel):
    """Payload download settings."""

    model_config = ConfigDict(extra="ignore")

    retry_timeout_seconds: int = Field(default=DOWNLOAD_RETRY_TIMEOUT_DEFAULT, ge=0)
    retry_interval_seconds: float = Field(default=30.0, ge=0)
    http_timeout_seconds: float = Field(default=60.0, gt=0)
    chunk_size: int = Field(default=64 * 1024, ge=1024)


class Config(BaseSettings):
    """Root configuration for the pvcontrol content handler."""

    model_config = SettingsConfigDict(
        extra="ignore",
        populate_by_name=True,
        env_prefix="ADU_PVCONTROL_",
        env_nested_delimiter="__",
    )

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    shell: ShellConfig = Field(default_factory=ShellConfig)
    download: DownloadConfig = Field(default_factory=DownloadConfig)

    @property
    def log_folder(self) -> str:
        return self.logging.folder
