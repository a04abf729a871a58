"""Remote editor configuration management.

Configuration sources (in priority order):
1. Environment variables (REMOTE_EDITOR_ prefix)
2. Config file (remote-editor.yaml)
3. Defaults
"""

from __future__ import annotations

import tempfile
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerConfig(BaseModel):
    """Connection settings for one remote server.

    Owned by the vault; the engine only reads it.
    """

    name: str
    host: str = ""
    port: int = 21
    user: str = ""
    password: str = ""
    sftp: bool = False
    remote: str = "/"
    temp: bool = False  # added via URI handler, not persisted


class MirrorConfig(BaseModel):
    """Local mirror configuration."""

    # Each server is mirrored under <local_root>/<server name>
    local_root: str = str(Path(tempfile.gettempdir()) / "remote-editor")


class TransferConfig(BaseModel):
    """Transfer queue configuration."""

    history_size: int = Field(default=50, gt=0)
    upload_priority: int = 1
    # Seconds; None leaves liveness to the connector
    call_timeout: float | None = None


class TreeConfig(BaseModel):
    """Tree view configuration."""

    hide_ignored_names: bool = False
    ignored_names: list[str] = Field(
        default_factory=lambda: [".git", ".hg", ".svn", ".DS_Store", "Thumbs.db"]
    )


class FinderConfig(BaseModel):
    """Finder index configuration."""

    ignored_names: list[str] = Field(default_factory=lambda: ["node_modules", "vendor"])
    # Directories listed between two "update" events during a build
    page_size: int = Field(default=20, gt=0)


class NotificationsConfig(BaseModel):
    """User notification configuration."""

    show_on_upload: bool = True


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    json_logs: bool = False


class Settings(BaseSettings):
    """Remote editor settings."""

    model_config = SettingsConfigDict(
        env_prefix="REMOTE_EDITOR_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    mirror: MirrorConfig = Field(default_factory=MirrorConfig)
    transfer: TransferConfig = Field(default_factory=TransferConfig)
    tree: TreeConfig = Field(default_factory=TreeConfig)
    finder: FinderConfig = Field(default_factory=FinderConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    servers: list[ServerConfig] = Field(default_factory=list)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # File values arrive as init kwargs; environment must win over them.
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    def get_server(self, name: str) -> ServerConfig | None:
        """Get server config by name."""
        for server in self.servers:
            if server.name == name:
                return server
        return None


def _load_config_file() -> dict:
    """Load configuration from YAML file if exists.

    Looks for config file in order:
    1. REMOTE_EDITOR_CONFIG_FILE environment variable
    2. ./remote-editor.yaml
    3. ~/.config/remote-editor/config.yaml
    """
    import os

    config_paths = [
        os.environ.get("REMOTE_EDITOR_CONFIG_FILE"),
        Path("remote-editor.yaml"),
        Path.home() / ".config" / "remote-editor" / "config.yaml",
    ]

    for path in config_paths:
        if path is None:
            continue
        path = Path(path)
        if path.exists():
            with open(path) as f:
                return yaml.safe_load(f) or {}

    return {}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Configuration is loaded from:
    1. YAML config file (if exists)
    2. Environment variables (override)
    3. Defaults
    """
    file_config = _load_config_file()

    # Environment variables will override via pydantic-settings
    return Settings(**file_config)
