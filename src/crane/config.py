"""Configuration management using pydantic-settings."""

import tomllib
from pathlib import Path
from typing import Self
from urllib.parse import urlparse

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ROOT = "./papers"
DEFAULT_MIRROR = "https://sci-hub.se/"
DEFAULT_REGISTRY = "https://doi.org/"
DEFAULT_MAX_SIZE = 50_000_000  # 50MB
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; rv:78.0) Gecko/20100101 Firefox/78.0"
)
# The mirror serves the PDF directly (no iframe) to mobile browsers
DEFAULT_MIRROR_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 13_7 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/13.1.2 Mobile/15E148 Safari/604.1"
)
CONFIG_PATH = Path("~/.config/crane/config.toml").expanduser()


def _check_http_url(v: str) -> str:
    parsed = urlparse(v)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Invalid URL: {v!r}")
    return v


class PathsConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CRANE_PATHS_")

    root: Path = Path(DEFAULT_ROOT)
    tmp: Path | None = None  # parent for per-download temp dirs

    @field_validator("root", "tmp", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path | None) -> Path | None:
        if v is None:
            return None
        return Path(v).expanduser().absolute()


class MirrorConfig(BaseSettings):
    """Fallback document host queried by identifier."""

    model_config = SettingsConfigDict(env_prefix="CRANE_MIRROR_")

    url: str = DEFAULT_MIRROR

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        return _check_http_url(v)


class RegistryConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CRANE_REGISTRY_")

    url: str = DEFAULT_REGISTRY

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        return _check_http_url(v)


class HttpConfig(BaseSettings):
    """Outbound request settings.

    ``timeout`` bounds each read and write; ``max_size`` bounds a response
    body in bytes.
    """

    model_config = SettingsConfigDict(env_prefix="CRANE_HTTP_")

    timeout: float = 30.0
    connect_timeout: float = 10.0
    max_size: int = DEFAULT_MAX_SIZE
    user_agent: str = DEFAULT_USER_AGENT
    mirror_user_agent: str = DEFAULT_MIRROR_USER_AGENT


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CRANE_")

    paths: PathsConfig = PathsConfig()
    mirror: MirrorConfig = MirrorConfig()
    registry: RegistryConfig = RegistryConfig()
    http: HttpConfig = HttpConfig()

    @model_validator(mode="after")
    def ensure_dirs(self) -> Self:
        self.paths.root.mkdir(parents=True, exist_ok=True)
        if self.paths.tmp is not None:
            self.paths.tmp.mkdir(parents=True, exist_ok=True)
        return self


def load_settings(config_path: Path | None = None) -> Settings:
    """Load settings from TOML file, falling back to defaults."""
    path = config_path or CONFIG_PATH

    data = {}
    if path.exists():
        with open(path, "rb") as f:
            data = tomllib.load(f)

    # Relative paths resolve against the current directory at load time
    paths = PathsConfig(**data.get("paths", {}))
    mirror = MirrorConfig(**data.get("mirror", {}))
    registry = RegistryConfig(**data.get("registry", {}))
    http = HttpConfig(**data.get("http", {}))
    return Settings(paths=paths, mirror=mirror, registry=registry, http=http)
