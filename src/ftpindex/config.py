"""Application configuration loading and defaults."""

from __future__ import annotations

import json
import posixpath
from pathlib import Path
from typing import List

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ftpindex.errors import ConfigError

DEFAULT_CONFIG_NAME = ".ftpindexrc"
DEFAULT_PORT = 21


def default_config_path() -> Path:
    return Path.home() / DEFAULT_CONFIG_NAME


def _get_default_db_path() -> Path:
    """Get the default database path for the current user."""
    return Path.home() / ".local" / "share" / "ftpindex" / "ftpindex.db"


class SiteConfig(BaseModel):
    """Connection and crawl settings for one remote site."""

    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    username: str = "anonymous"
    password: str = ""
    tls: bool = False
    connect_timeout: float = Field(default=10, gt=0)
    root: str = "/"

    @field_validator("root")
    @classmethod
    def _normalize_root(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("root must be an absolute path")
        return posixpath.normpath(value) if value != "/" else value

    @field_validator("address")
    @classmethod
    def _check_port(cls, value: str) -> str:
        if ":" in value and not value.rpartition(":")[2].isdigit():
            raise ValueError(f"invalid port in address: {value}")
        return value

    @property
    def host(self) -> str:
        if ":" not in self.address:
            return self.address
        return self.address.rpartition(":")[0]

    @property
    def port(self) -> int:
        if ":" not in self.address:
            return DEFAULT_PORT
        return int(self.address.rpartition(":")[2])


class AppConfig(BaseModel):
    database: Path | None = None
    sites: List[SiteConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_site_names(self) -> "AppConfig":
        seen: set[str] = set()
        for site in self.sites:
            if site.name in seen:
                raise ValueError(f"duplicate site name: {site.name}")
            seen.add(site.name)
        return self

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        if self.database is None:
            return _get_default_db_path()
        db_path = Path(self.database).expanduser()
        if db_path.is_absolute() or base_dir is None:
            return db_path
        return base_dir / db_path

    def site_names(self) -> list[str]:
        return [site.name for site in self.sites]

    def get_site(self, name: str) -> SiteConfig | None:
        for site in self.sites:
            if site.name == name:
                return site
        return None


def load_config(path: Path) -> AppConfig:
    """Read and validate a JSON configuration file."""
    path = Path(path).expanduser()
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"{path}: {exc.strerror or exc}") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path}: invalid JSON: {exc}") from exc
    try:
        return AppConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"{path}: {exc}") from exc
