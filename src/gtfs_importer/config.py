"""Importer configuration.

Values come from a YAML file; credentials and a few deployment knobs may be
overridden from the environment (a `.env` file is honoured).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict
from urllib.parse import urlparse

import yaml
from dotenv import load_dotenv

from .errors import ConfigError

DEFAULT_HOST = "https://www.arcgis.com/sharing/rest"


def _get(d: Dict, *keys, default=None):
    cur = d
    for k in keys:
        if not isinstance(cur, dict):
            return default
        cur = cur.get(k)
        if cur is None:
            return default
    return cur


def _as_bool(value, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def load_config(path: str | Path) -> dict:
    p = Path(path)
    try:
        with open(p, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {p}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {p}: {e}") from e


@dataclass(frozen=True)
class ImportConfig:
    username: str
    password: str
    host: str = DEFAULT_HOST
    referer: str = "https://www.arcgis.com"
    timeout_seconds: float = 60.0
    group_id: str | None = None
    group_title: str = "GTFS Import"
    tags: str = "gtfs"
    share_everyone: bool = True
    share_org: bool = True
    max_workers: int | None = None
    runs_dir: Path | None = None
    log_file: Path | None = None

    @classmethod
    def from_params(cls, params: dict, env: Dict[str, str] | None = None) -> ImportConfig:
        env = os.environ if env is None else env
        username = env.get("ARCGIS_USERNAME") or _get(params, "arcgis", "username")
        password = env.get("ARCGIS_PASSWORD") or _get(params, "arcgis", "password")
        if not username or not password:
            raise ConfigError(
                "ArcGIS credentials are required. "
                "Set arcgis.username/arcgis.password or ARCGIS_USERNAME/ARCGIS_PASSWORD."
            )

        max_workers = _get(params, "executor", "max_workers")
        if max_workers is not None:
            try:
                max_workers = int(max_workers)
            except (TypeError, ValueError) as e:
                raise ConfigError(
                    f"executor.max_workers must be a positive integer, got {max_workers!r}."
                ) from e
            if max_workers <= 0:
                raise ConfigError("executor.max_workers must be a positive integer.")

        host = env.get("ARCGIS_HOST") or _get(params, "arcgis", "host", default=DEFAULT_HOST)
        parsed = urlparse(str(host))
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigError(f"arcgis.host must be an absolute http(s) URL, got {host!r}.")

        runs_dir = _get(params, "project", "runs_dir")
        log_file = _get(params, "project", "log_file")
        return cls(
            username=str(username),
            password=str(password),
            host=str(host),
            referer=_get(params, "arcgis", "referer", default="https://www.arcgis.com"),
            timeout_seconds=float(_get(params, "arcgis", "timeout_seconds", default=60.0)),
            group_id=env.get("GTFS_GROUP_ID") or _get(params, "import", "group_id"),
            group_title=_get(params, "import", "group_title", default="GTFS Import"),
            tags=_get(params, "import", "tags", default="gtfs"),
            share_everyone=_as_bool(_get(params, "import", "share", "everyone"), True),
            share_org=_as_bool(_get(params, "import", "share", "org"), True),
            max_workers=max_workers,
            runs_dir=Path(runs_dir) if runs_dir else None,
            log_file=Path(log_file) if log_file else None,
        )

    @classmethod
    def load(cls, path: str | Path) -> ImportConfig:
        load_dotenv()
        return cls.from_params(load_config(path))
