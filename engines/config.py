"""Settings for indexing runs — fixed limits, credential options, config.yaml."""

import os
from dataclasses import dataclass, replace
from datetime import timedelta
from pathlib import Path
from typing import Mapping

import yaml

from engines.errors import ConfigError
from engines.status import INDEXABLE_STATUSES, STALENESS_POLICIES

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"

ENV_CLIENT_EMAIL = "GIS_CLIENT_EMAIL"
ENV_PRIVATE_KEY = "GIS_PRIVATE_KEY"
ENV_PATH = "GIS_PATH"
ENV_URLS = "GIS_URLS"
ENV_RPM_RETRY = "GIS_QUOTA_RPM_RETRY"

SETTING_KEYS = {"batch_size", "freshness_days", "rpm_retries", "rpm_waiting_time", "staleness_policy", "cache_dir"}


@dataclass(frozen=True)
class IndexerSettings:
    batch_size: int = 50
    freshness_window: timedelta = timedelta(days=14)
    rpm_retries: int = 3
    rpm_waiting_time: float = 60.0  # seconds between rate-limited retries
    indexable_statuses: frozenset = INDEXABLE_STATUSES
    staleness_policy: str = "failure-or-age"
    cache_dir: Path = Path(".cache")

    def __post_init__(self):
        if self.staleness_policy not in STALENESS_POLICIES:
            choices = ", ".join(STALENESS_POLICIES)
            raise ConfigError(f"Unknown staleness_policy '{self.staleness_policy}' (choose from {choices})")
        if self.batch_size < 1:
            raise ConfigError(f"batch_size must be positive, got {self.batch_size}")
        if self.rpm_retries < 0:
            raise ConfigError(f"rpm_retries must not be negative, got {self.rpm_retries}")


@dataclass
class IndexOptions:
    client_email: str | None = None
    private_key: str | None = None
    path: str | None = None
    urls: list[str] | None = None
    rpm_retry: bool | None = None


def _split_urls(value: str | None) -> list[str] | None:
    if not value:
        return None
    urls = [u.strip() for u in value.split(",") if u.strip()]
    return urls or None


def resolve_options(
    options: IndexOptions | None = None,
    args: Mapping | None = None,
    environ: Mapping | None = None,
) -> IndexOptions:
    """Fill unset options from command-line flags, then environment variables.

    Explicit values on ``options`` always win. ``args`` uses flag names
    (``client-email``, ``private-key``, ``path``, ``urls``, ``rpm-retry``).
    """
    opts = replace(options) if options else IndexOptions()
    args = args or {}
    environ = os.environ if environ is None else environ

    if opts.client_email is None:
        opts.client_email = args.get("client-email") or environ.get(ENV_CLIENT_EMAIL)
    if opts.private_key is None:
        opts.private_key = args.get("private-key") or environ.get(ENV_PRIVATE_KEY)
    if opts.path is None:
        opts.path = args.get("path") or environ.get(ENV_PATH)
    if opts.urls is None:
        flag_urls = args.get("urls")
        if isinstance(flag_urls, str):
            flag_urls = _split_urls(flag_urls)
        opts.urls = flag_urls or _split_urls(environ.get(ENV_URLS))
    if opts.rpm_retry is None:
        flag = args.get("rpm-retry")
        if flag is not None:
            opts.rpm_retry = flag if isinstance(flag, bool) else str(flag).lower() == "true"
        else:
            opts.rpm_retry = environ.get(ENV_RPM_RETRY, "").lower() == "true"
    return opts


def load_config(path: Path = CONFIG_PATH) -> dict:
    """Read config.yaml. A missing file is an empty config."""
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            cfg = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"{path} is not valid YAML: {e}") from e
    if cfg is None:
        return {}
    if not isinstance(cfg, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return cfg


def settings_from_config(cfg: dict) -> IndexerSettings:
    """Build IndexerSettings from the ``indexing:`` section of config.yaml."""
    section = cfg.get("indexing") or {}
    unknown = set(section) - SETTING_KEYS
    if unknown:
        raise ConfigError(f"Unknown indexing settings: {', '.join(sorted(unknown))}")

    kwargs = {}
    try:
        if "batch_size" in section:
            kwargs["batch_size"] = int(section["batch_size"])
        if "freshness_days" in section:
            kwargs["freshness_window"] = timedelta(days=float(section["freshness_days"]))
        if "rpm_retries" in section:
            kwargs["rpm_retries"] = int(section["rpm_retries"])
        if "rpm_waiting_time" in section:
            kwargs["rpm_waiting_time"] = float(section["rpm_waiting_time"])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid indexing setting in config.yaml: {e}") from e
    if "staleness_policy" in section:
        kwargs["staleness_policy"] = str(section["staleness_policy"])
    if "cache_dir" in section:
        kwargs["cache_dir"] = Path(section["cache_dir"]).expanduser()
    return IndexerSettings(**kwargs)


def credential_path_from_config(cfg: dict) -> str | None:
    return (cfg.get("google") or {}).get("service_account_file") or None
