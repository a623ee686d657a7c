"""Local JSON cache of per-URL indexing status, one file per site."""

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from engines.errors import CacheError
from engines.google_sc import convert_to_file_path
from engines.status import CacheEntry

CACHE_DIR = Path(".cache")


def cache_path(site_url: str, cache_dir: Path = CACHE_DIR) -> Path:
    return Path(cache_dir) / f"{convert_to_file_path(site_url)}.json"


def load_cache(site_url: str, cache_dir: Path = CACHE_DIR) -> dict[str, CacheEntry]:
    """Load the cache for a site. A missing file is an empty cache; a corrupt one raises CacheError."""
    path = cache_path(site_url, cache_dir)
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
        if not isinstance(raw, dict):
            raise ValueError("top-level value is not an object")
        return {url: CacheEntry.from_dict(entry) for url, entry in raw.items()}
    except (ValueError, KeyError, TypeError) as e:
        raise CacheError(f"Cache file {path} is corrupt ({e}). Fix or delete it to re-check every URL.") from e


def save_cache(site_url: str, pages: dict[str, CacheEntry], cache_dir: Path = CACHE_DIR) -> Path:
    """Write the whole cache for a site, replacing the previous file in one step."""
    path = cache_path(site_url, cache_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {url: entry.to_dict() for url, entry in pages.items()}

    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=path.name, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
    return path


def timestamp() -> datetime:
    """Current UTC time, truncated to whole seconds (the precision we persist)."""
    return datetime.now(timezone.utc).replace(microsecond=0)
