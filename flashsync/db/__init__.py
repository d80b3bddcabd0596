from pathlib import Path

from flashsync.config import settings
from flashsync.db.cache import CacheStore
from flashsync.db.kv import SqliteMedium


def open_cache(data_dir: Path) -> CacheStore:
    data_dir.mkdir(parents=True, exist_ok=True)
    return CacheStore(SqliteMedium(data_dir / settings.cache_filename))
