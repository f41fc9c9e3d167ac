"""File cache for raw API responses"""
import hashlib
import json
import time
from pathlib import Path
from typing import Any, Optional

from ..utils.logger import setup_logger

logger = setup_logger(__name__)


class ResponseCache:
    """One JSON file per URL, valid for ttl_seconds after it was written"""

    def __init__(self, cache_dir: str = "cache", ttl_seconds: int = 3600):
        """
        Initialize response cache

        Args:
            cache_dir: Directory holding the cache files
            ttl_seconds: Age after which a cache entry is expired
        """
        self.cache_dir = Path(cache_dir)
        self.ttl_seconds = ttl_seconds

    def path_for(self, url: str) -> Path:
        """Cache file path for the given URL"""
        url_hash = hashlib.sha256(url.encode("utf-8")).hexdigest()
        return self.cache_dir / f"{url_hash}.json"

    def is_valid(self, url: str) -> bool:
        """Check whether a fresh cache entry exists for the URL"""
        path = self.path_for(url)
        try:
            if not path.exists():
                return False
            age = time.time() - path.stat().st_mtime
            return age < self.ttl_seconds
        except OSError as e:
            logger.error(f"Error checking cache validity: {e}")
            return False

    def read(self, url: str, allow_expired: bool = False) -> Optional[Any]:
        """
        Read cached data for the URL

        Args:
            url: Request URL
            allow_expired: Return the entry even if its TTL has passed

        Returns:
            Cached data, or None if there is no usable entry
        """
        if not allow_expired and not self.is_valid(url):
            return None

        path = self.path_for(url)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.error(f"Error reading from cache: {e}")
            return None

    def write(self, url: str, data: Any) -> bool:
        """Write data to the cache entry for the URL"""
        path = self.path_for(url)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error writing to cache: {e}")
            return False
