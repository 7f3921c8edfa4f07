"""Offline asset cache for the application shell."""

import hashlib
import json
import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

import requests

from reminder_worker.config import WorkerConfig
from reminder_worker.errors import InstallFailed, NetworkUnavailable

logger = logging.getLogger(__name__)

INDEX_FILE = "index.json"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class CachedResponse:
    path: str
    status_code: int
    content: bytes
    content_type: str = DEFAULT_CONTENT_TYPE
    from_cache: bool = False


def _entry_file(path: str) -> str:
    return hashlib.sha256(path.encode("utf-8")).hexdigest()


class OfflineCacheManager:
    """Versioned on-disk cache of the manifest assets.

    Each version lives in its own directory under ``cache_root``. A version is
    either fully committed or absent: assets are downloaded into a hidden
    staging directory that is only renamed into place once every fetch
    succeeded.
    """

    def __init__(self, config: WorkerConfig, http: requests.Session = None):
        self.config = config
        self.root = Path(config.cache_root)
        self.name = config.cache_name
        self.http = http or requests.Session()

    @property
    def cache_dir(self) -> Path:
        return self.root / self.name

    def is_committed(self) -> bool:
        return (self.cache_dir / INDEX_FILE).is_file()

    def committed_caches(self) -> List[str]:
        """Names of every committed cache version, current one first."""
        if not self.root.is_dir():
            return []
        names = sorted(
            entry.name
            for entry in self.root.iterdir()
            if entry.is_dir() and not entry.name.startswith(".") and (entry / INDEX_FILE).is_file()
        )
        if self.name in names:
            names.remove(self.name)
            names.insert(0, self.name)
        return names

    def _url(self, path: str) -> str:
        return self.config.origin.rstrip("/") + "/" + path.lstrip("/")

    def install(self, manifest: Iterable[str] = None) -> int:
        """
        Fetch every manifest resource and commit them as one unit.

        Args:
            manifest: Resource paths, defaults to the configured manifest

        Returns:
            Number of cached resources

        Raises:
            InstallFailed: If any resource could not be fetched or the cache
                could not be moved into place. Nothing is committed and
                previously committed caches are left untouched.
        """
        manifest = list(self.config.manifest if manifest is None else manifest)
        self.root.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{self.name}-", dir=self.root))

        try:
            index = {}
            for path in manifest:
                try:
                    response = self.http.get(self._url(path), timeout=self.config.fetch_timeout)
                    response.raise_for_status()
                except requests.RequestException as e:
                    raise InstallFailed(path, str(e)) from e

                filename = _entry_file(path)
                (staging / filename).write_bytes(response.content)
                index[path] = {
                    "file": filename,
                    "status_code": response.status_code,
                    "content_type": response.headers.get("Content-Type", DEFAULT_CONTENT_TYPE),
                }

            (staging / INDEX_FILE).write_text(json.dumps(index, indent=2))
            try:
                self._commit(staging)
            except OSError as e:
                raise InstallFailed(self.name, str(e)) from e
        except Exception:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        logger.info(f"Cached {len(manifest)} resources in {self.name}")
        return len(manifest)

    def _commit(self, staging: Path):
        previous = None
        if self.cache_dir.exists():
            previous = self.root / f".{self.name}-replaced"
            if previous.exists():
                shutil.rmtree(previous)
            self.cache_dir.rename(previous)

        try:
            staging.rename(self.cache_dir)
        except OSError:
            if previous is not None:
                previous.rename(self.cache_dir)
            raise

        if previous is not None:
            shutil.rmtree(previous, ignore_errors=True)

    def _read(self, cache_name: str, path: str) -> Optional[CachedResponse]:
        cache_dir = self.root / cache_name
        try:
            index = json.loads((cache_dir / INDEX_FILE).read_text())
        except (OSError, ValueError):
            return None

        entry = index.get(path)
        if entry is None:
            return None

        try:
            content = (cache_dir / entry["file"]).read_bytes()
        except OSError as e:
            logger.warning(f"Cache {cache_name} is missing the body for {path}: {e}")
            return None

        return CachedResponse(
            path=path,
            status_code=entry.get("status_code", 200),
            content=content,
            content_type=entry.get("content_type", DEFAULT_CONTENT_TYPE),
            from_cache=True,
        )

    def match(self, path: str) -> Optional[CachedResponse]:
        """Look ``path`` up in the current cache, then in any other committed one."""
        for cache_name in self.committed_caches():
            cached = self._read(cache_name, path)
            if cached is not None:
                return cached
        return None

    def serve(self, path: str, method: str = "GET") -> CachedResponse:
        """
        Answer a request from the cache, falling back to the network.

        Raises:
            NetworkUnavailable: If the request is not cached and the network fetch fails
        """
        if method.upper() == "GET":
            cached = self.match(path)
            if cached is not None:
                return cached

        try:
            response = self.http.request(method, self._url(path), timeout=self.config.fetch_timeout)
        except requests.RequestException as e:
            logger.warning(f"Network fetch for {path} failed: {e}")
            raise NetworkUnavailable(path, str(e)) from e

        return CachedResponse(
            path=path,
            status_code=response.status_code,
            content=response.content,
            content_type=response.headers.get("Content-Type", DEFAULT_CONTENT_TYPE),
        )

    def purge_stale(self) -> List[str]:
        """Delete every cache directory other than the current one."""
        if not self.root.is_dir():
            return []

        removed = []
        for entry in self.root.iterdir():
            if entry.is_dir() and entry.name != self.name and not entry.name.startswith("."):
                shutil.rmtree(entry, ignore_errors=True)
                removed.append(entry.name)

        if removed:
            logger.info(f"Removed stale caches: {', '.join(sorted(removed))}")
        return removed
