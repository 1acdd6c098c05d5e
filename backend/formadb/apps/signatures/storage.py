from __future__ import annotations

import logging
import os
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, List, Optional, TypeVar
from urllib.parse import unquote, urlparse

from ...errors import StoreFailure

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parents[3]

STORAGE_BACKEND = os.getenv("SIGNATURE_STORAGE_BACKEND", "local").strip().lower()
STORAGE_PATH = os.getenv("SIGNATURE_STORAGE_PATH", str(BASE_DIR / "generated" / "signatures"))
PUBLIC_BASE_URL = os.getenv("SIGNATURE_PUBLIC_BASE_URL", "/storage/signatures")
S3_BUCKET = os.getenv("SIGNATURE_S3_BUCKET", "").strip()
S3_PREFIX = os.getenv("SIGNATURE_S3_PREFIX", "signatures").strip().strip("/")

T = TypeVar("T")


def _retries() -> int:
    return int(os.getenv("SIGNATURE_STORAGE_RETRIES", "2") or "2")


def _with_retry(fn: Callable[[], T], retries: int, *, what: str, name: str) -> T:
    last_exc: Optional[Exception] = None
    for attempt in range(retries + 1):
        try:
            return fn()
        except Exception as exc:
            last_exc = exc
            logger.warning(
                "Signature asset operation failed",
                extra={"operation": what, "asset": name, "attempt": attempt + 1, "error": str(exc)},
            )
            if attempt < retries:
                time.sleep(min(0.2 * (attempt + 1), 1.0))
    raise StoreFailure(f"{what} failed for {name}: {last_exc}") from last_exc


class AssetStore(ABC):
    """
    Blob storage addressed by name.

    Every failure surfaces as StoreFailure so callers can tell storage
    problems apart from mapping problems.
    """

    @abstractmethod
    def download(self, name: str) -> bytes:
        ...

    @abstractmethod
    def upload(self, name: str, data: bytes, overwrite: bool = False) -> str:
        """Store ``data`` under ``name`` and return the stored name."""

    @abstractmethod
    def list_by_prefix(self, prefix: str) -> List[str]:
        ...

    @abstractmethod
    def public_url(self, name: str) -> str:
        ...

    def name_from_url(self, url: Optional[str]) -> Optional[str]:
        """
        Recover the asset name from a stored URL.

        URLs under this store's public base keep their relative path; any
        other URL yields its last path segment.
        """
        if not url:
            return None
        path = unquote(urlparse(url).path or url).rstrip("/")
        base_path = unquote(urlparse(self.public_base_url).path).rstrip("/")
        if base_path and path.startswith(base_path + "/"):
            return path[len(base_path) + 1:] or None
        return path.rsplit("/", 1)[-1] or None


class LocalAssetStore(AssetStore):
    def __init__(self, root: str | Path, public_base_url: str = PUBLIC_BASE_URL):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def _path(self, name: str) -> Path:
        target = (self.root / name).resolve()
        if self.root.resolve() not in target.parents and target != self.root.resolve():
            raise StoreFailure(f"Asset name escapes storage root: {name}")
        return target

    def download(self, name: str) -> bytes:
        path = self._path(name)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StoreFailure(f"download failed for {name}: {exc}") from exc

    def upload(self, name: str, data: bytes, overwrite: bool = False) -> str:
        path = self._path(name)
        if path.exists() and not overwrite:
            raise StoreFailure(f"asset already exists: {name}")

        def _write() -> str:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
            return name

        return _with_retry(_write, _retries(), what="upload", name=name)

    def list_by_prefix(self, prefix: str) -> List[str]:
        if not self.root.exists():
            return []
        try:
            return sorted(
                str(path.relative_to(self.root)).replace(os.sep, "/")
                for path in self.root.rglob("*")
                if path.is_file() and path.name.startswith(prefix)
            )
        except OSError as exc:
            raise StoreFailure(f"listing failed for prefix {prefix}: {exc}") from exc

    def public_url(self, name: str) -> str:
        return f"{self.public_base_url}/{name}"


class S3AssetStore(AssetStore):
    def __init__(self, bucket: str, prefix: str = S3_PREFIX, public_base_url: Optional[str] = None, client=None):
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.public_base_url = (public_base_url or f"https://{bucket}.s3.amazonaws.com").rstrip("/")
        self._client = client

    @property
    def client(self):
        if self._client is None:
            try:
                import boto3  # type: ignore
            except ImportError as exc:
                raise StoreFailure("Missing dependency 'boto3'. Install it with 'pip install boto3'.") from exc
            self._client = boto3.client("s3")
        return self._client

    def _key(self, name: str) -> str:
        return f"{self.prefix}/{name}" if self.prefix else name

    def _exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except Exception:
            return False

    def download(self, name: str) -> bytes:
        key = self._key(name)
        return _with_retry(
            lambda: self.client.get_object(Bucket=self.bucket, Key=key)["Body"].read(),
            _retries(),
            what="download",
            name=name,
        )

    def upload(self, name: str, data: bytes, overwrite: bool = False) -> str:
        key = self._key(name)
        if not overwrite and self._exists(key):
            raise StoreFailure(f"asset already exists: {name}")

        def _put() -> str:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType="image/png")
            return name

        return _with_retry(_put, _retries(), what="upload", name=name)

    def list_by_prefix(self, prefix: str) -> List[str]:
        full_prefix = self._key(prefix)

        def _list() -> List[str]:
            names: List[str] = []
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=full_prefix):
                for item in page.get("Contents", []):
                    key = item["Key"]
                    names.append(key[len(self.prefix) + 1:] if self.prefix else key)
            return names

        return _with_retry(_list, _retries(), what="list", name=prefix)

    def public_url(self, name: str) -> str:
        return f"{self.public_base_url}/{self._key(name)}"

    def name_from_url(self, url: Optional[str]) -> Optional[str]:
        name = super().name_from_url(url)
        if name and self.prefix and name.startswith(self.prefix + "/"):
            return name[len(self.prefix) + 1:]
        return name


def get_asset_store() -> AssetStore:
    if STORAGE_BACKEND == "s3":
        if not S3_BUCKET:
            raise RuntimeError("SIGNATURE_S3_BUCKET must be set when SIGNATURE_STORAGE_BACKEND=s3")
        return S3AssetStore(S3_BUCKET, S3_PREFIX, os.getenv("SIGNATURE_PUBLIC_BASE_URL") or None)
    return LocalAssetStore(STORAGE_PATH, PUBLIC_BASE_URL)
