"""
File backends: the persistence collaborators behind the Outcome Store.

A backend lists, reads, writes and appends text files addressed by paths
relative to a storage root. Two implementations:

- LocalFileBackend: direct filesystem access
- HttpFileBackend: the quizlog persistence API (see quizlog.api.main)
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol
from urllib.parse import quote

import httpx
from loguru import logger

from quizlog.errors import ListingUnavailableError, StorageError, UnsafePathError


class FileBackend(Protocol):
    """Operations the store needs from its storage collaborator."""

    def list_files(self, root: str, suffix: str = ".txt") -> list[str]:
        """Recursively list files under ``root`` with ``suffix``, sorted, relative to ``root``."""
        ...

    def read_text(self, path: str) -> str: ...

    def write_text(self, path: str, content: str) -> None: ...

    def append_text(self, path: str, content: str) -> None: ...


def resolve_within(base_dir: Path, relative_path: str) -> Path:
    """
    Resolve a relative path under ``base_dir``.

    Raises:
        UnsafePathError: The path is absolute or escapes ``base_dir``
    """
    base = base_dir.resolve()
    if not relative_path or Path(relative_path).is_absolute():
        raise UnsafePathError(f"Path must be relative: {relative_path!r}")
    target = (base / relative_path).resolve()
    if target != base and base not in target.parents:
        raise UnsafePathError(f"Path escapes storage root: {relative_path!r}")
    return target


def list_files_under(base_dir: Path, root: str, suffix: str = ".txt") -> list[str]:
    """Sorted relative paths (POSIX separators) of matching files under ``base_dir/root``."""
    root_dir = resolve_within(base_dir, root)
    if not root_dir.is_dir():
        logger.warning(f"Directory does not exist: {root_dir}")
        return []
    return sorted(
        p.relative_to(root_dir).as_posix()
        for p in root_dir.rglob(f"*{suffix}")
        if p.is_file()
    )


# =============================================================================
# Local filesystem
# =============================================================================


class LocalFileBackend:
    """Filesystem backend rooted at ``base_dir``."""

    def __init__(self, base_dir: Path | str):
        self.base_dir = Path(base_dir)

    def list_files(self, root: str, suffix: str = ".txt") -> list[str]:
        return list_files_under(self.base_dir, root, suffix)

    def read_text(self, path: str) -> str:
        return resolve_within(self.base_dir, path).read_text(encoding="utf-8-sig")

    def write_text(self, path: str, content: str) -> None:
        target = resolve_within(self.base_dir, path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    def append_text(self, path: str, content: str) -> None:
        target = resolve_within(self.base_dir, path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "a", encoding="utf-8") as f:
            f.write(content)


# =============================================================================
# HTTP API
# =============================================================================


class HttpFileBackend:
    """
    Backend that talks to the quizlog persistence API.

    Args:
        base_url: API base URL (ignored when ``client`` is given)
        client: Preconfigured httpx client, e.g. a FastAPI TestClient
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:3000",
        client: httpx.Client | None = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(base_url=self.base_url, timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def list_files(self, root: str, suffix: str = ".txt") -> list[str]:
        try:
            response = self._client.get("/api/list-files", params={"root": root, "ext": suffix})
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ListingUnavailableError(f"Listing {root!r} failed: {e}") from e

        if not payload.get("success"):
            raise ListingUnavailableError(payload.get("error") or f"Listing {root!r} failed")
        return sorted(payload.get("files", []))

    def read_text(self, path: str) -> str:
        try:
            response = self._client.get(f"/files/{quote(path)}")
        except httpx.HTTPError as e:
            raise StorageError(f"Reading {path!r} failed: {e}") from e
        if response.status_code == 404:
            raise FileNotFoundError(path)
        if response.is_error:
            raise StorageError(f"Reading {path!r} failed: HTTP {response.status_code}")
        return response.text

    def _save(self, path: str, content: str, append: bool) -> None:
        try:
            response = self._client.post(
                "/api/save-file",
                json={"filePath": path, "content": content, "append": append},
            )
        except httpx.HTTPError as e:
            raise StorageError(f"Saving {path!r} failed: {e}") from e
        if response.is_error:
            raise StorageError(f"Saving {path!r} failed: HTTP {response.status_code} {response.text}")
        logger.debug(f"Saved {path} via API (append={append})")

    def write_text(self, path: str, content: str) -> None:
        self._save(path, content, append=False)

    def append_text(self, path: str, content: str) -> None:
        self._save(path, content, append=True)
