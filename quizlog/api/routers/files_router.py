"""
File persistence router.

Endpoints for:
- Saving (writing or appending) text files under the storage root
- Recursive listing of the outcome and error trees
- Raw file reads
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse
from loguru import logger
from pydantic import BaseModel, Field

from quizlog.errors import UnsafePathError
from quizlog.records.backends import list_files_under, resolve_within

router = APIRouter()


# ========================================
# Request/Response Models
# ========================================


class SaveFileRequest(BaseModel):
    """Request model for saving a file."""

    filePath: Optional[str] = Field(None, description="Path relative to the storage root")
    content: Optional[str] = Field(None, description="Text to write")
    append: bool = Field(False, description="Append instead of overwriting")


class SaveFileResponse(BaseModel):
    success: bool
    message: str


class FileListResponse(BaseModel):
    success: bool
    files: list[str]
    count: int


def _base_dir(request: Request) -> Path:
    return request.app.state.base_dir


def _resolve(request: Request, relative_path: str) -> Path:
    try:
        return resolve_within(_base_dir(request), relative_path)
    except UnsafePathError as e:
        logger.warning(f"Rejected path {relative_path!r}: {e}")
        raise HTTPException(status_code=403, detail="Access denied")


# ========================================
# Save
# ========================================


@router.post("/api/save-file", response_model=SaveFileResponse, tags=["Files"])
def save_file(request: Request, body: SaveFileRequest) -> dict[str, Any]:
    """Write or append a UTF-8 text file, creating directories as needed."""
    if not body.filePath or body.content is None:
        raise HTTPException(status_code=400, detail="Missing filePath or content")

    target = _resolve(request, body.filePath)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "a" if body.append else "w", encoding="utf-8") as f:
            f.write(body.content)
    except OSError as e:
        logger.error(f"Failed to save {body.filePath}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

    logger.info(f"Saved {body.filePath} ({len(body.content)} chars, append={body.append})")
    return {"success": True, "message": "File saved successfully"}


# ========================================
# Listing
# ========================================


def _list(request: Request, root: str, ext: str) -> dict[str, Any]:
    try:
        files = list_files_under(_base_dir(request), root, ext)
    except UnsafePathError as e:
        logger.warning(f"Rejected listing root {root!r}: {e}")
        raise HTTPException(status_code=403, detail="Access denied")
    except OSError as e:
        logger.error(f"Failed to list {root}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

    logger.debug(f"Listed {len(files)} {ext} files under {root}/")
    return {"success": True, "files": files, "count": len(files)}


@router.get("/api/list-files", response_model=FileListResponse, tags=["Files"])
def list_files(
    request: Request,
    root: str = Query(..., description="Directory to scan, relative to the storage root"),
    ext: str = Query(".txt", description="File suffix to include"),
) -> dict[str, Any]:
    """Recursively list files under a directory, sorted, relative to it."""
    return _list(request, root, ext)


@router.get("/api/list-error-files", response_model=FileListResponse, tags=["Files"])
def list_error_files(request: Request) -> dict[str, Any]:
    return _list(request, request.app.state.errors_root, ".txt")


@router.get("/api/list-log-files", response_model=FileListResponse, tags=["Files"])
def list_log_files(request: Request) -> dict[str, Any]:
    return _list(request, request.app.state.results_root, ".txt")


# ========================================
# Reads
# ========================================


@router.get("/files/{file_path:path}", response_class=PlainTextResponse, tags=["Files"])
def read_file(request: Request, file_path: str) -> PlainTextResponse:
    """Return a file's text."""
    target = _resolve(request, file_path)
    if not target.is_file():
        raise HTTPException(status_code=404, detail="File not found")
    try:
        content = target.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Failed to read {file_path}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
    return PlainTextResponse(content, headers={"Cache-Control": "no-cache"})
