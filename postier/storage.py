"""Saved requests (.postier files): JSON documents written through postier.files."""
import dataclasses
import json
import logging
import os
from datetime import datetime, timezone
from typing import List

from .exceptions import FileSystemError, InvalidPostierFile
from .files import create_file, read_file
from .models import POSTIER_EXTENSION, FileSystemEntry, PostierRequest

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_extension(path: str) -> str:
    if not path.endswith(POSTIER_EXTENSION):
        path += POSTIER_EXTENSION
    return path


def dumps_request(request: PostierRequest) -> str:
    return json.dumps(request.to_dict(), indent=2, ensure_ascii=False)


def save_postier_request(file_path: str, request: PostierRequest) -> str:
    """Write request to file_path (extension added if missing) and return the path used.

    updated_at is set to now; created_at only when it was never set. The
    caller's request gets the new timestamps only once the write succeeded.
    """
    now = _now()
    saved = dataclasses.replace(request, updated_at=now, created_at=request.created_at or now)
    file_path = ensure_extension(file_path)
    create_file(file_path, dumps_request(saved))
    request.created_at = saved.created_at
    request.updated_at = saved.updated_at
    logger.debug(f"Saved {file_path}")
    return file_path


def load_postier_request(file_path: str) -> PostierRequest:
    content = read_file(file_path)
    try:
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        return PostierRequest.from_dict(data)
    except ValueError as e:
        raise InvalidPostierFile(f"failed to parse postier file {file_path}: {e}") from e


def list_postier_files(directory_path: str) -> List[FileSystemEntry]:
    try:
        with os.scandir(directory_path) as it:
            entries = list(it)
    except OSError as e:
        raise FileSystemError.wrap("read directory", e) from e

    postier_files = []
    for entry in entries:
        if not entry.name.endswith(POSTIER_EXTENSION):
            continue
        try:
            if entry.is_dir():
                continue
            st = entry.stat()
        except OSError as e:
            logger.warning(f"Skipping {entry.path}: {e}")
            continue
        postier_files.append(FileSystemEntry(
            name=entry.name,
            path=os.path.join(directory_path, entry.name),
            is_dir=False,
            size=st.st_size,
            modified=int(st.st_mtime),
        ))
    postier_files.sort(key=lambda e: e.name)
    return postier_files


def new_postier_request(parent_dir: str, name: str) -> str:
    """Create a blank GET request file named after name in parent_dir. Returns its path."""
    base_name = os.path.splitext(name.strip())[0]
    if not base_name:
        raise FileSystemError("failed to create request: empty name")
    file_path = os.path.join(parent_dir, base_name + POSTIER_EXTENSION)
    if os.path.lexists(file_path):
        raise FileSystemError(f"failed to create request: {file_path} already exists")
    now = _now()
    request = PostierRequest(name=base_name, created_at=now, updated_at=now)
    create_file(file_path, dumps_request(request))
    logger.info(f"Created {file_path}")
    return file_path
