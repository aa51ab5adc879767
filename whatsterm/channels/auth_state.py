"""
Folder-backed auth state for the chat socket.

Credentials live in <path>/creds.json and signal keys in one JSON file per
key (<type>-<id>.json). whatsterm never interprets their contents; it only
hands them to the socket factory and saves every credential update so a
restart can resume the same session.
"""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from pydantic_core import to_jsonable_python

from whatsterm.infra.logging_config import get_logger

logger = get_logger("auth_state")

CREDS_FILE = "creds.json"

SaveCreds = Callable[[Optional[dict[str, Any]]], None]


def _fix_file_name(name: str) -> str:
    return name.replace("/", "__").replace(":", "-")


def _write_json(path: Path, data: Any) -> None:
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(to_jsonable_python(data, bytes_mode="base64"), fh)
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp)
        raise


def _read_json(path: Path) -> Optional[Any]:
    try:
        with path.open(encoding="utf-8") as fh:
            return json.load(fh)
    except FileNotFoundError:
        return None


class FileKeyStore:
    """Signal key storage: get(type, ids) / set({type: {id: value | None}})."""

    def __init__(self, folder: Path) -> None:
        self.folder = folder

    def _path(self, kind: str, key_id: str) -> Path:
        return self.folder / _fix_file_name(f"{kind}-{key_id}.json")

    def get(self, kind: str, ids: Iterable[str]) -> dict[str, Any]:
        found: dict[str, Any] = {}
        for key_id in ids:
            value = _read_json(self._path(kind, key_id))
            if value is not None:
                found[key_id] = value
        return found

    def set(self, data: dict[str, dict[str, Any]]) -> None:
        for kind, entries in data.items():
            for key_id, value in entries.items():
                path = self._path(kind, key_id)
                if value is None:
                    with contextlib.suppress(FileNotFoundError):
                        path.unlink()
                else:
                    _write_json(path, value)


@dataclass
class AuthState:
    folder: Path
    creds: dict[str, Any] = field(default_factory=dict)
    keys: Optional[FileKeyStore] = None

    @property
    def is_registered(self) -> bool:
        return bool(self.creds.get("registered"))


def use_multi_file_auth_state(path: str | os.PathLike[str]) -> tuple[AuthState, SaveCreds]:
    """
    Load (or start) the auth state stored under path.

    Returns the state and a save callback. The callback merges the optional
    partial update into the in-memory credentials and rewrites creds.json.
    """
    folder = Path(path)
    if folder.exists() and not folder.is_dir():
        raise NotADirectoryError(f"Auth state path is not a folder: {folder}")
    folder.mkdir(parents=True, exist_ok=True)

    creds = _read_json(folder / CREDS_FILE) or {}
    state = AuthState(folder=folder, creds=creds, keys=FileKeyStore(folder))

    def save_creds(update: Optional[dict[str, Any]] = None) -> None:
        if update:
            state.creds.update(update)
        _write_json(folder / CREDS_FILE, state.creds)
        logger.debug("Saved credentials to %s", folder / CREDS_FILE)

    return state, save_creds
