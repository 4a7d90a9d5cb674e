"""
JSON file-backed local store.

Keeps the whole store in memory and rewrites a single JSON file after
every change:
- Atomic writes using temp file + rename
- Timestamps and binary values are tagged on disk and restored on load
"""

from __future__ import annotations

import base64
import json
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from ..exceptions import StoreIOError
from ..protocol import TYPE_TAG, DataStore, validate_value
from .memory import InMemoryStore


def encode_value(value: Any) -> Any:
    """Convert a store value into JSON-compatible data."""
    if isinstance(value, datetime):
        return {TYPE_TAG: "datetime", "value": value.isoformat()}
    if isinstance(value, bytes):
        return {TYPE_TAG: "bytes", "value": base64.b64encode(value).decode("ascii")}
    if isinstance(value, list):
        return [encode_value(item) for item in value]
    if isinstance(value, dict):
        return {k: encode_value(v) for k, v in value.items()}
    return value


def _decode_hook(obj: dict[str, Any]) -> Any:
    tag = obj.get(TYPE_TAG)
    if tag == "datetime":
        return datetime.fromisoformat(obj["value"])
    if tag == "bytes":
        return base64.b64decode(obj["value"])
    return obj


def decode_document(content: str) -> dict[str, Any]:
    """Parse a store document written by ``encode_value``."""
    data = json.loads(content, object_hook=_decode_hook) if content.strip() else {}
    if not isinstance(data, dict):
        raise ValueError("store document must be a JSON object")
    return data


class JsonFileStore(InMemoryStore):
    """Local store persisted as one JSON document.

    Use ``JsonFileStore.create(path)`` to load existing contents.
    """

    def __init__(self, path: Path, kind: DataStore = DataStore.LOCAL) -> None:
        super().__init__(kind=kind)
        self.path = Path(path)

    @classmethod
    async def create(cls, path: Path, kind: DataStore = DataStore.LOCAL) -> JsonFileStore:
        """Create a store and load whatever is already on disk."""
        store = cls(path, kind)
        await store.load()
        return store

    async def load(self) -> None:
        """Replace in-memory contents with the file's contents."""
        try:
            if not await aiofiles.os.path.exists(self.path):
                self._data = {}
                return
            async with aiofiles.open(self.path, encoding="utf-8") as f:
                content = await f.read()
            data = decode_document(content)
        except (json.JSONDecodeError, ValueError) as e:
            raise StoreIOError("parse_store", str(self.path), e) from e
        except OSError as e:
            raise StoreIOError("read_store", str(self.path), e) from e

        for key, value in data.items():
            validate_value(key, value)
        self._data = data

    async def _persist(self) -> None:
        try:
            await aiofiles.os.makedirs(self.path.parent, exist_ok=True)
        except OSError as e:
            raise StoreIOError("create_directory", str(self.path.parent), e) from e

        fd, temp_path = tempfile.mkstemp(
            dir=self.path.parent,
            prefix=".tmp_",
            suffix=".json",
        )
        try:
            os.close(fd)
            async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
                await f.write(json.dumps(encode_value(self._data), indent=2, sort_keys=True))
                await f.flush()
                os.fsync(f.fileno())

            await aiofiles.os.rename(temp_path, self.path)
        except Exception as e:
            try:
                await aiofiles.os.remove(temp_path)
            except OSError:
                pass
            raise StoreIOError("write_store", str(self.path), e) from e
