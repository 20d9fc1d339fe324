"""Key/value stores for client-side credentials.

Both stores hold strings under string keys, the way a browser's local storage
does. FileStorage persists across processes as one JSON object on disk.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional, Protocol

from .logging_conf import get_logger

DEFAULT_STORAGE_PATH = Path.home() / ".youth_client" / "storage.json"


class Storage(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = str(value)

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._items


class FileStorage:
    """JSON-file backed storage.

    - Every write rewrites the whole file through a temp file + rename
    - An unreadable or corrupt file reads as empty (logged), never raises
    """

    def __init__(self, path: str | Path | None = None, *, logger: logging.Logger | None = None):
        self.path = Path(path or os.getenv("YOUTH_CLIENT_STORAGE") or DEFAULT_STORAGE_PATH)
        self.logger = logger or get_logger("client.storage")

    def _read(self) -> dict[str, str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            self.logger.warning(
                "storage.unreadable",
                extra={"event": "storage_unreadable", "path": str(self.path), "error": str(e)},
            )
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, items: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(items, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, self.path)

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._read()
        items[key] = str(value)
        self._write(items)

    def remove_item(self, key: str) -> None:
        items = self._read()
        if items.pop(key, None) is not None:
            self._write(items)

    def __contains__(self, key: str) -> bool:
        return key in self._read()
