# app/watcher/state.py
from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional, Protocol

WatchStatus = Literal["idle", "sending", "pending", "success", "failed"]

STORAGE_KEY = "payment_public_id"


class IdStore(Protocol):
    """
    Where the client keeps the public_id it is watching, so a restart can resume.
    """

    def get(self) -> Optional[str]: ...
    def set(self, public_id: str) -> None: ...
    def clear(self) -> None: ...


class MemoryIdStore:
    def __init__(self, public_id: Optional[str] = None):
        self._value = public_id

    def get(self) -> Optional[str]:
        return self._value

    def set(self, public_id: str) -> None:
        self._value = public_id

    def clear(self) -> None:
        self._value = None


class JsonFileIdStore:
    """
    localStorage-style persistence: a small JSON document keyed by STORAGE_KEY.
    """

    def __init__(self, path: str | Path, key: str = STORAGE_KEY):
        self.path = Path(path)
        self.key = key
        self._lock = threading.Lock()

    def _read(self) -> dict:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data), encoding="utf-8")
        tmp.replace(self.path)

    def get(self) -> Optional[str]:
        with self._lock:
            value = self._read().get(self.key)
        return str(value) if value else None

    def set(self, public_id: str) -> None:
        with self._lock:
            data = self._read()
            data[self.key] = public_id
            self._write(data)

    def clear(self) -> None:
        with self._lock:
            data = self._read()
            if self.key in data:
                data.pop(self.key)
                self._write(data)


@dataclass
class WatchState:
    status: WatchStatus = "idle"
    public_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def busy(self) -> bool:
        return self.status in ("sending", "pending")
