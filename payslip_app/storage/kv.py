"""Key-value persistence keyed by tuples of strings.

Two backends share one interface: an in-process dictionary for development
and tests, and a directory of JSON documents (optionally Fernet encrypted)
for anything that has to survive a restart. ``list`` returns the values stored
strictly below a prefix, ordered by key.
"""
from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Iterator, Sequence
from urllib.parse import quote, unquote

from payslip_app.config import Settings

from .crypto import EncryptionError, StoreCipher

logger = logging.getLogger("payslip_app.storage")

Key = tuple[str, ...]


class StoreError(Exception):
    pass


def _normalize_key(key: Sequence[str]) -> Key:
    normalized = tuple(str(part) for part in key)
    if not normalized:
        raise StoreError("Empty keys are not allowed")
    return normalized


def _encode_value(value: Any) -> bytes:
    return json.dumps(value, default=str, sort_keys=True).encode("utf-8")


def _decode_value(payload: bytes) -> Any:
    return json.loads(payload.decode("utf-8"))


class KvStore(ABC):
    @abstractmethod
    def get(self, key: Sequence[str]) -> Any | None: ...

    @abstractmethod
    def set(self, key: Sequence[str], value: Any) -> bool: ...

    @abstractmethod
    def delete(self, key: Sequence[str]) -> bool: ...

    @abstractmethod
    def list(self, prefix: Sequence[str]) -> list[Any]: ...

    @abstractmethod
    def update(self, key: Sequence[str], change: Callable[[Any | None], Any]) -> Any:
        """Atomically replace the value at ``key`` with ``change(current)``.

        ``change`` receives ``None`` when the key is absent. Returning ``None``
        leaves the stored value untouched. Exceptions raised by ``change``
        propagate and nothing is written.
        """

    def close(self) -> None:
        return None


class MemoryKvStore(KvStore):
    def __init__(self) -> None:
        self._data: dict[Key, bytes] = {}
        self._lock = threading.Lock()

    def get(self, key: Sequence[str]) -> Any | None:
        with self._lock:
            payload = self._data.get(_normalize_key(key))
        return None if payload is None else _decode_value(payload)

    def set(self, key: Sequence[str], value: Any) -> bool:
        payload = _encode_value(value)
        with self._lock:
            self._data[_normalize_key(key)] = payload
        return True

    def delete(self, key: Sequence[str]) -> bool:
        with self._lock:
            self._data.pop(_normalize_key(key), None)
        return True

    def list(self, prefix: Sequence[str]) -> list[Any]:
        wanted = tuple(str(part) for part in prefix)
        size = len(wanted)
        with self._lock:
            matches = sorted(
                (key, payload)
                for key, payload in self._data.items()
                if len(key) > size and key[:size] == wanted
            )
        return [_decode_value(payload) for _, payload in matches]

    def update(self, key: Sequence[str], change: Callable[[Any | None], Any]) -> Any:
        normalized = _normalize_key(key)
        with self._lock:
            payload = self._data.get(normalized)
            value = change(None if payload is None else _decode_value(payload))
            if value is not None:
                self._data[normalized] = _encode_value(value)
        return value


def _encode_segment(segment: str) -> str:
    return quote(segment, safe="").replace(".", "%2E")


class FileKvStore(KvStore):
    suffix = ".json"

    def __init__(self, base_dir: str | Path, cipher: StoreCipher | None = None) -> None:
        self.base = Path(base_dir)
        self.base.mkdir(parents=True, exist_ok=True)
        self._cipher = cipher
        self._lock = threading.Lock()

    def _path(self, key: Sequence[str]) -> Path:
        parts = [_encode_segment(part) for part in _normalize_key(key)]
        return self.base.joinpath(*parts[:-1]) / f"{parts[-1]}{self.suffix}"

    def _read(self, path: Path) -> Any:
        try:
            payload = path.read_bytes()
            if self._cipher is not None:
                payload = self._cipher.unseal(payload, label=path.name)
            return _decode_value(payload)
        except (OSError, ValueError, EncryptionError) as exc:
            raise StoreError(f"Unreadable record {path.name}: {exc}") from exc

    def _write(self, path: Path, value: Any) -> None:
        payload = _encode_value(value)
        if self._cipher is not None:
            payload = self._cipher.seal(payload)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_bytes(payload)
        tmp.replace(path)

    def get(self, key: Sequence[str]) -> Any | None:
        path = self._path(key)
        with self._lock:
            if not path.is_file():
                return None
            return self._read(path)

    def set(self, key: Sequence[str], value: Any) -> bool:
        path = self._path(key)
        with self._lock:
            self._write(path, value)
        return True

    def update(self, key: Sequence[str], change: Callable[[Any | None], Any]) -> Any:
        path = self._path(key)
        with self._lock:
            value = change(self._read(path) if path.is_file() else None)
            if value is not None:
                self._write(path, value)
        return value

    def delete(self, key: Sequence[str]) -> bool:
        path = self._path(key)
        with self._lock:
            if path.is_file():
                path.unlink()
        return True

    def _iter_files(self, prefix: Sequence[str]) -> Iterator[Path]:
        root = self.base.joinpath(*(_encode_segment(str(part)) for part in prefix))
        if not root.is_dir():
            return iter(())
        return (path for path in root.rglob(f"*{self.suffix}") if path.is_file())

    def list(self, prefix: Sequence[str]) -> list[Any]:
        with self._lock:
            files = sorted(
                self._iter_files(prefix),
                key=lambda path: tuple(unquote(part) for part in path.relative_to(self.base).parts),
            )
            return [self._read(path) for path in files]


def open_store(settings: Settings) -> KvStore:
    if settings.store_backend == "file":
        cipher = StoreCipher.from_settings(settings)
        logger.info(
            "Opening file store at %s (encrypted=%s)", settings.store_root, cipher is not None
        )
        return FileKvStore(settings.store_root, cipher=cipher)
    logger.info("Opening in-memory store")
    return MemoryKvStore()
