"""
Remote store adapters.

Every adapter speaks the same small contract: point reads, merge-writes at a
slash-separated path, and subscriptions that deliver the full current value
at a path once immediately and again after every change.

Adapters
--------
MemoryStore
    In-process tree with synchronous notifications.
JsonFileStore
    MemoryStore persisted to a JSON file. Subscribers also hear about writes
    made by other processes, picked up by polling the file.
FirebaseStore
    Firebase Realtime Database through the Firebase Admin SDK.
"""

import copy
import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import firebase_admin
from firebase_admin import credentials, db
from firebase_admin.exceptions import FirebaseError

from gym_booking import config
from gym_booking.errors import StoreError

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[Any], None]
Unsubscribe = Callable[[], None]


def _split_path(path: str) -> List[str]:
    return [part for part in path.split("/") if part]


def _get_path(root: Any, parts: List[str]) -> Any:
    node = root
    for part in parts:
        if isinstance(node, dict):
            if part not in node:
                return None
            node = node[part]
        elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
            node = node[int(part)]
        else:
            return None
    return node


def _set_path(root: Any, parts: List[str], value: Any) -> Any:
    """Sets (or deletes, for None) the value at parts and returns the new root.

    List nodes are stepped into by numeric index; clearing a list element
    leaves a None marker so the other elements keep their positions.
    """
    if not parts:
        return value
    head, rest = parts[0], parts[1:]

    if isinstance(root, list) and head.isdigit():
        index = int(head)
        if index >= len(root):
            if value is None and not rest:
                return root
            root.extend([None] * (index + 1 - len(root)))
        root[index] = _set_path(root[index], rest, value)
        return root

    if not isinstance(root, dict):
        root = {}
    if value is None and not rest:
        root.pop(head, None)
        return root
    if value is None and head not in root:
        return root
    root[head] = _set_path(root.get(head), rest, value)
    return root


def _merge_path(root: Any, parts: List[str], value: Any) -> Any:
    """Merge-write: a mapping replaces each of its children, anything else replaces the node."""
    if isinstance(value, dict) and value and isinstance(_get_path(root, parts), (dict, list)):
        for key, child in value.items():
            root = _set_path(root, parts + _split_path(str(key)), child)
        return root
    return _set_path(root, parts, value)


def _overlaps(a: List[str], b: List[str]) -> bool:
    shortest = min(len(a), len(b))
    return a[:shortest] == b[:shortest]


class RemoteStore(ABC):
    """Key-value document store with change notification."""

    @abstractmethod
    def read(self, path: str) -> Optional[Any]:
        """Returns the value at path, or None when absent."""

    @abstractmethod
    def write(self, path: str, value: Any) -> None:
        """Merge-writes value at path, leaving sibling paths untouched."""

    @abstractmethod
    def subscribe(self, path: str, on_change: ChangeCallback) -> Unsubscribe:
        """Calls on_change with the current value now and on every change."""

    def close(self) -> None:
        pass


class MemoryStore(RemoteStore):
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._root: Any = copy.deepcopy(initial) if initial else {}
        self._lock = threading.RLock()
        self._subscribers: List[Tuple[List[str], ChangeCallback]] = []

    def _load(self) -> Any:
        return self._root

    def _save(self, root: Any) -> None:
        self._root = root

    def read(self, path: str) -> Optional[Any]:
        with self._lock:
            return copy.deepcopy(_get_path(self._load(), _split_path(path)))

    def write(self, path: str, value: Any) -> None:
        parts = _split_path(path)
        with self._lock:
            root = _merge_path(copy.deepcopy(self._load()), parts, copy.deepcopy(value))
            self._save(root)
            affected = [(p, cb) for p, cb in self._subscribers if _overlaps(p, parts)]
        logger.debug(f"Wrote /{'/'.join(parts)}, notifying {len(affected)} subscriber(s)")
        self._notify(root, affected)

    def _notify(self, root: Any, subscribers: List[Tuple[List[str], ChangeCallback]]):
        for sub_parts, callback in subscribers:
            callback(copy.deepcopy(_get_path(root, sub_parts)))

    def subscribe(self, path: str, on_change: ChangeCallback) -> Unsubscribe:
        entry = (_split_path(path), on_change)
        with self._lock:
            self._subscribers.append(entry)
        on_change(self.read(path))

        def unsubscribe():
            with self._lock:
                if entry in self._subscribers:
                    self._subscribers.remove(entry)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)


class JsonFileStore(MemoryStore):
    """Keeps the document tree in a JSON file with timestamp metadata.

    While anyone is subscribed, a background thread polls the file and
    notifies subscribers when another writer has replaced it.
    """

    def __init__(self, file_path: str = config.STORE_FILE, poll_interval: float = config.FILE_POLL_INTERVAL):
        super().__init__()
        self.file_path = file_path
        self.poll_interval = poll_interval
        self._signature = self._file_signature()
        self._watcher: Optional[threading.Thread] = None
        self._stop_watching = threading.Event()

    def _file_signature(self) -> Optional[Tuple[int, int, int]]:
        try:
            stat = os.stat(self.file_path)
        except FileNotFoundError:
            return None
        return stat.st_mtime_ns, stat.st_size, stat.st_ino

    def _load(self) -> Any:
        if not os.path.exists(self.file_path):
            logger.info(f"No store file found at {self.file_path}. Starting fresh.")
            return {}
        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                data: Dict = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            raise StoreError(f"Failed to load store file {self.file_path}: {e}") from e
        if "last_updated" in data and "data" in data:
            return data["data"] or {}
        logger.warning("Store file has unexpected format. Starting fresh.")
        return {}

    def _save(self, root: Any) -> None:
        folder = os.path.dirname(os.path.abspath(self.file_path))
        payload = {"last_updated": datetime.now(timezone.utc).isoformat(), "data": root}
        try:
            os.makedirs(folder, exist_ok=True)
            # Atomic write
            with tempfile.NamedTemporaryFile("w", delete=False, encoding="utf-8", dir=folder, suffix=".tmp") as tf:
                json.dump(payload, tf, ensure_ascii=False, indent=2)
                tmp_name = tf.name
            os.replace(tmp_name, self.file_path)
        except OSError as e:
            raise StoreError(f"Failed to save store file {self.file_path}: {e}") from e
        # Our own writes notify directly; the poller should not repeat them.
        self._signature = self._file_signature()
        logger.info(f"Saved store to {self.file_path} on {payload['last_updated']}")

    def check_for_changes(self) -> bool:
        """Notifies subscribers if the file changed since last seen. Returns True when it did."""
        with self._lock:
            signature = self._file_signature()
            if signature == self._signature:
                return False
            self._signature = signature
            root = self._load()
            subscribers = list(self._subscribers)
        logger.debug(f"{self.file_path} changed on disk, notifying {len(subscribers)} subscriber(s)")
        self._notify(root, subscribers)
        return True

    def _watch(self, stop_event: threading.Event):
        while not stop_event.wait(self.poll_interval):
            try:
                self.check_for_changes()
            except StoreError as e:
                logger.error(f"Failed to reload {self.file_path}: {e}")

    def subscribe(self, path: str, on_change: ChangeCallback) -> Unsubscribe:
        unsubscribe = super().subscribe(path, on_change)
        with self._lock:
            if self._watcher is None:
                self._stop_watching = threading.Event()
                self._watcher = threading.Thread(
                    target=self._watch, args=(self._stop_watching,), name=f"file-watcher:{self.file_path}", daemon=True
                )
                self._watcher.start()

        def stop():
            unsubscribe()
            with self._lock:
                if not self._subscribers:
                    self._halt_watcher()

        return stop

    def _halt_watcher(self):
        if self._watcher is not None:
            self._stop_watching.set()
            self._watcher = None

    def close(self) -> None:
        with self._lock:
            self._halt_watcher()


class FirebaseStore(RemoteStore):
    """Firebase Realtime Database through the Admin SDK.

    The SDK keeps each listener's event stream open and reconnects it when it
    drops. Events that touch only part of the subscribed path trigger a
    fresh read, so subscribers always receive the whole value.
    """

    def __init__(
        self,
        database_url: str | None = None,
        credentials_file: str | None = None,
        app: firebase_admin.App | None = None,
    ):
        self._owns_app = app is None
        if app is None:
            try:
                cred = credentials.Certificate(credentials_file) if credentials_file else credentials.ApplicationDefault()
                app = firebase_admin.initialize_app(
                    cred,
                    {"databaseURL": database_url, "httpTimeout": config.REQUEST_TIMEOUT},
                    name=f"gym-booking-{id(self)}",
                )
            except (ValueError, IOError) as e:
                raise StoreError(f"Failed to initialize Firebase: {e}") from e
        self.app = app
        self._registrations: List[Any] = []

    def _ref(self, path: str) -> db.Reference:
        return db.reference("/" + "/".join(_split_path(path)), app=self.app)

    def read(self, path: str) -> Optional[Any]:
        try:
            return self._ref(path).get()
        except FirebaseError as e:
            logger.error(f"Failed to read /{path}: {e}")
            raise StoreError(f"Failed to read /{path}: {e}") from e

    def write(self, path: str, value: Any) -> None:
        ref = self._ref(path)
        try:
            # update() rejects empty mappings; storing one is the same as clearing the node.
            if isinstance(value, dict) and value:
                ref.update(value)
            else:
                ref.set(value)
        except FirebaseError as e:
            logger.error(f"Failed to write /{path}: {e}")
            raise StoreError(f"Failed to write /{path}: {e}") from e

    def subscribe(self, path: str, on_change: ChangeCallback) -> Unsubscribe:
        ref = self._ref(path)

        def on_event(event):
            if event.event_type == "put" and event.path == "/":
                on_change(event.data)
                return
            try:
                value = ref.get()
            except FirebaseError as e:
                logger.error(f"Failed to reload /{path} after {event.event_type} at {event.path}: {e}")
                return
            on_change(value)

        try:
            registration = ref.listen(on_event)
        except FirebaseError as e:
            raise StoreError(f"Failed to listen on /{path}: {e}") from e
        self._registrations.append(registration)

        def unsubscribe():
            registration.close()
            if registration in self._registrations:
                self._registrations.remove(registration)

        return unsubscribe

    def close(self) -> None:
        for registration in list(self._registrations):
            registration.close()
        self._registrations.clear()
        if self._owns_app:
            firebase_admin.delete_app(self.app)
            self._owns_app = False


def open_store(kind: str = "auto") -> RemoteStore:
    """Builds the adapter named by kind; "auto" prefers Firebase when configured."""
    if kind == "auto":
        kind = "firebase" if config.FIREBASE_DATABASE_URL else "file"
    if kind == "firebase":
        if not config.FIREBASE_DATABASE_URL:
            raise StoreError("FIREBASE_DATABASE_URL is not set")
        return FirebaseStore(config.FIREBASE_DATABASE_URL, config.FIREBASE_CREDENTIALS)
    if kind == "file":
        return JsonFileStore(config.STORE_FILE)
    if kind == "memory":
        return MemoryStore()
    raise ValueError(f"Unknown store kind: {kind}")
