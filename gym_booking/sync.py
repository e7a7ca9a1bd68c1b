import logging
import threading
from typing import Any, Callable, List

from gym_booking import config
from gym_booking.errors import NotReadyError
from gym_booking.models import BookingTree, tree_from_document
from gym_booking.store import RemoteStore, Unsubscribe

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[BookingTree], None]


def _copy_tree(tree: BookingTree) -> BookingTree:
    return {date_str: list(day) for date_str, day in tree.items()}


class SyncState:
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    CLOSED = "closed"


class BookingStore:
    """In-process mirror of the remote `bookings` tree.

    `start()` subscribes to the remote path and performs one point read. The
    subscription and the read may complete in either order; both simply adopt
    whatever non-null value they see, so the mirror converges regardless.
    """

    def __init__(self, remote: RemoteStore, path: str = config.BOOKINGS_PATH):
        self.remote = remote
        self.path = path
        self.state = SyncState.UNINITIALIZED
        self._tree: BookingTree = {}
        self._lock = threading.RLock()
        self._listeners: List[SnapshotListener] = []
        self._unsubscribe: Unsubscribe | None = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def start(self):
        if self.state != SyncState.UNINITIALIZED:
            raise RuntimeError(f"Booking store cannot start from state {self.state}")
        self.state = SyncState.LOADING
        logger.debug(f"Loading /{self.path}")
        self._unsubscribe = self.remote.subscribe(self.path, self._on_remote_change)
        try:
            self._load_initial()
        except Exception:
            self.close()
            raise

    def _load_initial(self):
        data = self.remote.read(self.path)
        if data is not None:
            self._adopt(data)
        else:
            logger.info(f"No data at /{self.path}. Initializing with an empty mapping.")
            self.remote.write(self.path, {})
            self._adopt({})

    def refresh(self):
        """Re-reads the remote tree, e.g. after a booking conflict."""
        data = self.remote.read(self.path)
        if data is not None:
            self._adopt(data)

    def _on_remote_change(self, data: Any):
        if data is None:
            # Transient nulls happen during teardown and initialization races.
            logger.debug(f"Ignoring null notification for /{self.path}")
            return
        self._adopt(data)

    def _adopt(self, data: Any):
        tree = tree_from_document(data)
        with self._lock:
            if self.state == SyncState.CLOSED:
                return
            self._tree = tree
            if self.state == SyncState.LOADING:
                self.state = SyncState.READY
                logger.info(f"Bookings ready: {len(tree)} date(s) loaded")
            listeners = list(self._listeners)
        for listener in listeners:
            self._deliver(listener, tree)

    def _deliver(self, listener: SnapshotListener, tree: BookingTree):
        try:
            listener(_copy_tree(tree))
        except Exception as e:
            logger.error(f"Snapshot listener {listener!r} failed: {e}")

    @property
    def ready(self) -> bool:
        return self.state == SyncState.READY

    def snapshot(self) -> BookingTree:
        with self._lock:
            if self.state != SyncState.READY:
                raise NotReadyError(f"Bookings are {self.state}")
            return _copy_tree(self._tree)

    def listen(self, listener: SnapshotListener) -> Callable[[], None]:
        """Delivers the current snapshot now (when ready) and every later one."""
        with self._lock:
            self._listeners.append(listener)
            current = self._tree if self.state == SyncState.READY else None
        if current is not None:
            self._deliver(listener, current)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def close(self):
        with self._lock:
            if self.state == SyncState.CLOSED:
                return
            self.state = SyncState.CLOSED
            unsubscribe, self._unsubscribe = self._unsubscribe, None
            self._listeners.clear()
        if unsubscribe is not None:
            unsubscribe()
        logger.debug(f"Stopped syncing /{self.path}")
