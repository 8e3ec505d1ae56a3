from __future__ import annotations

import threading
import weakref
from contextlib import contextmanager
from typing import Iterator

_REGISTRY_LOCK = threading.Lock()
# Entries live only while some caller holds a reference to the lock.
_USER_LOCKS: "weakref.WeakValueDictionary[str, threading.RLock]" = weakref.WeakValueDictionary()


def get_user_lock(user_id: str) -> threading.RLock:
    key = str(user_id)
    with _REGISTRY_LOCK:
        lock = _USER_LOCKS.get(key)
        if lock is None:
            lock = threading.RLock()
            _USER_LOCKS[key] = lock
        return lock


@contextmanager
def user_lock(user_id: str) -> Iterator[None]:
    """Serialize weight regeneration and suggestion selection for one user."""
    lock = get_user_lock(user_id)
    with lock:
        yield
