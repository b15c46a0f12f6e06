"""
Transactional key-value storage and the repositories built on it.

Every mutating poll operation runs inside ``store.transaction()``; an
exception escaping the block restores every key written inside it.
Values are copied on the way in and out so callers never alias stored state.
"""

import copy
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Hashable, Iterator, List, Optional

from .models import Poll

logger = logging.getLogger(__name__)

_MISSING = object()


class KeyValueStore(ABC):
    """Storage engine interface used by the repositories"""

    @abstractmethod
    def get(self, key: Hashable, default: Any = None) -> Any:
        raise NotImplementedError

    @abstractmethod
    def put(self, key: Hashable, value: Any):
        raise NotImplementedError

    @abstractmethod
    def contains(self, key: Hashable) -> bool:
        raise NotImplementedError

    @abstractmethod
    def transaction(self):
        """Context manager; all writes inside commit together or not at all"""
        raise NotImplementedError


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store with nested transactions via undo journals"""

    def __init__(self):
        self._data: Dict[Hashable, Any] = {}
        self._journals: List[Dict[Hashable, Any]] = []
        self._lock = threading.RLock()

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            if key not in self._data:
                return default
            return copy.deepcopy(self._data[key])

    def put(self, key: Hashable, value: Any):
        with self._lock:
            if self._journals:
                journal = self._journals[-1]
                if key not in journal:
                    journal[key] = self._data.get(key, _MISSING)
            self._data[key] = copy.deepcopy(value)

    def contains(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    @property
    def in_transaction(self) -> bool:
        return bool(self._journals)

    @contextmanager
    def transaction(self) -> Iterator['InMemoryKeyValueStore']:
        with self._lock:
            self._journals.append({})
            try:
                yield self
            except BaseException:
                self._rollback(self._journals.pop())
                raise
            else:
                journal = self._journals.pop()
                if self._journals:
                    parent = self._journals[-1]
                    for key, previous in journal.items():
                        parent.setdefault(key, previous)

    def _rollback(self, journal: Dict[Hashable, Any]):
        for key, previous in journal.items():
            if previous is _MISSING:
                self._data.pop(key, None)
            else:
                self._data[key] = previous
        if journal:
            logger.debug(f"Rolled back {len(journal)} write(s)")


class PollRepository:
    """Poll table: poll id -> Poll"""

    NAMESPACE = "poll"

    def __init__(self, store: KeyValueStore):
        self.store = store

    def get(self, poll_id: int) -> Optional[Poll]:
        return self.store.get((self.NAMESPACE, poll_id))

    def put(self, poll: Poll):
        self.store.put((self.NAMESPACE, poll.id), poll)

    def exists(self, poll_id: int) -> bool:
        return self.store.contains((self.NAMESPACE, poll_id))


class VerificationKeyStore:
    """Singleton slot for the optional verification key"""

    KEY = ("verification_key",)

    def __init__(self, store: KeyValueStore):
        self.store = store

    def get(self) -> Optional[bytes]:
        return self.store.get(self.KEY)

    def set(self, verification_key: bytes):
        self.store.put(self.KEY, bytes(verification_key))

    def is_set(self) -> bool:
        return self.store.get(self.KEY) is not None
