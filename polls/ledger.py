"""Nullifier ledger: which nullifiers have already voted in which poll."""

from .storage import KeyValueStore


class NullifierLedger:
    """(poll id, nullifier) -> consumed. Entries are never removed."""

    NAMESPACE = "nullifier"

    def __init__(self, store: KeyValueStore):
        self.store = store

    def _key(self, poll_id: int, nullifier: bytes):
        return (self.NAMESPACE, poll_id, bytes(nullifier))

    def is_used(self, poll_id: int, nullifier: bytes) -> bool:
        return bool(self.store.get(self._key(poll_id, nullifier), False))

    def mark_used(self, poll_id: int, nullifier: bytes):
        self.store.put(self._key(poll_id, nullifier), True)
