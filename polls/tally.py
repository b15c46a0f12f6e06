"""Per-option vote counters."""

from typing import List

from .models import checked_add_u32
from .storage import KeyValueStore


class VoteTally:
    """(poll id, option index) -> u32 count, increment only"""

    NAMESPACE = "result"

    def __init__(self, store: KeyValueStore):
        self.store = store

    def _key(self, poll_id: int, option: int):
        return (self.NAMESPACE, poll_id, option)

    def get_count(self, poll_id: int, option: int) -> int:
        return self.store.get(self._key(poll_id, option), 0)

    def increment(self, poll_id: int, option: int) -> int:
        """Add one vote; raises ArithmeticOverflowError at the u32 limit"""
        count = checked_add_u32(self.get_count(poll_id, option), 1)
        self.store.put(self._key(poll_id, option), count)
        return count

    def get_counts(self, poll_id: int, option_count: int) -> List[int]:
        return [self.get_count(poll_id, option) for option in range(option_count)]
