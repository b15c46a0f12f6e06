"""Data model for polls, vote submissions and lifecycle notifications"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List

from .errors import ArithmeticOverflowError

U32_MAX = 0xFFFFFFFF
HASH_SIZE = 32
ZERO_NULLIFIER = bytes(HASH_SIZE)


def checked_add_u32(value: int, amount: int) -> int:
    """u32 addition that raises instead of wrapping"""
    result = value + amount
    if result > U32_MAX:
        raise ArithmeticOverflowError(f"{value} + {amount} overflows u32")
    return result


def _require_hash(name: str, value: bytes) -> bytes:
    value = bytes(value)
    if len(value) != HASH_SIZE:
        raise ValueError(f"{name} must be {HASH_SIZE} bytes, got {len(value)}")
    return value


class PollStatus(Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    ENDED = "ended"


@dataclass
class Poll:
    id: int
    title: str
    description: str
    options: List[str]
    merkle_root: bytes
    creator: str
    end_block: int
    is_active: bool = True
    total_votes: int = 0

    def __post_init__(self):
        self.merkle_root = _require_hash("merkle_root", self.merkle_root)
        if isinstance(self.options, (str, bytes)):
            raise ValueError("options must be a sequence of labels, not a single string")
        self.options = list(self.options)
        if not self.options:
            raise ValueError("a poll needs at least one option")

    def accepts_votes_at(self, block_number: int) -> bool:
        return self.is_active and block_number <= self.end_block

    def status_at(self, block_number: int) -> PollStatus:
        if not self.is_active:
            return PollStatus.ENDED
        if block_number > self.end_block:
            return PollStatus.EXPIRED
        return PollStatus.ACTIVE


def poll_status(poll: Poll, block_number: int) -> PollStatus:
    """Expiry is derived from the block height, never stored"""
    return poll.status_at(block_number)


@dataclass
class ProofData:
    """Vote submission: serialized proof, nullifier and chosen option"""
    proof: bytes
    nullifier: bytes
    vote_choice: int

    def __post_init__(self):
        self.proof = bytes(self.proof)
        self.nullifier = _require_hash("nullifier", self.nullifier)
        if not 0 <= self.vote_choice <= U32_MAX:
            raise ValueError(f"vote_choice {self.vote_choice} is not a u32")


# ============================================================================
# NOTIFICATIONS
# ============================================================================


@dataclass(frozen=True)
class PollCreated:
    poll_id: int
    creator: str
    title: str


@dataclass(frozen=True)
class VoteCast:
    poll_id: int
    nullifier: bytes
    vote_choice: int


@dataclass(frozen=True)
class PollEnded:
    poll_id: int
    total_votes: int


@dataclass(frozen=True)
class VerificationKeyUpdated:
    updated_by: str
    key_fingerprint: str = field(default="")
