"""
Poll Lifecycle Manager
======================

Owns the poll table and the poll id counter, and is the only writer of the
nullifier ledger and vote tally. Each mutating call holds the manager lock
and runs in a single store transaction: it either commits every write and
then publishes its notification, or raises and leaves storage untouched.

Poll states:
    ACTIVE  - is_active and block height <= end_block
    EXPIRED - is_active but block height > end_block (derived, not stored)
    ENDED   - closed by the creator via end_poll
"""

import logging
import threading
from typing import List, Optional, Sequence

from cryptography.hazmat.primitives import hashes

from zk.exceptions import InvalidProofError
from zk.verifier import ProofVerifier

from .errors import (
    POLL_SYSTEM_ERRORS,
    InvalidNullifierFormatError,
    InvalidVoteChoiceError,
    NotPollCreatorError,
    NullifierAlreadyUsedError,
    PollEndedError,
    PollNotFoundError,
)
from .events import EventLog
from .host import HostEnvironment
from .ledger import NullifierLedger
from .models import (
    ZERO_NULLIFIER,
    Poll,
    PollCreated,
    PollEnded,
    PollStatus,
    ProofData,
    VerificationKeyUpdated,
    VoteCast,
    checked_add_u32,
)
from .storage import KeyValueStore, PollRepository, VerificationKeyStore
from .tally import VoteTally

logger = logging.getLogger(__name__)

FIRST_POLL_ID = 1


def key_fingerprint(verification_key: bytes) -> str:
    """Short SHA-256 digest of a key, safe to log"""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(verification_key)
    return digest.finalize().hex()[:16]


class PollManager:
    """Creates polls, accepts anonymous votes and closes polls"""

    def __init__(
        self,
        store: KeyValueStore,
        host: HostEnvironment,
        verifier: Optional[ProofVerifier] = None,
        events: Optional[EventLog] = None,
        verification_key: Optional[bytes] = None,
        polls: Optional[PollRepository] = None,
        ledger: Optional[NullifierLedger] = None,
        tally: Optional[VoteTally] = None,
        keys: Optional[VerificationKeyStore] = None,
    ):
        self.store = store
        self.host = host
        self.verifier = verifier or ProofVerifier()
        self.events = events or EventLog()

        self.polls = polls or PollRepository(store)
        self.ledger = ledger or NullifierLedger(store)
        self.tally = tally or VoteTally(store)
        self.keys = keys or VerificationKeyStore(store)

        self._next_poll_id = FIRST_POLL_ID
        self._lock = threading.RLock()

        if verification_key is not None:
            with self.store.transaction():
                self.keys.set(verification_key)
            logger.info(
                f"Seeded verification key {key_fingerprint(verification_key)}")

    @property
    def next_poll_id(self) -> int:
        return self._next_poll_id

    # ------------------------------------------------------------------
    # Verification key
    # ------------------------------------------------------------------

    def set_verification_key(self, verification_key: bytes):
        verification_key = bytes(verification_key)
        with self._lock:
            with self.store.transaction():
                self.keys.set(verification_key)
            event = VerificationKeyUpdated(
                updated_by=self.host.caller(),
                key_fingerprint=key_fingerprint(verification_key))

        logger.info(
            f"Verification key {event.key_fingerprint} set by {event.updated_by}")
        self.events.publish(event)

    def get_verification_key(self) -> Optional[bytes]:
        return self.keys.get()

    def has_verification_key(self) -> bool:
        return self.keys.is_set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_poll(self, title: str, description: str, options: Sequence[str],
                    merkle_root: bytes, duration: int) -> int:
        if duration < 0:
            raise ValueError("duration must be a non-negative block count")

        with self._lock:
            caller = self.host.caller()
            poll_id = self._next_poll_id

            end_block = checked_add_u32(self.host.block_number(), duration)
            next_poll_id = checked_add_u32(poll_id, 1)

            poll = Poll(
                id=poll_id,
                title=title,
                description=description,
                options=options,
                merkle_root=merkle_root,
                creator=caller,
                end_block=end_block,
            )

            with self.store.transaction():
                self.polls.put(poll)
            self._next_poll_id = next_poll_id

        logger.info(
            f"Created poll {poll_id} '{title}' with {len(poll.options)} options, ends at block {end_block}")
        self.events.publish(PollCreated(poll_id=poll_id, creator=caller, title=title))
        return poll_id

    def vote(self, poll_id: int, proof_data: ProofData):
        try:
            with self._lock:
                with self.store.transaction():
                    event = self._apply_vote(poll_id, proof_data)
        except POLL_SYSTEM_ERRORS as e:
            logger.warning(f"Rejected vote on poll {poll_id}: {e.kind}")
            raise

        logger.info(f"Accepted vote on poll {poll_id}")
        self.events.publish(event)

    def _apply_vote(self, poll_id: int, proof_data: ProofData) -> VoteCast:
        poll = self._load(poll_id)

        if not poll.accepts_votes_at(self.host.block_number()):
            raise PollEndedError(f"Poll {poll_id} is no longer accepting votes")

        if self.ledger.is_used(poll_id, proof_data.nullifier):
            raise NullifierAlreadyUsedError(
                f"Nullifier already used in poll {poll_id}")

        if proof_data.vote_choice >= len(poll.options):
            raise InvalidVoteChoiceError(
                f"Option {proof_data.vote_choice} out of range for {len(poll.options)} options")

        if proof_data.nullifier == ZERO_NULLIFIER:
            raise InvalidNullifierFormatError("Nullifier must not be all zeros")

        if not self.verifier.verify(poll, proof_data, self.keys.get()):
            raise InvalidProofError(f"Proof rejected for poll {poll_id}")

        self.ledger.mark_used(poll_id, proof_data.nullifier)
        self.tally.increment(poll_id, proof_data.vote_choice)
        poll.total_votes = checked_add_u32(poll.total_votes, 1)
        self.polls.put(poll)

        return VoteCast(
            poll_id=poll_id,
            nullifier=proof_data.nullifier,
            vote_choice=proof_data.vote_choice,
        )

    def end_poll(self, poll_id: int):
        with self._lock:
            poll = self._load(poll_id)

            if poll.creator != self.host.caller():
                raise NotPollCreatorError(
                    f"Only the creator of poll {poll_id} can end it")

            poll.is_active = False
            with self.store.transaction():
                self.polls.put(poll)

        logger.info(f"Ended poll {poll_id} with {poll.total_votes} votes")
        self.events.publish(PollEnded(poll_id=poll_id, total_votes=poll.total_votes))

    def _load(self, poll_id: int) -> Poll:
        poll = self.polls.get(poll_id)
        if poll is None:
            raise PollNotFoundError(f"Poll {poll_id} not found")
        return poll

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_poll(self, poll_id: int) -> Optional[Poll]:
        return self.polls.get(poll_id)

    def get_results(self, poll_id: int) -> Optional[List[int]]:
        poll = self.polls.get(poll_id)
        if poll is None:
            return None
        return self.tally.get_counts(poll_id, len(poll.options))

    def is_nullifier_used(self, poll_id: int, nullifier: bytes) -> bool:
        return self.ledger.is_used(poll_id, nullifier)

    def get_poll_status(self, poll_id: int) -> Optional[PollStatus]:
        poll = self.polls.get(poll_id)
        if poll is None:
            return None
        return poll.status_at(self.host.block_number())
