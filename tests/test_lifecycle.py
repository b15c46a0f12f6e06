"""
Tests for the poll lifecycle manager.

Covers:
- poll creation, id assignment, overflow of end block and id counter
- vote checks and their ordering
- all-or-nothing vote application
- creator-only end_poll, height-based expiry
- verification key management and notifications
- observers that fail after a committed change
"""

import pytest

from polls.errors import (
    ArithmeticOverflowError,
    InvalidNullifierFormatError,
    InvalidVoteChoiceError,
    NotPollCreatorError,
    NullifierAlreadyUsedError,
    PollEndedError,
    PollNotFoundError,
)
from polls.lifecycle import PollManager
from polls.models import (
    U32_MAX,
    PollCreated,
    PollEnded,
    PollStatus,
    ProofData,
    VerificationKeyUpdated,
    VoteCast,
)
from polls.tally import VoteTally
from zk.exceptions import InvalidProofError, ProofDeserializationError
from zk.proof_codec import encode_proof
from zk.public_inputs import build_public_inputs
from zk.verifier import ProofVerifier

from conftest import MERKLE_ROOT, START_BLOCK, VERIFICATION_KEY, nullifier


def state_of(manager, poll_id):
    return (manager.get_poll(poll_id), manager.get_results(poll_id),
            [manager.is_nullifier_used(poll_id, nullifier(i)) for i in range(1, 4)])


# ─────────────────────────────────────────────────────────────────────
# Creation
# ─────────────────────────────────────────────────────────────────────

class TestCreatePoll:

    def test_ids_start_at_one(self, manager):
        first = manager.create_poll("a", "", ["x"], MERKLE_ROOT, 5)
        second = manager.create_poll("b", "", ["x"], MERKLE_ROOT, 5)
        assert (first, second) == (1, 2)
        assert manager.next_poll_id == 3

    def test_stored_fields(self, manager):
        poll_id = manager.create_poll("Title", "Desc", ["yes", "no"], MERKLE_ROOT, 10)
        poll = manager.get_poll(poll_id)
        assert poll.title == "Title"
        assert poll.description == "Desc"
        assert poll.options == ["yes", "no"]
        assert poll.merkle_root == MERKLE_ROOT
        assert poll.creator == "alice"
        assert poll.is_active
        assert poll.total_votes == 0
        assert poll.end_block == START_BLOCK + 10

    def test_end_block_overflow(self, manager, host):
        host.current_block = U32_MAX - 5
        with pytest.raises(ArithmeticOverflowError):
            manager.create_poll("t", "", ["x"], MERKLE_ROOT, 10)
        assert manager.get_poll(1) is None
        assert manager.next_poll_id == 1

    def test_end_block_at_limit(self, manager, host):
        host.current_block = U32_MAX - 10
        poll_id = manager.create_poll("t", "", ["x"], MERKLE_ROOT, 10)
        assert manager.get_poll(poll_id).end_block == U32_MAX

    def test_id_counter_overflow(self, manager):
        manager._next_poll_id = U32_MAX
        with pytest.raises(ArithmeticOverflowError):
            manager.create_poll("t", "", ["x"], MERKLE_ROOT, 1)
        assert manager.get_poll(U32_MAX) is None

    def test_emits_created(self, manager, events):
        poll_id = manager.create_poll("t", "", ["x"], MERKLE_ROOT, 1)
        assert events.of_type(PollCreated) == [PollCreated(poll_id=poll_id, creator="alice", title="t")]

    def test_negative_duration(self, manager):
        with pytest.raises(ValueError):
            manager.create_poll("t", "", ["x"], MERKLE_ROOT, -1)

    @pytest.mark.parametrize("options", [[], (), "yes"])
    def test_requires_option_list(self, manager, events, options):
        with pytest.raises(ValueError):
            manager.create_poll("t", "", options, MERKLE_ROOT, 5)
        assert manager.get_poll(1) is None
        assert manager.next_poll_id == 1
        assert events.of_type(PollCreated) == []

    def test_single_option_poll(self, manager):
        poll_id = manager.create_poll("t", "", ("only",), MERKLE_ROOT, 5)
        assert manager.get_poll(poll_id).options == ["only"]
        assert manager.get_results(poll_id) == [0]


# ─────────────────────────────────────────────────────────────────────
# Voting
# ─────────────────────────────────────────────────────────────────────

class TestVote:

    def test_scenario(self, manager, host, yes_no_poll, make_proof):
        poll_id = yes_no_poll

        manager.vote(poll_id, make_proof(poll_id, nullifier(1), 0))
        assert manager.get_results(poll_id) == [1, 0]
        assert manager.is_nullifier_used(poll_id, nullifier(1))

        with pytest.raises(NullifierAlreadyUsedError):
            manager.vote(poll_id, make_proof(poll_id, nullifier(1), 0))

        with pytest.raises(InvalidVoteChoiceError):
            manager.vote(poll_id, make_proof(poll_id, nullifier(2), 5))

        host.set_caller("mallory")
        with pytest.raises(NotPollCreatorError):
            manager.end_poll(poll_id)

        host.set_caller("alice")
        manager.end_poll(poll_id)

        with pytest.raises(PollEndedError):
            manager.vote(poll_id, make_proof(poll_id, nullifier(2), 1))

        assert manager.get_results(poll_id) == [1, 0]
        assert manager.get_poll(poll_id).total_votes == 1

    def test_replay_rejected_for_any_option(self, manager, yes_no_poll, make_proof):
        manager.vote(yes_no_poll, make_proof(yes_no_poll, nullifier(1), 0))
        for option in (0, 1, 7):
            with pytest.raises(NullifierAlreadyUsedError):
                manager.vote(yes_no_poll, make_proof(yes_no_poll, nullifier(1), option))

    def test_same_nullifier_in_other_poll(self, manager, yes_no_poll, make_proof):
        other = manager.create_poll("other", "", ["a", "b"], MERKLE_ROOT, 10)
        manager.vote(yes_no_poll, make_proof(yes_no_poll, nullifier(1), 0))
        manager.vote(other, make_proof(other, nullifier(1), 1))
        assert manager.get_results(other) == [0, 1]

    def test_totals_match_results(self, manager, yes_no_poll, make_proof):
        for i, option in enumerate([0, 1, 1, 0, 1], start=1):
            manager.vote(yes_no_poll, make_proof(yes_no_poll, nullifier(i), option))
        results = manager.get_results(yes_no_poll)
        assert results == [2, 3]
        assert sum(results) == manager.get_poll(yes_no_poll).total_votes

    def test_unknown_poll(self, manager, make_proof):
        with pytest.raises(PollNotFoundError):
            manager.vote(42, ProofData(proof=b"", nullifier=nullifier(1), vote_choice=0))

    def test_expired_poll_rejects_while_still_active(self, manager, host, yes_no_poll, make_proof):
        host.advance(10)
        manager.vote(yes_no_poll, make_proof(yes_no_poll, nullifier(1), 0))

        host.advance(1)
        with pytest.raises(PollEndedError):
            manager.vote(yes_no_poll, make_proof(yes_no_poll, nullifier(2), 0))

        poll = manager.get_poll(yes_no_poll)
        assert poll.is_active
        assert manager.get_poll_status(yes_no_poll) == PollStatus.EXPIRED

    def test_zero_nullifier(self, manager, yes_no_poll, make_proof):
        with pytest.raises(InvalidNullifierFormatError):
            manager.vote(yes_no_poll, make_proof(yes_no_poll, bytes(32), 0))
        assert manager.get_results(yes_no_poll) == [0, 0]

    def test_invalid_choice_before_mutation(self, manager, yes_no_poll, make_proof):
        before = state_of(manager, yes_no_poll)
        with pytest.raises(InvalidVoteChoiceError):
            manager.vote(yes_no_poll, make_proof(yes_no_poll, nullifier(1), 2))
        assert state_of(manager, yes_no_poll) == before

    def test_ended_check_precedes_nullifier_check(self, manager, yes_no_poll, make_proof):
        manager.vote(yes_no_poll, make_proof(yes_no_poll, nullifier(1), 0))
        manager.end_poll(yes_no_poll)
        with pytest.raises(PollEndedError):
            manager.vote(yes_no_poll, make_proof(yes_no_poll, nullifier(1), 0))

    def test_malformed_proof(self, manager, yes_no_poll):
        bad = ProofData(proof=b"\x00\x01", nullifier=nullifier(1), vote_choice=0)
        with pytest.raises(ProofDeserializationError):
            manager.vote(yes_no_poll, bad)
        assert not manager.is_nullifier_used(yes_no_poll, nullifier(1))

    def test_mismatched_inputs(self, manager, yes_no_poll, make_proof):
        proof_data = make_proof(yes_no_poll, nullifier(1), 0,
                                public_inputs=["1", "2", "3", "4"])
        with pytest.raises(InvalidProofError):
            manager.vote(yes_no_poll, proof_data)

    def test_emits_vote_cast(self, manager, events, yes_no_poll, make_proof):
        manager.vote(yes_no_poll, make_proof(yes_no_poll, nullifier(1), 1))
        assert events.of_type(VoteCast) == [
            VoteCast(poll_id=yes_no_poll, nullifier=nullifier(1), vote_choice=1)]

    def test_no_event_on_rejection(self, manager, events, yes_no_poll, make_proof):
        events.clear()
        with pytest.raises(InvalidVoteChoiceError):
            manager.vote(yes_no_poll, make_proof(yes_no_poll, nullifier(1), 9))
        assert events.events == []


class TestVoteAtomicity:

    def test_tally_overflow_rolls_back_nullifier(self, manager, store, events, yes_no_poll, make_proof):
        store.put((VoteTally.NAMESPACE, yes_no_poll, 0), U32_MAX)
        events.clear()

        with pytest.raises(ArithmeticOverflowError):
            manager.vote(yes_no_poll, make_proof(yes_no_poll, nullifier(1), 0))

        assert not manager.is_nullifier_used(yes_no_poll, nullifier(1))
        assert manager.get_poll(yes_no_poll).total_votes == 0
        assert events.events == []

    def test_total_overflow_rolls_back_tally(self, manager, yes_no_poll, make_proof):
        poll = manager.get_poll(yes_no_poll)
        poll.total_votes = U32_MAX
        manager.polls.put(poll)

        with pytest.raises(ArithmeticOverflowError):
            manager.vote(yes_no_poll, make_proof(yes_no_poll, nullifier(1), 1))

        assert manager.get_results(yes_no_poll) == [0, 0]
        assert not manager.is_nullifier_used(yes_no_poll, nullifier(1))
        assert manager.get_poll(yes_no_poll).total_votes == U32_MAX


# ─────────────────────────────────────────────────────────────────────
# Ending and reads
# ─────────────────────────────────────────────────────────────────────

class TestEndPoll:

    def test_unknown_poll(self, manager):
        with pytest.raises(PollNotFoundError):
            manager.end_poll(99)

    def test_non_creator(self, manager, host, yes_no_poll):
        host.set_caller("bob")
        with pytest.raises(NotPollCreatorError):
            manager.end_poll(yes_no_poll)
        assert manager.get_poll(yes_no_poll).is_active

    def test_ended_event_carries_total(self, manager, events, yes_no_poll, make_proof):
        manager.vote(yes_no_poll, make_proof(yes_no_poll, nullifier(1), 0))
        manager.end_poll(yes_no_poll)
        assert events.of_type(PollEnded) == [PollEnded(poll_id=yes_no_poll, total_votes=1)]
        assert manager.get_poll_status(yes_no_poll) == PollStatus.ENDED

    def test_reads_for_unknown_poll(self, manager):
        assert manager.get_poll(5) is None
        assert manager.get_results(5) is None
        assert manager.get_poll_status(5) is None
        assert not manager.is_nullifier_used(5, nullifier(1))


class TestVerificationKey:

    def test_seeded_key(self, manager):
        assert manager.has_verification_key()
        assert manager.get_verification_key() == VERIFICATION_KEY

    def test_absent_key(self, store, host):
        manager = PollManager(store=store, host=host)
        assert not manager.has_verification_key()
        assert manager.get_verification_key() is None

    def test_set_key_emits_event(self, manager, host, events):
        host.set_caller("admin")
        manager.set_verification_key(b"new-key")
        assert manager.get_verification_key() == b"new-key"
        (event,) = events.of_type(VerificationKeyUpdated)
        assert event.updated_by == "admin"
        assert len(event.key_fingerprint) == 16

    def test_votes_rejected_without_key(self, store, host, events):
        manager = PollManager(store=store, host=host, events=events)
        poll_id = manager.create_poll("t", "", ["a"], MERKLE_ROOT, 5)
        draft = ProofData(proof=b"", nullifier=nullifier(1), vote_choice=0)
        blob = encode_proof(b"\x01", build_public_inputs(manager.get_poll(poll_id), draft))

        with pytest.raises(InvalidProofError):
            manager.vote(poll_id, ProofData(proof=blob, nullifier=nullifier(1), vote_choice=0))

        manager.set_verification_key(VERIFICATION_KEY)
        manager.vote(poll_id, ProofData(proof=blob, nullifier=nullifier(1), vote_choice=0))
        assert manager.get_results(poll_id) == [1]


# ─────────────────────────────────────────────────────────────────────
# Subscribers
# ─────────────────────────────────────────────────────────────────────

class TestSubscribers:

    @staticmethod
    def _broken(event):
        raise RuntimeError("observer down")

    def test_failing_subscriber_does_not_fail_vote(self, manager, events, yes_no_poll,
                                                   make_proof, caplog):
        received = []
        events.subscribe(self._broken)
        events.subscribe(received.append)

        manager.vote(yes_no_poll, make_proof(yes_no_poll, nullifier(1), 0))

        assert manager.get_results(yes_no_poll) == [1, 0]
        assert manager.is_nullifier_used(yes_no_poll, nullifier(1))
        assert received == [VoteCast(poll_id=yes_no_poll, nullifier=nullifier(1), vote_choice=0)]
        assert "failed on VoteCast" in caplog.text

    def test_failing_subscriber_does_not_fail_end_poll(self, manager, events, yes_no_poll):
        events.subscribe(self._broken)
        manager.end_poll(yes_no_poll)
        assert manager.get_poll_status(yes_no_poll) == PollStatus.ENDED
        assert events.of_type(PollEnded) == [PollEnded(poll_id=yes_no_poll, total_votes=0)]
