import os
import sys

import pytest

# Make the project root importable when running pytest from anywhere
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from polls.events import EventLog
from polls.host import LocalHost
from polls.lifecycle import PollManager
from polls.models import ProofData
from polls.storage import InMemoryKeyValueStore
from zk.proof_codec import encode_proof
from zk.public_inputs import build_public_inputs
from zk.verifier import ProofVerifier


# ── Test constants ──
VERIFICATION_KEY = b"test-verification-key"
MERKLE_ROOT = bytes(range(1, 33))
PROOF_BYTES = b"\xab" * 48
START_BLOCK = 100


def nullifier(n: int) -> bytes:
    """Distinct non-zero 32-byte nullifier"""
    return n.to_bytes(2, 'big') * 16


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def host():
    return LocalHost(caller="alice", block_number=START_BLOCK)


@pytest.fixture
def events():
    return EventLog()


@pytest.fixture
def manager(store, host, events):
    return PollManager(store=store, host=host, verifier=ProofVerifier(),
                       events=events, verification_key=VERIFICATION_KEY)


@pytest.fixture
def make_proof(manager):
    """Build a ProofData whose public inputs match the stored poll"""
    def _make(poll_id, nullifier_bytes, vote_choice, proof_bytes=PROOF_BYTES,
              public_inputs=None):
        if public_inputs is None:
            poll = manager.get_poll(poll_id)
            draft = ProofData(proof=b"", nullifier=nullifier_bytes, vote_choice=vote_choice)
            public_inputs = build_public_inputs(poll, draft)
        return ProofData(
            proof=encode_proof(proof_bytes, public_inputs),
            nullifier=nullifier_bytes,
            vote_choice=vote_choice,
        )
    return _make


@pytest.fixture
def yes_no_poll(manager):
    return manager.create_poll("Ship it?", "Release vote", ["yes", "no"],
                               MERKLE_ROOT, duration=10)
