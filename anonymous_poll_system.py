#!/usr/bin/env python3
"""
Anonymous Eligibility-Gated Polling System
==========================================
Wires proof verification, the nullifier ledger and the vote tally behind a
single poll manager, with configuration, logging and performance metrics.

A voter proves membership in the poll's eligibility set off-line and submits
the proof blob together with a one-time nullifier. The system never learns
who voted, only that an eligible identity voted once.
"""

import logging
import secrets
from collections import Counter
from contextlib import nullcontext
from typing import Any, Dict, List, Optional, Sequence

from config.config import PollSystemConfig
from polls.errors import POLL_SYSTEM_ERRORS
from polls.events import EventLog
from polls.host import HostEnvironment, LocalHost
from polls.lifecycle import PollManager
from polls.models import Poll, PollStatus, ProofData
from polls.storage import InMemoryKeyValueStore, KeyValueStore
from utils.utils import PerformanceMonitor
from zk.backends import KeyedDigestProofBackend, create_keyed_proof
from zk.proof_codec import encode_proof
from zk.public_inputs import build_public_inputs
from zk.verifier import ProofVerifier

logger = logging.getLogger(__name__)

# Opaque stand-in for proof bytes under the structural backend
PLACEHOLDER_PROOF = b"\x01" * 64


class MonitoredProofVerifier(ProofVerifier):
    """Verifier that records each call as a 'verify' operation"""

    def __init__(self, monitor: PerformanceMonitor, **kwargs):
        super().__init__(**kwargs)
        self.monitor = monitor

    def verify(self, poll: Poll, proof_data: ProofData,
               verification_key: Optional[bytes]) -> bool:
        with self.monitor.start_operation("verify"):
            return super().verify(poll, proof_data, verification_key)


class AnonymousPollSystem:
    """
    Complete polling system:
    1. Poll lifecycle with creator-only close and height-based expiry
    2. ZK proof verification against the stored verification key
    3. Per-poll nullifier ledger and public per-option tally
    """

    def __init__(
        self,
        config: Optional[PollSystemConfig] = None,
        host: Optional[HostEnvironment] = None,
        store: Optional[KeyValueStore] = None,
        events: Optional[EventLog] = None,
    ):
        self.config = config or PollSystemConfig()
        self.host = host or LocalHost(block_number=self.config.initial_block_height)
        self.store = store or InMemoryKeyValueStore()
        self.events = events or EventLog()

        self.performance_monitor = PerformanceMonitor()
        self.rejections: Counter = Counter()

        logger.info(
            f"Initializing poll system with '{self.config.verifier.backend}' proof backend")
        if self.config.enable_benchmarking:
            self.verifier = MonitoredProofVerifier.from_config(
                self.config.verifier, monitor=self.performance_monitor)
        else:
            self.verifier = ProofVerifier.from_config(self.config.verifier)
        self.manager = PollManager(
            store=self.store,
            host=self.host,
            verifier=self.verifier,
            events=self.events,
            verification_key=self.config.load_verification_key(),
        )

        if not self.manager.has_verification_key():
            logger.warning("No verification key configured; every vote will be rejected until one is set")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def _monitored(self, operation: str):
        if self.config.enable_benchmarking:
            return self.performance_monitor.start_operation(operation)
        return nullcontext()

    def create_poll(self, title: str, description: str, options: Sequence[str],
                    merkle_root: bytes, duration: int) -> int:
        with self._monitored("create_poll"):
            return self.manager.create_poll(title, description, options,
                                            merkle_root, duration)

    def vote(self, poll_id: int, proof_data: ProofData):
        try:
            with self._monitored("vote"):
                self.manager.vote(poll_id, proof_data)
        except POLL_SYSTEM_ERRORS as e:
            self.rejections[e.kind] += 1
            raise

    def end_poll(self, poll_id: int):
        with self._monitored("end_poll"):
            self.manager.end_poll(poll_id)

    def get_poll(self, poll_id: int) -> Optional[Poll]:
        return self.manager.get_poll(poll_id)

    def get_results(self, poll_id: int) -> Optional[List[int]]:
        return self.manager.get_results(poll_id)

    def is_nullifier_used(self, poll_id: int, nullifier: bytes) -> bool:
        return self.manager.is_nullifier_used(poll_id, nullifier)

    def get_poll_status(self, poll_id: int) -> Optional[PollStatus]:
        return self.manager.get_poll_status(poll_id)

    def set_verification_key(self, verification_key: bytes):
        self.manager.set_verification_key(verification_key)

    def get_verification_key(self) -> Optional[bytes]:
        return self.manager.get_verification_key()

    def has_verification_key(self) -> bool:
        return self.manager.has_verification_key()

    # ------------------------------------------------------------------
    # Tooling
    # ------------------------------------------------------------------

    def assemble_proof(self, poll_id: int, nullifier: bytes, vote_choice: int,
                       proof_bytes: Optional[bytes] = None) -> ProofData:
        """
        Build a submission whose public inputs match the poll.

        Stands in for the external prover in demos and benchmarks. With the
        keyed digest backend the proof bytes are derived from the stored key;
        otherwise ``proof_bytes`` (or a placeholder) is used as given.
        """
        poll = self.manager.get_poll(poll_id)
        if poll is None:
            raise ValueError(f"Poll {poll_id} not found")

        draft = ProofData(proof=b"", nullifier=nullifier, vote_choice=vote_choice)
        public_inputs = build_public_inputs(poll, draft)

        if proof_bytes is None:
            key = self.manager.get_verification_key()
            if isinstance(self.verifier.backend, KeyedDigestProofBackend) and key:
                proof_bytes = create_keyed_proof(key, public_inputs)
            else:
                proof_bytes = PLACEHOLDER_PROOF

        return ProofData(
            proof=encode_proof(proof_bytes, public_inputs),
            nullifier=nullifier,
            vote_choice=vote_choice,
        )

    def export_results(self, poll_ids: Sequence[int]) -> Dict[str, Any]:
        polls = []
        for poll_id in poll_ids:
            poll = self.manager.get_poll(poll_id)
            if poll is None:
                continue
            polls.append({
                'id': poll.id,
                'title': poll.title,
                'options': poll.options,
                'results': self.manager.get_results(poll_id),
                'total_votes': poll.total_votes,
                'status': self.manager.get_poll_status(poll_id).value,
                'end_block': poll.end_block,
            })
        return {
            'polls': polls,
            'rejections': dict(self.rejections),
            'performance_metrics': self.performance_monitor.get_summary(),
        }

    def get_system_metrics(self) -> Dict[str, Any]:
        return {
            'block_number': self.host.block_number(),
            'next_poll_id': self.manager.next_poll_id,
            'has_verification_key': self.manager.has_verification_key(),
            'proof_backend': self.verifier.backend.name,
            'events_published': len(self.events.events),
            'rejections': dict(self.rejections),
            'performance': self.performance_monitor.get_summary(),
        }


def random_nullifier() -> bytes:
    return secrets.token_bytes(32)


# ============================================================================
# DEMONSTRATION
# ============================================================================


def demonstrate_anonymous_poll(config: Optional[PollSystemConfig] = None) -> Dict[str, Any]:
    """Walk one poll through its full lifecycle, printing each step"""
    print("\n" + "=" * 80)
    print("ANONYMOUS ELIGIBILITY-GATED POLL DEMONSTRATION")
    print("=" * 80 + "\n")

    host = LocalHost(caller="alice")
    system = AnonymousPollSystem(config=config, host=host)
    if not system.has_verification_key():
        system.set_verification_key(secrets.token_bytes(32))

    merkle_root = secrets.token_bytes(32)
    poll_id = system.create_poll(
        "Adopt the proposal?", "Demo poll", ["yes", "no"], merkle_root, duration=10)
    print(f"Created poll {poll_id}, ends at block {system.get_poll(poll_id).end_block}")

    outcomes = []

    def attempt(label: str, action):
        try:
            action()
            outcomes.append((label, "ok"))
            print(f"  {label}: ok")
        except POLL_SYSTEM_ERRORS as e:
            outcomes.append((label, e.kind))
            print(f"  {label}: {e.kind}")

    n1, n2 = random_nullifier(), random_nullifier()
    attempt("vote N1 -> yes", lambda: system.vote(poll_id, system.assemble_proof(poll_id, n1, 0)))
    print(f"  results: {system.get_results(poll_id)}")
    attempt("vote N1 again", lambda: system.vote(poll_id, system.assemble_proof(poll_id, n1, 1)))
    attempt("vote N2 -> option 5", lambda: system.vote(
        poll_id, ProofData(proof=b"", nullifier=n2, vote_choice=5)))

    host.set_caller("mallory")
    attempt("end poll as mallory", lambda: system.end_poll(poll_id))
    host.set_caller("alice")
    attempt("end poll as alice", lambda: system.end_poll(poll_id))
    attempt("vote N2 after end", lambda: system.vote(poll_id, system.assemble_proof(poll_id, n2, 1)))

    results = system.export_results([poll_id])
    results['outcomes'] = outcomes

    print("\n" + "=" * 80)
    print(f"Final results: {system.get_results(poll_id)}")
    print("=" * 80 + "\n")
    return results
