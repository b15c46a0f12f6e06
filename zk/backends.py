"""
Cryptographic proof backends.

A backend answers one question: do these proof bytes verify against this key
for these public inputs? The verifier has already checked structure and
public-input agreement before a backend is consulted.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Sequence, Type

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac

logger = logging.getLogger(__name__)


class ProofBackend(ABC):
    """Pluggable check of proof bytes against a verification key"""

    name = "abstract"

    @abstractmethod
    def verify(self, proof_bytes: bytes, public_inputs: Sequence[str],
               verification_key: bytes) -> bool:
        raise NotImplementedError


class StructuralProofBackend(ProofBackend):
    """Reference backend: accepts anything that passed the structural checks.

    Stands in until a real zk backend is wired in; soundness comes solely from
    the key being present and the public inputs matching.
    """

    name = "structural"

    def verify(self, proof_bytes: bytes, public_inputs: Sequence[str],
               verification_key: bytes) -> bool:
        return True


class KeyedDigestProofBackend(ProofBackend):
    """Proof bytes must equal HMAC-SHA256(key, public input transcript)"""

    name = "hmac-sha256"
    DOMAIN_TAG = b"zk-poll/public-inputs/v1"

    @classmethod
    def transcript(cls, public_inputs: Sequence[str]) -> bytes:
        # Length-prefix each input so ("1", "23") and ("12", "3") differ
        parts = [cls.DOMAIN_TAG]
        for value in public_inputs:
            encoded = value.encode('utf-8')
            parts.append(len(encoded).to_bytes(4, 'little'))
            parts.append(encoded)
        return b''.join(parts)

    @classmethod
    def sign(cls, verification_key: bytes, public_inputs: Sequence[str]) -> bytes:
        h = hmac.HMAC(verification_key, hashes.SHA256())
        h.update(cls.transcript(public_inputs))
        return h.finalize()

    def verify(self, proof_bytes: bytes, public_inputs: Sequence[str],
               verification_key: bytes) -> bool:
        if not verification_key:
            return False

        h = hmac.HMAC(verification_key, hashes.SHA256())
        h.update(self.transcript(public_inputs))
        try:
            h.verify(proof_bytes)
        except InvalidSignature:
            logger.debug("Keyed digest mismatch")
            return False
        return True


def create_keyed_proof(verification_key: bytes, public_inputs: Sequence[str]) -> bytes:
    """Proof bytes accepted by KeyedDigestProofBackend for these inputs"""
    return KeyedDigestProofBackend.sign(verification_key, public_inputs)


BACKENDS: Dict[str, Type[ProofBackend]] = {
    StructuralProofBackend.name: StructuralProofBackend,
    KeyedDigestProofBackend.name: KeyedDigestProofBackend,
}


def get_backend(name: str) -> ProofBackend:
    try:
        return BACKENDS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown proof backend: {name} (available: {', '.join(sorted(BACKENDS))})") from None
