"""
Proof Verifier
==============

Decides whether a submitted vote proof is acceptable for a poll:

1. decode the blob (malformed input raises ProofDeserializationError)
2. rebuild the public inputs from poll state and the submission
3. require the proof's public inputs to match them exactly
4. structural sanity checks on the decoded proof
5. require a verification key and delegate to the cryptographic backend

Steps 3-5 report failure by returning False. Verification has no side effects
and can be repeated freely.
"""

import logging
import re
from typing import TYPE_CHECKING, List, Optional, Sequence

from .backends import ProofBackend, StructuralProofBackend, get_backend
from .exceptions import InvalidPublicInputsError
from .proof_codec import DecodedProof, decode_proof
from .public_inputs import PUBLIC_INPUT_COUNT, build_public_inputs

if TYPE_CHECKING:
    from config.config import VerifierConfig
    from polls.models import Poll, ProofData

logger = logging.getLogger(__name__)

MAX_PROOF_SIZE = 10000
U128_MAX = (1 << 128) - 1

_DECIMAL = re.compile(r'\+?[0-9]+')


def is_field_element_string(value: str) -> bool:
    """True for a non-empty unsigned decimal that fits in 128 bits"""
    if not value or not _DECIMAL.fullmatch(value):
        return False
    return int(value) <= U128_MAX


class ProofVerifier:
    """Stateless verifier; the key and poll snapshot are passed per call"""

    def __init__(self, backend: Optional[ProofBackend] = None,
                 max_proof_size: int = MAX_PROOF_SIZE,
                 strict_public_inputs: bool = False):
        self.backend = backend or StructuralProofBackend()
        self.max_proof_size = max_proof_size
        self.strict_public_inputs = strict_public_inputs

    @classmethod
    def from_config(cls, config: 'VerifierConfig', **kwargs) -> 'ProofVerifier':
        return cls(
            backend=get_backend(config.backend),
            max_proof_size=config.max_proof_size,
            strict_public_inputs=config.strict_public_inputs,
            **kwargs,
        )

    def verify(self, poll: 'Poll', proof_data: 'ProofData',
               verification_key: Optional[bytes]) -> bool:
        decoded = decode_proof(proof_data.proof)
        expected = build_public_inputs(poll, proof_data)

        if not self.public_inputs_match(decoded.public_inputs, expected):
            logger.debug(f"Public input mismatch for poll {poll.id}")
            if self.strict_public_inputs:
                raise InvalidPublicInputsError(
                    f"Proof public inputs do not match poll {poll.id}")
            return False

        if not self.validate_structure(decoded):
            return False

        if verification_key is None:
            logger.debug("No verification key set; rejecting proof")
            return False

        return self.backend.verify(decoded.proof_bytes, decoded.public_inputs,
                                   verification_key)

    @staticmethod
    def public_inputs_match(proof_inputs: Sequence[str], expected: List[str]) -> bool:
        if len(proof_inputs) != len(expected):
            return False
        return all(got == want for got, want in zip(proof_inputs, expected))

    def validate_structure(self, proof: DecodedProof) -> bool:
        """Size and shape checks on a decoded proof"""
        if not 0 < len(proof.proof_bytes) <= self.max_proof_size:
            logger.debug(f"Proof size {len(proof.proof_bytes)} out of range")
            return False

        if len(proof.public_inputs) != PUBLIC_INPUT_COUNT:
            logger.debug(
                f"Expected {PUBLIC_INPUT_COUNT} public inputs, got {len(proof.public_inputs)}")
            return False

        for value in proof.public_inputs:
            if not is_field_element_string(value):
                logger.debug(f"Public input {value!r} is not a field element")
                return False

        return True
