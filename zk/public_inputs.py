"""
Public inputs of the anonymous vote circuit.

The order and encoding here must match what the external prover commits to:
merkle root, nullifier, poll id, option count, each as a base-10 string.
"""

from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from polls.models import Poll, ProofData

PUBLIC_INPUT_COUNT = 4

# Only the low 16 bytes of 32-byte values reach the circuit today.
# The paired circuit reads the same window, so widening this breaks verification.
FIELD_WINDOW_BYTES = 16


def bytes_to_field_string(value: bytes) -> str:
    """Little-endian integer over the first FIELD_WINDOW_BYTES bytes, in decimal"""
    return str(int.from_bytes(bytes(value[:FIELD_WINDOW_BYTES]), 'little'))


def build_public_inputs(poll: 'Poll', proof_data: 'ProofData') -> List[str]:
    return [
        bytes_to_field_string(poll.merkle_root),
        bytes_to_field_string(proof_data.nullifier),
        str(poll.id),
        str(len(poll.options)),
    ]
