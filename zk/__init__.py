"""
Zero-Knowledge Proof Module for Anonymous Polling
Proof blob codec, public input reconstruction and verification
"""

from .proof_codec import (
    DecodedProof,
    decode_proof,
    encode_proof,
)
from .public_inputs import (
    PUBLIC_INPUT_COUNT,
    bytes_to_field_string,
    build_public_inputs,
)
from .backends import (
    ProofBackend,
    StructuralProofBackend,
    KeyedDigestProofBackend,
    create_keyed_proof,
    get_backend,
)
from .verifier import ProofVerifier
from .exceptions import (
    ZKError,
    ProofDeserializationError,
    InvalidProofError,
    InvalidPublicInputsError,
)

__all__ = [
    # Codec
    'DecodedProof',
    'decode_proof',
    'encode_proof',

    # Public inputs
    'PUBLIC_INPUT_COUNT',
    'bytes_to_field_string',
    'build_public_inputs',

    # Verification
    'ProofVerifier',
    'ProofBackend',
    'StructuralProofBackend',
    'KeyedDigestProofBackend',
    'create_keyed_proof',
    'get_backend',

    # Exceptions
    'ZKError',
    'ProofDeserializationError',
    'InvalidProofError',
    'InvalidPublicInputsError',
]
