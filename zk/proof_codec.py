"""
Proof Codec
===========

Wire format of a submitted proof blob (all integers little-endian u32):

    [proof_len][proof bytes][input_count]
        { [input_len][input bytes, UTF-8] } * input_count

The codec only guarantees structural safety. Whether the public inputs are
meaningful is decided by the verifier.
"""

import struct
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from .exceptions import ProofDeserializationError

_U32 = struct.Struct('<I')
U32_MAX = 0xFFFFFFFF

# proof_len + input_count
MIN_PROOF_BUFFER = 2 * _U32.size


@dataclass
class DecodedProof:
    """Proof bytes and the public inputs the prover committed to"""
    proof_bytes: bytes
    public_inputs: List[str] = field(default_factory=list)


def _read_u32(buffer: bytes, offset: int) -> Tuple[int, int]:
    if offset + _U32.size > len(buffer):
        raise ProofDeserializationError(
            f"Truncated length prefix at offset {offset}")
    (value,) = _U32.unpack_from(buffer, offset)
    return value, offset + _U32.size


def _read_bytes(buffer: bytes, offset: int, length: int) -> Tuple[bytes, int]:
    end = offset + length
    if end > len(buffer):
        raise ProofDeserializationError(
            f"Declared length {length} at offset {offset} exceeds buffer of {len(buffer)} bytes")
    return bytes(buffer[offset:end]), end


def decode_proof(buffer: bytes) -> DecodedProof:
    """Decode a proof blob, raising ProofDeserializationError on any malformed input"""
    if buffer is None or len(buffer) < MIN_PROOF_BUFFER:
        raise ProofDeserializationError(
            f"Proof buffer must be at least {MIN_PROOF_BUFFER} bytes")

    buffer = bytes(buffer)
    proof_len, offset = _read_u32(buffer, 0)

    # The input count must follow the proof bytes
    if offset + proof_len + _U32.size > len(buffer):
        raise ProofDeserializationError(
            f"Declared proof length {proof_len} exceeds buffer of {len(buffer)} bytes")

    proof_bytes, offset = _read_bytes(buffer, offset, proof_len)
    input_count, offset = _read_u32(buffer, offset)

    public_inputs = []
    for index in range(input_count):
        input_len, offset = _read_u32(buffer, offset)
        raw, offset = _read_bytes(buffer, offset, input_len)
        try:
            public_inputs.append(raw.decode('utf-8'))
        except UnicodeDecodeError as e:
            raise ProofDeserializationError(
                f"Public input {index} is not valid UTF-8") from e

    return DecodedProof(proof_bytes=proof_bytes, public_inputs=public_inputs)


def encode_proof(proof_bytes: bytes, public_inputs: Sequence[str]) -> bytes:
    """Inverse of decode_proof, used by tooling that assembles proof blobs"""
    if len(proof_bytes) > U32_MAX or len(public_inputs) > U32_MAX:
        raise ValueError("Proof component too large for a u32 length prefix")

    parts = [_U32.pack(len(proof_bytes)), bytes(proof_bytes),
             _U32.pack(len(public_inputs))]
    for value in public_inputs:
        encoded = value.encode('utf-8')
        if len(encoded) > U32_MAX:
            raise ValueError("Public input too large for a u32 length prefix")
        parts.append(_U32.pack(len(encoded)))
        parts.append(encoded)

    return b''.join(parts)
