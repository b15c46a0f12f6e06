"""Exceptions raised by the proof pipeline."""


class ZKError(Exception):
    """Base exception for proof handling"""
    kind = "ZKError"


class ProofDeserializationError(ZKError):
    """Proof buffer is structurally malformed"""
    kind = "ProofDeserializationError"


class InvalidProofError(ZKError):
    """Proof decoded but did not verify"""
    kind = "InvalidProof"


class InvalidPublicInputsError(ZKError):
    """Proof public inputs disagree with the inputs rebuilt from poll state"""
    kind = "InvalidPublicInputs"
