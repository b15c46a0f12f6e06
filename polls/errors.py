"""Poll lifecycle exceptions. Each carries the failure kind reported to callers."""

from zk.exceptions import (
    ZKError,
    ProofDeserializationError,
    InvalidProofError,
    InvalidPublicInputsError,
)


class PollError(Exception):
    """Base exception for poll operations"""
    kind = "PollError"


class PollNotFoundError(PollError):
    kind = "PollNotFound"


class PollAlreadyExistsError(PollError):
    """Reserved; poll ids are assigned by the manager"""
    kind = "PollAlreadyExists"


class PollEndedError(PollError):
    """Poll was closed by its creator or its end block has passed"""
    kind = "PollEnded"


class NullifierAlreadyUsedError(PollError):
    kind = "NullifierAlreadyUsed"


class NotPollCreatorError(PollError):
    kind = "NotPollCreator"


class InvalidVoteChoiceError(PollError):
    kind = "InvalidVoteChoice"


class InvalidNullifierFormatError(PollError):
    kind = "InvalidNullifierFormat"


class ArithmeticOverflowError(PollError):
    """Counter or block height arithmetic would wrap"""
    kind = "ArithmeticOverflow"


# Catch this to receive any failure kind of the polling system
POLL_SYSTEM_ERRORS = (PollError, ZKError)

__all__ = [
    'PollError',
    'PollNotFoundError',
    'PollAlreadyExistsError',
    'PollEndedError',
    'NullifierAlreadyUsedError',
    'NotPollCreatorError',
    'InvalidVoteChoiceError',
    'InvalidNullifierFormatError',
    'ArithmeticOverflowError',
    'ZKError',
    'ProofDeserializationError',
    'InvalidProofError',
    'InvalidPublicInputsError',
    'POLL_SYSTEM_ERRORS',
]
