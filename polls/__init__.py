"""Poll lifecycle, nullifier ledger and vote tally."""

from .models import (
    Poll,
    ProofData,
    PollStatus,
    poll_status,
    PollCreated,
    VoteCast,
    PollEnded,
    VerificationKeyUpdated,
    U32_MAX,
)
from .storage import (
    KeyValueStore,
    InMemoryKeyValueStore,
    PollRepository,
    VerificationKeyStore,
)
from .ledger import NullifierLedger
from .tally import VoteTally
from .events import EventLog
from .host import HostEnvironment, LocalHost
from .lifecycle import PollManager
from .errors import (
    PollError,
    PollNotFoundError,
    PollAlreadyExistsError,
    PollEndedError,
    NullifierAlreadyUsedError,
    NotPollCreatorError,
    InvalidVoteChoiceError,
    InvalidNullifierFormatError,
    ArithmeticOverflowError,
    POLL_SYSTEM_ERRORS,
)

__all__ = [
    # Data model
    'Poll',
    'ProofData',
    'PollStatus',
    'poll_status',
    'U32_MAX',

    # Notifications
    'PollCreated',
    'VoteCast',
    'PollEnded',
    'VerificationKeyUpdated',
    'EventLog',

    # Storage
    'KeyValueStore',
    'InMemoryKeyValueStore',
    'PollRepository',
    'VerificationKeyStore',
    'NullifierLedger',
    'VoteTally',

    # Host and manager
    'HostEnvironment',
    'LocalHost',
    'PollManager',

    # Exceptions
    'PollError',
    'PollNotFoundError',
    'PollAlreadyExistsError',
    'PollEndedError',
    'NullifierAlreadyUsedError',
    'NotPollCreatorError',
    'InvalidVoteChoiceError',
    'InvalidNullifierFormatError',
    'ArithmeticOverflowError',
    'POLL_SYSTEM_ERRORS',
]
