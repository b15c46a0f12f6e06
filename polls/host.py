"""Caller identity and block height as seen by poll operations."""

from abc import ABC, abstractmethod

from .models import U32_MAX


class HostEnvironment(ABC):

    @abstractmethod
    def caller(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def block_number(self) -> int:
        raise NotImplementedError


class LocalHost(HostEnvironment):
    """Host for local runs: the caller and the chain height are set by hand"""

    def __init__(self, caller: str = "alice", block_number: int = 0):
        self.current_caller = caller
        self.current_block = block_number

    def caller(self) -> str:
        return self.current_caller

    def block_number(self) -> int:
        return self.current_block

    def set_caller(self, caller: str):
        self.current_caller = caller

    def advance(self, blocks: int = 1) -> int:
        if blocks < 0 or self.current_block + blocks > U32_MAX:
            raise ValueError(f"Cannot advance {blocks} blocks from {self.current_block}")
        self.current_block += blocks
        return self.current_block
