from abc import ABC, abstractmethod
from typing import NamedTuple
from ledgersync.pda import PublicKey, StorageAddress

# Interface to the remote record store: reads by address, batched reads, filtered scans, and instruction submission.

AccountData = bytes

MemcmpFilter = NamedTuple("MemcmpFilter",
    [('offset', int),
     ('match', bytes)])

Instruction = NamedTuple("Instruction",
    [('name', str), # snake_case instruction name of the program
     ('accounts', dict[str, PublicKey]),
     ('args', tuple)])

def memcmp_matches(data:bytes, memcmp:MemcmpFilter) -> bool:
    end = memcmp.offset + len(memcmp.match)
    return len(data) >= end and data[memcmp.offset:end] == memcmp.match

class RecordClient(ABC):
    """Interface for reading and writing ledger accounts."""
    max_batch_size:int = 100

    @abstractmethod
    async def read_one(self, address:StorageAddress) -> AccountData | None:
        """Returns None if the address holds no account."""
        pass

    @abstractmethod
    async def read_many(self, addresses:list[StorageAddress]) -> list[AccountData | None]:
        """One round trip. The result has the same order as 'addresses', None for missing accounts."""
        pass

    @abstractmethod
    async def scan(self, filters:list[MemcmpFilter]) -> list[tuple[StorageAddress, AccountData]]:
        """All accounts of the program that match every filter."""
        pass

    @abstractmethod
    async def submit(self, instruction:Instruction) -> str:
        """Submits a signed instruction and returns the transaction id."""
        pass

class InstructionSubmitter(ABC):
    """The wallet side of the write path: builds, signs, and sends a transaction for an instruction."""
    @abstractmethod
    async def submit(self, instruction:Instruction) -> str:
        pass
