import hashlib
import logging
from typing import Awaitable, Callable
from ledgersync.errors import InputError
from ledgersync.pda import StorageAddress, to_key, to_key_str
from ledgersync.records import Record, record_to_bytes
from .record_client import *

logger = logging.getLogger(__name__)

InstructionHandler = Callable[['MemoryRecordClient', Instruction], Awaitable[None]]

class MemoryRecordClient(RecordClient):
    """An in-memory ledger. Accounts are raw payloads keyed by address.

    Submitted instructions are recorded. If an instruction handler is set, it is called to apply the
    instruction to the accounts (or to reject it by raising WriteRejected).
    """
    #no locking needed here, because all the dict operations used here are atomic
    _accounts:dict[StorageAddress, AccountData]
    submitted:list[Instruction]

    def __init__(self, max_batch_size:int=100, instruction_handler:InstructionHandler|None=None):
        super().__init__()
        self._accounts = {}
        self.max_batch_size = max_batch_size
        self.instruction_handler = instruction_handler
        self.submitted = []

    def put(self, address:StorageAddress, data:AccountData) -> None:
        self._accounts[to_key(address)] = bytes(data)

    def put_record(self, record:Record) -> StorageAddress:
        if record.address is None:
            raise InputError("Record needs an address to be stored.")
        self.put(record.address, record_to_bytes(record))
        return record.address

    def delete(self, address:StorageAddress) -> None:
        self._accounts.pop(address, None)

    async def read_one(self, address:StorageAddress) -> AccountData | None:
        return self._accounts.get(address)

    async def read_many(self, addresses:list[StorageAddress]) -> list[AccountData | None]:
        if len(addresses) > self.max_batch_size:
            raise InputError(f"Expected at most {self.max_batch_size} addresses per read but got {len(addresses)}")
        return [self._accounts.get(address) for address in addresses]

    async def scan(self, filters:list[MemcmpFilter]) -> list[tuple[StorageAddress, AccountData]]:
        return [(address, data) for address, data in self._accounts.items()
                if all(memcmp_matches(data, f) for f in filters)]

    async def submit(self, instruction:Instruction) -> str:
        if self.instruction_handler is not None:
            await self.instruction_handler(self, instruction)
        self.submitted.append(instruction)
        hasher = hashlib.sha256(instruction.name.encode('ascii'))
        hasher.update(len(self.submitted).to_bytes(8, 'little'))
        for account in instruction.accounts.values():
            hasher.update(account)
        tx = to_key_str(hasher.digest())
        logger.debug(f"Applied instruction '{instruction.name}' as transaction {tx}")
        return tx
