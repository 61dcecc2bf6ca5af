from __future__ import annotations
import logging
from typing import Callable, Hashable, Iterable, TypeVar
from ledgersync.errors import DecodeFailure
from ledgersync.pda import StorageAddress
from ledgersync.remote import RecordClient, AccountData

logger = logging.getLogger(__name__)

P = TypeVar('P')
K = TypeVar('K', bound=Hashable)
R = TypeVar('R')

def chunked(items:list, size:int) -> Iterable[list]:
    if size <= 0:
        raise ValueError("size must be positive")
    for i in range(0, len(items), size):
        yield items[i:i + size]

class BatchFetchPlanner:
    """Resolves the related entities of many primary records with as few reads as possible.

    Related keys are deduplicated and turned into addresses, then all addresses are read with one
    'read_many' per max-batch-size chunk (one read in the common case). A payload that fails to decode
    is logged and treated as absent; it never fails the batch.

    Addresses whose payload failed to decode are remembered as absent for the session and not read
    again until reset() is called.
    """
    _undecodable:set[StorageAddress]

    def __init__(self, client:RecordClient, max_batch_size:int|None=None):
        self._client = client
        self._max_batch_size = max_batch_size
        self._undecodable = set()
        self.reads_issued = 0

    @property
    def max_batch_size(self) -> int:
        if self._max_batch_size is not None:
            return min(self._max_batch_size, self._client.max_batch_size)
        return self._client.max_batch_size

    def reset(self):
        self._undecodable.clear()

    async def read_addresses(self, addresses:list[StorageAddress]) -> dict[StorageAddress, AccountData | None]:
        """Reads unique addresses in as few round trips as the batch size allows."""
        unique = list(dict.fromkeys(addresses))
        result:dict[StorageAddress, AccountData | None] = {}
        for chunk in chunked(unique, self.max_batch_size):
            self.reads_issued += 1
            payloads = await self._client.read_many(chunk)
            for address, payload in zip(chunk, payloads):
                result[address] = payload
        return result

    def _plan(self,
            primary:Iterable[P],
            key_of:Callable[[P], K],
            address_of:Callable[[K], StorageAddress]) -> dict[K, StorageAddress]:
        # dict keeps the first-seen order, which makes the batch deterministic
        key_to_address:dict[K, StorageAddress] = {}
        for record in primary:
            key = key_of(record)
            if key is None or key in key_to_address:
                continue
            key_to_address[key] = address_of(key)
        return key_to_address

    async def plan_and_fetch(self,
            primary:Iterable[P],
            key_of:Callable[[P], K],
            address_of:Callable[[K], StorageAddress],
            decode:Callable[[AccountData, StorageAddress], R]) -> dict[K, R | None]:
        key_to_address = self._plan(primary, key_of, address_of)
        if len(key_to_address) == 0:
            return {}
        to_read = [a for a in key_to_address.values() if a not in self._undecodable]
        payloads = await self.read_addresses(to_read) if to_read else {}

        related:dict[K, R | None] = {}
        for key, address in key_to_address.items():
            payload = payloads.get(address)
            if payload is None:
                related[key] = None
                continue
            try:
                related[key] = decode(payload, address)
            except DecodeFailure as e:
                logger.warning(f"Related record at {address} for key {key} could not be decoded, using fallback: {e}")
                self._undecodable.add(address)
                related[key] = None
        return related

    async def batch_exists(self,
            keys:Iterable[K],
            address_of:Callable[[K], StorageAddress]) -> dict[K, StorageAddress | None]:
        """For each key, the related address if an account exists there, otherwise None. Payloads are not decoded."""
        key_to_address = self._plan(keys, lambda k: k, address_of)
        if len(key_to_address) == 0:
            return {}
        payloads = await self.read_addresses(list(key_to_address.values()))
        return {key: (address if payloads.get(address) is not None else None)
                for key, address in key_to_address.items()}
