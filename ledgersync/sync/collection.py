from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar
from ledgersync.errors import DecodeFailure, RemoteError
from ledgersync.pda import Identity, StorageAddress
from ledgersync.records import *
from ledgersync.remote import RecordClient, MemcmpFilter, AccountData
from .coalescer import RequestCoalescer
from .sync_state import SyncState

logger = logging.getLogger(__name__)

R = TypeVar('R', bound=Record)

@dataclass(frozen=True)
class RecordSchema(Generic[R]):
    """How one kind of account is recognized and decoded."""
    account_name:str
    decode:Callable[[AccountData, StorageAddress | None], R]
    encode:Callable[[R], bytes]

    @property
    def discriminator(self) -> bytes:
        return account_discriminator(self.account_name)

    def discriminator_filter(self) -> MemcmpFilter:
        return MemcmpFilter(0, self.discriminator)

    def field_filter(self, value:bytes, offset:int=FIRST_FIELD_OFFSET) -> MemcmpFilter:
        return MemcmpFilter(offset, bytes(value))

    def try_decode(self, data:AccountData, address:StorageAddress | None) -> R | None:
        try:
            return self.decode(data, address)
        except DecodeFailure as e:
            logger.warning(f"{self.account_name} account at {address} could not be decoded: {e}")
            return None

PROFILE_SCHEMA = RecordSchema(PROFILE_ACCOUNT, bytes_to_profile, profile_to_bytes)
POST_SCHEMA = RecordSchema(POST_ACCOUNT, bytes_to_post, post_to_bytes)
COMMENT_SCHEMA = RecordSchema(COMMENT_ACCOUNT, bytes_to_comment, comment_to_bytes)
FOLLOW_SCHEMA = RecordSchema(FOLLOW_ACCOUNT, bytes_to_follow, follow_to_bytes)

Transform = Callable[[list[R]], Awaitable[Any]]

class RecordCollection(Generic[R]):
    """Fetches one kind of record into SyncState.

    Every fetch goes through the coalescer, keyed by (collection, actor, target), so concurrent callers
    for the same target share one remote call. Results are only applied if the fetch is still current
    for the actor; a discarded result is returned as None.
    """

    def __init__(self, schema:RecordSchema[R], client:RecordClient, state:SyncState, coalescer:RequestCoalescer):
        self.schema = schema
        self._client = client
        self._state = state
        self._coalescer = coalescer

    async def fetch_one(self,
            collection:str,
            address:StorageAddress,
            actor:Identity|None,
            force:bool=False,
            fresh:bool=False) -> R | None:
        """'fresh' implies 'force' and does not share a fetch that started before the call."""
        if not force and not fresh and self._state.is_fresh(collection, actor):
            return self._state.snapshot(collection, actor)
        key = (collection, actor, address)
        return await self._run(key, lambda: self._fetch_one(collection, address, actor), fresh)

    async def _run(self, key, factory, fresh:bool):
        if fresh:
            return await self._coalescer.fresh(key, factory)
        return await self._coalescer.join(key, factory)

    async def _fetch_one(self, collection:str, address:StorageAddress, actor:Identity|None) -> R | None:
        ticket = self._state.begin(collection, actor)
        try:
            data = await self._client.read_one(address)
        except RemoteError as e:
            logger.error(f"Fetching '{collection}' at {address} failed: {e}", exc_info=e)
            self._state.fail(ticket, e)
            raise
        if data is None:
            # no account at the address, a valid empty state
            self._state.not_found(ticket)
            return None
        try:
            record = self.schema.decode(data, address)
        except DecodeFailure as e:
            logger.warning(f"'{collection}' at {address} could not be decoded: {e}")
            self._state.fail(ticket, e)
            return None
        if not self._state.complete(ticket, record):
            return None
        return record

    async def fetch_scan(self,
            collection:str,
            filters:list[MemcmpFilter],
            actor:Identity|None,
            transform:Transform|None=None,
            force:bool=True,
            fresh:bool=False) -> Any:
        """Scans all accounts of this kind that match 'filters', decodes them, and optionally transforms the list."""
        if not force and not fresh and self._state.is_fresh(collection, actor):
            return self._state.snapshot(collection, actor)
        key = (collection, actor, tuple(filters))
        return await self._run(key, lambda: self._fetch_scan(collection, filters, actor, transform), fresh)

    async def _fetch_scan(self, collection:str, filters:list[MemcmpFilter], actor:Identity|None, transform:Transform|None) -> Any:
        ticket = self._state.begin(collection, actor)
        try:
            rows = await self._client.scan([self.schema.discriminator_filter(), *filters])
            records = [r for r in (self.schema.try_decode(data, address) for address, data in rows) if r is not None]
            result = await transform(records) if transform is not None else records
        except RemoteError as e:
            logger.error(f"Scanning '{collection}' failed: {e}", exc_info=e)
            self._state.fail(ticket, e)
            raise
        if not self._state.complete(ticket, result):
            return None
        return result
