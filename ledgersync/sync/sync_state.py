from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from ledgersync.pda import Identity

logger = logging.getLogger(__name__)

# Last synchronized snapshot per collection, scoped to the actor that requested it.
# Performs no I/O. Writers of a collection are serialized by the RequestCoalescer.

class CollectionStatus(Enum):
    EMPTY = "empty"
    FETCHING = "fetching"
    POPULATED = "populated"
    STALE = "stale"

@dataclass
class CollectionState:
    status:CollectionStatus = CollectionStatus.EMPTY
    actor:Identity|None = None
    records:Any = None
    # last remote error, kept alongside the last good snapshot
    error:Exception|None = None
    # set when the last fetch ended in "does not exist"
    not_found:bool = False

    @property
    def is_populated(self) -> bool:
        return self.status == CollectionStatus.POPULATED

    @property
    def has_error(self) -> bool:
        return self.error is not None

@dataclass(frozen=True)
class FetchTicket:
    """Handed out when a fetch begins, presented again when its result is applied."""
    collection:str
    actor:Identity|None
    generation:int

@dataclass
class SyncState:
    _collections:dict[str, CollectionState] = field(default_factory=dict)
    _actor:Identity|None = None
    _generation:int = 0

    @property
    def actor(self) -> Identity|None:
        return self._actor

    @property
    def generation(self) -> int:
        return self._generation

    def get(self, collection:str) -> CollectionState:
        state = self._collections.get(collection)
        if state is None:
            state = CollectionState()
            self._collections[collection] = state
        return state

    def collections(self) -> list[str]:
        return list(self._collections.keys())

    def set_actor(self, actor:Identity|None) -> bool:
        """Switches the active actor. Returns True if it changed, in which case every collection was invalidated.

        Invalidated collections hold no records and stay STALE until their next fetch begins.
        """
        if actor == self._actor:
            return False
        logger.info(f"Actor changed from {self._actor} to {actor}, invalidating {len(self._collections)} collections")
        self._actor = actor
        self._generation += 1
        for name in self._collections:
            self._collections[name] = CollectionState(status=CollectionStatus.STALE)
        return True

    def snapshot(self, collection:str, actor:Identity|None) -> Any:
        """The records of a collection if they were populated for 'actor', otherwise None (stale or unknown)."""
        state = self._collections.get(collection)
        if state is None or state.status != CollectionStatus.POPULATED:
            return None
        if state.actor != actor or actor != self._actor:
            return None
        return state.records

    def is_fresh(self, collection:str, actor:Identity|None) -> bool:
        state = self._collections.get(collection)
        if state is None or state.actor != actor or actor != self._actor:
            return False
        return state.status == CollectionStatus.POPULATED

    def begin(self, collection:str, actor:Identity|None) -> FetchTicket:
        if actor == self._actor:
            self.get(collection).status = CollectionStatus.FETCHING
        # a ticket for another actor is stale from the start, its result will be discarded
        return FetchTicket(collection, actor, self._generation)

    def _is_current(self, ticket:FetchTicket) -> bool:
        if ticket.generation != self._generation or ticket.actor != self._actor:
            logger.debug(f"Discarding result for '{ticket.collection}', fetched for generation {ticket.generation} "+
                         f"but current generation is {self._generation}")
            return False
        return True

    def complete(self, ticket:FetchTicket, records:Any) -> bool:
        if not self._is_current(ticket):
            return False
        state = self.get(ticket.collection)
        state.status = CollectionStatus.POPULATED
        state.actor = ticket.actor
        state.records = records
        state.error = None
        state.not_found = False
        return True

    def not_found(self, ticket:FetchTicket) -> bool:
        if not self._is_current(ticket):
            return False
        state = self.get(ticket.collection)
        state.status = CollectionStatus.EMPTY
        state.actor = ticket.actor
        state.records = None
        state.error = None
        state.not_found = True
        return True

    def fail(self, ticket:FetchTicket, error:Exception) -> bool:
        """Records a remote error. The last good snapshot, if any, is kept."""
        if not self._is_current(ticket):
            return False
        state = self.get(ticket.collection)
        state.error = error
        if state.records is not None and state.actor == ticket.actor:
            state.status = CollectionStatus.POPULATED
        else:
            state.status = CollectionStatus.EMPTY
        return True

    def invalidate(self, collection:str) -> None:
        if collection in self._collections:
            self._collections[collection] = CollectionState()

    def invalidate_all(self) -> None:
        # bumping the generation discards every fetch that is still outstanding
        self._generation += 1
        for name in self._collections:
            self._collections[name] = CollectionState()
