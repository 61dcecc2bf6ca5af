from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Hashable, Iterable
from ledgersync.config import SyncConfig
from ledgersync.errors import InputError, RemoteError, SupersededError, WriteRejected, get_error_message
from ledgersync.pda import *
from ledgersync.records import *
from ledgersync.remote import RecordClient, RpcRecordClient, Instruction, InstructionSubmitter
from .batch_planner import BatchFetchPlanner
from .coalescer import RequestCoalescer
from .collection import RecordCollection, PROFILE_SCHEMA, POST_SCHEMA, COMMENT_SCHEMA, FOLLOW_SCHEMA
from .sync_state import SyncState, CollectionState
from .view_merger import (merge_posts_with_handles, merge_profiles_with_follow_status, follow_statuses,
                          sort_posts, sort_comments)

logger = logging.getLogger(__name__)

# collection names in SyncState
OWN_PROFILE = "profile"
USER_POSTS = "user_posts"
ALL_POSTS = "all_posts"
ALL_PROFILES = "profiles"

SUPERSEDED_MESSAGE = "Superseded by a newer write. The outcome of this write is unknown."

def profile_collection(authority:Identity) -> str:
    return f"profile:{authority}"

def post_collection(address:StorageAddress) -> str:
    return f"post:{address}"

def comments_collection(post_address:StorageAddress) -> str:
    return f"comments:{post_address}"

@dataclass
class WriteResult:
    """Outcome of a write.

    A superseded write reports success=False with 'superseded' set. Its instruction may already have
    reached the ledger, so whether it landed is unknown; the refresh after the superseding write shows it.
    """
    success:bool
    tx:str|None = None
    error:str|None = None
    code:int|str|None = None
    superseded:bool = False

class SocialSync:
    """The sync layer for the social program: profiles, posts, comments, and follow edges.

    Holds the session of one actor at a time. Changing the actor invalidates everything that was
    synchronized for the previous one, before anything new is fetched.
    """

    def __init__(self,
            client:RecordClient,
            program_id:ProgramId,
            actor:Identity|None=None,
            max_batch_size:int|None=None):
        if client is None:
            raise InputError("A record client is required.")
        self.client = client
        self.program_id = to_key(program_id)
        self.state = SyncState()
        self.coalescer = RequestCoalescer()
        self.planner = BatchFetchPlanner(client, max_batch_size)
        self.profiles = RecordCollection(PROFILE_SCHEMA, client, self.state, self.coalescer)
        self.posts = RecordCollection(POST_SCHEMA, client, self.state, self.coalescer)
        self.comments = RecordCollection(COMMENT_SCHEMA, client, self.state, self.coalescer)
        self.follows = RecordCollection(FOLLOW_SCHEMA, client, self.state, self.coalescer)
        if actor is not None:
            self.set_actor(actor)

    @classmethod
    def from_config(cls, config:SyncConfig, submitter:InstructionSubmitter|None=None) -> SocialSync:
        client = RpcRecordClient(
            config.rpc_url,
            config.program_id,
            commitment=config.commitment,
            timeout_seconds=config.timeout_seconds,
            max_batch_size=config.max_batch_size,
            submitter=submitter)
        actor = PublicKey(config.actor) if config.actor else None
        return cls(client, config.program_id, actor)

    #===================================================================================================
    # Session
    #===================================================================================================
    @property
    def actor(self) -> Identity|None:
        return self.state.actor

    @property
    def profile_address(self) -> StorageAddress|None:
        if self.actor is None:
            return None
        return self.profile_address_of(self.actor)

    def set_actor(self, actor:Identity|None) -> bool:
        if actor is not None:
            actor = to_key(actor)
        changed = self.state.set_actor(actor)
        if changed:
            self.planner.reset()
        return changed

    def disconnect(self):
        self.set_actor(None)
        self.state.invalidate_all()
        self.planner.reset()

    def _require_actor(self) -> Identity:
        if self.actor is None:
            raise InputError("No connected identity.")
        return self.actor

    def collection_state(self, collection:str) -> CollectionState:
        return self.state.get(collection)

    #===================================================================================================
    # Addresses
    #===================================================================================================
    def profile_address_of(self, authority:Identity) -> StorageAddress:
        return derive_profile_address(self.program_id, authority)

    def post_address(self, media_uri:str) -> StorageAddress:
        actor = self._require_actor()
        return derive_post_address(self.program_id, actor, media_uri, self.profile_address_of(actor))

    def comment_address(self, post_address:StorageAddress, content:str) -> StorageAddress:
        return derive_comment_address(self.program_id, post_address, self._require_actor(), content)

    def follow_address(self, following:Identity, follower:Identity|None=None) -> StorageAddress:
        follower = follower if follower is not None else self._require_actor()
        return derive_follow_address(self.program_id, follower, following)

    #===================================================================================================
    # Reads
    #===================================================================================================
    async def fetch_profile(self, force:bool=False, fresh:bool=False) -> UserProfile|None:
        """The actor's own profile, None if it has not been created yet."""
        actor = self._require_actor()
        return await self.profiles.fetch_one(OWN_PROFILE, self.profile_address_of(actor), actor, force, fresh)

    async def fetch_profile_of(self, authority:Identity, force:bool=False) -> UserProfile|None:
        authority = to_key(authority)
        return await self.profiles.fetch_one(profile_collection(authority), self.profile_address_of(authority), self.actor, force)

    async def fetch_post(self, media_uri:str, force:bool=True) -> Post|None:
        address = self.post_address(media_uri)
        return await self.posts.fetch_one(post_collection(address), address, self.actor, force)

    async def fetch_user_posts(self, fresh:bool=False) -> list[Post]:
        actor = self._require_actor()
        profile_address = self.profile_address_of(actor)
        async def _sorted(posts:list[Post]) -> list[Post]:
            return sort_posts(posts)
        posts = await self.posts.fetch_scan(USER_POSTS, [POST_SCHEMA.field_filter(profile_address)], actor, _sorted, fresh=fresh)
        return posts if posts is not None else []

    async def fetch_all_posts(self) -> list[PostWithHandle]:
        """All posts, newest first, each with its creator's handle. Creator profiles are read in one batch."""
        actor = self._require_actor()
        posts = await self.posts.fetch_scan(ALL_POSTS, [], actor, self._with_handles)
        return posts if posts is not None else []

    async def _with_handles(self, posts:list[Post]) -> list[PostWithHandle]:
        profiles = await self.planner.plan_and_fetch(
            posts,
            key_of=lambda post: post.creator,
            address_of=self.profile_address_of,
            decode=bytes_to_profile)
        return merge_posts_with_handles(posts, profiles)

    async def fetch_comments(self, post_address:StorageAddress, fresh:bool=False) -> list[Comment]:
        """Comments of a post, oldest first."""
        actor = self._require_actor()
        post_address = to_key(post_address)
        async def _sorted(comments:list[Comment]) -> list[Comment]:
            return sort_comments(comments)
        comments = await self.comments.fetch_scan(
            comments_collection(post_address), [COMMENT_SCHEMA.field_filter(post_address)], actor, _sorted, fresh=fresh)
        return comments if comments is not None else []

    async def fetch_all_profiles(self, fresh:bool=False) -> list[ProfileWithFollowStatus]:
        """Every profile except the actor's own, each with whether the actor follows it."""
        actor = self._require_actor()
        async def _with_follow_status(profiles:list[UserProfile]) -> list[ProfileWithFollowStatus]:
            others = [p for p in profiles if p.authority != actor]
            follows = await self.planner.batch_exists(
                [p.authority for p in others],
                lambda authority: self.follow_address(authority, actor))
            return merge_profiles_with_follow_status(others, follows)
        profiles = await self.profiles.fetch_scan(ALL_PROFILES, [], actor, _with_follow_status, fresh=fresh)
        return profiles if profiles is not None else []

    async def fetch_follow_edge(self, authority:Identity) -> FollowEdge|None:
        """The actor's follow edge to 'authority', None if the actor does not follow it."""
        address = self.follow_address(to_key(authority))
        return await self.follows.fetch_one(f"follow:{address}", address, self.actor, force=True)

    async def batch_check_follow_status(self, authorities:Iterable[Identity]) -> dict[Identity, FollowStatus]:
        actor = self._require_actor()
        follows = await self.planner.batch_exists(
            [to_key(a) for a in authorities],
            lambda authority: self.follow_address(authority, actor))
        return follow_statuses(follows)

    #===================================================================================================
    # Writes
    # A newer write for the same target supersedes one that is still in flight.
    # Failures leave the synchronized state untouched.
    # Refreshes after a write are fresh fetches: a fetch that started before the write is not shared.
    #===================================================================================================
    async def _write(self, key:Hashable, instruction:Instruction, refresh:Callable[[], Awaitable]|None=None) -> WriteResult:
        try:
            tx = await self.coalescer.latest(("write", key), lambda: self.client.submit(instruction))
        except WriteRejected as e:
            logger.warning(f"Instruction '{instruction.name}' was rejected with code {e.code}: {e}")
            return WriteResult(False, error=get_error_message(e.code), code=e.code)
        except SupersededError as e:
            logger.info(f"Instruction '{instruction.name}' was superseded: {e}")
            return WriteResult(False, error=SUPERSEDED_MESSAGE, superseded=True)
        except RemoteError as e:
            logger.error(f"Submitting instruction '{instruction.name}' failed: {e}", exc_info=e)
            return WriteResult(False, error=get_error_message(e.code), code=e.code)
        logger.info(f"Instruction '{instruction.name}' submitted as {tx}")
        if refresh is not None:
            try:
                await refresh()
            except RemoteError as e:
                # the write went through, the refresh error is kept on the collection
                logger.warning(f"Refreshing after '{instruction.name}' failed: {e}")
        return WriteResult(True, tx=tx)

    async def update_profile(self, handle:str, bio:str, avatar_uri:str) -> WriteResult:
        actor = self._require_actor()
        instruction = Instruction("update_user_profile",
            {"user": actor, "user_profile": self.profile_address_of(actor)},
            (handle, bio, avatar_uri))
        return await self._write(("profile", actor), instruction, lambda: self.fetch_profile(fresh=True))

    async def create_post(self, media_uri:str, content:str) -> WriteResult:
        actor = self._require_actor()
        post_address = self.post_address(media_uri)
        instruction = Instruction("create_post",
            {"creator": actor, "post": post_address, "profile": self.profile_address_of(actor)},
            (media_uri, content))
        return await self._write(("post", post_address), instruction, lambda: self.fetch_user_posts(fresh=True))

    async def delete_post(self, media_uri:str) -> WriteResult:
        actor = self._require_actor()
        post_address = self.post_address(media_uri)
        instruction = Instruction("delete_user_post", {"creator": actor, "post": post_address}, ())
        async def _refresh():
            self.state.invalidate(post_collection(post_address))
            await self.fetch_user_posts(fresh=True)
        return await self._write(("post", post_address), instruction, _refresh)

    async def add_comment(self, post_address:StorageAddress, content:str) -> WriteResult:
        actor = self._require_actor()
        post_address = to_key(post_address)
        comment_address = self.comment_address(post_address, content)
        instruction = Instruction("create_comment",
            {"commenter": actor, "comment": comment_address, "post": post_address},
            (content,))
        return await self._write(("comment", comment_address), instruction, lambda: self.fetch_comments(post_address, fresh=True))

    async def follow(self, authority:Identity) -> WriteResult:
        return await self._write_follow("follow_user_profile", to_key(authority))

    async def unfollow(self, authority:Identity) -> WriteResult:
        return await self._write_follow("unfollow_user_profile", to_key(authority))

    async def _write_follow(self, instruction_name:str, authority:Identity) -> WriteResult:
        actor = self._require_actor()
        if authority == actor:
            raise InputError("Cannot follow or unfollow yourself.")
        follow_address = self.follow_address(authority, actor)
        instruction = Instruction(instruction_name,
            {"follower": actor,
             "follower_profile": self.profile_address_of(actor),
             "following_profile": self.profile_address_of(authority),
             "follow": follow_address},
            ())
        # follow and unfollow of the same pair share a key, the latest call wins
        return await self._write(("follow", follow_address), instruction, lambda: self.fetch_all_profiles(fresh=True))
