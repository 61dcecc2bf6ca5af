from __future__ import annotations
from typing import Callable, Hashable, Iterable, TypeVar
from ledgersync.pda import Identity, StorageAddress
from ledgersync.records import *

# Joins primary records with related records into decorated views.
# Missing or undecodable related records get a deterministic fallback, the primary record is never dropped.

P = TypeVar('P')
K = TypeVar('K', bound=Hashable)
R = TypeVar('R')
V = TypeVar('V')

def merge(primary:Iterable[P],
          related:dict[K, R | None],
          key_of:Callable[[P], K],
          join:Callable[[P, R], V],
          fallback:Callable[[P], V]) -> list[V]:
    views = []
    for record in primary:
        match = related.get(key_of(record))
        if match is None:
            views.append(fallback(record))
        else:
            views.append(join(record, match))
    return views

def fallback_handle(identity:Identity) -> str:
    return f"User {str(identity)[:8]}..."

def _address_bytes(record:Record) -> bytes:
    return bytes(record.address) if record.address is not None else b""

def sort_posts(posts:list[Post]) -> list[Post]:
    """Newest first, ties broken by address bytes ascending."""
    # two stable sorts: secondary key first
    by_address = sorted(posts, key=_address_bytes)
    return sorted(by_address, key=lambda p: p.created_at, reverse=True)

def sort_comments(comments:list[Comment]) -> list[Comment]:
    """Oldest first, ties broken by address bytes ascending."""
    return sorted(comments, key=lambda c: (c.created_at, _address_bytes(c)))

def merge_posts_with_handles(posts:Iterable[Post], profiles:dict[Identity, UserProfile | None]) -> list[PostWithHandle]:
    views = merge(
        sort_posts(list(posts)),
        profiles,
        key_of=lambda post: post.creator,
        join=lambda post, profile: PostWithHandle(post=post, creator_handle=profile.handle),
        fallback=lambda post: PostWithHandle(post=post, creator_handle=fallback_handle(post.creator)))
    return views

def merge_profiles_with_follow_status(
        profiles:Iterable[UserProfile],
        follows:dict[Identity, StorageAddress | None]) -> list[ProfileWithFollowStatus]:
    return merge(
        profiles,
        follows,
        key_of=lambda profile: profile.authority,
        join=lambda profile, follow_address: ProfileWithFollowStatus(
            profile=profile, is_following=True, follow_address=follow_address),
        fallback=lambda profile: ProfileWithFollowStatus(profile=profile))

def follow_statuses(follows:dict[Identity, StorageAddress | None]) -> dict[Identity, FollowStatus]:
    return {authority: FollowStatus(is_following=address is not None, follow_address=address)
            for authority, address in follows.items()}
