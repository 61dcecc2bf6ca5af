import asyncio
from collections import Counter
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from ledgersync.pda import *
from ledgersync.records import *
from ledgersync.remote import MemoryRecordClient

PROGRAM_ID = PublicKey("o7WMnMvBfhf21mXMeoi2yAdmfiCsEaKGZE3DHT1E1qF")

def get_random_identity() -> Identity:
    key = Ed25519PrivateKey.generate().public_key()
    return PublicKey(key.public_bytes(Encoding.Raw, PublicFormat.Raw))

class CountingRecordClient(MemoryRecordClient):
    """Memory client that counts remote calls. If a gate is set, every call waits for it."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = Counter()
        self.read_many_sizes = []
        self.gate:asyncio.Event|None = None

    async def _wait(self):
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)

    async def read_one(self, address):
        self.calls['read_one'] += 1
        await self._wait()
        return await super().read_one(address)

    async def read_many(self, addresses):
        self.calls['read_many'] += 1
        self.read_many_sizes.append(len(addresses))
        await self._wait()
        return await super().read_many(addresses)

    async def scan(self, filters):
        self.calls['scan'] += 1
        await self._wait()
        return await super().scan(filters)

    async def submit(self, instruction):
        self.calls['submit'] += 1
        await self._wait()
        return await super().submit(instruction)

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

def put_profile(client:MemoryRecordClient, authority:Identity, handle:str, created_at:int=1000) -> UserProfile:
    profile = UserProfile(
        address=derive_profile_address(PROGRAM_ID, authority),
        authority=authority,
        handle=handle,
        bio=f"bio of {handle}",
        avatar_uri=f"https://example.com/{handle}.png",
        created_at=created_at,
        updated_at=created_at)
    client.put_record(profile)
    return profile

def put_post(client:MemoryRecordClient, creator:Identity, media_uri:str, content:str, created_at:int) -> Post:
    profile_address = derive_profile_address(PROGRAM_ID, creator)
    post = Post(
        address=derive_post_address(PROGRAM_ID, creator, media_uri, profile_address),
        profile=profile_address,
        creator=creator,
        content=content,
        media_uri=media_uri,
        created_at=created_at,
        updated_at=created_at)
    client.put_record(post)
    return post

def put_comment(client:MemoryRecordClient, post_address:StorageAddress, commenter:Identity, content:str, created_at:int) -> Comment:
    comment = Comment(
        address=derive_comment_address(PROGRAM_ID, post_address, commenter, content),
        post=post_address,
        comment_by=commenter,
        content=content,
        created_at=created_at,
        updated_at=created_at)
    client.put_record(comment)
    return comment

def put_follow(client:MemoryRecordClient, follower:Identity, following:Identity, created_at:int=1000) -> FollowEdge:
    follow = FollowEdge(
        address=derive_follow_address(PROGRAM_ID, follower, following),
        follower=follower,
        following=following,
        created_at=created_at)
    client.put_record(follow)
    return follow
