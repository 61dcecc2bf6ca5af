from pydantic import BaseModel, ConfigDict
from ledgersync.pda import PublicKey, Identity, StorageAddress

# Snapshots of ledger accounts at fetch time, and the decorated views built from them.
# Records are never created or changed locally; a change is a new instruction followed by a re-fetch.

class Record(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)
    # the address the record was read from, None for records that were only encoded
    address:StorageAddress|None = None

class UserProfile(Record):
    authority:Identity
    handle:str
    bio:str
    avatar_uri:str
    follower_count:int = 0
    following_count:int = 0
    created_at:int = 0
    updated_at:int = 0

class Post(Record):
    profile:StorageAddress
    creator:Identity
    content:str
    media_uri:str
    like_count:int = 0
    dislike_count:int = 0
    love_count:int = 0
    haha_count:int = 0
    wow_count:int = 0
    sad_count:int = 0
    angry_count:int = 0
    comment_count:int = 0
    created_at:int = 0
    updated_at:int = 0

class Comment(Record):
    post:StorageAddress
    comment_by:Identity
    content:str
    created_at:int = 0
    updated_at:int = 0

class FollowEdge(Record):
    follower:Identity
    following:Identity
    created_at:int = 0

#===================================================================================================
# Decorated views
# Exist only in memory, never written back.
#===================================================================================================
class PostWithHandle(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)
    post:Post
    creator_handle:str

    @property
    def address(self) -> StorageAddress|None:
        return self.post.address

class ProfileWithFollowStatus(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)
    profile:UserProfile
    is_following:bool = False
    follow_address:StorageAddress|None = None

    @property
    def authority(self) -> Identity:
        return self.profile.authority

class FollowStatus(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)
    is_following:bool = False
    follow_address:StorageAddress|None = None
