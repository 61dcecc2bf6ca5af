import hashlib
import struct
from ledgersync.errors import DecodeFailure
from ledgersync.pda import PublicKey, KEY_LEN
from .record_model import *

# Account payload codec.
# Every account starts with an 8 byte discriminator, sha256("account:<Name>")[:8],
# followed by the borsh encoded fields: 32 byte keys, u32 length prefixed utf-8 strings,
# and little-endian u64 (counters) / i64 (timestamps).

DISCRIMINATOR_LEN = 8
_STR_ENCODING = 'utf-8'

def account_discriminator(account_name:str) -> bytes:
    return hashlib.sha256(f"account:{account_name}".encode('ascii')).digest()[:DISCRIMINATOR_LEN]

def instruction_discriminator(instruction_name:str) -> bytes:
    return hashlib.sha256(f"global:{instruction_name}".encode('ascii')).digest()[:DISCRIMINATOR_LEN]

PROFILE_ACCOUNT = "UserProfile"
POST_ACCOUNT = "Post"
COMMENT_ACCOUNT = "Comment"
FOLLOW_ACCOUNT = "Follow"

#===================================================================================================
# Borsh primitives
#===================================================================================================
class _Reader:
    def __init__(self, data:bytes):
        self._data = data
        self._offset = 0

    def take(self, n:int) -> bytes:
        if self._offset + n > len(self._data):
            raise DecodeFailure(f"Expected {n} more bytes at offset {self._offset} but only {len(self._data) - self._offset} remain")
        chunk = self._data[self._offset:self._offset + n]
        self._offset += n
        return chunk

    def key(self) -> PublicKey:
        return PublicKey(self.take(KEY_LEN))

    def string(self) -> str:
        length, = struct.unpack('<I', self.take(4))
        try:
            return self.take(length).decode(_STR_ENCODING)
        except UnicodeDecodeError as e:
            raise DecodeFailure(f"String at offset {self._offset - length} is not valid {_STR_ENCODING}") from e

    def u64(self) -> int:
        return struct.unpack('<Q', self.take(8))[0]

    def i64(self) -> int:
        return struct.unpack('<q', self.take(8))[0]

def _write_key(key:bytes, result:bytearray) -> bytearray:
    result += bytes(key)
    return result

def _write_string(value:str, result:bytearray) -> bytearray:
    encoded = value.encode(_STR_ENCODING)
    result += struct.pack('<I', len(encoded))
    result += encoded
    return result

def _write_u64(value:int, result:bytearray) -> bytearray:
    result += struct.pack('<Q', value)
    return result

def _write_i64(value:int, result:bytearray) -> bytearray:
    result += struct.pack('<q', value)
    return result

def _enforce_and_skip_discriminator(data:bytes, account_name:str) -> _Reader:
    if data is None:
        raise DecodeFailure(f"Expected {account_name} account data but got None")
    if len(data) < DISCRIMINATOR_LEN:
        raise DecodeFailure(f"Expected at least {DISCRIMINATOR_LEN} bytes for a {account_name} account but got {len(data)}")
    if bytes(data[:DISCRIMINATOR_LEN]) != account_discriminator(account_name):
        raise DecodeFailure(f"Account data is not a {account_name} account, discriminator mismatch")
    return _Reader(bytes(data[DISCRIMINATOR_LEN:]))

def _with_discriminator(account_name:str, body:bytearray) -> bytes:
    return account_discriminator(account_name) + bytes(body)

#===================================================================================================
# Accounts
#===================================================================================================
def profile_to_bytes(profile:UserProfile) -> bytes:
    result = bytearray()
    _write_key(profile.authority, result)
    _write_string(profile.handle, result)
    _write_string(profile.bio, result)
    _write_string(profile.avatar_uri, result)
    _write_u64(profile.follower_count, result)
    _write_u64(profile.following_count, result)
    _write_i64(profile.created_at, result)
    _write_i64(profile.updated_at, result)
    return _with_discriminator(PROFILE_ACCOUNT, result)

def bytes_to_profile(data:bytes, address:PublicKey|None=None) -> UserProfile:
    reader = _enforce_and_skip_discriminator(data, PROFILE_ACCOUNT)
    return UserProfile(
        address=address,
        authority=reader.key(),
        handle=reader.string(),
        bio=reader.string(),
        avatar_uri=reader.string(),
        follower_count=reader.u64(),
        following_count=reader.u64(),
        created_at=reader.i64(),
        updated_at=reader.i64())

_POST_COUNTERS = ['like_count', 'dislike_count', 'love_count', 'haha_count', 'wow_count', 'sad_count', 'angry_count', 'comment_count']

def post_to_bytes(post:Post) -> bytes:
    result = bytearray()
    _write_key(post.profile, result)
    _write_key(post.creator, result)
    _write_string(post.content, result)
    _write_string(post.media_uri, result)
    for counter in _POST_COUNTERS:
        _write_u64(getattr(post, counter), result)
    _write_i64(post.created_at, result)
    _write_i64(post.updated_at, result)
    return _with_discriminator(POST_ACCOUNT, result)

def bytes_to_post(data:bytes, address:PublicKey|None=None) -> Post:
    reader = _enforce_and_skip_discriminator(data, POST_ACCOUNT)
    fields = {
        'profile': reader.key(),
        'creator': reader.key(),
        'content': reader.string(),
        'media_uri': reader.string(),
    }
    for counter in _POST_COUNTERS:
        fields[counter] = reader.u64()
    fields['created_at'] = reader.i64()
    fields['updated_at'] = reader.i64()
    return Post(address=address, **fields)

def comment_to_bytes(comment:Comment) -> bytes:
    result = bytearray()
    _write_key(comment.post, result)
    _write_key(comment.comment_by, result)
    _write_string(comment.content, result)
    _write_i64(comment.created_at, result)
    _write_i64(comment.updated_at, result)
    return _with_discriminator(COMMENT_ACCOUNT, result)

def bytes_to_comment(data:bytes, address:PublicKey|None=None) -> Comment:
    reader = _enforce_and_skip_discriminator(data, COMMENT_ACCOUNT)
    return Comment(
        address=address,
        post=reader.key(),
        comment_by=reader.key(),
        content=reader.string(),
        created_at=reader.i64(),
        updated_at=reader.i64())

def follow_to_bytes(follow:FollowEdge) -> bytes:
    result = bytearray()
    _write_key(follow.follower, result)
    _write_key(follow.following, result)
    _write_i64(follow.created_at, result)
    return _with_discriminator(FOLLOW_ACCOUNT, result)

def bytes_to_follow(data:bytes, address:PublicKey|None=None) -> FollowEdge:
    reader = _enforce_and_skip_discriminator(data, FOLLOW_ACCOUNT)
    return FollowEdge(
        address=address,
        follower=reader.key(),
        following=reader.key(),
        created_at=reader.i64())

# offset of the first field after the discriminator, used by scan filters (e.g. a post's profile, a comment's post)
FIRST_FIELD_OFFSET = DISCRIMINATOR_LEN

def record_to_bytes(record:Record) -> bytes:
    if isinstance(record, UserProfile):
        return profile_to_bytes(record)
    elif isinstance(record, Post):
        return post_to_bytes(record)
    elif isinstance(record, Comment):
        return comment_to_bytes(record)
    elif isinstance(record, FollowEdge):
        return follow_to_bytes(record)
    else:
        raise TypeError("Unknown record type")
