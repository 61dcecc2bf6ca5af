import hashlib
import os
import struct
import pytest
from ledgersync.errors import DecodeFailure
from ledgersync.pda import PublicKey
from ledgersync.records import *

def get_random_key() -> PublicKey:
    return PublicKey(os.urandom(32))

def get_random_profile() -> UserProfile:
    return UserProfile(
        address=get_random_key(),
        authority=get_random_key(),
        handle="alice",
        bio="likes ledgers 🚀",
        avatar_uri="ipfs://avatar",
        follower_count=12,
        following_count=3,
        created_at=1700000000,
        updated_at=1700000100)

def get_random_post() -> Post:
    return Post(
        address=get_random_key(),
        profile=get_random_key(),
        creator=get_random_key(),
        content="hello",
        media_uri="ipfs://cat.png",
        like_count=1, dislike_count=2, love_count=3, haha_count=4,
        wow_count=5, sad_count=6, angry_count=7, comment_count=8,
        created_at=1700000000,
        updated_at=1700000001)

def test_discriminators():
    assert account_discriminator("UserProfile") == hashlib.sha256(b"account:UserProfile").digest()[:8]
    assert instruction_discriminator("create_post") == hashlib.sha256(b"global:create_post").digest()[:8]
    assert account_discriminator(POST_ACCOUNT) != account_discriminator(COMMENT_ACCOUNT)

def test_profile():
    profile = get_random_profile()
    data = profile_to_bytes(profile)
    assert data[:8] == account_discriminator(PROFILE_ACCOUNT)
    assert data[8:40] == bytes(profile.authority)
    assert bytes_to_profile(data, profile.address) == profile

def test_profile_layout():
    authority = get_random_key()
    body = bytes(authority)
    for s in ["bob", "", "x"]:
        encoded = s.encode('utf-8')
        body += struct.pack('<I', len(encoded)) + encoded
    body += struct.pack('<QQqq', 5, 6, 7, 8)
    profile = bytes_to_profile(account_discriminator(PROFILE_ACCOUNT) + body)
    assert profile.authority == authority
    assert profile.handle == "bob"
    assert profile.bio == ""
    assert profile.avatar_uri == "x"
    assert (profile.follower_count, profile.following_count, profile.created_at, profile.updated_at) == (5, 6, 7, 8)
    assert profile.address is None

def test_post():
    post = get_random_post()
    data = post_to_bytes(post)
    # the profile is the first field, scans filter on it
    assert data[FIRST_FIELD_OFFSET:FIRST_FIELD_OFFSET + 32] == bytes(post.profile)
    assert bytes_to_post(data, post.address) == post

def test_comment():
    comment = Comment(address=get_random_key(), post=get_random_key(), comment_by=get_random_key(),
                      content="first!", created_at=10, updated_at=11)
    data = comment_to_bytes(comment)
    assert data[FIRST_FIELD_OFFSET:FIRST_FIELD_OFFSET + 32] == bytes(comment.post)
    assert bytes_to_comment(data, comment.address) == comment

def test_follow():
    follow = FollowEdge(address=get_random_key(), follower=get_random_key(), following=get_random_key(), created_at=42)
    assert bytes_to_follow(follow_to_bytes(follow), follow.address) == follow

def test_record_to_bytes_dispatch():
    profile = get_random_profile()
    assert record_to_bytes(profile) == profile_to_bytes(profile)
    with pytest.raises(TypeError):
        record_to_bytes("not a record")

def test_wrong_discriminator():
    data = post_to_bytes(get_random_post())
    with pytest.raises(DecodeFailure):
        bytes_to_profile(data)

def test_truncated_payload():
    data = profile_to_bytes(get_random_profile())
    with pytest.raises(DecodeFailure):
        bytes_to_profile(data[:-4])
    with pytest.raises(DecodeFailure):
        bytes_to_profile(data[:5])
    with pytest.raises(DecodeFailure):
        bytes_to_profile(None)

def test_invalid_utf8():
    body = bytes(get_random_key()) + struct.pack('<I', 2) + b'\xff\xfe'
    with pytest.raises(DecodeFailure):
        bytes_to_profile(account_discriminator(PROFILE_ACCOUNT) + body)

def test_records_are_frozen():
    profile = get_random_profile()
    with pytest.raises(Exception):
        profile.handle = "mallory"
