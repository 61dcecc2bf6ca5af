from ledgersync.pda import PublicKey
from ledgersync.records import *
from ledgersync.sync import *
import helpers_sync as helpers

def make_post(creator, created_at, address_byte):
    return Post(
        address=PublicKey(bytes([address_byte]) * 32),
        profile=PublicKey(bytes([9]) * 32),
        creator=creator,
        content="content",
        media_uri=f"uri-{address_byte}",
        created_at=created_at,
        updated_at=created_at)

def make_profile(authority, handle):
    return UserProfile(authority=authority, handle=handle, bio="", avatar_uri="")

def test_merge_keeps_every_primary_record():
    views = merge(
        [1, 2, 3],
        {1: "one", 3: None},
        key_of=lambda x: x,
        join=lambda x, r: f"{x}:{r}",
        fallback=lambda x: f"{x}:fallback")
    assert views == ["1:one", "2:fallback", "3:fallback"]

def test_fallback_handle():
    identity = PublicKey("11111111111111111111111111111111")
    assert fallback_handle(identity) == "User 11111111..."

def test_sort_posts_newest_first_with_address_tiebreak():
    creator = helpers.get_random_identity()
    posts = [make_post(creator, 10, 3), make_post(creator, 20, 2), make_post(creator, 10, 1)]
    ordered = sort_posts(posts)
    assert [(p.created_at, p.address[0]) for p in ordered] == [(20, 2), (10, 1), (10, 3)]

def test_sort_comments_oldest_first():
    post = PublicKey(bytes([9]) * 32)
    commenter = helpers.get_random_identity()
    comments = [
        Comment(address=PublicKey(bytes([b]) * 32), post=post, comment_by=commenter, content="c", created_at=t, updated_at=t)
        for b, t in [(5, 30), (4, 10), (2, 30)]]
    ordered = sort_comments(comments)
    assert [(c.created_at, c.address[0]) for c in ordered] == [(10, 4), (30, 2), (30, 5)]

def test_merge_posts_with_handles():
    alice, bob = helpers.get_random_identity(), helpers.get_random_identity()
    posts = [make_post(alice, 10, 1), make_post(bob, 20, 2), make_post(alice, 30, 3)]
    views = merge_posts_with_handles(posts, {alice: make_profile(alice, "alice"), bob: None})
    assert [v.creator_handle for v in views] == ["alice", fallback_handle(bob), "alice"]
    assert [v.post.created_at for v in views] == [30, 20, 10]
    assert views[0].address == posts[2].address

def test_merge_posts_without_any_profiles():
    alice = helpers.get_random_identity()
    views = merge_posts_with_handles([make_post(alice, 10, 1)], {})
    assert views[0].creator_handle == fallback_handle(alice)

def test_merge_profiles_with_follow_status():
    alice, bob = helpers.get_random_identity(), helpers.get_random_identity()
    follow_address = PublicKey(bytes([7]) * 32)
    views = merge_profiles_with_follow_status(
        [make_profile(alice, "alice"), make_profile(bob, "bob")],
        {alice: follow_address, bob: None})
    assert views[0].is_following and views[0].follow_address == follow_address
    assert not views[1].is_following and views[1].follow_address is None
    assert views[1].authority == bob

def test_follow_statuses():
    alice, bob = helpers.get_random_identity(), helpers.get_random_identity()
    follow_address = PublicKey(bytes([7]) * 32)
    statuses = follow_statuses({alice: follow_address, bob: None})
    assert statuses[alice] == FollowStatus(is_following=True, follow_address=follow_address)
    assert statuses[bob] == FollowStatus(is_following=False, follow_address=None)
