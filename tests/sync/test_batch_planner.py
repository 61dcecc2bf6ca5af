import pytest
from ledgersync.errors import DecodeFailure
from ledgersync.pda import *
from ledgersync.records import *
from ledgersync.sync import BatchFetchPlanner, chunked
import helpers_sync as helpers

def profile_address(authority):
    return derive_profile_address(helpers.PROGRAM_ID, authority)

def test_chunked():
    assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]
    assert list(chunked([], 2)) == []
    with pytest.raises(ValueError):
        list(chunked([1], 0))

async def test_duplicate_keys_are_read_once():
    client = helpers.CountingRecordClient()
    alice, bob = helpers.get_random_identity(), helpers.get_random_identity()
    helpers.put_profile(client, alice, "alice")
    helpers.put_profile(client, bob, "bob")
    creators = [alice, bob, alice, alice, bob]

    planner = BatchFetchPlanner(client)
    profiles = await planner.plan_and_fetch(creators, lambda c: c, profile_address, bytes_to_profile)

    assert client.calls['read_many'] == 1
    assert client.read_many_sizes == [2]
    assert profiles[alice].handle == "alice"
    assert profiles[bob].handle == "bob"

async def test_batches_are_chunked_by_max_batch_size():
    client = helpers.CountingRecordClient(max_batch_size=2)
    authorities = [helpers.get_random_identity() for _ in range(5)]
    for i, authority in enumerate(authorities):
        helpers.put_profile(client, authority, f"user{i}")

    planner = BatchFetchPlanner(client)
    profiles = await planner.plan_and_fetch(authorities, lambda a: a, profile_address, bytes_to_profile)

    assert client.calls['read_many'] == 3
    assert client.read_many_sizes == [2, 2, 1]
    assert [profiles[a].handle for a in authorities] == [f"user{i}" for i in range(5)]

async def test_planner_batch_size_is_capped_by_client():
    client = helpers.CountingRecordClient(max_batch_size=3)
    assert BatchFetchPlanner(client, 10).max_batch_size == 3
    assert BatchFetchPlanner(client, 2).max_batch_size == 2

async def test_missing_related_record_is_none():
    client = helpers.CountingRecordClient()
    alice, ghost = helpers.get_random_identity(), helpers.get_random_identity()
    helpers.put_profile(client, alice, "alice")

    planner = BatchFetchPlanner(client)
    profiles = await planner.plan_and_fetch([alice, ghost], lambda a: a, profile_address, bytes_to_profile)

    assert profiles[alice].handle == "alice"
    assert profiles[ghost] is None

async def test_undecodable_record_is_none_and_not_read_again():
    client = helpers.CountingRecordClient()
    alice, broken = helpers.get_random_identity(), helpers.get_random_identity()
    helpers.put_profile(client, alice, "alice")
    client.put(profile_address(broken), account_discriminator(PROFILE_ACCOUNT) + b"\x01\x02")

    planner = BatchFetchPlanner(client)
    profiles = await planner.plan_and_fetch([alice, broken], lambda a: a, profile_address, bytes_to_profile)
    assert profiles[alice].handle == "alice"
    assert profiles[broken] is None
    assert client.read_many_sizes == [2]

    profiles = await planner.plan_and_fetch([alice, broken], lambda a: a, profile_address, bytes_to_profile)
    assert profiles[broken] is None
    assert client.read_many_sizes == [2, 1]

    planner.reset()
    await planner.plan_and_fetch([broken], lambda a: a, profile_address, bytes_to_profile)
    assert client.read_many_sizes == [2, 1, 1]

async def test_only_undecodable_makes_no_read():
    client = helpers.CountingRecordClient()
    broken = helpers.get_random_identity()
    client.put(profile_address(broken), b"garbage")
    planner = BatchFetchPlanner(client)
    await planner.plan_and_fetch([broken], lambda a: a, profile_address, bytes_to_profile)
    assert client.calls['read_many'] == 1
    profiles = await planner.plan_and_fetch([broken], lambda a: a, profile_address, bytes_to_profile)
    assert profiles == {broken: None}
    assert client.calls['read_many'] == 1

async def test_empty_primary_makes_no_read():
    client = helpers.CountingRecordClient()
    planner = BatchFetchPlanner(client)
    assert await planner.plan_and_fetch([], lambda a: a, profile_address, bytes_to_profile) == {}
    assert await planner.batch_exists([], profile_address) == {}
    assert client.total_calls == 0

async def test_batch_exists():
    client = helpers.CountingRecordClient()
    me = helpers.get_random_identity()
    followed, not_followed = helpers.get_random_identity(), helpers.get_random_identity()
    edge = helpers.put_follow(client, me, followed)

    planner = BatchFetchPlanner(client)
    follows = await planner.batch_exists(
        [followed, not_followed, followed],
        lambda authority: derive_follow_address(helpers.PROGRAM_ID, me, authority))

    assert follows == {followed: edge.address, not_followed: None}
    assert client.calls['read_many'] == 1
    assert planner.reads_issued == 1
