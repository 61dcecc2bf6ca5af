import os
import pytest
from ledgersync.errors import InputError, WriteRejected
from ledgersync.pda import PublicKey
from ledgersync.remote import *

def get_random_address() -> PublicKey:
    return PublicKey(os.urandom(32))

async def test_read_one():
    client = MemoryRecordClient()
    address = get_random_address()
    assert await client.read_one(address) is None
    client.put(address, b"data")
    assert await client.read_one(address) == b"data"
    client.delete(address)
    assert await client.read_one(address) is None

async def test_read_many_keeps_order():
    client = MemoryRecordClient()
    a, b, c = get_random_address(), get_random_address(), get_random_address()
    client.put(a, b"a")
    client.put(c, b"c")
    assert await client.read_many([c, b, a]) == [b"c", None, b"a"]

async def test_read_many_max_batch_size():
    client = MemoryRecordClient(max_batch_size=2)
    with pytest.raises(InputError):
        await client.read_many([get_random_address() for _ in range(3)])

async def test_scan():
    client = MemoryRecordClient()
    owner = os.urandom(32)
    a, b = get_random_address(), get_random_address()
    client.put(a, b"12345678" + owner + b"rest")
    client.put(b, b"12345678" + os.urandom(32))
    client.put(get_random_address(), b"abcdefgh" + owner)
    rows = await client.scan([MemcmpFilter(0, b"12345678"), MemcmpFilter(8, owner)])
    assert rows == [(a, b"12345678" + owner + b"rest")]

def test_memcmp_matches():
    assert memcmp_matches(b"abcdef", MemcmpFilter(2, b"cd"))
    assert not memcmp_matches(b"abcdef", MemcmpFilter(2, b"ce"))
    assert not memcmp_matches(b"abc", MemcmpFilter(2, b"cd"))

async def test_submit_records_instruction():
    client = MemoryRecordClient()
    instruction = Instruction("create_post", {"creator": get_random_address()}, ("uri", "content"))
    tx1 = await client.submit(instruction)
    tx2 = await client.submit(instruction)
    assert client.submitted == [instruction, instruction]
    assert tx1 != tx2

async def test_submit_with_handler():
    address = get_random_address()
    async def handler(client:MemoryRecordClient, instruction:Instruction):
        if instruction.name == "reject":
            raise WriteRejected("rejected", 6008)
        client.put(instruction.accounts["target"], b"written")

    client = MemoryRecordClient(instruction_handler=handler)
    await client.submit(Instruction("write", {"target": address}, ()))
    assert await client.read_one(address) == b"written"

    with pytest.raises(WriteRejected) as e:
        await client.submit(Instruction("reject", {}, ()))
    assert e.value.code == 6008
    assert len(client.submitted) == 1

def test_put_record_needs_address():
    from ledgersync.records import FollowEdge
    client = MemoryRecordClient()
    with pytest.raises(InputError):
        client.put_record(FollowEdge(follower=get_random_address(), following=get_random_address()))
