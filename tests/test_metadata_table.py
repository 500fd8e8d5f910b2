from leaderboard.stores.metadata import MemoryMetadataTable, UserMetadata


async def test_multi_get_is_positional():
    table = MemoryMetadataTable()
    await table.set(1, UserMetadata("alice", "https://img.example.com/a.png"))
    await table.set(3, UserMetadata("carol"))

    result = await table.multi_get([3, 2, 1])

    assert result == [
        UserMetadata("carol", ""),
        None,
        UserMetadata("alice", "https://img.example.com/a.png"),
    ]


async def test_remove_and_clear():
    table = MemoryMetadataTable()
    await table.set_many([(1, UserMetadata("a")), (2, UserMetadata("b")), (3, UserMetadata("c"))])

    await table.remove(1)
    await table.remove(42)
    await table.remove_many([2])
    assert await table.get(1) is None
    assert await table.size() == 1

    await table.clear()
    assert await table.size() == 0
