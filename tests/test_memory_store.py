import pytest

from models.match import Match
from models.user import User
from utils.errors import AlreadyExistsError, StorageFailureError


async def test_transaction_rolls_back_on_error(store, make_user):
    user = await make_user()
    user.my_likes.add("someone")

    with pytest.raises(RuntimeError):
        async with store.transaction() as tx:
            await tx.save_edges(user)
            await tx.insert_match(Match.new(user.id, "someone"))
            raise RuntimeError("boom")

    assert store.user_document(user.id)["my_likes"] == []
    assert store.match_count() == 0


async def test_transaction_commits_on_success(store, make_user):
    user = await make_user()
    user.my_dislikes.add("x")
    async with store.transaction() as tx:
        await tx.save_edges(user)
    assert store.user_document(user.id)["my_dislikes"] == ["x"]


async def test_second_match_for_pair_rejected(store):
    async with store.transaction() as tx:
        await tx.insert_match(Match.new("a", "b"))
    with pytest.raises(AlreadyExistsError):
        async with store.transaction() as tx:
            await tx.insert_match(Match.new("b", "a"))
    assert store.match_count() == 1


async def test_save_edges_for_missing_user_fails(store):
    with pytest.raises(StorageFailureError):
        async with store.transaction() as tx:
            await tx.save_edges(User(id="ghost", token="t"))


async def test_insert_user_rejects_duplicate_token(store, make_user):
    user = await make_user()
    with pytest.raises(AlreadyExistsError):
        async with store.transaction() as tx:
            await tx.insert_user(User(id="other", token=user.token))


async def test_projection_excludes_fields(store, make_user):
    user = await make_user(my_likes={"b"})
    async with store.transaction() as tx:
        [found] = await tx.find_users_by_ids([user.id], exclude_fields=("my_likes",))
        [listed] = await tx.list_users(exclude_fields=("my_likes",))
    assert found.my_likes == set() and listed.my_likes == set()


async def test_find_user_by_id(store, make_user):
    user = await make_user(name="Alice")
    async with store.transaction() as tx:
        found = await tx.find_user_by_id(user.id)
        missing = await tx.find_user_by_id("ghost")
    assert found.name == "Alice" and found.token == user.token
    assert missing is None
