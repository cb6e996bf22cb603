import asyncio
import logging
from datetime import datetime, timezone

from conftest import born
from models.results import Done, LikeRecorded, Matched, MessageSaved, Recommendations
from models.user import Location, SearchSettings
from utils.errors import ErrorKind


async def edges(store, user):
    doc = store.user_document(user.id)
    return {k: set(doc[k]) for k in ("my_likes", "who_likes_me", "my_dislikes")}


async def test_like_then_reciprocal_like_forms_single_match(matching_service, make_user, store):
    a, b = await make_user(), await make_user()

    assert isinstance(await matching_service.record_like(a.token, b.token), LikeRecorded)
    result = await matching_service.record_like(b.token, a.token)

    assert isinstance(result, Matched)
    assert result.match["initiator"]["token"] == b.token
    assert result.match["initiated_on"] == {"id": a.id, "name": a.name, "pictures": [], "token": a.token}
    assert result.match["messages"] == []
    assert store.match_count() == 1
    for user in (a, b):
        state = await edges(store, user)
        assert state["my_likes"] == set() and state["who_likes_me"] == set()


async def test_repeated_like_is_idempotent(matching_service, make_user, store):
    a, b = await make_user(), await make_user()
    await matching_service.record_like(a.token, b.token)
    before = (await edges(store, a), await edges(store, b))
    await matching_service.record_like(a.token, b.token)
    assert (await edges(store, a), await edges(store, b)) == before
    assert store.match_count() == 0


async def test_like_after_match_is_rejected(matching_service, make_user, store):
    a, b = await make_user(), await make_user()
    await matching_service.record_like(a.token, b.token)
    await matching_service.record_like(b.token, a.token)

    result = await matching_service.record_like(a.token, b.token)
    assert not result.ok
    assert result.kind == ErrorKind.ALREADY_EXISTS
    assert store.match_count() == 1
    assert (await edges(store, a))["my_likes"] == set()


async def test_like_failures(matching_service, make_user):
    a = await make_user()
    assert (await matching_service.record_like(a.token, a.token)).kind == ErrorKind.SELF_REFERENCE
    assert (await matching_service.record_like(a.token, "nope")).kind == ErrorKind.NOT_FOUND
    assert (await matching_service.record_like("", a.token)).kind == ErrorKind.VALIDATION_ERROR


async def test_dislike_is_idempotent_and_keeps_match(matching_service, make_user, store):
    a, b = await make_user(), await make_user()
    await matching_service.record_like(a.token, b.token)
    await matching_service.record_like(b.token, a.token)

    assert isinstance(await matching_service.record_dislike(a.token, b.token), Done)
    assert isinstance(await matching_service.record_dislike(a.token, b.token), Done)
    assert (await edges(store, a))["my_dislikes"] == {b.id}
    assert store.match_count() == 1


async def test_dislike_before_reciprocating_then_like_still_matches(matching_service, make_user, store):
    a, b = await make_user(), await make_user()
    await matching_service.record_like(a.token, b.token)
    await matching_service.record_dislike(b.token, a.token)
    assert store.match_count() == 0
    assert (await edges(store, b))["who_likes_me"] == {a.id}

    assert isinstance(await matching_service.record_like(b.token, a.token), Matched)


async def test_dismatch_removes_match_and_edges(matching_service, make_user, store):
    a, b = await make_user(), await make_user()
    await matching_service.record_like(a.token, b.token)
    matched = await matching_service.record_like(b.token, a.token)

    result = await matching_service.dismatch(a.token, b.token, matched.match["id"])
    assert isinstance(result, Done)
    assert store.match_count() == 0
    for user in (a, b):
        state = await edges(store, user)
        assert state["my_likes"] == set() and state["who_likes_me"] == set()


async def test_dismatch_validation(matching_service, make_user, store):
    a, b, c = await make_user(), await make_user(), await make_user()
    await matching_service.record_like(a.token, b.token)
    matched = await matching_service.record_like(b.token, a.token)
    match_id = matched.match["id"]

    assert (await matching_service.dismatch(a.token, c.token, match_id)).kind == ErrorKind.INVALID_STATE
    assert (await matching_service.dismatch(a.token, b.token, "missing")).kind == ErrorKind.NOT_FOUND
    assert store.match_count() == 1

    await matching_service.dismatch(b.token, a.token, match_id)
    assert (await matching_service.dismatch(a.token, b.token, match_id)).kind == ErrorKind.NOT_FOUND


async def test_failed_step_keeps_no_partial_effect(matching_service, make_user, store, monkeypatch):
    a, b = await make_user(), await make_user()
    await matching_service.record_like(a.token, b.token)
    before = store.user_document(a.id), store.user_document(b.id)

    async def broken_insert(self, match):
        from utils.errors import StorageFailureError
        raise StorageFailureError("disk full", operation="insert_match")

    from db.memory import MemoryTransaction
    monkeypatch.setattr(MemoryTransaction, "insert_match", broken_insert)

    result = await matching_service.record_like(b.token, a.token)
    assert result.kind == ErrorKind.STORAGE_FAILURE
    # рёбра не сняты, пара не создана
    assert (store.user_document(a.id), store.user_document(b.id)) == before
    assert store.match_count() == 0


async def test_concurrent_mutual_likes_create_one_match(matching_service, make_user, store):
    a, b = await make_user(), await make_user()
    results = await asyncio.gather(
        matching_service.record_like(a.token, b.token),
        matching_service.record_like(b.token, a.token),
    )
    assert sorted(type(r).__name__ for r in results) == ["LikeRecorded", "Matched"]
    assert store.match_count() == 1


async def test_messages_append_in_order(matching_service, make_user):
    a, b, c = await make_user(), await make_user(), await make_user()
    await matching_service.record_like(a.token, b.token)
    match_id = (await matching_service.record_like(b.token, a.token)).match["id"]
    t1 = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
    t2 = datetime(2024, 6, 1, 11, 0, tzinfo=timezone.utc)

    await matching_service.append_match_message(match_id, a.token, "Salut", t1)
    result = await matching_service.append_match_message(match_id, b.token, "Salut", t2)

    assert isinstance(result, MessageSaved)
    assert [(m["sender"], m["content"], m["date"]) for m in result.match["messages"]] == [
        (a.id, "Salut", t1), (b.id, "Salut", t2),
    ]
    outsider = await matching_service.append_match_message(match_id, c.token, "Hi", t1)
    assert outsider.kind == ErrorKind.INVALID_STATE
    empty = await matching_service.append_match_message(match_id, a.token, "   ", t1)
    assert empty.kind == ErrorKind.VALIDATION_ERROR
    missing = await matching_service.append_match_message("missing", a.token, "Hi", t1)
    assert missing.kind == ErrorKind.NOT_FOUND


async def test_recommendations_exclude_signals_and_matches(matching_service, make_user):
    me = await make_user()
    liked, disliked, matched, fresh = [await make_user() for _ in range(4)]
    await matching_service.record_like(me.token, liked.token)
    await matching_service.record_dislike(me.token, disliked.token)
    await matching_service.record_like(matched.token, me.token)
    await matching_service.record_like(me.token, matched.token)

    result = await matching_service.compute_recommendations(me.token)
    assert isinstance(result, Recommendations)
    assert [c["id"] for c in result.candidates] == [fresh.id]
    assert result.total == 1
    candidate = result.candidates[0]
    for hidden in ("my_likes", "my_dislikes", "who_likes_me", "imaginary_name"):
        assert hidden not in candidate


async def test_recommendations_apply_search(matching_service, make_user):
    me = await make_user(
        location=Location(0, 0),
        search=SearchSettings(max_distance=10, age_min=30, age_max=40, gender_liked="Woman", sexuality_liked="Straight"),
    )
    near = await make_user(birthdate=born(31), gender="Woman", sexuality="Straight", location=Location(0, 0.05))
    await make_user(birthdate=born(31), gender="Woman", sexuality="Straight", location=Location(0, 0.135))
    await make_user(birthdate=born(30), gender="Woman", sexuality="Straight", location=Location(0, 0.05))

    result = await matching_service.compute_recommendations(me.token)
    assert [c["id"] for c in result.candidates] == [near.id]


async def test_recommendations_unknown_user(matching_service):
    assert (await matching_service.compute_recommendations("nope")).kind == ErrorKind.NOT_FOUND


async def test_list_matches_populates_partners(matching_service, make_user, store):
    partner = await make_user(name="Partner")
    a = await make_user(my_relationships=[partner.id])
    b = await make_user()
    await matching_service.record_like(a.token, b.token)
    await matching_service.record_like(b.token, a.token)

    result = await matching_service.list_matches(b.token)
    assert result.ok and len(result.data) == 1
    match = result.data[0]
    assert match["initiated_on"]["id"] == a.id
    assert [p["name"] for p in match["initiated_on"]["my_relationships"]] == ["Partner"]
    assert "my_likes" not in match["initiator"]


async def test_malformed_stored_birthdate_does_not_break_actions(matching_service, make_user, store, caplog):
    me = await make_user(search=SearchSettings(age_min=20, age_max=40))
    broken = await make_user(birthdate=born(30))
    store._users[broken.id]["birthdate"] = "15/06/1990"

    result = await matching_service.compute_recommendations(me.token)
    assert isinstance(result, Recommendations)
    # без даты рождения кандидат не проходит возрастной фильтр
    assert result.total == 0
    assert "Некорректная дата рождения" in caplog.text

    assert isinstance(await matching_service.record_like(broken.token, me.token), LikeRecorded)


async def test_match_formation_is_logged(matching_service, make_user, caplog):
    a, b = await make_user(), await make_user()
    with caplog.at_level(logging.INFO):
        await matching_service.record_like(a.token, b.token)
        await matching_service.record_like(b.token, a.token)
    assert f"Пользователь {a.id} лайкнул {b.id}" in caplog.text
    assert "Взаимная симпатия" in caplog.text
    assert "создана" in caplog.text
