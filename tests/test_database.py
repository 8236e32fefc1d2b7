from storefront.models.database import (
    create_session,
    end_session,
    get_events,
    get_messages,
    get_session,
    init_db,
    list_sessions,
    log_event,
    save_message,
)


async def test_transcript_round_trip(tmp_path):
    db_path = str(tmp_path / "data" / "test.db")
    await init_db(db_path)

    session_id = await create_session(db_path, user_id="user-1")
    await save_message(db_path, session_id, "assistant", "Hello! How can I help?")
    await save_message(db_path, session_id, "user", "track my order", "2026-01-01T10:00:00+00:00")

    messages = await get_messages(db_path, session_id)
    assert [(m["role"], m["content"]) for m in messages] == [
        ("assistant", "Hello! How can I help?"),
        ("user", "track my order"),
    ]
    assert messages[1]["created_at"] == "2026-01-01T10:00:00+00:00"

    session = await get_session(db_path, session_id)
    assert session["user_id"] == "user-1"


async def test_ended_sessions_are_not_listed(tmp_path):
    db_path = str(tmp_path / "test.db")
    await init_db(db_path)

    kept = await create_session(db_path)
    ended = await create_session(db_path)
    await save_message(db_path, kept, "user", "hi")
    await end_session(db_path, ended)

    sessions = await list_sessions(db_path)
    assert [(s["id"], s["message_count"]) for s in sessions] == [(kept, 1)]
    assert (await get_session(db_path, ended))["status"] == "ended"


async def test_events(tmp_path):
    db_path = str(tmp_path / "test.db")
    await init_db(db_path)
    session_id = await create_session(db_path)

    await log_event(db_path, session_id, "intent_classified", {"intent": "order_support"})
    await log_event(db_path, session_id, "chat_fallback")

    events = await get_events(db_path, session_id)
    assert [(e["event_type"], e["event_data"]) for e in events] == [
        ("intent_classified", {"intent": "order_support"}),
        ("chat_fallback", None),
    ]


async def test_sessions_are_listed_per_owner(tmp_path):
    db_path = str(tmp_path / "test.db")
    await init_db(db_path)

    mine = await create_session(db_path, user_id="user-1")
    await create_session(db_path, user_id="user-2")
    anonymous = await create_session(db_path)

    assert [s["id"] for s in await list_sessions(db_path, user_id="user-1")] == [mine]
    assert [s["id"] for s in await list_sessions(db_path)] == [anonymous]
