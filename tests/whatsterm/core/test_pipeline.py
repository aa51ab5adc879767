"""Tests for IngestionPipeline."""

import logging
import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from tests.fixtures.whatsapp_fixtures import DEFAULT_JID, image_event, make_event
from whatsterm.core.errors import (
    ReferentialIntegrityError,
    SocketNotAttachedError,
    WhatstermError,
)
from whatsterm.core.pipeline import IngestionPipeline
from whatsterm.models.conversation import Conversation
from whatsterm.models.message import Message


def _stored(db_manager):
    """(conversations, messages) currently in the database."""
    with db_manager.db_session() as db:
        return db.query(Conversation).all(), db.query(Message).all()


@pytest.mark.asyncio
async def test_messages_from_one_participant_share_a_conversation(
    pipeline, db_manager
):
    for i in range(3):
        await pipeline.on_message_batch([make_event(text=f"msg {i}")], "notify")

    conversations, messages = _stored(db_manager)
    assert len(conversations) == 1
    assert conversations[0].participant_id == DEFAULT_JID
    assert len(messages) == 3
    assert {m.conversation_id for m in messages} == {conversations[0].id}
    assert all(m.direction == "incoming" for m in messages)


@pytest.mark.asyncio
async def test_known_participant_reuses_existing_conversation(
    pipeline, store, db_manager
):
    existing_id = await store.upsert_conversation(DEFAULT_JID)

    report = await pipeline.on_message_batch(
        [make_event(text="a"), make_event(text="b")], "notify"
    )

    conversations, messages = _stored(db_manager)
    assert report.persisted == 2
    assert [c.id for c in conversations] == [existing_id]
    assert all(m.conversation_id == existing_id for m in messages)


@pytest.mark.asyncio
async def test_from_me_is_ignored(pipeline, fake_socket, db_manager):
    report = await pipeline.on_message_batch([make_event(from_me=True)], "notify")

    conversations, messages = _stored(db_manager)
    assert report.skipped == 1
    assert conversations == []
    assert messages == []
    assert fake_socket.sent == []


@pytest.mark.asyncio
async def test_ping_replies_pong_without_persisting(pipeline, fake_socket, db_manager):
    report = await pipeline.on_message_batch([make_event(text="/ping")], "notify")

    conversations, messages = _stored(db_manager)
    assert report.commands == 1
    assert messages == []
    assert conversations == []
    assert fake_socket.sent == [(DEFAULT_JID, "pong")]


@pytest.mark.asyncio
async def test_ping_must_match_exactly(pipeline, fake_socket, db_manager):
    await pipeline.on_message_batch([make_event(text="/ping please")], "notify")

    _, messages = _stored(db_manager)
    assert fake_socket.sent == []
    assert [m.text for m in messages] == ["/ping please"]


@pytest.mark.asyncio
async def test_image_caption_becomes_text(pipeline, db_manager):
    await pipeline.on_message_batch([image_event("hello")], "notify")

    _, messages = _stored(db_manager)
    assert [m.text for m in messages] == ["hello"]


@pytest.mark.asyncio
async def test_non_text_message_stored_with_null_text_and_raw_payload(
    pipeline, db_manager
):
    event = make_event(
        message={"audioMessage": {"mimetype": "audio/ogg", "seconds": 4, "ptt": True}}
    )

    await pipeline.on_message_batch([event], "notify")

    _, messages = _stored(db_manager)
    assert len(messages) == 1
    assert messages[0].text is None
    assert messages[0].raw_payload == event


@pytest.mark.asyncio
async def test_message_timestamp_from_event(pipeline, db_manager):
    await pipeline.on_message_batch([make_event(timestamp=1609459200)], "notify")

    _, messages = _stored(db_manager)
    assert messages[0].message_timestamp.replace(tzinfo=None) == datetime(2021, 1, 1)


@pytest.mark.asyncio
async def test_missing_timestamp_uses_receive_time(pipeline, db_manager):
    before = datetime.now(timezone.utc).replace(tzinfo=None)

    await pipeline.on_message_batch([make_event(timestamp=None)], "notify")

    _, messages = _stored(db_manager)
    assert messages[0].message_timestamp.replace(tzinfo=None) >= before


@pytest.mark.asyncio
async def test_millisecond_timestamp_is_still_stored(pipeline, db_manager):
    before = datetime.now(timezone.utc).replace(tzinfo=None)

    report = await pipeline.on_message_batch(
        [make_event(text="late", timestamp=1700000000000)], "notify"
    )

    _, messages = _stored(db_manager)
    assert report.persisted == 1
    assert [m.text for m in messages] == ["late"]
    assert messages[0].message_timestamp.replace(tzinfo=None) >= before


@pytest.mark.asyncio
async def test_malformed_event_does_not_drop_the_batch(pipeline, db_manager):
    events = [
        make_event(text="first", jid="111@s.whatsapp.net"),
        make_event(text="no sender", jid=None),
        make_event(text="second", jid="222@s.whatsapp.net"),
    ]

    report = await pipeline.on_message_batch(events, "notify")

    conversations, messages = _stored(db_manager)
    assert report.persisted == 2
    assert report.skipped == 1
    assert sorted(m.text for m in messages) == ["first", "second"]
    assert len(conversations) == 2


@pytest.mark.asyncio
async def test_event_that_raises_is_isolated(pipeline, db_manager, caplog):
    caplog.set_level(logging.ERROR)
    events = [make_event(text="ok 1"), "not-an-event", make_event(text="ok 2")]

    report = await pipeline.on_message_batch(events, "notify")

    _, messages = _stored(db_manager)
    assert report.failed == 1
    assert report.persisted == 2
    assert len(messages) == 2
    assert "Error processing incoming WhatsApp message" in caplog.text


@pytest.mark.asyncio
async def test_events_without_content_are_skipped(pipeline, db_manager):
    events = [
        make_event(message={}),
        make_event(message={"protocolMessage": {"type": 0}}),
        make_event(message={"reactionMessage": {"text": "❤️"}}),
    ]

    report = await pipeline.on_message_batch(events, "notify")

    _, messages = _stored(db_manager)
    assert report.skipped == 3
    assert messages == []


@pytest.mark.asyncio
async def test_history_batches_are_skipped(pipeline, fake_socket, db_manager):
    report = await pipeline.on_message_batch(
        [make_event(text="old"), make_event(text="/ping")], "append"
    )

    conversations, messages = _stored(db_manager)
    assert report.skipped == 2
    assert conversations == []
    assert messages == []
    assert fake_socket.sent == []


@pytest.mark.asyncio
async def test_store_failure_is_logged_and_next_event_processed(fake_socket, caplog):
    caplog.set_level(logging.INFO)
    store = MagicMock()
    store.upsert_conversation = AsyncMock(side_effect=[RuntimeError("db down"), uuid.uuid4()])
    store.append_message = AsyncMock()
    pipeline = IngestionPipeline(store)
    pipeline.attach(fake_socket)

    report = await pipeline.on_message_batch(
        [make_event(text="lost"), make_event(text="kept")], "notify"
    )

    assert report.failed == 1
    assert report.persisted == 1
    assert store.append_message.await_count == 1
    assert "db down" in caplog.text
    assert "[WhatsApp] From: %s Text: kept" % DEFAULT_JID in caplog.text


@pytest.mark.asyncio
async def test_referential_error_is_reported_distinctly(fake_socket, caplog):
    caplog.set_level(logging.INFO)
    missing = uuid.uuid4()
    store = MagicMock()
    store.upsert_conversation = AsyncMock(return_value=missing)
    store.append_message = AsyncMock(side_effect=ReferentialIntegrityError(missing))
    pipeline = IngestionPipeline(store)
    pipeline.attach(fake_socket)

    report = await pipeline.on_message_batch([make_event()], "notify")

    assert report.failed == 1
    critical = [r for r in caplog.records if r.levelno == logging.CRITICAL]
    assert len(critical) == 1
    assert str(missing) in critical[0].getMessage()


@pytest.mark.asyncio
async def test_non_text_log_marker(pipeline, caplog):
    caplog.set_level(logging.INFO)

    await pipeline.on_message_batch(
        [make_event(message={"stickerMessage": {}}, timestamp=1609459200)], "notify"
    )

    assert (
        f"[WhatsApp] From: {DEFAULT_JID} Text: <non-text> "
        "Timestamp: 2021-01-01T00:00:00+00:00"
    ) in caplog.text


@pytest.mark.asyncio
async def test_ping_without_socket_fails_only_that_event(caplog):
    caplog.set_level(logging.ERROR)
    store = MagicMock()
    store.upsert_conversation = AsyncMock(return_value=uuid.uuid4())
    store.append_message = AsyncMock()
    pipeline = IngestionPipeline(store)

    report = await pipeline.on_message_batch(
        [make_event(text="/ping"), make_event(text="after")], "notify"
    )

    assert report.failed == 1
    assert report.persisted == 1
    assert "No socket attached to answer commands" in caplog.text
    errors = [r for r in caplog.records if r.exc_info]
    assert isinstance(errors[0].exc_info[1], SocketNotAttachedError)
    assert isinstance(errors[0].exc_info[1], WhatstermError)
