"""Tests for MessageService and the store's append."""

import uuid
from datetime import datetime, timezone

import pytest

from whatsterm.core.errors import ReferentialIntegrityError
from whatsterm.models.message import Message
from whatsterm.schemas.conversation import MessageCreate, MessageRead
from whatsterm.services.conversation_service import ConversationService
from whatsterm.services.message_service import MessageService


@pytest.fixture
def message_create():
    return MessageCreate(
        direction="incoming",
        text="hello",
        raw_payload={"key": {"remoteJid": "123@s.whatsapp.net"}, "message": {}},
        message_timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def test_append_message(db, message_create):
    conversation_id = ConversationService(db).upsert_conversation("123@s.whatsapp.net")
    service = MessageService(db)

    msg = service.append_message(conversation_id, message_create)

    assert msg.id is not None
    assert msg.conversation_id == conversation_id
    assert msg.direction == "incoming"
    assert msg.text == "hello"
    assert msg.raw_payload == message_create.raw_payload
    assert msg.created_at is not None


def test_append_message_with_null_text(db, message_create):
    conversation_id = ConversationService(db).upsert_conversation("123@s.whatsapp.net")
    data = message_create.model_copy(update={"text": None})

    msg = MessageService(db).append_message(conversation_id, data)

    assert msg.text is None


def test_append_to_unknown_conversation_raises(db, message_create):
    missing = uuid.uuid4()
    with pytest.raises(ReferentialIntegrityError) as exc_info:
        MessageService(db).append_message(missing, message_create)
    assert exc_info.value.conversation_id == missing


def test_messages_are_kept_per_conversation(db, message_create):
    service = MessageService(db)
    first = ConversationService(db).upsert_conversation("123@s.whatsapp.net")
    second = ConversationService(db).upsert_conversation("456@s.whatsapp.net")

    service.append_message(first, message_create)
    service.append_message(first, message_create.model_copy(update={"text": "again"}))
    service.append_message(second, message_create)

    rows = db.query(Message).filter(Message.conversation_id == first).all()
    assert sorted(m.text for m in rows) == ["again", "hello"]
    assert db.query(Message).count() == 3


@pytest.mark.asyncio
async def test_store_append_returns_read_model(store, message_create):
    conversation_id = await store.upsert_conversation("123@s.whatsapp.net")

    msg = await store.append_message(conversation_id, message_create)

    assert isinstance(msg, MessageRead)
    assert msg.conversation_id == conversation_id
    assert msg.text == "hello"


@pytest.mark.asyncio
async def test_store_append_to_unknown_conversation_raises(store, message_create):
    with pytest.raises(ReferentialIntegrityError):
        await store.append_message(uuid.uuid4(), message_create)
