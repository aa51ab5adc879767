"""Conversation upsert."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from whatsterm.models.conversation import Conversation

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class ConversationService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def upsert_conversation(
        self, participant_id: str, seen_at: Optional[datetime] = None
    ) -> UUID:
        """
        Create the conversation for participant_id, or bump its last activity.

        Runs as a single INSERT ... ON CONFLICT DO UPDATE ... RETURNING so
        concurrent first contact from one participant cannot create two rows.
        """
        dialect = self.db.get_bind().dialect.name
        insert = _DIALECT_INSERTS.get(dialect)
        if insert is None:
            raise RuntimeError(f"Conversation upsert is not supported on {dialect}")

        now = seen_at or datetime.now(timezone.utc)
        stmt = insert(Conversation).values(
            id=uuid.uuid4(),
            participant_id=participant_id,
            created_at=now,
            updated_at=now,
            last_activity_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["participant_id"],
            set_={
                "last_activity_at": stmt.excluded.last_activity_at,
                "updated_at": stmt.excluded.updated_at,
            },
        ).returning(Conversation.id)

        conversation_id = self.db.execute(stmt).scalar_one()
        self.db.commit()
        return conversation_id
