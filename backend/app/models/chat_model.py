from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime, timezone
from typing import Any, Literal
from uuid import UUID, uuid4


def utcnow():
    return datetime.now(timezone.utc)


def as_utc(ts: datetime) -> datetime:
    # Mongo hands back naive UTC datetimes
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


class ChatMessage(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    user_id: str
    session_id: str
    text: str
    sender: Literal["user", "bot"]
    timestamp: datetime = Field(default_factory=utcnow)

    @field_validator("timestamp")
    @classmethod
    def _timestamp_is_aware(cls, v):
        return as_utc(v)

    def to_document(self):
        return {**self.model_dump(), "id": str(self.id)}


class ChatRequest(BaseModel):
    # shapes are checked by the chat service so bad input gets the chat error body
    model_config = ConfigDict(populate_by_name=True)

    message: Any = None
    session_id: Any = Field(default=None, alias="sessionId")
    bot_name: Any = Field(default=None, alias="botName")


class ReportRequest(BaseModel):
    type: Any = None
