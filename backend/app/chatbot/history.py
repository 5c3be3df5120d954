import asyncio
from typing import List, NamedTuple, Optional

from app.config import HISTORY_SAVE_TIMEOUT
from app.models.chat_model import ChatMessage

REPORT_MESSAGE_LIMIT = 100


class SaveResult(NamedTuple):
    ok: bool
    error: Optional[Exception] = None


class ChatHistory:
    """Append-only chat log kept in a Mongo collection."""

    def __init__(self, collection, save_timeout=HISTORY_SAVE_TIMEOUT):
        self.collection = collection
        self.save_timeout = save_timeout

    async def save(self, message: ChatMessage) -> SaveResult:
        # callers decide whether a failed write matters
        try:
            await asyncio.wait_for(self.collection.insert_one(message.to_document()), self.save_timeout)
        except Exception as e:
            return SaveResult(ok=False, error=e)
        return SaveResult(ok=True)

    async def find_since(self, user_id: str, start, limit: int = REPORT_MESSAGE_LIMIT) -> List[ChatMessage]:
        cursor = (
            self.collection
            .find({"user_id": user_id, "timestamp": {"$gte": start}})
            .sort("timestamp", 1)
            .limit(limit)
        )
        docs = await cursor.to_list(length=limit)
        return [ChatMessage(**doc) for doc in docs]

    async def find_session(self, user_id: str, session_id: str) -> List[ChatMessage]:
        cursor = self.collection.find({"user_id": user_id, "session_id": session_id}).sort("timestamp", 1)
        docs = await cursor.to_list(length=None)
        return [ChatMessage(**doc) for doc in docs]

    async def list_sessions(self, user_id: str) -> List[str]:
        cursor = self.collection.find({"user_id": user_id}, {"session_id": 1}).sort("timestamp", 1)
        seen = []
        for doc in await cursor.to_list(length=None):
            if doc["session_id"] not in seen:
                seen.append(doc["session_id"])
        return seen
