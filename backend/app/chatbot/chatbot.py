import logging
from typing import NamedTuple, Optional
from uuid import uuid4

from app.chatbot.completion import CompletionClient
from app.chatbot.history import ChatHistory
from app.errors import ValidationError
from app.models.chat_model import ChatMessage
from app.utils.security import resolve_user_id

logger = logging.getLogger(__name__)

DEFAULT_BOT_NAME = "MindMitra"
CHAT_TEMPERATURE = 0.7
NO_REPLY = "I encountered an issue generating a response."

PERSONA_PROMPT = """You are {bot_name}, a highly empathetic, soothing, and gentle companion bot designed specifically for neurodivergent individuals (Autism, ADHD, Dyslexia).

Guidelines:
1. Always respond in the same language the user uses (Multilingual Support).
2. Keep your responses short, clear, and easy to read.
3. Be exceedingly patient, warm, positive, and validating. Always give genuine yet positive replies.
4. Always act as a supportive friend to boost their confidence.
5. After validating feelings, gently ask exactly ONE open-ended follow-up question to learn about their state of mind or hobbies.
6. Avoid metaphors or sarcasm. Be literal.
7. Use simple and relatable words.
8. Make the user feel comfortable, heard, and appreciated.

If after 3-4 exchanges you detect signs of conditions like Autism, ADHD, or Dyslexia, mention it sensitively and supportive.
REPORT COMMAND: If the user asks to generate a detailed progress report, output a structured, bulleted report covering: Emotional State, Interests & Hobbies, Strengths Identified, and Potential Career/Path Suggestions based on their chats."""


def build_persona(bot_name: Optional[str]) -> str:
    return PERSONA_PROMPT.format(bot_name=bot_name or DEFAULT_BOT_NAME)


class ChatReply(NamedTuple):
    reply_text: str
    session_id: str


class ChatExchangeService:
    def __init__(self, completion: CompletionClient, history: ChatHistory):
        self.completion = completion
        self.history = history

    async def _record(self, user_id, session_id, text, sender):
        result = await self.history.save(ChatMessage(user_id=user_id, session_id=session_id, text=text, sender=sender))
        if not result.ok:
            logger.warning("Failed to save %s message for session %s: %s", sender, session_id, result.error)

    async def respond(self, message, session_id=None, credential=None, bot_name=None) -> ChatReply:
        """
        Run one chat turn.

        The inbound and outbound messages are written to history on a best
        effort basis; a storage outage never fails the turn. Raises
        ValidationError for an empty message and CompletionUnavailable when
        both models fail, in which case no bot message is recorded.
        """
        if not isinstance(message, str) or not message.strip():
            raise ValidationError("Message is required")
        message = message.strip()
        if session_id is not None and not isinstance(session_id, str):
            raise ValidationError("sessionId must be a string")
        if bot_name is not None and not isinstance(bot_name, str):
            raise ValidationError("botName must be a string")

        session_id = session_id or str(uuid4())
        user_id = resolve_user_id(credential)

        await self._record(user_id, session_id, message, "user")

        reply = await self.completion.complete(
            [
                {"role": "system", "content": build_persona(bot_name)},
                {"role": "user", "content": message},
            ],
            temperature=CHAT_TEMPERATURE,
            default=NO_REPLY,
        )

        await self._record(user_id, session_id, reply, "bot")
        return ChatReply(reply_text=reply, session_id=session_id)
