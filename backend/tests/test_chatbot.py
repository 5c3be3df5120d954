import asyncio

import pytest

from app.chatbot.chatbot import ChatExchangeService, NO_REPLY, build_persona
from app.chatbot.completion import CompletionClient
from app.chatbot.history import ChatHistory
from app.errors import CompletionUnavailable, ValidationError
from app.models.chat_model import ChatMessage
from app.utils.security import ANONYMOUS, create_access_token

from fakes import FALLBACK, PRIMARY, FailingCollection, FakeLLM, HangingCollection


@pytest.fixture
def service(completion, history):
    return ChatExchangeService(completion, history)


@pytest.mark.asyncio
async def test_reply_is_recorded_for_both_sides(service, collection, llm):
    reply = await service.respond("I drew a cat today", session_id="s-1")

    assert reply.reply_text == "Hello friend!"
    assert reply.session_id == "s-1"
    assert llm.models == [PRIMARY]
    assert [(d["sender"], d["text"]) for d in collection.docs] == [
        ("user", "I drew a cat today"),
        ("bot", "Hello friend!"),
    ]
    assert all(d["session_id"] == "s-1" and d["user_id"] == ANONYMOUS for d in collection.docs)


@pytest.mark.asyncio
async def test_storage_outage_does_not_fail_the_turn(completion, llm):
    service = ChatExchangeService(completion, ChatHistory(FailingCollection()))

    reply = await service.respond("hello")

    assert reply.reply_text == "Hello friend!"
    assert llm.models == [PRIMARY]


@pytest.mark.asyncio
async def test_hanging_storage_is_cut_off(completion, llm):
    history = ChatHistory(HangingCollection(), save_timeout=0.05)
    service = ChatExchangeService(completion, history)

    reply = await asyncio.wait_for(service.respond("hello"), timeout=2)

    assert reply.reply_text == "Hello friend!"
    assert llm.models == [PRIMARY]


@pytest.mark.asyncio
async def test_hanging_save_reports_failure():
    history = ChatHistory(HangingCollection(), save_timeout=0.05)

    result = await history.save(ChatMessage(user_id="u", session_id="s", text="hi", sender="user"))

    assert not result.ok
    assert result.error is not None


@pytest.mark.asyncio
async def test_primary_failure_tries_fallback_exactly_once(history, collection):
    llm = FakeLLM({PRIMARY: RuntimeError("model_not_found"), FALLBACK: "fallback reply"})
    service = ChatExchangeService(CompletionClient(llm, PRIMARY, FALLBACK), history)

    reply = await service.respond("hello")

    assert reply.reply_text == "fallback reply"
    assert llm.models == [PRIMARY, FALLBACK]
    assert collection.docs[-1]["text"] == "fallback reply"


@pytest.mark.asyncio
async def test_both_models_failing_raises_and_skips_bot_message(history, collection):
    llm = FakeLLM({PRIMARY: RuntimeError("down"), FALLBACK: RuntimeError("also down")})
    service = ChatExchangeService(CompletionClient(llm, PRIMARY, FALLBACK), history)

    with pytest.raises(CompletionUnavailable):
        await service.respond("hello")

    assert len(llm.calls) == 2
    assert [d["sender"] for d in collection.docs] == ["user"]


@pytest.mark.asyncio
async def test_missing_session_id_gets_a_fresh_one_each_call(service):
    first = await service.respond("one")
    second = await service.respond("two")

    assert first.session_id
    assert second.session_id
    assert first.session_id != second.session_id


@pytest.mark.asyncio
@pytest.mark.parametrize("message", ["", "   ", None])
async def test_empty_message_is_rejected(service, llm, collection, message):
    with pytest.raises(ValidationError):
        await service.respond(message)

    assert llm.calls == []
    assert collection.docs == []


@pytest.mark.asyncio
@pytest.mark.parametrize("message", [123, ["hi"], {"text": "hi"}])
async def test_non_string_message_is_rejected(service, llm, message):
    with pytest.raises(ValidationError):
        await service.respond(message)

    assert llm.calls == []


@pytest.mark.asyncio
async def test_non_string_session_id_is_rejected(service, llm):
    with pytest.raises(ValidationError):
        await service.respond("hi", session_id=42)

    assert llm.calls == []


@pytest.mark.asyncio
async def test_prompt_uses_persona_and_temperature(service, llm):
    await service.respond("hi", bot_name="Sunny")

    call = llm.calls[0]
    assert call["temperature"] == 0.7
    assert call["messages"][0] == {"role": "system", "content": build_persona("Sunny")}
    assert call["messages"][0]["content"].startswith("You are Sunny,")
    assert call["messages"][1] == {"role": "user", "content": "hi"}


def test_persona_defaults_bot_name():
    assert build_persona(None).startswith("You are MindMitra,")


@pytest.mark.asyncio
async def test_verified_credential_keys_history_by_user(service, collection):
    token = create_access_token({"sub": "user-42"})

    await service.respond("hi", credential=token)

    assert {d["user_id"] for d in collection.docs} == {"user-42"}


@pytest.mark.asyncio
async def test_empty_completion_uses_placeholder(history):
    llm = FakeLLM({PRIMARY: "", FALLBACK: "unused"})
    service = ChatExchangeService(CompletionClient(llm, PRIMARY, FALLBACK), history)

    reply = await service.respond("hi")

    assert reply.reply_text == NO_REPLY
    assert llm.models == [PRIMARY]
