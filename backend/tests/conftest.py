import pytest
from fastapi.testclient import TestClient

from app.chatbot.completion import CompletionClient
from app.chatbot.history import ChatHistory
from app.main import create_app, init_services
from app.utils import security

from fakes import FALLBACK, PRIMARY, FakeCollection, FakeDatabase, FakeLLM


@pytest.fixture(autouse=True)
def secret_key(monkeypatch):
    monkeypatch.setattr(security, "SECRET_KEY", "test-secret")
    return "test-secret"


@pytest.fixture
def llm():
    return FakeLLM({PRIMARY: "Hello friend!", FALLBACK: "Hello from fallback!"})


@pytest.fixture
def completion(llm):
    return CompletionClient(llm, primary_model=PRIMARY, fallback_model=FALLBACK)


@pytest.fixture
def collection():
    return FakeCollection()


@pytest.fixture
def history(collection):
    return ChatHistory(collection)


@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def client(db, llm):
    app = create_app(lifespan=None)
    init_services(app, db, llm)
    app.state.chat_service.completion.primary_model = PRIMARY
    app.state.chat_service.completion.fallback_model = FALLBACK
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {security.create_access_token({'sub': 'u-1'})}"}
