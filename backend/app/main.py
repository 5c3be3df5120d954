import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from app import config
from app.chatbot.chatbot import ChatExchangeService
from app.chatbot.completion import CompletionClient, create_llm
from app.chatbot.history import ChatHistory
from app.chatbot.report import ReportService
from app.database import connect
from app.routes import auth, chatbot_routes

logger = logging.getLogger(__name__)


def init_services(app, db, llm):
    """Wire the shared store and provider handles into the request-facing services."""
    history = ChatHistory(db["chat_messages"])
    completion = CompletionClient(llm)
    app.state.db = db
    app.state.history = history
    app.state.chat_service = ChatExchangeService(completion, history)
    app.state.report_service = ReportService(completion, history)


@asynccontextmanager
async def lifespan(app: FastAPI):
    client, db = connect()
    llm = create_llm()
    init_services(app, db, llm)
    logger.info("Chat services ready (db=%s, primary=%s, fallback=%s)", config.MONGO_DB, config.PRIMARY_MODEL, config.FALLBACK_MODEL)

    yield

    await llm.close()
    client.close()


def create_app(lifespan=lifespan):
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="MindMitra", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        # chat clients expect the {"error": ...} body, not FastAPI's {"detail": ...}
        if request.url.path.startswith("/chat"):
            return JSONResponse(status_code=400, content={"error": "Invalid request body"})
        return await request_validation_exception_handler(request, exc)

    app.include_router(auth.router, prefix="/auth", tags=["auth"])
    app.include_router(chatbot_routes.router, prefix="/chat", tags=["chat"])

    @app.get("/")
    def root():
        return {"message": "Chatbot backend active!"}

    return app


app = create_app()
