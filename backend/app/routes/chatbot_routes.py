import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from app import config
from app.chatbot.chatbot import ChatExchangeService
from app.chatbot.history import ChatHistory
from app.chatbot.report import ReportService
from app.errors import CompletionUnavailable, NoDataFound, NotAuthenticated, ValidationError
from app.models.chat_model import ChatRequest, ReportRequest
from app.utils.security import get_current_user, read_credential

logger = logging.getLogger(__name__)

router = APIRouter()

CONFIG_ERROR = "There is an issue with the AI service configuration."
CHAT_ERROR = "I am having trouble processing your message right now. Please try again."
REPORT_ERROR = "I am having trouble generating the report right now. Please try again."


def get_chat_service(request: Request) -> ChatExchangeService:
    return request.app.state.chat_service


def get_report_service(request: Request) -> ReportService:
    return request.app.state.report_service


def get_history(request: Request) -> ChatHistory:
    return request.app.state.history


def _details(error):
    # technical detail only leaves the process in development
    return str(error) if config.APP_ENV == "development" else None


def _error_body(message, error, **extra):
    body = {"error": message, **extra}
    details = _details(error)
    if details is not None:
        body["details"] = details
    return body


@router.post("/", summary="Send one message to the companion bot")
async def chat(
    req: ChatRequest,
    request: Request,
    service: ChatExchangeService = Depends(get_chat_service),
):
    try:
        reply = await service.respond(
            req.message,
            session_id=req.session_id,
            credential=read_credential(request),
            bot_name=req.bot_name,
        )
    except ValidationError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except Exception as e:
        if not isinstance(e, CompletionUnavailable):
            logger.exception("Chat request failed")
        message = CONFIG_ERROR if "API" in str(e) else CHAT_ERROR
        return JSONResponse(status_code=500, content=_error_body(message, e, response=message))

    return {"response": reply.reply_text, "sessionId": reply.session_id}


@router.post("/report", summary="Summarize recent conversations into a progress report")
async def report(
    req: ReportRequest,
    request: Request,
    service: ReportService = Depends(get_report_service),
):
    try:
        text = await service.generate(req.type, credential=read_credential(request))
    except ValidationError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except NotAuthenticated as e:
        return JSONResponse(status_code=401, content={"error": str(e)})
    except NoDataFound as e:
        return JSONResponse(status_code=404, content={"error": str(e)})
    except Exception as e:
        if not isinstance(e, CompletionUnavailable):
            logger.exception("Report request failed")
        return JSONResponse(status_code=500, content=_error_body(REPORT_ERROR, e))

    return {"report": text}


@router.get("/history", summary="Messages of one session, oldest first")
async def get_chat_history(
    session_id: str = Query(...),
    user_id: str = Depends(get_current_user),
    history: ChatHistory = Depends(get_history),
):
    messages = await history.find_session(user_id, session_id)
    return {
        "sessionId": session_id,
        "messages": [
            {"text": m.text, "sender": m.sender, "timestamp": m.timestamp.isoformat()}
            for m in messages
        ],
    }


@router.get("/sessions", summary="Session ids of the current user")
async def list_sessions(
    user_id: str = Depends(get_current_user),
    history: ChatHistory = Depends(get_history),
):
    return {"sessions": await history.list_sessions(user_id)}
