"""FastAPI server exposing the companion's chat operations over HTTP."""

import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from agent import config
from agent.chat import ChatService
from agent.errors import (
    ChatError,
    GenerationError,
    InvalidId,
    InvalidMood,
    MissingField,
    ModerationBlocked,
    PersistenceError,
    UserNotFound,
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Companion Memory")

_service: Optional[ChatService] = None


def get_service() -> ChatService:
    """Return (and lazily create) the process-wide ChatService."""
    global _service
    if _service is None:
        _service = ChatService()
    return _service


class ChatRequest(BaseModel):
    username: Optional[str] = None
    message: Optional[str] = None
    mood: Optional[str] = None


class StartConversationRequest(BaseModel):
    username: Optional[str] = None
    mood: Optional[str] = None


def _http_error(exc: ChatError, failure_detail: str) -> HTTPException:
    """Map a domain error onto the status code the client should see."""
    if isinstance(exc, MissingField):
        return HTTPException(status_code=400, detail="Būtina nurodyti žinutę ir vartotojo vardą.")
    if isinstance(exc, (InvalidMood, InvalidId)):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, UserNotFound):
        return HTTPException(status_code=404, detail="Vartotojas nerastas")
    if isinstance(exc, (ModerationBlocked, GenerationError)):
        return HTTPException(status_code=502, detail=failure_detail)
    if isinstance(exc, PersistenceError):
        logger.error("Persistence failure: %s", exc)
    return HTTPException(status_code=500, detail=failure_detail)


@app.post("/api/chat")
async def send_message(body: ChatRequest, service: ChatService = Depends(get_service)):
    """Answer one user message."""
    try:
        return await run_in_threadpool(
            service.send_message, body.username, body.message, body.mood
        )
    except ChatError as exc:
        raise _http_error(exc, "Nepavyko gauti atsakymo iš AI") from exc


@app.post("/api/chat/start-conversation")
async def start_conversation(
    body: StartConversationRequest, service: ChatService = Depends(get_service)
):
    """Greet the user according to their mood."""
    try:
        return await run_in_threadpool(service.start_conversation, body.username, body.mood)
    except ChatError as exc:
        raise _http_error(exc, "Nepavyko sugeneruoti pasisveikinimo.") from exc


@app.get("/api/users/{username}/memory")
async def user_memory(username: str, service: ChatService = Depends(get_service)):
    """Show the stored short-term window and long-term memory of a user."""
    try:
        user = await run_in_threadpool(service.store.find_by_username, username)
    except ChatError as exc:
        raise _http_error(exc, "Nepavyko nuskaityti atminties.") from exc
    if user is None:
        raise HTTPException(status_code=404, detail="Vartotojas nerastas")
    return {
        "short_term_memory": user.get("short_term_memory", []),
        "long_term_memory": user.get("long_term_memory", {}),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
