import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from backend.agents.assistant import ChatAssistant, build_assistant
from backend.agents.fallbacks import ChatError
from backend.auth.dependencies import get_caller, get_current_user
from backend.auth.routes import router as auth_router
from backend.chat_service import handle_chat_turn, owned_chat
from backend.config import get_settings
from backend.database import models, repository, schema
from backend.database.db import Base, SessionLocal, engine, get_db
from backend.state import ServerState

settings = get_settings()

logging.basicConfig(level=settings.log_level, format="[%(asctime)s] %(levelname)s - %(message)s")
logger = logging.getLogger("chatapi")

SERVICE_NAME = "AI Chat API"
LOAD_HEADER = "X-Server-Load"


def init_db() -> None:
    """Create tables and the guest sentinel row."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        repository.ensure_guest_user(db)
    finally:
        db.close()


app = FastAPI(title=SERVICE_NAME)  # initiate fastapi app--server

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.server = ServerState.from_settings(settings)
app.state.assistant = build_assistant(settings)
if app.state.assistant is None:
    logger.warning("No GROQ_API_KEY or OPENAI_API_KEY set; /api/chat will answer 503")
else:
    logger.info("AI client initialized: provider=%s model=%s",
                app.state.assistant.provider_name, app.state.assistant.model_name)

init_db()

app.include_router(auth_router, tags=["Authentication"])


# ---------------- Dependencies ----------------
def get_server_state(request: Request) -> ServerState:
    return request.app.state.server


def get_assistant(request: Request) -> Optional[ChatAssistant]:
    return request.app.state.assistant


def _error_body(exc: ChatError) -> dict:
    return schema.ErrorEnvelope(
        error=exc.error, message=exc.message, fallback_response=exc.fallback_response
    ).model_dump(by_alias=True)


# ---------------- Middleware & handlers ----------------
@app.middleware("http")
async def track_load(request: Request, call_next):
    gate = request.app.state.server.load_gate
    if request.method == "POST" and request.url.path == "/api/chat" and gate.should_shed():
        logger.warning("Shedding chat request at load=%s", gate.load)
        busy = ChatError(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "server_busy",
            "Server is under heavy load",
            "I'm a bit overwhelmed right now. Please try again in a few seconds.",
        )
        return JSONResponse(status_code=busy.status_code, content=_error_body(busy),
                            headers={LOAD_HEADER: str(gate.load)})

    gate.enter()
    try:
        response = await call_next(request)
        response.headers[LOAD_HEADER] = str(gate.load)
        return response
    finally:
        gate.leave()


@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError):
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "internal_error", "message": "Something went wrong"},
    )


# ---------------- Routes ----------------
@app.get('/api/health', response_model=schema.HealthOut)
async def health(request: Request):
    gate = request.app.state.server.load_gate
    assistant = request.app.state.assistant
    return schema.HealthOut(
        status="OK",
        service=SERVICE_NAME,
        timestamp=datetime.now(timezone.utc),
        load=gate.load,
        active_requests=gate.active,
        provider=assistant.provider_name if assistant else None,
    )


@app.post('/api/chat', response_model=schema.ChatResponse)
async def chat(
    chat_in: schema.ChatRequest,
    request: Request,
    db: Session = Depends(get_db),
    caller: models.User = Depends(get_caller),
    server: ServerState = Depends(get_server_state),
    assistant: Optional[ChatAssistant] = Depends(get_assistant),
):
    client_key = caller.id if not caller.is_guest else f"ip:{request.client.host if request.client else 'unknown'}"
    return await handle_chat_turn(
        db, caller, chat_in.message, chat_in.chat_id, assistant, server, client_key
    )


@app.get('/api/chats', response_model=List[schema.ChatOut])
def list_chats(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    server: ServerState = Depends(get_server_state),
):
    cached = server.chat_list_cache.get(current_user.id)
    if cached is not None:
        return cached
    chats = [schema.ChatOut.model_validate(chat) for chat in repository.list_chats(db, current_user.id)]
    server.chat_list_cache.set(current_user.id, chats)
    return chats


@app.post('/api/chats', response_model=schema.ChatOut, status_code=status.HTTP_201_CREATED)
def create_chat(
    chat_in: schema.ChatCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    server: ServerState = Depends(get_server_state),
):
    title = repository.make_title(chat_in.title or "")
    chat = repository.create_chat(db, current_user.id, title)
    server.chat_list_cache.invalidate(current_user.id)
    return chat


@app.get('/api/chats/{chat_id}', response_model=List[schema.MessageOut])
def get_chat(
    chat_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    chat = owned_chat(db, chat_id, current_user)
    return repository.list_messages(db, chat.id)


@app.delete('/api/chats/{chat_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_chat(
    chat_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    server: ServerState = Depends(get_server_state),
):
    chat = owned_chat(db, chat_id, current_user)
    user_id = current_user.id
    repository.delete_chat(db, chat)
    server.chat_list_cache.invalidate(user_id)
    logger.info("Deleted chat=%s for user=%s", chat_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("backend.main:app", host=settings.host, port=settings.port,
                reload=settings.app_env.lower() in {"dev", "development", "local"})
