import logging
from typing import Hashable, Optional

from fastapi import HTTPException, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from backend.agents.assistant import ChatAssistant
from backend.agents.fallbacks import ChatError, classify_provider_error, fallback_error
from backend.database import models, repository
from backend.state import ServerState

logger = logging.getLogger("chatapi.chat")

MAX_MESSAGE_LENGTH = 5000


def owned_chat(db: Session, chat_id: int, user: models.User) -> models.Chat:
    """Fetch a chat, failing with 404 when missing and 403 when someone else owns it."""
    chat = repository.get_chat(db, chat_id)
    if chat is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Chat not found')
    if chat.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Access denied')
    return chat


def open_turn(db: Session, caller: models.User, text: str, chat: Optional[models.Chat]) -> tuple:
    """Pick or create the turn's chat and store the user message.

    Returns ``(chat_id, created)``. Guests never resume a chat, and a
    registered caller without an explicit chat continues the latest one.
    """
    if chat is None and not caller.is_guest:
        chat = repository.get_latest_chat(db, caller.id)
    created = chat is None
    if created:
        chat = repository.create_chat(db, caller.id, repository.make_title(text))
    repository.add_message(db, chat.id, "user", text)
    return chat.id, created


async def handle_chat_turn(
    db: Session,
    caller: models.User,
    message: str,
    chat_id: Optional[int],
    assistant: Optional[ChatAssistant],
    server: ServerState,
    client_key: Hashable,
) -> dict:
    # blocking DB work goes through the threadpool; commits expire
    # ``caller``, so its identity is read once here
    user_id, is_guest = caller.id, caller.is_guest
    text = (message or "").strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Message is required')
    if len(text) > MAX_MESSAGE_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'Message must be at most {MAX_MESSAGE_LENGTH} characters',
        )

    chat = None
    if chat_id is not None and not is_guest:
        chat = await run_in_threadpool(owned_chat, db, chat_id, caller)

    # rejected and forbidden turns are not counted
    if server.rate_limiter.is_limited(client_key):
        logger.warning("Rate limit hit for %s", client_key)
        raise ChatError(
            status.HTTP_429_TOO_MANY_REQUESTS,
            "too_many_requests",
            "Too many requests - please wait a moment.",
            "You're sending messages a little too fast. Please wait a moment and try again.",
        )

    turn_chat_id, created = await run_in_threadpool(open_turn, db, caller, text, chat)
    if created:
        server.chat_list_cache.invalidate(user_id)
    logger.info("Chat turn: user=%s chat=%s message_len=%s", user_id, turn_chat_id, len(text))

    if assistant is None:
        raise ChatError(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "service_unavailable",
            "AI service is not configured",
            "The AI service isn't set up yet. Please try again later.",
        )

    try:
        reply = await assistant.reply(text)
    except Exception as exc:
        kind = classify_provider_error(exc)
        if kind is None:
            raise
        logger.warning("Provider failure on chat=%s classified as %s: %s", turn_chat_id, kind, exc)
        raise fallback_error(kind) from exc

    await run_in_threadpool(repository.add_message, db, turn_chat_id, "assistant", reply)
    logger.info("Chat turn done: chat=%s reply_len=%s", turn_chat_id, len(reply))
    return {"response": reply, "chat_id": turn_chat_id}
