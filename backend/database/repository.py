"""Persistence helpers for users, chats and messages.

Every function takes the request's ``Session`` and commits its own write, so
a chat turn is a handful of independent round trips rather than one
transaction.
"""
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from backend.database.models import Chat, GUEST_USER_ID, GUEST_USER_NAME, Message, User

TITLE_MAX_LENGTH = 50
DEFAULT_CHAT_TITLE = "New Chat"

# bcrypt never produces this, so the guest can't log in
UNUSABLE_PASSWORD = "!"


def make_title(text: str) -> str:
    """Chat title from the first message: whitespace collapsed, truncated."""
    title = " ".join(text.split())
    if not title:
        return DEFAULT_CHAT_TITLE
    if len(title) > TITLE_MAX_LENGTH:
        return title[:TITLE_MAX_LENGTH].rstrip() + "..."
    return title


# ---------------- Users ----------------
def ensure_guest_user(db: Session) -> User:
    guest = db.get(User, GUEST_USER_ID)
    if guest is None:
        guest = User(id=GUEST_USER_ID, name=GUEST_USER_NAME, password_hash=UNUSABLE_PASSWORD)
        db.add(guest)
        db.commit()
        db.refresh(guest)
    return guest


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_name(db: Session, name: str) -> Optional[User]:
    return db.query(User).filter(User.name == name).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def find_conflicting_user(db: Session, name: str, email: Optional[str]) -> Optional[User]:
    conditions = [User.name == name]
    if email:
        conditions.append(User.email == email)
    return db.query(User).filter(or_(*conditions)).first()


def create_user(db: Session, name: str, password_hash: str, email: Optional[str] = None) -> User:
    user = User(name=name, email=email, password_hash=password_hash)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user: User) -> None:
    db.delete(user)
    db.commit()


# ---------------- Chats ----------------
def create_chat(db: Session, user_id: int, title: str) -> Chat:
    chat = Chat(user_id=user_id, title=title)
    db.add(chat)
    db.commit()
    db.refresh(chat)
    return chat


def get_chat(db: Session, chat_id: int) -> Optional[Chat]:
    return db.query(Chat).filter(Chat.id == chat_id).first()


def get_latest_chat(db: Session, user_id: int) -> Optional[Chat]:
    return (
        db.query(Chat)
        .filter(Chat.user_id == user_id)
        .order_by(Chat.created_at.desc(), Chat.id.desc())
        .first()
    )


def list_chats(db: Session, user_id: int) -> List[Chat]:
    return (
        db.query(Chat)
        .filter(Chat.user_id == user_id)
        .order_by(Chat.created_at.desc(), Chat.id.desc())
        .all()
    )


def delete_chat(db: Session, chat: Chat) -> None:
    db.delete(chat)
    db.commit()


# ---------------- Messages ----------------
def add_message(db: Session, chat_id: int, role: str, content: str) -> Message:
    message = Message(chat_id=chat_id, role=role, content=content)
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


def list_messages(db: Session, chat_id: int) -> List[Message]:
    return (
        db.query(Message)
        .filter(Message.chat_id == chat_id)
        .order_by(Message.created_at.asc(), Message.id.asc())
        .all()
    )
