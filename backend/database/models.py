from datetime import datetime
from sqlalchemy import Column, BigInteger, Integer, Text, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from .db import Base

# SQLite only autoincrements INTEGER PRIMARY KEY columns
IdType = BigInteger().with_variant(Integer(), "sqlite")

GUEST_USER_ID = 0
GUEST_USER_NAME = "guest"


class User(Base):
    __tablename__ = 'users'
    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(Text, unique=True, nullable=False)
    email = Column(Text, unique=True, nullable=True)
    password_hash = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    chats = relationship("Chat", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)

    @property
    def is_guest(self) -> bool:
        return self.id == GUEST_USER_ID


class Chat(Base):
    __tablename__ = 'chats'
    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="chats")
    messages = relationship(
        "Message",
        back_populates="chat",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Message(Base):
    __tablename__ = 'messages'
    id = Column(IdType, primary_key=True, autoincrement=True)
    chat_id = Column(IdType, ForeignKey("chats.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(Text, CheckConstraint("role IN ('user','assistant')"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    chat = relationship("Chat", back_populates="messages")
