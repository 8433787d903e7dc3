from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field
from typing import Optional
from datetime import datetime

from backend.database.repository import TITLE_MAX_LENGTH

# ---------------------------
# User Schemas
# ---------------------------
class UserCreate(BaseModel):
    # profile clients send {name, pin}, account clients send {username, email, password}
    name: str = Field(
        ...,
        min_length=1,
        max_length=64,
        validation_alias=AliasChoices("name", "username"),
        examples=["John Doe"],
    )
    email: Optional[EmailStr] = Field(None, examples=["john@example.com"])
    password: str = Field(
        ...,
        min_length=4,
        max_length=128,
        validation_alias=AliasChoices("password", "pin"),
        examples=["strongpassword123"],
    )


class UserLogin(BaseModel):
    name: Optional[str] = Field(None, validation_alias=AliasChoices("name", "username"))
    email: Optional[EmailStr] = Field(None, examples=["john@example.com"])
    password: str = Field(..., min_length=1, validation_alias=AliasChoices("password", "pin"))


class UserOut(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserOut


# ---------------------------
# Chat Schemas
# ---------------------------
class ChatRequest(BaseModel):
    message: str = ""
    chat_id: Optional[int] = Field(None, validation_alias=AliasChoices("chatId", "chat_id"))


class ChatResponse(BaseModel):
    response: str
    chat_id: int = Field(validation_alias=AliasChoices("chat_id", "chatId"), serialization_alias="chatId")


class ChatCreate(BaseModel):
    title: Optional[str] = Field(None, max_length=TITLE_MAX_LENGTH)


class MessageOut(BaseModel):
    id: int
    role: str   # user | assistant
    content: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ChatOut(BaseModel):
    id: int
    title: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ErrorEnvelope(BaseModel):
    error: str
    message: str
    fallback_response: Optional[str] = Field(
        None, validation_alias=AliasChoices("fallback_response", "fallbackResponse"), serialization_alias="fallbackResponse"
    )


class HealthOut(BaseModel):
    status: str
    service: str
    timestamp: datetime
    load: int
    active_requests: int = Field(
        validation_alias=AliasChoices("active_requests", "activeRequests"), serialization_alias="activeRequests"
    )
    provider: Optional[str] = None
