"""Pydantic request/response schemas for all API endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ═══════════════════════════════════════════════════════════════
# Auth
# ═══════════════════════════════════════════════════════════════

class RegisterRequest(BaseModel):
    name: str
    email: EmailStr
    password: str = Field(min_length=6)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    role: str

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserOut


class MeResponse(BaseModel):
    user: UserOut


# ═══════════════════════════════════════════════════════════════
# Observation bundles
# ═══════════════════════════════════════════════════════════════

class CommentOut(CamelModel):
    id: int
    author_id: int
    author_name: str
    text: str
    status: str
    created_at: datetime


class VoteAggregate(CamelModel):
    coherent: list[int] = Field(default_factory=list)
    incoherent: list[int] = Field(default_factory=list)


class ObservationBundle(CamelModel):
    id: int
    author_id: int
    author_name: str
    photo_ref: str
    popular_name: str
    scientific_name: str
    group: str
    location: str
    sex: str
    observed_at: datetime
    status: str
    created_at: datetime
    comments: list[CommentOut] = Field(default_factory=list)
    votes: VoteAggregate = Field(default_factory=VoteAggregate)
    my_vote: Optional[str] = None


class ObservationList(BaseModel):
    items: list[ObservationBundle]


class CreatedResponse(BaseModel):
    id: int


# ═══════════════════════════════════════════════════════════════
# Votes, comments & moderation
# ═══════════════════════════════════════════════════════════════

# Values are validated by the content store.

class VoteRequest(BaseModel):
    value: Optional[str] = None


class CommentCreate(BaseModel):
    text: Optional[str] = None


class StatusUpdate(BaseModel):
    status: Optional[str] = None


class OkResponse(BaseModel):
    ok: bool = True
