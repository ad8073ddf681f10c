"""Pydantic models and dataclasses for request/response types."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field, StrictInt


class BookRequestIn(BaseModel):
    """Inbound ``POST /generate-book`` body. Presence is checked separately."""
    title: str = ""
    description: str = ""
    chapters: StrictInt = 0


class BookOut(BaseModel):
    book: str


@dataclass(frozen=True)
class GenerationRequest:
    """A validated book request."""
    title: str
    description: str
    chapters: int


@dataclass(frozen=True)
class TokenClaims:
    """Typed view of the claims the gate cares about.

    String claims holding non-string values are treated as absent.
    """
    id: str | None = None
    type: str | None = None
    collection_id: str | None = None
    exp: int | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "TokenClaims":
        def _str(key: str) -> str | None:
            value = payload.get(key)
            return value if isinstance(value, str) else None

        exp = payload.get("exp")
        return cls(
            id=_str("id"),
            type=_str("type"),
            collection_id=_str("collectionId"),
            exp=exp if isinstance(exp, int) and not isinstance(exp, bool) else None,
        )


class Message(BaseModel):
    role: str
    content: str


class RemoteInput(BaseModel):
    messages: list[Message]


class RemoteGenerationRequest(BaseModel):
    """DashScope text-generation request body."""
    model: str
    input: RemoteInput
    result_format: str


class _ChoiceMessage(BaseModel):
    content: str | None = None


class _Choice(BaseModel):
    finish_reason: str | None = None
    message: _ChoiceMessage | None = None


class RemoteOutput(BaseModel):
    finish_reason: str | None = None
    text: str | None = None
    choices: list[_Choice] = Field(default_factory=list)


class RemoteResponse(BaseModel):
    """DashScope text-generation response body; only ``output`` is read."""
    output: RemoteOutput


@dataclass(frozen=True)
class RemoteGenerationResult:
    """Text generated upstream and why generation stopped."""
    finish_reason: str | None
    text: str
