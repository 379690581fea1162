"""Test doubles and target types shared across test modules."""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

from unwrap_or_ai.llm import CompiledPrompt, RawModelResponse
from unwrap_or_ai.schema import PrimitiveKind, PrimitiveSchema

U32 = Annotated[int, Field(ge=0, le=4294967295)]


class User(BaseModel):
    """A user record."""

    id: U32
    name: str


class StrictUser(BaseModel):
    """A user record that rejects unknown fields."""

    model_config = ConfigDict(extra="forbid")

    id: int
    name: str


class Color(Enum):
    RED = "red"
    GREEN = "green"


class Profile(BaseModel):
    """A profile with optional and nested parts."""

    user: User
    tags: list[str]
    color: Color
    nickname: str | None = None


@dataclass
class Point:
    x: float
    y: float


@dataclass
class Positive:
    """A dataclass that rejects its own zero default."""

    amount: int

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError("amount must be positive")


class Account(BaseModel):
    user_id: int = Field(validation_alias="userId")


class Tag:
    """Plain class that describes and builds itself."""

    def __init__(self, text: str):
        self.text = text

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Tag) and other.text == self.text

    @classmethod
    def __synthesis_schema__(cls) -> PrimitiveSchema:
        return PrimitiveSchema(kind=PrimitiveKind.STRING, constraints=(("max_length", 16),))

    @classmethod
    def __synthesis_materialize__(cls, value: str) -> "Tag":
        if len(value) > 16:
            raise ValueError("tag is longer than 16 characters")
        return cls(value)


class StubModelClient:
    """ModelClient double that replays scripted answers.

    Each script item is either a text answer or an exception to raise. The
    last item repeats once the script is exhausted. Every received prompt is
    recorded in ``prompts``.
    """

    def __init__(self, *script: str | BaseException):
        self.script: list[Any] = list(script)
        self.prompts: list[CompiledPrompt] = []
        self.deadlines: list[float | None] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    def user_message(self, index: int = -1) -> str:
        return self.prompts[index].messages[-1].content

    async def invoke(self, prompt: CompiledPrompt, deadline: float | None = None) -> RawModelResponse:
        self.prompts.append(prompt)
        self.deadlines.append(deadline)
        item = self.script[min(len(self.prompts), len(self.script)) - 1]
        if isinstance(item, BaseException):
            raise item
        return RawModelResponse(text=item, latency_seconds=0.01, status_code=200, model="stub-model")


def raw_response(text: str) -> RawModelResponse:
    """Create a RawModelResponse for validator tests."""
    return RawModelResponse(text=text, latency_seconds=0.0, status_code=200)
