from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorEnvelope(BaseModel):
    code: str
    message: str
    details: Optional[dict[str, Any]] = None
    retryable: bool = False
    requestId: Optional[str] = None


class Health(BaseModel):
    status: str = "ok"


class Version(BaseModel):
    version: str = "1.0.0"


class BoardIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=140)
    description: Optional[str] = Field(default=None, max_length=2000)


class BoardPatch(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=140)
    description: Optional[str] = Field(default=None, max_length=2000)


class BoardOut(BaseModel):
    id: str
    name: str
    description: Optional[str]
    owner: str
    createdAt: datetime
    updatedAt: datetime
    version: int


class BoardsPage(BaseModel):
    boards: list[BoardOut]


class ListIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=80)
    position: Optional[int] = None


class ListPatch(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=80)


class ListMove(BaseModel):
    sourceBoardId: str
    targetBoardId: Optional[str] = None
    newPosition: int


class ListOut(BaseModel):
    id: str
    boardId: str
    name: str
    position: int
    createdAt: datetime
    updatedAt: datetime
    lastMovedAt: datetime
    version: int


class CardIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=8000)
    dueDate: Optional[datetime] = None
    assignee: Optional[str] = Field(default=None, max_length=128)
    position: Optional[int] = None


class CardPatch(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=8000)
    dueDate: Optional[datetime] = None
    assignee: Optional[str] = Field(default=None, max_length=128)


class CardMove(BaseModel):
    sourceListId: str
    targetListId: str
    newPosition: int


class CardOut(BaseModel):
    id: str
    listId: str
    title: str
    description: Optional[str]
    dueDate: Optional[datetime]
    assignee: Optional[str]
    position: int
    createdAt: datetime
    updatedAt: datetime
    lastMovedAt: datetime
    version: int


class BoardView(BaseModel):
    board: BoardOut
    lists: list[ListOut]
    cards: list[CardOut]
