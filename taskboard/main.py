import logging
import os
import sys
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.orm import Session

from .access import require_owner
from .auth import get_current_user
from .db import Board, Card, TaskList, get_session, init_db, new_uuid
from .errors import ContainerNotFound, TaskboardError
from .persistence import CardStore, ListStore, unit_of_work
from .reordering import delete_item, insert_item, move_item
from .schemas import (
    BoardIn,
    BoardOut,
    BoardPatch,
    BoardsPage,
    BoardView,
    CardIn,
    CardMove,
    CardOut,
    CardPatch,
    ErrorEnvelope,
    Health,
    ListIn,
    ListMove,
    ListOut,
    ListPatch,
    Version,
)

VERSION = "1.0.0"

logger = logging.getLogger("taskboard")
if not logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s:%(name)s: %(message)s"))
    logger.addHandler(handler)
logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="Taskboard API", version=VERSION, lifespan=lifespan)


@app.exception_handler(TaskboardError)
async def taskboard_error(request: Request, exc: TaskboardError) -> JSONResponse:
    envelope = ErrorEnvelope(
        code=exc.code,
        message=exc.message,
        details=exc.details or None,
        retryable=exc.retryable,
        requestId=new_uuid(),
    )
    return JSONResponse(status_code=exc.status_code, content={"error": envelope.model_dump()})


# === Helpers ===


def board_out(board: Board) -> BoardOut:
    return BoardOut(
        id=board.id,
        name=board.name,
        description=board.description,
        owner=board.owner,
        createdAt=board.created_at,
        updatedAt=board.updated_at,
        version=board.version,
    )


def list_out(task_list: TaskList) -> ListOut:
    return ListOut(
        id=task_list.id,
        boardId=task_list.board_id,
        name=task_list.name,
        position=task_list.position,
        createdAt=task_list.created_at,
        updatedAt=task_list.updated_at,
        lastMovedAt=task_list.last_moved_at,
        version=task_list.version,
    )


def card_out(card: Card) -> CardOut:
    return CardOut(
        id=card.id,
        listId=card.list_id,
        title=card.title,
        description=card.description,
        dueDate=card.due_date,
        assignee=card.assignee,
        position=card.position,
        createdAt=card.created_at,
        updatedAt=card.updated_at,
        lastMovedAt=card.last_moved_at,
        version=card.version,
    )


def get_owned_board(session: Session, board_id: str, user: str) -> Board:
    board = session.get(Board, board_id)
    if board is None:
        raise ContainerNotFound(f"Board {board_id} not found", {"containerId": board_id})
    require_owner(board, user)
    return board


def get_owned_list(session: Session, list_id: str, user: str) -> TaskList:
    task_list = session.get(TaskList, list_id)
    if task_list is None:
        raise ContainerNotFound(f"TaskList {list_id} not found", {"containerId": list_id})
    require_owner(task_list, user)
    return task_list


def check_version(if_match: str, version: int) -> None:
    if if_match.strip('"') != str(version):
        raise HTTPException(status_code=412, detail="precondition_failed")


def clean(text: str | None) -> str | None:
    return text or None


# === Health & metadata ===


@app.get("/v1/health", response_model=Health)
def health() -> Health:
    return Health()


@app.get("/v1/version", response_model=Version)
def version() -> Version:
    return Version(version=VERSION)


# === Board endpoints ===


@app.post("/v1/boards", response_model=BoardOut, status_code=201)
def create_board(
    payload: BoardIn,
    user: str = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    with unit_of_work(session):
        board = Board(name=payload.name, description=clean(payload.description), owner=user)
        session.add(board)
    return board_out(board)


@app.get("/v1/boards", response_model=BoardsPage)
def list_boards(user: str = Depends(get_current_user), session: Session = Depends(get_session)):
    with unit_of_work(session):
        boards = session.scalars(
            select(Board).where(Board.owner == user).order_by(Board.created_at.desc())
        ).all()
        return BoardsPage(boards=[board_out(b) for b in boards])


@app.get("/v1/boards/{board_id}", response_model=BoardView)
def get_board(
    board_id: str,
    response: Response,
    user: str = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    with unit_of_work(session):
        board = get_owned_board(session, board_id, user)
        lists = ListStore(session).list_items_ordered_by_position(board_id)
        cards = CardStore(session)
        response.headers["ETag"] = f'"{board.version}"'
        return BoardView(
            board=board_out(board),
            lists=[list_out(l) for l in lists],
            cards=[card_out(c) for l in lists for c in cards.list_items_ordered_by_position(l.id)],
        )


@app.patch("/v1/boards/{board_id}", response_model=BoardOut)
def update_board(
    board_id: str,
    payload: BoardPatch,
    response: Response,
    user: str = Depends(get_current_user),
    if_match: str = Header(..., alias="If-Match"),
    session: Session = Depends(get_session),
):
    with unit_of_work(session):
        board = get_owned_board(session, board_id, user)
        check_version(if_match, board.version)
        if payload.name is not None:
            board.name = payload.name
        if "description" in payload.model_fields_set:
            board.description = clean(payload.description)
    response.headers["ETag"] = f'"{board.version}"'
    return board_out(board)


@app.delete("/v1/boards/{board_id}", status_code=204)
def delete_board(
    board_id: str,
    user: str = Depends(get_current_user),
    if_match: str = Header(..., alias="If-Match"),
    session: Session = Depends(get_session),
):
    with unit_of_work(session):
        board = get_owned_board(session, board_id, user)
        check_version(if_match, board.version)
        session.delete(board)
    logger.info("deleted board %s", board_id)
    return Response(status_code=204)


# === List endpoints ===


@app.post("/v1/boards/{board_id}/lists", response_model=ListOut, status_code=201)
def create_list(
    board_id: str,
    payload: ListIn,
    user: str = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    with unit_of_work(session):
        task_list = insert_item(
            ListStore(session), user, board_id, {"name": payload.name}, payload.position
        )
    return list_out(task_list)


@app.get("/v1/boards/{board_id}/lists", response_model=list[ListOut])
def get_board_lists(
    board_id: str,
    user: str = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    with unit_of_work(session):
        get_owned_board(session, board_id, user)
        return [list_out(l) for l in ListStore(session).list_items_ordered_by_position(board_id)]


@app.patch("/v1/lists/{list_id}", response_model=ListOut)
def rename_list(
    list_id: str,
    payload: ListPatch,
    user: str = Depends(get_current_user),
    if_match: str = Header(..., alias="If-Match"),
    session: Session = Depends(get_session),
):
    with unit_of_work(session):
        task_list = get_owned_list(session, list_id, user)
        check_version(if_match, task_list.version)
        task_list.name = payload.name
    return list_out(task_list)


@app.post("/v1/lists/{list_id}:move", response_model=ListOut)
def move_list(
    list_id: str,
    payload: ListMove,
    user: str = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    with unit_of_work(session):
        task_list = move_item(
            ListStore(session),
            list_id,
            payload.sourceBoardId,
            payload.targetBoardId or payload.sourceBoardId,
            payload.newPosition,
            user,
        )
    return list_out(task_list)


@app.delete("/v1/lists/{list_id}", status_code=204)
def delete_list(
    list_id: str,
    user: str = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    with unit_of_work(session):
        delete_item(ListStore(session), user, list_id)
    return Response(status_code=204)


# === Card endpoints ===


@app.post("/v1/lists/{list_id}/cards", response_model=CardOut, status_code=201)
def create_card(
    list_id: str,
    payload: CardIn,
    user: str = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    fields = {
        "title": payload.title,
        "description": clean(payload.description),
        "due_date": payload.dueDate,
        "assignee": payload.assignee,
    }
    with unit_of_work(session):
        card = insert_item(CardStore(session), user, list_id, fields, payload.position)
    return card_out(card)


@app.get("/v1/lists/{list_id}/cards", response_model=list[CardOut])
def get_list_cards(
    list_id: str,
    user: str = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    with unit_of_work(session):
        get_owned_list(session, list_id, user)
        return [card_out(c) for c in CardStore(session).list_items_ordered_by_position(list_id)]


@app.patch("/v1/cards/{card_id}", response_model=CardOut)
def update_card(
    card_id: str,
    payload: CardPatch,
    user: str = Depends(get_current_user),
    if_match: str = Header(..., alias="If-Match"),
    session: Session = Depends(get_session),
):
    with unit_of_work(session):
        card = CardStore(session).get_item(card_id)
        require_owner(card.task_list, user)
        check_version(if_match, card.version)
        if payload.title is not None:
            card.title = payload.title
        if "description" in payload.model_fields_set:
            card.description = clean(payload.description)
        if "dueDate" in payload.model_fields_set:
            card.due_date = payload.dueDate
        if "assignee" in payload.model_fields_set:
            card.assignee = payload.assignee
    return card_out(card)


@app.post("/v1/cards/{card_id}:move", response_model=CardOut)
def move_card(
    card_id: str,
    payload: CardMove,
    user: str = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    with unit_of_work(session):
        card = move_item(
            CardStore(session),
            card_id,
            payload.sourceListId,
            payload.targetListId,
            payload.newPosition,
            user,
        )
    return card_out(card)


@app.delete("/v1/cards/{card_id}", status_code=204)
def delete_card(
    card_id: str,
    user: str = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    with unit_of_work(session):
        delete_item(CardStore(session), user, card_id)
    return Response(status_code=204)
