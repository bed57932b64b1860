import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from taskboard.db import Board, get_session, init_db, make_engine
from taskboard.main import app
from taskboard.persistence import CardStore, ListStore, unit_of_work
from taskboard.reordering import insert_item

OWNER = "alice"


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'taskboard.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def client(session_factory):
    def override_session():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_session] = override_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def board(session_factory):
    """Build a board from ``{list_name: [card_title, ...]}``.

    Lists and cards are appended through the coordinator, one transaction
    each. Returns a mapping of board/list/card names to ids.
    """

    def build(layout, owner=OWNER):
        with session_factory() as session, unit_of_work(session):
            new_board = Board(name="Work", owner=owner)
            session.add(new_board)
            session.flush()
            ids = {"board": new_board.id}
        for name, titles in layout.items():
            with session_factory() as session, unit_of_work(session):
                ids[name] = insert_item(ListStore(session), owner, ids["board"], {"name": name}).id
            for title in titles:
                with session_factory() as session, unit_of_work(session):
                    ids[title] = insert_item(CardStore(session), owner, ids[name], {"title": title}).id
        return ids

    return build


@pytest.fixture
def snapshot(session_factory):
    """Return ``["title@position", ...]`` for the cards of a list, in order."""

    def read(list_id):
        with session_factory() as session:
            cards = CardStore(session).list_items_ordered_by_position(list_id)
            return [f"{c.title}@{c.position}" for c in cards]

    return read
