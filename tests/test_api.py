ALICE = {"Authorization": "Bearer alice"}
BOB = {"Authorization": "Bearer bob"}


def create_board(client, headers=ALICE, name="Roadmap"):
    resp = client.post("/v1/boards", json={"name": name}, headers=headers)
    assert resp.status_code == 201
    return resp.json()


def create_list(client, board_id, name, position=None, headers=ALICE):
    body = {"name": name}
    if position is not None:
        body["position"] = position
    resp = client.post(f"/v1/boards/{board_id}/lists", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_card(client, list_id, title, position=None, headers=ALICE):
    body = {"title": title}
    if position is not None:
        body["position"] = position
    resp = client.post(f"/v1/lists/{list_id}/cards", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def cards_of(client, list_id, headers=ALICE):
    resp = client.get(f"/v1/lists/{list_id}/cards", headers=headers)
    assert resp.status_code == 200
    return [f"{c['title']}@{c['position']}" for c in resp.json()]


def test_requires_bearer_token(client):
    assert client.get("/v1/boards").status_code == 422
    assert client.get("/v1/boards", headers={"Authorization": "Token x"}).status_code == 401


def test_jwt_subject_is_the_user(client):
    # header.payload.signature with payload {"sub": "alice"}
    token = "eyJhbGciOiJIUzI1NiJ9.eyJzdWIiOiAiYWxpY2UifQ.c2ln"
    board = create_board(client, headers={"Authorization": f"Bearer {token}"})
    assert board["owner"] == "alice"


def test_board_lifecycle(client):
    board = create_board(client)
    listed = client.get("/v1/boards", headers=ALICE).json()
    assert [b["id"] for b in listed["boards"]] == [board["id"]]
    assert client.get("/v1/boards", headers=BOB).json()["boards"] == []

    resp = client.get(f"/v1/boards/{board['id']}", headers=ALICE)
    etag = resp.headers["ETag"]
    resp = client.patch(
        f"/v1/boards/{board['id']}", json={"name": "Plans"}, headers={**ALICE, "If-Match": etag}
    )
    assert resp.status_code == 200
    assert resp.json()["name"] == "Plans"
    new_etag = resp.headers["ETag"]
    assert new_etag != etag

    resp = client.delete(f"/v1/boards/{board['id']}", headers={**ALICE, "If-Match": etag})
    assert resp.status_code == 412
    resp = client.delete(f"/v1/boards/{board['id']}", headers={**ALICE, "If-Match": new_etag})
    assert resp.status_code == 204
    assert client.get(f"/v1/boards/{board['id']}", headers=ALICE).status_code == 404


def test_lists_are_ordered_and_inserted_at_position(client):
    board = create_board(client)
    todo = create_list(client, board["id"], "Todo")
    done = create_list(client, board["id"], "Done")
    doing = create_list(client, board["id"], "Doing", position=1)
    assert (todo["position"], doing["position"]) == (0, 1)

    lists = client.get(f"/v1/boards/{board['id']}/lists", headers=ALICE).json()
    assert [(l["name"], l["position"]) for l in lists] == [("Todo", 0), ("Doing", 1), ("Done", 2)]

    resp = client.post(
        f"/v1/lists/{done['id']}:move",
        json={"sourceBoardId": board["id"], "newPosition": 0},
        headers=ALICE,
    )
    assert resp.status_code == 200
    lists = client.get(f"/v1/boards/{board['id']}/lists", headers=ALICE).json()
    assert [l["name"] for l in lists] == ["Done", "Todo", "Doing"]

    assert client.delete(f"/v1/lists/{todo['id']}", headers=ALICE).status_code == 204
    lists = client.get(f"/v1/boards/{board['id']}/lists", headers=ALICE).json()
    assert [(l["name"], l["position"]) for l in lists] == [("Done", 0), ("Doing", 1)]


def test_card_moves_between_lists(client):
    board = create_board(client)
    a_list = create_list(client, board["id"], "A")
    b_list = create_list(client, board["id"], "B")
    a = create_card(client, a_list["id"], "a")
    for title in ["b", "c"]:
        create_card(client, a_list["id"], title)
    for title in ["x", "y"]:
        create_card(client, b_list["id"], title)

    resp = client.post(
        f"/v1/cards/{a['id']}:move",
        json={"sourceListId": a_list["id"], "targetListId": b_list["id"], "newPosition": 1},
        headers=ALICE,
    )
    assert resp.status_code == 200
    moved = resp.json()
    assert (moved["listId"], moved["position"]) == (b_list["id"], 1)
    assert cards_of(client, a_list["id"]) == ["b@0", "c@1"]
    assert cards_of(client, b_list["id"]) == ["x@0", "a@1", "y@2"]

    view = client.get(f"/v1/boards/{board['id']}", headers=ALICE).json()
    assert [c["title"] for c in view["cards"]] == ["b", "c", "x", "a", "y"]


def test_card_insert_edit_and_delete(client):
    board = create_board(client)
    todo = create_list(client, board["id"], "Todo")
    create_card(client, todo["id"], "a")
    b = create_card(client, todo["id"], "b")
    new = create_card(client, todo["id"], "new", position=1)
    assert cards_of(client, todo["id"]) == ["a@0", "new@1", "b@2"]

    resp = client.patch(
        f"/v1/cards/{new['id']}",
        json={"title": "renamed", "assignee": "carol"},
        headers={**ALICE, "If-Match": f'"{new["version"]}"'},
    )
    assert resp.status_code == 200
    edited = resp.json()
    assert (edited["title"], edited["assignee"], edited["position"]) == ("renamed", "carol", 1)
    assert edited["lastMovedAt"] == new["lastMovedAt"]

    stale = client.patch(
        f"/v1/cards/{new['id']}", json={"title": "again"}, headers={**ALICE, "If-Match": f'"{new["version"]}"'}
    )
    assert stale.status_code == 412

    assert client.delete(f"/v1/cards/{b['id']}", headers=ALICE).status_code == 204
    assert cards_of(client, todo["id"]) == ["a@0", "renamed@1"]


def test_error_envelopes(client):
    board = create_board(client)
    todo = create_list(client, board["id"], "Todo")
    card = create_card(client, todo["id"], "a")

    resp = client.post(f"/v1/lists/{todo['id']}/cards", json={"title": "b", "position": 5}, headers=ALICE)
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "invalid_position"
    assert resp.json()["error"]["details"] == {"position": 5, "validMax": 1}

    resp = client.post(f"/v1/lists/{todo['id']}/cards", json={"title": "b"}, headers=BOB)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "forbidden"

    resp = client.delete("/v1/cards/does-not-exist", headers=ALICE)
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "not_found"

    other = create_list(client, board["id"], "Other")
    resp = client.post(
        f"/v1/cards/{card['id']}:move",
        json={"sourceListId": other["id"], "targetListId": todo["id"], "newPosition": 0},
        headers=ALICE,
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["retryable"] is True
    assert cards_of(client, todo["id"]) == ["a@0"]


def test_foreign_card_move_does_not_reveal_its_list(client):
    mine = create_board(client)
    todo = create_list(client, mine["id"], "Todo")
    done = create_list(client, mine["id"], "Done")
    theirs = create_board(client, headers=BOB)
    secret = create_list(client, theirs["id"], "Secret", headers=BOB)
    card = create_card(client, secret["id"], "x", headers=BOB)

    resp = client.post(
        f"/v1/cards/{card['id']}:move",
        json={"sourceListId": todo["id"], "targetListId": done["id"], "newPosition": 0},
        headers=ALICE,
    )
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "forbidden"
    assert secret["id"] not in resp.text
    assert cards_of(client, secret["id"], headers=BOB) == ["x@0"]


def test_names_and_titles_are_trimmed(client):
    assert client.post("/v1/boards", json={"name": "   "}, headers=ALICE).status_code == 422
    board = create_board(client, name="  Roadmap  ")
    assert board["name"] == "Roadmap"

    resp = client.post(f"/v1/boards/{board['id']}/lists", json={"name": "\t"}, headers=ALICE)
    assert resp.status_code == 422
    todo = create_list(client, board["id"], " Todo ")
    assert todo["name"] == "Todo"

    resp = client.post(f"/v1/lists/{todo['id']}/cards", json={"title": "  "}, headers=ALICE)
    assert resp.status_code == 422
    card = create_card(client, todo["id"], "  write docs ")
    assert card["title"] == "write docs"

    resp = client.patch(
        f"/v1/cards/{card['id']}",
        json={"title": " "},
        headers={**ALICE, "If-Match": f'"{card["version"]}"'},
    )
    assert resp.status_code == 422
    assert cards_of(client, todo["id"]) == ["write docs@0"]
