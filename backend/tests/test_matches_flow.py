from __future__ import annotations

from fastapi.testclient import TestClient
from sqlmodel import Session, select

from backend.models.chat import Chat
from backend.models.match import Match, MatchDecision
from backend.services.match_service import like_pet
from backend.services.realtime import MATCH_CREATED
from conftest import auth_headers, create_pet, like, signup_login


def test_first_like_writes_only_the_acting_side(client: TestClient) -> None:
    token_a, _ = signup_login(client)
    token_b, _ = signup_login(client)
    pet_a = create_pet(client, token_a, name="Rex")
    pet_b = create_pet(client, token_b, name="Luna")

    # The higher id acts first, so it lands on the pet2 side
    body = like(client, token_b, pet_b, pet_a)

    assert body["success"] is True
    assert body["isMatch"] is False
    match = body["match"]
    assert (match["pet1_id"], match["pet2_id"]) == (min(pet_a, pet_b), max(pet_a, pet_b))
    assert match["pet1_decision"] == MatchDecision.undecided.value
    assert match["pet2_decision"] == MatchDecision.liked.value


def test_mutual_like_matches_once_and_opens_one_chat(
    client: TestClient, session: Session
) -> None:
    token_a, _ = signup_login(client)
    token_b, _ = signup_login(client)
    pet_a = create_pet(client, token_a, name="Milo")
    pet_b = create_pet(client, token_b, name="Bella")

    assert like(client, token_a, pet_a, pet_b)["isMatch"] is False
    second = like(client, token_b, pet_b, pet_a)
    assert second["isMatch"] is True
    assert second["match"]["matched_at"] is not None

    # Repeating the like keeps a single match and a single chat
    third = like(client, token_b, pet_b, pet_a)
    assert third["isMatch"] is True

    rows = session.exec(
        select(Match).where(Match.pet1_id == min(pet_a, pet_b))
    ).all()
    assert len(rows) == 1
    chats = session.exec(select(Chat).where(Chat.match_id == rows[0].id)).all()
    assert len(chats) == 1


def test_new_match_notifies_the_first_liker(client: TestClient, session: Session) -> None:
    token_a, user_a = signup_login(client)
    token_b, user_b = signup_login(client)
    pet_a = create_pet(client, token_a, name="Oscar")
    pet_b = create_pet(client, token_b, name="Daisy")
    like(client, token_a, pet_a, pet_b)

    outcome = like_pet(
        session,
        owner_user_id=user_b,
        pet_id=pet_b,
        target_pet_id=pet_a,
        is_liked=True,
    )

    assert outcome.is_new_match is True
    assert outcome.chat is not None
    [notification] = outcome.notifications
    assert notification.event == MATCH_CREATED
    assert notification.user_id == user_a
    assert notification.data["match_id"] == outcome.match.id
    assert notification.data["chat_id"] == outcome.chat.id
    assert notification.data["pet"]["id"] == pet_b
    assert notification.data["matched_pet"]["id"] == pet_a

    again = like_pet(
        session,
        owner_user_id=user_b,
        pet_id=pet_b,
        target_pet_id=pet_a,
        is_liked=True,
    )
    assert again.is_new_match is False
    assert again.notifications == []


def test_pass_is_not_a_match(client: TestClient) -> None:
    token_a, _ = signup_login(client)
    token_b, _ = signup_login(client)
    pet_a = create_pet(client, token_a, name="Coco")
    pet_b = create_pet(client, token_b, name="Max")

    like(client, token_a, pet_a, pet_b, is_liked=False)
    body = like(client, token_b, pet_b, pet_a)
    assert body["isMatch"] is False


def test_pass_on_confirmed_match_dissolves_it(
    client: TestClient, session: Session
) -> None:
    token_a, _ = signup_login(client)
    token_b, _ = signup_login(client)
    pet_a = create_pet(client, token_a, name="Simba")
    pet_b = create_pet(client, token_b, name="Nala")
    like(client, token_a, pet_a, pet_b)
    match_id = like(client, token_b, pet_b, pet_a)["match"]["id"]

    body = like(client, token_a, pet_a, pet_b, is_liked=False)

    assert body["isMatch"] is False
    assert body["match"]["matched_at"] is None
    assert session.exec(select(Chat).where(Chat.match_id == match_id)).first() is None


def test_like_validation(client: TestClient) -> None:
    token_a, _ = signup_login(client)
    token_b, _ = signup_login(client)
    pet_a = create_pet(client, token_a, name="Kiki")
    other_own = create_pet(client, token_a, name="Lulu")
    pet_b = create_pet(client, token_b, name="Toby")

    response = client.post(
        "/api/v1/matches/like",
        headers=auth_headers(token_a),
        json={"pet_id": pet_b, "liked_pet_id": pet_a, "is_liked": True},
    )
    assert response.status_code == 404

    response = client.post(
        "/api/v1/matches/like",
        headers=auth_headers(token_a),
        json={"pet_id": pet_a, "liked_pet_id": 999_999, "is_liked": True},
    )
    assert response.status_code == 404

    response = client.post(
        "/api/v1/matches/like",
        headers=auth_headers(token_a),
        json={"pet_id": pet_a, "liked_pet_id": other_own, "is_liked": True},
    )
    assert response.status_code == 400

    response = client.post(
        "/api/v1/matches/like",
        headers=auth_headers(token_a),
        json={"pet_id": pet_a, "is_liked": True},
    )
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert any(error["field"] == "liked_pet_id" for error in body["errors"])


def test_confirmed_matches_listing(client: TestClient) -> None:
    token_a, _ = signup_login(client)
    token_b, _ = signup_login(client)
    token_c, _ = signup_login(client)
    pet_a = create_pet(client, token_a, name="Ziggy")
    pet_b = create_pet(client, token_b, name="Pepper")
    pet_c = create_pet(client, token_c, name="Shadow")

    for other_token, other_pet in ((token_b, pet_b), (token_c, pet_c)):
        like(client, token_a, pet_a, other_pet)
        like(client, other_token, other_pet, pet_a)
    # Pending like only, not listed
    token_d, _ = signup_login(client)
    pet_d = create_pet(client, token_d, name="Ghost")
    like(client, token_d, pet_d, pet_a)

    response = client.get(f"/api/v1/matches/{pet_a}", headers=auth_headers(token_a))
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["count"] == 2
    # Newest match first
    assert [item["pet"]["id"] for item in body["matches"]] == [pet_c, pet_b]
    assert all(item["matchDate"] and item["matchId"] for item in body["matches"])

    response = client.get(f"/api/v1/matches/{pet_a}", headers=auth_headers(token_b))
    assert response.status_code == 404


def test_camel_case_bodies_are_accepted(client: TestClient) -> None:
    token_a, _ = signup_login(client)
    token_b, _ = signup_login(client)
    pet_a = create_pet(client, token_a, name="Mochi")
    pet_b = create_pet(client, token_b, name="Tofu")

    response = client.post(
        "/api/v1/matches/like",
        headers=auth_headers(token_a),
        json={"petId": pet_a, "likedPetId": pet_b, "isLiked": True},
    )
    assert response.status_code == 200, response.text
    assert response.json()["isMatch"] is False

    response = client.post(
        "/api/v1/matches/like",
        headers=auth_headers(token_b),
        json={"petId": pet_b, "likedPetId": pet_a, "isLiked": True},
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["isMatch"] is True
    assert "is_match" not in body

    response = client.get(f"/api/v1/matches/{pet_a}", headers=auth_headers(token_a))
    [item] = response.json()["matches"]
    assert item["matchId"] == body["match"]["id"]
    assert item["pet"]["id"] == pet_b

    response = client.post(
        "/api/v1/chats/for-match",
        headers=auth_headers(token_a),
        json={"matchId": item["matchId"]},
    )
    assert response.status_code == 200, response.text

    response = client.post(
        "/api/v1/matches/unmatch",
        headers=auth_headers(token_a),
        json={"petId": pet_a, "unmatchedPetId": pet_b},
    )
    assert response.status_code == 200, response.text
    assert response.json()["success"] is True
