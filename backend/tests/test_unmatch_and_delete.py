from __future__ import annotations

from fastapi.testclient import TestClient
from sqlmodel import Session, or_, select

from backend.models.chat import Chat
from backend.models.match import Match, MatchDecision
from backend.models.message import Message, MessageRead
from backend.models.pet import Pet, PetDislike
from backend.services.pet_service import delete_pet_cascade
from backend.services.realtime import CHAT_REMOVED
from conftest import auth_headers, create_pet, like, signup_login


def _matched_pair(client: TestClient) -> tuple[str, int, str, int, int]:
    token_a, _ = signup_login(client)
    token_b, _ = signup_login(client)
    pet_a = create_pet(client, token_a, name="Archie")
    pet_b = create_pet(client, token_b, name="Willow")
    like(client, token_a, pet_a, pet_b)
    match_id = like(client, token_b, pet_b, pet_a)["match"]["id"]
    return token_a, pet_a, token_b, pet_b, match_id


def test_unmatch_closes_chat_and_blocks_pair(
    client: TestClient, session: Session
) -> None:
    token_a, pet_a, token_b, pet_b, match_id = _matched_pair(client)
    chat_id = session.exec(select(Chat.id).where(Chat.match_id == match_id)).one()
    response = client.post(
        f"/api/v1/chats/{chat_id}/messages",
        headers=auth_headers(token_b),
        json={"content": "hello"},
    )
    assert response.status_code == 201, response.text

    response = client.post(
        "/api/v1/matches/unmatch",
        headers=auth_headers(token_a),
        json={"pet_id": pet_a, "unmatched_pet_id": pet_b},
    )
    assert response.status_code == 200, response.text
    assert response.json() == {
        "success": True,
        "message": "Successfully unmatched with pet",
    }

    session.expire_all()
    match = session.get(Match, match_id)
    assert match is not None
    assert match.is_match is False
    assert match.matched_at is None
    assert match.decision_of(pet_a) == MatchDecision.passed
    assert session.exec(select(Chat).where(Chat.match_id == match_id)).first() is None
    assert session.exec(select(Message).where(Message.chat_id == chat_id)).all() == []
    dislike = session.exec(
        select(PetDislike).where(
            PetDislike.pet_id == pet_a, PetDislike.disliked_pet_id == pet_b
        )
    ).first()
    assert dislike is not None

    response = client.get(f"/api/v1/matches/{pet_b}", headers=auth_headers(token_b))
    assert response.json()["count"] == 0

    # Liking again from the other side cannot re-form the match
    assert like(client, token_b, pet_b, pet_a)["isMatch"] is False


def test_unmatch_errors(client: TestClient) -> None:
    token_a, _ = signup_login(client)
    token_b, _ = signup_login(client)
    pet_a = create_pet(client, token_a, name="Pip")
    pet_b = create_pet(client, token_b, name="Moss")

    response = client.post(
        "/api/v1/matches/unmatch",
        headers=auth_headers(token_a),
        json={"pet_id": pet_a, "unmatched_pet_id": pet_b},
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Match not found"

    response = client.post(
        "/api/v1/matches/unmatch",
        headers=auth_headers(token_a),
        json={"pet_id": pet_a, "unmatched_pet_id": 999_999},
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Unmatched pet not found"

    response = client.post(
        "/api/v1/matches/unmatch",
        headers=auth_headers(token_b),
        json={"pet_id": pet_a, "unmatched_pet_id": pet_b},
    )
    assert response.status_code == 404


def test_delete_pet_cascades(client: TestClient, session: Session) -> None:
    token_c, _ = signup_login(client)
    pet_c = create_pet(client, token_c, name="Juniper")
    token_a, pet_a, token_b, pet_b, match_id = _matched_pair(client)
    # pet_a sits on the pet1 side of the match and the pet2 side of this entry
    like(client, token_c, pet_c, pet_a)

    chat_id = session.exec(select(Chat.id).where(Chat.match_id == match_id)).one()
    response = client.post(
        f"/api/v1/chats/{chat_id}/messages",
        headers=auth_headers(token_a),
        json={"content": "see you at the park"},
    )
    assert response.status_code == 201, response.text
    message_id = response.json()["message"]["id"]

    response = client.delete(f"/api/v1/pets/{pet_a}", headers=auth_headers(token_a))
    assert response.status_code == 200, response.text

    session.expire_all()
    assert session.get(Pet, pet_a) is None
    leftover = session.exec(
        select(Match).where(or_(Match.pet1_id == pet_a, Match.pet2_id == pet_a))
    ).all()
    assert leftover == []
    assert session.get(Chat, chat_id) is None
    assert session.get(Message, message_id) is None
    assert (
        session.exec(select(MessageRead).where(MessageRead.message_id == message_id)).all()
        == []
    )
    # The other pets are untouched
    assert session.get(Pet, pet_b) is not None
    assert session.get(Pet, pet_c) is not None

    response = client.get("/api/v1/chats", headers=auth_headers(token_b))
    assert response.json()["count"] == 0


def test_delete_foreign_pet_is_forbidden(client: TestClient) -> None:
    token_a, _ = signup_login(client)
    token_b, _ = signup_login(client)
    pet_a = create_pet(client, token_a, name="Bruno")

    response = client.delete(f"/api/v1/pets/{pet_a}", headers=auth_headers(token_b))
    assert response.status_code == 403


def test_delete_pet_notifies_every_chat_partner_and_the_owner(
    client: TestClient, session: Session
) -> None:
    token_c, user_c = signup_login(client)
    pet_c = create_pet(client, token_c, name="Pixel")
    token_a, user_a = signup_login(client)
    token_b, user_b = signup_login(client)
    token_d, _ = signup_login(client)
    pet_a = create_pet(client, token_a, name="Nova")
    pet_b = create_pet(client, token_b, name="Comet")
    pet_d = create_pet(client, token_d, name="Orbit")

    # pet_a is on the pet1 side against pet_b and the pet2 side against pet_c
    like(client, token_a, pet_a, pet_b)
    ab = like(client, token_b, pet_b, pet_a)["match"]["id"]
    like(client, token_c, pet_c, pet_a)
    ac = like(client, token_a, pet_a, pet_c)["match"]["id"]
    # Pending like, no chat and nobody to tell
    like(client, token_d, pet_d, pet_a)

    chat_ab = session.exec(select(Chat.id).where(Chat.match_id == ab)).one()
    chat_ac = session.exec(select(Chat.id).where(Chat.match_id == ac)).one()

    pet = session.get(Pet, pet_a)
    assert pet is not None
    notifications = delete_pet_cascade(session, pet, acting_user_id=user_a)

    assert all(item.event == CHAT_REMOVED for item in notifications)
    recipients = sorted((item.user_id, item.data["chat_id"]) for item in notifications)
    assert recipients == sorted(
        [(user_b, chat_ab), (user_c, chat_ac), (user_a, chat_ab), (user_a, chat_ac)]
    )
    session.expire_all()
    assert session.get(Chat, chat_ab) is None
    assert session.get(Chat, chat_ac) is None
    assert session.get(Pet, pet_d) is not None


def test_delete_pet_without_chats_notifies_nobody(
    client: TestClient, session: Session
) -> None:
    token_a, user_a = signup_login(client)
    token_b, _ = signup_login(client)
    pet_a = create_pet(client, token_a, name="Quiet")
    pet_b = create_pet(client, token_b, name="Shy")
    like(client, token_b, pet_b, pet_a)

    pet = session.get(Pet, pet_a)
    assert pet is not None
    assert delete_pet_cascade(session, pet, acting_user_id=user_a) == []
