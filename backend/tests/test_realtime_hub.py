from __future__ import annotations

import asyncio
from typing import Any

from backend.services.presence import PresenceRegistry
from backend.services.realtime import (
    AUTHENTICATED,
    CHAT_REMOVED,
    ERROR,
    JOINED_CHAT,
    MATCH_CREATED,
    RECEIVE_MESSAGE,
    Notification,
    RealtimeHub,
    chat_removed,
)

CHATS = {10: (1, 2)}
TOKENS = {"token-1": 1, "token-2": 2, "token-3": 3}


class FakeConnection:
    def __init__(self, *, broken: bool = False) -> None:
        self.sent: list[dict[str, Any]] = []
        self.broken = broken

    async def send_json(self, data: Any) -> None:
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    def events(self, name: str) -> list[Any]:
        return [frame["data"] for frame in self.sent if frame["event"] == name]


def _hub() -> RealtimeHub:
    return RealtimeHub(
        PresenceRegistry(),
        participants_lookup=CHATS.get,
        token_resolver=TOKENS.get,
    )


def _online(hub: RealtimeHub, token: str, connection: FakeConnection) -> str:
    connection_id = hub.attach(connection)
    asyncio.run(hub.handle_event(connection_id, "authenticate", {"token": token}))
    return connection_id


def test_authenticate_registers_presence() -> None:
    hub = _hub()
    conn = FakeConnection()
    connection_id = _online(hub, "token-1", conn)

    assert hub.presence.connection_for(1) == connection_id
    assert conn.events(AUTHENTICATED) == [{"user_id": 1}]


def test_authenticate_with_bad_token_is_rejected() -> None:
    hub = _hub()
    conn = FakeConnection()
    _online(hub, "nope", conn)

    assert not hub.presence.is_online(1)
    assert conn.events(ERROR)


def test_notification_reaches_only_the_addressed_user() -> None:
    hub = _hub()
    first, second = FakeConnection(), FakeConnection()
    _online(hub, "token-1", first)
    _online(hub, "token-2", second)

    sent = asyncio.run(
        hub.dispatch([Notification(user_id=1, event=MATCH_CREATED, data={"match_id": 5})])
    )

    assert sent == 1
    assert first.events(MATCH_CREATED) == [{"match_id": 5}]
    assert second.events(MATCH_CREATED) == []


def test_offline_user_is_dropped_silently() -> None:
    hub = _hub()
    sent = asyncio.run(hub.dispatch([chat_removed(42, 10)]))
    assert sent == 0


def test_dispatch_survives_broken_connection() -> None:
    hub = _hub()
    broken, healthy = FakeConnection(broken=True), FakeConnection()
    _online(hub, "token-1", FakeConnection())
    broken_id = hub.attach(broken)
    hub.presence.register(1, broken_id)
    _online(hub, "token-2", healthy)

    sent = asyncio.run(hub.dispatch([chat_removed(1, 10), chat_removed(2, 10)]))

    assert sent == 1
    assert healthy.events(CHAT_REMOVED) == [{"chat_id": 10}]
    # The failing connection is dropped from presence
    assert hub.presence.connection_for(1) is None


def test_relay_skips_the_sending_connection() -> None:
    hub = _hub()
    sender, recipient = FakeConnection(), FakeConnection()
    sender_id = _online(hub, "token-1", sender)
    _online(hub, "token-2", recipient)

    delivered = asyncio.run(
        hub.relay_message(sender_id, {"chat_id": 10, "content": "hi"})
    )

    assert delivered == [2]
    assert sender.events(RECEIVE_MESSAGE) == []
    [message] = recipient.events(RECEIVE_MESSAGE)
    assert message["content"] == "hi"
    assert message["chat_id"] == 10
    assert message["sender"]["id"] == 1


def test_relay_without_join_still_delivers() -> None:
    hub = _hub()
    sender, recipient = FakeConnection(), FakeConnection()
    sender_id = _online(hub, "token-2", sender)
    _online(hub, "token-1", recipient)

    assert hub.room_members("10") == set()
    asyncio.run(hub.handle_event(sender_id, "message", {"chatId": "10", "content": "x"}))
    assert len(recipient.events(RECEIVE_MESSAGE)) == 1


def test_relay_errors_go_back_to_sender_only() -> None:
    hub = _hub()
    sender, recipient, outsider = FakeConnection(), FakeConnection(), FakeConnection()
    sender_id = _online(hub, "token-1", sender)
    _online(hub, "token-2", recipient)
    outsider_id = _online(hub, "token-3", outsider)

    asyncio.run(hub.relay_message(sender_id, {"content": "no chat"}))
    asyncio.run(hub.relay_message(sender_id, {"chat_id": 99, "content": "gone"}))
    asyncio.run(hub.relay_message(outsider_id, {"chat_id": 10, "content": "intruder"}))

    assert len(sender.events(ERROR)) == 2
    assert len(outsider.events(ERROR)) == 1
    assert recipient.events(RECEIVE_MESSAGE) == []


def test_unauthenticated_relay_is_rejected() -> None:
    hub = _hub()
    recipient, anonymous = FakeConnection(), FakeConnection()
    _online(hub, "token-2", recipient)
    anonymous_id = hub.attach(anonymous)

    delivered = asyncio.run(
        hub.relay_message(anonymous_id, {"chat_id": 10, "sender_id": 1, "content": "hey"})
    )
    assert delivered == []
    assert anonymous.events(ERROR) == [{"message": "Not authenticated"}]
    assert recipient.events(RECEIVE_MESSAGE) == []


def test_payload_sender_cannot_override_connection_user() -> None:
    hub = _hub()
    recipient, outsider = FakeConnection(), FakeConnection()
    _online(hub, "token-2", recipient)
    outsider_id = _online(hub, "token-3", outsider)

    delivered = asyncio.run(
        hub.relay_message(outsider_id, {"chat_id": 10, "sender_id": 1, "content": "hey"})
    )
    assert delivered == []
    assert len(outsider.events(ERROR)) == 1
    assert recipient.events(RECEIVE_MESSAGE) == []


def test_join_and_detach_manage_rooms() -> None:
    hub = _hub()
    conn = FakeConnection()
    connection_id = _online(hub, "token-1", conn)

    asyncio.run(hub.handle_event(connection_id, "join-chat", 10))
    assert hub.room_members("10") == {connection_id}
    assert conn.events(JOINED_CHAT) == [{"chat_id": "10"}]

    hub.detach(connection_id)
    assert hub.room_members("10") == set()
    assert not hub.presence.is_online(1)
    assert hub.connection_count == 0


def test_close_forgets_everything() -> None:
    hub = _hub()
    _online(hub, "token-1", FakeConnection())
    asyncio.run(hub.close())
    assert hub.connection_count == 0
    assert len(hub.presence) == 0
