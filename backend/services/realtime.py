from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import uuid4

from fastapi.encoders import jsonable_encoder
from starlette.concurrency import run_in_threadpool

from backend.services.presence import PresenceRegistry

logger = logging.getLogger(__name__)

MATCH_CREATED = "match_created"
CHAT_REMOVED = "chat_removed"
RECEIVE_MESSAGE = "receive_message"
AUTHENTICATED = "authenticated"
JOINED_CHAT = "joined_chat"
ERROR = "error"

ParticipantsLookup = Callable[[int], Sequence[int] | None]
TokenResolver = Callable[[str], int | None]


class Connection(Protocol):
    async def send_json(self, data: Any) -> None: ...


@dataclass(frozen=True)
class Notification:
    """A point-to-point event addressed to one user."""

    user_id: int
    event: str
    data: dict[str, Any] = field(default_factory=dict)


def chat_removed(user_id: int, chat_id: int) -> Notification:
    return Notification(user_id=user_id, event=CHAT_REMOVED, data={"chat_id": chat_id})


def _chat_id_from(data: Any) -> str | None:
    # Older clients send the bare id, newer ones wrap it in an object
    if isinstance(data, dict):
        data = data.get("chat_id", data.get("chatId"))
    if data is None or data == "":
        return None
    return str(data)


class RealtimeHub:
    """Connection bookkeeping and event routing for the websocket channel.

    Deliveries are always addressed to the connection the presence registry
    holds for a user; rooms only record which connections joined a chat.
    """

    def __init__(
        self,
        presence: PresenceRegistry,
        *,
        participants_lookup: ParticipantsLookup,
        token_resolver: TokenResolver,
    ) -> None:
        self.presence = presence
        self._participants_lookup = participants_lookup
        self._token_resolver = token_resolver
        self._connections: dict[str, Connection] = {}
        self._rooms: dict[str, set[str]] = {}

    # ---- connection lifecycle ----

    def attach(self, connection: Connection) -> str:
        connection_id = uuid4().hex
        self._connections[connection_id] = connection
        logger.debug("Connection %s attached", connection_id)
        return connection_id

    def detach(self, connection_id: str) -> None:
        self._connections.pop(connection_id, None)
        self.presence.unregister(connection_id)
        for room, members in list(self._rooms.items()):
            members.discard(connection_id)
            if not members:
                del self._rooms[room]
        logger.debug("Connection %s detached", connection_id)

    def join_room(self, connection_id: str, room: str) -> None:
        self._rooms.setdefault(room, set()).add(connection_id)

    def room_members(self, room: str) -> set[str]:
        return set(self._rooms.get(room, ()))

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def close(self) -> None:
        self._connections.clear()
        self._rooms.clear()
        self.presence.clear()

    # ---- delivery ----

    async def emit(self, connection_id: str, event: str, data: Any) -> bool:
        connection = self._connections.get(connection_id)
        if connection is None:
            return False
        try:
            await connection.send_json({"event": event, "data": jsonable_encoder(data)})
        except Exception:
            logger.error(
                "Failed to deliver %s to connection %s", event, connection_id, exc_info=True
            )
            self.detach(connection_id)
            return False
        return True

    async def notify_user(self, user_id: int, event: str, data: Any) -> bool:
        connection_id = self.presence.connection_for(user_id)
        if connection_id is None:
            # No offline queue and no push fallback
            logger.info("User %s is not connected, dropping %s", user_id, event)
            return False
        delivered = await self.emit(connection_id, event, data)
        if delivered:
            logger.info(
                "Sent %s to user %s via connection %s", event, user_id, connection_id
            )
        return delivered

    async def dispatch(self, notifications: Iterable[Notification]) -> int:
        """Deliver notifications, never raising; returns how many were sent."""
        sent = 0
        for notification in notifications:
            try:
                if await self.notify_user(
                    notification.user_id, notification.event, notification.data
                ):
                    sent += 1
            except Exception:
                logger.error(
                    "Error sending %s notification to user %s",
                    notification.event,
                    notification.user_id,
                    exc_info=True,
                )
        return sent

    # ---- client protocol ----

    async def handle_event(self, connection_id: str, event: str, data: Any) -> None:
        if event == "authenticate":
            await self._authenticate(connection_id, data)
        elif event in {"join_chat", "join-chat"}:
            await self._join_chat(connection_id, data)
        elif event in {"send_message", "message"}:
            await self.relay_message(connection_id, data)
        else:
            await self.emit(connection_id, ERROR, {"message": f"Unknown event: {event}"})

    async def _authenticate(self, connection_id: str, data: Any) -> None:
        token = data.get("token") if isinstance(data, dict) else data
        user_id = None
        if isinstance(token, str) and token:
            user_id = await run_in_threadpool(self._token_resolver, token)
        if user_id is None:
            await self.emit(connection_id, ERROR, {"message": "Invalid token"})
            return
        self.presence.register(user_id, connection_id)
        await self.emit(connection_id, AUTHENTICATED, {"user_id": user_id})

    async def _join_chat(self, connection_id: str, data: Any) -> None:
        room = _chat_id_from(data)
        if room is None:
            await self.emit(connection_id, ERROR, {"message": "chat_id is required"})
            return
        self.join_room(connection_id, room)
        logger.info(
            "Connection %s (user %s) joined chat %s",
            connection_id,
            self.presence.user_for(connection_id),
            room,
        )
        await self.emit(connection_id, JOINED_CHAT, {"chat_id": room})

    async def relay_message(self, connection_id: str, data: Any) -> list[int]:
        """Push a chat message to every other participant's live connection."""
        if not isinstance(data, dict):
            await self.emit(connection_id, ERROR, {"message": "Invalid message payload"})
            return []

        sender_id = self.presence.user_for(connection_id)
        if sender_id is None:
            await self.emit(connection_id, ERROR, {"message": "Not authenticated"})
            return []
        chat_id = _chat_id_from(data)
        try:
            chat_key = int(chat_id) if chat_id is not None else None
        except (TypeError, ValueError):
            chat_key = None
        if chat_key is None:
            logger.warning("Missing chat in send_message: %s", data)
            await self.emit(connection_id, ERROR, {"message": "Missing chat info"})
            return []

        participants = await run_in_threadpool(self._participants_lookup, chat_key)
        if participants is None:
            logger.warning("Chat %s not found for send_message", chat_key)
            await self.emit(connection_id, ERROR, {"message": "Chat room not found"})
            return []
        if sender_id not in participants:
            await self.emit(
                connection_id, ERROR, {"message": "Not a participant of this chat"}
            )
            return []

        sender = data.get("sender") if isinstance(data.get("sender"), dict) else {}
        message_data = {
            **data,
            "chat_id": chat_key,
            "sender_socket_id": connection_id,
            "sender_user_id": sender_id,
            "sender": {**sender, "id": sender_id, "is_current_user": False},
        }

        delivered: list[int] = []
        for participant_id in participants:
            recipient = self.presence.connection_for(participant_id)
            if recipient is None:
                logger.info(
                    "Participant %s of chat %s is not connected", participant_id, chat_key
                )
                continue
            if recipient == connection_id:
                continue
            if await self.emit(recipient, RECEIVE_MESSAGE, message_data):
                delivered.append(participant_id)
        return delivered
