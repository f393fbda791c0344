from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class PresenceRegistry:
    """Process-local map of authenticated user <-> live connection.

    A user has at most one deliverable connection: authenticating from a
    second device replaces the first registration. Nothing is persisted, so a
    restart starts empty and multiple worker processes do not share state.
    """

    def __init__(self) -> None:
        self._connection_by_user: dict[int, str] = {}
        self._user_by_connection: dict[str, int] = {}

    def register(self, user_id: int, connection_id: str) -> str | None:
        """Bind user_id to connection_id, returning any connection it replaced."""
        previous_user = self._user_by_connection.get(connection_id)
        if previous_user is not None and previous_user != user_id:
            # Same socket re-authenticated as somebody else
            if self._connection_by_user.get(previous_user) == connection_id:
                del self._connection_by_user[previous_user]

        replaced = self._connection_by_user.get(user_id)
        if replaced is not None and replaced != connection_id:
            self._user_by_connection.pop(replaced, None)
            logger.info(
                "User %s moved from connection %s to %s",
                user_id,
                replaced,
                connection_id,
            )
        else:
            replaced = None

        self._connection_by_user[user_id] = connection_id
        self._user_by_connection[connection_id] = user_id
        logger.info("User %s authenticated on connection %s", user_id, connection_id)
        return replaced

    def unregister(self, connection_id: str) -> int | None:
        user_id = self._user_by_connection.pop(connection_id, None)
        if user_id is None:
            return None
        # A newer connection for the same user must survive the old one closing
        if self._connection_by_user.get(user_id) == connection_id:
            del self._connection_by_user[user_id]
        logger.info("User %s disconnected from connection %s", user_id, connection_id)
        return user_id

    def connection_for(self, user_id: int) -> str | None:
        return self._connection_by_user.get(user_id)

    def user_for(self, connection_id: str) -> int | None:
        return self._user_by_connection.get(connection_id)

    def is_online(self, user_id: int) -> bool:
        return user_id in self._connection_by_user

    def clear(self) -> None:
        self._connection_by_user.clear()
        self._user_by_connection.clear()

    def __len__(self) -> int:
        return len(self._connection_by_user)
