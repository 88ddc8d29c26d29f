"""In-process presence registry mapping users to live connections.

The registry is the single answer to "which connection, if any, represents
user U right now". It is shared by the message relay and the call signaling
relay. Registration is last-one-wins: a second connection registering the
same user replaces the first in lookups without closing it.
"""

from __future__ import annotations

import logging
from threading import Lock

from chorus_chat.realtime.connection import Connection

logger = logging.getLogger(__name__)


class PresenceRegistry:
    """Thread-safe ``user_id -> Connection`` map.

    Every operation takes the lock for a handful of dictionary operations and
    never awaits, so lookups stay non-blocking from the event loop.
    """

    def __init__(self) -> None:
        self._by_user: dict[int, Connection] = {}
        self._lock = Lock()

    def register(self, user_id: int, connection: Connection) -> None:
        """Make ``connection`` the reachable handle for ``user_id``.

        A connection re-registering under a different user releases its
        previous entry if it still owns it.
        """
        with self._lock:
            previous_user = connection.user_id
            if (
                previous_user is not None
                and previous_user != user_id
                and self._by_user.get(previous_user) is connection
            ):
                del self._by_user[previous_user]
            replaced = self._by_user.get(user_id)
            self._by_user[user_id] = connection
            connection.user_id = user_id
        if replaced is not None and replaced is not connection:
            logger.info("User %s re-registered; %s superseded by %s", user_id, replaced, connection)
        else:
            logger.info("User %s registered on %s", user_id, connection)

    def lookup(self, user_id: int) -> Connection | None:
        """Return the current handle for ``user_id``, if any."""
        with self._lock:
            return self._by_user.get(user_id)

    def unregister(self, connection: Connection) -> bool:
        """Remove ``connection`` if it is still the current handle of its user.

        A late disconnect of a superseded connection leaves the newer
        registration in place.

        Returns:
            True if an entry was removed.
        """
        with self._lock:
            user_id = connection.user_id
            if user_id is None or self._by_user.get(user_id) is not connection:
                return False
            del self._by_user[user_id]
        logger.info("User %s unregistered (%s)", user_id, connection)
        return True

    def is_online(self, user_id: int) -> bool:
        return self.lookup(user_id) is not None

    def online_users(self) -> list[int]:
        """Return a snapshot of registered user ids."""
        with self._lock:
            return list(self._by_user)

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_user)
