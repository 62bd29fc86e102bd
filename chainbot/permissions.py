"""Permission levels and authorization gates.

Each bot owns a PermissionTable mapping user IDs and role IDs to
integer levels. A user's effective level is the maximum of their
personal level and the highest level among their roles (roles count
only inside a server). There is no deny level: grants only add up.

The table is read by every execution unit and written by the
administrative setters. Command bodies may run in worker threads, so
access goes through a threading-based ReadWriteLock.

Key classes:
    ReadWriteLock: Many readers or one writer.
    PermissionTable: Per-bot user/role level storage.

Key functions:
    required_permissions_held: All channel permissions held.
    required_roles_held: All required roles held.
"""

import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, Optional, Union

import structlog

from .transport import Channel, Server, Transport, User

logger = structlog.get_logger("chainbot.permissions")


class ReadWriteLock:
    """Readers share the lock; a writer holds it alone.

    Writers are preferred: once a writer is waiting, new readers
    queue behind it so a steady read load cannot starve updates.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class PermissionTable:
    """User and role permission levels for one bot instance.

    Levels live in process memory only. Entries can be overwritten but
    not removed; setting a level to 0 is equivalent to no entry.
    """

    def __init__(self):
        self._users: Dict[Any, int] = {}
        self._roles: Dict[Any, int] = {}
        self._lock = ReadWriteLock()

    def set_user_permission(self, user_id: Any, level: int) -> None:
        with self._lock.write():
            self._users[user_id] = level
        logger.info("user_permission_set", user_id=user_id, level=level)

    def set_role_permission(self, role_id: Any, level: int) -> None:
        with self._lock.write():
            self._roles[role_id] = level
        logger.info("role_permission_set", role_id=role_id, level=level)

    def user_level(self, user_id: Any) -> int:
        with self._lock.read():
            return self._users.get(user_id, 0)

    def role_level(self, role_id: Any) -> int:
        with self._lock.read():
            return self._roles.get(role_id, 0)

    def effective_level(self, user: User, server: Optional[Server]) -> int:
        """Highest of the user's own level and, on a server, their roles' levels."""
        with self._lock.read():
            role_level = 0
            if server is not None:
                for role in user.roles:
                    role_level = max(role_level, self._roles.get(role.id, 0))
            return max(self._users.get(user.id, 0), role_level)

    def permission(self, user: User, level: int, server: Optional[Server]) -> bool:
        """Whether the user's effective level reaches ``level`` (inclusive)."""
        return self.effective_level(user, server) >= level


def required_permissions_held(
    transport: Transport,
    user: User,
    required: Iterable[str],
    channel: Optional[Channel],
) -> bool:
    """Check every required channel permission through the transport.

    NoPermission raised by the transport propagates to the caller.
    """
    return all(transport.has_permission(user, action, channel) for action in required)


def required_roles_held(
    transport: Transport,
    user: User,
    required: Union[Any, Iterable[Any], None],
) -> bool:
    """Check that the user holds every required role.

    ``required`` may be a single role (ID or Role) or a list of them.
    """
    if required is None:
        return True
    if isinstance(required, (list, tuple, set, frozenset)):
        return all(transport.has_role(user, role) for role in required)
    return transport.has_role(user, required)
