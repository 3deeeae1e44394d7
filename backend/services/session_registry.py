"""
Session Registry

Holds which connection is currently "the" recorder and "the" moderator.
Only this object mutates those two fields. All operations are synchronous
and never suspend, so the single-threaded event loop needs no locking.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from constants import Role
from exceptions import InvalidRequestError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrationResult:
    """Outcome of a role registration"""

    role: Role
    conn_id: str
    replaced: Optional[str] = None      # Previous holder of the role, if any
    counterpart: Optional[str] = None   # Current holder of the opposite role, if any


class SessionRegistry:
    """The single active recorder/moderator pairing"""

    def __init__(self):
        self._recorder_conn: Optional[str] = None
        self._moderator_conn: Optional[str] = None

    def register(self, role, conn_id: str) -> RegistrationResult:
        """
        Assign `role` to `conn_id`. Last register wins; the previous holder
        silently loses the role.

        Raises:
            InvalidRequestError: If `role` is not a known role
        """
        parsed = Role.parse(role)
        if parsed is None:
            raise InvalidRequestError(f"Unknown role: {role!r}", field="role")

        if parsed is Role.RECORDER:
            previous = self._recorder_conn
            self._recorder_conn = conn_id
            counterpart = self._moderator_conn
        else:
            previous = self._moderator_conn
            self._moderator_conn = conn_id
            counterpart = self._recorder_conn

        replaced = previous if previous and previous != conn_id else None
        if replaced:
            logger.info(f"{parsed.value} role moved from {replaced} to {conn_id}")
        else:
            logger.info(f"{parsed.value.capitalize()} connected: {conn_id}")

        return RegistrationResult(role=parsed, conn_id=conn_id, replaced=replaced, counterpart=counterpart)

    def unregister(self, conn_id: str) -> list[Role]:
        """
        Clear every role held by `conn_id`.

        Returns:
            Roles that were cleared (empty if the connection held none)
        """
        cleared = []
        if conn_id is not None and self._recorder_conn == conn_id:
            self._recorder_conn = None
            cleared.append(Role.RECORDER)
        if conn_id is not None and self._moderator_conn == conn_id:
            self._moderator_conn = None
            cleared.append(Role.MODERATOR)
        for role in cleared:
            logger.info(f"{role.value.capitalize()} disconnected: {conn_id}")
        return cleared

    def is_recorder_ready(self) -> bool:
        return self._recorder_conn is not None

    def current_recorder(self) -> Optional[str]:
        return self._recorder_conn

    def current_moderator(self) -> Optional[str]:
        return self._moderator_conn

    def snapshot(self) -> dict:
        """Plain-dict view for diagnostics."""
        return {"recorder": self._recorder_conn, "moderator": self._moderator_conn}
