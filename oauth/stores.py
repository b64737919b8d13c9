"""In-memory credential store for OAuth state and MCP sessions.

A single CredentialStore holds both pending authorizations (keyed by the
OAuth ``state`` value) and authenticated sessions (keyed by the opaque
session token handed to the MCP client). Both token kinds are generated
independently with enough entropy that they never collide.

Nothing is persisted: restarting the process drops every session and users
must go through the OAuth flow again. The store is only touched from the
asyncio event loop, so no locking is needed.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingAuthorization:
    """OAuth state issued by /auth/start, consumed once by /auth/callback."""

    state: str
    created_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class Session:
    """Server-side record bound to an MCP client's session token."""

    session_token: str
    access_token: str
    workspace_id: str
    base_url: str
    space_keys: tuple[str, ...] = ()
    created_at: float = field(default_factory=time.time)


Entry = Union[PendingAuthorization, Session]


class CredentialStore:
    """Mapping from opaque token to PendingAuthorization or Session."""

    def __init__(self):
        self._entries: dict[str, Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, token: str) -> bool:
        return token in self._entries

    def get(self, token: str) -> Optional[Entry]:
        return self._entries.get(token)

    def put(self, token: str, entry: Entry) -> None:
        self._entries[token] = entry

    def delete(self, token: str) -> bool:
        return self._entries.pop(token, None) is not None

    def get_session(self, token: str) -> Optional[Session]:
        """Return the Session for a token, ignoring pending authorizations."""
        if not token:
            return None
        entry = self._entries.get(token)
        return entry if isinstance(entry, Session) else None

    def add_pending(self, state: str) -> PendingAuthorization:
        pending = PendingAuthorization(state=state)
        self._entries[state] = pending
        return pending

    def consume_pending(self, state: str) -> Optional[PendingAuthorization]:
        """Remove and return the pending authorization for ``state``.

        Returns None if the state is unknown or names a Session, so a state
        value is accepted at most once.
        """
        if not state:
            return None
        entry = self._entries.get(state)
        if not isinstance(entry, PendingAuthorization):
            return None
        del self._entries[state]
        return entry

    def add_session(self, session: Session) -> None:
        self._entries[session.session_token] = session

    def revoke(self, token: str) -> bool:
        """Delete a Session. Returns True if one was removed."""
        if self.get_session(token) is None:
            return False
        del self._entries[token]
        return True

    def session_count(self) -> int:
        return sum(1 for e in self._entries.values() if isinstance(e, Session))

    def sweep(
        self,
        now: float,
        max_age: float,
        pending_max_age: Optional[float] = None,
    ) -> int:
        """Remove entries older than their max age.

        Args:
            now: Current Unix timestamp
            max_age: Maximum Session age in seconds
            pending_max_age: Maximum PendingAuthorization age in seconds
                (defaults to ``max_age``)

        Returns:
            Number of entries removed
        """
        if pending_max_age is None:
            pending_max_age = max_age

        expired = []
        for token, entry in self._entries.items():
            limit = max_age if isinstance(entry, Session) else pending_max_age
            if now - entry.created_at > limit:
                expired.append(token)

        for token in expired:
            del self._entries[token]
        return len(expired)


async def run_sweeper(
    store: CredentialStore,
    interval: float,
    max_age: float,
    pending_max_age: Optional[float] = None,
) -> None:
    """Sweep expired entries every ``interval`` seconds until cancelled."""
    logger.info(f"[SWEEP] Sweeper started (interval={interval}s, max_age={max_age}s)")
    while True:
        await asyncio.sleep(interval)
        removed = store.sweep(time.time(), max_age, pending_max_age)
        if removed:
            logger.info(f"[SWEEP] Removed {removed} expired entries, {len(store)} remaining")
