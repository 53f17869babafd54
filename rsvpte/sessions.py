"""Soft-state session list keyed by sender and receiver address."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Iterator


@dataclass
class Session:
    """One RSVP session and the time its state was last refreshed."""

    sender: str
    receiver: str
    tunnel_id: int
    last_path_time: float
    dest: bool


class SessionTable:
    """Sessions in insertion order, unique by (sender, receiver)."""

    def __init__(self) -> None:
        self._sessions: list[Session] = []

    def insert(self, tunnel_id: int, sender: str, receiver: str, dest: bool,
               now: float | None = None) -> bool:
        """Add a session, or refresh an existing one; return True if it is new."""
        stamp = time.time() if now is None else now
        existing = self.find(sender, receiver)
        if existing is not None:
            existing.last_path_time = stamp
            return False
        self._sessions.append(Session(sender, receiver, tunnel_id, stamp, bool(dest)))
        return True

    def delete(self, sender: str, receiver: str) -> Session | None:
        """Remove and return the session for sender and receiver, if any."""
        for position, session in enumerate(self._sessions):
            if session.sender == sender and session.receiver == receiver:
                return self._sessions.pop(position)
        return None

    def find(self, sender: str, receiver: str) -> Session | None:
        """Return the session for sender and receiver, or None."""
        return next(
            (s for s in self._sessions if s.sender == sender and s.receiver == receiver),
            None,
        )

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions))

    def __len__(self) -> int:
        return len(self._sessions)