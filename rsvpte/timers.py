"""Soft-state refresh timers: resend PATH and RESV messages and expire silent sessions."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable

from rsvpte.sessions import Session

log = logging.getLogger(__name__)

REFRESH_INTERVAL = 30
SESSION_TIMEOUT = 90


class RefreshTimer:
    """A repeating timer running its callback on a background thread.

    The callback first runs after ``initial_delay`` seconds and then every
    ``interval`` seconds. A callback that returns False stops the timer.
    """

    def __init__(self, callback: Callable[[], Any], interval: float = REFRESH_INTERVAL,
                 initial_delay: float | None = None) -> None:
        self.callback = callback
        self.interval = interval
        self.initial_delay = interval if initial_delay is None else initial_delay
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Start the timer; it must not already be running."""
        if self.is_active():
            raise RuntimeError("timer already running")
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, args=(self._stop,), daemon=True)
        self._thread.start()

    def _run(self, stop: threading.Event) -> None:
        delay = self.initial_delay
        while not stop.wait(delay):
            try:
                keep_running = self.callback()
            except Exception:
                log.exception("refresh timer callback failed")
                keep_running = True
            if keep_running is False:
                break
            delay = self.interval
        stop.set()

    def cancel(self) -> None:
        """Stop the timer and wait for its thread unless called from it."""
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def is_active(self) -> bool:
        """Tell whether the timer is still armed."""
        return (self._thread is not None and self._thread.is_alive()
                and not self._stop.is_set())


def _refresh(node: Any, sessions: Any, tree: Any, send: Callable[[int], Any],
             kind: str, missing: str, now: float | None) -> list[Session]:
    stamp = time.time() if now is None else now
    expired: list[Session] = []
    for session in sessions:
        age = stamp - session.last_path_time
        if age > SESSION_TIMEOUT:
            log.info("RSVP %s session expired: %s\t-->%s", kind, session.sender, session.receiver)
            sessions.delete(session.sender, session.receiver)
            tree.delete(session.tunnel_id)
            expired.append(session)
        elif age < REFRESH_INTERVAL:
            continue
        elif session.dest:
            try:
                send(session.tunnel_id)
            except KeyError as exc:
                log.error("cannot refresh tunnel %d: %s", session.tunnel_id, exc)
        else:
            log.info("not received %s msg", missing)
    return expired


def path_refresh(node: Any, now: float | None = None) -> list[Session]:
    """Refresh PATH state from the RESV sessions of node; return the sessions that expired.

    A session silent for longer than the timeout is removed together with
    its RESV state; one older than the refresh interval at the head of a
    tunnel has its PATH message sent again.
    """
    return _refresh(node, node.resv_sessions, node.resv_tree, node.send_path,
                    "path", "resv", now)


def resv_refresh(node: Any, now: float | None = None) -> list[Session]:
    """Refresh RESV state from the PATH sessions of node; return the sessions that expired.

    A session silent for longer than the timeout is removed together with
    its PATH state; one older than the refresh interval at the tail of a
    tunnel has its RESV message sent again.
    """
    return _refresh(node, node.path_sessions, node.path_tree, node.send_resv,
                    "resv", "path", now)


class TimerManager:
    """The PATH and RESV refresh timers of one node, started on demand."""

    def __init__(self, node: Any, interval: float = REFRESH_INTERVAL,
                 initial_delay: float | None = None,
                 clock: Callable[[], float] = time.time) -> None:
        self.node = node
        self.interval = interval
        self.initial_delay = initial_delay
        self.clock = clock
        self.lock = threading.RLock()
        self.path_timer: RefreshTimer | None = None
        self.resv_timer: RefreshTimer | None = None

    def _path_tick(self) -> bool:
        with self.lock:
            path_refresh(self.node, self.clock())
            return len(self.node.resv_sessions) > 0

    def _resv_tick(self) -> bool:
        with self.lock:
            resv_refresh(self.node, self.clock())
            return len(self.node.path_sessions) > 0

    def _new_timer(self, callback: Callable[[], Any]) -> RefreshTimer:
        timer = RefreshTimer(callback, self.interval, self.initial_delay)
        timer.start()
        return timer

    def path_event(self) -> bool:
        """Start the PATH refresh timer unless it runs; return whether it was started."""
        if self.path_timer is not None and self.path_timer.is_active():
            return False
        self.path_timer = self._new_timer(self._path_tick)
        return True

    def resv_event(self) -> bool:
        """Start the RESV refresh timer unless it runs; return whether it was started."""
        if self.resv_timer is not None and self.resv_timer.is_active():
            return False
        self.resv_timer = self._new_timer(self._resv_tick)
        return True

    def stop(self) -> None:
        """Cancel both timers."""
        for timer in (self.path_timer, self.resv_timer):
            if timer is not None:
                timer.cancel()