"""
Inference Session Pool.

A Kokoro session runs one segment at a time, so concurrent synthesize
calls each need their own session. SessionPool hands sessions out for
exclusive use and blocks callers while all of them are busy.

Backpressure:
    1. A free session is handed out immediately.
    2. Otherwise the caller waits on a condition variable.
    3. After ``timeout`` seconds it gives up with SessionTimeoutError.

Usage:
    pool = SessionPool([InferenceSession.open(model_dir) for _ in range(2)])

    with pool.acquire(timeout=30.0) as session:
        audio = session.infer(ids, style, speed)

    pool.stats()  # PoolStats(size=2, in_use=0, ...)
"""
from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional

from kokoro_stream.core.logging import debug, get_logger, warn
from kokoro_stream.services.errors import InferenceError, SessionTimeoutError
from kokoro_stream.tts.session import InferenceSession

_LOG = get_logger("kokoro-stream.pool")


@dataclass
class PoolStats:
    """Snapshot of pool usage."""
    size: int
    in_use: int
    waiting: int
    total_acquired: int
    total_timeouts: int


class SessionPool:
    """
    Fixed set of InferenceSessions, each used by one caller at a time.

    Sessions are handed out in LIFO order so a lightly loaded engine
    keeps reusing the same warm session.
    """

    def __init__(self, sessions: List[InferenceSession]):
        if not sessions:
            raise ValueError("SessionPool needs at least one session")
        self._sessions = list(sessions)
        self._free = list(sessions)
        self._condition = threading.Condition(threading.Lock())
        self._waiting = 0
        self._total_acquired = 0
        self._total_timeouts = 0
        self._closed = False

    @property
    def size(self) -> int:
        return len(self._sessions)

    @property
    def sessions(self) -> List[InferenceSession]:
        return list(self._sessions)

    @contextmanager
    def acquire(self, timeout: Optional[float] = None) -> Iterator[InferenceSession]:
        """
        Borrow a session for exclusive use.

        Args:
            timeout: Seconds to wait for a free session; None or 0 waits forever.

        Raises:
            SessionTimeoutError: If no session became free in time.
            InferenceError: If the pool was closed.
        """
        session = self._checkout(timeout)
        try:
            yield session
        finally:
            self._checkin(session)

    def _checkout(self, timeout: Optional[float]) -> InferenceSession:
        deadline = time.monotonic() + timeout if timeout else None
        with self._condition:
            self._waiting += 1
            try:
                while not self._free:
                    if self._closed:
                        break
                    remaining = None if deadline is None else deadline - time.monotonic()
                    if remaining is not None and remaining <= 0:
                        self._total_timeouts += 1
                        warn(_LOG, "session_wait_timeout", timeout=timeout, size=self.size)
                        raise SessionTimeoutError(
                            f"no inference session free after {timeout}s",
                            {"timeout_s": timeout, "pool_size": self.size},
                        )
                    self._condition.wait(timeout=remaining)
                if self._closed:
                    raise InferenceError("session pool is closed")
                self._total_acquired += 1
                session = self._free.pop()
            finally:
                self._waiting -= 1
        debug(_LOG, "session_acquired", free=len(self._free), size=self.size)
        return session

    def _checkin(self, session: InferenceSession) -> None:
        with self._condition:
            self._free.append(session)
            self._condition.notify()

    def stats(self) -> PoolStats:
        with self._condition:
            return PoolStats(
                size=self.size,
                in_use=self.size - len(self._free),
                waiting=self._waiting,
                total_acquired=self._total_acquired,
                total_timeouts=self._total_timeouts,
            )

    def close(self) -> None:
        """Close every session and wake any waiters."""
        with self._condition:
            self._closed = True
            self._condition.notify_all()
        for session in self._sessions:
            session.close()
