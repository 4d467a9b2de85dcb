# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
MCP Session Manager
Tracks transport-level session ids for long-lived connections and evicts
idle ones opportunistically.
"""

import random
import secrets
import time
from typing import Callable, Dict, List, Optional

from n8n_mcp.core.logging import get_logger, log_event
from n8n_mcp.mcp_session import MCPSession, SessionState

logger = get_logger(__name__)

DEFAULT_SESSION_TTL = 3600.0


class MCPSessionManager:
    """
    In-memory session table.

    Methods never await, so under the event loop each call runs to completion
    before another task can touch the table.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_SESSION_TTL,
        sweep_probability: float = 0.01,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ):
        self.sessions: Dict[str, MCPSession] = {}
        self.ttl = ttl
        self.sweep_probability = sweep_probability
        self._clock = clock
        self._rng = rng or random.Random()

    def new_session_id(self) -> str:
        """Random token plus millisecond timestamp; nothing is stored"""
        return f"mcp-session-{int(self._clock() * 1000)}-{secrets.token_hex(8)}"

    def create(self) -> str:
        """Insert a new ACTIVE session and return its id"""
        session_id = self.new_session_id()
        while session_id in self.sessions:
            session_id = self.new_session_id()

        now = self._clock()
        self.sessions[session_id] = MCPSession(
            id=session_id,
            created_at=now,
            last_activity_at=now,
        )
        log_event(logger, "session_created", level="DEBUG", session_id=session_id)
        return session_id

    def get(self, session_id: Optional[str]) -> Optional[MCPSession]:
        if not session_id:
            return None
        return self.sessions.get(session_id)

    def touch(self, session_id: Optional[str]) -> bool:
        """
        Refresh activity for a session.

        Returns:
            False when the session is unknown or expired (session not found)
        """
        session = self.get(session_id)
        if session is None or session.state is not SessionState.ACTIVE:
            return False

        now = self._clock()
        if session.idle_for(now) > self.ttl:
            # Past its TTL but not swept yet
            self._expire(session_id)
            return False

        session.last_activity_at = now
        return True

    def remove(self, session_id: Optional[str]) -> bool:
        """Explicitly terminate a session"""
        if not session_id or session_id not in self.sessions:
            return False
        self._expire(session_id)
        return True

    def _expire(self, session_id: str) -> None:
        session = self.sessions.pop(session_id, None)
        if session is not None:
            session.state = SessionState.EXPIRED

    def sweep(self, now: Optional[float] = None, ttl: Optional[float] = None) -> List[str]:
        """
        Remove every session idle longer than ttl.

        Expired keys are collected first and deleted afterwards.

        Returns:
            The evicted session ids
        """
        now = self._clock() if now is None else now
        ttl = self.ttl if ttl is None else ttl

        expired = [
            session_id
            for session_id, session in list(self.sessions.items())
            if session.idle_for(now) > ttl
        ]

        for session_id in expired:
            self._expire(session_id)

        if expired:
            log_event(logger, "sessions_swept", count=len(expired), remaining=len(self.sessions))
        return expired

    def maybe_sweep(self) -> List[str]:
        """Run a sweep with the configured probability (called once per request)"""
        if self.sweep_probability > 0 and self._rng.random() < self.sweep_probability:
            return self.sweep()
        return []

    def __len__(self) -> int:
        return len(self.sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self.sessions

    def close(self) -> None:
        """Drop every session (process shutdown)"""
        for session_id in list(self.sessions):
            self._expire(session_id)
