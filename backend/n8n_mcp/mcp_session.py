# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
MCP Session Data Structure
"""

from dataclasses import dataclass
from enum import Enum


class SessionState(str, Enum):
    """Session lifecycle. EXPIRED is terminal."""
    ACTIVE = "active"
    EXPIRED = "expired"


@dataclass
class MCPSession:
    """Represents one long-lived client connection (timestamps in seconds)"""
    id: str
    created_at: float
    last_activity_at: float
    state: SessionState = SessionState.ACTIVE

    def idle_for(self, now: float) -> float:
        return now - self.last_activity_at

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "created_at": self.created_at,
            "last_activity_at": self.last_activity_at,
            "state": self.state.value,
        }
