from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SessionContext:
    """Authenticated user passed explicitly to every data-access call."""

    user_id: int
    username: str = ""
