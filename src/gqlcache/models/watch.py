from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class FileChange(BaseModel):
    """One file descriptor from a watchman subscription batch."""

    model_config = ConfigDict(extra="ignore")

    name: str  # Relative to the subscription root
    exists: bool = True
    size: int = 0
    mtime: float = 0
    is_fresh_instance: bool = False


class SubscriptionEvent(BaseModel):
    """A watchman `subscribe` result delivered by the transport."""

    model_config = ConfigDict(extra="ignore")

    root: str | None = None
    subscription: str = ""
    is_fresh_instance: bool = False
    files: list[FileChange] = []
