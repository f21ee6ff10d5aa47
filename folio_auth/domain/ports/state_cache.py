from __future__ import annotations

from typing import Any, Optional, Protocol


class StateCachePort(Protocol):
    """
    Key/value store with TTL for short-lived auth state.

    Implementations never raise on backend outages: reads return None,
    writes return False, and ``connected`` reflects the last call's outcome.
    """

    @property
    def connected(self) -> bool:
        """False once a call has failed because the backend is unreachable."""

    async def connect(self) -> None:
        """Open the backend connection."""

    async def close(self) -> None:
        """Release the backend connection."""

    async def get(self, key: str) -> Optional[Any]:
        """Decoded value, or None when absent or unreachable."""

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """Store/replace with TTL. True if the write reached the backend."""

    async def delete(self, key: str) -> bool:
        """Remove key. True if the call reached the backend."""
