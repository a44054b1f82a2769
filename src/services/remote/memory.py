"""In-memory remote progress gateway for offline play and testing."""

import asyncio

from src.core.progression.errors import RemoteSyncError
from src.core.progression.models import ProgressSnapshot
from src.services.remote.base import RemoteProgressGateway


def _clone(snapshot: ProgressSnapshot) -> ProgressSnapshot:
    return ProgressSnapshot(
        progress=[r.copy() for r in snapshot.progress],
        unlocked_maps=list(snapshot.unlocked_maps),
    )


class InMemoryProgressGateway(RemoteProgressGateway):
    """Gateway that keeps snapshots in a dict.

    Used as the default when no server is configured. ``fail_loads`` and
    ``fail_saves`` simulate an unreachable server; ``delay`` simulates
    network latency so in-flight saves can overlap.
    """

    def __init__(self, delay: float = 0.0) -> None:
        self._snapshots: dict[str, ProgressSnapshot] = {}
        self.delay = delay
        self.fail_loads = False
        self.fail_saves = False
        self.load_calls = 0
        self.save_calls = 0

    @property
    def name(self) -> str:
        """Return the gateway name."""
        return "memory"

    async def load_progress(self, identity: str) -> ProgressSnapshot:
        """Return a copy of the stored snapshot (empty for new players)."""
        self.load_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_loads:
            raise RemoteSyncError("Simulated load failure")
        stored = self._snapshots.get(identity)
        return _clone(stored) if stored else ProgressSnapshot()

    async def save_progress(self, identity: str, snapshot: ProgressSnapshot) -> None:
        """Store a copy of the snapshot."""
        self.save_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_saves:
            raise RemoteSyncError("Simulated save failure")
        self._snapshots[identity] = _clone(snapshot)

    def stored(self, identity: str) -> ProgressSnapshot | None:
        """Direct access for assertions."""
        return self._snapshots.get(identity)

    def seed(self, identity: str, snapshot: ProgressSnapshot) -> None:
        """Preload a snapshot as if saved by an earlier session."""
        self._snapshots[identity] = _clone(snapshot)
