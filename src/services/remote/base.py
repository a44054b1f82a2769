"""Abstract base class for remote progress gateways."""

from abc import ABC, abstractmethod

from src.core.progression.models import ProgressSnapshot


class RemoteProgressGateway(ABC):
    """Abstract base class for remote progress stores.

    The engine treats every gateway as best-effort: failures surface as
    RemoteSyncError and are recovered by the caller with local state.
    Gateways receive read-only snapshots and return whole replacement
    snapshots; they never mutate engine state.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the gateway name."""
        ...

    @abstractmethod
    async def load_progress(self, identity: str) -> ProgressSnapshot:
        """Load the stored snapshot for an authenticated identity.

        Args:
            identity: Account identifier of the authenticated player.

        Returns:
            The stored snapshot. A new player yields an empty snapshot.

        Raises:
            RemoteSyncError: On network or server failure.
        """
        ...

    @abstractmethod
    async def save_progress(self, identity: str, snapshot: ProgressSnapshot) -> None:
        """Replace the stored snapshot. Resending the same snapshot is a no-op.

        Raises:
            RemoteSyncError: On network or server failure.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources, if any."""
        return None
