"""Remote progress gateway module."""

from src.services.remote.base import RemoteProgressGateway
from src.services.remote.factory import get_remote_gateway
from src.services.remote.http import HttpProgressGateway
from src.services.remote.memory import InMemoryProgressGateway

__all__ = [
    "RemoteProgressGateway",
    "HttpProgressGateway",
    "InMemoryProgressGateway",
    "get_remote_gateway",
]
